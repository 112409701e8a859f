"""
Tests for social preview rendering and the HTML-vs-bytes decision.
"""

import json

import pytest

from linkplay.constants import DEFAULT_EMBED_COLOR
from linkplay.embed import (
    EmbedPrefsStore,
    media_kind,
    mime_type,
    render_embed_page,
    sanitize_embed_prefs,
    should_serve_preview,
)

VIDEO_MARKERS = ("og:video", "twitter:player", "<video")
IMAGE_MARKERS = ("og:image:secure_url", "summary_large_image", "<img")

DISCORD_UA = "Mozilla/5.0 (compatible; Discordbot/2.0; +https://discordapp.com)"
BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64) Firefox/130.0"


class TestRenderEmbedPage:
    def test_image_has_only_image_tags(self):
        html = render_embed_page("/media/shared/cat.png", "cat.png")
        assert '<meta property="og:type" content="image">' in html
        assert 'content="image/png"' in html
        for marker in IMAGE_MARKERS:
            assert marker in html
        for marker in VIDEO_MARKERS:
            assert marker not in html

    def test_video_has_only_video_tags(self):
        html = render_embed_page("/media/shared/clip.mp4", "clip.mp4")
        assert '<meta property="og:type" content="video.other">' in html
        assert '<meta property="og:video:width" content="720">' in html
        assert '<meta property="og:video:height" content="1280">' in html
        assert "controls autoplay loop" in html
        for marker in IMAGE_MARKERS:
            assert marker not in html

    def test_other_is_generic_link(self):
        html = render_embed_page("/media/shared/notes.pdf", "notes.pdf")
        assert '<meta property="og:type" content="website">' in html
        assert '<meta name="twitter:card" content="summary">' in html
        assert '<a href="/media/shared/notes.pdf">' in html
        for marker in VIDEO_MARKERS + IMAGE_MARKERS:
            assert marker not in html

    def test_fallback_literals(self):
        html = render_embed_page("/m/a.png", "a.png")
        assert "<title>a.png</title>" in html
        assert 'content="Embedded media"' in html
        assert f'content="{DEFAULT_EMBED_COLOR}"' in html

    def test_override_beats_operator_default(self):
        html = render_embed_page(
            "/m/a.png", "a.png",
            overrides={"title": "Override", "color": "#abc"},
            defaults={"title": "Default", "desc": "From operator", "color": "#123456"},
        )
        assert "<title>Override</title>" in html
        assert 'content="From operator"' in html
        assert 'content="#abc"' in html

    def test_bad_color_falls_back_to_default(self):
        html = render_embed_page("/m/a.png", "a.png", overrides={"color": "red;}"}, defaults={"color": "#222222"})
        assert 'content="#222222"' in html
        assert "red;}" not in html

    def test_escapes_untrusted_input(self):
        html = render_embed_page(
            '/m/a.png?x="><script>',
            "a.png",
            overrides={"title": "<script>alert(1)</script>", "desc": '"><b>x</b>'},
        )
        assert "<script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
        assert "&quot;&gt;&lt;b&gt;" in html

    def test_public_url_prefix(self):
        html = render_embed_page("/media/shared/a.gif", "a.gif", public_url="https://cdn.example")
        assert 'content="https://cdn.example/media/shared/a.gif"' in html

    def test_truncates_long_values(self):
        html = render_embed_page("/m/a.png", "a.png", overrides={"title": "t" * 500})
        assert "<title>" + "t" * 120 + "</title>" in html


def test_media_classification():
    assert media_kind("A.JPEG") == "image"
    assert media_kind("x.m4v") == "video"
    assert media_kind("x.txt") == "other"
    assert media_kind("noext") == "other"
    assert mime_type("x.mov") == "video/quicktime"
    assert mime_type("x.bin") == "application/octet-stream"


def test_sanitize_embed_prefs():
    assert sanitize_embed_prefs({"title": 5, "desc": None, "color": "#GGG"}) == {
        "title": "5", "desc": "", "color": DEFAULT_EMBED_COLOR,
    }


class TestShouldServePreview:
    def test_crawler_without_accept(self):
        assert should_serve_preview({"User-Agent": DISCORD_UA}) is True

    def test_crawler_accepting_html(self):
        headers = {"User-Agent": "TelegramBot (like TwitterBot)", "Accept": "text/html,application/xhtml+xml"}
        assert should_serve_preview(headers) is True

    def test_crawler_asking_for_image(self):
        assert should_serve_preview({"User-Agent": DISCORD_UA, "Accept": "image/png"}) is False

    def test_browser_gets_bytes(self):
        assert should_serve_preview({"User-Agent": BROWSER_UA, "Accept": "text/html"}) is False

    def test_explicit_flag(self):
        assert should_serve_preview({"User-Agent": BROWSER_UA}, {"embed": "1"}) is True
        assert should_serve_preview({"User-Agent": BROWSER_UA}, {"preview": "true"}) is True
        assert should_serve_preview({"User-Agent": BROWSER_UA}, {"embed": "0"}) is False

    @pytest.mark.parametrize("query", [None, {"embed": "1"}])
    def test_range_request_is_never_html(self, query):
        headers = {"User-Agent": DISCORD_UA, "Range": "bytes=0-1023"}
        assert should_serve_preview(headers, query) is False


class TestEmbedPrefsStore:
    def test_missing_file_gives_defaults(self, tmp_path):
        store = EmbedPrefsStore(tmp_path / "nope.json")
        assert store.get() == {"title": "", "desc": "", "color": DEFAULT_EMBED_COLOR}

    def test_malformed_file_gives_defaults(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{not json", encoding="utf-8")
        assert EmbedPrefsStore(path).get()["color"] == DEFAULT_EMBED_COLOR

    def test_undecodable_file_gives_defaults(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_bytes(b"\xff\xfe{garbage")
        assert EmbedPrefsStore(path).get() == {"title": "", "desc": "", "color": DEFAULT_EMBED_COLOR}

    def test_update_persists_sanitized(self, tmp_path):
        path = tmp_path / "db" / "prefs.json"
        store = EmbedPrefsStore(path)
        store.update({"title": "Hi", "desc": "There", "color": "nope"})
        saved = json.loads(path.read_text(encoding="utf-8"))
        assert saved == {"title": "Hi", "desc": "There", "color": DEFAULT_EMBED_COLOR}
        assert EmbedPrefsStore(path).get()["title"] == "Hi"
