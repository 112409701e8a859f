"""
HTML-превью для ботов соцсетей (Discord, Twitter, Telegram и т.д.).

render_embed_page — чистая функция: на вход URL файла, имя, переопределения
из query и дефолты оператора, на выход HTML с og:/twitter: метатегами
ровно одного класса (image | video | other).
"""
import json
import logging
import re
import threading
from html import escape
from pathlib import Path
from typing import Mapping

from .constants import (
    CRAWLER_MARKERS,
    DEFAULT_EMBED_COLOR,
    DEFAULT_EMBED_DESCRIPTION,
    DEFAULT_MIME,
    EMBED_DESC_MAX,
    EMBED_TITLE_MAX,
    EMBED_VIDEO_HEIGHT,
    EMBED_VIDEO_WIDTH,
    MEDIA_TYPES_BY_EXT,
)

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6})$", re.IGNORECASE)
_TRUTHY = ("1", "true", "yes")


def _extension(file_name: str) -> str:
    suffix = Path(file_name or "").suffix
    return suffix.lower()


def media_kind(file_name: str) -> str:
    mt = MEDIA_TYPES_BY_EXT.get(_extension(file_name))
    return mt["kind"] if mt else "other"


def mime_type(file_name: str) -> str:
    mt = MEDIA_TYPES_BY_EXT.get(_extension(file_name))
    return mt["mime"] if mt else DEFAULT_MIME


def is_valid_hex_color(value) -> bool:
    return isinstance(value, str) and bool(_HEX_COLOR.match(value))


def sanitize_embed_prefs(data: Mapping | None) -> dict:
    data = data or {}
    title = data.get("title") or ""
    desc = data.get("desc") or ""
    color = data.get("color")
    return {
        "title": str(title)[:EMBED_TITLE_MAX],
        "desc": str(desc)[:EMBED_DESC_MAX],
        "color": color if is_valid_hex_color(color) else DEFAULT_EMBED_COLOR,
    }


def _first_text(*values) -> str:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value
    return ""


def render_embed_page(
    file_url: str,
    file_name: str,
    overrides: Mapping | None = None,
    defaults: Mapping | None = None,
    public_url: str = "",
) -> str:
    overrides = overrides or {}
    defaults = defaults or {}
    merged = sanitize_embed_prefs({
        "title": _first_text(overrides.get("title"), defaults.get("title"), file_name),
        "desc": _first_text(overrides.get("desc"), defaults.get("desc"), DEFAULT_EMBED_DESCRIPTION),
        "color": overrides.get("color") if is_valid_hex_color(overrides.get("color")) else defaults.get("color"),
    })
    title = escape(merged["title"] or file_name or "Media")
    description = escape(merged["desc"] or DEFAULT_EMBED_DESCRIPTION)
    color = escape(merged["color"])
    absolute = file_url if file_url.startswith("http") else f"{public_url or ''}{file_url}"
    url = escape(absolute, quote=True)
    mime = escape(mime_type(file_name))
    kind = media_kind(file_name)

    meta = [
        '<meta charset="UTF-8">',
        f"<title>{title}</title>",
        f'<meta name="theme-color" content="{color}">',
        f'<meta property="og:title" content="{title}">',
        f'<meta property="og:description" content="{description}">',
    ]
    if kind == "image":
        meta += [
            '<meta property="og:type" content="image">',
            f'<meta property="og:image" content="{url}">',
            f'<meta property="og:image:secure_url" content="{url}">',
            f'<meta property="og:image:type" content="{mime}">',
            f'<meta property="og:image:alt" content="{title}">',
            '<meta name="twitter:card" content="summary_large_image">',
            f'<meta name="twitter:title" content="{title}">',
            f'<meta name="twitter:description" content="{description}">',
            f'<meta name="twitter:image" content="{url}">',
        ]
        element = (
            f'<img src="{url}" alt="{title}" '
            'style="max-width:90vw;max-height:90vh;border-radius:12px;object-fit:contain;"/>'
        )
    elif kind == "video":
        meta += [
            '<meta property="og:type" content="video.other">',
            f'<meta property="og:video" content="{url}">',
            f'<meta property="og:video:url" content="{url}">',
            f'<meta property="og:video:secure_url" content="{url}">',
            f'<meta property="og:video:type" content="{mime}">',
            f'<meta property="og:video:width" content="{EMBED_VIDEO_WIDTH}">',
            f'<meta property="og:video:height" content="{EMBED_VIDEO_HEIGHT}">',
            '<meta name="twitter:card" content="player">',
            f'<meta name="twitter:title" content="{title}">',
            f'<meta name="twitter:description" content="{description}">',
            f'<meta name="twitter:player" content="{url}">',
            f'<meta name="twitter:player:width" content="{EMBED_VIDEO_WIDTH}">',
            f'<meta name="twitter:player:height" content="{EMBED_VIDEO_HEIGHT}">',
        ]
        element = (
            f'<video src="{url}" controls autoplay loop playsinline '
            'style="max-width:90vw;max-height:90vh;border-radius:12px;"></video>'
        )
    else:
        meta += [
            '<meta property="og:type" content="website">',
            f'<meta property="og:url" content="{url}">',
            f'<meta property="og:image" content="{url}">',
            '<meta name="twitter:card" content="summary">',
            f'<meta name="twitter:title" content="{title}">',
            f'<meta name="twitter:description" content="{description}">',
        ]
        element = f'<a href="{url}">{url}</a>'

    head = "\n    ".join(meta)
    return f"""<!DOCTYPE html>
<html lang="en">
  <head>
    {head}
    <style>body{{margin:0;background:#050517;display:flex;align-items:center;justify-content:center;height:100vh;color:#fff;font-family:Arial,sans-serif;}}a{{color:#7ab9ff;word-break:break-all;}}</style>
  </head>
  <body>
    {element}
  </body>
</html>"""


def should_serve_preview(headers: Mapping, query: Mapping | None = None) -> bool:
    """
    HTML или сырые байты.

    Range-запрос — всегда байты, иначе ломается стриминг видео.
    Явный флаг embed/preview в query — всегда HTML.
    Иначе HTML только краулеру, который принимает text/html или не
    указал Accept вовсе.
    """
    headers = {k.lower(): v for k, v in headers.items()}
    if headers.get("range"):
        return False
    query = query or {}
    for flag in ("embed", "preview"):
        if str(query.get(flag, "")).lower() in _TRUTHY:
            return True
    user_agent = headers.get("user-agent", "").lower()
    if not any(marker in user_agent for marker in CRAWLER_MARKERS):
        return False
    accept = headers.get("accept", "").strip().lower()
    return not accept or accept == "*/*" or "text/html" in accept


class EmbedPrefsStore:
    """Дефолты превью, заданные владельцем. Хранятся в JSON-файле."""

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path else None
        self._lock = threading.Lock()
        self._prefs = self._load()

    def get(self) -> dict:
        with self._lock:
            return dict(self._prefs)

    def update(self, data: Mapping) -> dict:
        prefs = sanitize_embed_prefs(data)
        with self._lock:
            self._prefs = prefs
        self._save(prefs)
        return dict(prefs)

    def _load(self) -> dict:
        if not self._path:
            return sanitize_embed_prefs({})
        try:
            return sanitize_embed_prefs(json.loads(self._path.read_text(encoding="utf-8")))
        except (OSError, ValueError, AttributeError):
            return sanitize_embed_prefs({})

    def _save(self, prefs: dict) -> None:
        if not self._path:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(prefs, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Embed prefs: failed to persist to %s: %s", self._path, e)
