"""
Tests for signed user tokens.
"""

from linkplay.auth import issue_token, verify_token


def test_roundtrip(env):
    token = issue_token("42", "alice")
    assert verify_token(token) == {"id": "42", "username": "alice"}


def test_tampered_signature(env):
    token = issue_token("42", "alice")
    assert verify_token(token[:-1] + ("0" if token[-1] != "0" else "1")) is None


def test_wrong_secret(env):
    assert verify_token(issue_token("42", "alice", secret="other")) is None


def test_garbage(env):
    assert verify_token("") is None
    assert verify_token("no-dot") is None
    assert verify_token("!!!.abc") is None


def test_no_secret_without_debug_rejects(env, monkeypatch):
    from linkplay.config import get_config

    monkeypatch.setenv("AUTH_SECRET", "")
    get_config.cache_clear()
    assert verify_token('{"id": "1"}') is None


def test_no_secret_in_debug_accepts_json(env, monkeypatch):
    from linkplay.config import get_config

    monkeypatch.setenv("AUTH_SECRET", "")
    monkeypatch.setenv("DEBUG", "1")
    get_config.cache_clear()
    assert verify_token('{"id": 7, "username": "dev"}') == {"id": "7", "username": "dev"}
