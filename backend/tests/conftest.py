"""
Pytest fixtures for linkplay tests.
"""

import pytest
from fastapi.testclient import TestClient

from linkplay.auth import issue_token
from linkplay.config import get_config
from linkplay.rotation import RotationClock, RotationRegistry

INTERVAL = 600
# Start of an epoch, so advancing by less than INTERVAL stays inside it
EPOCH_START = INTERVAL * 2_833_334


class FakeClock:
    def __init__(self, start: float = EPOCH_START):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rotation_clock(fake_clock) -> RotationClock:
    return RotationClock(INTERVAL, now=fake_clock)


@pytest.fixture
def registry(rotation_clock) -> RotationRegistry:
    return RotationRegistry(rotation_clock)


@pytest.fixture
def env(tmp_path, monkeypatch):
    """Config pointing at a temp media root with a known auth secret."""
    monkeypatch.setenv("AUTH_SECRET", "test-secret")
    monkeypatch.setenv("DEBUG", "0")
    monkeypatch.setenv("MEDIA_ROOT", str(tmp_path / "media"))
    monkeypatch.delenv("MEDIA_USERS_DIR", raising=False)
    monkeypatch.setenv("EMBED_PREFS_FILE", str(tmp_path / "db" / "embed-prefs.json"))
    monkeypatch.setenv("PUBLIC_URL", "https://links.example")
    monkeypatch.setenv("OWNER_USERNAME", "dot")
    get_config.cache_clear()
    yield get_config()
    get_config.cache_clear()


@pytest.fixture
def app_state(env, fake_clock):
    from linkplay.state import AppState

    state = AppState(config=env, clock=RotationClock(INTERVAL, now=fake_clock))
    state.media.ensure_dirs()
    return state


@pytest.fixture
def client(app_state):
    from linkplay.main import create_app

    with TestClient(create_app(app_state)) as c:
        yield c


def auth_headers(user_id: str, username: str) -> dict:
    return {"Authorization": f"Bearer {issue_token(user_id, username, secret='test-secret')}"}
