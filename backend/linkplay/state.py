"""
Всё изменяемое состояние процесса в одном объекте.
Передаётся в обработчики через Depends(get_state), без глобальных синглтонов.
"""
from pathlib import Path

from fastapi import Request

from .config import get_config
from .embed import EmbedPrefsStore
from .media import MediaStore
from .notifications import NotificationInbox
from .pairing import GameDirectory
from .rotation import RotationClock, RotationRegistry
from .ws_manager import WSManager


class AppState:
    def __init__(
        self,
        config=None,
        clock: RotationClock | None = None,
        media: MediaStore | None = None,
        embed_prefs: EmbedPrefsStore | None = None,
    ):
        self.config = config or get_config()
        self.clock = clock or RotationClock(self.config.rotation_interval_seconds)
        self.registry = RotationRegistry(self.clock)
        self.media = media or MediaStore(
            Path(self.config.media_root) / "shared",
            self.config.media_users_dir,
        )
        self.embed_prefs = embed_prefs or EmbedPrefsStore(self.config.embed_prefs_file)
        self.inbox = NotificationInbox()
        self.ws = WSManager()
        self.games = GameDirectory(notify=self.notify)

    def notify(self, user_id: str, message: str) -> None:
        notification = self.inbox.add(user_id, message, type="game")
        if notification:
            self.ws.push(user_id, {"type": "notification", "notification": notification.to_dict()})


def get_state(request: Request) -> AppState:
    return request.app.state.core
