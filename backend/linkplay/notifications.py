"""
Входящие уведомления пользователей (in-memory, последние 50 на пользователя).
"""
import threading
import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from .constants import MAX_NOTIFICATIONS_PER_USER


@dataclass
class Notification:
    message: str
    type: str = "info"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    read: bool = False
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["createdAt"] = data.pop("created_at")
        return data


class NotificationInbox:
    def __init__(self, max_per_user: int = MAX_NOTIFICATIONS_PER_USER):
        self._max = max_per_user
        self._store: dict[str, list[Notification]] = {}
        self._lock = threading.Lock()

    def add(self, user_id: str, message: str, type: str = "info", meta: dict | None = None) -> Notification | None:
        if not user_id:
            return None
        notification = Notification(message=message, type=type, meta=dict(meta or {}))
        with self._lock:
            items = self._store.setdefault(user_id, [])
            items.insert(0, notification)
            del items[self._max:]
        return notification

    def list(self, user_id: str) -> list[Notification]:
        with self._lock:
            return [replace(n, meta=dict(n.meta)) for n in self._store.get(user_id, [])]

    def mark_read(self, user_id: str, notification_id: str) -> Notification | None:
        with self._lock:
            for n in self._store.get(user_id, []):
                if n.id == notification_id:
                    n.read = True
                    return replace(n)
        return None

    def mark_all_read(self, user_id: str) -> None:
        with self._lock:
            for n in self._store.get(user_id, []):
                n.read = True
