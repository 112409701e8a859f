"""
Менеджер WebSocket: подключения по user_id, доставка состояний игры и уведомлений.
"""
import asyncio
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, user_id: str, username: str):
        self.ws = ws
        self.user_id = user_id
        self.username = username


class WSManager:
    def __init__(self):
        self._by_user: dict[str, Connection] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        # Ссылки на задачи push, пока они не завершились
        self._pending: set[asyncio.Task] = set()

    async def connect(self, ws: WebSocket, user_id: str, username: str) -> None:
        self._loop = asyncio.get_running_loop()
        if user_id in self._by_user:
            old = self._by_user.pop(user_id)
            try:
                await old.ws.close(code=4000)
            except Exception:
                pass
        self._by_user[user_id] = Connection(ws, user_id, username)

    def disconnect(self, user_id: str, ws: WebSocket | None = None) -> None:
        conn = self._by_user.get(user_id)
        # Не выкидываем новое подключение, если закрывается старое
        if conn and (ws is None or conn.ws is ws):
            del self._by_user[user_id]

    def get(self, user_id: str) -> Connection | None:
        return self._by_user.get(user_id)

    async def send_to_user(self, user_id: str, payload: dict[str, Any]) -> bool:
        conn = self._by_user.get(user_id)
        if not conn:
            return False
        try:
            await conn.ws.send_json(payload)
            return True
        except Exception as e:
            logger.warning("send_to_user %s: %s", user_id, e)
            return False

    def push(self, user_id: str, payload: dict[str, Any]) -> None:
        """
        Fire-and-forget отправка из любого потока (в т.ч. из sync-обработчиков
        FastAPI, которые крутятся в threadpool).
        """
        loop = self._loop
        if loop is None or loop.is_closed() or user_id not in self._by_user:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            task = loop.create_task(self.send_to_user(user_id, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        else:
            asyncio.run_coroutine_threadsafe(self.send_to_user(user_id, payload), loop)
