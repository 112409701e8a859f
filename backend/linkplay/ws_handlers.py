"""
Обработка сообщений WebSocket: auth, queue, leave, move, state.
При матче и после хода состояние рассылается обоим игрокам.
"""
import json
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from .auth import verify_token
from .game import Game, Player
from .schemas import parse_cell
from .state import AppState

logger = logging.getLogger(__name__)


def game_state_payload(state: AppState, user_id: str, game: Game | None = None) -> dict:
    """Собрать payload game_state для отправки клиенту."""
    current = state.games.get_player_state(user_id)
    shown = current.game or game
    return {
        "type": "game_state",
        "queue": current.queued,
        "game": shown.view_for(user_id) if shown else None,
    }


async def _broadcast_game(state: AppState, game: Game) -> None:
    for uid in game.user_ids:
        await state.ws.send_to_user(uid, game_state_payload(state, uid, game))


async def handle_ws_message(state: AppState, raw: str, user_id: str) -> bool:
    """
    Обрабатывает одно сообщение от уже авторизованного клиента.
    Возвращает False если соединение нужно закрыть.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("WS: invalid JSON from %s: %s", user_id, e)
        return True
    if not isinstance(data, dict):
        return True
    t = data.get("type")
    logger.info("WS: msg from %s type=%s", user_id, t)
    if t == "queue":
        conn = state.ws.get(user_id)
        username = conn.username if conn else ""
        result = state.games.queue_for_match(Player(user_id, username))
        if result.status == "matched" and result.game:
            await _broadcast_game(state, result.game)
        else:
            await state.ws.send_to_user(user_id, game_state_payload(state, user_id))
        return True
    if t == "leave":
        outcome = state.games.leave_queue_or_game(user_id)
        if outcome.game:
            await _broadcast_game(state, outcome.game)
        else:
            await state.ws.send_to_user(user_id, game_state_payload(state, user_id))
        return True
    if t == "move":
        result = state.games.submit_move(user_id, parse_cell(data.get("cell")))
        if result.error:
            await state.ws.send_to_user(user_id, {
                "type": "error",
                "code": result.error.code,
                "error": result.error.detail,
            })
        elif result.game:
            await _broadcast_game(state, result.game)
        return True
    if t == "state":
        await state.ws.send_to_user(user_id, game_state_payload(state, user_id))
        return True
    return True


async def ws_auth_and_loop(ws: WebSocket, state: AppState) -> None:
    """
    Первое сообщение — auth с токеном. Дальше цикл приёма сообщений.
    """
    user_id = None
    try:
        await ws.accept()
        logger.info("WS: accepted, waiting for auth")
        raw = await ws.receive_text()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = {}
        msg_type = data.get("type") if isinstance(data, dict) else None
        if msg_type != "auth":
            logger.warning("WS: expected auth, got %s, closing 4001", msg_type)
            await ws.close(code=4001)
            return
        user = verify_token(str(data.get("token") or ""))
        if not user:
            logger.warning("WS: auth failed (invalid token)")
            await ws.close(code=4003)
            return
        user_id = user["id"]
        await state.ws.connect(ws, user_id, user["username"])
        logger.info("WS: auth ok user_id=%s username=%s", user_id, user["username"])
        await state.ws.send_to_user(user_id, game_state_payload(state, user_id))
        while True:
            msg = await ws.receive_text()
            if not await handle_ws_message(state, msg, user_id):
                break
    except WebSocketDisconnect as e:
        logger.info("WS: client disconnected code=%s reason=%s user_id=%s", e.code, e.reason or "", user_id)
    except Exception as e:
        logger.exception("WS: error user_id=%s: %s", user_id, e)
    finally:
        if user_id:
            current = state.ws.get(user_id)
            # Ожидание в очереди без соединения бессмысленно; партию не сдаём.
            # Если пользователь уже переподключился, очередь принадлежит новому сокету
            if current is None or current.ws is ws:
                state.games.leave_queue_only(user_id)
            state.ws.disconnect(user_id, ws)
            logger.info("WS: disconnected user_id=%s", user_id)
