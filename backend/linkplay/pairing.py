"""
Очередь пейринга и каталог партий (in-memory).

GameDirectory — единственная точка входа для обработчиков запросов:
очередь, ходы, выход/сдача, состояние игрока. Каждая составная операция
выполняется под одним замком; уведомления отправляются после его снятия.
"""
import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable

from .errors import GameError, InvalidCell, NoActiveGame
from .game import Game, Player

logger = logging.getLogger(__name__)

Notify = Callable[[str, str], None]


@dataclass
class QueueResult:
    status: str  # "waiting" | "matched" | "in_game"
    game: Game | None = None


@dataclass
class LeaveResult:
    resigned: bool = False
    queue_left: bool = False
    game: Game | None = None


@dataclass
class MoveResult:
    game: Game | None = None
    error: GameError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PlayerState:
    queued: bool
    game: Game | None = None


class MatchQueue:
    """FIFO ожидающих. Сам не создаёт партий — только говорит, с кем пара."""

    def __init__(self):
        self._waiting: deque[Player] = deque()

    def enqueue(self, player: Player) -> Player | None:
        """
        Вернуть ждущего соперника (он снимается с головы очереди) или None,
        если очередь пуста и игрок встал в неё. Повторный вход не дублирует.
        """
        if self.contains(player.user_id):
            return None
        if self._waiting:
            return self._waiting.popleft()
        self._waiting.append(player)
        return None

    def leave(self, user_id: str) -> bool:
        """Убрать из очереди. Возвращает True если был в очереди."""
        for p in self._waiting:
            if p.user_id == user_id:
                self._waiting.remove(p)
                return True
        return False

    def contains(self, user_id: str) -> bool:
        return any(p.user_id == user_id for p in self._waiting)

    def __len__(self) -> int:
        return len(self._waiting)


class GameDirectory:
    def __init__(self, notify: Notify | None = None):
        self._queue = MatchQueue()
        self._by_user: dict[str, Game] = {}
        self._lock = threading.RLock()
        self._notify = notify

    @property
    def queue_size(self) -> int:
        with self._lock:
            return len(self._queue)

    def queue_for_match(self, player: Player) -> QueueResult:
        with self._lock:
            existing = self._by_user.get(player.user_id)
            if existing:
                return QueueResult("in_game", existing)
            was_queued = self._queue.contains(player.user_id)
            opponent = self._queue.enqueue(player)
            if opponent is None:
                if not was_queued:
                    logger.info("Match: %s waiting (queue=%d)", player.user_id, len(self._queue))
                return QueueResult("waiting")
            game = Game.create(opponent, player)
            for uid in game.user_ids:
                self._by_user[uid] = game
        logger.info("Match: game %s X=%s O=%s", game.id, opponent.user_id, player.user_id)
        self._notify_match_start(game)
        return QueueResult("matched", game)

    def leave_queue_or_game(self, user_id: str) -> LeaveResult:
        with self._lock:
            game = self._by_user.get(user_id)
            if game:
                game.resign(user_id)
                self._release(game)
            else:
                return LeaveResult(queue_left=self._queue.leave(user_id))
        logger.info("Match: %s forfeited game %s", user_id, game.id)
        self._notify_finish(game)
        return LeaveResult(resigned=True, game=game)

    def leave_queue_only(self, user_id: str) -> bool:
        """Убрать из очереди, не трогая активную партию."""
        with self._lock:
            return self._queue.leave(user_id)

    def submit_move(self, user_id: str, cell) -> MoveResult:
        with self._lock:
            game = self._by_user.get(user_id)
            try:
                if game is None:
                    raise NoActiveGame()
                if not isinstance(cell, int):
                    raise InvalidCell()
                game.apply_move(user_id, cell)
            except GameError as e:
                return MoveResult(game=game, error=e)
            finished = not game.is_active
            if finished:
                self._release(game)
        if finished:
            logger.info(
                "Match: game %s finished winner=%s draw=%s",
                game.id, game.winner_symbol, game.draw,
            )
            self._notify_finish(game)
        return MoveResult(game=game)

    def get_player_state(self, user_id: str) -> PlayerState:
        with self._lock:
            return PlayerState(
                queued=self._queue.contains(user_id),
                game=self._by_user.get(user_id),
            )

    def _release(self, game: Game) -> None:
        # Завершённая партия больше нигде не хранится — её финальное
        # состояние уходит только в ответе и уведомлениях.
        for uid in game.user_ids:
            if self._by_user.get(uid) is game:
                del self._by_user[uid]

    def _send(self, user_id: str, message: str) -> None:
        if not self._notify:
            return
        try:
            self._notify(user_id, message)
        except Exception as e:
            logger.warning("notify %s failed: %s", user_id, e)

    def _notify_match_start(self, game: Game) -> None:
        x, o = game.players["X"], game.players["O"]
        self._send(x.user_id, f"Matched with {o.display_name}. You are X.")
        self._send(o.user_id, f"Matched with {x.display_name}. You are O.")

    def _notify_finish(self, game: Game) -> None:
        if game.draw:
            for uid in game.user_ids:
                self._send(uid, "Tic Tac Toe match ended in a draw.")
            return
        if not game.winner_symbol:
            return
        winner = game.players[game.winner_symbol]
        loser = game.players["O" if game.winner_symbol == "X" else "X"]
        if game.forfeit:
            self._send(winner.user_id, "Opponent forfeited. Victory is yours!")
            self._send(loser.user_id, "You forfeited the Tic Tac Toe match.")
        else:
            self._send(winner.user_id, "You won the Tic Tac Toe match!")
            self._send(loser.user_id, f"{winner.display_name} won the match.")
