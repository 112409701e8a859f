"""
Партия в крестики-нолики: состояние и переходы active -> finished.
Ошибки хода — исключения из errors.py; состояние при ошибке не меняется.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .constants import BOARD_SIZE, WIN_PATTERNS
from .errors import CellTaken, InvalidCell, InvalidPlayer, NoActiveGame, NotYourTurn


class GameStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Player:
    user_id: str
    display_name: str = ""

    def __post_init__(self):
        self.user_id = str(self.user_id)
        if not self.display_name:
            self.display_name = f"user_{self.user_id[:8]}"


def other_symbol(symbol: str) -> str:
    return "O" if symbol == "X" else "X"


def check_winner(board: list[str]) -> str | None:
    for a, b, c in WIN_PATTERNS:
        if board[a] and board[a] == board[b] == board[c]:
            return board[a]
    return None


@dataclass
class Game:
    players: dict[str, Player]  # {"X": ждавший в очереди, "O": подошедший}
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    board: list[str] = field(default_factory=lambda: [""] * BOARD_SIZE)
    next: str = "X"
    status: GameStatus = GameStatus.ACTIVE
    winner_symbol: str | None = None
    draw: bool = False
    forfeit: bool = False
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)
    finished_at: str | None = None

    @classmethod
    def create(cls, waiting: Player, joining: Player) -> "Game":
        return cls(players={"X": waiting, "O": joining})

    @property
    def is_active(self) -> bool:
        return self.status == GameStatus.ACTIVE

    @property
    def user_ids(self) -> list[str]:
        return [self.players["X"].user_id, self.players["O"].user_id]

    def symbol_for(self, user_id: str) -> str | None:
        for symbol, player in self.players.items():
            if player.user_id == user_id:
                return symbol
        return None

    def opponent_of(self, user_id: str) -> Player | None:
        symbol = self.symbol_for(user_id)
        if symbol is None:
            return None
        return self.players[other_symbol(symbol)]

    def apply_move(self, user_id: str, cell) -> None:
        if not self.is_active:
            raise NoActiveGame()
        if isinstance(cell, bool) or not isinstance(cell, int) or not 0 <= cell < BOARD_SIZE:
            raise InvalidCell()
        symbol = self.symbol_for(user_id)
        if symbol is None:
            raise InvalidPlayer()
        if self.board[cell]:
            raise CellTaken()
        if self.next != symbol:
            raise NotYourTurn()

        self.board[cell] = symbol
        self.updated_at = _now_iso()
        winner = check_winner(self.board)
        if winner:
            self._finish(winner=winner)
        elif all(self.board):
            self._finish(winner=None, draw=True)
        else:
            self.next = other_symbol(symbol)

    def resign(self, user_id: str) -> None:
        """Сдача: победа остающемуся игроку."""
        if not self.is_active:
            raise NoActiveGame()
        symbol = self.symbol_for(user_id)
        if symbol is None:
            raise InvalidPlayer()
        self._finish(winner=other_symbol(symbol), forfeit=True)

    def _finish(self, winner: str | None, draw: bool = False, forfeit: bool = False) -> None:
        self.status = GameStatus.FINISHED
        self.winner_symbol = winner
        self.draw = draw
        self.forfeit = forfeit
        self.finished_at = self.updated_at = _now_iso()

    def view_for(self, user_id: str) -> dict:
        """Состояние партии с точки зрения игрока (для ответа клиенту)."""
        your_symbol = self.symbol_for(user_id) or "O"
        opponent = self.players[other_symbol(your_symbol)]
        if self.is_active:
            message = "Your move!" if self.next == your_symbol else f"{opponent.display_name}'s move"
        elif self.draw:
            message = "Game ended in a draw."
        elif self.winner_symbol == your_symbol:
            message = f"{opponent.display_name} forfeited. You win!" if self.forfeit else "You win!"
        else:
            message = "You forfeited the match." if self.forfeit else f"{opponent.display_name} wins."
        return {
            "id": self.id,
            "board": list(self.board),
            "status": self.status.value,
            "yourSymbol": your_symbol,
            "turn": self.next if self.is_active else None,
            "opponent": {"username": opponent.display_name},
            "winnerSymbol": self.winner_symbol,
            "draw": self.draw,
            "forfeit": self.forfeit,
            "message": message,
        }
