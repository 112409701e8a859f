"""
Исключения ядра.

Ротация: InvalidBucket, TokenSpaceExhausted.
Игра: NoActiveGame, InvalidCell, CellTaken, NotYourTurn, InvalidPlayer —
не фатальные, GameDirectory превращает их в структурированный ответ.
"""


class LinkplayError(Exception):
    """Базовый класс ошибок ядра."""
    pass


# ============ Ротация ссылок ============

class InvalidBucket(LinkplayError):
    """Некорректный бакет или имя файла."""
    pass


class TokenSpaceExhausted(LinkplayError):
    """Не удалось подобрать свободный токен за разумное число попыток."""
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No free rotation token after {attempts} attempts")


# ============ Игра ============

class GameError(LinkplayError):
    code = "game_error"
    message = "Game error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


class NoActiveGame(GameError):
    code = "no_active_game"
    message = "No active game"


class InvalidCell(GameError):
    code = "invalid_cell"
    message = "Invalid cell"


class CellTaken(GameError):
    code = "cell_taken"
    message = "Cell taken"


class NotYourTurn(GameError):
    code = "not_your_turn"
    message = "Not your turn"


class InvalidPlayer(GameError):
    code = "invalid_player"
    message = "Invalid player"
