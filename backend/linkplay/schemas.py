"""Тела запросов."""
from typing import Any

from pydantic import BaseModel


class MoveRequest(BaseModel):
    # Любое значение; нецелое отклоняется игрой как InvalidCell, а не 422
    cell: Any = None


class EmbedPrefsRequest(BaseModel):
    # Длины и цвет приводятся в embed.sanitize_embed_prefs
    title: str = ""
    desc: str = ""
    color: str = ""


def parse_cell(value) -> int | None:
    """'4' -> 4; всё нецелое -> None (ход отклонится как InvalidCell)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None
