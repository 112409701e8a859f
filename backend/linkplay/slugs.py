"""
Короткие токены для ротационных ссылок и нормализация слагов владельцев.
"""
import random
import re
import string

from .constants import TOKEN_LENGTH

# Заглавные встречаются вдвое чаще строчных
_FILL_ALPHABET = string.ascii_uppercase * 2 + string.ascii_lowercase
_SLUG_JUNK = re.compile(r"[^a-z0-9]+")


def generate_token(length: int = TOKEN_LENGTH, rng: random.Random | None = None) -> str:
    """
    Случайный токен из латинских букв.

    Гарантирует хотя бы одну строчную букву и, если длина >= 2, хотя бы одну
    заглавную: под них резервируются позиции, остальное добирается из
    алфавита со смещением в сторону заглавных, затем всё перемешивается.
    Уникальность не проверяется — это забота реестра.
    """
    if length < 1:
        raise ValueError(f"token length must be positive, got {length}")
    rng = rng or random
    chars = [rng.choice(string.ascii_lowercase)]
    if length >= 2:
        chars.append(rng.choice(string.ascii_uppercase))
    chars.extend(rng.choice(_FILL_ALPHABET) for _ in range(length - len(chars)))
    rng.shuffle(chars)
    return "".join(chars)


def slugify_media(value) -> str:
    """Имя пользователя -> слаг каталога: foo_Bar!1 -> foo-bar-1."""
    slug = _SLUG_JUNK.sub("-", str(value or "").lower()).strip("-")
    return slug or "media"
