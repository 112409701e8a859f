"""Константы: типы медиа, превью, крестики-нолики."""
from typing import TypedDict


class MediaType(TypedDict):
    ext: str
    mime: str
    kind: str  # "image" | "video"


MEDIA_TYPES: list[MediaType] = [
    {"ext": ".png", "mime": "image/png", "kind": "image"},
    {"ext": ".jpg", "mime": "image/jpeg", "kind": "image"},
    {"ext": ".jpeg", "mime": "image/jpeg", "kind": "image"},
    {"ext": ".gif", "mime": "image/gif", "kind": "image"},
    {"ext": ".webp", "mime": "image/webp", "kind": "image"},
    {"ext": ".avif", "mime": "image/avif", "kind": "image"},
    {"ext": ".svg", "mime": "image/svg+xml", "kind": "image"},
    {"ext": ".mp4", "mime": "video/mp4", "kind": "video"},
    {"ext": ".webm", "mime": "video/webm", "kind": "video"},
    {"ext": ".ogg", "mime": "video/ogg", "kind": "video"},
    {"ext": ".mov", "mime": "video/quicktime", "kind": "video"},
    {"ext": ".m4v", "mime": "video/x-m4v", "kind": "video"},
]

MEDIA_TYPES_BY_EXT = {mt["ext"]: mt for mt in MEDIA_TYPES}
DEFAULT_MIME = "application/octet-stream"

# Превью для ботов соцсетей
DEFAULT_EMBED_COLOR = "#151521"
DEFAULT_EMBED_DESCRIPTION = "Embedded media"
EMBED_TITLE_MAX = 120
EMBED_DESC_MAX = 500
EMBED_VIDEO_WIDTH = 720
EMBED_VIDEO_HEIGHT = 1280

CRAWLER_MARKERS = (
    "discordbot",
    "twitterbot",
    "facebookexternalhit",
    "slackbot",
    "telegrambot",
    "whatsapp",
    "linkedinbot",
    "embedly",
    "redditbot",
    "skypeuripreview",
    "googlebot",
)

# Ротация ссылок
TOKEN_LENGTH = 5
TOKEN_PATTERN = r"^[A-Za-z0-9]{3,5}$"
MAX_TOKEN_ATTEMPTS = 20

# Крестики-нолики
BOARD_SIZE = 9
WIN_PATTERNS: list[tuple[int, int, int]] = [
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
]

MAX_NOTIFICATIONS_PER_USER = 50
