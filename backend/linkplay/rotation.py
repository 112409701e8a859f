"""
Ротационные короткие ссылки на медиа (in-memory).

Токен живёт одну эпоху (по умолчанию 10 минут). В пределах эпохи выдача
идемпотентна: один и тот же файл получает один и тот же токен. Устаревшие
записи вычищаются лениво — полным проходом при каждом issue/resolve,
без фонового таймера.
"""
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .constants import MAX_TOKEN_ATTEMPTS
from .errors import InvalidBucket, TokenSpaceExhausted
from .slugs import generate_token

logger = logging.getLogger(__name__)

BUCKET_KINDS = ("shared", "private")


@dataclass(frozen=True)
class Bucket:
    kind: str  # "shared" | "private"
    owner_slug: str = ""
    directory: Path | None = None


@dataclass(frozen=True)
class RotationPayload:
    bucket_kind: str
    owner_slug: str
    file_name: str
    epoch: int

    @property
    def key(self) -> str:
        return payload_key(self.bucket_kind, self.owner_slug, self.file_name, self.epoch)


def payload_key(bucket_kind: str, owner_slug: str, file_name: str, epoch: int) -> str:
    return f"{bucket_kind}:{owner_slug}:{file_name}:{epoch}"


class RotationClock:
    """Эпоха = floor(now_ms / interval_ms). now подменяется в тестах."""

    def __init__(self, interval_seconds: int = 600, now: Callable[[], float] = time.time):
        if interval_seconds <= 0:
            raise ValueError("rotation interval must be positive")
        self.interval_ms = int(interval_seconds * 1000)
        self._now = now

    def current_epoch(self) -> int:
        return int(self._now() * 1000) // self.interval_ms


class TokenIndex:
    """
    Двунаправленный индекс token <-> payload key.

    Обе карты меняются только здесь, поэтому рассинхронизироваться не могут.
    Потокобезопасность — на стороне владельца (RotationRegistry).
    """

    def __init__(self):
        self._by_token: dict[str, RotationPayload] = {}
        self._by_key: dict[str, str] = {}
        # Токены, снятые последним prune: в новой эпохе их выдавать нельзя
        self._retired: set[str] = set()

    def insert(self, token: str, payload: RotationPayload) -> None:
        self._by_token[token] = payload
        self._by_key[payload.key] = token

    def lookup_by_token(self, token: str) -> RotationPayload | None:
        return self._by_token.get(token)

    def lookup_by_key(self, key: str) -> str | None:
        return self._by_key.get(key)

    def prune_epoch(self, current_epoch: int) -> int:
        """Удалить всё, что не относится к current_epoch. Возвращает число удалённых токенов."""
        stale = [t for t, p in self._by_token.items() if p.epoch != current_epoch]
        for token in stale:
            payload = self._by_token.pop(token)
            self._by_key.pop(payload.key, None)
        if stale:
            self._retired = set(stale)
        return len(stale)

    def is_retired(self, token: str) -> bool:
        return token in self._retired

    def __contains__(self, token: str) -> bool:
        return token in self._by_token

    def __len__(self) -> int:
        return len(self._by_token)


class RotationRegistry:
    def __init__(
        self,
        clock: RotationClock,
        codec: Callable[[], str] = generate_token,
        max_attempts: int = MAX_TOKEN_ATTEMPTS,
    ):
        self.clock = clock
        self._codec = codec
        self._max_attempts = max_attempts
        self._index = TokenIndex()
        self._lock = threading.Lock()

    def issue(self, bucket: Bucket, file_name: str) -> str:
        """
        Выдать токен для (bucket, file_name) в текущей эпохе.
        Повторный вызов в той же эпохе возвращает тот же токен.
        """
        _validate(bucket, file_name)
        with self._lock:
            epoch = self._prune_locked()
            owner = bucket.owner_slug if bucket.kind == "private" else ""
            key = payload_key(bucket.kind, owner, file_name, epoch)
            existing = self._index.lookup_by_key(key)
            if existing is not None:
                return existing
            token = self._next_free_token_locked()
            self._index.insert(token, RotationPayload(bucket.kind, owner, file_name, epoch))
        logger.info("Rotation: minted %s for %s (epoch=%s)", token, key, epoch)
        return token

    def resolve(self, token: str) -> RotationPayload | None:
        with self._lock:
            epoch = self._prune_locked()
            payload = self._index.lookup_by_token(token)
        if payload is None or payload.epoch != epoch:
            return None
        return payload

    def __len__(self) -> int:
        with self._lock:
            return len(self._index)

    def _prune_locked(self) -> int:
        epoch = self.clock.current_epoch()
        removed = self._index.prune_epoch(epoch)
        if removed:
            logger.debug("Rotation: pruned %d stale tokens (epoch=%s)", removed, epoch)
        return epoch

    def _next_free_token_locked(self) -> str:
        for attempt in range(1, self._max_attempts + 1):
            token = self._codec()
            if token not in self._index and not self._index.is_retired(token):
                return token
            logger.warning("Rotation: token collision on %s (attempt %d)", token, attempt)
        raise TokenSpaceExhausted(self._max_attempts)


def _validate(bucket: Bucket, file_name: str) -> None:
    if bucket.kind not in BUCKET_KINDS:
        raise InvalidBucket(f"Unknown bucket kind: {bucket.kind!r}")
    if bucket.kind == "private" and not bucket.owner_slug:
        raise InvalidBucket("Private bucket requires an owner slug")
    if not file_name or "/" in file_name or "\\" in file_name or file_name in (".", ".."):
        raise InvalidBucket(f"Invalid file name: {file_name!r}")


def issue_rotation_link(registry: RotationRegistry, bucket: Bucket, file_name: str) -> str:
    """Короткий путь вида /AbCdE."""
    return "/" + registry.issue(bucket, file_name)


def resolve_rotation_token(registry: RotationRegistry, token: str) -> RotationPayload | None:
    return registry.resolve(token)
