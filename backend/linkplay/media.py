"""
Бакеты медиа на диске: общий (shared) и личные (users/<slug>).
Авторизация и раскладка файлов — здесь, ядро ротации о них не знает.
"""
import os
from pathlib import Path
from urllib.parse import quote

from .rotation import Bucket, RotationPayload
from .slugs import slugify_media


class MediaStore:
    def __init__(self, shared_dir: str | Path, users_dir: str | Path):
        self.shared_dir = Path(shared_dir)
        self.users_dir = Path(users_dir)

    def ensure_dirs(self) -> None:
        self.shared_dir.mkdir(parents=True, exist_ok=True)
        self.users_dir.mkdir(parents=True, exist_ok=True)

    def shared_bucket(self) -> Bucket:
        return Bucket(kind="shared", directory=self.shared_dir)

    def user_bucket(self, owner_slug: str) -> Bucket:
        slug = slugify_media(owner_slug)
        return Bucket(kind="private", owner_slug=slug, directory=self.users_dir / slug)

    def resolve_bucket(self, bucket_id: str, username: str) -> Bucket:
        """shared | private | <slug> | user-<slug> (только свой). Иначе LookupError."""
        normalized = (bucket_id or "").strip().lower()
        if normalized == "shared":
            return self.shared_bucket()
        user_slug = slugify_media(username)
        if normalized in ("private", user_slug, f"user-{user_slug}"):
            return self.user_bucket(user_slug)
        raise LookupError(f"Bucket {bucket_id} not found")

    def bucket_for_payload(self, payload: RotationPayload) -> Bucket:
        if payload.bucket_kind == "private":
            return self.user_bucket(payload.owner_slug)
        return self.shared_bucket()

    def file_path(self, bucket: Bucket, file_name: str) -> Path:
        return bucket.directory / os.path.basename(file_name)

    def file_is_readable(self, bucket: Bucket, file_name: str) -> bool:
        path = self.file_path(bucket, file_name)
        return path.is_file() and os.access(path, os.R_OK)

    def file_url(self, bucket: Bucket, file_name: str) -> str:
        """Стабильный (не ротационный) URL файла."""
        name = quote(os.path.basename(file_name))
        if bucket.kind == "private":
            return f"/media/users/{quote(bucket.owner_slug)}/{name}"
        return f"/media/shared/{name}"
