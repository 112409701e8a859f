"""Конфигурация приложения."""
import os
from functools import lru_cache


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


@lru_cache
def get_config():
    media_root = os.environ.get("MEDIA_ROOT", "./media")
    return type("Config", (), {
        "debug": _env_flag("DEBUG"),
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
        "auth_secret": os.environ.get("AUTH_SECRET", ""),
        "public_url": os.environ.get("PUBLIC_URL", "").rstrip("/"),
        "media_root": media_root,
        "media_users_dir": os.environ.get("MEDIA_USERS_DIR", os.path.join(media_root, "users")),
        "embed_prefs_file": os.environ.get("EMBED_PREFS_FILE", "./db/embed-prefs.json"),
        # Длина эпохи ротации коротких ссылок, в секундах
        "rotation_interval_seconds": int(os.environ.get("ROTATION_INTERVAL_SECONDS", "600")),
        "owner_username": os.environ.get("OWNER_USERNAME", "dot").lower(),
    })()
