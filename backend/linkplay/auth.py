"""
Идентификация пользователя по подписанному токену.

Формат: base64url(JSON {"id", "username"}) + "." + hex(HMAC-SHA256(secret, payload)).
Выдача токенов (логин, пароли) — во внешнем сервисе, здесь только проверка.
"""
import base64
import hashlib
import hmac
import json

from fastapi import Header, HTTPException

from .config import get_config


def _sign(payload_b64: str, secret: str) -> str:
    return hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).hexdigest()


def issue_token(user_id: str, username: str, secret: str | None = None) -> str:
    secret = secret if secret is not None else get_config().auth_secret
    body = json.dumps({"id": str(user_id), "username": username}, separators=(",", ":"))
    payload_b64 = base64.urlsafe_b64encode(body.encode()).decode().rstrip("=")
    return f"{payload_b64}.{_sign(payload_b64, secret)}"


def verify_token(token: str, secret: str | None = None) -> dict | None:
    """
    Проверяет подпись и возвращает {"id", "username"} или None.
    """
    if not token:
        return None
    config = get_config()
    secret = secret if secret is not None else config.auth_secret
    if not secret:
        if config.debug:
            # В режиме отладки без секрета принимаем неподписанные данные
            return _parse_token_unsafe(token)
        return None

    payload_b64, _, signature = token.partition(".")
    if not payload_b64 or not signature:
        return None
    if not hmac.compare_digest(_sign(payload_b64, secret), signature):
        return None
    return _decode_payload(payload_b64)


def _parse_token_unsafe(token: str) -> dict | None:
    """Голый JSON или payload без проверки подписи (только для debug)."""
    if token.lstrip().startswith("{"):
        try:
            return _parse_user(json.loads(token))
        except json.JSONDecodeError:
            return None
    return _decode_payload(token.partition(".")[0])


def _decode_payload(payload_b64: str) -> dict | None:
    try:
        padded = payload_b64 + "=" * (-len(payload_b64) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode()))
    except (ValueError, json.JSONDecodeError):
        return None
    return _parse_user(data)


def _parse_user(data) -> dict | None:
    if not isinstance(data, dict) or not data.get("id"):
        return None
    return {"id": str(data["id"]), "username": str(data.get("username") or "")}


def current_user(
    authorization: str | None = Header(default=None),
    x_debug_user: str | None = Header(default=None),
) -> dict:
    """FastAPI dependency: пользователь из Authorization: Bearer <token>."""
    config = get_config()
    if config.debug and x_debug_user:
        uid, _, name = x_debug_user.partition(":")
        if uid:
            return {"id": uid, "username": name or f"dev{uid}"}
    token = ""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Access token required")
    user = verify_token(token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user
