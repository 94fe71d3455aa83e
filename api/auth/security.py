"""
Auth security helpers: password hashing and access tokens.
"""

from __future__ import annotations

import time
from typing import Any

import bcrypt
import jwt

from core.config import Settings


class TokenError(RuntimeError):
    pass


def now_epoch_s() -> int:
    return int(time.time())


def hash_password(plain_password: str) -> str:
    password = (plain_password or "").encode("utf-8")
    if not password:
        raise ValueError("Password is empty.")
    return bcrypt.hashpw(password, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """
    Any failure to verify (empty input, malformed hash) counts as a mismatch.
    """
    password = (plain_password or "").encode("utf-8")
    hashed = (password_hash or "").encode("utf-8")
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


def create_token(*, user_id: int, settings: Settings) -> str:
    issued_at = now_epoch_s()
    payload = {
        "sub": str(user_id),
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + settings.ACCESS_TOKEN_EXPIRE_MIN * 60,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_token(token: str, *, settings: Settings) -> dict[str, Any]:
    raw = (token or "").strip()
    if not raw:
        raise TokenError("Access token is empty.")

    try:
        payload = jwt.decode(raw, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid access token.") from exc

    token_type = str(payload.get("type") or "").strip().lower()
    if token_type != "access":
        raise TokenError("Token is not an access token.")

    return payload


def user_id_from_token(token: str, *, settings: Settings) -> int:
    payload = decode_token(token, settings=settings)
    subject = str(payload.get("sub") or "").strip()
    if not subject.isdigit():
        raise TokenError("Invalid access token subject.")
    return int(subject)
