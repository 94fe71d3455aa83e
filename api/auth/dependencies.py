"""
Request dependencies: app-scoped resources and the current user.
"""

from __future__ import annotations

from fastapi import Depends, Header, Request

from core.config import Settings
from core.db import Database
from core.errors import UnauthorizedError

from . import security


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def _extract_bearer_token(authorization: str) -> str:
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2:
        raise UnauthorizedError()

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise UnauthorizedError()
    return token


def _user_id_from_header(authorization: str, settings: Settings) -> int:
    token = _extract_bearer_token(authorization)
    try:
        return security.user_id_from_token(token, settings=settings)
    except security.TokenError as exc:
        raise UnauthorizedError() from exc


async def get_current_user_id(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> int:
    if not (authorization or "").strip():
        raise UnauthorizedError()
    return _user_id_from_header(authorization, settings)


async def get_optional_current_user_id(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> int | None:
    # Anonymous viewers are fine; a header that is present must still be valid.
    if not (authorization or "").strip():
        return None
    return _user_id_from_header(authorization, settings)
