"""
User business logic: registration, login, follows.
"""

from __future__ import annotations

import logging

import asyncpg

from auth import security
from core.config import Settings
from core.db import Database
from core.errors import ApiError, NotFoundError, UnauthorizedError

from . import repository, schemas

logger = logging.getLogger(__name__)

_UNIQUE_MESSAGES = {
    "user_username_key": "Username is already taken",
    "user_email_key": "Email is already taken",
}

INVALID_CREDENTIALS = "Email or password is invalid"


def _to_auth_response(user_row: dict, *, settings: Settings) -> schemas.AuthResponse:
    user_id = int(user_row["id"])
    return schemas.AuthResponse(
        user=schemas.UserResponse(
            id=user_id,
            username=str(user_row["username"]),
            email=str(user_row["email"]),
        ),
        token=security.create_token(user_id=user_id, settings=settings),
    )


async def register(
    payload: schemas.RegisterRequest,
    *,
    database: Database,
    settings: Settings,
) -> schemas.AuthResponse:
    # Uniqueness is left to the database constraints; no pre-check race.
    password_hash = security.hash_password(payload.password)
    try:
        async with database.transaction() as conn:
            user_row = await repository.create_user(
                conn,
                username=payload.username,
                email=payload.email,
                password_hash=password_hash,
            )
    except asyncpg.UniqueViolationError as exc:
        message = _UNIQUE_MESSAGES.get(exc.constraint_name or "")
        if message is None:
            raise
        raise ApiError(message) from exc

    logger.info("user_registered user_id=%s", user_row["id"])
    return _to_auth_response(user_row, settings=settings)


async def login(
    payload: schemas.LoginRequest,
    *,
    database: Database,
    settings: Settings,
) -> schemas.AuthResponse:
    user_row = await repository.get_user_by_email(database.executor, payload.email)
    if user_row is None or not security.verify_password(payload.password, str(user_row["password"])):
        raise ApiError(INVALID_CREDENTIALS)

    return _to_auth_response(user_row, settings=settings)


async def _require_user_id(database: Database, username: str) -> int:
    user_id = await repository.get_user_id_by_username(database.executor, username)
    if user_id is None:
        raise NotFoundError()
    return user_id


async def follow(username: str, *, follower_id: int, database: Database) -> repository.FollowOutcome:
    following_id = await _require_user_id(database, username)
    try:
        async with database.transaction() as conn:
            return await repository.add_follow(conn, following_id=following_id, follower_id=follower_id)
    except asyncpg.ForeignKeyViolationError as exc:
        # The token outlived its user row.
        if exc.constraint_name == "user_follow_follower_id_fkey":
            raise UnauthorizedError() from exc
        if exc.constraint_name == "user_follow_following_id_fkey":
            raise NotFoundError() from exc
        raise


async def unfollow(username: str, *, follower_id: int, database: Database) -> repository.FollowOutcome:
    following_id = await _require_user_id(database, username)
    return await repository.remove_follow(
        database.executor,
        following_id=following_id,
        follower_id=follower_id,
    )
