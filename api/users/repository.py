"""
User persistence helpers.
"""

from __future__ import annotations

import enum

from core import db
from core.db import Executor


class FollowOutcome(enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    REMOVED = "removed"
    ABSENT = "absent"


async def create_user(conn: Executor, *, username: str, email: str, password_hash: str) -> dict:
    """
    Raises `asyncpg.UniqueViolationError` when username or email is taken;
    the constraint name tells which one.
    """
    row = await db.fetch_one(
        conn,
        """
        INSERT INTO "user" (username, email, password)
        VALUES ($1, $2, $3)
        RETURNING id, username, email
        """,
        username,
        email,
        password_hash,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def get_user_by_email(conn: Executor, email: str) -> dict | None:
    return await db.fetch_one(
        conn,
        """
        SELECT id, username, email, password
        FROM "user"
        WHERE email = $1
        """,
        email,
    )


async def get_user_id_by_username(conn: Executor, username: str) -> int | None:
    value = await db.fetch_value(
        conn,
        'SELECT id FROM "user" WHERE username = $1',
        username,
    )
    return int(value) if value is not None else None


async def add_follow(conn: Executor, *, following_id: int, follower_id: int) -> FollowOutcome:
    row = await db.fetch_one(
        conn,
        """
        INSERT INTO user_follow (following_id, follower_id)
        VALUES ($1, $2)
        ON CONFLICT (following_id, follower_id) DO NOTHING
        RETURNING following_id
        """,
        following_id,
        follower_id,
    )
    return FollowOutcome.CREATED if row is not None else FollowOutcome.ALREADY_EXISTS


async def remove_follow(conn: Executor, *, following_id: int, follower_id: int) -> FollowOutcome:
    row = await db.fetch_one(
        conn,
        """
        DELETE FROM user_follow
        WHERE following_id = $1
          AND follower_id = $2
        RETURNING following_id
        """,
        following_id,
        follower_id,
    )
    return FollowOutcome.REMOVED if row is not None else FollowOutcome.ABSENT
