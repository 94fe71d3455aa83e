"""
Article persistence.
This module is where article-related SQL lives, including the composable
listing query used by `GET /articles`.
"""

from __future__ import annotations

import enum
from typing import Any

from core import db
from core.db import Executor

# Columns a PATCH may touch; anything else never reaches the SQL text.
UPDATABLE_COLUMNS = ("slug", "title", "body")


class FavoriteOutcome(enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    REMOVED = "removed"
    ABSENT = "absent"


class ArticleQuery:
    """
    Builds the article DTO projection plus any combination of filters.

    The viewer id is always `$1`; it is NULL for anonymous viewers, which makes
    the `favorited` and `following` EXISTS checks come out false.

        sql, args = (
            ArticleQuery(viewer_id)
            .filter_by_tag("python")
            .filter_feed(viewer_id)
            .build(limit=20)
        )
    """

    def __init__(self, viewer_id: int | None):
        self.args: list[Any] = [viewer_id]
        self.conditions: list[str] = []

    def _param(self, value: Any) -> str:
        self.args.append(value)
        return f"${len(self.args)}"

    def filter_by_id(self, article_id: int) -> "ArticleQuery":
        self.conditions.append(f"a.id = {self._param(article_id)}")
        return self

    def filter_by_slug(self, slug: str) -> "ArticleQuery":
        self.conditions.append(f"a.slug = {self._param(slug)}")
        return self

    def filter_by_author_username(self, username: str) -> "ArticleQuery":
        self.conditions.append(f"u.username = {self._param(username)}")
        return self

    def filter_by_tag(self, name: str) -> "ArticleQuery":
        self.conditions.append(
            f"""EXISTS (
            SELECT 1
            FROM article_tag fat
            JOIN tag ft ON ft.id = fat.tag_id
            WHERE fat.article_id = a.id
              AND ft.name = {self._param(name)}
          )"""
        )
        return self

    def filter_feed(self, follower_id: int) -> "ArticleQuery":
        self.conditions.append(
            f"""EXISTS (
            SELECT 1
            FROM user_follow fuf
            WHERE fuf.following_id = a.user_id
              AND fuf.follower_id = {self._param(follower_id)}
          )"""
        )
        return self

    def filter_favorited_by(self, user_id: int) -> "ArticleQuery":
        self.conditions.append(
            f"""EXISTS (
            SELECT 1
            FROM article_favorite faf
            WHERE faf.article_id = a.id
              AND faf.user_id = {self._param(user_id)}
          )"""
        )
        return self

    def build(self, *, limit: int | None = None, offset: int | None = None) -> tuple[str, list[Any]]:
        where = ""
        if self.conditions:
            where = "WHERE " + "\n          AND ".join(self.conditions)

        paging = ""
        if limit is not None:
            paging += f"\nLIMIT {self._param(limit)}"
        if offset is not None:
            paging += f"\nOFFSET {self._param(offset)}"

        sql = f"""
        SELECT
          a.id,
          a.slug,
          a.title,
          a.body,
          a.favorites_count,
          a.created_at,
          a.updated_at,
          COALESCE(
            (
              SELECT array_agg(t.name ORDER BY t.name)
              FROM article_tag atg
              JOIN tag t ON t.id = atg.tag_id
              WHERE atg.article_id = a.id
            ),
            ARRAY[]::text[]
          ) AS tags,
          EXISTS (
            SELECT 1
            FROM article_favorite af
            WHERE af.article_id = a.id
              AND af.user_id = $1::int
          ) AS favorited,
          u.username AS author_username,
          EXISTS (
            SELECT 1
            FROM user_follow uf
            WHERE uf.following_id = u.id
              AND uf.follower_id = $1::int
          ) AS author_following
        FROM article a
        JOIN "user" u ON u.id = a.user_id
        {where}
        ORDER BY a.created_at DESC, a.id DESC{paging}
        """
        return sql, list(self.args)


def build_list_query(
    viewer_id: int | None,
    *,
    author: str | None = None,
    tag: str | None = None,
    feed_of: int | None = None,
    favorited_by: int | None = None,
    limit: int = 20,
    offset: int | None = None,
) -> tuple[str, list[Any]]:
    query = ArticleQuery(viewer_id)
    if author:
        query.filter_by_author_username(author)
    if tag:
        query.filter_by_tag(tag)
    if feed_of is not None:
        query.filter_feed(feed_of)
    if favorited_by is not None:
        query.filter_favorited_by(favorited_by)
    return query.build(limit=limit, offset=offset)


async def list_articles(conn: Executor, viewer_id: int | None, **filters: Any) -> list[dict]:
    sql, args = build_list_query(viewer_id, **filters)
    return await db.fetch_all(conn, sql, *args)


async def get_article_dto(conn: Executor, query: ArticleQuery) -> dict | None:
    sql, args = query.build(limit=1)
    return await db.fetch_one(conn, sql, *args)


async def get_article_ref_by_slug(conn: Executor, slug: str, *, for_update: bool = False) -> dict | None:
    """
    Minimal row (id, user_id) for ownership checks and mutations.
    `for_update` locks the row until the surrounding transaction ends.
    """
    lock = "FOR UPDATE" if for_update else ""
    return await db.fetch_one(
        conn,
        f"""
        SELECT id, user_id
        FROM article
        WHERE slug = $1
        {lock}
        """,
        slug,
    )


async def list_article_tags(conn: Executor, article_id: int) -> list[dict]:
    return await db.fetch_all(
        conn,
        """
        SELECT t.id, t.name
        FROM article_tag atg
        JOIN tag t ON t.id = atg.tag_id
        WHERE atg.article_id = $1
        ORDER BY t.name
        """,
        article_id,
    )


async def insert_article(conn: Executor, *, user_id: int, slug: str, title: str, body: str) -> int:
    """
    Raises `asyncpg.UniqueViolationError` (`article_slug_key`) on a taken slug.
    """
    article_id = await db.fetch_value(
        conn,
        """
        INSERT INTO article (user_id, slug, title, body, favorites_count)
        VALUES ($1, $2, $3, $4, 0)
        RETURNING id
        """,
        user_id,
        slug,
        title,
        body,
    )
    if article_id is None:
        raise RuntimeError("Failed to insert article.")
    return int(article_id)


async def update_article_fields(conn: Executor, article_id: int, fields: dict[str, Any]) -> None:
    columns = [c for c in UPDATABLE_COLUMNS if c in fields]
    if not columns:
        return None

    assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(columns, start=2))
    await db.execute(
        conn,
        f"""
        UPDATE article
        SET {assignments},
            updated_at = now()
        WHERE id = $1
        """,
        article_id,
        *(fields[c] for c in columns),
    )


async def touch_article(conn: Executor, article_id: int) -> None:
    await db.execute(conn, "UPDATE article SET updated_at = now() WHERE id = $1", article_id)


async def link_tags(conn: Executor, article_id: int, tag_ids: list[int]) -> None:
    if not tag_ids:
        return None
    await db.execute(
        conn,
        """
        INSERT INTO article_tag (article_id, tag_id)
        SELECT $1::int, unnest($2::int[])
        ON CONFLICT (tag_id, article_id) DO NOTHING
        """,
        article_id,
        tag_ids,
    )


async def unlink_tags(conn: Executor, article_id: int, tag_ids: list[int]) -> None:
    if not tag_ids:
        return None
    await db.execute(
        conn,
        """
        DELETE FROM article_tag
        WHERE article_id = $1
          AND tag_id = ANY($2::int[])
        """,
        article_id,
        tag_ids,
    )


async def delete_article(conn: Executor, article_id: int) -> list[int]:
    """
    Delete the article and its tag/favorite links. Returns the ids of the tags
    it was linked to, so the caller can prune the ones left unused.
    """
    tag_rows = await db.fetch_all(
        conn,
        "DELETE FROM article_tag WHERE article_id = $1 RETURNING tag_id",
        article_id,
    )
    await db.execute(conn, "DELETE FROM article_favorite WHERE article_id = $1", article_id)
    await db.execute(conn, "DELETE FROM article WHERE id = $1", article_id)
    return [int(r["tag_id"]) for r in tag_rows]


async def add_favorite(conn: Executor, *, article_id: int, user_id: int) -> FavoriteOutcome:
    row = await db.fetch_one(
        conn,
        """
        INSERT INTO article_favorite (user_id, article_id)
        VALUES ($1, $2)
        ON CONFLICT (user_id, article_id) DO NOTHING
        RETURNING article_id
        """,
        user_id,
        article_id,
    )
    if row is None:
        return FavoriteOutcome.ALREADY_EXISTS

    await db.execute(
        conn,
        "UPDATE article SET favorites_count = favorites_count + 1 WHERE id = $1",
        article_id,
    )
    return FavoriteOutcome.CREATED


async def remove_favorite(conn: Executor, *, article_id: int, user_id: int) -> FavoriteOutcome:
    row = await db.fetch_one(
        conn,
        """
        DELETE FROM article_favorite
        WHERE user_id = $1
          AND article_id = $2
        RETURNING article_id
        """,
        user_id,
        article_id,
    )
    if row is None:
        return FavoriteOutcome.ABSENT

    await db.execute(
        conn,
        "UPDATE article SET favorites_count = GREATEST(favorites_count - 1, 0) WHERE id = $1",
        article_id,
    )
    return FavoriteOutcome.REMOVED
