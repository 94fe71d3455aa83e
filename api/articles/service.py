"""
Article business logic.

Mutations that touch more than one table (create, update, delete, favorite)
run inside `Database.transaction()`, so a failure part-way leaves nothing
behind: no article with a half-created tag set, no tag pruned for an article
that still exists.
"""

from __future__ import annotations

import logging
from datetime import datetime

import asyncpg

from core.db import Database, Executor
from core.errors import ApiError, NotFoundError, UnauthorizedError
from tags import repository as tag_repository
from users.schemas import ProfileResponse

from . import repository, schemas

logger = logging.getLogger(__name__)

SLUG_TAKEN = "Slug is already taken"

# A signed token can outlive its user row; writes keyed by it then break these.
_MISSING_USER_KEYS = {"article_user_id_fkey", "article_favorite_user_id_fkey"}


def _epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def to_article_response(row: dict) -> schemas.ArticleResponse:
    return schemas.ArticleResponse(
        slug=str(row["slug"]),
        title=str(row["title"]),
        body=str(row["body"]),
        favorites_count=int(row["favorites_count"]),
        created_at=_epoch_ms(row["created_at"]),
        updated_at=_epoch_ms(row["updated_at"]),
        tags=[str(name) for name in row["tags"] or []],
        favorited=bool(row["favorited"]),
        author=ProfileResponse(
            username=str(row["author_username"]),
            following=bool(row["author_following"]),
        ),
    )


def diff_tags(current: list[dict], requested: list[str] | None) -> tuple[list[str], list[int]]:
    """
    Compare the article's current tags (`{"id", "name"}` rows) with the
    requested names.

    Returns (names to link, tag ids to unlink). `requested=None` means the
    client did not send `tags`, so nothing changes.
    """
    if requested is None:
        return [], []

    current_names = {str(tag["name"]) for tag in current}
    wanted = set(requested)
    to_add = [name for name in requested if name not in current_names]
    to_remove = [int(tag["id"]) for tag in current if str(tag["name"]) not in wanted]
    return to_add, to_remove


async def _load_dto(conn: Executor, article_id: int, viewer_id: int | None) -> schemas.ArticleResponse:
    row = await repository.get_article_dto(conn, repository.ArticleQuery(viewer_id).filter_by_id(article_id))
    if row is None:
        raise NotFoundError()
    return to_article_response(row)


async def list_articles(
    *,
    database: Database,
    viewer_id: int | None,
    author: str | None = None,
    tag: str | None = None,
    feed: bool = False,
    favorite: bool = False,
    limit: int = 20,
    offset: int | None = None,
) -> list[schemas.ArticleResponse]:
    if (feed or favorite) and viewer_id is None:
        raise UnauthorizedError()

    rows = await repository.list_articles(
        database.executor,
        viewer_id,
        author=author,
        tag=tag,
        feed_of=viewer_id if feed else None,
        favorited_by=viewer_id if favorite else None,
        limit=limit,
        offset=offset,
    )
    return [to_article_response(row) for row in rows]


async def get_article(slug: str, *, database: Database, viewer_id: int | None) -> schemas.ArticleResponse:
    row = await repository.get_article_dto(database.executor, repository.ArticleQuery(viewer_id).filter_by_slug(slug))
    if row is None:
        raise NotFoundError()
    return to_article_response(row)


async def _link_tag_names(conn: Executor, article_id: int, names: list[str]) -> None:
    tag_ids = [await tag_repository.find_or_insert(conn, name) for name in names]
    await repository.link_tags(conn, article_id, tag_ids)


async def create_article(
    payload: schemas.ArticleCreateRequest,
    *,
    database: Database,
    user_id: int,
) -> schemas.ArticleResponse:
    try:
        async with database.transaction() as conn:
            article_id = await repository.insert_article(
                conn,
                user_id=user_id,
                slug=payload.slug,
                title=payload.title,
                body=payload.body,
            )
            await _link_tag_names(conn, article_id, payload.tags)
            article = await _load_dto(conn, article_id, user_id)
    except asyncpg.UniqueViolationError as exc:
        if exc.constraint_name == "article_slug_key":
            raise ApiError(SLUG_TAKEN) from exc
        raise
    except asyncpg.ForeignKeyViolationError as exc:
        if exc.constraint_name in _MISSING_USER_KEYS:
            raise UnauthorizedError() from exc
        raise

    logger.info("article_created article_id=%s user_id=%s tags=%s", article_id, user_id, len(payload.tags))
    return article


async def _require_owned_article(conn: Executor, slug: str, user_id: int) -> int:
    article = await repository.get_article_ref_by_slug(conn, slug, for_update=True)
    if article is None:
        raise NotFoundError()
    if int(article["user_id"]) != user_id:
        raise UnauthorizedError()
    return int(article["id"])


async def update_tags(conn: Executor, article_id: int, requested: list[str] | None) -> bool:
    """
    Reconcile the article's tag set with `requested`. Returns True if anything changed.
    """
    if requested is None:
        return False

    current = await repository.list_article_tags(conn, article_id)
    to_add, to_remove = diff_tags(current, requested)

    await _link_tag_names(conn, article_id, to_add)
    if to_remove:
        await repository.unlink_tags(conn, article_id, to_remove)
        await tag_repository.delete_unused(conn, to_remove)

    return bool(to_add or to_remove)


async def update_article(
    slug: str,
    payload: schemas.ArticleUpdateRequest,
    *,
    database: Database,
    user_id: int,
) -> schemas.ArticleResponse:
    fields = payload.model_dump(exclude_unset=True, exclude={"tags"})
    requested_tags = payload.tags if "tags" in payload.model_fields_set else None

    try:
        async with database.transaction() as conn:
            article_id = await _require_owned_article(conn, slug, user_id)

            await repository.update_article_fields(conn, article_id, fields)
            tags_changed = await update_tags(conn, article_id, requested_tags)
            if tags_changed and not fields:
                await repository.touch_article(conn, article_id)

            return await _load_dto(conn, article_id, user_id)
    except asyncpg.UniqueViolationError as exc:
        if exc.constraint_name == "article_slug_key":
            raise ApiError(SLUG_TAKEN) from exc
        raise


async def set_favorite(
    slug: str,
    favorite: bool,
    *,
    database: Database,
    user_id: int,
) -> repository.FavoriteOutcome:
    try:
        async with database.transaction() as conn:
            article = await repository.get_article_ref_by_slug(conn, slug)
            if article is None:
                raise NotFoundError()

            article_id = int(article["id"])
            if favorite:
                return await repository.add_favorite(conn, article_id=article_id, user_id=user_id)
            return await repository.remove_favorite(conn, article_id=article_id, user_id=user_id)
    except asyncpg.ForeignKeyViolationError as exc:
        if exc.constraint_name in _MISSING_USER_KEYS:
            raise UnauthorizedError() from exc
        if exc.constraint_name == "article_favorite_article_id_fkey":
            raise NotFoundError() from exc
        raise


async def delete_article(slug: str, *, database: Database, user_id: int) -> None:
    async with database.transaction() as conn:
        article_id = await _require_owned_article(conn, slug, user_id)
        tag_ids = await repository.delete_article(conn, article_id)
        await tag_repository.delete_unused(conn, tag_ids)

    logger.info("article_deleted article_id=%s user_id=%s", article_id, user_id)
