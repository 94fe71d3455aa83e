"""
Tag persistence: find-or-insert by name and pruning of unused tags.
"""

from __future__ import annotations

import logging

from core import db
from core.db import Executor

logger = logging.getLogger(__name__)

# A concurrent delete can remove the row between the conflicting INSERT and
# the follow-up SELECT; one more round always settles it in practice.
_FIND_OR_INSERT_ATTEMPTS = 3


async def find_or_insert(conn: Executor, name: str) -> int:
    """
    Return the id of the tag called `name`, inserting it when absent.

    Relies on the `tag_name_key` unique constraint, so two requests creating
    the same tag resolve to a single row.
    """
    for _ in range(_FIND_OR_INSERT_ATTEMPTS):
        tag_id = await db.fetch_value(
            conn,
            """
            INSERT INTO tag (name)
            VALUES ($1)
            ON CONFLICT (name) DO NOTHING
            RETURNING id
            """,
            name,
        )
        if tag_id is not None:
            return int(tag_id)

        tag_id = await db.fetch_value(conn, "SELECT id FROM tag WHERE name = $1", name)
        if tag_id is not None:
            return int(tag_id)

    raise RuntimeError(f"Failed to find or insert tag {name!r}.")


async def delete_unused(conn: Executor, tag_ids: list[int]) -> list[int]:
    """
    Delete those of `tag_ids` no article references any more. Returns deleted ids.
    """
    if not tag_ids:
        return []

    rows = await db.fetch_all(
        conn,
        """
        DELETE FROM tag t
        WHERE t.id = ANY($1::int[])
          AND NOT EXISTS (
            SELECT 1 FROM article_tag atg WHERE atg.tag_id = t.id
          )
        RETURNING t.id
        """,
        tag_ids,
    )
    deleted = [int(r["id"]) for r in rows]
    if deleted:
        logger.info("tags_pruned count=%s", len(deleted))
    return deleted
