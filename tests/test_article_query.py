from __future__ import annotations

from datetime import datetime, timezone

from articles.repository import ArticleQuery, build_list_query
from articles.service import diff_tags, to_article_response


def test_anonymous_query_has_only_viewer_param():
    sql, args = ArticleQuery(None).build(limit=20)

    assert args == [None, 20]
    outer = sql.split("FROM article a", 1)[1].split("ORDER BY", 1)[0]
    assert "WHERE" not in outer
    for condition in ("u.username =", "ft.name =", "fuf.follower_id =", "faf.user_id ="):
        assert condition not in sql
    assert "LIMIT $2" in sql
    assert "OFFSET" not in sql
    assert "ORDER BY a.created_at DESC, a.id DESC" in sql


def test_filters_are_independent_and_numbered_in_order():
    sql, args = (
        ArticleQuery(7)
        .filter_by_author_username("alice")
        .filter_by_tag("python")
        .filter_feed(7)
        .filter_favorited_by(7)
        .build(limit=5, offset=10)
    )

    assert args == [7, "alice", "python", 7, 7, 5, 10]
    assert "u.username = $2" in sql
    assert "ft.name = $3" in sql
    assert "fuf.follower_id = $4" in sql
    assert "faf.user_id = $5" in sql
    assert "LIMIT $6" in sql
    assert "OFFSET $7" in sql


def test_only_requested_filters_are_added():
    sql, args = ArticleQuery(None).filter_by_tag("go").build()

    assert args == [None, "go"]
    assert "ft.name = $2" in sql
    assert "user_follow fuf" not in sql
    assert "article_favorite faf" not in sql
    assert "LIMIT" not in sql


def test_build_list_query_composes_only_given_filters():
    sql, args = build_list_query(3, tag="rust", favorited_by=3, limit=10)

    assert args == [3, "rust", 3, 10]
    assert "ft.name = $2" in sql
    assert "faf.user_id = $3" in sql
    assert "u.username =" not in sql
    assert "user_follow fuf" not in sql
    assert "OFFSET" not in sql


def test_diff_tags_omitted_means_untouched():
    current = [{"id": 1, "name": "one"}]
    assert diff_tags(current, None) == ([], [])


def test_diff_tags_adds_and_removes():
    current = [{"id": 1, "name": "one"}, {"id": 2, "name": "two"}]

    to_add, to_remove = diff_tags(current, ["two", "new tag"])

    assert to_add == ["new tag"]
    assert to_remove == [1]


def test_diff_tags_empty_list_removes_everything():
    current = [{"id": 1, "name": "one"}, {"id": 2, "name": "two"}]
    assert diff_tags(current, []) == ([], [1, 2])


def test_to_article_response_shapes_dto():
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    row = {
        "id": 3,
        "slug": "some-article-slug",
        "title": "Some article title",
        "body": "body",
        "favorites_count": 2,
        "created_at": created,
        "updated_at": created,
        "tags": ["a", "b"],
        "favorited": True,
        "author_username": "alice",
        "author_following": False,
    }

    dto = to_article_response(row).model_dump(by_alias=True)

    assert dto == {
        "slug": "some-article-slug",
        "title": "Some article title",
        "body": "body",
        "favoritesCount": 2,
        "createdAt": 1704067200000,
        "updatedAt": 1704067200000,
        "tags": ["a", "b"],
        "favorited": True,
        "author": {"username": "alice", "following": False},
    }


def test_to_article_response_handles_null_tags():
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    row = {
        "slug": "s" * 10,
        "title": "t" * 10,
        "body": "b",
        "favorites_count": 0,
        "created_at": created,
        "updated_at": created,
        "tags": None,
        "favorited": False,
        "author_username": "bob",
        "author_following": False,
    }
    assert to_article_response(row).tags == []
