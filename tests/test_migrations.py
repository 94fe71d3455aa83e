from __future__ import annotations

from pathlib import Path

import pytest

from core.migrations import Migration, discover

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "db" / "migrations"


def test_discovers_all_tables_in_dependency_order():
    migrations = discover(MIGRATIONS_DIR)

    names = [m.name for m in migrations]
    assert names == [
        "create_user",
        "create_user_follow",
        "create_article",
        "create_tag",
        "create_article_tag",
        "create_article_favorite",
    ]
    versions = [m.version for m in migrations]
    assert versions == sorted(versions)


def test_up_sql_excludes_down_section(tmp_path):
    path = tmp_path / "20240101000000_example.sql"
    path.write_text(
        "-- migrate:up\nCREATE TABLE example (id int);\n\n-- migrate:down\nDROP TABLE example;\n",
        encoding="utf-8",
    )

    migration = Migration("20240101000000", "example", path)

    assert migration.up_sql() == "CREATE TABLE example (id int);"


def test_up_sql_requires_marker(tmp_path):
    path = tmp_path / "20240101000000_broken.sql"
    path.write_text("CREATE TABLE broken (id int);\n", encoding="utf-8")

    with pytest.raises(ValueError):
        Migration("20240101000000", "broken", path).up_sql()


def test_discover_skips_unexpected_files(tmp_path):
    (tmp_path / "20240101000000_ok.sql").write_text("-- migrate:up\nSELECT 1;\n", encoding="utf-8")
    (tmp_path / "notes.sql").write_text("-- migrate:up\nSELECT 1;\n", encoding="utf-8")

    assert [m.name for m in discover(tmp_path)] == ["ok"]


def test_tag_names_are_unique():
    tag = next(m for m in discover(MIGRATIONS_DIR) if m.name == "create_tag")
    assert "UNIQUE (name)" in tag.up_sql()
