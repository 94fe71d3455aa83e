"""
Article API schemas (request/response models).
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from users.schemas import ProfileResponse

Slug = Annotated[str, StringConstraints(min_length=10, max_length=200)]
Title = Annotated[str, StringConstraints(min_length=10, max_length=200)]
Body = Annotated[str, StringConstraints(min_length=100, max_length=100000)]
TagName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


def _unique(names: list[str]) -> list[str]:
    return list(dict.fromkeys(names))


class ArticleCreateRequest(BaseModel):
    slug: Slug
    title: Title
    body: Body
    tags: list[TagName] = Field(..., max_length=20)

    @field_validator("tags")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        return _unique(value)


class ArticleUpdateRequest(BaseModel):
    """
    Every field is optional. An omitted `tags` leaves the tag set untouched;
    an empty list removes all tags.
    """

    slug: Slug | None = None
    title: Title | None = None
    body: Body | None = None
    tags: list[TagName] | None = Field(default=None, max_length=20)

    @field_validator("slug", "title", "body")
    @classmethod
    def _not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("must not be null")
        return value

    @field_validator("tags")
    @classmethod
    def _dedupe(cls, value: list[str] | None) -> list[str]:
        if value is None:
            raise ValueError("must not be null")
        return _unique(value)


class FavoriteRequest(BaseModel):
    favorite: bool


class ArticleResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slug: str
    title: str
    body: str
    favorites_count: int = Field(alias="favoritesCount")
    # Epoch milliseconds.
    created_at: int = Field(alias="createdAt")
    updated_at: int = Field(alias="updatedAt")
    tags: list[str]
    favorited: bool
    author: ProfileResponse
