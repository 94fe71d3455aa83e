"""
Article API endpoints.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Path, Query, Response

from auth import dependencies as auth_dependencies
from core.db import Database

from . import schemas, service

router = APIRouter()


@router.get("/articles", response_model=list[schemas.ArticleResponse])
async def list_articles(
    author: str | None = Query(default=None, max_length=30),
    tag: str | None = Query(default=None, max_length=50),
    feed: Literal["true"] | None = Query(default=None),
    favorite: Literal["true"] | None = Query(default=None),
    limit: int = Query(20, ge=1, le=20),
    offset: int | None = Query(default=None, ge=0),
    current_user_id: int | None = Depends(auth_dependencies.get_optional_current_user_id),
    database: Database = Depends(auth_dependencies.get_database),
) -> list[schemas.ArticleResponse]:
    """
    Newest articles first. `feed` limits to authors the viewer follows,
    `favorite` to articles the viewer favorited; both require auth.
    """
    return await service.list_articles(
        database=database,
        viewer_id=current_user_id,
        author=author,
        tag=tag,
        feed=feed is not None,
        favorite=favorite is not None,
        limit=limit,
        offset=offset,
    )


@router.get("/articles/{slug}", response_model=schemas.ArticleResponse)
async def get_article(
    slug: str = Path(..., min_length=1, max_length=200),
    current_user_id: int | None = Depends(auth_dependencies.get_optional_current_user_id),
    database: Database = Depends(auth_dependencies.get_database),
) -> schemas.ArticleResponse:
    return await service.get_article(slug, database=database, viewer_id=current_user_id)


@router.post("/articles", response_model=schemas.ArticleResponse)
async def create_article(
    payload: schemas.ArticleCreateRequest,
    current_user_id: int = Depends(auth_dependencies.get_current_user_id),
    database: Database = Depends(auth_dependencies.get_database),
) -> schemas.ArticleResponse:
    return await service.create_article(payload, database=database, user_id=current_user_id)


@router.patch("/articles/{slug}", response_model=schemas.ArticleResponse)
async def update_article(
    payload: schemas.ArticleUpdateRequest,
    slug: str = Path(..., min_length=1, max_length=200),
    current_user_id: int = Depends(auth_dependencies.get_current_user_id),
    database: Database = Depends(auth_dependencies.get_database),
) -> schemas.ArticleResponse:
    return await service.update_article(slug, payload, database=database, user_id=current_user_id)


@router.post("/articles/{slug}/favorite")
async def favorite_article(
    payload: schemas.FavoriteRequest,
    slug: str = Path(..., min_length=1, max_length=200),
    current_user_id: int = Depends(auth_dependencies.get_current_user_id),
    database: Database = Depends(auth_dependencies.get_database),
) -> Response:
    await service.set_favorite(slug, payload.favorite, database=database, user_id=current_user_id)
    return Response(status_code=200)


@router.delete("/articles/{slug}")
async def delete_article(
    slug: str = Path(..., min_length=1, max_length=200),
    current_user_id: int = Depends(auth_dependencies.get_current_user_id),
    database: Database = Depends(auth_dependencies.get_database),
) -> Response:
    await service.delete_article(slug, database=database, user_id=current_user_id)
    return Response(status_code=200)
