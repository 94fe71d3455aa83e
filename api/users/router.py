"""
User API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Response

from auth import dependencies as auth_dependencies
from core.config import Settings
from core.db import Database

from . import schemas, service

router = APIRouter()


@router.post("/users", response_model=schemas.AuthResponse)
async def register(
    payload: schemas.RegisterRequest,
    database: Database = Depends(auth_dependencies.get_database),
    settings: Settings = Depends(auth_dependencies.get_app_settings),
) -> schemas.AuthResponse:
    return await service.register(payload, database=database, settings=settings)


@router.post("/users/auth", response_model=schemas.AuthResponse)
async def login(
    payload: schemas.LoginRequest,
    database: Database = Depends(auth_dependencies.get_database),
    settings: Settings = Depends(auth_dependencies.get_app_settings),
) -> schemas.AuthResponse:
    return await service.login(payload, database=database, settings=settings)


@router.post("/users/{username}/follow")
async def follow(
    username: str = Path(..., min_length=1, max_length=30),
    current_user_id: int = Depends(auth_dependencies.get_current_user_id),
    database: Database = Depends(auth_dependencies.get_database),
) -> Response:
    await service.follow(username, follower_id=current_user_id, database=database)
    return Response(status_code=200)


@router.delete("/users/{username}/follow")
async def unfollow(
    username: str = Path(..., min_length=1, max_length=30),
    current_user_id: int = Depends(auth_dependencies.get_current_user_id),
    database: Database = Depends(auth_dependencies.get_database),
) -> Response:
    await service.unfollow(username, follower_id=current_user_id, database=database)
    return Response(status_code=200)
