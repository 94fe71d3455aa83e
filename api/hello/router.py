"""
Liveness greeting.
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter()


class HelloResponse(BaseModel):
    message: str


@router.get("/", response_model=HelloResponse)
def hello() -> HelloResponse:
    return HelloResponse(message="hello world")
