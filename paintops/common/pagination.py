"""Reusable pagination for list endpoints."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class PaginationParams:
    """Inject as a FastAPI dependency for any list endpoint."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        page_size: int = Query(50, ge=1, le=200, description="Items per page"),
    ):
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int


async def paginate(
    db: AsyncSession, query: Select, params: PaginationParams
) -> tuple[list[Any], int]:
    """Apply pagination to an ordered query and return (items, total_count)."""
    count_q = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_q)).scalar() or 0

    result = await db.execute(query.offset(params.offset).limit(params.page_size))
    return list(result.scalars().all()), total


def page_response(items: list, total: int, params: PaginationParams) -> dict:
    return {
        "items": items,
        "total": total,
        "page": params.page,
        "page_size": params.page_size,
        "total_pages": (total + params.page_size - 1) // params.page_size,
    }
