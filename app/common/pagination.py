from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession


class PaginationParams(BaseModel):
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=25, ge=1, le=200)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginatedResponse(BaseModel):
    items: list
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def create(cls, items: list, total: int, page: int, page_size: int) -> "PaginatedResponse":
        total_pages = (total + page_size - 1) // page_size if total > 0 else 0
        return cls(items=items, total=total, page=page, page_size=page_size, total_pages=total_pages)


async def fetch_page(
    db: AsyncSession,
    query: Select,
    count_query: Select,
    page: int,
    page_size: int,
) -> tuple[list[Any], int]:
    """Run a count query and a limited/offset select built from the same filters."""
    params = PaginationParams(page=page, page_size=page_size)
    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(query.offset(params.offset).limit(params.page_size))
    return list(result.scalars().all()), total
