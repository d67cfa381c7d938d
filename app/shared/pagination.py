"""Reusable page/limit pagination helpers."""

from __future__ import annotations

import math

from fastapi import Query
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def coerce_positive_int(value: str | int | None, default: int, maximum: int | None = None) -> int:
    """Parse a query value into a positive integer, falling back to default."""
    if value is None:
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if number < 1:
        return default
    if maximum is not None:
        return min(number, maximum)
    return number


class PaginationParams(BaseModel):
    """Pagination query params."""

    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def get_pagination_params(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
) -> PaginationParams:
    """FastAPI dependency for page/limit params sent as strings."""
    return PaginationParams(
        page=coerce_positive_int(page, DEFAULT_PAGE),
        limit=coerce_positive_int(limit, DEFAULT_LIMIT),
    )


class PageInfo(BaseModel):
    """Pagination block returned next to list payloads."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


def build_page_info(total: int, params: PaginationParams) -> PageInfo:
    """Build pagination block from total count and params."""
    return PageInfo(
        page=params.page,
        limit=params.limit,
        total=total,
        total_pages=math.ceil(total / params.limit) if params.limit else 0,
    )
