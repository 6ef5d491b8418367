"""Page/limit pagination shared by list endpoints.

Cassandra cannot skip rows server-side, so list endpoints load the
(already partition-scoped or filtered) rows and slice them here.
"""

import math
from collections.abc import Sequence
from typing import Annotated, Generic, TypeVar

from fastapi import Depends, Query
from pydantic import BaseModel

from src.config import get_settings


T = TypeVar("T")

_settings = get_settings()


class PageParams(BaseModel):
    """Validated ``page``/``limit`` query parameters."""

    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params_factory(default_limit: int):
    """Build a ``page``/``limit`` dependency with its own default page size."""

    def page_params(
        page: int = Query(1, ge=1, description="Page number (1-based)"),
        limit: int = Query(
            default_limit,
            ge=1,
            le=_settings.max_page_size,
            description="Items per page",
        ),
    ) -> PageParams:
        return PageParams(page=page, limit=limit)

    return page_params


page_params = page_params_factory(_settings.default_page_size)

PageDep = Annotated[PageParams, Depends(page_params)]


class Page(BaseModel, Generic[T]):
    """Paginated response envelope."""

    items: list[T]
    total: int
    total_pages: int
    current_page: int
    has_next_page: bool
    has_prev_page: bool


def paginate(items: Sequence[T], params: PageParams) -> Page[T]:
    """Slice ``items`` to the requested page and build the envelope."""
    total = len(items)
    total_pages = math.ceil(total / params.limit) if total else 0
    return Page(
        items=list(items[params.offset : params.offset + params.limit]),
        total=total,
        total_pages=total_pages,
        current_page=params.page,
        has_next_page=params.page < total_pages,
        has_prev_page=params.page > 1,
    )
