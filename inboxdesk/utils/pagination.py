"""
Pagination Utilities

Offset pagination driven by `page`/`pageSize` query parameters. Oversized
page sizes are clamped to the configured maximum, never rejected.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

from fastapi import Query, Request
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.schemas.common import Pagination

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def clamp_page_size(page_size: int | None, default: int = DEFAULT_PAGE_SIZE, maximum: int = MAX_PAGE_SIZE) -> int:
    if page_size is None:
        return default
    return max(1, min(page_size, maximum))


class PaginationParams:
    """
    Dependency for page-based pagination.

    Usage:
        @router.get("/items")
        async def list_items(pagination: PaginationParams = Depends()):
            ...
    """

    def __init__(
        self,
        request: Request,
        page: int = Query(1, description="Page number (1-indexed)"),
        page_size: int | None = Query(None, alias="pageSize", description="Items per page (max 100)"),
    ):
        settings = request.app.state.services.settings
        self.page = max(1, page)
        self.page_size = clamp_page_size(page_size, settings.default_page_size, settings.max_page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def to_pagination(self, total: int) -> Pagination:
        return Pagination(
            page=self.page,
            page_size=self.page_size,
            total=total,
            total_pages=math.ceil(total / self.page_size) if total else 0,
        )


@dataclass
class Page:
    items: list[Any]
    pagination: Pagination


async def paginate(db: AsyncSession, query: Select, params: PaginationParams) -> Page:
    """Run `query` for one page and count the unpaginated result."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar_one()

    result = await db.execute(query.offset(params.offset).limit(params.limit))
    items = list(result.scalars().all())
    return Page(items=items, pagination=params.to_pagination(total))
