from __future__ import annotations

import math
from typing import Any, TypeVar

from sqlalchemy.orm import Query

from . import schemas
from .settings import MAX_PAGE_SIZE


def clamp_page(page: int | None, limit: int | None, default_limit: int) -> tuple[int, int]:
    """
    Normalize ?page= and ?limit= query parameters.

    Pages are 1-based. Non-positive or missing values fall back to page 1 and
    ``default_limit``; limits above MAX_PAGE_SIZE are clamped.
    """
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    return page, min(limit, MAX_PAGE_SIZE)


PaginationT = TypeVar("PaginationT", bound=schemas.PaginationBase)


def build_pagination(
    page: int,
    limit: int,
    total: int,
    pagination_cls: type[PaginationT] = schemas.Pagination,
) -> PaginationT:
    total_pages = math.ceil(total / limit) if limit else 0
    return pagination_cls(
        **{pagination_cls.total_field: total},
        current_page=page,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def paginate(
    query: Query,
    page: int,
    limit: int,
    pagination_cls: type[PaginationT] = schemas.Pagination,
) -> tuple[list[Any], PaginationT]:
    """
    Apply OFFSET/LIMIT to an ordered query and compute pagination metadata.

    The count is taken from the same filtered query before ordering is applied
    by the database, so filters must already be in place.
    """
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, build_pagination(page, limit, total, pagination_cls)
