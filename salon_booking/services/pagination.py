"""Page/limit handling for list endpoints."""

from __future__ import annotations

import math

from salon_booking.config import settings
from salon_booking.domain.models import Appointment, PaginatedAppointments, Pagination


def pagination_params(page: int | None, limit: int | None) -> tuple[int, int, int]:
    """Clamp raw query values and return ``(page, limit, skip)``.

    Missing or non-positive values fall back to page 1 and the default limit;
    limits above the configured maximum are capped.
    """
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else settings.default_page_limit
    limit = min(limit, settings.max_page_limit)
    return page, limit, (page - 1) * limit


def paginate(
    items: list[Appointment], page: int | None, limit: int | None
) -> PaginatedAppointments:
    page, limit, skip = pagination_params(page, limit)
    total = len(items)
    total_pages = math.ceil(total / limit)
    return PaginatedAppointments(
        data=items[skip : skip + limit],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        ),
    )
