"""Paging helpers shared by the inbox and ticket services."""

import math
from typing import Optional

from core.exceptions import ValidationFailed


def get_pagination_params(
    page: int = 1,
    limit: Optional[int] = None,
    default_limit: int = 20,
    max_limit: int = 50,
) -> dict:
    """
    Normalize 1-indexed paging parameters.

    Args:
        page: Page number (1-indexed)
        limit: Items per page, None for the default
        default_limit: Page size used when none is given
        max_limit: Larger requests are capped to this size

    Returns:
        Dictionary with page, limit and offset
    """
    if limit is None:
        limit = default_limit

    if page < 1:
        raise ValidationFailed("Page must be >= 1", code="INVALID_PAGE")

    if limit < 1:
        raise ValidationFailed("Limit must be >= 1", code="INVALID_LIMIT")

    if limit > max_limit:
        limit = max_limit

    return {
        "page": page,
        "limit": limit,
        "offset": (page - 1) * limit,
    }


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }
