"""Pagination helpers with hard caps."""

from __future__ import annotations

import math
import os


DEFAULT_PAGE_LIMIT = 20
DEFAULT_MAX_PAGE_SIZE = 200


def get_max_page_size() -> int:
    raw = os.getenv("API_MAX_PAGE_SIZE", str(DEFAULT_MAX_PAGE_SIZE))
    try:
        val = int(raw)
    except ValueError:
        val = DEFAULT_MAX_PAGE_SIZE
    if val < 1:
        return DEFAULT_MAX_PAGE_SIZE
    return val


def clamp_limit(limit: int) -> int:
    max_size = get_max_page_size()
    if limit < 1:
        return 1
    return min(limit, max_size)


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


def build_pagination(*, total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }
