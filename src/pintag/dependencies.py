"""Shared dependencies and helpers for FastAPI endpoints."""

from typing import Tuple

from fastapi import HTTPException

from pintag.database import get_db
from pintag.storage import get_storage_provider

MAX_PAGE_SIZE = 100


def normalize_pagination(page: int, limit: int) -> Tuple[int, int]:
    """Validate page/limit query values.

    ``limit`` is clamped to 1..100; a page below 1 is rejected.
    """
    if page < 1:
        raise HTTPException(status_code=400, detail="page must be >= 1")
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    return page, limit


def page_count(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return (total + limit - 1) // limit


__all__ = ["get_db", "get_storage_provider", "normalize_pagination", "page_count", "MAX_PAGE_SIZE"]
