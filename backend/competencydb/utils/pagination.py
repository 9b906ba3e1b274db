from __future__ import annotations

from typing import Tuple

_MAX_PAGE_SIZE = 1000  # hard ceiling for list endpoints to protect DB


def normalize_pagination(page: int, page_size: int, *, default_page_size: int = 50) -> Tuple[int, int, int]:
    """
    Clamp page/pageSize to safe bounds.

    Returns (page, page_size, offset).
    """
    if page < 1:
        page = 1
    if page_size <= 0:
        page_size = default_page_size
    if page_size > _MAX_PAGE_SIZE:
        page_size = _MAX_PAGE_SIZE
    return page, page_size, (page - 1) * page_size
