"""Offset/limit paging shared by the content stores."""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")


def page(items: Sequence[T], offset: int, limit: int) -> list[T]:
    """Return at most *limit* items starting at *offset*.

    Negative values count as zero, so a negative offset starts at the first
    item and a negative limit yields an empty page.
    """
    offset = max(offset, 0)
    limit = max(limit, 0)
    return list(items[offset:offset + limit])
