from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        if self.per_page <= 0:
            return 0
        return (self.total + self.per_page - 1) // self.per_page


def normalize_paging(page, per_page) -> tuple[int, int]:
    try:
        page_i = int(page or 1)
    except (TypeError, ValueError):
        page_i = 1
    try:
        per_page_i = int(per_page or DEFAULT_PAGE_SIZE)
    except (TypeError, ValueError):
        per_page_i = DEFAULT_PAGE_SIZE
    page_i = max(page_i, 1)
    per_page_i = min(max(per_page_i, 1), MAX_PAGE_SIZE)
    return page_i, per_page_i
