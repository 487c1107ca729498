import math
from typing import Generic, List, Sequence, Tuple, TypeVar

from config import settings

T = TypeVar("T")


class PaginationView(Generic[T]):
    """1-indexed window over a collection whose order is decided elsewhere."""

    def __init__(self, page_size: int = None, items: Sequence[T] = ()):
        self.page_size = page_size or settings.page_size
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.items: Tuple[T, ...] = tuple(items)
        self.page = 1

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.page_size)

    @property
    def window(self) -> List[T]:
        start = (self.page - 1) * self.page_size
        return list(self.items[start:start + self.page_size])

    @property
    def window_range(self) -> Tuple[int, int]:
        """1-based (first, last) item numbers on the current page, (0, 0) when empty."""
        if not self.total:
            return (0, 0)
        first = (self.page - 1) * self.page_size + 1
        return (first, min(self.page * self.page_size, self.total))

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    def go_to(self, page: int) -> bool:
        if not 1 <= page <= self.page_count:
            return False
        self.page = page
        return True

    def next_page(self) -> bool:
        return self.go_to(self.page + 1)

    def previous_page(self) -> bool:
        return self.go_to(self.page - 1)

    def update(self, items: Sequence[T]):
        self.items = tuple(items)
        # keep the user's page across refreshes unless it no longer exists
        if self.page > self.page_count:
            self.page = max(1, self.page_count)
