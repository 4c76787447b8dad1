"""Filter -> sort -> paginate over record lists.

`apply` is pure; `QueryState` holds the browsing state of one record list and
resets the page whenever the query or the sort changes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Sequence, TypeVar

from impscope.util.defaults import PAGE_SIZE

T = TypeVar("T")


class SortField(str, Enum):
    DATE = "date"
    DEVICE_ID = "device_id"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total_pages: int
    total_items: int = 0


def matches(record, query: str) -> bool:
    if not query:
        return True
    query = query.lower()
    return query in record.device_id.lower() or query in record.date.lower()


def sort_records(
    records: Sequence[T], sort_field: SortField, sort_order: SortOrder
) -> list[T]:
    """Stable lexical sort; equal keys keep input order in both directions."""
    attr = SortField(sort_field).value
    if SortOrder(sort_order) is SortOrder.ASC:
        return sorted(records, key=lambda r: getattr(r, attr))
    # reversing a sorted list would also reverse ties
    keys = sorted({getattr(r, attr) for r in records}, reverse=True)
    rank = {key: i for i, key in enumerate(keys)}
    return sorted(records, key=lambda r: rank[getattr(r, attr)])


def apply(
    records: Sequence[T],
    query: str = "",
    sort_field: SortField = SortField.DATE,
    sort_order: SortOrder = SortOrder.DESC,
    page_index: int = 0,
    page_size: int = PAGE_SIZE,
) -> Page[T]:
    filtered = [r for r in records if matches(r, query)]
    ordered = sort_records(filtered, sort_field, sort_order)
    n = len(ordered)
    total_pages = math.ceil(n / page_size)
    start = page_index * page_size
    if page_index < 0 or start >= n:
        return Page([], total_pages, n)
    return Page(ordered[start : min(start + page_size, n)], total_pages, n)


@dataclass
class QueryState:
    """Browsing state of one record list.

    Changing the query or the sort returns to the first page. Choosing the
    current sort field again toggles the order; a new field starts descending.
    """

    query: str = ""
    sort_field: SortField = SortField.DATE
    sort_order: SortOrder = SortOrder.DESC
    page_index: int = 0
    _total_pages: int = field(default=0, repr=False)

    def set_query(self, query: str) -> None:
        self.query = query
        self.page_index = 0

    def set_sort(self, sort_field: SortField) -> None:
        sort_field = SortField(sort_field)
        if sort_field is self.sort_field:
            self.sort_order = (
                SortOrder.DESC if self.sort_order is SortOrder.ASC else SortOrder.ASC
            )
        else:
            self.sort_field = sort_field
            self.sort_order = SortOrder.DESC
        self.page_index = 0

    def next_page(self) -> None:
        if self.page_index + 1 < self._total_pages:
            self.page_index += 1

    def prev_page(self) -> None:
        if self.page_index > 0:
            self.page_index -= 1

    def go_to(self, page_index: int) -> None:
        self.page_index = max(0, min(page_index, max(self._total_pages - 1, 0)))

    def view(self, records: Sequence[T]) -> Page[T]:
        page = apply(
            records, self.query, self.sort_field, self.sort_order, self.page_index
        )
        self._total_pages = page.total_pages
        return page
