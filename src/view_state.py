#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
View state for paginated domain and record lists.

Holds the page last fetched from the backend, a locally filtered and sorted
view derived from it, and the user's selection. Local filtering and sorting
only ever look at the loaded page; they never ask the backend for more.
"""

import locale
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set

logger = logging.getLogger(__name__)

RECORD_SEARCH_FIELDS = ('type', 'name', 'content')
DOMAIN_SEARCH_FIELDS = ('name', 'status')

_UNSET = object()


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class Pagination:
    """Server-side paging information for the loaded page."""

    page: int = 1
    per_page: int = 0
    total_count: int = 0
    total_pages: int = 1

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], page: int, per_page: int,
                  item_count: int) -> "Pagination":
        """Build from a backend pagination block, falling back to the request values."""
        data = data or {}
        total_count = int(data.get('total_count', item_count))
        per_page = int(data.get('per_page', per_page)) or per_page
        default_pages = max(1, -(-total_count // per_page)) if per_page else 1
        return cls(
            page=int(data.get('page', page)),
            per_page=per_page,
            total_count=total_count,
            total_pages=max(1, int(data.get('total_pages', default_pages))),
        )

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass
class LocalFilter:
    """Predicates applied to the loaded page."""

    search: str = ""
    record_type: str = ""
    proxied: Optional[bool] = None

    def matches(self, item: Dict[str, Any], search_fields: Sequence[str]) -> bool:
        if self.record_type and str(item.get('type', '')).upper() != self.record_type.upper():
            return False
        if self.proxied is not None and bool(item.get('proxied', False)) != self.proxied:
            return False
        if self.search:
            needle = self.search.lower()
            return any(needle in str(item.get(f, '') or '').lower() for f in search_fields)
        return True

    @property
    def is_active(self) -> bool:
        return bool(self.search or self.record_type or self.proxied is not None)


def sort_key(item: Dict[str, Any], field: str):
    """
    Comparison key for one column.

    Booleans compare by their "true"/"false" rendering, numbers numerically
    and everything else case-insensitively with locale collation.
    """
    value = item.get(field)
    if isinstance(value, bool):
        return (1, "true" if value else "false")
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, locale.strxfrm(str(value if value is not None else '').casefold()))


class ViewState:
    """Page, filter, sort and selection state of one list view."""

    def __init__(self, page_size: int, search_fields: Sequence[str] = RECORD_SEARCH_FIELDS,
                 id_field: str = 'id'):
        """
        Initialize an empty view.

        Args:
            page_size: Items requested per server page
            search_fields: Fields the local search box looks in
            id_field: Field identifying an item for selection
        """
        self.page_size = page_size
        self.search_fields = tuple(search_fields)
        self.id_field = id_field

        self.page = 1
        self.server_search = ""
        self.pagination = Pagination(page=1, per_page=page_size)
        self.fetched_items: List[Dict[str, Any]] = []
        self.derived_view: List[Dict[str, Any]] = []
        self.local_filter = LocalFilter()
        self.sort_field: Optional[str] = None
        self.sort_direction = SortDirection.ASC
        self.selected_ids: Set[Any] = set()
        self.load_state = LoadState.IDLE
        self.error_message: Optional[str] = None

    def _item_id(self, item: Dict[str, Any]):
        return item.get(self.id_field)

    def derived_ids(self) -> List[Any]:
        return [self._item_id(item) for item in self.derived_view]

    def replace_page(self, items: List[Dict[str, Any]], page: int, search: str,
                     pagination: Optional[Dict[str, Any]] = None) -> None:
        """
        Install a freshly fetched page.

        The local filter and sort persist; the selection is cleared because
        ids on the new page are unrelated to the old ones.
        """
        self.fetched_items = list(items)
        self.page = page
        self.server_search = search
        self.pagination = Pagination.from_dict(pagination, page, self.page_size, len(self.fetched_items))
        self.selected_ids = set()
        self.load_state = LoadState.LOADED
        self.error_message = None
        self._derive()

    def _derive(self) -> None:
        """Recompute derived_view from fetched_items, then re-sort and prune the selection."""
        self.derived_view = [item for item in self.fetched_items
                             if self.local_filter.matches(item, self.search_fields)]
        self._sort_derived()
        visible = set(self.derived_ids())
        dropped = self.selected_ids - visible
        if dropped:
            logger.debug(f"Dropping {len(dropped)} hidden items from selection")
            self.selected_ids &= visible

    def _sort_derived(self) -> None:
        if not self.sort_field:
            return
        field = self.sort_field
        self.derived_view = sorted(
            self.derived_view,
            key=lambda item: sort_key(item, field),
            reverse=self.sort_direction is SortDirection.DESC,
        )

    def apply_local_filter(self, search=_UNSET, record_type=_UNSET, proxied=_UNSET) -> List[Dict[str, Any]]:
        """
        Narrow the loaded page. Arguments left out keep their current value.

        Args:
            search: Substring matched case-insensitively against search_fields
            record_type: Exact record type, empty for all
            proxied: True/False to match the flag, None for all

        Returns:
            The new derived view
        """
        if search is not _UNSET:
            self.local_filter.search = (search or "").strip()
        if record_type is not _UNSET:
            self.local_filter.record_type = record_type or ""
        if proxied is not _UNSET:
            self.local_filter.proxied = proxied
        self._derive()
        return self.derived_view

    def apply_sort(self, field: str, direction: Optional[SortDirection] = None) -> List[Dict[str, Any]]:
        """
        Sort the derived view.

        Without an explicit direction, sorting by the active field flips the
        direction and sorting by a new field starts ascending.
        """
        if direction is None:
            if field == self.sort_field:
                direction = SortDirection.DESC if self.sort_direction is SortDirection.ASC else SortDirection.ASC
            else:
                direction = SortDirection.ASC
        self.sort_field = field
        self.sort_direction = SortDirection(direction)
        self._sort_derived()
        return self.derived_view

    def clear_sort(self) -> None:
        """Drop the sort and restore the filtered page order."""
        self.sort_field = None
        self.sort_direction = SortDirection.ASC
        self._derive()

    def toggle_select(self, item_id) -> bool:
        """
        Flip selection of one visible item.

        Returns:
            True if the item is now selected
        """
        if item_id in self.selected_ids:
            self.selected_ids.discard(item_id)
            return False
        if item_id not in set(self.derived_ids()):
            logger.warning(f"Ignoring selection of item {item_id} not in the current view")
            return False
        self.selected_ids.add(item_id)
        return True

    def select_all(self) -> int:
        """Select every item in the derived view; filtered-out rows stay unselected."""
        self.selected_ids = set(self.derived_ids())
        return len(self.selected_ids)

    def clear_selection(self) -> None:
        self.selected_ids = set()

    def selected_items(self) -> List[Dict[str, Any]]:
        """Selected items in derived view order."""
        return [item for item in self.derived_view if self._item_id(item) in self.selected_ids]

    def matches_request(self, page: int, search: str) -> bool:
        """Whether the view currently shows the given page and server search."""
        return self.page == page and self.server_search == search

    def status_text(self, noun: str = "records") -> str:
        """Counter line shown above the table."""
        shown = len(self.derived_view)
        loaded = len(self.fetched_items)
        if self.local_filter.is_active:
            return f"Showing {shown} out of {loaded} {noun} (page {self.pagination.page} of {self.pagination.total_pages})"
        return f"Total {noun}: {self.pagination.total_count} (page {self.pagination.page} of {self.pagination.total_pages})"
