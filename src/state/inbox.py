"""InboxState — folder, search, filters, sort, pagination and selection."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping

from src.state.messages import MessageList
from src.state.types import (
    DEFAULT_SORT,
    Filter,
    FilterType,
    Folder,
    InboxView,
    MessageStatus,
    Priority,
    Sort,
    SortOrder,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 25


def _title(value: str) -> str:
    """``needs_reply`` → ``Needs Reply``."""
    return " ".join(word.capitalize() for word in value.split("_"))


class InboxState:
    """View state of the message list for one dashboard session.

    Every operation is synchronous and total: bad input is ignored rather than
    raised.  The selection only ever holds ids that are present in the
    ``MessageList`` it was built with; ids that leave the list are pruned as
    soon as the list changes.

    Usage::

        inbox = InboxState(messages)
        inbox.set_active_folder(Folder.ARCHIVE)
        inbox.toggle_message_selection("msg_1")
    """

    def __init__(
        self,
        messages: MessageList | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._messages = messages if messages is not None else MessageList()
        self._default_page_size = page_size
        self.reset()
        self._messages.subscribe(self._prune_selection)

    def reset(self) -> None:
        """Return every field to its initial value."""
        self.active_folder = Folder.INBOX
        self.active_label: str | None = None
        self.search_query = ""
        self.is_searching = False
        self.active_filters: list[Filter] = []
        self.sort: Sort = DEFAULT_SORT
        self.selected_message_id: str | None = None
        self.selected_ids: set[str] = set()
        self.is_multi_select_mode = False
        self.last_selected_id: str | None = None
        self.page = 1
        self.page_size = self._default_page_size
        self.total_messages = 0
        self.view = InboxView.SPLIT
        self.recently_read_ids: set[str] = set()

    # ── Navigation ──────────────────────────────────────────────────────────────

    def set_active_folder(self, folder: Folder) -> None:
        """Switch folder.  Drops label, filters and selection; keeps search."""
        self.active_folder = folder
        self.active_label = None
        self.active_filters = []
        self.selected_message_id = None
        self.page = 1
        self._drop_selection()

    def set_active_label(self, label: str | None) -> None:
        self.active_label = label or None
        self.selected_message_id = None
        self.page = 1
        self._drop_selection()

    def apply_query_params(self, params: Mapping[str, str]) -> None:
        """Sync folder/label from ``?folder=<name>&label=<name>``."""
        raw = params.get("folder", Folder.INBOX.value)
        try:
            folder = Folder(raw)
        except ValueError:
            logger.warning("Ignoring unknown folder %r in query params", raw)
            folder = Folder.INBOX
        self.set_active_folder(folder)
        if params.get("label"):
            self.set_active_label(params["label"])

    # ── Search ──────────────────────────────────────────────────────────────────

    def set_search_query(self, query: str) -> None:
        if query == self.search_query:
            return
        self.search_query = query
        self.page = 1
        self._drop_selection()

    def clear_search(self) -> None:
        self.is_searching = False
        self.set_search_query("")

    def set_is_searching(self, is_searching: bool) -> None:
        self.is_searching = is_searching

    # ── Filters ─────────────────────────────────────────────────────────────────

    def add_filter(self, flt: Filter) -> None:
        """Add a filter chip.  Adding an id that is already active does nothing."""
        if any(f.id == flt.id for f in self.active_filters):
            return
        self.active_filters = [*self.active_filters, flt]
        self._filters_changed()

    def remove_filter(self, filter_id: str) -> None:
        remaining = [f for f in self.active_filters if f.id != filter_id]
        if len(remaining) == len(self.active_filters):
            return
        self.active_filters = remaining
        self._filters_changed()

    def clear_filters(self) -> None:
        if not self.active_filters:
            return
        self.active_filters = []
        self._filters_changed()

    def toggle_filter(self, flt: Filter) -> None:
        if self.has_filter(flt.id):
            self.remove_filter(flt.id)
        else:
            self.add_filter(flt)

    def toggle_status_filter(self, status: MessageStatus) -> None:
        self.toggle_filter(Filter(FilterType.STATUS, status.value, _title(status.value)))

    def toggle_priority_filter(self, priority: Priority) -> None:
        self.toggle_filter(Filter(FilterType.PRIORITY, priority.value, _title(priority.value)))

    def toggle_category_filter(self, category: str) -> None:
        self.toggle_filter(Filter(FilterType.CATEGORY, category, _title(category)))

    def toggle_label_filter(self, label_id: str, label_name: str) -> None:
        self.toggle_filter(Filter(FilterType.LABEL, label_id, label_name))

    def has_filter(self, filter_id: str) -> bool:
        return any(f.id == filter_id for f in self.active_filters)

    # ── Sort ────────────────────────────────────────────────────────────────────

    def set_sort(self, sort: Sort) -> None:
        self.sort = sort
        self.page = 1

    def toggle_sort_order(self) -> None:
        order = SortOrder.DESC if self.sort.order == SortOrder.ASC else SortOrder.ASC
        self.set_sort(Sort(self.sort.field, order))

    # ── Layout ──────────────────────────────────────────────────────────────────

    def set_view(self, view: InboxView) -> None:
        self.view = view

    # ── Recently read ───────────────────────────────────────────────────────────

    def mark_recently_read(self, ids: Iterable[str]) -> None:
        """Remember messages read this session so the list can keep them visible
        under an unread filter until ``clear_recently_read``."""
        self.recently_read_ids.update(ids)

    def mark_recently_unread(self, ids: Iterable[str]) -> None:
        self.recently_read_ids.difference_update(ids)

    def clear_recently_read(self) -> None:
        self.recently_read_ids = set()

    # ── Selection ───────────────────────────────────────────────────────────────

    def select_message(self, message_id: str | None) -> None:
        """Open a message in the detail pane, or close the pane with ``None``.

        Independent of multi-select mode; use ``click_message`` when the caller
        wants the mode to decide.
        """
        if message_id is not None and message_id not in self._messages:
            logger.debug("select_message: %s is not loaded; ignoring", message_id)
            return
        self.selected_message_id = message_id
        if message_id is not None:
            self.last_selected_id = message_id

    def click_message(self, message_id: str) -> None:
        """Check the message in multi-select mode, otherwise open it."""
        if self.is_multi_select_mode:
            self.toggle_message_selection(message_id)
        else:
            self.select_message(message_id)

    def toggle_message_selection(self, message_id: str) -> None:
        if message_id not in self._messages:
            return
        if message_id in self.selected_ids:
            self.selected_ids = self.selected_ids - {message_id}
        else:
            self.selected_ids = self.selected_ids | {message_id}
        self.is_multi_select_mode = bool(self.selected_ids)
        self.last_selected_id = message_id

    def select_range(self, message_id: str) -> None:
        """Shift-click: check everything between the last anchor and ``message_id``."""
        ids = self._messages.ids()
        if message_id not in ids:
            return
        anchor = self.last_selected_id
        if anchor is None or anchor not in ids:
            span = [message_id]
        else:
            lo, hi = sorted((ids.index(anchor), ids.index(message_id)))
            span = ids[lo : hi + 1]
        self.selected_ids = self.selected_ids | set(span)
        self.is_multi_select_mode = True
        self.last_selected_id = message_id

    def select_all(self, ids: Iterable[str] | None = None) -> None:
        loaded = set(self._messages.ids())
        wanted = loaded if ids is None else set(ids) & loaded
        self.selected_ids = wanted
        self.is_multi_select_mode = bool(wanted)

    def toggle_multi_select_mode(self) -> None:
        if self.is_multi_select_mode:
            self.is_multi_select_mode = False
            self.selected_ids = set()
        else:
            self.is_multi_select_mode = True

    def clear_selection(self) -> None:
        self.selected_ids = set()
        self.is_multi_select_mode = False

    # ── Pagination ──────────────────────────────────────────────────────────────

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_messages / self.page_size) if self.page_size else 0

    def set_page(self, page: int) -> None:
        self.page = max(1, page)

    def set_page_size(self, size: int) -> None:
        if size <= 0:
            return
        self.page_size = size
        self.page = 1

    def set_total_messages(self, total: int) -> None:
        self.total_messages = max(0, total)

    def next_page(self) -> None:
        if self.page < self.total_pages:
            self.page += 1

    def prev_page(self) -> None:
        if self.page > 1:
            self.page -= 1

    # ── Selectors ───────────────────────────────────────────────────────────────

    @property
    def selected_count(self) -> int:
        return len(self.selected_ids)

    @property
    def has_selection(self) -> bool:
        return bool(self.selected_ids) or self.selected_message_id is not None

    def is_selected(self, message_id: str) -> bool:
        return message_id in self.selected_ids or message_id == self.selected_message_id

    @property
    def active_filter_count(self) -> int:
        return len(self.active_filters)

    @property
    def has_filters(self) -> bool:
        return bool(self.active_filters) or bool(self.search_query)

    def list_params(self) -> dict[str, str]:
        """Query parameters for the list-loading collaborator's next fetch.

        Multi-valued filters (two priorities, say) are comma-joined.
        """
        params: dict[str, str] = {
            "page": str(self.page),
            "pageSize": str(self.page_size),
            "folder": self.active_folder.value,
            "sortField": self.sort.field.value,
            "sortOrder": self.sort.order.value,
        }
        if self.active_label:
            params["label"] = self.active_label
        if self.search_query:
            params["search"] = self.search_query

        grouped: dict[FilterType, list[str]] = {}
        for flt in self.active_filters:
            grouped.setdefault(flt.type, []).append(flt.value)
        for ftype, key in (
            (FilterType.STATUS, "status"),
            (FilterType.PRIORITY, "priority"),
            (FilterType.CATEGORY, "category"),
            (FilterType.LABEL, "labelIds"),
        ):
            if grouped.get(ftype):
                params[key] = ",".join(grouped[ftype])
        has = grouped.get(FilterType.HAS, [])
        if "attachments" in has:
            params["hasAttachments"] = "true"
        if "starred" in has:
            params["isStarred"] = "true"
        return params

    # ── Internal ────────────────────────────────────────────────────────────────

    def _filters_changed(self) -> None:
        self.page = 1
        self._drop_selection()

    def _drop_selection(self) -> None:
        self.selected_ids = set()
        self.is_multi_select_mode = False

    def _prune_selection(self) -> None:
        loaded = set(self._messages.ids())
        if self.selected_ids - loaded:
            self.selected_ids = self.selected_ids & loaded
            if not self.selected_ids:
                self.is_multi_select_mode = False
        if self.selected_message_id is not None and self.selected_message_id not in loaded:
            self.selected_message_id = None
        if self.last_selected_id is not None and self.last_selected_id not in loaded:
            self.last_selected_id = None
