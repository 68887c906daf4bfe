"""
View controller for switching between segment and conversation views.

The controller is immutable: every transition returns a new controller and
leaves the old one (and its record sets) intact. It owns three record sets:
- baseline: the segments exactly as loaded, restored when leaving conversation view
- merged: the full conversations, once computed
- active: what the user is currently looking at (baseline, merged, or a
  fresh gap-based re-segmentation), from which the displayed set is derived
  by filtering and sorting
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import NamedTuple

from ..api.records import get_paginated_records
from .constants import DEFAULT_SORT, PAGE_SIZE
from .filters import FilterCriteria, apply_filters, filter_options, quick_stats, sort_records
from .loader import build_baseline_segments, extract_messages
from .models import Message, Record
from .segmenter import merge, resegment

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    SEGMENT = "segment"
    CONVERSATION = "conversation"


class ViewTransition(NamedTuple):
    """Outcome of a view change.

    applied is False when the change was a no-op; warning then explains why
    (or is None when there was simply nothing to do).
    """

    controller: "ViewController"
    applied: bool
    warning: str | None = None


@dataclass(frozen=True)
class ViewController:
    messages: tuple[Message, ...]
    baseline: tuple[Record, ...]
    active: tuple[Record, ...]
    merged: tuple[Record, ...] | None = None
    mode: ViewMode = ViewMode.SEGMENT
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    sort_by: str = DEFAULT_SORT
    page_size: int = PAGE_SIZE
    current_page: int = 1
    displayed: tuple[Record, ...] = field(default=(), compare=False)

    @classmethod
    def from_raw(
        cls,
        raw_conversations: list[dict],
        criteria: FilterCriteria | None = None,
        sort_by: str = DEFAULT_SORT,
        page_size: int = PAGE_SIZE,
    ) -> "ViewController":
        """Start in segment view on the segmentation the input already encodes."""
        baseline = build_baseline_segments(raw_conversations)
        controller = cls(
            messages=extract_messages(raw_conversations),
            baseline=baseline,
            active=baseline,
            criteria=criteria or FilterCriteria(),
            sort_by=sort_by,
            page_size=page_size,
        )
        return controller._refreshed()

    def _refreshed(self, **changes) -> "ViewController":
        """Apply changes, re-run filters and sort, and go back to the first page."""
        updated = replace(self, current_page=1, **changes)
        displayed = sort_records(apply_filters(updated.active, updated.criteria), updated.sort_by)
        return replace(updated, displayed=tuple(displayed))

    def _skipped(self, warning: str | None = None) -> ViewTransition:
        if warning:
            logger.warning(warning)
        return ViewTransition(self, False, warning)

    def show_conversations(self) -> ViewTransition:
        """Switch to conversation view, merging all messages per conversation id."""
        if self.mode is ViewMode.CONVERSATION:
            return self._skipped()
        if not self.messages:
            return self._skipped("No original messages to merge")

        merged = tuple(merge(self.messages))
        return ViewTransition(self._refreshed(mode=ViewMode.CONVERSATION, merged=merged, active=merged), True)

    def show_segments(self) -> ViewTransition:
        """Switch to segment view by restoring the baseline captured at load time."""
        if self.mode is ViewMode.SEGMENT and self.active is self.baseline:
            return self._skipped()
        if not self.baseline:
            return self._skipped("No original segments to restore")

        logger.info(f"Restored {len(self.baseline)} original segments")
        return ViewTransition(self._refreshed(mode=ViewMode.SEGMENT, active=self.baseline), True)

    def toggle_view_mode(self) -> ViewTransition:
        if self.mode is ViewMode.SEGMENT:
            return self.show_conversations()
        return self.show_segments()

    def resegment(self, gap_minutes: float) -> ViewTransition:
        """Replace the active set with gap-based segments and switch to segment view.

        Raises:
            ValueError: If gap_minutes is negative or not a number
        """
        if not self.messages:
            return self._skipped("No original messages to re-segment")

        segments = tuple(resegment(self.messages, gap_minutes))
        return ViewTransition(self._refreshed(mode=ViewMode.SEGMENT, active=segments), True)

    def with_filters(self, criteria: FilterCriteria) -> "ViewController":
        return self._refreshed(criteria=criteria)

    def reset_filters(self) -> "ViewController":
        return self._refreshed(criteria=FilterCriteria())

    def with_sort(self, sort_by: str) -> "ViewController":
        return self._refreshed(sort_by=sort_by)

    def go_to_page(self, page: int) -> "ViewController":
        page_info = get_paginated_records(self.displayed, page, self.page_size)
        return replace(self, current_page=page_info["page"])

    def page(self, page: int | None = None) -> dict:
        """One page of the displayed set (the current page by default)."""
        return get_paginated_records(self.displayed, page or self.current_page, self.page_size)

    @property
    def is_filtered(self) -> bool:
        return len(self.displayed) != len(self.active)

    @property
    def stats(self) -> dict[str, int]:
        return quick_stats(self.displayed)

    @property
    def filter_options(self) -> dict:
        return filter_options(self.active)
