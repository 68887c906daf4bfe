"""
Filtering, sorting and summary statistics over a record set.

These operate on whatever records the view currently exposes (segments or
merged conversations) and never modify them.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone

from .constants import SORT_OPTIONS, UNKNOWN_COUNTRY
from .models import Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterCriteria:
    """User-selected filters. None (or an empty search) disables a filter."""

    search: str = ""
    date_from: date | None = None
    date_to: date | None = None
    language: str | None = None
    country: str | None = None
    min_messages: int | None = None
    max_messages: int | None = None
    min_duration: float | None = None
    max_duration: float | None = None

    @property
    def is_empty(self) -> bool:
        return self == FilterCriteria()


def _matches_search(record: Record, term: str) -> bool:
    if term in record.conversation_id.lower() or term in record.customer_id.lower():
        return True
    return any(term in msg.text.lower() for msg in record.messages)


def _matches_dates(record: Record, criteria: FilterCriteria) -> bool:
    started = record.start_timestamp
    if started is None:
        return False

    # Date bounds are calendar days in UTC, both ends inclusive
    if criteria.date_from is not None:
        lower = datetime.combine(criteria.date_from, time.min, tzinfo=timezone.utc)
        if started < lower:
            return False
    if criteria.date_to is not None:
        upper = datetime.combine(criteria.date_to, time(23, 59, 59), tzinfo=timezone.utc)
        if started > upper:
            return False
    return True


def matches(record: Record, criteria: FilterCriteria) -> bool:
    """Check a single record against every active filter."""
    term = criteria.search.lower().strip()
    if term and not _matches_search(record, term):
        return False

    if (criteria.date_from is not None or criteria.date_to is not None) and not _matches_dates(record, criteria):
        return False

    if criteria.language is not None and record.language != criteria.language:
        return False
    if criteria.country is not None and record.country != criteria.country:
        return False

    if criteria.min_messages is not None and record.message_count < criteria.min_messages:
        return False
    if criteria.max_messages is not None and record.message_count > criteria.max_messages:
        return False

    if criteria.min_duration is not None and record.duration_minutes < criteria.min_duration:
        return False
    if criteria.max_duration is not None and record.duration_minutes > criteria.max_duration:
        return False

    return True


def apply_filters(records, criteria: FilterCriteria | None) -> list[Record]:
    """Return the records matching criteria, in their original order."""
    if criteria is None or criteria.is_empty:
        return list(records)
    return [record for record in records if matches(record, criteria)]


def _start_sort_key(record: Record, newest_first: bool):
    started = record.start_timestamp
    if started is None:
        # Unparseable dates go last in either direction
        return (1, 0.0)
    seconds = started.timestamp()
    return (0, -seconds if newest_first else seconds)


def sort_records(records, sort_by: str) -> list[Record]:
    """Sort records by one of SORT_OPTIONS.

    The sort is stable; an unknown option leaves the order unchanged. A missing
    average response time sorts as 0.
    """
    records = list(records)

    if sort_by not in SORT_OPTIONS:
        logger.warning(f"Unknown sort option {sort_by!r}, keeping current order")
        return records

    field_name, direction = sort_by.rsplit("-", 1)
    descending = direction == "desc"

    if field_name == "date":
        return sorted(records, key=lambda r: _start_sort_key(r, descending))
    if field_name == "messages":
        return sorted(records, key=lambda r: r.message_count, reverse=descending)
    if field_name == "duration":
        return sorted(records, key=lambda r: r.duration_minutes, reverse=descending)
    return sorted(records, key=lambda r: r.average_response_minutes or 0, reverse=descending)


def filter_options(records) -> dict:
    """Collect the values a user can pick from in the language/country/date filters."""
    languages = set()
    countries = set()
    dates = []

    for record in records:
        if record.language:
            languages.add(record.language)
        if record.country and record.country != UNKNOWN_COUNTRY:
            countries.add(record.country)
        started = record.start_timestamp
        if started is not None:
            dates.append(started.date())

    return {
        "languages": sorted(languages),
        "countries": sorted(countries),
        "date_from": min(dates) if dates else None,
        "date_to": max(dates) if dates else None,
    }


def quick_stats(records) -> dict[str, int]:
    """Headline counts for a record set."""
    records = list(records)
    return {
        "segments": len(records),
        "conversations": len({r.conversation_id for r in records}),
        "customers": len({r.customer_id for r in records}),
        "messages": sum(r.message_count for r in records),
    }
