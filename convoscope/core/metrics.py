"""
Derived metrics for segments and conversations.

All functions here are pure and tolerant: missing or unparseable timestamps
degrade a metric (to 0 or None) instead of raising.
"""

from datetime import datetime, timezone
from typing import Any, NamedTuple


class RecordMetrics(NamedTuple):
    duration_minutes: float
    message_count: int
    average_response_minutes: float | None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime.

    A trailing "Z" means UTC and naive values are taken as UTC, so every
    parsed value can be compared with every other. Returns None for missing
    or unparseable input.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def duration_minutes(start: Any, end: Any) -> float:
    """Minutes from start to end, or 0 when either end is missing or unparseable.

    Negative durations (end before start) are passed through unchanged.
    """
    start_dt = parse_timestamp(start)
    end_dt = parse_timestamp(end)
    if start_dt is None or end_dt is None:
        return 0.0
    return (end_dt - start_dt).total_seconds() / 60


def average_response_minutes(messages) -> float | None:
    """Mean user->agent response time over consecutive message pairs.

    Only adjacent (user, agent) pairs count, and only when the agent message
    is not earlier than the user message. Messages are expected to be
    time-sorted already.

    Returns:
        Average in minutes, or None with fewer than 2 messages or no qualifying pair
    """
    if not messages or len(messages) < 2:
        return None

    response_times = []
    for current, following in zip(messages, messages[1:]):
        if current.sender != "user" or following.sender != "agent":
            continue
        if current.timestamp is None or following.timestamp is None:
            continue

        response_time = (following.timestamp - current.timestamp).total_seconds() / 60
        if response_time >= 0:
            response_times.append(response_time)

    if not response_times:
        return None

    return sum(response_times) / len(response_times)


def compute_metrics(record) -> RecordMetrics:
    """Recompute the derived metrics of a record from its own fields."""
    return RecordMetrics(
        duration_minutes=duration_minutes(record.start_time, record.end_time),
        message_count=len(record.messages),
        average_response_minutes=average_response_minutes(record.messages),
    )
