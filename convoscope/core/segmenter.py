"""
Segmentation and merge engine.

Both operations start from the flat message set extracted at load time:
- merge() rebuilds one full conversation per conversation id
- resegment() partitions each conversation's chronological message stream
  wherever two consecutive messages are further apart than a gap threshold

Neither operation deduplicates: a message present twice in the input is
present twice in the output.
"""

import logging
import math
from datetime import datetime, timedelta, timezone

from .constants import SEGMENT_ID_PREFIX
from .models import Message, Record

logger = logging.getLogger(__name__)

# Sort key placeholder for messages without a usable timestamp
_NO_TIME = datetime.min.replace(tzinfo=timezone.utc)


def group_by_conversation(messages) -> dict[str, list[Message]]:
    """Group messages by conversation id, in first-seen order of each id."""
    groups: dict[str, list[Message]] = {}
    for message in messages:
        groups.setdefault(message.conversation_id, []).append(message)
    return groups


def sort_by_time(messages) -> list[Message]:
    """Stable ascending sort by timestamp.

    Messages without a parseable timestamp keep their relative order and go
    after every timestamped message.
    """
    return sorted(messages, key=lambda m: (m.timestamp is None, m.timestamp or _NO_TIME))


def _gap_threshold(gap_minutes) -> timedelta:
    if isinstance(gap_minutes, bool) or not isinstance(gap_minutes, (int, float)):
        raise ValueError(f"gap_minutes must be a number, got {gap_minutes!r}")
    if math.isnan(gap_minutes) or gap_minutes < 0:
        raise ValueError(f"gap_minutes must not be negative, got {gap_minutes!r}")
    try:
        return timedelta(minutes=gap_minutes)
    except OverflowError:
        # Wider than any representable interval: nothing ever splits
        return timedelta.max


def _gap_exceeds(previous: Message, current: Message, gap: timedelta) -> bool:
    # Messages without a timestamp never open a new segment
    if previous.timestamp is None or current.timestamp is None:
        return False
    return current.timestamp - previous.timestamp > gap


def resegment(messages, gap_minutes: float) -> list[Record]:
    """Partition every conversation into segments separated by inactivity gaps.

    A new segment starts at a message whose time is more than gap_minutes after
    the immediately preceding message (not the segment start). Segment ids are
    "seg_1", "seg_2", ... counted per conversation.

    Args:
        messages: Flat message set tagged by conversation id
        gap_minutes: Maximum idle time within one segment

    Returns:
        Segments grouped by conversation, each conversation's segments in
        chronological order

    Raises:
        ValueError: If gap_minutes is negative or not a number
    """
    gap = _gap_threshold(gap_minutes)
    segments: list[Record] = []

    for conversation_id, group in group_by_conversation(messages).items():
        ordered = sort_by_time(group)
        if not ordered:
            continue

        # Metadata of the first occurrence is canonical for the conversation
        metadata = group[0].metadata
        segment_number = 0

        def close_segment(segment_messages: list[Message]):
            nonlocal segment_number
            segment_number += 1
            segments.append(
                Record.build(
                    conversation_id=conversation_id,
                    segment_id=f"{SEGMENT_ID_PREFIX}{segment_number}",
                    messages=segment_messages,
                    metadata=metadata,
                    index=len(segments),
                )
            )

        current = [ordered[0]]
        for previous, message in zip(ordered, ordered[1:]):
            if _gap_exceeds(previous, message, gap):
                close_segment(current)
                current = [message]
            else:
                current.append(message)

        close_segment(current)

    logger.info(f"Re-segmented into {len(segments)} segments with {gap_minutes}-minute gap threshold")
    return segments


def merge(messages) -> list[Record]:
    """Rebuild one full conversation per conversation id.

    Returns:
        Conversations in first-seen order of their ids, with segment_id None
        and messages sorted by time
    """
    conversations: list[Record] = []

    for conversation_id, group in group_by_conversation(messages).items():
        ordered = sort_by_time(group)
        if not ordered:
            continue

        conversations.append(
            Record.build(
                conversation_id=conversation_id,
                segment_id=None,
                messages=ordered,
                metadata=group[0].metadata,
                index=len(conversations),
            )
        )

    logger.info(f"Merged into {len(conversations)} full conversations")
    return conversations
