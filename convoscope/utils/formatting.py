"""
Human-readable rendering of records for the terminal.
"""

import math

from ..core.constants import UNKNOWN_AGENT_ID, UNKNOWN_COUNTRY
from ..core.metrics import parse_timestamp


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_duration(minutes: float | None) -> str:
    """Format minutes as "< 1m", "12m" or "2h 5m"."""
    if minutes is None or minutes < 1:
        return "< 1m"

    total = _round_half_up(minutes)
    if total < 60:
        return f"{total}m"

    hours, mins = divmod(total, 60)
    return f"{hours}h {mins}m"


def format_date(value: str | None) -> str:
    """Format a timestamp as e.g. "Jan 5, 2024"."""
    if not value:
        return "N/A"
    parsed = parse_timestamp(value)
    if parsed is None:
        return value
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def format_time(value: str | None) -> str:
    """Format a timestamp as e.g. "09:30 AM"."""
    if not value:
        return "N/A"
    parsed = parse_timestamp(value)
    if parsed is None:
        return value
    return parsed.strftime("%I:%M %p")


def short_id(value: str, length: int = 8) -> str:
    return f"{value[:length]}..." if len(value) > length else value


def _sender_label(message) -> str:
    if not message.is_agent:
        return "👤 User"
    if message.agent_id and message.agent_id != UNKNOWN_AGENT_ID:
        return f"🎧 Agent ({message.agent_id[:8]})"
    return "🎧 Agent"


def render_messages(messages, indent: str = "    ") -> list[str]:
    if not messages:
        return [f"{indent}No messages"]

    lines = []
    for message in messages:
        lines.append(f"{indent}{_sender_label(message)} · {format_time(message.time)}")
        for text_line in (message.text or "").splitlines() or [""]:
            lines.append(f"{indent}  {text_line}")
    return lines


def render_record(record, mode: str, is_read: bool = False, expand: bool = False) -> str:
    """Render a record as a text card.

    Args:
        record: Segment or conversation to render
        mode: "segment" or "conversation"; decides the card label
        is_read: Whether the conversation is marked read (unread cards get a marker)
        expand: Also render every message
    """
    if mode == "segment":
        label = f"Segment #{record.segment_id or record.index + 1}"
    else:
        label = "Conversation"

    marker = "  " if is_read else "● "
    lines = [f"{marker}{label} (ID: {short_id(record.conversation_id)})"]

    meta = [
        f"📅 {format_date(record.start_time)}",
        f"⏱️ {format_duration(record.duration_minutes)}",
        f"💬 {record.message_count} msgs",
    ]
    if record.average_response_minutes is not None:
        meta.append(f"⚡ Avg: {format_duration(record.average_response_minutes)}")
    if record.language:
        meta.append(f"[{record.language.upper()}]")
    if record.country and record.country != UNKNOWN_COUNTRY:
        meta.append(f"[{record.country}]")
    meta.append(f"👤 {record.user_message_count}")
    meta.append(f"🎧 {record.agent_message_count}")
    lines.append("   " + "  ".join(meta))

    if expand:
        lines.extend(render_messages(record.messages))

    return "\n".join(lines)
