"""
Transcript loading and message extraction.

This module handles:
- Reading a transcript file (a single JSON object or an array of objects)
- Flattening every input record into a sequence of tagged Message objects
- Building the baseline segment set exactly as the file encodes it
"""

import logging
from pathlib import Path
from typing import Any

import orjson  # Faster JSON parsing

from .models import ConversationMetadata, Message, Record

logger = logging.getLogger(__name__)


class TranscriptLoadError(Exception):
    """Raised when a transcript file cannot be read or decoded."""


def parse_transcripts(data: bytes | str) -> list[dict[str, Any]]:
    """Decode transcript JSON into a list of raw conversation records.

    Args:
        data: JSON text or bytes

    Returns:
        List of raw records; a single top-level object becomes a one-item list

    Raises:
        TranscriptLoadError: If the data is not valid JSON or not an object/array
    """
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise TranscriptLoadError(str(e)) from e

    if isinstance(parsed, dict):
        return [parsed]

    if not isinstance(parsed, list):
        raise TranscriptLoadError(f"Expected a JSON object or array, got {type(parsed).__name__}")

    records = []
    for position, item in enumerate(parsed):
        if isinstance(item, dict):
            records.append(item)
        else:
            logger.warning(f"Skipping non-object entry at position {position}")
    return records


def load_transcripts(path: str | Path) -> list[dict[str, Any]]:
    """Read and decode a transcript file.

    Raises:
        TranscriptLoadError: If the file cannot be read or decoded
    """
    path = Path(path)
    try:
        data = path.read_bytes()  # Binary mode for orjson
    except OSError as e:
        raise TranscriptLoadError(f"Cannot read {path}: {e}") from e

    records = parse_transcripts(data)
    logger.info(f"Loaded {len(records)} records from {path}")
    return records


def _raw_messages(raw: dict) -> list[dict]:
    messages = raw.get("messages") or []
    if not isinstance(messages, list):
        return []
    return [msg for msg in messages if isinstance(msg, dict)]


def _conversation_id(raw: dict) -> str:
    value = raw.get("conversation_id")
    return "" if value is None else str(value)


def extract_messages(raw_conversations: list[dict[str, Any]]) -> tuple[Message, ...]:
    """Flatten input records into messages tagged with their conversation.

    Input order is preserved and nothing is deduplicated. Each message carries
    a copy of its source record's metadata.
    """
    messages = []

    for raw in raw_conversations:
        conversation_id = _conversation_id(raw)
        metadata = ConversationMetadata.from_raw(raw)

        for raw_msg in _raw_messages(raw):
            messages.append(Message.from_raw(raw_msg, conversation_id, metadata))

    logger.info(f"Extracted {len(messages)} original messages")
    return tuple(messages)


def build_baseline_segments(raw_conversations: list[dict[str, Any]]) -> tuple[Record, ...]:
    """Build one record per input record, trusting the file's own segmentation.

    Messages keep their input order and start/end times come from the record's
    own fields when present. Records without messages are kept with a
    message count of 0.
    """
    segments = []

    for index, raw in enumerate(raw_conversations):
        conversation_id = _conversation_id(raw)
        metadata = ConversationMetadata.from_raw(raw)
        messages = [Message.from_raw(raw_msg, conversation_id, metadata) for raw_msg in _raw_messages(raw)]

        segment_id = raw.get("segment_id")
        start_time = raw.get("start_time")
        end_time = raw.get("end_time")

        segments.append(
            Record.build(
                conversation_id=conversation_id,
                segment_id=None if segment_id is None else str(segment_id),
                messages=messages,
                metadata=metadata,
                start_time=None if start_time is None else str(start_time),
                end_time=None if end_time is None else str(end_time),
                index=index,
            )
        )

    return tuple(segments)
