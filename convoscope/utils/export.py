"""
Export of record sets to JSON and CSV.
"""

import csv
import io
import logging
from datetime import datetime
from pathlib import Path

import orjson

from ..core.constants import CSV_COLUMNS

logger = logging.getLogger(__name__)

EXPORT_PREFIXES = {
    "json": "filtered_conversations",
    "csv": "conversations_export",
}


def records_to_json(records) -> bytes:
    """Serialize records to pretty-printed JSON."""
    return orjson.dumps([record.to_dict() for record in records], option=orjson.OPT_INDENT_2)


def _csv_row(record) -> list:
    return [
        record.conversation_id,
        record.segment_id or "",
        record.customer_id,
        record.start_time or "",
        record.end_time or "",
        f"{record.duration_minutes:.2f}",
        record.message_count,
        record.user_message_count,
        record.agent_message_count,
        record.language or "",
        record.country or "",
        record.ip_address or "",
    ]


def records_to_csv(records) -> str:
    """Serialize records to CSV with the fixed export columns, every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for record in records:
        writer.writerow(_csv_row(record))
    return buffer.getvalue()


def export_filename(kind: str, now: datetime | None = None) -> str:
    """Default file name for an export, e.g. conversations_export_2024-01-05T09-30-00.csv"""
    if kind not in EXPORT_PREFIXES:
        raise ValueError(f"Unknown export format: {kind}")

    now = now or datetime.now()
    stamp = now.replace(microsecond=0).isoformat().replace(":", "-").replace(".", "-")
    return f"{EXPORT_PREFIXES[kind]}_{stamp}.{kind}"


def write_export(records, kind: str, output: str | Path | None = None) -> Path:
    """Write records to a file in the given format.

    Args:
        records: Records to export
        kind: "json" or "csv"
        output: Target path; defaults to export_filename(kind) in the working directory

    Returns:
        The path written
    """
    records = list(records)
    path = Path(output) if output else Path(export_filename(kind))

    if kind == "json":
        path.write_bytes(records_to_json(records))
    elif kind == "csv":
        path.write_text(records_to_csv(records), encoding="utf-8")
    else:
        raise ValueError(f"Unknown export format: {kind}")

    logger.info(f"Exported {len(records)} records to {path}")
    return path
