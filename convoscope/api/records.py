"""
Record listing helpers with pagination support.
"""

from collections import Counter

from ..core.constants import PAGE_SIZE


def get_paginated_records(records: list, page: int = 1, per_page: int = PAGE_SIZE, include_all: bool = False) -> dict:
    """
    Return one page of records, or all of them.

    Args:
        records: Full list of records (already filtered and sorted)
        page: Page number (1-indexed)
        per_page: Items per page
        include_all: If True, return all records on a single page

    Returns:
        Dictionary with records and pagination info
    """
    records = list(records)
    total = len(records)

    if include_all:
        return {
            "records": records,
            "total": total,
            "page": 1,
            "per_page": total,
            "total_pages": 1,
            "start_index": 0,
            "end_index": total,
        }

    if per_page < 1:
        per_page = PAGE_SIZE

    # An empty set still has one (empty) page
    total_pages = max(1, (total + per_page - 1) // per_page)

    # Validate page number
    if page < 1:
        page = 1
    elif page > total_pages:
        page = total_pages

    # Get page slice
    start_idx = (page - 1) * per_page
    end_idx = start_idx + per_page
    page_records = records[start_idx:end_idx]

    return {
        "records": page_records,
        "total": total,
        "page": page,
        "per_page": per_page,
        "total_pages": total_pages,
        "start_index": start_idx,
        "end_index": min(end_idx, total),
    }


def get_records_summary(records: list) -> dict:
    """
    Get summary statistics about records without returning them.

    Args:
        records: Full list of records

    Returns:
        Summary statistics
    """
    if not records:
        return {"total": 0, "messages": 0, "user_messages": 0, "agent_messages": 0, "by_language": {}}

    by_language = Counter()
    messages = 0
    user_messages = 0
    agent_messages = 0

    for record in records:
        by_language[record.language or "unknown"] += 1
        messages += record.message_count
        user_messages += record.user_message_count
        agent_messages += record.agent_message_count

    return {
        "total": len(records),
        "messages": messages,
        "user_messages": user_messages,
        "agent_messages": agent_messages,
        "by_language": dict(by_language),
    }
