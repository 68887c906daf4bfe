"""
Constants used throughout Convoscope.

The CSV column list and sort option names are part of the CLI surface.
Change them only together with the export and CLI tests.
"""

# Prefix for segment ids produced by gap-based re-segmentation ("seg_1", "seg_2", ...)
SEGMENT_ID_PREFIX = "seg_"

# Number of records shown per page
PAGE_SIZE = 50

# Country value that carries no information and is hidden from filter options
UNKNOWN_COUNTRY = "unknown"

# Agent id placeholder that is not worth displaying
UNKNOWN_AGENT_ID = "unknown"

CSV_COLUMNS = [
    "Conversation ID",
    "Segment ID",
    "Customer ID",
    "Start Time",
    "End Time",
    "Duration (min)",
    "Message Count",
    "User Messages",
    "Agent Messages",
    "Language",
    "Country",
    "IP Address",
]

SORT_OPTIONS = [
    "date-desc",
    "date-asc",
    "messages-desc",
    "messages-asc",
    "duration-desc",
    "duration-asc",
    "avg-response-desc",
    "avg-response-asc",
]

DEFAULT_SORT = "date-desc"
