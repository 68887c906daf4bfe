"""
Persistent read/unread tracking for conversations.

The store is a JSON array of conversation ids kept at
~/.convoscope/read_conversations.json. Read state is keyed by conversation
id, so marking a conversation read covers every one of its segments.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ReadStateStore:
    """Set of read conversation ids, saved on every change."""

    def __init__(self, path: str | Path | None = None):
        if path is None:
            # Default to ~/.convoscope/read_conversations.json
            self.path = Path.home() / ".convoscope" / "read_conversations.json"
        else:
            self.path = Path(path)

        self._read = self._load()

    def _load(self) -> set[str]:
        if not self.path.exists():
            return set()

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable read state at {self.path}: {e}")
            return set()

        if not isinstance(data, list):
            logger.warning(f"Ignoring malformed read state at {self.path}")
            return set()

        return {str(item) for item in data}

    def _save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(sorted(self._read), f, indent=2)

    def is_read(self, conversation_id: str) -> bool:
        return conversation_id in self._read

    def mark_read(self, conversation_id: str):
        self._read.add(conversation_id)
        self._save()

    def mark_unread(self, conversation_id: str):
        self._read.discard(conversation_id)
        self._save()

    def toggle(self, conversation_id: str) -> bool:
        """Flip the read state and return the new value."""
        if self.is_read(conversation_id):
            self.mark_unread(conversation_id)
            return False
        self.mark_read(conversation_id)
        return True

    def clear(self):
        """Mark every conversation as unread."""
        self._read.clear()
        self._save()

    def all(self) -> list[str]:
        return sorted(self._read)

    def __len__(self) -> int:
        return len(self._read)
