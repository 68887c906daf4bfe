"""
Data model for chat transcripts.

Messages are created once from the loaded file and never mutated. Records
(segments or merged conversations) are rebuilt from messages whenever the
view changes, and always carry metrics that match their messages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .metrics import average_response_minutes, duration_minutes, parse_timestamp


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


class Sender(str, Enum):
    """Who wrote a message."""

    USER = "user"
    AGENT = "agent"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Sender":
        try:
            return cls(value)
        except (ValueError, TypeError):
            return cls.UNKNOWN


@dataclass(frozen=True)
class ConversationMetadata:
    """Static per-conversation attributes, shared by all of its messages."""

    customer_id: str = ""
    language: str | None = None
    country: str | None = None
    ip_address: str | None = None

    @classmethod
    def from_raw(cls, raw: dict) -> "ConversationMetadata":
        return cls(
            customer_id=_optional_str(raw.get("customer_id")) or "",
            language=_optional_str(raw.get("language")),
            country=_optional_str(raw.get("country")),
            ip_address=_optional_str(raw.get("ip_address")),
        )


@dataclass(frozen=True)
class Message:
    """A single chat message tagged with its owning conversation."""

    conversation_id: str
    sender: Sender
    time: str | None
    text: str = ""
    agent_id: str | None = None
    metadata: ConversationMetadata = field(default_factory=ConversationMetadata)
    timestamp: datetime | None = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "sender", Sender.parse(self.sender))
        object.__setattr__(self, "timestamp", parse_timestamp(self.time))

    @classmethod
    def from_raw(cls, raw: dict, conversation_id: str, metadata: ConversationMetadata) -> "Message":
        """Build a message from one entry of an input record's "messages" array."""
        return cls(
            conversation_id=conversation_id,
            sender=Sender.parse(raw.get("from")),
            time=_optional_str(raw.get("time")),
            text=_optional_str(raw.get("text")) or "",
            agent_id=_optional_str(raw.get("agent_id")),
            metadata=metadata,
        )

    @property
    def is_user(self) -> bool:
        return self.sender is Sender.USER

    @property
    def is_agent(self) -> bool:
        return self.sender is Sender.AGENT

    def to_dict(self) -> dict:
        """Convert back to the input-file message shape."""
        data = {"from": self.sender.value}
        if self.agent_id is not None:
            data["agent_id"] = self.agent_id
        data["time"] = self.time
        data["text"] = self.text
        return data


@dataclass(frozen=True)
class Record:
    """A segment or a merged conversation.

    segment_id is None in conversation view. Use Record.build() so that the
    derived metrics are computed from the messages.
    """

    conversation_id: str
    segment_id: str | None
    messages: tuple[Message, ...]
    metadata: ConversationMetadata
    start_time: str | None
    end_time: str | None
    duration_minutes: float
    message_count: int
    average_response_minutes: float | None
    index: int = 0

    @classmethod
    def build(
        cls,
        conversation_id: str,
        segment_id: str | None,
        messages,
        metadata: ConversationMetadata,
        start_time: str | None = None,
        end_time: str | None = None,
        index: int = 0,
    ) -> "Record":
        """Create a record and compute its metrics.

        Args:
            conversation_id: Owning conversation
            segment_id: Segment id, or None for a merged conversation
            messages: Messages in display order
            metadata: Conversation metadata
            start_time: Explicit start time; defaults to the first message's time
            end_time: Explicit end time; defaults to the last message's time
            index: Position within the record set being built
        """
        messages = tuple(messages)
        if start_time is None and messages:
            start_time = messages[0].time
        if end_time is None and messages:
            end_time = messages[-1].time

        return cls(
            conversation_id=conversation_id,
            segment_id=segment_id,
            messages=messages,
            metadata=metadata,
            start_time=start_time,
            end_time=end_time,
            duration_minutes=duration_minutes(start_time, end_time),
            message_count=len(messages),
            average_response_minutes=average_response_minutes(messages),
            index=index,
        )

    @property
    def customer_id(self) -> str:
        return self.metadata.customer_id

    @property
    def language(self) -> str | None:
        return self.metadata.language

    @property
    def country(self) -> str | None:
        return self.metadata.country

    @property
    def ip_address(self) -> str | None:
        return self.metadata.ip_address

    @property
    def start_timestamp(self) -> datetime | None:
        return parse_timestamp(self.start_time)

    @property
    def user_message_count(self) -> int:
        return sum(1 for msg in self.messages if msg.is_user)

    @property
    def agent_message_count(self) -> int:
        return sum(1 for msg in self.messages if msg.is_agent)

    def to_dict(self) -> dict:
        """Convert to the JSON export shape (input-file fields plus metrics)."""
        return {
            "conversation_id": self.conversation_id,
            "segment_id": self.segment_id,
            "customer_id": self.customer_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "language": self.language,
            "country": self.country,
            "ip_address": self.ip_address,
            "messages": [msg.to_dict() for msg in self.messages],
            "duration_minutes": self.duration_minutes,
            "message_count": self.message_count,
            "average_response_minutes": self.average_response_minutes,
        }
