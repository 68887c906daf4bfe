"""
Tests for the segmentation and merge engine.
"""

import random
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from convoscope.core.loader import build_baseline_segments, extract_messages, load_transcripts
from convoscope.core.models import ConversationMetadata, Message
from convoscope.core.segmenter import group_by_conversation, merge, resegment, sort_by_time

MOCK_DATA = Path(__file__).resolve().parents[2] / "mock-data" / "transcripts.json"
BASE = datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)


def at(minutes: float) -> str:
    return (BASE + timedelta(minutes=minutes)).isoformat().replace("+00:00", "Z")


def msg(conversation_id, sender, minutes, text="", metadata=None):
    return Message(
        conversation_id=conversation_id,
        sender=sender,
        time=at(minutes) if minutes is not None else None,
        text=text,
        metadata=metadata or ConversationMetadata(customer_id=f"cust-{conversation_id}"),
    )


def random_messages(seed: int, conversations: int = 4, per_conversation: int = 12) -> list[Message]:
    rng = random.Random(seed)
    messages = []
    for c in range(conversations):
        minute = 0.0
        for _ in range(per_conversation):
            minute += rng.choice([0, 0.5, 1, 3, 7, 12, 45, 120])
            messages.append(msg(f"conv-{c}", rng.choice(["user", "agent"]), minute))
    rng.shuffle(messages)
    return messages


@pytest.fixture
def mock_messages():
    return extract_messages(load_transcripts(MOCK_DATA))


class TestGrouping:
    def test_first_seen_order(self):
        messages = [msg("b", "user", 0), msg("a", "user", 1), msg("b", "agent", 2)]
        groups = group_by_conversation(messages)
        assert list(groups) == ["b", "a"]
        assert len(groups["b"]) == 2

    def test_sort_is_stable_and_puts_missing_times_last(self):
        messages = [
            msg("a", "user", None, "no time 1"),
            msg("a", "user", 5, "late"),
            msg("a", "agent", 1, "tie 1"),
            msg("a", "user", 1, "tie 2"),
            msg("a", "user", None, "no time 2"),
        ]
        ordered = sort_by_time(messages)
        assert [m.text for m in ordered] == ["tie 1", "tie 2", "late", "no time 1", "no time 2"]


class TestResegment:
    """Test gap-based re-segmentation."""

    def test_concrete_scenario(self):
        # t0 user, t2 agent, t5 user, t40 agent with a 10 minute gap:
        # 2->5 is 3 minutes (no split), 5->40 is 35 minutes (split)
        messages = [msg("c", "user", 0), msg("c", "agent", 2), msg("c", "user", 5), msg("c", "agent", 40)]

        segments = resegment(messages, 10)

        assert len(segments) == 2
        assert [m.time for m in segments[0].messages] == [at(0), at(2), at(5)]
        assert [m.time for m in segments[1].messages] == [at(40)]
        assert segments[0].segment_id == "seg_1"
        assert segments[1].segment_id == "seg_2"
        assert segments[0].start_time == at(0)
        assert segments[0].end_time == at(5)
        assert segments[0].duration_minutes == 5.0
        assert segments[1].duration_minutes == 0.0

    def test_gap_measured_from_previous_message_not_segment_start(self):
        # Each step is 8 minutes; the segment spans 32 minutes without a split
        messages = [msg("c", "user", m) for m in (0, 8, 16, 24, 32)]
        assert len(resegment(messages, 10)) == 1

    def test_gap_equal_to_threshold_does_not_split(self):
        messages = [msg("c", "user", 0), msg("c", "agent", 10)]
        assert len(resegment(messages, 10)) == 1

    def test_zero_gap_splits_distinct_timestamps_only(self):
        messages = [msg("c", "user", 0), msg("c", "agent", 0), msg("c", "user", 1), msg("c", "agent", 2)]
        segments = resegment(messages, 0)
        assert [s.message_count for s in segments] == [2, 1, 1]

    def test_single_message_group(self):
        segments = resegment([msg("c", "user", 0)], 5)
        assert len(segments) == 1
        assert segments[0].message_count == 1
        assert segments[0].average_response_minutes is None

    def test_segment_ids_restart_per_conversation(self):
        messages = [msg("a", "user", 0), msg("a", "user", 60), msg("b", "user", 0), msg("b", "user", 60)]
        segments = resegment(messages, 10)
        assert [(s.conversation_id, s.segment_id) for s in segments] == [
            ("a", "seg_1"),
            ("a", "seg_2"),
            ("b", "seg_1"),
            ("b", "seg_2"),
        ]
        assert [s.index for s in segments] == [0, 1, 2, 3]

    def test_input_order_does_not_matter_within_a_conversation(self):
        messages = [msg("c", "agent", 40), msg("c", "user", 0), msg("c", "user", 5), msg("c", "agent", 2)]
        segments = resegment(messages, 10)
        assert [m.time for m in segments[0].messages] == [at(0), at(2), at(5)]

    def test_metadata_from_first_occurrence(self):
        first = ConversationMetadata(customer_id="first", language="en")
        second = ConversationMetadata(customer_id="second", language="de")
        messages = [msg("c", "user", 5, metadata=first), msg("c", "user", 0, metadata=second)]

        segments = resegment(messages, 10)

        assert segments[0].metadata == first

    def test_messages_without_time_join_last_segment(self):
        messages = [msg("c", "user", 0), msg("c", "user", 60), msg("c", "user", None)]
        segments = resegment(messages, 10)
        assert [s.message_count for s in segments] == [1, 2]

    def test_empty_input(self):
        assert resegment([], 10) == []

    @pytest.mark.parametrize("gap", [-1, float("nan"), "10", None, True])
    def test_invalid_gap_raises(self, gap):
        with pytest.raises(ValueError):
            resegment([msg("c", "user", 0)], gap)

    def test_huge_gap_never_splits(self):
        messages = [msg("c", "user", 0), msg("c", "user", 60 * 24 * 365)]
        assert len(resegment(messages, float("inf"))) == 1

    def test_mock_data(self, mock_messages):
        segments = resegment(mock_messages, 10)
        by_conversation = Counter(s.conversation_id for s in segments)
        assert by_conversation == {"conv-aaaa1111": 2, "conv-bbbb2222": 1, "conv-cccc3333": 1}

    @pytest.mark.parametrize("seed", range(5))
    def test_covers_and_partitions(self, seed):
        messages = random_messages(seed)
        gap = 10
        segments = resegment(messages, gap)

        for conversation_id, group in group_by_conversation(messages).items():
            own = [s for s in segments if s.conversation_id == conversation_id]
            flattened = [m for s in own for m in s.messages]
            assert flattened == sort_by_time(group)

            # Boundaries only where consecutive messages are more than gap apart
            for left, right in zip(own, own[1:]):
                assert right.messages[0].timestamp - left.messages[-1].timestamp > timedelta(minutes=gap)
            for segment in own:
                for a, b in zip(segment.messages, segment.messages[1:]):
                    assert b.timestamp - a.timestamp <= timedelta(minutes=gap)

    @pytest.mark.parametrize("seed", range(5))
    def test_segment_count_non_increasing_in_gap(self, seed):
        messages = random_messages(seed)
        gaps = [0, 0.5, 1, 2, 5, 10, 30, 60, 240]
        for conversation_id in group_by_conversation(messages):
            counts = [
                sum(1 for s in resegment(messages, gap) if s.conversation_id == conversation_id) for gap in gaps
            ]
            assert counts == sorted(counts, reverse=True)


class TestMerge:
    """Test merging messages back into full conversations."""

    def test_one_conversation_per_id(self, mock_messages):
        conversations = merge(mock_messages)

        assert [c.conversation_id for c in conversations] == ["conv-aaaa1111", "conv-bbbb2222", "conv-cccc3333"]
        assert all(c.segment_id is None for c in conversations)
        assert [c.index for c in conversations] == [0, 1, 2]

    def test_merged_conversation_spans_all_segments(self, mock_messages):
        first = merge(mock_messages)[0]

        assert first.message_count == 4
        assert first.start_time == "2024-01-05T09:00:00Z"
        assert first.end_time == "2024-01-05T09:40:00Z"
        assert first.duration_minutes == 40.0
        # (09:00 -> 09:02) and (09:05 -> 09:40)
        assert first.average_response_minutes == pytest.approx(18.5)
        assert first.customer_id == "cust-1"

    def test_messages_sorted_by_time(self):
        messages = [msg("c", "agent", 40), msg("c", "user", 0), msg("c", "user", 5)]
        merged = merge(messages)[0]
        assert [m.time for m in merged.messages] == [at(0), at(5), at(40)]

    def test_duplicates_are_kept(self):
        message = msg("c", "user", 0)
        merged = merge([message, message])
        assert merged[0].message_count == 2

    @pytest.mark.parametrize("seed", range(5))
    def test_grouping_bijection(self, seed):
        messages = random_messages(seed)
        conversations = merge(messages)

        assert len(conversations) == len({m.conversation_id for m in messages})
        assert Counter(m for c in conversations for m in c.messages) == Counter(messages)

    def test_round_trip_counts(self, mock_messages):
        baseline = build_baseline_segments(load_transcripts(MOCK_DATA))
        expected = Counter()
        for segment in baseline:
            expected[segment.conversation_id] += segment.message_count

        counts = {c.conversation_id: c.message_count for c in merge(mock_messages)}
        assert counts == {cid: n for cid, n in expected.items() if n}

    def test_empty_input(self):
        assert merge([]) == []
