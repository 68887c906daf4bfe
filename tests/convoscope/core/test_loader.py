#!/usr/bin/env python3
"""
Tests for transcript loading and message extraction.
Uses the sample transcripts in tests/mock-data.
"""

import os
import shutil
import tempfile
import unittest
from pathlib import Path

from convoscope.core.loader import (
    TranscriptLoadError,
    build_baseline_segments,
    extract_messages,
    load_transcripts,
    parse_transcripts,
)
from convoscope.core.models import Sender

MOCK_DATA = Path(__file__).resolve().parents[2] / "mock-data" / "transcripts.json"


class TestLoadTranscripts(unittest.TestCase):
    """Test suite for reading transcript files"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        if self.temp_dir and os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def write(self, name, content):
        path = os.path.join(self.temp_dir, name)
        with open(path, "w") as f:
            f.write(content)
        return path

    def test_load_mock_data(self):
        records = load_transcripts(MOCK_DATA)
        self.assertEqual(len(records), 5)
        self.assertEqual(records[0]["conversation_id"], "conv-aaaa1111")

    def test_single_object_is_wrapped(self):
        path = self.write("single.json", '{"conversation_id": "c1", "customer_id": "x", "messages": []}')
        records = load_transcripts(path)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0]["conversation_id"], "c1")

    def test_invalid_json_raises(self):
        path = self.write("broken.json", '[{"conversation_id": ')
        with self.assertRaises(TranscriptLoadError):
            load_transcripts(path)

    def test_missing_file_raises(self):
        with self.assertRaises(TranscriptLoadError):
            load_transcripts(os.path.join(self.temp_dir, "missing.json"))

    def test_scalar_top_level_raises(self):
        with self.assertRaises(TranscriptLoadError):
            parse_transcripts("42")

    def test_non_object_entries_are_skipped(self):
        records = parse_transcripts('[{"conversation_id": "c1"}, 3, "x", {"conversation_id": "c2"}]')
        self.assertEqual([r["conversation_id"] for r in records], ["c1", "c2"])

    def test_empty_array(self):
        self.assertEqual(parse_transcripts(b"[]"), [])


class TestExtractMessages(unittest.TestCase):
    """Test suite for flattening records into messages"""

    @classmethod
    def setUpClass(cls):
        cls.raw = load_transcripts(MOCK_DATA)

    def test_flat_count_and_order(self):
        messages = extract_messages(self.raw)

        self.assertEqual(len(messages), 9)
        self.assertEqual(messages[0].text, "Hi, my order is late")
        self.assertEqual(messages[2].text, "Thanks, any update?")
        self.assertEqual(messages[-1].conversation_id, "conv-cccc3333")

    def test_messages_carry_metadata(self):
        messages = extract_messages(self.raw)
        german = [m for m in messages if m.conversation_id == "conv-bbbb2222"]

        self.assertEqual(len(german), 4)
        for message in german:
            self.assertEqual(message.metadata.customer_id, "cust-2")
            self.assertEqual(message.metadata.language, "de")
            self.assertEqual(message.metadata.country, "DE")
            self.assertIsNone(message.metadata.ip_address)

    def test_sender_and_agent_id(self):
        messages = extract_messages(self.raw)
        self.assertIs(messages[0].sender, Sender.USER)
        self.assertIs(messages[1].sender, Sender.AGENT)
        self.assertEqual(messages[1].agent_id, "agent-007x")

    def test_missing_messages_array(self):
        self.assertEqual(extract_messages([{"conversation_id": "c1", "customer_id": "x"}]), ())

    def test_malformed_messages_are_tolerated(self):
        raw = [
            {
                "conversation_id": "c1",
                "customer_id": "x",
                "messages": [{"from": "user"}, "not a message", {"time": "2024-01-05T09:00:00Z"}],
            },
            {"conversation_id": "c2", "customer_id": "y", "messages": "nope"},
        ]
        messages = extract_messages(raw)

        self.assertEqual(len(messages), 2)
        self.assertEqual(messages[0].text, "")
        self.assertIsNone(messages[0].time)
        self.assertIs(messages[1].sender, Sender.UNKNOWN)

    def test_no_deduplication(self):
        record = self.raw[0]
        messages = extract_messages([record, record])
        self.assertEqual(len(messages), 4)


class TestBaselineSegments(unittest.TestCase):
    """Test suite for the as-loaded segment set"""

    @classmethod
    def setUpClass(cls):
        cls.raw = load_transcripts(MOCK_DATA)
        cls.baseline = build_baseline_segments(cls.raw)

    def test_one_record_per_input_record(self):
        self.assertEqual(len(self.baseline), 5)
        self.assertEqual([r.index for r in self.baseline], [0, 1, 2, 3, 4])

    def test_segment_ids_and_times_come_from_input(self):
        second = self.baseline[1]
        self.assertEqual(second.segment_id, "2")
        self.assertEqual(second.start_time, "2024-01-05T09:05:00Z")
        self.assertEqual(second.end_time, "2024-01-05T09:40:00Z")
        self.assertEqual(second.duration_minutes, 35.0)
        self.assertEqual(second.average_response_minutes, 35.0)

    def test_missing_segment_id_is_none(self):
        self.assertIsNone(self.baseline[3].segment_id)

    def test_empty_record_passes_through(self):
        empty = self.baseline[4]
        self.assertEqual(empty.conversation_id, "conv-dddd4444")
        self.assertEqual(empty.message_count, 0)
        self.assertEqual(empty.messages, ())
        self.assertEqual(empty.start_time, "2024-01-08T10:00:00Z")

    def test_missing_times_fall_back_to_messages(self):
        raw = [
            {
                "conversation_id": "c1",
                "customer_id": "x",
                "messages": [
                    {"from": "user", "time": "2024-01-05T09:00:00Z"},
                    {"from": "agent", "time": "2024-01-05T09:03:00Z"},
                ],
            }
        ]
        record = build_baseline_segments(raw)[0]
        self.assertEqual(record.start_time, "2024-01-05T09:00:00Z")
        self.assertEqual(record.end_time, "2024-01-05T09:03:00Z")
        self.assertEqual(record.duration_minutes, 3.0)

    def test_input_message_order_is_kept(self):
        raw = [
            {
                "conversation_id": "c1",
                "customer_id": "x",
                "messages": [
                    {"from": "agent", "time": "2024-01-05T09:03:00Z", "text": "late"},
                    {"from": "user", "time": "2024-01-05T09:00:00Z", "text": "early"},
                ],
            }
        ]
        record = build_baseline_segments(raw)[0]
        self.assertEqual([m.text for m in record.messages], ["late", "early"])


if __name__ == "__main__":
    unittest.main()
