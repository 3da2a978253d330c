"""Tests for JSON-Lines transcript parsing."""

import json

from clide.transcript import (
    Entry,
    OtherBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    parse_content_block,
    parse_entry,
    parse_transcript,
)


def jsonl(*records) -> str:
    return "\n".join(json.dumps(record) for record in records)


class TestParseTranscript:
    """Tests for parse_transcript."""

    def test_progress_records_are_dropped(self):
        snapshot = jsonl(
            {"type": "progress", "x": 1},
            {"type": "message", "message": {"role": "user", "content": "hi"}},
        )
        entries = parse_transcript(snapshot)
        assert len(entries) == 1
        assert entries[0].role == "user"
        assert entries[0].content == "hi"

    def test_malformed_line_is_skipped_without_reordering(self):
        snapshot = "\n".join([
            json.dumps({"type": "user", "message": "first"}),
            '{"type":',
            json.dumps({"type": "assistant", "message": "second"}),
        ])
        entries = parse_transcript(snapshot)
        assert [entry.content for entry in entries] == ["first", "second"]

    def test_deeply_nested_line_is_skipped(self):
        snapshot = "\n".join([
            json.dumps({"type": "user", "message": "a"}),
            "[" * 200000 + "]" * 200000,
            json.dumps({"type": "assistant", "message": "b"}),
        ])
        assert [entry.content for entry in parse_transcript(snapshot)] == ["a", "b"]

    def test_blank_lines_and_non_objects_produce_nothing(self):
        snapshot = "\n\n   \n[1, 2]\n42\n" + json.dumps({"type": "system"}) + "\n"
        entries = parse_transcript(snapshot)
        assert len(entries) == 1
        assert entries[0].kind == "system"

    def test_empty_snapshot(self):
        assert parse_transcript("") == []

    def test_output_never_exceeds_non_blank_lines(self):
        snapshot = jsonl({"type": "a"}, {"type": "progress"}, {"type": "b"}) + "\nnot json"
        non_blank = [line for line in snapshot.split("\n") if line.strip()]
        assert len(parse_transcript(snapshot)) <= len(non_blank)

    def test_duplicates_are_kept(self):
        record = {"type": "assistant", "message": "same"}
        assert len(parse_transcript(jsonl(record, record))) == 2

    def test_missing_type_defaults_to_log(self):
        entries = parse_transcript(json.dumps({"message": "hello"}))
        assert entries[0].kind == "log"
        assert entries[0].label == "log"


class TestParseEntry:
    """Tests for parse_entry."""

    def test_message_string_is_content(self):
        entry = parse_entry({"type": "assistant", "message": "plain"})
        assert entry.content == "plain"
        assert entry.role is None

    def test_message_content_string(self):
        entry = parse_entry({"type": "user", "message": {"role": "user", "content": "text"}})
        assert entry.content == "text"
        assert entry.role == "user"

    def test_message_content_blocks(self):
        entry = parse_entry({
            "type": "assistant",
            "message": {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Let me look."},
                    {"type": "tool_use", "id": "toolu_0123456789abcdef", "name": "Read", "input": {"path": "a.py"}},
                ],
            },
        })
        assert isinstance(entry.content, list)
        assert isinstance(entry.content[0], TextBlock)
        assert isinstance(entry.content[1], ToolUseBlock)
        assert entry.content[1].name == "Read"
        assert entry.content[1].input == {"path": "a.py"}

    def test_missing_content_is_none(self):
        entry = parse_entry({"type": "assistant", "message": {"role": "assistant"}})
        assert entry.content is None
        assert entry.text == ""

    def test_metadata_excludes_extracted_fields(self):
        entry = parse_entry({
            "type": "assistant",
            "message": "x",
            "sessionId": "abc",
            "timestamp": "2025-01-01T00:00:00Z",
        })
        assert entry.metadata == {"sessionId": "abc", "timestamp": "2025-01-01T00:00:00Z"}
        assert "type" not in entry.metadata
        assert "message" not in entry.metadata


class TestParseContentBlock:
    """Tests for parse_content_block."""

    def test_tool_result(self):
        block = parse_content_block({
            "type": "tool_result",
            "tool_use_id": "toolu_1",
            "content": "boom",
            "is_error": True,
        })
        assert block == ToolResultBlock(tool_use_id="toolu_1", content="boom", is_error=True)

    def test_unknown_type_becomes_other(self):
        raw = {"type": "thinking", "thinking": "hmm"}
        block = parse_content_block(raw)
        assert block == OtherBlock(tag="thinking", raw=raw)

    def test_untyped_and_non_dict_elements(self):
        assert parse_content_block({"foo": 1}).tag == "unknown"
        assert parse_content_block("loose").tag == "str"


class TestEntryText:
    """Tests for Entry.text."""

    def test_text_blocks_joined_by_blank_line(self):
        entry = Entry(
            kind="assistant",
            content=[
                TextBlock("one"),
                ToolUseBlock(name="Bash", id=None, input={}),
                TextBlock("two"),
            ],
        )
        assert entry.text == "one\n\ntwo"
