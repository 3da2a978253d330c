"""Tests for log format detection."""

from clide.detector import (
    StreamFormat,
    detect_format,
    first_content_line,
    is_definitive,
    looks_like_markdown,
)


class TestDetectFormat:
    """Tests for detect_format."""

    def test_json_object_is_structured(self):
        assert detect_format('{"type": "user"}\n') == StreamFormat.STRUCTURED

    def test_leading_blank_lines_are_ignored(self):
        assert detect_format('\n  \n{"type": "user"}') == StreamFormat.STRUCTURED

    def test_any_json_value_is_structured(self):
        assert detect_format("42") == StreamFormat.STRUCTURED
        assert detect_format('"text"') == StreamFormat.STRUCTURED

    def test_text_is_narrative(self):
        assert detect_format("## Plan\n- step") == StreamFormat.NARRATIVE

    def test_only_first_line_decides(self):
        assert detect_format('{"a": 1}\nnot json') == StreamFormat.STRUCTURED
        assert detect_format('not json\n{"a": 1}') == StreamFormat.NARRATIVE

    def test_partial_json_is_narrative(self):
        assert detect_format('{"type":') == StreamFormat.NARRATIVE

    def test_deeply_nested_first_line_is_narrative(self):
        assert detect_format("[" * 200000 + "]" * 200000 + "\nhello") == StreamFormat.NARRATIVE

    def test_empty_is_narrative_but_not_definitive(self):
        assert detect_format("") == StreamFormat.NARRATIVE
        assert not is_definitive("")
        assert not is_definitive("  \n\n")
        assert is_definitive("x")


class TestHelpers:
    """Tests for the detection helpers."""

    def test_first_content_line_strips(self):
        assert first_content_line("\n   hello  \nworld") == "hello"
        assert first_content_line("") is None

    def test_looks_like_markdown(self):
        assert looks_like_markdown("## Heading")
        assert looks_like_markdown("```\ncode\n```")
        assert not looks_like_markdown("plain output")
        assert not looks_like_markdown("")
