"""Tests for the block markdown renderer."""

from clide.markdown import (
    Blank,
    Bold,
    Checkbox,
    Code,
    CodeBlock,
    HRule,
    Heading,
    Italic,
    ListItem,
    Paragraph,
    PlainText,
    flatten_blocks,
    parse_inline,
    render_blocks,
)


class TestFences:
    """Tests for fenced code blocks."""

    def test_fenced_code_with_language(self):
        nodes = render_blocks("```js\nconsole.log(1)\n```")
        assert nodes == [CodeBlock(language="js", lines=["console.log(1)"])]

    def test_fence_suppresses_other_rules(self):
        nodes = render_blocks("```\n# fake\n- item\n---\n```")
        assert len(nodes) == 1
        assert nodes[0].lines == ["# fake", "- item", "---"]
        assert nodes[0].language is None

    def test_unclosed_fence_is_flushed(self):
        nodes = render_blocks("intro\n```python\nprint(1)")
        assert isinstance(nodes[0], Paragraph)
        assert nodes[1] == CodeBlock(language="python", lines=["print(1)"], terminated=False)

    def test_consecutive_fences(self):
        nodes = render_blocks("```\na\n```\n```sh\nb\n```")
        assert [node.lines for node in nodes] == [["a"], ["b"]]
        assert nodes[1].language == "sh"


class TestBlockRules:
    """Tests for the per-line block rules."""

    def test_heading_levels(self):
        nodes = render_blocks("# One\n## Two\n### Three\n#### Four\n##### Five")
        assert nodes[:4] == [
            Heading(1, "One"),
            Heading(2, "Two"),
            Heading(3, "Three"),
            Heading(4, "Four"),
        ]
        assert isinstance(nodes[4], Paragraph)

    def test_hash_without_space_is_paragraph(self):
        assert isinstance(render_blocks("#hashtag")[0], Paragraph)

    def test_horizontal_rule(self):
        assert render_blocks("  ---  ") == [HRule()]

    def test_checkboxes(self):
        nodes = render_blocks("- [x] done\n- [ ] todo")
        assert len(nodes) == 2
        assert all(isinstance(node, Checkbox) for node in nodes)
        assert nodes[0].checked is True
        assert nodes[0].text == "done"
        assert nodes[1].checked is False

    def test_uppercase_checkbox(self):
        assert render_blocks("- [X] shipped")[0].checked is True

    def test_bullets_and_numbers(self):
        nodes = render_blocks("- one\n* two\n  - nested\n3. three")
        assert nodes[0] == ListItem(ordered=False, text="one", spans=[PlainText("one")])
        assert nodes[1].text == "two"
        assert nodes[2].depth == 1
        assert nodes[3].ordered is True
        assert nodes[3].number == 3

    def test_crlf_line_endings(self):
        nodes = render_blocks("## Plan\r\nRead the **code**\r\n```sh\r\nls\r\n```\r\n")
        assert nodes[0] == Heading(2, "Plan")
        assert nodes[1].text == "Read the code"
        assert nodes[2] == CodeBlock(language="sh", lines=["ls"])

    def test_blank_lines_are_kept(self):
        nodes = render_blocks("a\n\nb")
        assert isinstance(nodes[1], Blank)
        assert len(nodes) == 3

    def test_empty_input(self):
        assert render_blocks("") == []


class TestInline:
    """Tests for inline span resolution."""

    def test_bold_italic_code(self):
        spans = parse_inline("a **b** *c* `d`")
        assert spans == [
            PlainText("a "),
            Bold("b"),
            PlainText(" "),
            Italic("c"),
            PlainText(" "),
            Code("d"),
        ]

    def test_bold_wins_over_italic(self):
        assert parse_inline("**x**") == [Bold("x")]

    def test_unmatched_markers_stay_plain(self):
        assert parse_inline("2 * 3 and `open") == [PlainText("2 * 3 and `open")]

    def test_paragraph_text_drops_markers(self):
        paragraph = render_blocks("use **care** here")[0]
        assert paragraph.text == "use care here"


class TestRoundTrip:
    """Tests for flatten_blocks."""

    def test_headings_paragraphs_and_code(self):
        text = "# Title\nSome words\n\n## Part\n```py\nx = 1\n```\nEnd"
        assert flatten_blocks(render_blocks(text)) == text

    def test_inline_markers_are_not_restored(self):
        assert flatten_blocks(render_blocks("a **b**")) == "a b"

    def test_render_of_flatten_is_stable(self):
        text = "# Title\nbody\n```\ncode\n```"
        once = render_blocks(text)
        assert render_blocks(flatten_blocks(once)) == once
