"""
Block-level markdown rendering for specifications and agent logs.

This is deliberately a small, line-oriented renderer rather than a
CommonMark implementation. A single pass turns text into a flat list of
block nodes; paragraph and list text is further split into inline spans so
presenters never have to re-interpret markup.

Rules, first match wins per line:
    1. A line starting with a fence (three backticks) opens or closes a code
       block. Inside a fence every other rule is suppressed.
    2. ``# `` to ``#### `` headings.
    3. ``---`` horizontal rule.
    4. Checkboxes (``- [ ]``, ``- [x]``), then bullet and numbered items.
    5. Blank lines.
    6. Anything else is a paragraph.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Union


FENCE = "```"
HEADING_PREFIXES = (("#### ", 4), ("### ", 3), ("## ", 2), ("# ", 1))
HRULE = "---"

CHECKBOX_RE = re.compile(r"^(\s*)-\s\[([ xX])\](?:\s(.*))?$")
BULLET_RE = re.compile(r"^(\s*)[-*]\s(.*)$")
NUMBERED_RE = re.compile(r"^(\s*)(\d+)\.\s(.*)$")

# Alternation order gives bold priority over italic over code at the same
# position; finditer gives the leftmost opening delimiter priority overall.
INLINE_RE = re.compile(r"\*\*(.+?)\*\*|\*(.+?)\*|`(.+?)`")

INDENT_WIDTH = 2


# === Inline spans ===

@dataclass
class PlainText:
    text: str


@dataclass
class Bold:
    text: str


@dataclass
class Italic:
    text: str


@dataclass
class Code:
    text: str


Span = Union[PlainText, Bold, Italic, Code]


# === Block nodes ===

@dataclass
class Heading:
    level: int
    text: str


@dataclass
class CodeBlock:
    language: Optional[str]
    lines: List[str] = field(default_factory=list)
    terminated: bool = True


@dataclass
class ListItem:
    ordered: bool
    text: str
    spans: List[Span] = field(default_factory=list)
    depth: int = 0
    number: Optional[int] = None


@dataclass
class Checkbox:
    checked: bool
    text: str
    spans: List[Span] = field(default_factory=list)
    depth: int = 0


@dataclass
class HRule:
    pass


@dataclass
class Paragraph:
    spans: List[Span] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Visible text with inline markers removed."""
        return "".join(span.text for span in self.spans)


@dataclass
class Blank:
    pass


BlockNode = Union[Heading, CodeBlock, ListItem, Checkbox, HRule, Paragraph, Blank]


def parse_inline(text: str) -> List[Span]:
    """
    Split one line of text into inline spans.

    Args:
        text: Line text without block markers

    Returns:
        Ordered spans; adjacent plain text is never split
    """
    spans: List[Span] = []
    position = 0
    for match in INLINE_RE.finditer(text):
        if match.start() > position:
            spans.append(PlainText(text[position:match.start()]))
        bold, italic, code = match.groups()
        if bold is not None:
            spans.append(Bold(bold))
        elif italic is not None:
            spans.append(Italic(italic))
        else:
            spans.append(Code(code))
        position = match.end()
    if position < len(text):
        spans.append(PlainText(text[position:]))
    return spans


def _depth(indent: str) -> int:
    return len(indent.expandtabs(INDENT_WIDTH)) // INDENT_WIDTH


def _render_line(line: str) -> BlockNode:
    """Apply the non-fence rules to a single line."""
    for prefix, level in HEADING_PREFIXES:
        if line.startswith(prefix):
            return Heading(level=level, text=line[len(prefix):])

    if line.strip() == HRULE:
        return HRule()

    match = CHECKBOX_RE.match(line)
    if match:
        indent, mark, text = match.groups()
        text = text or ""
        return Checkbox(
            checked=mark.lower() == "x",
            text=text,
            spans=parse_inline(text),
            depth=_depth(indent),
        )

    match = BULLET_RE.match(line)
    if match:
        indent, text = match.groups()
        return ListItem(ordered=False, text=text, spans=parse_inline(text), depth=_depth(indent))

    match = NUMBERED_RE.match(line)
    if match:
        indent, number, text = match.groups()
        return ListItem(
            ordered=True,
            text=text,
            spans=parse_inline(text),
            depth=_depth(indent),
            number=int(number),
        )

    if not line.strip():
        return Blank()

    return Paragraph(spans=parse_inline(line))


def render_blocks(text: str) -> List[BlockNode]:
    """
    Render text into block nodes.

    Node order follows source line order. A code fence left open at the end
    of the input is flushed as an unterminated CodeBlock so the tail of a
    live log still shows.

    Args:
        text: Markdown-like text

    Returns:
        Ordered list of block nodes
    """
    nodes: List[BlockNode] = []
    if not text:
        return nodes

    in_fence = False
    language: Optional[str] = None
    body: List[str] = []

    for line in text.split("\n"):
        line = line.rstrip("\r")
        if line.startswith(FENCE):
            if in_fence:
                nodes.append(CodeBlock(language=language, lines=body))
                in_fence = False
                language = None
                body = []
            else:
                in_fence = True
                language = line[len(FENCE):].strip() or None
            continue

        if in_fence:
            body.append(line)
            continue

        nodes.append(_render_line(line))

    if in_fence:
        nodes.append(CodeBlock(language=language, lines=body, terminated=False))

    return nodes


def _flatten_spans(spans: List[Span]) -> str:
    return "".join(span.text for span in spans)


def flatten_blocks(nodes: List[BlockNode]) -> str:
    """
    Re-serialize block nodes to their visible text.

    Headings and paragraphs flatten to their text, code blocks to their
    fenced body and list items to their marker plus text. Inline formatting
    markers are not restored.

    Args:
        nodes: Block nodes from :func:`render_blocks`

    Returns:
        Text, one node per line (code blocks span several)
    """
    lines: List[str] = []
    for node in nodes:
        if isinstance(node, Heading):
            lines.append(f"{'#' * node.level} {node.text}")
        elif isinstance(node, CodeBlock):
            lines.append(f"{FENCE}{node.language or ''}")
            lines.extend(node.lines)
            if node.terminated:
                lines.append(FENCE)
        elif isinstance(node, Checkbox):
            mark = "x" if node.checked else " "
            lines.append(f"{' ' * INDENT_WIDTH * node.depth}- [{mark}] {_flatten_spans(node.spans)}")
        elif isinstance(node, ListItem):
            marker = f"{node.number}." if node.ordered else "-"
            lines.append(f"{' ' * INDENT_WIDTH * node.depth}{marker} {_flatten_spans(node.spans)}")
        elif isinstance(node, HRule):
            lines.append(HRULE)
        elif isinstance(node, Paragraph):
            lines.append(node.text)
        else:
            lines.append("")
    return "\n".join(lines)
