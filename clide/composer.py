"""
Conversation composition for structured agent logs.

Turns parsed transcript entries into a presentation-neutral document: each
entry gets a role label, its text rendered as block nodes, and a list of
collapsible sections for tool calls, tool results, unknown blocks and the
record's metadata.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from clide.markdown import BlockNode, render_blocks
from clide.transcript import (
    Entry,
    OtherBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from clide.utils import format_json, short_id


EMPTY_CONVERSATION_MESSAGE = "No log entries yet..."


@dataclass
class Collapsible:
    """A section shown folded by default."""
    kind: str
    title: str
    body: str
    short_id: Optional[str] = None
    is_error: bool = False


@dataclass
class ComposedEntry:
    """One entry ready for presentation."""
    label: str
    kind: str
    role: Optional[str]
    text: str
    blocks: List[BlockNode] = field(default_factory=list)
    sections: List[Collapsible] = field(default_factory=list)
    metadata: Optional[Collapsible] = None


@dataclass
class ConversationDocument:
    """The full conversation view of a structured snapshot."""
    entries: List[ComposedEntry] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.entries


def _tool_result_body(content: Any) -> str:
    if isinstance(content, str):
        return content
    return format_json(content)


def compose_block(block: Any) -> Collapsible:
    """
    Build the collapsible section for a non-text content block.

    Args:
        block: ToolUseBlock, ToolResultBlock or OtherBlock

    Returns:
        Collapsible section
    """
    if isinstance(block, ToolUseBlock):
        return Collapsible(
            kind="tool_use",
            title=block.name,
            body=format_json(block.input),
            short_id=short_id(block.id),
        )
    if isinstance(block, ToolResultBlock):
        return Collapsible(
            kind="tool_result",
            title="Result",
            body=_tool_result_body(block.content),
            short_id=short_id(block.tool_use_id),
            is_error=block.is_error,
        )
    if isinstance(block, OtherBlock):
        identifier = block.raw.get("id") if isinstance(block.raw, dict) else None
        return Collapsible(
            kind="other",
            title=block.tag,
            body=format_json(block.raw),
            short_id=short_id(identifier) if isinstance(identifier, str) else None,
        )
    raise TypeError(f"Not a collapsible content block: {type(block).__name__}")


def compose_metadata(metadata: Dict[str, Any]) -> Optional[Collapsible]:
    """Build the metadata section, or None when there is nothing to show."""
    if not metadata:
        return None
    return Collapsible(kind="metadata", title="Metadata", body=format_json(metadata))


def compose_entry(entry: Entry) -> ComposedEntry:
    """
    Compose a single entry.

    Text is rendered first, followed by the other content blocks in their
    original order and finally the metadata section.

    Args:
        entry: Parsed transcript entry

    Returns:
        Composed entry
    """
    text = entry.text
    sections = [
        compose_block(block)
        for block in entry.blocks
        if not isinstance(block, TextBlock)
    ]
    return ComposedEntry(
        label=entry.label,
        kind=entry.kind,
        role=entry.role,
        text=text,
        blocks=render_blocks(text),
        sections=sections,
        metadata=compose_metadata(entry.metadata),
    )


def compose(entries: List[Entry]) -> ConversationDocument:
    """
    Compose parsed entries into a conversation document, preserving order.

    Args:
        entries: Entries from :func:`clide.transcript.parse_transcript`

    Returns:
        Conversation document
    """
    return ConversationDocument(entries=[compose_entry(entry) for entry in entries])
