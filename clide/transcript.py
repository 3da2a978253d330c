"""
JSON-Lines agent transcript parsing.

Each line of a structured log is one JSON object. Lines that fail to parse
are skipped, since a concurrent writer may leave a partial line at the tail.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


PROGRESS_KIND = "progress"
DEFAULT_KIND = "log"

# Top-level fields consumed when building an Entry
EXTRACTED_FIELDS = ("type", "message", "kind", "role", "content")


@dataclass
class TextBlock:
    """Plain text content."""
    text: str


@dataclass
class ToolUseBlock:
    """A tool invocation made by the agent."""
    name: str
    id: Optional[str]
    input: Any


@dataclass
class ToolResultBlock:
    """The result returned for a tool invocation."""
    tool_use_id: Optional[str]
    content: Any
    is_error: bool = False


@dataclass
class OtherBlock:
    """Any content block of a type the viewer does not interpret."""
    tag: str
    raw: Any


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock, OtherBlock]


@dataclass
class Entry:
    """One retained transcript record."""
    kind: str
    role: Optional[str] = None
    content: Union[None, str, List[ContentBlock]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def blocks(self) -> List[ContentBlock]:
        """Content blocks, empty when content is absent or a plain string."""
        if isinstance(self.content, list):
            return self.content
        return []

    @property
    def text(self) -> str:
        """All text of the entry, text blocks joined by a blank line."""
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "\n\n".join(
            block.text for block in self.content if isinstance(block, TextBlock)
        )

    @property
    def label(self) -> str:
        """Display label: the role when known, otherwise the kind."""
        return self.role or self.kind


def parse_content_block(data: Any) -> ContentBlock:
    """
    Interpret one element of ``message.content``.

    Args:
        data: Decoded JSON element

    Returns:
        A typed content block; unknown or malformed elements become OtherBlock
    """
    if not isinstance(data, dict):
        return OtherBlock(tag=type(data).__name__, raw=data)

    block_type = data.get("type")
    if block_type == "text":
        text = data.get("text", "")
        return TextBlock(text=text if isinstance(text, str) else json.dumps(text))
    if block_type == "tool_use":
        return ToolUseBlock(
            name=str(data.get("name", "tool")),
            id=data.get("id"),
            input=data.get("input"),
        )
    if block_type == "tool_result":
        return ToolResultBlock(
            tool_use_id=data.get("tool_use_id"),
            content=data.get("content"),
            is_error=bool(data.get("is_error", False)),
        )
    return OtherBlock(tag=str(block_type or "unknown"), raw=data)


def _extract_content(message: Any) -> Union[None, str, List[ContentBlock]]:
    """Apply the content precedence rules to a record's ``message`` field."""
    if isinstance(message, str):
        return message
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return [parse_content_block(item) for item in content]
    return None


def parse_entry(data: Dict[str, Any]) -> Entry:
    """
    Build an Entry from one decoded transcript record.

    Args:
        data: Decoded JSON object

    Returns:
        Entry with role, content and metadata separated
    """
    message = data.get("message")
    role = None
    if isinstance(message, dict) and message.get("role") is not None:
        role = str(message["role"])

    metadata = {
        key: value for key, value in data.items() if key not in EXTRACTED_FIELDS
    }

    return Entry(
        kind=str(data.get("type") or DEFAULT_KIND),
        role=role,
        content=_extract_content(message),
        metadata=metadata,
    )


def parse_transcript(snapshot: str) -> List[Entry]:
    """
    Parse a JSON-Lines snapshot into entries, in source order.

    Blank lines, lines that are not valid JSON objects and ``progress``
    heartbeat records produce no entry.

    Args:
        snapshot: Full text of the log

    Returns:
        List of entries
    """
    entries: List[Entry] = []
    if not snapshot:
        return entries

    for raw_line in snapshot.split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except (ValueError, RecursionError):
            continue
        if not isinstance(data, dict):
            continue
        if data.get("type") == PROGRESS_KIND:
            continue
        entries.append(parse_entry(data))

    return entries
