"""
Log format detection.

An agent log is either a JSON-Lines transcript or free-form narrative text
(markdown or plain). The first line with content decides.
"""

import json
from enum import Enum
from typing import Optional


class StreamFormat(Enum):
    """Classification of a streamed log."""
    UNKNOWN = "unknown"
    STRUCTURED = "structured"
    NARRATIVE = "narrative"


MARKDOWN_MARKERS = ("##", "```")


def first_content_line(snapshot: str) -> Optional[str]:
    """
    Find the first line carrying non-whitespace content.

    Args:
        snapshot: Full text of the log

    Returns:
        The line with surrounding whitespace removed, or None
    """
    if not snapshot:
        return None
    for line in snapshot.split("\n"):
        if line.strip():
            return line.strip()
    return None


def detect_format(snapshot: str) -> StreamFormat:
    """
    Classify a snapshot as structured (JSON-Lines) or narrative.

    Any self-contained JSON value on the first content line counts as
    structured. No content line at all is narrative; callers that need a
    definitive answer check :func:`is_definitive` first.

    Args:
        snapshot: Full text of the log

    Returns:
        STRUCTURED or NARRATIVE
    """
    line = first_content_line(snapshot)
    if line is None:
        return StreamFormat.NARRATIVE
    try:
        json.loads(line)
    except (ValueError, RecursionError):
        return StreamFormat.NARRATIVE
    return StreamFormat.STRUCTURED


def is_definitive(snapshot: str) -> bool:
    """Return True once a snapshot carries enough content to classify."""
    return first_content_line(snapshot) is not None


def looks_like_markdown(text: str) -> bool:
    """
    Check whether narrative text carries block markdown markers.

    This is a presentation hint only and never changes classification.
    """
    if not text:
        return False
    return any(marker in text for marker in MARKDOWN_MARKERS)
