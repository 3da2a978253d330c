"""
Utility functions for Clide rendering.
"""

import json
from typing import Any, Optional


SHORT_ID_LENGTH = 8


def short_id(identifier: Optional[str]) -> Optional[str]:
    """
    Shorten a tool identifier for display.

    Args:
        identifier: Full identifier (e.g. ``toolu_01AbCdEf...``)

    Returns:
        The last eight characters, or None when there is no identifier
    """
    if not identifier:
        return None
    return str(identifier)[-SHORT_ID_LENGTH:]


def format_json(value: Any) -> str:
    """
    Pretty-print a JSON-compatible value the way the log viewer shows it.

    Args:
        value: Any decoded JSON value

    Returns:
        Two-space indented JSON text
    """
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def status_label(status: str) -> str:
    """Turn a task status such as ``in_progress`` into ``IN PROGRESS``."""
    return status.replace("_", " ").upper()
