"""
Clide: Agent Task Dashboard
A Kanban dashboard for supervising coding agents, with a live viewer for their logs.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from clide.config import load_dashboard_config, validate_dashboard_config
from clide.detector import StreamFormat, detect_format
from clide.transcript import Entry, parse_transcript
from clide.markdown import render_blocks, flatten_blocks
from clide.composer import compose
from clide.transport import StreamState, StreamTransport
from clide.view import ViewState, ViewPhase, DisplayMode
from clide.viewer import LogViewer, Tab
from clide.store import TaskStore
from clide.logger import ClideLogger
from clide.retry import ReconnectPolicy, RetryStrategy
from clide.web import ClideWebServer

__all__ = [
    "load_dashboard_config", "validate_dashboard_config",
    "StreamFormat", "detect_format",
    "Entry", "parse_transcript",
    "render_blocks", "flatten_blocks",
    "compose",
    "StreamState", "StreamTransport",
    "ViewState", "ViewPhase", "DisplayMode",
    "LogViewer", "Tab",
    "TaskStore",
    "ClideLogger",
    "ReconnectPolicy", "RetryStrategy",
    "ClideWebServer",
]
