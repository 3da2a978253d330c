"""
Per-viewer state machine for the agent log view.

    IDLE --request()--> LOADING_FORMAT --accept(non-blank)--> DISPLAYING_*

The first snapshot with content decides the format; after that the phase
never changes for the lifetime of the viewer. Structured logs additionally
carry a display mode (conversation or raw) that can be switched at any time
and only changes how the last snapshot is presented.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from clide.composer import ConversationDocument, compose
from clide.detector import StreamFormat, detect_format, is_definitive
from clide.logger import ClideLogger
from clide.markdown import BlockNode, render_blocks
from clide.transcript import parse_transcript
from clide.transport import StreamState


LOADING_MESSAGE = "Loading agent logs..."
EMPTY_LOGS_MESSAGE = "No logs yet..."


class ViewPhase(Enum):
    IDLE = "idle"
    LOADING_FORMAT = "loading_format"
    DISPLAYING_STRUCTURED = "displaying_structured"
    DISPLAYING_NARRATIVE = "displaying_narrative"


class DisplayMode(Enum):
    CONVERSATION = "conversation"
    RAW = "raw"


@dataclass
class Placeholder:
    """A status message shown instead of content."""
    message: str
    loading: bool = False


@dataclass
class RawText:
    """A snapshot shown verbatim."""
    text: str


@dataclass
class NarrativeDocument:
    """Narrative log text rendered as block nodes."""
    blocks: List[BlockNode]


LogDocument = Union[Placeholder, RawText, NarrativeDocument, ConversationDocument]


class ViewState:
    """
    Coordinates loading, format detection and display mode for one viewer.
    """

    def __init__(
        self,
        state: Optional[StreamState] = None,
        logger: Optional[ClideLogger] = None,
        source: str = "logs",
    ):
        """
        Initialize view state in the IDLE phase.

        Args:
            state: Stream state to keep in sync (created when omitted)
            logger: Logger for format decisions (optional)
            source: Name used in log messages
        """
        self.state = state or StreamState()
        self.logger = logger
        self.source = source
        self.phase = ViewPhase.IDLE
        self.received = False
        self._mode = DisplayMode.CONVERSATION

    @property
    def snapshot(self) -> str:
        return self.state.last_snapshot

    @property
    def structured(self) -> bool:
        return self.phase == ViewPhase.DISPLAYING_STRUCTURED

    @property
    def mode(self) -> Optional[DisplayMode]:
        """The display mode, or None unless the stream is structured."""
        if not self.structured:
            return None
        return self._mode

    def request(self) -> None:
        """Note that a snapshot has been requested (IDLE -> LOADING_FORMAT)."""
        if self.phase == ViewPhase.IDLE:
            self.phase = ViewPhase.LOADING_FORMAT

    def commit_format(self, stream_format: StreamFormat) -> ViewPhase:
        """
        Fix the format decided earlier in the same session, skipping detection.

        Used when a viewer reconnects on a fresh channel. Has no effect once a
        format is already committed or when given UNKNOWN.

        Args:
            stream_format: Previously detected format

        Returns:
            The phase after the format was applied
        """
        stream_format = StreamFormat(stream_format)
        if self.phase in (ViewPhase.DISPLAYING_STRUCTURED, ViewPhase.DISPLAYING_NARRATIVE):
            return self.phase
        if stream_format == StreamFormat.UNKNOWN:
            return self.phase

        self.state.format = stream_format
        if stream_format == StreamFormat.STRUCTURED:
            self.phase = ViewPhase.DISPLAYING_STRUCTURED
        else:
            self.phase = ViewPhase.DISPLAYING_NARRATIVE
        return self.phase

    def accept(self, snapshot: str) -> ViewPhase:
        """
        Take a new snapshot, replacing the previous one entirely.

        Args:
            snapshot: Full current log text (may be empty)

        Returns:
            The phase after the snapshot was applied
        """
        self.request()
        snapshot = snapshot or ""
        self.state.last_snapshot = snapshot
        self.received = True

        if self.phase == ViewPhase.LOADING_FORMAT and is_definitive(snapshot):
            stream_format = detect_format(snapshot)
            self.state.format = stream_format
            if stream_format == StreamFormat.STRUCTURED:
                self.phase = ViewPhase.DISPLAYING_STRUCTURED
                self._mode = DisplayMode.CONVERSATION
            else:
                self.phase = ViewPhase.DISPLAYING_NARRATIVE
            if self.logger:
                self.logger.format_detected(self.source, stream_format.value)

        return self.phase

    def set_mode(self, mode: DisplayMode) -> None:
        """
        Switch between conversation and raw rendering without re-fetching.

        Raises:
            ValueError: If the stream is not structured
        """
        if not self.structured:
            raise ValueError("Display mode is only available for structured logs")
        self._mode = DisplayMode(mode)

    def toggle_mode(self) -> DisplayMode:
        """Flip the display mode and return the new one."""
        current = self.mode
        if current is None:
            raise ValueError("Display mode is only available for structured logs")
        self.set_mode(DisplayMode.RAW if current == DisplayMode.CONVERSATION else DisplayMode.CONVERSATION)
        return self._mode

    def document(self, mode: Optional[DisplayMode] = None) -> LogDocument:
        """
        Build the document for the current phase from the last snapshot.

        Args:
            mode: Override the display mode (structured streams only)

        Returns:
            Placeholder, RawText, NarrativeDocument or ConversationDocument
        """
        if self.phase == ViewPhase.IDLE or not self.received:
            return Placeholder(LOADING_MESSAGE, loading=True)

        snapshot = self.state.last_snapshot
        if not snapshot:
            return Placeholder(EMPTY_LOGS_MESSAGE)

        if self.phase == ViewPhase.DISPLAYING_STRUCTURED:
            if (mode or self._mode) == DisplayMode.RAW:
                return RawText(snapshot)
            return compose(parse_transcript(snapshot))

        if self.phase == ViewPhase.DISPLAYING_NARRATIVE:
            return NarrativeDocument(render_blocks(snapshot))

        # Only whitespace so far
        return Placeholder(EMPTY_LOGS_MESSAGE)
