"""
Log viewer session for a single task.

A LogViewer owns everything one open viewer needs: its stream state, its
push channel, its view state, the task specification and the active tab.
Closing the viewer tears the channel down; nothing outlives it.
"""

from enum import Enum
from typing import Callable, Optional, Union

import httpx

from clide.logger import ClideLogger
from clide.markdown import render_blocks
from clide.retry import ReconnectPolicy
from clide.transport import StreamState, StreamTransport
from clide.view import LogDocument, NarrativeDocument, Placeholder, ViewState


EMPTY_SPEC_MESSAGE = "No specification available"


class Tab(Enum):
    SPEC = "spec"
    LOGS = "logs"


def log_stream_url(base_url: str, task_id: Union[int, str]) -> str:
    """URL of a task's log push endpoint."""
    return f"{base_url.rstrip('/')}/api/logs/{task_id}/stream"


def spec_url(base_url: str, task_id: Union[int, str]) -> str:
    """URL of a task's specification endpoint."""
    return f"{base_url.rstrip('/')}/api/tasks/{task_id}/spec"


class LogViewer:
    """
    One operator's view of one task: specification plus live agent logs.
    """

    def __init__(
        self,
        base_url: str,
        task_id: Union[int, str],
        policy: Optional[ReconnectPolicy] = None,
        client: Optional[httpx.Client] = None,
        logger: Optional[ClideLogger] = None,
        on_update: Optional[Callable[["LogViewer"], None]] = None,
    ):
        """
        Initialize the viewer. Nothing is fetched until :meth:`open`.

        Args:
            base_url: Dashboard server URL, e.g. ``http://127.0.0.1:5000``
            task_id: Task identifier
            policy: Reconnect policy for the log stream
            client: httpx client shared by the spec fetch and the stream
            logger: Logger
            on_update: Called after every snapshot or connection change
        """
        self.base_url = base_url
        self.task_id = task_id
        self.logger = logger or ClideLogger("clide.viewer")
        self.on_update = on_update
        self.tab = Tab.SPEC
        self.spec = ""
        self.spec_loaded = False

        self._client = client
        self.state = StreamState()
        self.view = ViewState(self.state, logger=self.logger, source=f"task {task_id}")
        self.transport = StreamTransport(
            log_stream_url(base_url, task_id),
            on_snapshot=self._on_snapshot,
            state=self.state,
            policy=policy,
            on_status=self._on_status,
            client=client,
            logger=self.logger,
        )

    def __enter__(self) -> "LogViewer":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        """Fetch the specification and start streaming logs."""
        self.load_spec()
        self.view.request()
        self.transport.open()

    def close(self) -> None:
        """Stop the log stream; no update is delivered afterwards."""
        self.transport.close()

    def load_spec(self) -> str:
        """
        Fetch the task specification.

        A missing specification or a failed request leaves it empty, which
        is shown as a placeholder rather than an error.

        Returns:
            Specification text
        """
        url = spec_url(self.base_url, self.task_id)
        try:
            if self._client is not None:
                response = self._client.get(url)
            else:
                response = httpx.get(url, timeout=10.0)
            response.raise_for_status()
            self.spec = response.text
        except httpx.HTTPError as e:
            self.logger.warning(f"Could not load specification for task {self.task_id}: {e}")
            self.spec = ""
        self.spec_loaded = True
        return self.spec

    def select_tab(self, tab: Tab) -> None:
        self.tab = Tab(tab)

    def copy_text(self) -> str:
        """Raw text of the active tab, as placed on the clipboard."""
        if self.tab == Tab.SPEC:
            return self.spec
        return self.view.snapshot

    def spec_document(self) -> LogDocument:
        if not self.spec_loaded:
            return Placeholder("Loading specification...", loading=True)
        if not self.spec:
            return Placeholder(EMPTY_SPEC_MESSAGE)
        return NarrativeDocument(render_blocks(self.spec))

    def document(self) -> LogDocument:
        """Document for the active tab."""
        if self.tab == Tab.SPEC:
            return self.spec_document()
        return self.view.document()

    def _on_snapshot(self, content: str) -> None:
        self.view.accept(content)
        if self.on_update:
            self.on_update(self)

    def _on_status(self, connected: bool) -> None:
        if self.on_update:
            self.on_update(self)
