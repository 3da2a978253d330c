"""
Reconnecting push channel for whole-document snapshots.

The producer exposes a Server-Sent-Events endpoint whose every event is a
JSON payload ``{"content": str}`` holding the full current text of the
watched resource. Snapshots are never deltas, so nothing is buffered or
replayed: after a reconnect the next snapshot is authoritative.

One daemon thread reads the current connection. Each connection gets a
generation number and only the current generation may deliver, so a
superseded connection can never push a stale snapshot. Delivery and
:meth:`StreamTransport.close` share a lock; once ``close()`` returns no
callback runs again and any pending reconnect timer is cancelled.
"""

import json
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

import httpx

from clide.detector import StreamFormat
from clide.logger import ClideLogger
from clide.retry import ReconnectPolicy


@dataclass
class StreamState:
    """Per-viewer stream state; never persisted."""
    connected: bool = False
    format: StreamFormat = StreamFormat.UNKNOWN
    last_snapshot: str = ""


def iter_sse_data(lines: Iterable[str]) -> Iterator[str]:
    """
    Yield the data of each complete Server-Sent-Event.

    Multi-line data fields are joined with newlines; comments and fields
    other than ``data`` are ignored. An event not terminated by a blank line
    is incomplete and dropped.

    Args:
        lines: Decoded lines without their line terminators

    Yields:
        Event data strings
    """
    data_lines = []
    for line in lines:
        line = line.rstrip("\r")
        if not line:
            if data_lines:
                yield "\n".join(data_lines)
                data_lines = []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            data_lines.append(value)


def parse_snapshot_payload(data: str) -> Optional[str]:
    """
    Extract the snapshot from an event payload.

    Args:
        data: Event data, expected to be ``{"content": str}``

    Returns:
        The content (empty string when the log does not exist yet), or None
        when the payload is malformed
    """
    try:
        payload = json.loads(data)
    except (ValueError, RecursionError):
        return None
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")
    if content is None:
        return ""
    if not isinstance(content, str):
        return None
    return content


class StreamTransport:
    """
    Reconnecting SSE client delivering whole-document snapshots.

    Usage:
        transport = StreamTransport(url, on_snapshot=view.accept)
        transport.open()
        ...
        transport.close()
    """

    def __init__(
        self,
        endpoint: str,
        on_snapshot: Callable[[str], None],
        state: Optional[StreamState] = None,
        policy: Optional[ReconnectPolicy] = None,
        on_status: Optional[Callable[[bool], None]] = None,
        client: Optional[httpx.Client] = None,
        logger: Optional[ClideLogger] = None,
    ):
        """
        Initialize the transport. Nothing connects until :meth:`open`.

        Args:
            endpoint: URL of the SSE endpoint
            on_snapshot: Called with each snapshot, in arrival order
            state: Stream state whose ``connected`` flag is maintained
            policy: Reconnect policy (defaults to exponential backoff)
            on_status: Called with True/False when the connection changes
            client: httpx client to use; one is created and owned otherwise
            logger: Logger for connection events
        """
        self.endpoint = endpoint
        self.on_snapshot = on_snapshot
        self.on_status = on_status
        self.state = state or StreamState()
        self.policy = policy or ReconnectPolicy()
        self.logger = logger or ClideLogger("clide.transport")
        self.exhausted = False

        self._client = client
        self._owns_client = client is None
        self._lock = threading.RLock()
        self._opened = False
        self._closed = False
        self._generation = 0
        self._thread: Optional[threading.Thread] = None
        self._timer: Optional[threading.Timer] = None
        self._response: Optional[httpx.Response] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def reconnect_pending(self) -> bool:
        return self._timer is not None

    def open(self) -> None:
        """
        Start streaming. Calling it again while open is a no-op.

        Raises:
            RuntimeError: If the transport was already closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot reopen a closed transport")
            if self._opened:
                return
            self._opened = True
            if self._client is None:
                self._client = httpx.Client(timeout=httpx.Timeout(10.0, read=None))
        self._connect()

    def close(self) -> None:
        """Stop delivery, cancel pending reconnects and drop the connection."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            response = self._response
            self._response = None
            self.state.connected = False

        if response is not None:
            response.close()
        if self._owns_client and self._client is not None:
            self._client.close()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the current reader thread to finish."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _connect(self) -> None:
        """Start a fresh connection as the new current generation."""
        with self._lock:
            if self._closed:
                return
            self._timer = None
            self._generation += 1
            generation = self._generation
            thread = threading.Thread(
                target=self._run,
                args=(generation,),
                name=f"clide-stream-{generation}",
                daemon=True,
            )
            self._thread = thread
        thread.start()

    def _run(self, generation: int) -> None:
        """Read one connection until it ends, fails or is superseded."""
        reason = "stream ended"
        try:
            with self._client.stream("GET", self.endpoint) as response:
                response.raise_for_status()
                if not self._attach(generation, response):
                    return
                for data in iter_sse_data(response.iter_lines()):
                    content = parse_snapshot_payload(data)
                    if content is None:
                        self.logger.warning(f"Skipping malformed event from {self.endpoint}")
                        continue
                    if not self._deliver(generation, content):
                        return
        except (httpx.HTTPError, httpx.StreamError) as e:
            reason = str(e) or type(e).__name__
        except Exception as e:
            # Callback failures and a client closed under us end this connection too
            reason = f"{type(e).__name__}: {e}"
            if self._is_current(generation):
                self.logger.error(f"Stream reader for {self.endpoint} failed: {reason}")
        self._handle_disconnect(generation, reason)

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _attach(self, generation: int, response: httpx.Response) -> bool:
        with self._lock:
            if not self._is_current(generation):
                return False
            self._response = response
            self.logger.stream_connected(self.endpoint)
            self._set_connected(True)
            return True

    def _deliver(self, generation: int, content: str) -> bool:
        with self._lock:
            if not self._is_current(generation):
                return False
            self.policy.reset()
            self.on_snapshot(content)
            return True

    def _set_connected(self, connected: bool) -> None:
        if self.state.connected == connected:
            return
        self.state.connected = connected
        if self.on_status is not None:
            self.on_status(connected)

    def _handle_disconnect(self, generation: int, reason: str) -> None:
        """Mark the channel down and schedule a bounded reconnect."""
        with self._lock:
            if not self._is_current(generation):
                return
            self._response = None
            self.logger.stream_disconnected(self.endpoint, reason)

            if not self.policy.should_retry():
                self.exhausted = True
                self.logger.reconnect_exhausted(self.endpoint, self.policy.max_retries)
                self._set_connected(False)
                return

            delay = self.policy.get_retry_delay()
            attempt = self.policy.record_retry()
            self.logger.reconnect_scheduled(self.endpoint, attempt, self.policy.max_retries, delay)
            self._timer = threading.Timer(delay, self._connect)
            self._timer.daemon = True
            self._timer.start()
            self._set_connected(False)
