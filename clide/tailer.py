"""
Whole-file snapshot tailing for the push endpoints.

Agent logs are appended to while a task runs. Rather than streaming deltas,
the dashboard pushes the full current text every time the file changes, so
a viewer that missed an update is never out of sync.
"""

import time
from pathlib import Path
from typing import Iterator, Optional, Tuple


class SnapshotTail:
    """
    Watch one file and report its full content whenever it changes.

    Change detection compares size and modification time, so a truncated or
    replaced file is picked up like any other change. A missing file reads
    as the empty string.

    Example:
        >>> tail = SnapshotTail(Path("logs/11.log"))
        >>> tail.poll()    # first call always returns the current content
        >>> tail.poll()    # None until the file changes
    """

    def __init__(self, path: Path):
        """
        Initialize a tail for a file that may not exist yet.

        Args:
            path: Path to the watched file
        """
        self.path = Path(path)
        # None until the first poll, so the first poll always reports
        self._signature: Optional[Tuple[int, int]] = None

    def _current_signature(self) -> Tuple[int, int]:
        try:
            stat = self.path.stat()
        except OSError:
            return (-1, -1)
        return (stat.st_size, stat.st_mtime_ns)

    def read(self) -> str:
        """Read the whole file, or the empty string when it is unreadable."""
        try:
            data = self.path.read_bytes()
        except OSError:
            return ""
        return data.decode("utf-8", errors="replace")

    def poll(self) -> Optional[str]:
        """
        Return the full content if the file changed since the last poll.

        Returns:
            The snapshot, or None when nothing changed
        """
        signature = self._current_signature()
        if signature == self._signature:
            return None
        self._signature = signature
        return self.read()

    def follow(
        self,
        interval: float = 0.5,
        stop=None,
        heartbeat: Optional[float] = None,
    ) -> Iterator[Optional[str]]:
        """
        Yield a snapshot now and again after every change.

        Args:
            interval: Seconds between polls
            stop: Optional threading.Event ending the loop when set
            heartbeat: Yield None after this many idle seconds (optional)

        Yields:
            Full file contents, or None as a heartbeat
        """
        idle = 0.0
        while stop is None or not stop.is_set():
            snapshot = self.poll()
            if snapshot is not None:
                idle = 0.0
                yield snapshot
            elif heartbeat is not None and idle >= heartbeat:
                idle = 0.0
                yield None
            time.sleep(interval)
            idle += interval
