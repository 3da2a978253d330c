"""
Logging module for the Clide dashboard.
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional


class ClideLogger:
    """
    Custom logger for Clide with file and console output.
    """

    def __init__(
        self,
        name: str = "clide",
        log_file: Optional[Path] = None,
        verbose: bool = False
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            log_file: Path to log file (optional)
            verbose: Enable verbose output
        """
        self.verbose = verbose
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if verbose else logging.INFO)

        # Clear existing handlers
        self.logger.handlers.clear()
        self.logger.propagate = False

        # Console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        console_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )
        console_handler.setFormatter(console_formatter)
        self.logger.addHandler(console_handler)
        self.console_handler = console_handler

        # File handler
        if log_file:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str) -> None:
        """Log debug message."""
        if self.verbose:
            self.logger.debug(message)

    def info(self, message: str) -> None:
        """Log info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log error message."""
        self.logger.error(message)

    @contextmanager
    def quiet_console(self) -> Iterator["ClideLogger"]:
        """
        Keep log records off the console while a full-screen view owns it.

        Records still reach the log file, if one is configured.
        """
        level = self.console_handler.level
        self.console_handler.setLevel(logging.CRITICAL + 1)
        try:
            yield self
        finally:
            self.console_handler.setLevel(level)

    def stream_connected(self, endpoint: str) -> None:
        """Log a push channel connecting."""
        self.info(f"🔌 Connected to {endpoint}")

    def stream_disconnected(self, endpoint: str, reason: str) -> None:
        """Log a push channel dropping."""
        self.warning(f"⚠️  Disconnected from {endpoint}: {reason}")

    def reconnect_scheduled(self, endpoint: str, attempt: int, max_retries: int, delay: float) -> None:
        """Log a reconnect attempt being scheduled."""
        self.info(f"⏳ Reconnecting to {endpoint} (attempt {attempt}/{max_retries}) in {delay:.1f}s")

    def reconnect_exhausted(self, endpoint: str, max_retries: int) -> None:
        """Log that the reconnect budget is spent."""
        self.error(f"❌ Giving up on {endpoint} after {max_retries} reconnect attempts")

    def format_detected(self, source: str, stream_format: str) -> None:
        """Log a stream format classification."""
        self.debug(f"🔎 [{source}] classified as {stream_format}")

    def server_start(self, host: str, port: int) -> None:
        """Log web server start."""
        self.info(f"🌐 Clide dashboard starting on http://{host}:{port}")
