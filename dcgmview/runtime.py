"""Launch and read the ``dcgmi dmon`` telemetry producer.

The dashboard only needs "the next complete line, or nothing yet" from the
producer.  :class:`ProcessLineSource` provides that on top of a child process
by polling its stdout pipe with :mod:`selectors` and splitting the raw bytes
into lines itself, so a read never blocks the render loop.
"""

from __future__ import annotations

import logging
import os
import selectors
import shutil
import subprocess
from collections import deque
from typing import Deque, Mapping, Optional, Sequence, Tuple

from .metrics import MetricSpec

__all__ = [
    "ProcessLineSource",
    "ViewerConfigurationError",
    "ViewerLaunchError",
    "build_dmon_command",
    "coerce_log_level",
    "configure_logging",
]

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"

_LOGGER = logging.getLogger("dcgmview.runtime")


class ViewerConfigurationError(ValueError):
    """Raised when the viewer is configured with invalid values."""


class ViewerLaunchError(RuntimeError):
    """Raised when the terminal or the telemetry producer cannot be set up."""


def coerce_log_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if isinstance(resolved, str):
        raise ViewerConfigurationError(f"Unknown log level: {level}")
    return resolved


def configure_logging(level: int | str = logging.WARNING) -> logging.Logger:
    """Attach a stream handler to the package logger once."""

    logger = logging.getLogger("dcgmview")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, "%H:%M:%S"))
        logger.addHandler(handler)
    logger.setLevel(coerce_log_level(level))
    return logger


def build_dmon_command(
    catalog: Sequence[MetricSpec],
    *,
    entity_id: int = 0,
    interval_ms: int = 100,
    binary: str = "dcgmi",
) -> Tuple[str, ...]:
    """Command line for a ``dcgmi dmon`` run printing ``catalog`` in order."""

    if not catalog:
        raise ViewerConfigurationError("metric catalog must not be empty")
    if interval_ms <= 0:
        raise ViewerConfigurationError("interval_ms must be positive")
    if entity_id < 0:
        raise ViewerConfigurationError("entity_id cannot be negative")
    field_ids = ",".join(str(spec.field_id) for spec in catalog)
    return (
        binary,
        "dmon",
        "-e",
        field_ids,
        "--entity-id",
        str(entity_id),
        "-d",
        str(interval_ms),
    )


class ProcessLineSource:
    """Non-blocking line reader over a child process' stdout."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        env: Optional[Mapping[str, str]] = None,
        read_size: int = 65536,
    ) -> None:
        self._command = tuple(command)
        self._read_size = read_size
        self._pending: Deque[str] = deque()
        self._partial = b""
        self._closed = False
        self._process = self._spawn(env)
        if self._process.stdout is None:
            self._process.kill()
            raise ViewerLaunchError(f"No stdout pipe for {' '.join(self._command)}")
        self._fd = self._process.stdout.fileno()
        os.set_blocking(self._fd, False)
        self._selector = selectors.DefaultSelector()
        self._selector.register(self._fd, selectors.EVENT_READ)

    @property
    def closed(self) -> bool:
        """True once the producer's stdout reached EOF and every line was read."""

        return self._closed and not self._pending

    def _spawn(self, env: Optional[Mapping[str, str]]) -> subprocess.Popen[bytes]:
        binary = self._command[0]
        if shutil.which(binary) is None and not os.path.exists(binary):
            raise ViewerLaunchError(f"Telemetry producer '{binary}' was not found on PATH")
        try:
            return subprocess.Popen(
                self._command,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                env=dict(env) if env is not None else None,
            )
        except OSError as exc:
            raise ViewerLaunchError(f"Failed to start {' '.join(self._command)}: {exc}") from exc

    def _fill(self) -> None:
        if self._closed:
            return
        if not self._selector.select(timeout=0):
            return
        try:
            chunk = os.read(self._fd, self._read_size)
        except BlockingIOError:
            return
        if not chunk:
            self._closed = True
            if self._partial:
                self._pending.append(self._partial.decode("utf-8", errors="replace"))
                self._partial = b""
            _LOGGER.warning("Telemetry producer closed its output (pid %s)", self._process.pid)
            return
        data = self._partial + chunk
        *lines, self._partial = data.split(b"\n")
        self._pending.extend(line.decode("utf-8", errors="replace").rstrip("\r") for line in lines)

    def next_line(self) -> Optional[str]:
        """Return the next complete line, or ``None`` when none is available yet."""

        if not self._pending:
            self._fill()
        if self._pending:
            return self._pending.popleft()
        return None

    def close(self, timeout: float = 2.0) -> None:
        self._closed = True
        self._selector.close()
        if self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                _LOGGER.debug("Producer ignored SIGTERM, killing pid %s", self._process.pid)
                self._process.kill()
                self._process.wait()
        if self._process.stdout is not None:
            self._process.stdout.close()

    def __enter__(self) -> "ProcessLineSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
