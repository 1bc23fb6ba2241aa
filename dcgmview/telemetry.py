"""CSV sample logging for the viewer.

Records are handed to a background worker through an unbounded queue so the
render loop never waits on disk.  The worker owns the open file handle.
"""

from __future__ import annotations

import logging
import queue
import threading
from datetime import datetime
from pathlib import Path
from typing import IO, Callable, Iterable, Optional, Sequence, Union

from .parser import TelemetryRecord

__all__ = [
    "SampleLogError",
    "SampleLogger",
    "build_sample_logger",
    "format_header",
    "format_row",
    "format_value",
]

_LOGGER = logging.getLogger("dcgmview.telemetry")

_STOP = object()


class SampleLogError(OSError):
    """Raised when the sample log cannot be created."""


def _local_timestamp() -> str:
    return datetime.now().astimezone().isoformat()


def format_value(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_header(metric_names: Sequence[str]) -> str:
    return ",".join(("timestamp", *metric_names))


def format_row(timestamp: str, values: Iterable[float]) -> str:
    return ",".join((timestamp, *(format_value(value) for value in values)))


class SampleLogger:
    """Single-consumer CSV writer fed through a non-blocking queue."""

    def __init__(
        self,
        handle: IO[str],
        metric_names: Sequence[str],
        *,
        clock: Callable[[], str] = _local_timestamp,
    ) -> None:
        self._handle = handle
        self._metric_names = tuple(metric_names)
        self._clock = clock
        self._queue: "queue.SimpleQueue[object]" = queue.SimpleQueue()
        self._thread: Optional[threading.Thread] = None
        self._dropped = 0

    @property
    def metric_names(self) -> Sequence[str]:
        return self._metric_names

    @property
    def dropped(self) -> int:
        """Rows whose write failed."""

        return self._dropped

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "SampleLogger":
        if self._thread is None:
            self._thread = threading.Thread(target=self._run, name="dcgmview-sample-logger", daemon=True)
            self._thread.start()
        return self

    def submit(self, record: TelemetryRecord) -> bool:
        """Queue ``record`` for writing; never blocks.

        Returns ``False`` without queueing when the worker is not running.
        """

        if not self.running:
            return False
        self._queue.put(record)
        return True

    def close(self, timeout: Optional[float] = 1.0) -> None:
        """Ask the worker to finish the queued rows and wait up to ``timeout``.

        Rows still queued when the timeout expires are lost.
        """

        if self._thread is None:
            self._handle.close()
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)

    def _write_line(self, line: str) -> None:
        try:
            self._handle.write(line + "\n")
            self._handle.flush()
        except (OSError, ValueError) as exc:
            self._dropped += 1
            _LOGGER.debug("Dropped sample log line: %s", exc)

    def _run(self) -> None:
        self._write_line(format_header(self._metric_names))
        try:
            while True:
                item = self._queue.get()
                if item is _STOP:
                    break
                record: TelemetryRecord = item  # type: ignore[assignment]
                self._write_line(format_row(self._clock(), record.values))
        finally:
            try:
                self._handle.close()
            except OSError as exc:
                _LOGGER.debug("Failed to close sample log: %s", exc)


def build_sample_logger(path: Union[Path, str], metric_names: Sequence[str]) -> SampleLogger:
    """Create the log file and start its worker.

    Any failure to create the file is raised as :class:`SampleLogError` so the
    caller can abort before the dashboard starts.
    """

    output_path = Path(path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        handle = output_path.open("w", encoding="utf-8")
    except OSError as exc:
        raise SampleLogError(f"Cannot create sample log {output_path}: {exc}") from exc
    return SampleLogger(handle, metric_names).start()
