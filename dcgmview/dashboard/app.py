"""Render cycle driver for the dcgmview dashboard.

:class:`DashboardLoop` alternates three steps per iteration: ingest whatever
lines the producer has ready, redraw if the render tick has elapsed, and poll
briefly for the quit key.  Samples are recorded whether or not a frame is drawn
for them.  :class:`TerminalSession` supplies the real display and keyboard.
"""

from __future__ import annotations

import contextlib
import logging
import time
from typing import Callable, List, Optional

from blessed import Terminal
from rich.console import Console, RenderableType
from rich.live import Live

from ..cli_utils import ViewerConfig
from ..history import MetricHistory
from ..parser import LineParser, TelemetryRecord
from ..runtime import ViewerLaunchError
from ..stats import summarise
from ..telemetry import SampleLogger
from .render import MetricPanel, build_frame, stats_lines
from .theme import ThemePreferences

__all__ = ["DashboardLoop", "TerminalSession"]

_LOGGER = logging.getLogger("dcgmview.dashboard")

LineSource = Callable[[], Optional[str]]
KeySource = Callable[[float], Optional[str]]
Display = Callable[[RenderableType], None]


class DashboardLoop:
    """Single-threaded ingest, render and quit-poll loop."""

    def __init__(
        self,
        config: ViewerConfig,
        *,
        line_source: LineSource,
        display: Display,
        key_source: KeySource,
        sample_logger: Optional[SampleLogger] = None,
        theme: Optional[ThemePreferences] = None,
        clock: Callable[[], float] = time.monotonic,
        max_lines_per_step: int = 64,
    ) -> None:
        if max_lines_per_step <= 0:
            raise ValueError("max_lines_per_step must be positive")
        self._config = config
        self._metrics = config.metrics
        self._line_source = line_source
        self._display = display
        self._key_source = key_source
        self._sample_logger = sample_logger
        self._theme = theme or ThemePreferences()
        self._clock = clock
        self._max_lines_per_step = max_lines_per_step
        self._parser = LineParser(config.field_count, entity_tag=config.entity_tag)
        self._history = MetricHistory(config.field_count, config.history_len)
        self._last_render = clock()
        self._running = True
        self.samples_ingested = 0
        self.lines_rejected = 0
        self.frames_rendered = 0

    @property
    def history(self) -> MetricHistory:
        return self._history

    @property
    def running(self) -> bool:
        return self._running

    def ingest(self, line: str) -> Optional[TelemetryRecord]:
        """Parse ``line`` and record it; non-sample lines are dropped."""

        record = self._parser.parse(line)
        if record is None:
            self.lines_rejected += 1
            return None
        self._history.push_record(record.values)
        self.samples_ingested += 1
        if self._sample_logger is not None and not self._sample_logger.submit(record):
            _LOGGER.warning("Sample logger stopped; continuing without logging")
            self._sample_logger = None
        return record

    def panels(self) -> List[MetricPanel]:
        panels = []
        for index, spec in enumerate(self._metrics):
            samples = self._history.snapshot(index)
            summary = summarise(samples, self._config.percentiles)
            panels.append(MetricPanel(spec=spec, samples=samples, summary=summary, lines=stats_lines(spec, summary)))
        return panels

    def render(self) -> None:
        self._display(build_frame(self.panels(), self._theme))
        self.frames_rendered += 1

    def _drain(self) -> None:
        for _ in range(self._max_lines_per_step):
            line = self._line_source()
            if line is None:
                return
            self.ingest(line)

    def step(self) -> bool:
        """Run one iteration; returns ``False`` once the quit key was pressed."""

        if not self._running:
            return False
        self._drain()
        if self._clock() - self._last_render >= self._config.tick_seconds:
            self.render()
            self._last_render = self._clock()
        key = self._key_source(self._config.poll_timeout)
        if key == self._config.quit_key:
            _LOGGER.debug("Quit key pressed")
            self._running = False
        return self._running

    def stop(self) -> None:
        self._running = False

    def run(self) -> int:
        while self.step():
            pass
        return 0


class TerminalSession:
    """Alternate-screen display plus cbreak keyboard polling.

    Entering requires an interactive terminal.  Terminal modes entered so far
    are restored when setup fails part way and on exit.
    """

    def __init__(self, *, console: Optional[Console] = None, terminal: Optional[Terminal] = None) -> None:
        self._console = console or Console()
        self._terminal = terminal or Terminal()
        self._stack = contextlib.ExitStack()
        self._live: Optional[Live] = None

    def __enter__(self) -> "TerminalSession":
        if not (self._terminal.is_a_tty and self._console.is_terminal):
            raise ViewerLaunchError("dcgmview needs an interactive terminal")
        try:
            self._stack.enter_context(self._terminal.cbreak())
            self._live = self._stack.enter_context(
                Live(console=self._console, screen=True, auto_refresh=False, transient=True)
            )
        except Exception as exc:
            self._stack.close()
            raise ViewerLaunchError(f"Failed to initialise the terminal: {exc}") from exc
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._live = None
        self._stack.close()

    def display(self, renderable: RenderableType) -> None:
        if self._live is None:
            raise ViewerLaunchError("terminal session is not active")
        self._live.update(renderable, refresh=True)

    def poll_key(self, timeout: float) -> Optional[str]:
        key = self._terminal.inkey(timeout=timeout)
        if not key:
            return None
        if key.is_sequence:
            return key.name
        return str(key)
