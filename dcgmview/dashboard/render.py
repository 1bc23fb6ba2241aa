"""Frame construction for the terminal dashboard."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from rich.console import Console, ConsoleOptions, RenderResult
from rich.layout import Layout
from rich.panel import Panel
from rich.text import Text

from ..metrics import MetricSpec
from ..stats import PercentileSnapshot, format_metric_value
from .theme import ThemePreferences

__all__ = [
    "HistoryChart",
    "MetricPanel",
    "bar_heights",
    "build_frame",
    "stats_lines",
]


def bar_heights(values: Iterable[float]) -> List[int]:
    """Square-root scaled bar heights; idle samples draw as empty bars."""

    return [int(math.sqrt(value) * 100.0) if value > 0.0 else 0 for value in values]


def stats_lines(spec: MetricSpec, summary: PercentileSnapshot) -> Tuple[str, ...]:
    return tuple(f"p{pct}: {format_metric_value(spec, value)}" for pct, value in summary.values.items())


@dataclass(frozen=True)
class MetricPanel:
    """Everything drawn for one metric in one frame."""

    spec: MetricSpec
    samples: Tuple[float, ...]
    summary: PercentileSnapshot
    lines: Tuple[str, ...]

    @property
    def heights(self) -> List[int]:
        return bar_heights(self.samples)


class HistoryChart:
    """Vertical one-cell-wide bars, newest sample on the right.

    Bars are scaled against the tallest visible bar and drawn with eighth-block
    glyphs across the height the layout gives the chart.
    """

    def __init__(self, heights: Sequence[int], *, glyphs: str, style: str = "") -> None:
        self._heights = list(heights)
        self._glyphs = glyphs
        self._style = style

    def rows(self, width: int, height: int) -> List[str]:
        visible = self._heights[-width:] if width > 0 else []
        peak = max(visible, default=0)
        ticks_per_row = len(self._glyphs) - 1
        total_ticks = height * ticks_per_row
        ticks = [(value * total_ticks) // peak if peak else 0 for value in visible]
        rows = []
        for row in range(height):
            base = (height - 1 - row) * ticks_per_row
            cells = []
            for tick in ticks:
                level = min(max(tick - base, 0), ticks_per_row)
                cells.append(self._glyphs[level])
            rows.append("".join(cells))
        return rows

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        height = options.height or 1
        for row in self.rows(options.max_width, height):
            yield Text(row, style=self._style, no_wrap=True, overflow="crop")


def build_frame(panels: Sequence[MetricPanel], theme: ThemePreferences) -> Layout:
    """Stack one chart/statistics row per metric."""

    frame = Layout(name="dashboard")
    rows = []
    for panel in panels:
        row = Layout(name=panel.spec.name)
        chart = HistoryChart(panel.heights, glyphs=theme.glyphs, style=theme.bar_style)
        stats = Text("\n".join(panel.lines), style=theme.stats_style, no_wrap=True, overflow="ellipsis")
        row.split_row(
            Layout(
                Panel(chart, title=Text(panel.spec.name, style=theme.title_style), title_align="left", border_style=theme.border_style),
                name=f"{panel.spec.name}.chart",
                ratio=4,
            ),
            Layout(Panel(stats, border_style=theme.border_style), name=f"{panel.spec.name}.stats", ratio=1),
        )
        rows.append(row)
    frame.split_column(*rows)
    return frame
