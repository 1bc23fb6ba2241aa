"""Percentile summaries and unit formatting for metric histories."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence, Tuple

from .metrics import MetricKind, MetricSpec

__all__ = [
    "DEFAULT_PERCENTILES",
    "PercentileSnapshot",
    "format_magnitude",
    "format_metric_value",
    "format_percent",
    "percentile",
    "summarise",
]

DEFAULT_PERCENTILES: Tuple[int, ...] = (50, 90, 99)

KB = 1024.0
MB = KB * 1024.0
GB = MB * 1024.0
TB = GB * 1024.0

_UNITS: Tuple[Tuple[float, str], ...] = (
    (TB, "TB"),
    (GB, "GB"),
    (MB, "MB"),
    (KB, "KB"),
)


def percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Linear-rank interpolated percentile of an ascending sequence.

    ``rank = pct / 100 * (len - 1)``; values at the floor and ceiling of the
    rank are blended by its fractional part.  An empty sequence yields ``0.0``.
    """

    if not 0 <= pct <= 100:
        raise ValueError("percentile must be between 0 and 100")
    if not sorted_values:
        return 0.0
    rank = (pct / 100.0) * (len(sorted_values) - 1)
    low = math.floor(rank)
    high = math.ceil(rank)
    if low == high:
        return float(sorted_values[low])
    weight = rank - low
    return sorted_values[low] * (1.0 - weight) + sorted_values[high] * weight


@dataclass(frozen=True)
class PercentileSnapshot:
    """Percentiles of the positive samples of one metric history."""

    values: Mapping[int, float] = field(default_factory=dict)
    sample_count: int = 0

    def __getitem__(self, pct: int) -> float:
        return self.values[pct]

    def get(self, pct: int, default: float = 0.0) -> float:
        return self.values.get(pct, default)

    @property
    def percentiles(self) -> Tuple[int, ...]:
        return tuple(self.values)

    @property
    def p50(self) -> float:
        return self.get(50)

    @property
    def p90(self) -> float:
        return self.get(90)

    @property
    def p99(self) -> float:
        return self.get(99)


def summarise(values: Iterable[float], percentiles: Sequence[int] = DEFAULT_PERCENTILES) -> PercentileSnapshot:
    """Rank the strictly-positive samples of ``values``.

    Idle samples (zero or negative) stay in the history but are excluded here,
    so the percentiles describe the metric while it is active.
    """

    active = sorted(value for value in values if value > 0.0)
    return PercentileSnapshot(
        values={pct: percentile(active, pct) for pct in percentiles},
        sample_count=len(active),
    )


def format_magnitude(value: float, is_rate: bool) -> str:
    suffix = "/s" if is_rate else ""
    for threshold, unit in _UNITS:
        if value >= threshold:
            return f"{value / threshold:.2f} {unit}{suffix}"
    # Truncate so a value just under 1 KB never prints as "1024 B".
    return f"{int(value)} B{suffix}"


def format_percent(fraction: float) -> str:
    return f"{fraction * 100.0:.1f}%"


def format_metric_value(spec: MetricSpec, value: float) -> str:
    """Render ``value`` in the unit appropriate for ``spec``."""

    if spec.kind is MetricKind.RATE:
        return format_magnitude(value * spec.unit_scale, is_rate=True)
    if spec.kind is MetricKind.MEMORY:
        return format_magnitude(value * spec.unit_scale, is_rate=False)
    return format_percent(value)
