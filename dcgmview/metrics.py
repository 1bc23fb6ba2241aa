"""Metric catalogs understood by the viewer.

A catalog is an ordered tuple of :class:`MetricSpec` entries.  The order is the
only link between the columns printed by ``dcgmi dmon`` and the metric names,
so the field ids passed to ``-e`` must follow the same sequence.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence, Tuple

__all__ = [
    "CATALOGS",
    "MEMORY_CATALOG",
    "MetricKind",
    "MetricSpec",
    "STANDARD_CATALOG",
    "get_catalog",
    "metric_names",
]


class MetricKind(str, Enum):
    UTILIZATION = "utilization"
    RATE = "rate"
    MEMORY = "memory"


@dataclass(frozen=True)
class MetricSpec:
    """One column of the telemetry stream."""

    name: str
    field_id: int
    kind: MetricKind = MetricKind.UTILIZATION
    unit_scale: float = 1.0
    description: str = ""

    @property
    def is_rate(self) -> bool:
        return self.kind is MetricKind.RATE


STANDARD_CATALOG: Tuple[MetricSpec, ...] = (
    MetricSpec("SMACT", 1002, description="SM activity"),
    MetricSpec("SMOCC", 1003, description="SM occupancy"),
    MetricSpec("TENSO", 1004, description="Tensor core activity"),
    MetricSpec("FP64A", 1006, description="FP64 pipe activity"),
    MetricSpec("FP32A", 1007, description="FP32 pipe activity"),
    MetricSpec("FP16A", 1008, description="FP16 pipe activity"),
    MetricSpec("DRAMA", 1005, description="DRAM activity"),
    MetricSpec("PCITX", 1009, MetricKind.RATE, description="PCIe transmit bytes"),
    MetricSpec("PCIRX", 1010, MetricKind.RATE, description="PCIe receive bytes"),
    MetricSpec("NVLTX", 1011, MetricKind.RATE, description="NVLink transmit bytes"),
    MetricSpec("NVLRX", 1012, MetricKind.RATE, description="NVLink receive bytes"),
)

# DCGM reports framebuffer usage in MiB.
MEMORY_CATALOG: Tuple[MetricSpec, ...] = STANDARD_CATALOG + (
    MetricSpec("FBUSD", 252, MetricKind.MEMORY, unit_scale=1024.0 * 1024.0, description="Framebuffer used"),
)

CATALOGS: Mapping[str, Tuple[MetricSpec, ...]] = {
    "standard": STANDARD_CATALOG,
    "memory": MEMORY_CATALOG,
}


def get_catalog(name: str) -> Tuple[MetricSpec, ...]:
    try:
        return CATALOGS[name]
    except KeyError:
        raise KeyError(f"Unknown metric catalog '{name}'. Available: {', '.join(sorted(CATALOGS))}") from None


def metric_names(catalog: Sequence[MetricSpec]) -> Tuple[str, ...]:
    return tuple(spec.name for spec in catalog)
