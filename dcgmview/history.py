"""Bounded per-metric sample history."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, List, Tuple

__all__ = ["MetricHistory"]


class MetricHistory:
    """Fixed table of ring buffers, one per metric index.

    Every buffer has the same capacity.  Once a buffer is full each push drops
    its oldest value, so a buffer always holds the most recent ``capacity``
    samples in arrival order.
    """

    def __init__(self, metric_count: int, capacity: int) -> None:
        if metric_count <= 0:
            raise ValueError("metric_count must be positive")
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._buffers: List[Deque[float]] = [deque(maxlen=capacity) for _ in range(metric_count)]

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def metric_count(self) -> int:
        return len(self._buffers)

    def __len__(self) -> int:
        return len(self._buffers)

    def _buffer(self, index: int) -> Deque[float]:
        if not 0 <= index < len(self._buffers):
            raise ValueError(f"metric index {index} out of range (0..{len(self._buffers) - 1})")
        return self._buffers[index]

    def push(self, index: int, value: float) -> None:
        self._buffer(index).append(float(value))

    def push_record(self, values: Iterable[float]) -> None:
        values = tuple(values)
        if len(values) != len(self._buffers):
            raise ValueError(f"expected {len(self._buffers)} values, got {len(values)}")
        for index, value in enumerate(values):
            self._buffers[index].append(float(value))

    def snapshot(self, index: int) -> Tuple[float, ...]:
        """Current contents of one buffer, oldest first."""

        return tuple(self._buffer(index))

    def size(self, index: int) -> int:
        return len(self._buffer(index))
