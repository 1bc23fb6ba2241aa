"""Parsing of ``dcgmi dmon`` output lines."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

__all__ = [
    "DEFAULT_ENTITY_TAG",
    "LineParser",
    "TelemetryRecord",
    "parse_metric_line",
]

DEFAULT_ENTITY_TAG = "GPU 0"


@dataclass(frozen=True)
class TelemetryRecord:
    """Metric values from one accepted line, in catalog order."""

    values: Tuple[float, ...]

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[float]:
        return iter(self.values)

    def __getitem__(self, index: int) -> float:
        return self.values[index]


def _to_finite(token: str) -> Optional[float]:
    try:
        value = float(token)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_metric_line(
    line: str,
    *,
    field_count: int,
    entity_tag: str = DEFAULT_ENTITY_TAG,
) -> Optional[TelemetryRecord]:
    """Parse one line into a record of ``field_count`` values.

    Returns ``None`` for anything that is not a sample row of the configured
    entity: headers, blank lines, rows of other entities, rows with the wrong
    number of columns or with a non-numeric column (``N/A`` included).

    The entity-type word is dropped, which leaves the entity id followed by the
    metric columns.  The id is a duplicate of the tag and is discarded after
    validation.
    """

    tag_tokens = entity_tag.split()
    tokens = line.split()
    if not tag_tokens or tokens[: len(tag_tokens)] != tag_tokens:
        return None
    fields = tokens[1:]
    if len(fields) != field_count + 1:
        return None
    values = []
    for token in fields:
        value = _to_finite(token)
        if value is None:
            return None
        values.append(value)
    return TelemetryRecord(values=tuple(values[1:]))


class LineParser:
    """Parser bound to a fixed field count and entity tag."""

    def __init__(self, field_count: int, *, entity_tag: str = DEFAULT_ENTITY_TAG) -> None:
        if field_count <= 0:
            raise ValueError("field_count must be positive")
        if not entity_tag.split():
            raise ValueError("entity_tag must not be blank")
        self._field_count = field_count
        self._entity_tag = entity_tag

    @property
    def field_count(self) -> int:
        return self._field_count

    @property
    def entity_tag(self) -> str:
        return self._entity_tag

    def parse(self, line: str) -> Optional[TelemetryRecord]:
        return parse_metric_line(line, field_count=self._field_count, entity_tag=self._entity_tag)

