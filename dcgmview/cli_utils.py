"""Shared configuration helpers for the dcgmview command line."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Mapping, MutableMapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .metrics import CATALOGS, MetricSpec, get_catalog
from .runtime import ViewerConfigurationError

PRESETS: Mapping[str, Mapping[str, object]] = {
    "standard": {
        "catalog": "standard",
        "history_len": 300,
        "percentiles": (50, 90, 99),
    },
    "compact": {
        "catalog": "memory",
        "history_len": 100,
        "percentiles": (50, 90),
    },
}

DEFAULT_PRESET = "standard"


class ViewerConfig(BaseModel):
    """Validated viewer settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    catalog: str = "standard"
    history_len: int = Field(300, ge=1, le=100_000)
    interval_ms: int = Field(100, ge=1, le=60_000)
    entity_id: int = Field(0, ge=0)
    percentiles: Tuple[int, ...] = (50, 90, 99)
    log_path: Optional[Path] = None
    quit_key: str = Field("q", min_length=1, max_length=1)
    poll_timeout: float = Field(0.01, gt=0.0, le=1.0)
    dcgmi_binary: str = "dcgmi"

    @field_validator("catalog")
    @classmethod
    def validate_catalog(cls, value: str) -> str:
        if value not in CATALOGS:
            raise ValueError(f"Unknown catalog '{value}'")
        return value

    @field_validator("percentiles")
    @classmethod
    def validate_percentiles(cls, value: Tuple[int, ...]) -> Tuple[int, ...]:
        if not value:
            raise ValueError("at least one percentile is required")
        if any(not 0 <= pct <= 100 for pct in value):
            raise ValueError("percentiles must be between 0 and 100")
        return tuple(sorted(set(value)))

    @property
    def metrics(self) -> Tuple[MetricSpec, ...]:
        return get_catalog(self.catalog)

    @property
    def field_count(self) -> int:
        return len(self.metrics)

    @property
    def entity_tag(self) -> str:
        return f"GPU {self.entity_id}"

    @property
    def tick_seconds(self) -> float:
        return self.interval_ms / 1000.0


@dataclass(slots=True)
class ResolvedConfiguration:
    """Effective configuration derived from preset and CLI overrides."""

    preset: Optional[str]
    values: MutableMapping[str, object]


def list_presets() -> str:
    """Return a formatted table of presets."""

    lines = ["Available presets:"]
    for name, preset in PRESETS.items():
        details = ", ".join(f"{key}={value}" for key, value in preset.items())
        lines.append(f"  - {name}: {details}")
    return "\n".join(lines)


def resolve_preset(preset: Optional[str], overrides: Mapping[str, object]) -> ResolvedConfiguration:
    """Merge preset defaults with explicit overrides."""

    values: MutableMapping[str, object] = dict(overrides)
    if preset:
        base = PRESETS.get(preset)
        if not base:
            raise ViewerConfigurationError(f"Unknown preset '{preset}'. Use --list-presets to inspect options.")
        for key, value in base.items():
            values.setdefault(key, value)
    return ResolvedConfiguration(preset=preset, values=values)


def build_config(resolved: ResolvedConfiguration) -> ViewerConfig:
    """Validate resolved values into a :class:`ViewerConfig`."""

    try:
        return ViewerConfig(**resolved.values)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise ViewerConfigurationError(f"Invalid configuration: {problems}") from exc


def summarise_configuration(config: ViewerConfig, *, preset: Optional[str] = None) -> str:
    """Generate a human-friendly summary of the configuration."""

    lines = ["Resolved configuration:"]
    if preset:
        lines.append(f"  preset: {preset}")
    lines.append(f"  catalog: {config.catalog} ({', '.join(spec.name for spec in config.metrics)})")
    lines.append(f"  history_len: {config.history_len}")
    lines.append(f"  interval_ms: {config.interval_ms}")
    lines.append(f"  entity: {config.entity_tag}")
    lines.append(f"  percentiles: {', '.join(f'p{pct}' for pct in config.percentiles)}")
    if config.log_path is not None:
        lines.append(f"  log_path: {config.log_path}")
    lines.append(f"  quit_key: {config.quit_key}")
    return "\n".join(lines)


def merge_overrides(args: Mapping[str, object], fields: Iterable[str]) -> Dict[str, object]:
    """Extract a subset of argparse.Namespace into a dict."""

    return {field: args[field] for field in fields if args.get(field) is not None}
