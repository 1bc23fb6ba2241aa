"""Summarise a dcgmview CSV sample log in the terminal."""

from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path
from typing import Dict, List, Sequence

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from rich.console import Console
from rich.table import Table

from dcgmview.metrics import CATALOGS, MetricSpec
from dcgmview.stats import format_metric_value, summarise


def _known_specs() -> Dict[str, MetricSpec]:
    specs: Dict[str, MetricSpec] = {}
    for catalog in CATALOGS.values():
        for spec in catalog:
            specs.setdefault(spec.name, spec)
    return specs


def read_columns(path: Path) -> Dict[str, List[float]]:
    """Load every metric column of a sample log; unparsable cells are skipped."""

    columns: Dict[str, List[float]] = {}
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        names = [name for name in reader.fieldnames or [] if name != "timestamp"]
        for name in names:
            columns[name] = []
        for row in reader:
            for name in names:
                try:
                    columns[name].append(float(row[name]))
                except (TypeError, ValueError):
                    continue
    return columns


def build_table(columns: Dict[str, List[float]], percentiles: Sequence[int]) -> Table:
    specs = _known_specs()
    table = Table(title="dcgmview sample log")
    table.add_column("Metric", style="bold")
    table.add_column("Samples", justify="right")
    table.add_column("Active", justify="right")
    for pct in percentiles:
        table.add_column(f"p{pct}", justify="right")
    for name, values in columns.items():
        spec = specs.get(name, MetricSpec(name, 0))
        summary = summarise(values, percentiles)
        table.add_row(
            name,
            str(len(values)),
            str(summary.sample_count),
            *(format_metric_value(spec, summary[pct]) for pct in percentiles),
        )
    return table


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Summarise a dcgmview CSV sample log.")
    parser.add_argument("--input", type=Path, required=True, help="Path to the CSV log")
    parser.add_argument(
        "--percentiles",
        type=lambda value: tuple(int(part) for part in value.split(",")),
        default=(50, 90, 99),
        help="Comma separated percentiles",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if not args.input.exists():
        print(f"No such log: {args.input}", file=sys.stderr)
        return 1
    columns = read_columns(args.input)
    Console().print(build_table(columns, args.percentiles))
    return 0


if __name__ == "__main__":
    sys.exit(main())
