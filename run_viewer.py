"""Live terminal viewer for DCGM GPU telemetry.

Runs ``dcgmi dmon`` for one GPU, keeps a rolling history of every metric and
redraws a bar-chart dashboard with percentile summaries at a fixed cadence.
Press the quit key (``q`` by default) to exit.
"""

from __future__ import annotations

import argparse
import contextlib
import sys
from pathlib import Path
from typing import Optional, Sequence

from dcgmview import ViewerConfigurationError, ViewerLaunchError, build_dmon_command
from dcgmview.cli_utils import (
    DEFAULT_PRESET,
    PRESETS,
    build_config,
    list_presets,
    merge_overrides,
    resolve_preset,
    summarise_configuration,
)
from dcgmview.dashboard import DashboardLoop, TerminalSession, ThemePreferences
from dcgmview.metrics import metric_names
from dcgmview.runtime import ProcessLineSource, configure_logging
from dcgmview.telemetry import SampleLogError, build_sample_logger


def _parse_percentiles(value: str) -> tuple[int, ...]:
    try:
        parsed = tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Percentiles must be a comma separated list of integers") from exc
    if not parsed:
        raise argparse.ArgumentTypeError("At least one percentile is required")
    return parsed


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Expected an integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be positive")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="GPU DCGM TUI viewer")
    parser.add_argument(
        "-i",
        "--interval",
        dest="interval_ms",
        type=_positive_int,
        default=100,
        help="Sampling interval and render tick in milliseconds",
    )
    parser.add_argument("-l", "--log", dest="log_path", type=Path, help="Path to CSV log file (optional)")
    parser.add_argument(
        "--preset",
        choices=sorted(PRESETS.keys()),
        default=DEFAULT_PRESET,
        help="Metric catalog, history depth and percentiles (standard, compact)",
    )
    parser.add_argument("--history", dest="history_len", type=_positive_int, help="Samples kept per metric")
    parser.add_argument("--entity-id", type=int, default=0, help="GPU entity id passed to dcgmi")
    parser.add_argument(
        "--percentiles",
        type=_parse_percentiles,
        help="Comma separated percentiles to display (e.g. 50,90,99)",
    )
    parser.add_argument("--quit-key", default="q", help="Key that exits the viewer")
    parser.add_argument("--dcgmi", dest="dcgmi_binary", default="dcgmi", help="dcgmi executable")
    parser.add_argument("--theme", choices=["dark", "light", "mono"], default="dark", help="Colour theme")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging verbosity for viewer diagnostics",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
    )
    parser.add_argument("--list-presets", action="store_true", help="Print the available presets and exit")
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Display the resolved configuration before starting",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the dcgmi command that would be executed without running it",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.list_presets:
        print(list_presets())
        return 0

    logger = configure_logging(args.log_level)

    overrides = merge_overrides(
        vars(args),
        ["interval_ms", "log_path", "history_len", "entity_id", "percentiles", "quit_key", "dcgmi_binary"],
    )
    try:
        resolved = resolve_preset(args.preset, overrides)
        config = build_config(resolved)
    except ViewerConfigurationError as exc:
        parser.error(str(exc))

    if args.show_config:
        print(summarise_configuration(config, preset=resolved.preset))

    command = build_dmon_command(
        config.metrics,
        entity_id=config.entity_id,
        interval_ms=config.interval_ms,
        binary=config.dcgmi_binary,
    )
    if args.dry_run:
        print("Dry run command:")
        print(" ".join(command))
        return 0

    sample_logger = None
    try:
        with contextlib.ExitStack() as stack:
            if config.log_path is not None:
                sample_logger = build_sample_logger(config.log_path, metric_names(config.metrics))
                stack.callback(sample_logger.close)
            source = stack.enter_context(ProcessLineSource(command))
            session = stack.enter_context(TerminalSession())
            loop = DashboardLoop(
                config,
                line_source=source.next_line,
                display=session.display,
                key_source=session.poll_key,
                sample_logger=sample_logger,
                theme=ThemePreferences(mode=args.theme),
            )
            logger.info("Viewer started: %s", " ".join(command))
            return loop.run()
    except SampleLogError as exc:
        print(f"Cannot open sample log: {exc}", file=sys.stderr)
        return 1
    except ViewerLaunchError as exc:
        print(f"Viewer failed to start: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":  # pragma: no cover - exercised in tests via main()
    sys.exit(main())
