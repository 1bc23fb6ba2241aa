import io
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import run_viewer
from run_viewer import _build_parser, main

try:
    from hypothesis import HealthCheck, given, settings
    from hypothesis import strategies as st
except Exception as exc:  # pragma: no cover - skip when hypothesis unavailable
    raise unittest.SkipTest(f"hypothesis not available: {exc}")


class CliPropertyTests(unittest.TestCase):
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    @given(
        interval=st.integers(min_value=1, max_value=60_000),
        history=st.integers(min_value=1, max_value=5000),
        entity=st.integers(min_value=0, max_value=64),
        percentiles=st.lists(st.integers(min_value=0, max_value=100), min_size=1, max_size=4),
    )
    def test_round_trip_argument_parsing(self, interval, history, entity, percentiles):
        argv = [
            "--interval",
            str(interval),
            "--history",
            str(history),
            "--entity-id",
            str(entity),
            "--percentiles",
            ",".join(str(pct) for pct in percentiles),
        ]
        args = _build_parser().parse_args(argv)
        self.assertEqual(args.interval_ms, interval)
        self.assertEqual(args.history_len, history)
        self.assertEqual(args.entity_id, entity)
        self.assertEqual(args.percentiles, tuple(percentiles))

    @settings(max_examples=20)
    @given(value=st.integers(max_value=0))
    def test_non_positive_interval_is_rejected(self, value):
        with self.assertRaises(SystemExit):
            _build_parser().parse_args(["--interval", str(value)])

    @settings(max_examples=20)
    @given(value=st.text(alphabet="abc,;x ", min_size=1).filter(lambda s: any(c.isalpha() or c == ";" for c in s)))
    def test_percentile_list_rejects_garbage(self, value):
        with self.assertRaises(SystemExit):
            _build_parser().parse_args(["--percentiles", value])


class MainEntrypointTests(unittest.TestCase):
    def _run(self, argv):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = main(argv)
        return code, buffer.getvalue()

    def test_dry_run_prints_dcgmi_command(self):
        code, output = self._run(["--dry-run", "--preset", "compact", "--entity-id", "1", "-i", "500"])
        self.assertEqual(code, 0)
        self.assertIn("dcgmi dmon -e 1002,1003,1004,1006,1007,1008,1005,1009,1010,1011,1012,252", output)
        self.assertIn("--entity-id 1 -d 500", output)

    def test_list_presets(self):
        code, output = self._run(["--list-presets"])
        self.assertEqual(code, 0)
        self.assertIn("standard", output)
        self.assertIn("compact", output)

    def test_show_config(self):
        code, output = self._run(["--dry-run", "--show-config", "--history", "42"])
        self.assertEqual(code, 0)
        self.assertIn("history_len: 42", output)
        self.assertIn("percentiles: p50, p90, p99", output)

    def test_invalid_percentile_is_a_usage_error(self):
        with redirect_stdout(io.StringIO()), mock.patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                main(["--dry-run", "--percentiles", "50,150"])

    def test_unwritable_log_aborts_before_producer_starts(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = Path(tmpdir) / "file"
            blocker.write_text("x")
            with mock.patch.object(run_viewer, "ProcessLineSource") as source, mock.patch(
                "sys.stderr", new_callable=io.StringIO
            ) as stderr:
                code = main(["--log", str(blocker / "samples.csv")])
        self.assertEqual(code, 1)
        source.assert_not_called()
        self.assertIn("Cannot open sample log", stderr.getvalue())

    def test_missing_producer_exits_non_zero(self):
        with mock.patch("sys.stderr", new_callable=io.StringIO) as stderr:
            code = main(["--dcgmi", "definitely-not-dcgmi-binary"])
        self.assertEqual(code, 1)
        self.assertIn("Viewer failed to start", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
