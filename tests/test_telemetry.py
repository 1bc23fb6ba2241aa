import io
import sys
import tempfile
import threading
import time
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from dcgmview.parser import TelemetryRecord
from dcgmview.telemetry import (
    SampleLogError,
    SampleLogger,
    build_sample_logger,
    format_header,
    format_row,
    format_value,
)


class SlowHandle(io.StringIO):
    """In-memory sink whose writes block until released."""

    def __init__(self, delay: float = 0.0) -> None:
        super().__init__()
        self.delay = delay
        self.release = threading.Event()
        self.lines = []

    def write(self, text):
        self.release.wait()
        if self.delay:
            time.sleep(self.delay)
        self.lines.append(text)
        return len(text)

    def close(self):
        pass


class FailingHandle(io.StringIO):
    def write(self, text):
        raise OSError("disk full")


class SampleLogFormatTests(unittest.TestCase):
    def test_header_names_every_metric(self):
        self.assertEqual(format_header(["SMACT", "PCITX"]), "timestamp,SMACT,PCITX")

    def test_values_are_unscaled(self):
        self.assertEqual(format_value(10.0), "10")
        self.assertEqual(format_value(0.512), "0.512")
        self.assertEqual(format_value(123456789.0), "123456789")
        self.assertEqual(format_row("2024-01-01T00:00:00+00:00", [1.0, 0.25]), "2024-01-01T00:00:00+00:00,1,0.25")


class SampleLoggerTests(unittest.TestCase):
    def test_writes_header_then_rows(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "logs" / "samples.csv"
            logger = build_sample_logger(path, ["SMACT", "PCITX"])
            self.assertTrue(logger.submit(TelemetryRecord(values=(0.5, 2048.0))))
            self.assertTrue(logger.submit(TelemetryRecord(values=(0.0, 1.5))))
            logger.close(timeout=5.0)

            lines = path.read_text(encoding="utf-8").splitlines()
            self.assertEqual(lines[0], "timestamp,SMACT,PCITX")
            self.assertEqual(len(lines), 3)
            timestamp, *values = lines[1].split(",")
            self.assertIn("T", timestamp)
            self.assertEqual(values, ["0.5", "2048"])
            self.assertTrue(lines[2].endswith(",0,1.5"))

    def test_unwritable_path_is_fatal(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = Path(tmpdir) / "file"
            blocker.write_text("x")
            with self.assertRaises(SampleLogError):
                build_sample_logger(blocker / "samples.csv", ["SMACT"])

    def test_write_failures_are_swallowed(self):
        logger = SampleLogger(FailingHandle(), ["SMACT"], clock=lambda: "ts").start()
        logger.submit(TelemetryRecord(values=(1.0,)))
        logger.close(timeout=5.0)
        self.assertFalse(logger.running)
        self.assertEqual(logger.dropped, 2)

    def test_submit_after_worker_stopped_is_a_noop(self):
        logger = SampleLogger(io.StringIO(), ["SMACT"], clock=lambda: "ts")
        self.assertFalse(logger.submit(TelemetryRecord(values=(1.0,))))
        logger.start()
        logger.close(timeout=5.0)
        self.assertFalse(logger.submit(TelemetryRecord(values=(1.0,))))

    def test_handoff_never_waits_for_slow_sink(self):
        handle = SlowHandle(delay=0.001)
        logger = SampleLogger(handle, ["SMACT"], clock=lambda: "ts").start()
        started = time.perf_counter()
        for index in range(1000):
            self.assertTrue(logger.submit(TelemetryRecord(values=(float(index),))))
        elapsed = time.perf_counter() - started
        self.assertLess(elapsed, 0.5)
        self.assertEqual(handle.lines, [])

        handle.release.set()
        logger.close(timeout=30.0)
        self.assertEqual(len(handle.lines), 1001)
        self.assertEqual(handle.lines[1], "ts,0\n")
        self.assertEqual(handle.lines[-1], "ts,999\n")


if __name__ == "__main__":
    unittest.main()
