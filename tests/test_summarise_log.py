import io
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from rich.console import Console

from tools.summarise_log import build_table, main, read_columns

LOG = """\
timestamp,SMACT,PCITX
2024-05-01T10:00:00+00:00,0.5,1024
2024-05-01T10:00:01+00:00,0,2048
2024-05-01T10:00:02+00:00,N/A,3072
"""


class SummariseLogTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self._tmpdir.name) / "samples.csv"
        self.path.write_text(LOG, encoding="utf-8")

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def test_read_columns_skips_unparsable_cells(self):
        columns = read_columns(self.path)
        self.assertEqual(columns["SMACT"], [0.5, 0.0])
        self.assertEqual(columns["PCITX"], [1024.0, 2048.0, 3072.0])

    def test_table_formats_known_metrics(self):
        table = build_table(read_columns(self.path), (50,))
        console = Console(file=io.StringIO(), width=100, color_system=None)
        console.print(table)
        output = console.file.getvalue()
        self.assertIn("50.0%", output)
        self.assertIn("2.00 KB/s", output)

    def test_missing_file(self):
        with redirect_stdout(io.StringIO()):
            self.assertEqual(main(["--input", str(self.path.with_name("absent.csv"))]), 1)


if __name__ == "__main__":
    unittest.main()
