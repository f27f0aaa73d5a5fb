"""Unit tests for ui.output -- JSON creation and text formatting."""

import json
import os
import tempfile
import unittest

from survey.models import SpeedTestResult
from ui.output import create_result_json, format_text_result, save_json


class TestCreateResultJson(unittest.TestCase):
    def _make(self, total=3, **kwargs):
        runs = [SpeedTestResult(10.0 * (i + 1), 5.0, i, total) for i in range(total)]
        summary = SpeedTestResult(20.0, 5.0, total, total)
        return create_result_json(summary, runs, **kwargs)

    def test_basic_structure(self):
        r = self._make()
        self.assertIn("timestamp", r)
        self.assertEqual(r["download_mbps"], 20.0)
        self.assertEqual(r["total_runs"], 3)
        self.assertEqual(len(r["runs"]), 3)
        self.assertEqual(r["runs"][2]["run"], 2)

    def test_aggregation_label(self):
        self.assertEqual(self._make(total=3)["aggregation"], "trimmed_mean")
        self.assertEqual(self._make(total=2)["aggregation"], "mean")

    def test_cell_and_project(self):
        r = self._make(cell=(3, 4), project={"id": "p", "name": "Office"})
        self.assertEqual(r["cell"], {"grid_x": 3, "grid_y": 4})
        self.assertEqual(r["project"]["name"], "Office")

    def test_no_cell(self):
        r = self._make()
        self.assertNotIn("cell", r)
        self.assertNotIn("project", r)

    def test_serialisable(self):
        json.dumps(self._make(cell=(0, 0)))


class TestSaveJson(unittest.TestCase):
    def test_roundtrip(self):
        data = {"key": "value", "number": 42}
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            path = f.name
        try:
            save_json(data, path)
            with open(path) as fh:
                loaded = json.load(fh)
            self.assertEqual(loaded, data)
        finally:
            os.unlink(path)

    def test_atomic_no_partial(self):
        # If the directory doesn't exist, it should raise, not leave a temp file
        with self.assertRaises(IOError):
            save_json({"a": 1}, "/nonexistent/dir/file.json")


class TestFormatTextResult(unittest.TestCase):
    def test_contains_values(self):
        text = format_text_result(SpeedTestResult(93.456, 21.0, 3, 3), cell=(2, 5))
        self.assertIn("Cell: 2,5", text)
        self.assertIn("Download: 93.46 Mbps", text)
        self.assertIn("Upload: 21.00 Mbps", text)
        self.assertIn("Runs: 3", text)

    def test_without_cell(self):
        self.assertNotIn("Cell", format_text_result(SpeedTestResult(1.0, 1.0, 1, 1)))


if __name__ == "__main__":
    unittest.main()
