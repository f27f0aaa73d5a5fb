"""Tests for survey.projects -- project store and measurement bookkeeping."""

import json
import os
import tempfile
import unittest

from survey.models import SpeedTestResult
from survey.projects import (
    clear_measurements,
    create_project,
    delete_measurement,
    find_project,
    load_projects,
    record_measurement,
    save_projects,
)


class TestStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "projects.json")

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_file_is_empty(self):
        self.assertEqual(load_projects(self.path), [])

    def test_save_and_load(self):
        project = create_project("Office")
        record_measurement(project, 1, 1, SpeedTestResult(80.0, 20.0, 1, 1))
        save_projects([project], self.path)

        loaded = load_projects(self.path)
        self.assertEqual(len(loaded), 1)
        self.assertEqual(loaded[0].id, project.id)
        self.assertEqual(loaded[0].measurements[0].download, 80.0)
        self.assertFalse(os.path.exists(os.path.join(self._tmp.name, ".tmp_projects.json")))

    def test_creates_parent_dir(self):
        path = os.path.join(self._tmp.name, "nested", "projects.json")
        save_projects([create_project("A")], path)
        self.assertTrue(os.path.isfile(path))

    def test_corrupt_file(self):
        with open(self.path, "w") as fh:
            fh.write("{not json")
        with self.assertLogs("survey.projects", level="WARNING"):
            self.assertEqual(load_projects(self.path), [])

    def test_bad_field_types(self):
        with open(self.path, "w") as fh:
            json.dump([{"id": "a", "name": "x", "grid_cols": None}], fh)
        with self.assertLogs("survey.projects", level="WARNING"):
            self.assertEqual(load_projects(self.path), [])

    def test_bad_measurement_entries(self):
        with open(self.path, "w") as fh:
            json.dump([{"id": "a", "name": "x", "measurements": [1]}], fh)
        with self.assertLogs("survey.projects", level="WARNING"):
            self.assertEqual(load_projects(self.path), [])

    def test_non_list_file(self):
        with open(self.path, "w") as fh:
            json.dump({"id": "x"}, fh)
        with self.assertLogs("survey.projects", level="WARNING"):
            self.assertEqual(load_projects(self.path), [])


class TestProjects(unittest.TestCase):
    def test_create_sizes_grid(self):
        p = create_project("  Warehouse  ", density="fine", aspect=0.5)
        self.assertEqual(p.name, "Warehouse")
        self.assertEqual((p.grid_cols, p.grid_rows), (16, 8))
        self.assertEqual(p.grid_density, "fine")
        self.assertTrue(p.id)

    def test_create_rejects_blank_name(self):
        with self.assertRaises(ValueError):
            create_project("   ")

    def test_find_by_id_then_name(self):
        a = create_project("Office")
        b = create_project("Lab")
        self.assertIs(find_project([a, b], b.id), b)
        self.assertIs(find_project([a, b], "office"), a)
        self.assertIsNone(find_project([a, b], "Garage"))


class TestMeasurements(unittest.TestCase):
    def setUp(self):
        self.project = create_project("Home", density="coarse")

    def test_record(self):
        m = record_measurement(self.project, 2, 3, SpeedTestResult(55.0, 11.0, 3, 3))
        self.assertEqual((m.grid_x, m.grid_y, m.download, m.upload), (2, 3, 55.0, 11.0))
        self.assertEqual(self.project.measurements, [m])

    def test_record_replaces_same_cell(self):
        first = record_measurement(self.project, 2, 3, SpeedTestResult(10.0, 1.0, 1, 1))
        second = record_measurement(self.project, 2, 3, SpeedTestResult(90.0, 9.0, 1, 1))
        self.assertNotEqual(first.id, second.id)
        self.assertEqual(self.project.measurements, [second])

    def test_record_outside_grid(self):
        with self.assertRaises(ValueError):
            record_measurement(self.project, 6, 0, SpeedTestResult(1.0, 1.0, 1, 1))
        self.assertEqual(self.project.measurements, [])

    def test_delete(self):
        m = record_measurement(self.project, 0, 0, SpeedTestResult(1.0, 1.0, 1, 1))
        self.assertFalse(delete_measurement(self.project, "missing"))
        self.assertTrue(delete_measurement(self.project, m.id))
        self.assertEqual(self.project.measurements, [])

    def test_clear(self):
        for col in range(3):
            record_measurement(self.project, col, 0, SpeedTestResult(1.0, 1.0, 1, 1))
        self.assertEqual(clear_measurements(self.project), 3)
        self.assertEqual(self.project.measurements, [])


if __name__ == "__main__":
    unittest.main()
