"""
Tests for persistent link stores.
"""

import csv
import shutil
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

from intake_reconciliation.core.confirmation import ConfirmationWorkflow
from intake_reconciliation.core.link_store import CsvLinkStore, InMemoryLinkStore
from intake_reconciliation.exceptions import LinkStoreError


class TestInMemoryLinkStore(unittest.TestCase):
    """Test cases for InMemoryLinkStore."""

    def setUp(self):
        """Set up test fixtures."""
        self.store = InMemoryLinkStore()

    def test_set_and_get(self):
        self.assertIsNone(self.store.set("E1", "F1"))
        self.assertEqual(self.store.get("E1"), "F1")
        self.assertIsNone(self.store.get("E2"))

    def test_set_clears_other_owner(self):
        """A form moves to the last appointment it was linked to."""
        self.store.set("E1", "F1")
        previous = self.store.set("E2", "F1")

        self.assertEqual(previous, "E1")
        self.assertIsNone(self.store.get("E1"))
        self.assertEqual(self.store.snapshot(), {"E2": "F1"})

    def test_relink_appointment_to_other_form(self):
        self.store.set("E1", "F1")
        self.store.set("E1", "F2")
        self.assertEqual(self.store.snapshot(), {"E1": "F2"})

    def test_snapshot_is_copy(self):
        self.store.set("E1", "F1")
        snapshot = self.store.snapshot()
        snapshot["E9"] = "F9"
        self.assertIsNone(self.store.get("E9"))

    def test_concurrent_writes_leave_one_owner(self):
        """Racing writers for one form leave exactly one appointment linked."""
        barrier = threading.Barrier(8)

        def writer(appointment_id):
            barrier.wait()
            self.store.set(appointment_id, "F1")

        threads = [threading.Thread(target=writer, args=(f"E{i}",)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        owners = [a for a, f in self.store.snapshot().items() if f == "F1"]
        self.assertEqual(len(owners), 1)


class TestCsvLinkStore(unittest.TestCase):
    """Test cases for CsvLinkStore."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.path = str(Path(self.temp_dir) / "links.csv")

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_missing_file_is_empty(self):
        self.assertEqual(CsvLinkStore(self.path).snapshot(), {})

    def test_persists_across_instances(self):
        store = CsvLinkStore(self.path)
        store.set("E1", "F1")
        store.set("E2", "F2")
        store.set("E3", "F1")

        reloaded = CsvLinkStore(self.path)
        self.assertEqual(reloaded.snapshot(), {"E2": "F2", "E3": "F1"})

    def test_file_format(self):
        CsvLinkStore(self.path).set("E1", "F1")

        with open(self.path, newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))
        self.assertEqual(rows, [{'appointment_id': "E1", 'form_id': "F1"}])

    def test_incomplete_rows_skipped(self):
        with open(self.path, 'w', newline='', encoding='utf-8') as f:
            f.write("appointment_id,form_id\nE1,F1\nE2,\n,F3\n")

        self.assertEqual(CsvLinkStore(self.path).snapshot(), {"E1": "F1"})

    def test_failed_write_keeps_previous_links(self):
        store = CsvLinkStore(self.path)
        store.set("E1", "F1")

        with patch('tempfile.mkstemp', side_effect=OSError("disk full")):
            with self.assertRaises(LinkStoreError):
                store.set("E2", "F1")

        self.assertEqual(store.snapshot(), {"E1": "F1"})
        self.assertEqual(CsvLinkStore(self.path).snapshot(), {"E1": "F1"})

    def test_failed_replace_removes_temp_file(self):
        store = CsvLinkStore(self.path)

        with patch('os.replace', side_effect=OSError("read-only")):
            with self.assertRaises(LinkStoreError):
                store.set("E1", "F1")

        self.assertEqual(store.snapshot(), {})
        self.assertEqual(list(Path(self.temp_dir).iterdir()), [])

    def test_rejected_manual_link_not_shown_later(self):
        store = CsvLinkStore(self.path)
        workflow = ConfirmationWorkflow(store)

        with patch('tempfile.mkstemp', side_effect=OSError("disk full")):
            result = workflow.manual_link("evt1", "f1")

        self.assertFalse(result.ok)
        self.assertEqual(store.snapshot(), {})


if __name__ == '__main__':
    unittest.main()
