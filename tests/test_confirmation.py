"""
Tests for the human confirmation workflow.
"""

import unittest
from unittest.mock import Mock

import requests

from intake_reconciliation.core.confirmation import ConfirmationWorkflow
from intake_reconciliation.core.data_models import Appointment, FormRecord, FormStatus
from intake_reconciliation.core.link_store import InMemoryLinkStore
from intake_reconciliation.core.result_cache import ResultCache
from intake_reconciliation.exceptions import LinkStoreError


class TestConfirmationWorkflow(unittest.TestCase):
    """Test cases for ConfirmationWorkflow."""

    def setUp(self):
        """Set up test fixtures."""
        self.store = InMemoryLinkStore()
        self.cache = ResultCache()
        self.audit = Mock()
        self.workflow = ConfirmationWorkflow(self.store, self.cache, audit_logger=self.audit)

    def test_accept_writes_link_and_invalidates_cache(self):
        self.cache.put("2026-02-20|2026-02-20", "cached")

        result = self.workflow.confirm_suggestion("E1", "F1")

        self.assertTrue(result.ok)
        self.assertEqual(self.store.get("E1"), "F1")
        self.assertEqual(len(self.cache), 0)
        self.audit.log_link_decision.assert_called_once_with(result, 'accept')

    def test_manual_link_writes_link(self):
        result = self.workflow.manual_link("E1", "F2")

        self.assertTrue(result.ok)
        self.assertEqual(self.store.get("E1"), "F2")
        self.audit.log_link_decision.assert_called_once_with(result, 'manual')

    def test_invalid_ids_rejected_before_write(self):
        self.cache.put("k", "cached")

        for appointment_id, form_id in [("", "F1"), ("E 1", "F1"), ("E1", "F1'; --"), ("E1", None)]:
            result = self.workflow.confirm_suggestion(appointment_id, form_id)
            self.assertFalse(result.ok)
            self.assertTrue(result.error)

        self.assertEqual(self.store.snapshot(), {})
        self.assertEqual(self.cache.get("k"), ("cached", False))

    def test_store_failure_reported(self):
        store = Mock()
        store.set.side_effect = LinkStoreError("disk full")
        workflow = ConfirmationWorkflow(store, self.cache)

        result = workflow.manual_link("E1", "F1")

        self.assertFalse(result.ok)
        self.assertIn("disk full", result.error)

    def test_transport_failure_reported(self):
        store = Mock()
        store.set.side_effect = requests.ConnectionError("refused")
        workflow = ConfirmationWorkflow(store)

        result = workflow.confirm_suggestion("E1", "F1")

        self.assertFalse(result.ok)
        self.assertIn("refused", result.error)

    def test_skip_is_session_only(self):
        result = self.workflow.skip("E1")

        self.assertTrue(result.ok)
        self.assertTrue(self.workflow.is_skipped("E1"))
        self.assertEqual(self.store.snapshot(), {})

        # A later confirmation brings the appointment back
        self.workflow.confirm_suggestion("E1", "F1")
        self.assertFalse(self.workflow.is_skipped("E1"))

    def test_manual_candidates_rank_without_writing(self):
        appointment = Appointment(external_id="E1", patient_name="Jean Dupont", email="jean@x.com")
        pool = [
            FormRecord(id="F1", status=FormStatus.SUBMITTED, patient_name="Dupont"),
            FormRecord(id="F2", status=FormStatus.SUBMITTED, patient_name="Jean Dupont", email="jean@x.com"),
            FormRecord(id="F3", status=FormStatus.DRAFT, patient_name="Other Person"),
        ]

        pick = self.workflow.manual_candidates(appointment, pool)

        self.assertEqual(pick.appointment_id, "E1")
        self.assertEqual([c.form.id for c in pick.candidates], ["F2", "F1"])
        self.assertEqual(pick.preselected_form_id, "F2")
        self.assertEqual(self.store.snapshot(), {})

    def test_manual_candidates_without_preselection(self):
        appointment = Appointment(external_id="E1", patient_name="Jean Dupont")
        pool = [
            FormRecord(id="F1", status=FormStatus.SUBMITTED, patient_name="Jean Dupont"),
            FormRecord(id="F2", status=FormStatus.SUBMITTED, patient_name="Dupont"),
        ]

        pick = self.workflow.manual_candidates(appointment, pool)

        self.assertEqual(len(pick.candidates), 2)
        self.assertIsNone(pick.preselected_form_id)


if __name__ == '__main__':
    unittest.main()
