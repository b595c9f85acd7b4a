"""
Tests for appointment/form similarity scoring and manual-pick ranking.
"""

import unittest

from intake_reconciliation.core.confidence_scoring import MAX_SCORE, ScoringEngine
from intake_reconciliation.core.data_models import Appointment, Candidate, FormRecord, FormStatus


def make_form(form_id, **fields):
    fields.setdefault('status', FormStatus.SUBMITTED)
    return FormRecord(id=form_id, **fields)


class TestScoringEngine(unittest.TestCase):
    """Test cases for ScoringEngine."""

    def setUp(self):
        """Set up test fixtures."""
        self.engine = ScoringEngine()
        self.appointment = Appointment(
            external_id="E1",
            patient_name="[OD] - Jean Dupont",
            appointment_date="2026-02-20",
            email="jean@x.com",
            phone="+41 79 123 45 67",
            dob="1985-03-15"
        )

    def test_email_and_exact_name(self):
        """Email plus exact name scores 60."""
        form = make_form("F1", patient_name="Jean Dupont", email="JEAN@x.com")
        score, signals = self.engine.score(self.appointment, form)

        self.assertEqual(score, 60)
        self.assertEqual(signals, ['email', 'name'])

    def test_all_signals(self):
        form = make_form(
            "F1", patient_name="jean dupont", email="jean@x.com", phone="0791234567",
            dob="1985-03-15", appointment_date="2026-02-20"
        )
        score, signals = self.engine.score(self.appointment, form)

        self.assertEqual(score, MAX_SCORE)
        self.assertEqual(score, 120)
        self.assertEqual(signals, ['email', 'phone', 'name', 'dob', 'appointment_date'])

    def test_partial_name(self):
        form = make_form("F1", patient_name="Dupont")
        score, signals = self.engine.score(self.appointment, form)

        self.assertEqual(score, 15)
        self.assertEqual(signals, ['name_partial'])

    def test_name_points_exclusive(self):
        for name in ["Jean Dupont", "Dupont", "Jean", "Marie Curie", ""]:
            form = make_form("F1", patient_name=name)
            _, signals = self.engine.score(self.appointment, form)
            self.assertFalse('name' in signals and 'name_partial' in signals)

    def test_missing_fields_contribute_nothing(self):
        empty = Appointment(external_id="E2")
        form = make_form("F1")
        self.assertEqual(self.engine.score(empty, form), (0, []))

    def test_score_range(self):
        forms = [
            make_form("F1"),
            make_form("F2", email="jean@x.com"),
            make_form("F3", patient_name="Jean Dupont", phone="791234567", dob="1985-03-15"),
        ]
        for form in forms:
            score, _ = self.engine.score(self.appointment, form)
            self.assertGreaterEqual(score, 0)
            self.assertLessEqual(score, MAX_SCORE)

    def test_accepts_dictionaries(self):
        """Raw dictionaries score like dataclasses."""
        score, _ = self.engine.score(
            {'patient_name': "Jean Dupont", 'email': "jean@x.com"},
            {'patient_name': "jean dupont", 'email': "jean@x.com", 'phone': None}
        )
        self.assertEqual(score, 60)


class TestManualPickRanking(unittest.TestCase):
    """Test ranking and preselection for the manual picker."""

    def setUp(self):
        """Set up test fixtures."""
        self.engine = ScoringEngine()
        self.appointment = Appointment(
            external_id="E1",
            patient_name="Jean Dupont",
            email="jean@x.com",
            dob="1985-03-15"
        )

    def test_rank_filters_zero_scores_and_sorts(self):
        forms = [
            make_form("F0", patient_name="Marie Curie"),
            make_form("F1", patient_name="Dupont"),
            make_form("F2", patient_name="Jean Dupont", email="jean@x.com"),
        ]
        ranked = self.engine.rank_forms(self.appointment, forms)

        self.assertEqual([c.form.id for c in ranked], ["F2", "F1"])
        self.assertEqual([c.score for c in ranked], [60, 15])

    def test_rank_limit_and_stable_ties(self):
        forms = [make_form(f"F{i}", patient_name="Dupont") for i in range(8)]
        ranked = self.engine.rank_forms(self.appointment, forms)

        self.assertEqual(len(ranked), 5)
        self.assertEqual([c.form.id for c in ranked], ["F0", "F1", "F2", "F3", "F4"])

    def test_preselect_single_candidate(self):
        candidates = [Candidate(form=make_form("F1"), score=15)]
        self.assertEqual(ScoringEngine.preselect(candidates), "F1")

    def test_preselect_high_top_score(self):
        candidates = [
            Candidate(form=make_form("F1"), score=60),
            Candidate(form=make_form("F2"), score=40),
        ]
        self.assertEqual(ScoringEngine.preselect(candidates), "F1")

    def test_no_preselect_for_weak_candidates(self):
        candidates = [
            Candidate(form=make_form("F1"), score=55),
            Candidate(form=make_form("F2"), score=40),
        ]
        self.assertIsNone(ScoringEngine.preselect(candidates))
        self.assertIsNone(ScoringEngine.preselect([]))

    def test_score_label(self):
        self.assertEqual(ScoringEngine.score_label(60), "50%")
        self.assertEqual(ScoringEngine.score_label(120), "100%")

    def test_candidate_score_validated(self):
        with self.assertRaises(ValueError):
            Candidate(form=make_form("F1"), score=121)


if __name__ == '__main__':
    unittest.main()
