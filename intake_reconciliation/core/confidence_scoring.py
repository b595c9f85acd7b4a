"""
Similarity scoring between a calendar appointment and an intake form.

The score is additive over independent identity signals and is used to rank
forms in the manual-link picker and to report how strong a tier suggestion
is. It never decides a link on its own.
"""

import logging
from typing import Any, Iterable, List, Optional, Tuple

from .data_models import Candidate, FormRecord
from ..utils.normalizers import normalize_name, normalize_phone, normalize_email

EMAIL_POINTS = 40
PHONE_POINTS = 30
NAME_EXACT_POINTS = 20
NAME_PARTIAL_POINTS = 15
DOB_POINTS = 20
APPOINTMENT_DATE_POINTS = 10

MAX_SCORE = EMAIL_POINTS + PHONE_POINTS + NAME_EXACT_POINTS + DOB_POINTS + APPOINTMENT_DATE_POINTS

# Manual picker preselection threshold
PRESELECT_SCORE = 60
MANUAL_PICK_LIMIT = 5


def _field(record: Any, name: str) -> str:
    """Read a field from a dataclass or a dict, tolerating absent values."""
    if isinstance(record, dict):
        value = record.get(name)
    else:
        value = getattr(record, name, None)
    return value if isinstance(value, str) else ''


class ScoringEngine:
    """
    Scores how likely a form belongs to an appointment.

    Points:
    - Email (normalized, both present): 40
    - Phone (normalized, both present): 30
    - Name exact: 20, or one name containing the other: 15
    - Date of birth exact: 20
    - Appointment date exact: 10
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def score(self, appointment: Any, form: Any) -> Tuple[int, List[str]]:
        """
        Score one appointment-like record against one form-like record.

        Both sides may be dataclasses or dictionaries exposing email, phone,
        patient_name, dob and appointment_date.

        Returns:
            (score 0-120, list of contributing signal labels)
        """
        score = 0
        signals: List[str] = []

        appt_email = normalize_email(_field(appointment, 'email'))
        form_email = normalize_email(_field(form, 'email'))
        if appt_email and form_email and appt_email == form_email:
            score += EMAIL_POINTS
            signals.append('email')

        appt_phone = normalize_phone(_field(appointment, 'phone'))
        form_phone = normalize_phone(_field(form, 'phone'))
        if appt_phone and form_phone and appt_phone == form_phone:
            score += PHONE_POINTS
            signals.append('phone')

        appt_name = normalize_name(_field(appointment, 'patient_name'))
        form_name = normalize_name(_field(form, 'patient_name'))
        if appt_name and form_name:
            if appt_name == form_name:
                score += NAME_EXACT_POINTS
                signals.append('name')
            elif appt_name in form_name or form_name in appt_name:
                score += NAME_PARTIAL_POINTS
                signals.append('name_partial')

        appt_dob = _field(appointment, 'dob')
        form_dob = _field(form, 'dob')
        if appt_dob and form_dob and appt_dob == form_dob:
            score += DOB_POINTS
            signals.append('dob')

        appt_date = _field(appointment, 'appointment_date')
        form_date = _field(form, 'appointment_date')
        if appt_date and form_date and appt_date == form_date:
            score += APPOINTMENT_DATE_POINTS
            signals.append('appointment_date')

        return score, signals

    def build_candidate(self, appointment: Any, form: FormRecord) -> Candidate:
        """Score a form and wrap it as a candidate."""
        score, signals = self.score(appointment, form)
        return Candidate(form=form, score=score, signals=signals)

    def rank_forms(self,
                   appointment: Any,
                   forms: Iterable[FormRecord],
                   limit: int = MANUAL_PICK_LIMIT) -> List[Candidate]:
        """
        Rank forms for the manual picker.

        Only forms with a positive score are kept, highest first; ties keep
        the order of the input pool.
        """
        scored = [self.build_candidate(appointment, form) for form in forms]
        ranked = sorted((c for c in scored if c.score > 0), key=lambda c: c.score, reverse=True)

        self.logger.debug(
            f"Ranked {len(ranked)} of {len(scored)} forms "
            f"(top score: {ranked[0].score if ranked else 0})"
        )
        return ranked[:limit]

    @staticmethod
    def preselect(candidates: List[Candidate]) -> Optional[str]:
        """
        Pick the form the manual picker should preselect.

        A single positive candidate, or a top candidate scoring at least 60,
        is preselected. Preselection never links anything by itself.
        """
        if len(candidates) == 1:
            return candidates[0].form.id
        if candidates and candidates[0].score >= PRESELECT_SCORE:
            return candidates[0].form.id
        return None

    @staticmethod
    def score_label(score: int) -> str:
        """Format a score as a percentage of the maximum."""
        return f"{round(score / MAX_SCORE * 100)}%"
