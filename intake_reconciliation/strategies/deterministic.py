"""
Deterministic tier strategies for appointment/form matching.

Each strategy is a function ``(index, appointment, consumed) -> Candidate``
returning None when its required fields are missing, its key is not in the
index, or the indexed form was already claimed during the pass. Strategies
only ever produce suggestions; confirmation is left to a human.
"""

from typing import Callable, List, Optional, Set, Tuple

from ..core.confidence_scoring import ScoringEngine
from ..core.data_models import Appointment, Candidate, FormRecord, MatchTier
from ..core.form_index import FormIndex
from ..utils.key_builders import (
    create_slot_key, create_email_key, create_phone_key,
    create_name_dob_key, create_name_key
)
from ..utils.normalizers import normalize_name, names_overlap

TierStrategy = Callable[[FormIndex, Appointment, Set[str]], Optional[Candidate]]

_scoring = ScoringEngine()


def _claim(index: FormIndex,
           tier: MatchTier,
           key: str,
           consumed: Set[str]) -> Optional[FormRecord]:
    form = index.lookup(tier, key)
    if form is None or form.id in consumed:
        return None
    return form


def _candidate(appointment: Appointment,
               form: FormRecord,
               tier: MatchTier,
               match_field: str) -> Candidate:
    score, signals = _scoring.score(appointment, form)
    return Candidate(form=form, score=score, signals=signals, tier=tier, match_field=match_field)


def match_appointment_slot(index: FormIndex,
                           appointment: Appointment,
                           consumed: Set[str]) -> Optional[Candidate]:
    """
    Tier A: same appointment date and time, and compatible names.

    The slot key alone is not trusted: two patients can book the same slot
    with different practitioners, so the names must also be equal or one
    must contain the other.
    """
    key = create_slot_key(appointment.appointment_date, appointment.appointment_time)
    form = _claim(index, MatchTier.APPOINTMENT, key, consumed)
    if form is None:
        return None

    if not names_overlap(normalize_name(appointment.patient_name), normalize_name(form.patient_name)):
        return None

    return _candidate(appointment, form, MatchTier.APPOINTMENT, 'date+time+name')


def match_email(index: FormIndex,
                appointment: Appointment,
                consumed: Set[str]) -> Optional[Candidate]:
    """Tier B: normalized email."""
    form = _claim(index, MatchTier.EMAIL, create_email_key(appointment.email), consumed)
    if form is None:
        return None
    return _candidate(appointment, form, MatchTier.EMAIL, 'email')


def match_phone(index: FormIndex,
                appointment: Appointment,
                consumed: Set[str]) -> Optional[Candidate]:
    """Tier C: normalized phone number."""
    form = _claim(index, MatchTier.PHONE, create_phone_key(appointment.phone), consumed)
    if form is None:
        return None
    return _candidate(appointment, form, MatchTier.PHONE, 'phone')


def match_name_dob(index: FormIndex,
                   appointment: Appointment,
                   consumed: Set[str]) -> Optional[Candidate]:
    """Tier D: normalized name plus date of birth."""
    key = create_name_dob_key(appointment.patient_name, appointment.dob)
    form = _claim(index, MatchTier.NAME_DOB, key, consumed)
    if form is None:
        return None
    return _candidate(appointment, form, MatchTier.NAME_DOB, 'name+dob')


def match_name(index: FormIndex,
               appointment: Appointment,
               consumed: Set[str]) -> Optional[Candidate]:
    """Tier E: normalized name alone (weakest signal)."""
    form = _claim(index, MatchTier.NAME, create_name_key(appointment.patient_name), consumed)
    if form is None:
        return None
    return _candidate(appointment, form, MatchTier.NAME, 'name')


# Strategies in priority order; the first hit wins
TIER_STRATEGIES: List[Tuple[MatchTier, TierStrategy]] = [
    (MatchTier.APPOINTMENT, match_appointment_slot),
    (MatchTier.EMAIL, match_email),
    (MatchTier.PHONE, match_phone),
    (MatchTier.NAME_DOB, match_name_dob),
    (MatchTier.NAME, match_name),
]
