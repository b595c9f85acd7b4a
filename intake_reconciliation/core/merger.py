"""
Merge of calendar appointments and intake forms into one display list.

Every appointment yields an item. Forms not claimed by any appointment
yield form-only items, except that when a calendar is configured, forms that
carry an appointment date are assumed to belong to a calendar entry and are
hidden to avoid showing the same visit twice.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from .data_models import (
    NO_DATE_KEY,
    Appointment,
    CalendarItem,
    DateGroup,
    FormOnlyItem,
    FormRecord,
    MergedItem
)
from .form_matcher import MatchingPass
from .state_classifier import apply_states
from ..utils.normalizers import normalize_time

MISSING_TIME_SORT_KEY = '99:99'


def _date_key(item: MergedItem) -> str:
    return item.appointment_date or NO_DATE_KEY


def _time_key(item: MergedItem) -> str:
    return normalize_time(item.appointment_time) or MISSING_TIME_SORT_KEY


def group_by_date(items: Iterable[MergedItem]) -> List[DateGroup]:
    """
    Group items by appointment date.

    Dates are chronological with the no-date bucket last; within a date,
    items are ordered by time with missing times last.
    """
    buckets: Dict[str, List[MergedItem]] = {}
    for item in items:
        buckets.setdefault(_date_key(item), []).append(item)

    ordered_keys = sorted(buckets, key=lambda key: (key == NO_DATE_KEY, key))
    return [
        DateGroup(key, sorted(buckets[key], key=_time_key))
        for key in ordered_keys
    ]


class ReconciliationMerger:
    """Builds the ordered, grouped item list for display."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def merge(self,
              appointments: List[Appointment],
              forms: List[FormRecord],
              matching: MatchingPass,
              calendar_configured: bool) -> Tuple[List[MergedItem], List[DateGroup]]:
        """
        Merge appointments and forms.

        Args:
            appointments: Appointments of the window
            forms: Form pool used for matching
            matching: Result of the matching pass
            calendar_configured: Whether a calendar feed exists for the context

        Returns:
            (flat ordered items, date groups)
        """
        items: List[MergedItem] = [
            CalendarItem(appointment, matching.outcome_for(appointment.external_id))
            for appointment in appointments
        ]

        hidden = 0
        for form in forms:
            if form.id in matching.consumed:
                continue
            if calendar_configured and form.appointment_date:
                hidden += 1
                continue
            items.append(FormOnlyItem(form))

        matching.statistics.orphan_forms = len(items) - len(appointments)
        matching.statistics.hidden_dated_forms = hidden
        if hidden:
            self.logger.debug(f"Hid {hidden} dated forms (calendar configured)")

        apply_states(items)
        groups = group_by_date(items)
        ordered = [item for group in groups for item in group.items]
        return ordered, groups
