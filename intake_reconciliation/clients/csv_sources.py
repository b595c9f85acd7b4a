"""
CSV-backed appointment and form sources.

Used by the command line tool to reconcile exports from the calendar and
the form store without network access.
"""

import csv
import logging
from typing import List

from ..core.data_models import Appointment, FormRecord
from ..exceptions import FormStoreError
from .calendar_feed import StaticCalendarFeed
from .form_store import StaticFormStore


def load_appointments_csv(path: str) -> List[Appointment]:
    """
    Load appointments from a CSV export.

    Expected columns: external_id (or calendar_event_id), patient_name,
    appointment_date, appointment_time, email, phone, dob, consultation_type.
    """
    appointments = []

    logging.info(f"Loading appointments from: {path}")

    with open(path, 'r', encoding='utf-8') as file:
        reader = csv.DictReader(file)
        for row in reader:
            try:
                appointments.append(Appointment.from_dict(row))
            except ValueError as e:
                logging.warning(f"Skipping appointment row ({e}): {row}")

    logging.info(f"Loaded {len(appointments)} appointments")
    return appointments


def load_forms_csv(path: str) -> List[FormRecord]:
    """
    Load forms from a CSV export.

    Expected columns: id, status, patient_name, email, phone, dob,
    appointment_date, appointment_time, submitted_at, and optionally
    calendar_event_id for a form already tied to an appointment.
    """
    forms = []

    logging.info(f"Loading forms from: {path}")

    with open(path, 'r', encoding='utf-8') as file:
        reader = csv.DictReader(file)
        for row in reader:
            try:
                forms.append(FormRecord.from_dict(row))
            except ValueError as e:
                logging.warning(f"Skipping form row ({e}): {row}")

    logging.info(f"Loaded {len(forms)} forms")
    return forms


class CsvCalendarFeed(StaticCalendarFeed):
    """Calendar feed read from a CSV export; no path means not configured."""

    def __init__(self, path: str = ''):
        appointments = load_appointments_csv(path) if path else []
        super().__init__(appointments, configured=bool(path))
        self.path = path


class CsvFormStore(StaticFormStore):
    """Form source read from a CSV export."""

    def __init__(self, path: str):
        try:
            forms = load_forms_csv(path)
        except OSError as e:
            raise FormStoreError(f"Cannot read forms file '{path}': {e}") from e
        super().__init__(forms)
        self.path = path
