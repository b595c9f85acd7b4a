"""
Identifier validation for link writes.

Calendar event ids are alphanumeric plus "_" and "-"; form ids are the
record ids issued by the form store. Both are checked before any link is
written so a malformed value never reaches the store.
"""

import re
from typing import Optional

from ..exceptions import LinkValidationError

APPOINTMENT_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_\-]+$')
FORM_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_\-]+$')
# PocketBase record ids
POCKETBASE_ID_PATTERN = re.compile(r'^[a-z0-9]{15}$')
MAX_ID_LENGTH = 1024


def _validate(value: Optional[str], pattern, param_name: str) -> str:
    if not value or not isinstance(value, str):
        raise LinkValidationError(f"{param_name} is required")
    if len(value) > MAX_ID_LENGTH or not pattern.match(value):
        raise LinkValidationError(f"Invalid {param_name} format")
    return value


def validate_appointment_id(appointment_id: Optional[str]) -> str:
    """Validate a calendar appointment id, returning it unchanged."""
    return _validate(appointment_id, APPOINTMENT_ID_PATTERN, 'appointment_id')


def validate_form_id(form_id: Optional[str]) -> str:
    """Validate a form id, returning it unchanged."""
    return _validate(form_id, FORM_ID_PATTERN, 'form_id')


def validate_pocketbase_id(record_id: Optional[str], param_name: str = 'form_id') -> str:
    """Validate a 15-character PocketBase record id."""
    return _validate(record_id, POCKETBASE_ID_PATTERN, param_name)


def sanitize_filter_value(value: str) -> str:
    """Strip quotes and backslashes before interpolating into a store filter."""
    return value.replace("'", '').replace('\\', '')
