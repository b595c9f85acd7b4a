"""Utility functions for appointment/form matching."""

# Import key functions for easier access
from .normalizers import normalize_name, normalize_phone, normalize_email, normalize_time
from .key_builders import (
    create_slot_key,
    create_email_key,
    create_phone_key,
    create_name_dob_key,
    create_name_key,
    create_composite_keys
)
from .event_parser import parse_event_description, parse_appointment_text

__all__ = [
    'normalize_name',
    'normalize_phone',
    'normalize_email',
    'normalize_time',
    'create_slot_key',
    'create_email_key',
    'create_phone_key',
    'create_name_dob_key',
    'create_name_key',
    'create_composite_keys',
    'parse_event_description',
    'parse_appointment_text'
]
