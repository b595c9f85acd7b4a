"""
Match key builders for appointment/form reconciliation.

Each tier of the matcher performs a single exact-key lookup. The functions
here build those keys identically for calendar appointments and for intake
forms, returning "" whenever a required component is missing so that the
tier is skipped instead of matching on a partial key.
"""

from typing import Dict, Optional

from .normalizers import normalize_name, normalize_phone, normalize_email, normalize_time


def create_slot_key(appointment_date: Optional[str], appointment_time: Optional[str]) -> str:
    """
    Create the date+time key of an appointment slot.

    Example:
        "2026-02-20" + "9:05" -> "2026-02-20|09:05"
    """
    date = (appointment_date or '').strip()
    time = normalize_time(appointment_time)
    if not date or not time:
        return ""
    return f"{date}|{time}"


def create_email_key(email: Optional[str]) -> str:
    """Create the email key ("" when absent)."""
    return normalize_email(email)


def create_phone_key(phone: Optional[str]) -> str:
    """Create the phone key ("" when absent)."""
    return normalize_phone(phone)


def create_name_dob_key(patient_name: Optional[str], dob: Optional[str]) -> str:
    """
    Create the composite name + date-of-birth key.

    Example:
        "[OD] - Jean Dupont" + "1985-03-15" -> "jean dupont|1985-03-15"
    """
    name = normalize_name(patient_name)
    birth = (dob or '').strip()
    if not name or not birth:
        return ""
    return f"{name}|{birth}"


def create_name_key(patient_name: Optional[str]) -> str:
    """Create the name-only key ("" when absent)."""
    return normalize_name(patient_name)


def create_composite_keys(patient_name: Optional[str],
                          email: Optional[str],
                          phone: Optional[str],
                          dob: Optional[str],
                          appointment_date: Optional[str],
                          appointment_time: Optional[str]) -> Dict[str, str]:
    """
    Create every tier key for one record.

    Returns:
        Dictionary keyed by tier value; empty strings mark missing keys
    """
    return {
        'appointment': create_slot_key(appointment_date, appointment_time),
        'email': create_email_key(email),
        'phone': create_phone_key(phone),
        'name_dob': create_name_dob_key(patient_name, dob),
        'name': create_name_key(patient_name),
    }
