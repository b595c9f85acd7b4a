"""
Identity normalization utilities for appointment/form reconciliation.

This module provides the normalization functions used by the scoring engine
and the tier index so that calendar and form identity fields are compared
on the same footing.
"""

import re
import unicodedata
from typing import Optional

# Leading booking-source tags such as "[OD] - " (one or more, dash optional)
SOURCE_TAG_PATTERN = re.compile(r'^(?:\s*\[[a-z0-9]{2}\]\s*-?\s*)+', re.IGNORECASE)

SWISS_INTERNATIONAL_PREFIX = '0041'
SWISS_COUNTRY_CODE = '41'
PHONE_KEY_LENGTH = 9


def strip_source_tag(s: Optional[str]) -> str:
    """
    Remove leading source tags from a calendar title, keeping the case.

    Args:
        s: Raw patient name or event title

    Returns:
        Name without the "[XX] -" prefix, trimmed
    """
    if not s:
        return ""
    return SOURCE_TAG_PATTERN.sub('', s).strip()


def strip_accents(s: str) -> str:
    """Decompose to NFD and drop the combining marks."""
    decomposed = unicodedata.normalize('NFD', s)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_name(s: Optional[str]) -> str:
    """
    Normalize a patient name for comparison.

    - Lowercase
    - Remove accents and diacritics
    - Remove leading source tags ("[OD] - ", "[od]", "[Od]-")
    - Collapse internal whitespace

    Examples:
        "[OD] - François  Müller  " -> "francois muller"
        "É. Dürr" -> "e. durr"

    Args:
        s: Input name

    Returns:
        Normalized name, or "" for empty input
    """
    if not s:
        return ""

    normalized = strip_accents(s.lower())
    normalized = SOURCE_TAG_PATTERN.sub('', normalized)
    return re.sub(r'\s+', ' ', normalized).strip()


def normalize_phone(s: Optional[str]) -> str:
    """
    Normalize a phone number to a 9-digit national key.

    "+41 79 123 45 67", "0041791234567", "079 123 45 67" and "791234567"
    all collapse to "791234567". Numbers shorter than 9 digits are returned
    as their digits.

    Args:
        s: Raw phone number

    Returns:
        Phone key, or "" when no digits are present
    """
    if not s:
        return ""

    digits = re.sub(r'\D', '', s)
    if digits.startswith(SWISS_INTERNATIONAL_PREFIX):
        digits = digits[len(SWISS_INTERNATIONAL_PREFIX):]
    elif digits.startswith(SWISS_COUNTRY_CODE) and len(digits) > 10:
        digits = digits[len(SWISS_COUNTRY_CODE):]
    elif digits.startswith('0'):
        digits = digits[1:]

    return digits[-PHONE_KEY_LENGTH:]


def normalize_email(s: Optional[str]) -> str:
    """Lowercase and trim an email address."""
    if not s:
        return ""
    return s.strip().lower()


def normalize_time(s: Optional[str]) -> str:
    """
    Normalize an appointment time to HH:MM.

    "9:05" -> "09:05", "14:30:00" -> "14:30". Unrecognized values are
    returned trimmed so they still compare exactly.
    """
    if not s:
        return ""

    value = s.strip()
    match = re.match(r'^(\d{1,2})[:hH.](\d{2})(?::\d{2})?$', value)
    if not match:
        return value

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return value
    return f"{hours:02d}:{minutes:02d}"


def names_overlap(name_a: str, name_b: str) -> bool:
    """
    Check whether two normalized names are equal or one contains the other.

    Both names must be non-empty.
    """
    if not name_a or not name_b:
        return False
    return name_a == name_b or name_a in name_b or name_b in name_a
