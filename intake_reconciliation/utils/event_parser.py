"""
Parsers for the free-text identity fields found in calendar events and forms.

Booking platforms push appointments into the practice calendar with the
patient details in the event description, and copy the booked slot into the
intake form as free text. These helpers pull structured values out of both.
"""

import html
import re
from typing import Dict, Optional, Tuple

EMAIL_PATTERN = re.compile(r'[\w.+-]+@[\w.-]+\.\w{2,}')
DOB_PATTERN = re.compile(r'(\d{2})[./-](\d{2})[./-](\d{4})')
PHONE_PATTERN = re.compile(r'(\+?\d[\d\s.\-()]{8,})')
BLOCK_PATTERN = re.compile(r'\[OneDoc\](.*?)\[/OneDoc\]', re.IGNORECASE | re.DOTALL)
SEPARATOR_PATTERN = re.compile(r'^-{3,}$')

MALE_LINE = re.compile(r'^(M|Homme|Masculin|Male|Mr\.?)$', re.IGNORECASE)
FEMALE_LINE = re.compile(r'^(F|Femme|Féminin|Female|Mme\.?|Madame)$', re.IGNORECASE)
MALE_WORD = re.compile(r'\b(Homme|Masculin|Male|Mr\.?)(?!\w)', re.IGNORECASE)
FEMALE_WORD = re.compile(r'\b(Femme|Féminin|Female|Mme\.?|Madame)(?!\w)', re.IGNORECASE)

FRENCH_MONTHS = {
    'janvier': 1, 'février': 2, 'fevrier': 2, 'mars': 3, 'avril': 4,
    'mai': 5, 'juin': 6, 'juillet': 7, 'août': 8, 'aout': 8,
    'septembre': 9, 'octobre': 10, 'novembre': 11, 'décembre': 12, 'decembre': 12
}

# "5 février 2026 12:35" (email body) and "09.03.2026 11:45" (email subject)
LONG_APPOINTMENT_PATTERN = re.compile(r'(\d{1,2})\s+([^\W\d_]+)\s+(\d{4})\s+(\d{1,2}:\d{2})')
SHORT_APPOINTMENT_PATTERN = re.compile(r'(\d{2})\.(\d{2})\.(\d{4})\s+(\d{1,2}:\d{2})')


def _empty_details() -> Dict[str, str]:
    return {
        'patient_name': '',
        'sex': '',
        'dob': '',
        'email': '',
        'phone': '',
        'consultation_type': ''
    }


def _clean_description(text: str) -> str:
    """Turn an HTML calendar description into plain text lines."""
    text = re.sub(r'<br\s*/?>', '\n', text, flags=re.IGNORECASE)
    text = re.sub(r'<[^>]+>', '', text)
    return html.unescape(text)


def _parse_dob(value: str) -> str:
    match = DOB_PATTERN.search(value)
    if not match:
        return ''
    return f"{match.group(3)}-{match.group(2)}-{match.group(1)}"


def _parse_structured_block(block: str) -> Dict[str, str]:
    """
    Parse the positional booking block.

    Layout: appointment type, a dashed separator, then first name, last name,
    sex, date of birth, email and phone on consecutive lines.
    """
    details = _empty_details()
    lines = [line.strip() for line in block.split('\n') if line.strip()]

    sep_index = next((i for i, line in enumerate(lines) if SEPARATOR_PATTERN.match(line)), -1)
    if sep_index < 0 or len(lines) < sep_index + 3:
        return details

    if sep_index > 0:
        details['consultation_type'] = lines[0]

    fields = lines[sep_index + 1:]
    details['patient_name'] = f"{fields[0]} {fields[1]}".strip()

    if len(fields) > 2:
        if MALE_LINE.match(fields[2]):
            details['sex'] = 'Homme'
        elif FEMALE_LINE.match(fields[2]):
            details['sex'] = 'Femme'
    if len(fields) > 3:
        details['dob'] = _parse_dob(fields[3])
    if len(fields) > 4:
        email = EMAIL_PATTERN.search(fields[4])
        if email:
            details['email'] = email.group(0)
    if len(fields) > 5:
        details['phone'] = re.sub(r'\s+', ' ', fields[5]).strip()

    return details


def parse_event_description(text: Optional[str]) -> Dict[str, str]:
    """
    Extract patient details from a calendar event description.

    The structured booking block is preferred; otherwise email, date of
    birth, phone and sex are picked out of unstructured text.

    Args:
        text: Raw (possibly HTML) event description

    Returns:
        Dictionary with patient_name, sex, dob (YYYY-MM-DD), email, phone and,
        for structured blocks, consultation_type
    """
    if not text:
        return _empty_details()

    text = _clean_description(text)

    block = BLOCK_PATTERN.search(text)
    if block:
        return _parse_structured_block(block.group(1))

    details = _empty_details()

    email = EMAIL_PATTERN.search(text)
    if email:
        details['email'] = email.group(0)

    dob = DOB_PATTERN.search(text)
    if dob:
        details['dob'] = _parse_dob(dob.group(0))
        # keep the birth date digits out of the phone search
        text = text.replace(dob.group(0), '')

    phone = PHONE_PATTERN.search(text)
    if phone:
        details['phone'] = re.sub(r'\s+', ' ', phone.group(1)).strip()

    if MALE_WORD.search(text):
        details['sex'] = 'Homme'
    elif FEMALE_WORD.search(text):
        details['sex'] = 'Femme'
    elif re.search(r'\bM\b', text):
        details['sex'] = 'Homme'
    elif re.search(r'\bF\b', text):
        details['sex'] = 'Femme'

    return details


def parse_appointment_text(text: Optional[str]) -> Tuple[str, str]:
    """
    Extract the appointment date and time copied into a form.

    Examples:
        "5 février 2026 12:35" -> ("2026-02-05", "12:35")
        "09.03.2026 11:45" -> ("2026-03-09", "11:45")

    Returns:
        (date YYYY-MM-DD, time H:MM) or ("", "") when nothing is recognized
    """
    if not text:
        return '', ''

    long_match = LONG_APPOINTMENT_PATTERN.search(text)
    if long_match:
        month = FRENCH_MONTHS.get(long_match.group(2).lower())
        if month:
            day, year = int(long_match.group(1)), int(long_match.group(3))
            return f"{year:04d}-{month:02d}-{day:02d}", long_match.group(4)

    short_match = SHORT_APPOINTMENT_PATTERN.search(text)
    if short_match:
        day, month, year, time = short_match.groups()
        return f"{year}-{month}-{day}", time

    return '', ''
