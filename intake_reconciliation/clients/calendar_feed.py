"""
Calendar feed providers.

A feed returns the appointments of a date window as a CalendarFeedResult.
Transport and authorization failures are reported as an explicit error
result, and a context without a calendar as "not configured", so callers
can degrade to a forms-only view without exception handling.
"""

import logging
from datetime import datetime, date
from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote
from zoneinfo import ZoneInfo

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from ..config import (
    DEFAULT_CALENDAR_API_URL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SOURCE_TAG,
    DEFAULT_TIMEZONE
)
from ..core.data_models import Appointment, CalendarFeedResult
from ..utils.event_parser import parse_event_description
from ..utils.normalizers import strip_source_tag

MAX_RESULTS = 250


class CalendarFeed:
    """Interface of a calendar feed."""

    def fetch(self, date_from: str, date_to: str) -> CalendarFeedResult:
        raise NotImplementedError


def _in_window(appointment: Appointment, date_from: str, date_to: str) -> bool:
    if not appointment.appointment_date:
        return True
    return date_from <= appointment.appointment_date <= date_to


class StaticCalendarFeed(CalendarFeed):
    """Feed over a fixed list of appointments (CSV exports, tests)."""

    def __init__(self, appointments: Optional[Iterable[Appointment]] = None, configured: bool = True):
        self.appointments = list(appointments or [])
        self.configured = configured

    def fetch(self, date_from: str, date_to: str) -> CalendarFeedResult:
        if not self.configured:
            return CalendarFeedResult.not_configured()
        return CalendarFeedResult.ok(
            [a for a in self.appointments if _in_window(a, date_from, date_to)]
        )


class GoogleCalendarFeed(CalendarFeed):
    """
    Google Calendar REST feed.

    Only booking-platform events are kept: cancelled events and events whose
    title does not start with the source tag are skipped. Patient details are
    parsed from the event description.
    """

    def __init__(self,
                 calendar_id: str,
                 access_token: str,
                 api_url: str = DEFAULT_CALENDAR_API_URL,
                 source_tag: str = DEFAULT_SOURCE_TAG,
                 timezone: str = DEFAULT_TIMEZONE,
                 timeout: int = DEFAULT_REQUEST_TIMEOUT,
                 verify_ssl: bool = True,
                 session: Optional[requests.Session] = None):
        """
        Initialize the feed.

        Args:
            calendar_id: Calendar to read; empty means "not configured"
            access_token: OAuth access token for the calendar API
            api_url: Calendar API base URL
            source_tag: Title prefix identifying booked appointments
            timezone: Practice timezone used for the window and event times
            timeout: Request timeout in seconds
            verify_ssl: Verify TLS certificates
            session: Optional requests session
        """
        self.calendar_id = calendar_id
        self.access_token = access_token
        self.api_url = api_url.rstrip('/')
        self.source_tag = source_tag
        self.tz = ZoneInfo(timezone)
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

        if not verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)

    def fetch(self, date_from: str, date_to: str) -> CalendarFeedResult:
        if not self.calendar_id:
            return CalendarFeedResult.not_configured()
        if not self.access_token:
            self.logger.error("CALENDAR_ERROR - No access token for calendar API")
            return CalendarFeedResult.failed("missing access token")

        try:
            day_start = datetime.combine(date.fromisoformat(date_from), datetime.min.time(), self.tz)
            day_end = datetime.combine(date.fromisoformat(date_to or date_from),
                                       datetime.max.time().replace(microsecond=0), self.tz)
        except ValueError as e:
            return CalendarFeedResult.failed(f"invalid date range: {e}")

        params = {
            'timeMin': day_start.isoformat(),
            'timeMax': day_end.isoformat(),
            'singleEvents': 'true',
            'orderBy': 'startTime',
            'maxResults': MAX_RESULTS
        }
        url = f"{self.api_url}/calendars/{quote(self.calendar_id, safe='')}/events"

        try:
            response = self.session.get(
                url,
                params=params,
                headers={'Authorization': f"Bearer {self.access_token}"},
                timeout=self.timeout,
                verify=self.verify_ssl
            )
        except requests.RequestException as e:
            self.logger.error(f"CALENDAR_ERROR - Calendar API call failed: {e}")
            return CalendarFeedResult.failed(str(e))

        if response.status_code != 200:
            self.logger.error(f"CALENDAR_ERROR - Calendar API HTTP {response.status_code}: {response.text}")
            return CalendarFeedResult.failed(f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            self.logger.error(f"CALENDAR_ERROR - Invalid calendar API response: {e}")
            return CalendarFeedResult.failed("invalid response")

        appointments = []
        for item in data.get('items') or []:
            if item.get('status') == 'cancelled':
                continue
            summary = item.get('summary') or ''
            if not summary.upper().startswith(self.source_tag.upper()):
                continue

            appointment = self.parse_event(item)
            if appointment is not None:
                appointments.append(appointment)

        self.logger.info(f"Fetched {len(appointments)} appointments from {date_from} to {date_to}")
        return CalendarFeedResult.ok(appointments)

    def parse_event(self, item: Dict[str, Any]) -> Optional[Appointment]:
        """Convert one calendar API event into an appointment."""
        event_id = item.get('id') or ''
        if not event_id:
            self.logger.warning(f"Skipping calendar event without id: {item.get('summary', '')}")
            return None

        start = item.get('start') or {}
        appointment_date, appointment_time = '', ''
        if start.get('dateTime'):
            try:
                started = datetime.fromisoformat(start['dateTime'].replace('Z', '+00:00'))
                started = started.astimezone(self.tz)
                appointment_date = started.strftime('%Y-%m-%d')
                appointment_time = started.strftime('%H:%M')
            except ValueError:
                self.logger.warning(f"Unparseable start time on event {event_id}: {start['dateTime']}")
        elif start.get('date'):
            appointment_date = start['date']

        details = parse_event_description(item.get('description'))
        summary = item.get('summary') or ''
        patient_name = details['patient_name'] or strip_source_tag(summary)

        return Appointment(
            external_id=event_id,
            patient_name=patient_name,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            email=details['email'],
            phone=details['phone'],
            dob=details['dob'],
            consultation_type=details['consultation_type'],
            sex=details['sex']
        )

