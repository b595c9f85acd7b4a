"""
Tests for calendar feed providers.

The calendar API is replaced by a mocked requests session.
"""

import unittest
from unittest.mock import Mock

import requests

from intake_reconciliation.clients.calendar_feed import GoogleCalendarFeed, StaticCalendarFeed
from intake_reconciliation.core.data_models import Appointment, FeedStatus


def make_response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.text = ''
    response.json.return_value = payload if payload is not None else {}
    return response


class TestGoogleCalendarFeed(unittest.TestCase):
    """Test cases for GoogleCalendarFeed."""

    def setUp(self):
        """Set up test fixtures."""
        self.session = Mock()
        self.feed = GoogleCalendarFeed("cal@group.calendar.google.com", "token", session=self.session)

    def test_fetch_parses_booked_events(self):
        self.session.get.return_value = make_response(payload={'items': [
            {
                'id': 'evt1',
                'summary': '[OD] - Jean Dupont',
                'start': {'dateTime': '2026-02-20T09:30:00Z'},
                'description': '[OneDoc]\nConsultation\n---\nJean\nDupont\nM\n15.03.1985\n'
                               'jean@x.com\n079 123 45 67\n[/OneDoc]'
            },
            {'id': 'evt2', 'summary': '[OD] - Cancelled', 'status': 'cancelled',
             'start': {'dateTime': '2026-02-20T10:00:00+01:00'}},
            {'id': 'evt3', 'summary': 'Team meeting', 'start': {'dateTime': '2026-02-20T12:00:00+01:00'}},
            {'id': 'evt4', 'summary': '[od] Anna Meier', 'start': {'date': '2026-02-21'}},
        ]})

        result = self.feed.fetch("2026-02-20", "2026-02-21")

        self.assertEqual(result.status, FeedStatus.OK)
        self.assertEqual([a.external_id for a in result.appointments], ['evt1', 'evt4'])

        first = result.appointments[0]
        # 09:30 UTC is 10:30 in Zurich in winter
        self.assertEqual((first.appointment_date, first.appointment_time), ("2026-02-20", "10:30"))
        self.assertEqual(first.patient_name, "Jean Dupont")
        self.assertEqual(first.email, "jean@x.com")
        self.assertEqual(first.dob, "1985-03-15")
        self.assertEqual(first.consultation_type, "Consultation")

        all_day = result.appointments[1]
        self.assertEqual(all_day.patient_name, "Anna Meier")
        self.assertEqual((all_day.appointment_date, all_day.appointment_time), ("2026-02-21", ""))

    def test_request_parameters(self):
        self.session.get.return_value = make_response(payload={'items': []})

        self.feed.fetch("2026-02-20", "2026-02-20")

        args, kwargs = self.session.get.call_args
        self.assertTrue(args[0].endswith("/calendars/cal%40group.calendar.google.com/events"))
        self.assertEqual(kwargs['params']['timeMin'], "2026-02-20T00:00:00+01:00")
        self.assertEqual(kwargs['params']['timeMax'], "2026-02-20T23:59:59+01:00")
        self.assertEqual(kwargs['params']['orderBy'], "startTime")
        self.assertEqual(kwargs['params']['maxResults'], 250)
        self.assertEqual(kwargs['headers']['Authorization'], "Bearer token")

    def test_not_configured(self):
        feed = GoogleCalendarFeed("", "token", session=self.session)
        result = feed.fetch("2026-02-20", "2026-02-20")

        self.assertEqual(result.status, FeedStatus.NOT_CONFIGURED)
        self.assertFalse(result.is_configured)
        self.session.get.assert_not_called()

    def test_transport_error_is_reported(self):
        self.session.get.side_effect = requests.ConnectionError("unreachable")
        result = self.feed.fetch("2026-02-20", "2026-02-20")

        self.assertEqual(result.status, FeedStatus.ERROR)
        self.assertIn("unreachable", result.error)
        self.assertEqual(result.appointments, [])

    def test_http_error_is_reported(self):
        self.session.get.return_value = make_response(status_code=403)
        result = self.feed.fetch("2026-02-20", "2026-02-20")

        self.assertEqual(result.status, FeedStatus.ERROR)
        self.assertEqual(result.error, "HTTP 403")

    def test_missing_token_and_bad_dates(self):
        feed = GoogleCalendarFeed("cal", "", session=self.session)
        self.assertEqual(feed.fetch("2026-02-20", "2026-02-20").status, FeedStatus.ERROR)
        self.assertEqual(self.feed.fetch("20.02.2026", "2026-02-20").status, FeedStatus.ERROR)
        self.session.get.assert_not_called()


class TestStaticCalendarFeed(unittest.TestCase):

    def test_window_filter(self):
        feed = StaticCalendarFeed([
            Appointment(external_id="E1", appointment_date="2026-02-19"),
            Appointment(external_id="E2", appointment_date="2026-02-20"),
            Appointment(external_id="E3"),
        ])
        result = feed.fetch("2026-02-20", "2026-02-28")
        self.assertEqual([a.external_id for a in result.appointments], ["E2", "E3"])


if __name__ == '__main__':
    unittest.main()
