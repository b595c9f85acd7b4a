"""
Form store clients.

The intake forms live in a PocketBase ``patient_forms`` collection. The
persistent appointment link is the form's ``calendar_event_id`` field, so
the same collection also backs a LinkStore.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from ..config import DEFAULT_PAGE_SIZE, DEFAULT_REQUEST_TIMEOUT
from ..core.data_models import FormRecord, FormStatus
from ..exceptions import FormStoreError, LinkStoreError
from ..core.link_store import LinkStore
from ..utils.event_parser import parse_appointment_text
from ..utils.validators import sanitize_filter_value, validate_pocketbase_id

FORMS_COLLECTION = 'patient_forms'
LINK_FIELD = 'calendar_event_id'
# Open forms, plus closed forms that still carry a link
PENDING_FILTER = f"status != 'processed' || {LINK_FIELD} != ''"


class FormStore:
    """Interface of a form source."""

    def list_forms(self) -> List[FormRecord]:
        raise NotImplementedError


class StaticFormStore(FormStore):
    """Form source over a fixed list (CSV exports, tests)."""

    def __init__(self, forms: Optional[Iterable[FormRecord]] = None):
        self.forms = list(forms or [])

    def list_forms(self) -> List[FormRecord]:
        return list(self.forms)


def record_to_form(record: Dict[str, Any]) -> FormRecord:
    """
    Convert a PocketBase record into a FormRecord.

    When the record has no explicit appointment slot, the slot copied from
    the booking confirmation (``onedoc_appointment``) is parsed instead.
    """
    appointment_date = record.get('appointment_date') or ''
    appointment_time = record.get('appointment_time') or ''
    if not appointment_date and record.get('onedoc_appointment'):
        appointment_date, appointment_time = parse_appointment_text(record['onedoc_appointment'])

    return FormRecord(
        id=record['id'],
        status=FormStatus.parse(record.get('status')) or FormStatus.DRAFT,
        patient_name=record.get('patient_name') or '',
        email=record.get('email') or '',
        phone=record.get('phone') or '',
        dob=record.get('dob') or record.get('birthdate') or '',
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        linked_appointment_id=record.get(LINK_FIELD) or None,
        submitted_at=record.get('submitted_at') or '',
        created=record.get('created') or '',
        source=record.get('source') or ''
    )


class PocketBaseFormStore(FormStore):
    """PocketBase REST client for the intake form collection."""

    def __init__(self,
                 base_url: str,
                 token: str,
                 page_size: int = DEFAULT_PAGE_SIZE,
                 timeout: int = DEFAULT_REQUEST_TIMEOUT,
                 verify_ssl: bool = True,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            base_url: PocketBase base URL
            token: Admin auth token
            page_size: Records per page
            timeout: Request timeout in seconds
            verify_ssl: Verify TLS certificates
            session: Optional requests session
        """
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.page_size = page_size
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

        if not verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)

    @property
    def _records_url(self) -> str:
        return f"{self.base_url}/api/collections/{FORMS_COLLECTION}/records"

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        headers = {'Content-Type': 'application/json'}
        if self.token:
            headers['Authorization'] = self.token

        try:
            response = self.session.request(
                method, url,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify_ssl,
                **kwargs
            )
        except requests.RequestException as e:
            raise FormStoreError(f"{method} {url} failed: {e}") from e

        if response.status_code != 200:
            raise FormStoreError(f"{method} {url} returned HTTP {response.status_code}: {response.text}")

        try:
            return response.json()
        except ValueError as e:
            raise FormStoreError(f"{method} {url} returned invalid JSON") from e

    def query(self, filter_expr: str, sort: str = '-created', fields: Optional[str] = None) -> List[Dict[str, Any]]:
        """Fetch every record matching a filter, following pagination."""
        records: List[Dict[str, Any]] = []
        page = 1
        while True:
            params = {'filter': filter_expr, 'sort': sort, 'perPage': self.page_size, 'page': page}
            if fields:
                params['fields'] = fields

            data = self._request('GET', self._records_url, params=params)
            records.extend(data.get('items') or [])

            total_pages = data.get('totalPages') or 1
            if page >= total_pages:
                break
            page += 1

        return records

    def list_forms(self) -> List[FormRecord]:
        forms = []
        for record in self.query(PENDING_FILTER):
            if not record.get('id'):
                self.logger.warning(f"Skipping form record without id: {record}")
                continue
            forms.append(record_to_form(record))

        self.logger.info(f"Loaded {len(forms)} forms from {FORMS_COLLECTION}")
        return forms

    def update_link(self, form_id: str, appointment_id: str) -> Dict[str, Any]:
        """Set (or clear, with "") the appointment link of a form."""
        return self._request('PATCH', f"{self._records_url}/{form_id}", json={LINK_FIELD: appointment_id})

    def get_record(self, form_id: str) -> Dict[str, Any]:
        return self._request('GET', f"{self._records_url}/{form_id}")


class PocketBaseLinkStore(LinkStore):
    """
    Link store backed by the forms' ``calendar_event_id`` field.

    A form field holds a single appointment id, so a form can never point
    at two appointments; writing also clears every other form that pointed
    at the same appointment.
    """

    def __init__(self, form_store: PocketBaseFormStore):
        super().__init__()
        self.form_store = form_store

    def get(self, appointment_id: str) -> Optional[str]:
        expr = f"{LINK_FIELD} = '{sanitize_filter_value(appointment_id)}'"
        try:
            records = self.form_store.query(expr, fields='id')
        except FormStoreError as e:
            raise LinkStoreError(str(e)) from e
        return records[0]['id'] if records else None

    def snapshot(self) -> Dict[str, str]:
        try:
            records = self.form_store.query(f"{LINK_FIELD} != ''", sort='created', fields=f"id,{LINK_FIELD}")
        except FormStoreError as e:
            raise LinkStoreError(str(e)) from e

        # Oldest first, so the most recent link wins for an appointment
        return {record[LINK_FIELD]: record['id'] for record in records if record.get(LINK_FIELD)}

    def _write(self, appointment_id: str, form_id: str) -> Optional[str]:
        validate_pocketbase_id(form_id)
        try:
            current = self.form_store.get_record(form_id)
            previous_owner = current.get(LINK_FIELD) or None

            expr = (f"{LINK_FIELD} = '{sanitize_filter_value(appointment_id)}' && "
                    f"id != '{sanitize_filter_value(form_id)}'")
            for other in self.form_store.query(expr, fields='id'):
                self.form_store.update_link(other['id'], '')

            self.form_store.update_link(form_id, appointment_id)
        except FormStoreError as e:
            raise LinkStoreError(str(e)) from e

        return previous_owner if previous_owner != appointment_id else None
