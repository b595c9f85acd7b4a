"""
Reconciliation Data Models

This module defines the core data structures shared by the matcher, the
merger, the state classifier and the confirmation workflow.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Union
from enum import Enum

from ..utils.normalizers import normalize_time


class FormStatus(Enum):
    """Lifecycle of an intake form."""
    DRAFT = "draft"              # Invitation sent, not filled in yet
    SUBMITTED = "submitted"      # Patient has filled in the form
    PROCESSED = "processed"      # Consultation done, form archived

    @classmethod
    def parse(cls, value: Any) -> Optional['FormStatus']:
        """Parse a raw status, returning None for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or '').strip().lower())
        except ValueError:
            return None


class ItemType(Enum):
    """Kind of merged display item."""
    CALENDAR = "calendar"
    FORM_ONLY = "form_only"


class ItemState(Enum):
    """Display state (badge) of a merged item."""
    PROCESSED = "processed"
    RECEIVED = "received"
    INVITED = "invited"
    SUGGESTED = "suggested"
    AWAITING_FORM = "awaiting_form"
    DRAFT = "draft"


class MatchTier(Enum):
    """Matching tiers in priority order."""
    LINK = "link"                # Tier 0: persistent human-confirmed link
    APPOINTMENT = "appointment"  # Tier A: date + time + name
    EMAIL = "email"              # Tier B
    PHONE = "phone"              # Tier C
    NAME_DOB = "name_dob"        # Tier D
    NAME = "name"                # Tier E


class FeedStatus(Enum):
    """Outcome of a calendar feed fetch."""
    OK = "ok"
    NOT_CONFIGURED = "not_configured"
    ERROR = "error"


NO_DATE_KEY = "__no_date__"


@dataclass
class Appointment:
    """Calendar appointment as delivered by the feed."""
    external_id: str
    patient_name: str = ''
    appointment_date: str = ''
    appointment_time: str = ''
    email: str = ''
    phone: str = ''
    dob: str = ''
    consultation_type: str = ''
    sex: str = ''

    def __post_init__(self):
        """Validate appointment identity and pad the time to HH:MM."""
        if not self.external_id:
            raise ValueError("Appointment external_id is required")
        self.appointment_time = normalize_time(self.appointment_time)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Appointment':
        """Build an appointment from a feed or CSV row."""
        return cls(
            external_id=(data.get('external_id') or data.get('calendar_event_id') or '').strip(),
            patient_name=data.get('patient_name') or data.get('name') or '',
            appointment_date=(data.get('appointment_date') or data.get('date') or '').strip(),
            appointment_time=(data.get('appointment_time') or data.get('time') or '').strip(),
            email=data.get('email') or '',
            phone=data.get('phone') or '',
            dob=(data.get('dob') or '').strip(),
            consultation_type=data.get('consultation_type') or '',
            sex=data.get('sex') or ''
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'external_id': self.external_id,
            'patient_name': self.patient_name,
            'appointment_date': self.appointment_date,
            'appointment_time': self.appointment_time,
            'email': self.email,
            'phone': self.phone,
            'dob': self.dob,
            'consultation_type': self.consultation_type,
            'sex': self.sex
        }


@dataclass
class FormRecord:
    """Patient-submitted intake form."""
    id: str
    status: FormStatus
    patient_name: str = ''
    email: str = ''
    phone: str = ''
    dob: str = ''
    appointment_date: str = ''
    appointment_time: str = ''
    linked_appointment_id: Optional[str] = None
    submitted_at: str = ''
    created: str = ''
    source: str = ''

    def __post_init__(self):
        """Validate form identity and status, pad the time to HH:MM."""
        if not self.id:
            raise ValueError("Form id is required")
        if not isinstance(self.status, FormStatus):
            parsed = FormStatus.parse(self.status)
            if parsed is None:
                raise ValueError(f"Unknown form status: {self.status!r}")
            self.status = parsed
        self.appointment_time = normalize_time(self.appointment_time)

    @property
    def is_draft(self) -> bool:
        return self.status == FormStatus.DRAFT

    @property
    def recency_key(self) -> str:
        """Sort key for "most recently submitted" comparisons."""
        return self.submitted_at or self.created or ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FormRecord':
        """Build a form from a store record or CSV row."""
        return cls(
            id=(data.get('id') or '').strip(),
            status=data.get('status') or '',
            patient_name=data.get('patient_name') or data.get('name') or '',
            email=data.get('email') or '',
            phone=data.get('phone') or '',
            dob=(data.get('dob') or '').strip(),
            appointment_date=(data.get('appointment_date') or '').strip(),
            appointment_time=(data.get('appointment_time') or '').strip(),
            linked_appointment_id=(data.get('linked_appointment_id')
                                   or data.get('calendar_event_id') or None),
            submitted_at=data.get('submitted_at') or '',
            created=data.get('created') or '',
            source=data.get('source') or ''
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'id': self.id,
            'status': self.status.value,
            'patient_name': self.patient_name,
            'email': self.email,
            'phone': self.phone,
            'dob': self.dob,
            'appointment_date': self.appointment_date,
            'appointment_time': self.appointment_time,
            'linked_appointment_id': self.linked_appointment_id,
            'submitted_at': self.submitted_at,
            'source': self.source
        }


@dataclass
class Candidate:
    """A form proposed for an appointment during one matching pass."""
    form: FormRecord
    score: int = 0
    signals: List[str] = field(default_factory=list)
    tier: Optional[MatchTier] = None
    match_field: str = ''

    def __post_init__(self):
        """Validate score range."""
        if not 0 <= self.score <= 120:
            raise ValueError("Score must be between 0 and 120")


@dataclass(frozen=True)
class Confirmed:
    """Human-confirmed (persistent) match."""
    form: FormRecord


@dataclass(frozen=True)
class Suggested:
    """Algorithm-proposed match awaiting confirmation."""
    candidate: Candidate


MatchOutcome = Optional[Union[Confirmed, Suggested]]


@dataclass
class CalendarItem:
    """Merged item backed by a calendar appointment."""
    appointment: Appointment
    outcome: MatchOutcome = None
    state: Optional[ItemState] = None
    skipped: bool = False

    item_type = ItemType.CALENDAR

    @property
    def confirmed_form(self) -> Optional[FormRecord]:
        return self.outcome.form if isinstance(self.outcome, Confirmed) else None

    @property
    def suggestion(self) -> Optional[Candidate]:
        return self.outcome.candidate if isinstance(self.outcome, Suggested) else None

    @property
    def appointment_date(self) -> str:
        return self.appointment.appointment_date

    @property
    def appointment_time(self) -> str:
        return self.appointment.appointment_time

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the calling layer."""
        form = self.confirmed_form
        data = {
            'type': self.item_type.value,
            'appointment_id': self.appointment.external_id,
            'patient_name': self.appointment.patient_name,
            'appointment_date': self.appointment.appointment_date,
            'appointment_time': self.appointment.appointment_time,
            'email': self.appointment.email,
            'phone': self.appointment.phone,
            'dob': self.appointment.dob,
            'consultation_type': self.appointment.consultation_type,
            'form_id': form.id if form else None,
            'form_status': form.status.value if form else None,
            'state': self.state.value if self.state else None,
            'skipped': self.skipped
        }
        if self.state == ItemState.SUGGESTED and self.suggestion:
            data['suggested_form_id'] = self.suggestion.form.id
            data['match_tier'] = self.suggestion.tier.value if self.suggestion.tier else None
            data['match_field'] = self.suggestion.match_field
        return data


@dataclass
class FormOnlyItem:
    """Merged item for a form with no appointment."""
    form: FormRecord
    state: Optional[ItemState] = None

    item_type = ItemType.FORM_ONLY

    @property
    def appointment_date(self) -> str:
        return self.form.appointment_date

    @property
    def appointment_time(self) -> str:
        return self.form.appointment_time

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the calling layer."""
        return {
            'type': self.item_type.value,
            'form_id': self.form.id,
            'form_status': self.form.status.value,
            'patient_name': self.form.patient_name,
            'appointment_date': self.form.appointment_date,
            'appointment_time': self.form.appointment_time,
            'email': self.form.email,
            'phone': self.form.phone,
            'dob': self.form.dob,
            'state': self.state.value if self.state else None
        }


MergedItem = Union[CalendarItem, FormOnlyItem]


@dataclass
class DateGroup:
    """Items sharing one appointment date (or the no-date bucket)."""
    date_key: str
    items: List[MergedItem] = field(default_factory=list)


@dataclass
class CalendarFeedResult:
    """Result of a calendar feed fetch; errors are values, not exceptions."""
    status: FeedStatus
    appointments: List[Appointment] = field(default_factory=list)
    error: str = ''

    @classmethod
    def ok(cls, appointments: List[Appointment]) -> 'CalendarFeedResult':
        return cls(FeedStatus.OK, list(appointments))

    @classmethod
    def not_configured(cls) -> 'CalendarFeedResult':
        return cls(FeedStatus.NOT_CONFIGURED)

    @classmethod
    def failed(cls, error: str) -> 'CalendarFeedResult':
        return cls(FeedStatus.ERROR, error=error)

    @property
    def is_configured(self) -> bool:
        return self.status != FeedStatus.NOT_CONFIGURED


@dataclass
class ReconciliationStatistics:
    """Statistics for one matching pass."""
    total_appointments: int = 0
    confirmed: int = 0
    suggested: int = 0
    unmatched: int = 0
    orphan_forms: int = 0
    hidden_dated_forms: int = 0
    broken_links: int = 0
    index_collisions: int = 0
    tier_counts: Dict[str, int] = field(default_factory=dict)

    def record_tier(self, tier: MatchTier):
        self.tier_counts[tier.value] = self.tier_counts.get(tier.value, 0) + 1

    def get_match_rate(self) -> float:
        """Share of appointments with a confirmed or suggested form."""
        if self.total_appointments == 0:
            return 0.0
        return (self.confirmed + self.suggested) / self.total_appointments

    def get_confirmed_rate(self) -> float:
        """Share of appointments with a confirmed form."""
        if self.total_appointments == 0:
            return 0.0
        return self.confirmed / self.total_appointments


@dataclass
class ReconciliationResult:
    """Everything the calling layer needs to render one refresh."""
    merged_items: List[MergedItem]
    unlinked_forms: List[FormRecord]
    calendar_status: FeedStatus
    groups: List[DateGroup] = field(default_factory=list)
    statistics: ReconciliationStatistics = field(default_factory=ReconciliationStatistics)

    def find_appointment_item(self, appointment_id: str) -> Optional[CalendarItem]:
        """Return the calendar item for an appointment id, if present."""
        for item in self.merged_items:
            if isinstance(item, CalendarItem) and item.appointment.external_id == appointment_id:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the calling layer."""
        return {
            'calendar_status': self.calendar_status.value,
            'calendar_configured': self.calendar_status != FeedStatus.NOT_CONFIGURED,
            'merged_items': [item.to_dict() for item in self.merged_items],
            'unlinked_forms': [form.to_dict() for form in self.unlinked_forms],
            'groups': [
                {'date': group.date_key, 'count': len(group.items)}
                for group in self.groups
            ]
        }


@dataclass
class LinkResult:
    """Outcome of a confirmation action."""
    ok: bool
    error: str = ''
    appointment_id: str = ''
    form_id: str = ''


@dataclass
class ManualPick:
    """Ranked forms offered when a suggestion is refused."""
    appointment_id: str
    candidates: List[Candidate] = field(default_factory=list)
    preselected_form_id: Optional[str] = None
