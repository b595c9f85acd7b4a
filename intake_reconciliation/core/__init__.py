"""Core reconciliation framework."""

# Import main classes for easier access
from ..exceptions import (
    ReconciliationError,
    LinkValidationError,
    LinkStoreError,
    FormStoreError
)
from .data_models import (
    FormStatus,
    ItemType,
    ItemState,
    MatchTier,
    FeedStatus,
    Appointment,
    FormRecord,
    Candidate,
    Confirmed,
    Suggested,
    CalendarItem,
    FormOnlyItem,
    CalendarFeedResult,
    ReconciliationResult,
    LinkResult,
    ManualPick
)
from .confidence_scoring import ScoringEngine
from .form_index import FormIndex
from .form_matcher import AppointmentFormMatcher
from .state_classifier import classify_fields, classify_item
from .merger import ReconciliationMerger, group_by_date
from .link_store import LinkStore, InMemoryLinkStore, CsvLinkStore
from .result_cache import ResultCache
from .confirmation import ConfirmationWorkflow
from .reconciliation_service import ReconciliationService

__all__ = [
    'ReconciliationError',
    'LinkValidationError',
    'LinkStoreError',
    'FormStoreError',
    'FormStatus',
    'ItemType',
    'ItemState',
    'MatchTier',
    'FeedStatus',
    'Appointment',
    'FormRecord',
    'Candidate',
    'Confirmed',
    'Suggested',
    'CalendarItem',
    'FormOnlyItem',
    'CalendarFeedResult',
    'ReconciliationResult',
    'LinkResult',
    'ManualPick',
    'ScoringEngine',
    'FormIndex',
    'AppointmentFormMatcher',
    'classify_fields',
    'classify_item',
    'ReconciliationMerger',
    'group_by_date',
    'LinkStore',
    'InMemoryLinkStore',
    'CsvLinkStore',
    'ResultCache',
    'ConfirmationWorkflow',
    'ReconciliationService'
]
