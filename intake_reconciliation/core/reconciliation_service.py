"""
Reconciliation Service

Calling layer for the front-office view: fetches the calendar window and the
form pool, runs the matching pass, merges and classifies items, and owns the
result cache and the confirmation workflow.
"""

import logging
from datetime import date, timedelta
from typing import Optional, Tuple

from .confirmation import ConfirmationWorkflow
from .data_models import (
    CalendarItem,
    FeedStatus,
    LinkResult,
    ManualPick,
    ReconciliationResult
)
from .form_matcher import AppointmentFormMatcher, merge_form_links
from .link_store import LinkStore
from .merger import ReconciliationMerger
from .result_cache import ResultCache
from ..config import ReconciliationConfig


def default_window(window_days: int, today: Optional[date] = None) -> Tuple[str, str]:
    """Date window starting today and spanning ``window_days`` days."""
    start = today or date.today()
    return start.isoformat(), (start + timedelta(days=window_days)).isoformat()


class ReconciliationService:
    """Service for appointment/form reconciliation."""

    def __init__(self,
                 calendar_feed,
                 form_store,
                 link_store: LinkStore,
                 cache: Optional[ResultCache] = None,
                 config: Optional[ReconciliationConfig] = None,
                 audit_logger=None):
        """
        Initialize the reconciliation service.

        Args:
            calendar_feed: CalendarFeed providing appointments
            form_store: FormStore providing the form pool
            link_store: LinkStore holding confirmed links
            cache: Result cache; built from the config TTL when omitted
            config: Service configuration
            audit_logger: Optional ReconciliationAuditLogger
        """
        self.config = config or ReconciliationConfig()
        self.calendar_feed = calendar_feed
        self.form_store = form_store
        self.link_store = link_store
        self.cache = cache if cache is not None else ResultCache(self.config.cache_ttl_seconds)
        self.audit_logger = audit_logger
        self.matcher = AppointmentFormMatcher()
        self.merger = ReconciliationMerger()
        self.workflow = ConfirmationWorkflow(link_store, self.cache, audit_logger=audit_logger)
        self.last_result: Optional[ReconciliationResult] = None
        self.logger = logging.getLogger(__name__)

    def reconcile(self, date_from: str, date_to: str, force_refresh: bool = False) -> ReconciliationResult:
        """
        Build the merged, classified view for a date window.

        A fresh cached result is returned unless ``force_refresh`` is set.
        A failing calendar still yields the form-only items; an unconfigured
        calendar also disables hiding of dated forms.

        Args:
            date_from: First day of the window (YYYY-MM-DD)
            date_to: Last day of the window (YYYY-MM-DD)
            force_refresh: Bypass the cache

        Returns:
            ReconciliationResult
        """
        cache_key = f"{date_from}|{date_to}"
        if not force_refresh:
            cached, is_stale = self.cache.get(cache_key)
            if cached is not None and not is_stale:
                self.logger.debug(f"Serving cached reconciliation for {cache_key}")
                return self._remember(cached)

        feed = self.calendar_feed.fetch(date_from, date_to)
        if feed.status == FeedStatus.ERROR:
            self.logger.error(f"CALENDAR_ERROR - {feed.error}; showing forms only")
        elif feed.status == FeedStatus.NOT_CONFIGURED:
            self.logger.info("No calendar configured; showing forms only")

        appointments = feed.appointments if feed.status == FeedStatus.OK else []
        forms = self.form_store.list_forms()
        links = merge_form_links(self.link_store.snapshot(), forms)

        matching = self.matcher.match(appointments, forms, links)
        items, groups = self.merger.merge(appointments, forms, matching, feed.is_configured)

        result = ReconciliationResult(
            merged_items=items,
            unlinked_forms=matching.unlinked_forms,
            calendar_status=feed.status,
            groups=groups,
            statistics=matching.statistics
        )

        if self.audit_logger is not None:
            for item in items:
                if isinstance(item, CalendarItem):
                    self.audit_logger.log_match_decision(item)
            self.audit_logger.log_session_summary(result.statistics)

        self.cache.put(cache_key, result)
        return self._remember(result)

    def confirm_suggestion(self, appointment_id: str, form_id: str) -> LinkResult:
        """Accept a suggested match and persist it."""
        return self.workflow.confirm_suggestion(appointment_id, form_id)

    def manual_link(self, appointment_id: str, form_id: str) -> LinkResult:
        """Persist a match picked by hand."""
        return self.workflow.manual_link(appointment_id, form_id)

    def skip(self, appointment_id: str) -> LinkResult:
        """Skip an appointment for this session; always succeeds."""
        result = self.workflow.skip(appointment_id)
        if self.last_result is not None:
            self._mark_skipped(self.last_result)
        return result

    def manual_candidates(self, appointment_id: str) -> ManualPick:
        """
        Rank unlinked forms for an appointment of the last reconciled window.

        An appointment not present in the last result gets no candidates.
        """
        item = self.last_result.find_appointment_item(appointment_id) if self.last_result else None
        if item is None:
            self.logger.warning(f"Appointment {appointment_id} not in the current view")
            return ManualPick(appointment_id=appointment_id)

        return self.workflow.manual_candidates(item.appointment, self.last_result.unlinked_forms)

    def _remember(self, result: ReconciliationResult) -> ReconciliationResult:
        self._mark_skipped(result)
        self.last_result = result
        return result

    def _mark_skipped(self, result: ReconciliationResult):
        for item in result.merged_items:
            if isinstance(item, CalendarItem):
                item.skipped = self.workflow.is_skipped(item.appointment.external_id)
