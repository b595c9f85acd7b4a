"""
Human confirmation workflow.

Suggestions are never linked automatically. A receptionist accepts a
suggestion, refuses it and picks a form by hand, or skips the appointment
for the session. Only accept and manual pick write a link; every write
drops the cached reconciliation result so the next refresh sees it.
"""

import logging
from typing import Iterable, Optional, Set

import requests

from .confidence_scoring import ScoringEngine
from .data_models import Appointment, FormRecord, LinkResult, ManualPick
from ..exceptions import LinkStoreError, LinkValidationError
from .link_store import LinkStore
from .result_cache import ResultCache
from ..utils.validators import validate_appointment_id, validate_form_id


class ConfirmationWorkflow:
    """Accept / refuse / manual-pick / skip cycle over a link store."""

    def __init__(self,
                 link_store: LinkStore,
                 cache: Optional[ResultCache] = None,
                 scoring: Optional[ScoringEngine] = None,
                 audit_logger=None):
        """
        Initialize the workflow.

        Args:
            link_store: Store receiving confirmed links
            cache: Result cache to invalidate after each write
            scoring: Scoring engine used to rank manual candidates
            audit_logger: Optional ReconciliationAuditLogger
        """
        self.link_store = link_store
        self.cache = cache
        self.scoring = scoring or ScoringEngine()
        self.audit_logger = audit_logger
        self.skipped: Set[str] = set()
        self.logger = logging.getLogger(__name__)

    def confirm_suggestion(self, appointment_id: str, form_id: str) -> LinkResult:
        """Accept the suggested form for an appointment."""
        return self._write_link(appointment_id, form_id, 'accept')

    def manual_link(self, appointment_id: str, form_id: str) -> LinkResult:
        """Link a form picked by hand in the manual picker."""
        return self._write_link(appointment_id, form_id, 'manual')

    def manual_candidates(self,
                          appointment: Appointment,
                          unlinked_forms: Iterable[FormRecord]) -> ManualPick:
        """
        Rank the unlinked pool for an appointment whose suggestion was refused.

        Nothing is written; the preselected form only marks the likely pick.
        """
        candidates = self.scoring.rank_forms(appointment, unlinked_forms)
        preselected = ScoringEngine.preselect(candidates)

        self.logger.info(
            f"MANUAL_PICK - Appointment {appointment.external_id}: "
            f"{len(candidates)} candidates, preselected: {preselected or 'none'}"
        )
        return ManualPick(
            appointment_id=appointment.external_id,
            candidates=candidates,
            preselected_form_id=preselected
        )

    def skip(self, appointment_id: str) -> LinkResult:
        """Hide an appointment from the confirmation queue for this session."""
        self.skipped.add(appointment_id)
        self.logger.info(f"SKIPPED - Appointment {appointment_id}")
        return LinkResult(ok=True, appointment_id=appointment_id)

    def is_skipped(self, appointment_id: str) -> bool:
        return appointment_id in self.skipped

    def _write_link(self, appointment_id: str, form_id: str, action: str) -> LinkResult:
        try:
            validate_appointment_id(appointment_id)
            validate_form_id(form_id)
            self.link_store.set(appointment_id, form_id)
        except LinkValidationError as e:
            result = LinkResult(ok=False, error=str(e), appointment_id=appointment_id or '', form_id=form_id or '')
            self.logger.warning(f"LINK_REJECTED - {action}: {e}")
        except (LinkStoreError, requests.RequestException) as e:
            result = LinkResult(ok=False, error=str(e), appointment_id=appointment_id, form_id=form_id)
            self.logger.error(f"LINK_FAILED - {action}: appointment {appointment_id} -> form {form_id}: {e}")
        else:
            result = LinkResult(ok=True, appointment_id=appointment_id, form_id=form_id)
            self.skipped.discard(appointment_id)
            if self.cache is not None:
                self.cache.invalidate()

        if self.audit_logger is not None:
            self.audit_logger.log_link_decision(result, action)
        return result
