"""
Appointment/Form Matcher - Core matching engine.

This module pairs calendar appointments with intake forms. Persistent links
confirmed by a human are applied first; the remaining appointments go
through the deterministic tiers, which only ever produce suggestions.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Set

from .data_models import (
    Appointment,
    Candidate,
    Confirmed,
    FormRecord,
    FormStatus,
    MatchOutcome,
    MatchTier,
    ReconciliationStatistics,
    Suggested
)
from .form_index import FormIndex
from ..strategies.deterministic import TIER_STRATEGIES, TierStrategy


@dataclass
class MatchingPass:
    """Output of one matching pass over a feed and a form pool."""
    outcomes: Dict[str, MatchOutcome]
    consumed: Set[str]
    unlinked_forms: List[FormRecord]
    statistics: ReconciliationStatistics = field(default_factory=ReconciliationStatistics)

    def outcome_for(self, appointment_id: str) -> MatchOutcome:
        return self.outcomes.get(appointment_id)


def merge_form_links(links: Mapping[str, str], forms: Iterable[FormRecord]) -> Dict[str, str]:
    """
    Combine stored links with the links carried on the forms themselves.

    Stored links win: a form-carried link is only used when neither its
    appointment nor its form appears in the stored links. When several
    forms carry the same appointment, the most recent form wins.

    Args:
        links: Stored appointment id -> form id links
        forms: Form pool, some of which may name their appointment

    Returns:
        New appointment id -> form id mapping
    """
    claimed_forms = set(links.values())
    carried: Dict[str, FormRecord] = {}
    for form in forms:
        appointment_id = form.linked_appointment_id
        if not appointment_id or appointment_id in links or form.id in claimed_forms:
            continue
        current = carried.get(appointment_id)
        if current is None or form.recency_key > current.recency_key:
            carried[appointment_id] = form

    merged = dict(links)
    merged.update({appointment_id: form.id for appointment_id, form in carried.items()})
    return merged


class AppointmentFormMatcher:
    """
    Tiered matching of calendar appointments against intake forms.

    Order per appointment, first hit wins:
    0. Persistent link (confirmed)
    A. Date + time + name (suggested)
    B. Email (suggested)
    C. Phone (suggested)
    D. Name + date of birth (suggested)
    E. Name (suggested)

    A form claimed once in a pass, by a link or by any tier, is never offered
    to another appointment in the same pass.
    """

    def __init__(self, strategies: Optional[List[tuple]] = None):
        """
        Initialize the matcher.

        Args:
            strategies: Ordered (tier, strategy) pairs; defaults to tiers A-E
        """
        self.strategies = list(strategies if strategies is not None else TIER_STRATEGIES)
        self.logger = logging.getLogger(__name__)

    def match(self,
              appointments: List[Appointment],
              forms: List[FormRecord],
              links: Mapping[str, str]) -> MatchingPass:
        """
        Run one matching pass.

        Args:
            appointments: Appointments of the current window
            forms: Candidate form pool
            links: Snapshot of persistent appointment id -> form id links

        Returns:
            MatchingPass with one outcome per appointment
        """
        stats = ReconciliationStatistics(total_appointments=len(appointments))
        forms_by_id = {form.id: form for form in forms}

        # Linked forms are claimed even when their appointment is outside the
        # window, so they can never be suggested to somebody else.
        consumed: Set[str] = set(links.values())
        outcomes: Dict[str, MatchOutcome] = {}

        confirmed_owner: Dict[str, str] = {}
        for appointment in appointments:
            outcome = self._resolve_link(appointment, links, forms_by_id, confirmed_owner, stats)
            if outcome is not None:
                outcomes[appointment.external_id] = outcome

        index = FormIndex(forms)
        stats.index_collisions = index.collisions
        for appointment in appointments:
            if appointment.external_id in outcomes:
                continue

            candidate = self._run_tiers(index, appointment, consumed)
            if candidate is None:
                outcomes[appointment.external_id] = None
                stats.unmatched += 1
                continue

            consumed.add(candidate.form.id)
            outcomes[appointment.external_id] = Suggested(candidate)
            stats.suggested += 1
            stats.record_tier(candidate.tier)
            self.logger.info(
                f"SUGGESTED - Appointment {appointment.external_id} -> form {candidate.form.id} "
                f"(Tier: {candidate.tier.value}, Field: {candidate.match_field}, "
                f"Score: {candidate.score})"
            )

        unlinked = [
            form for form in forms
            if form.id not in consumed and form.status != FormStatus.PROCESSED
        ]

        return MatchingPass(
            outcomes=outcomes,
            consumed=consumed,
            unlinked_forms=unlinked,
            statistics=stats
        )

    def _resolve_link(self,
                      appointment: Appointment,
                      links: Mapping[str, str],
                      forms_by_id: Dict[str, FormRecord],
                      confirmed_owner: Dict[str, str],
                      stats: ReconciliationStatistics) -> MatchOutcome:
        """Tier 0: apply a persistent link if one exists and is usable."""
        form_id = links.get(appointment.external_id)
        if not form_id:
            return None

        form = forms_by_id.get(form_id)
        if form is None:
            stats.broken_links += 1
            self.logger.warning(
                f"BROKEN_LINK - Appointment {appointment.external_id} links to unknown "
                f"form {form_id}, falling back to suggestions"
            )
            return None

        owner = confirmed_owner.get(form_id)
        if owner is not None:
            self.logger.warning(
                f"DUPLICATE_LINK - Form {form_id} already confirmed for appointment "
                f"{owner}, ignoring link from {appointment.external_id}"
            )
            return None

        confirmed_owner[form_id] = appointment.external_id
        stats.confirmed += 1
        stats.record_tier(MatchTier.LINK)
        self.logger.debug(f"CONFIRMED - Appointment {appointment.external_id} -> form {form_id}")
        return Confirmed(form)

    def _run_tiers(self,
                   index: FormIndex,
                   appointment: Appointment,
                   consumed: Set[str]) -> Optional[Candidate]:
        """Try tiers A-E in order and return the first candidate."""
        strategy: TierStrategy
        for tier, strategy in self.strategies:
            candidate = strategy(index, appointment, consumed)
            if candidate is not None:
                return candidate
        return None
