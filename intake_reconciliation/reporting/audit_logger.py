"""
Audit and reporting for appointment/form reconciliation.

Keeps a decision trail of suggestions and confirmed links, and prints a
session report for the front office.
"""

import logging
import sys
from datetime import datetime
from typing import List

from ..core.confidence_scoring import ScoringEngine
from ..core.data_models import (
    CalendarItem,
    ItemState,
    LinkResult,
    ManualPick,
    ReconciliationResult,
    ReconciliationStatistics
)

REVIEW_QUEUE_LIMIT = 10


class ReconciliationAuditLogger:
    """
    Audit logging for reconciliation decisions.

    Every suggestion and every link write ends up in the audit log, so a
    wrong link can be traced back to who accepted what.
    """

    def __init__(self, logger_name: str = "intake_reconciliation.audit"):
        """
        Initialize the audit logger.

        Args:
            logger_name: Name for the logger instance
        """
        self.logger = logging.getLogger(logger_name)
        self.session_start_time = datetime.now()

    def log_match_decision(self, item: CalendarItem) -> None:
        """
        Log the matching outcome of one appointment.

        Args:
            item: Classified calendar item
        """
        appointment_id = item.appointment.external_id
        form = item.confirmed_form
        if form is not None:
            self.logger.info(
                f"CONFIRMED - Appointment {appointment_id} - Form {form.id} "
                f"({form.status.value})"
            )
            return

        candidate = item.suggestion
        if candidate is None:
            self.logger.info(f"NO_MATCH - Appointment {appointment_id} - No form found")
            return

        log_parts = [
            f"SUGGESTED - Appointment {appointment_id}",
            f"Form {candidate.form.id}",
            f"Tier: {candidate.tier.value if candidate.tier else 'none'}",
            f"Field: {candidate.match_field}",
            f"Score: {ScoringEngine.score_label(candidate.score)}"
        ]
        if candidate.signals:
            log_parts.append(f"Signals: {', '.join(candidate.signals)}")

        self.logger.info(" - ".join(log_parts))

    def log_link_decision(self, result: LinkResult, action: str = 'accept') -> None:
        """
        Log a link write requested by a human.

        Args:
            result: Outcome of the write
            action: "accept" or "manual"
        """
        if result.ok:
            self.logger.info(
                f"LINK_{action.upper()} - Appointment {result.appointment_id} -> form {result.form_id}"
            )
        else:
            self.logger.warning(
                f"LINK_REJECTED - {action} - Appointment {result.appointment_id} -> "
                f"form {result.form_id}: {result.error}"
            )

    def log_session_summary(self, stats: ReconciliationStatistics) -> None:
        """
        Log summary statistics for a reconciliation pass.

        Args:
            stats: Pass statistics to log
        """
        session_duration = datetime.now() - self.session_start_time

        self.logger.info(f"RECONCILIATION_COMPLETE - Session duration: {session_duration}")
        self.logger.info(f"APPOINTMENTS: {stats.total_appointments}")
        self.logger.info(f"CONFIRMED: {stats.confirmed}")
        self.logger.info(f"SUGGESTED: {stats.suggested}")
        self.logger.info(f"UNMATCHED: {stats.unmatched}")
        self.logger.info(f"ORPHAN_FORMS: {stats.orphan_forms}")
        if stats.index_collisions:
            self.logger.info(f"KEY_COLLISIONS: {stats.index_collisions}")

        if stats.tier_counts:
            self.logger.info("TIER_DISTRIBUTION:")
            for tier, count in sorted(stats.tier_counts.items()):
                self.logger.info(f"  {tier}: {count}")


class ReconciliationReportingService:
    """Text reports for the front office, printed to stderr."""

    @staticmethod
    def generate_report(result: ReconciliationResult):
        """Print the full reconciliation report."""
        print("\n" + "=" * 70, file=sys.stderr)
        print("APPOINTMENT / FORM RECONCILIATION REPORT", file=sys.stderr)
        print("=" * 70, file=sys.stderr)

        ReconciliationReportingService._print_overall_statistics(result)
        ReconciliationReportingService._print_tier_distribution(result.statistics)
        ReconciliationReportingService._print_review_queue(result)

    @staticmethod
    def _print_overall_statistics(result: ReconciliationResult):
        stats = result.statistics
        print(f"\nCalendar: {result.calendar_status.value}", file=sys.stderr)
        print(f"Appointments: {stats.total_appointments:,}", file=sys.stderr)
        print(f"Confirmed: {stats.confirmed:,} ({stats.get_confirmed_rate():.1%})", file=sys.stderr)
        print(f"Awaiting confirmation: {stats.suggested:,}", file=sys.stderr)
        print(f"Without form: {stats.unmatched:,}", file=sys.stderr)
        print(f"Forms without appointment: {stats.orphan_forms:,}", file=sys.stderr)
        if stats.hidden_dated_forms:
            print(f"Dated forms hidden: {stats.hidden_dated_forms:,}", file=sys.stderr)
        if stats.broken_links:
            print(f"Broken links: {stats.broken_links:,}", file=sys.stderr)
        if stats.index_collisions:
            print(f"Forms sharing a match key: {stats.index_collisions:,}", file=sys.stderr)

    @staticmethod
    def _print_tier_distribution(stats: ReconciliationStatistics):
        if not stats.tier_counts:
            return
        print("\nTIER DISTRIBUTION:", file=sys.stderr)
        for tier, count in sorted(stats.tier_counts.items()):
            print(f"  {tier}: {count:,}", file=sys.stderr)

    @staticmethod
    def _print_review_queue(result: ReconciliationResult):
        queue: List[CalendarItem] = [
            item for item in result.merged_items
            if isinstance(item, CalendarItem) and item.state == ItemState.SUGGESTED and not item.skipped
        ]
        if not queue:
            return

        print(f"\nAWAITING CONFIRMATION ({len(queue)} items):", file=sys.stderr)
        print("-" * 50, file=sys.stderr)

        for i, item in enumerate(queue[:REVIEW_QUEUE_LIMIT], 1):
            candidate = item.suggestion
            print(f"{i:2d}. {item.appointment_date} {item.appointment_time:<5} "
                  f"{item.appointment.patient_name:<25} | "
                  f"Form: {candidate.form.id:<15} | "
                  f"Tier: {candidate.tier.value:<12} | "
                  f"Score: {ScoringEngine.score_label(candidate.score)}", file=sys.stderr)

        if len(queue) > REVIEW_QUEUE_LIMIT:
            print(f"... and {len(queue) - REVIEW_QUEUE_LIMIT} more items", file=sys.stderr)

    @staticmethod
    def print_manual_pick(pick: ManualPick):
        """Print the ranked manual candidates for one appointment."""
        print(f"\nCANDIDATES FOR {pick.appointment_id}:", file=sys.stderr)
        if not pick.candidates:
            print("  No matching forms", file=sys.stderr)
            return
        for candidate in pick.candidates:
            marker = '*' if candidate.form.id == pick.preselected_form_id else ' '
            print(f" {marker} {candidate.form.id:<15} {candidate.form.patient_name:<25} "
                  f"{ScoringEngine.score_label(candidate.score):>5} "
                  f"({', '.join(candidate.signals)})", file=sys.stderr)

    @staticmethod
    def print_session_summary(result: ReconciliationResult):
        """Print final session summary."""
        stats = result.statistics
        print("\nReconciliation complete!", file=sys.stderr)
        print(f"Match rate: {stats.get_match_rate():.1%} | "
              f"Confirmed rate: {stats.get_confirmed_rate():.1%}", file=sys.stderr)
