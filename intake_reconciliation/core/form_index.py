"""
Form lookup index for tiered matching.

Every form is stored under each of its tier keys so that a tier is a single
dictionary lookup. When several forms share a key, the strongest one is
kept: a submitted or processed form beats a draft, then the most recently
submitted form wins.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from .data_models import FormRecord, MatchTier
from ..utils.key_builders import create_composite_keys

INDEXED_TIERS = (
    MatchTier.APPOINTMENT,
    MatchTier.EMAIL,
    MatchTier.PHONE,
    MatchTier.NAME_DOB,
    MatchTier.NAME,
)


def _precedence(form: FormRecord) -> Tuple[bool, str]:
    return (not form.is_draft, form.recency_key)


class FormIndex:
    """Exact-key lookup tables, one per matching tier."""

    def __init__(self, forms: Iterable[FormRecord] = ()):
        self.logger = logging.getLogger(__name__)
        self._tables: Dict[MatchTier, Dict[str, FormRecord]] = {
            tier: {} for tier in INDEXED_TIERS
        }
        self._collisions = 0
        for form in forms:
            self.add(form)

    def add(self, form: FormRecord):
        """Store a form under all of its non-empty tier keys."""
        keys = create_composite_keys(
            form.patient_name, form.email, form.phone, form.dob,
            form.appointment_date, form.appointment_time
        )

        for tier in INDEXED_TIERS:
            key = keys[tier.value]
            if not key:
                continue

            table = self._tables[tier]
            existing = table.get(key)
            if existing is None:
                table[key] = form
                continue

            self._collisions += 1
            if _precedence(form) > _precedence(existing):
                self.logger.debug(
                    f"Index {tier.value}: form {form.id} replaces {existing.id} "
                    f"for key '{key}'"
                )
                table[key] = form

    def lookup(self, tier: MatchTier, key: str) -> Optional[FormRecord]:
        """Return the form indexed under a tier key, if any."""
        if not key:
            return None
        return self._tables[tier].get(key)

    @property
    def collisions(self) -> int:
        """Number of key collisions resolved while building the index."""
        return self._collisions

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())
