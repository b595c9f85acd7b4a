"""
Persistent appointment -> form links.

A link is written only when a human confirms a match and is authoritative
from then on. Each store guarantees that a form is linked to at most one
appointment: writing a link first clears any other appointment pointing at
the same form, and writes are serialized through a lock.
"""

import csv
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from ..exceptions import LinkStoreError

LINK_FIELDNAMES = ['appointment_id', 'form_id']


class LinkStore:
    """Interface of a link store."""

    def __init__(self):
        self._write_lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def get(self, appointment_id: str) -> Optional[str]:
        """Return the form linked to an appointment, if any."""
        raise NotImplementedError

    def snapshot(self) -> Dict[str, str]:
        """Return a copy of every appointment id -> form id link."""
        raise NotImplementedError

    def set(self, appointment_id: str, form_id: str) -> Optional[str]:
        """
        Link an appointment to a form.

        Any other appointment previously linked to the form is cleared in the
        same critical section, so the last writer wins.

        Returns:
            The appointment id that lost the form, if any
        """
        with self._write_lock:
            previous_owner = self._write(appointment_id, form_id)

        if previous_owner:
            self.logger.warning(
                f"LINK_REASSIGNED - Form {form_id} moved from appointment "
                f"{previous_owner} to {appointment_id}"
            )
        self.logger.info(f"LINKED - Appointment {appointment_id} -> form {form_id}")
        return previous_owner

    def _write(self, appointment_id: str, form_id: str) -> Optional[str]:
        raise NotImplementedError


class InMemoryLinkStore(LinkStore):
    """Link store kept in process memory."""

    def __init__(self, links: Optional[Dict[str, str]] = None):
        super().__init__()
        self._links: Dict[str, str] = dict(links or {})

    def get(self, appointment_id: str) -> Optional[str]:
        return self._links.get(appointment_id)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._links)

    def _write(self, appointment_id: str, form_id: str) -> Optional[str]:
        links = dict(self._links)
        previous_owner = None
        for other_id, other_form in list(links.items()):
            if other_form == form_id and other_id != appointment_id:
                del links[other_id]
                previous_owner = other_id

        links[appointment_id] = form_id
        # Swapped in only once persisted.
        self._persist(links)
        self._links = links
        return previous_owner

    def _persist(self, links: Dict[str, str]):
        """Hook for subclasses that keep links on disk."""


class CsvLinkStore(InMemoryLinkStore):
    """
    Link store persisted to a two-column CSV file.

    The file is rewritten atomically after every write.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> Dict[str, str]:
        links: Dict[str, str] = {}
        if not self.path.exists():
            return links

        try:
            with open(self.path, 'r', newline='', encoding='utf-8') as file:
                reader = csv.DictReader(file)
                for row in reader:
                    appointment_id = (row.get('appointment_id') or '').strip()
                    form_id = (row.get('form_id') or '').strip()
                    if not appointment_id or not form_id:
                        logging.getLogger(__name__).warning(f"Skipping incomplete link row: {row}")
                        continue
                    links[appointment_id] = form_id
        except OSError as e:
            raise LinkStoreError(f"Cannot read link file '{self.path}': {e}") from e

        return links

    def _persist(self, links: Dict[str, str]):
        directory = self.path.parent if str(self.path.parent) else Path('.')
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.links-', suffix='.csv')
            with os.fdopen(fd, 'w', newline='', encoding='utf-8') as file:
                writer = csv.DictWriter(file, fieldnames=LINK_FIELDNAMES)
                writer.writeheader()
                for appointment_id, form_id in sorted(links.items()):
                    writer.writerow({'appointment_id': appointment_id, 'form_id': form_id})
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise LinkStoreError(f"Cannot write link file '{self.path}': {e}") from e
