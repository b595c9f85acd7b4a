"""Exceptions raised by the reconciliation engine."""


class ReconciliationError(Exception):
    """Base class for reconciliation failures."""


class LinkValidationError(ReconciliationError, ValueError):
    """An appointment or form identifier was rejected before any write."""


class LinkStoreError(ReconciliationError):
    """The link store could not persist or read a link."""


class FormStoreError(ReconciliationError):
    """The form store could not be queried."""
