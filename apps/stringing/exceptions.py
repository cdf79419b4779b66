"""Exceptions raised by the stringing workflow."""

from __future__ import annotations


class StringingError(Exception):
    """Base error for the stringing application workflow."""

    code = "stringing_error"

    def __init__(self, message: str = "", **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra


class EntitlementBlocked(StringingError):
    """The order or rental has no remaining service lines (or they are unknown)."""

    code = "entitlement_blocked"


class ServiceNotEligible(StringingError):
    """The order contains nothing that can be strung."""

    code = "service_not_eligible"


class DraftNotFound(StringingError):
    code = "not_found"


class ApplicationNotEditable(StringingError):
    """Raised when a non-draft application is modified."""

    code = "not_editable"


class CollaboratorUnavailable(StringingError):
    """An order, rental, schedule or ledger lookup failed at the storage level."""

    code = "unavailable"
