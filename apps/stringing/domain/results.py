"""
Typed outcomes of the contended operations.

Slot commits and pass debits fail routinely under contention, so they
return one of these results instead of raising. The submission handler
branches on ``failure`` kinds, never on messages or HTTP statuses.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from enum import Enum
from typing import Any, Optional


class SlotFailure(str, Enum):
    CONFLICT = "slot_conflict"
    CLOSED = "closed"
    OUT_OF_WINDOW = "out_of_window"
    INVALID_TIME = "invalid_time"


@dataclass(frozen=True)
class SlotCommitResult:
    commitment_id: Optional[int] = None
    failure: Optional[SlotFailure] = None
    replayed: bool = False

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, commitment_id: int, *, replayed: bool = False) -> "SlotCommitResult":
        return cls(commitment_id=commitment_id, replayed=replayed)

    @classmethod
    def failed(cls, failure: SlotFailure) -> "SlotCommitResult":
        return cls(failure=failure)


class DebitFailure(str, Enum):
    INSUFFICIENT_BALANCE = "insufficient_balance"
    GRANT_EXPIRED = "grant_expired"
    RENTAL_PREPAID = "rental_prepaid"


@dataclass(frozen=True)
class DebitResult:
    consumption_id: Optional[int] = None
    remaining: Optional[int] = None
    failure: Optional[DebitFailure] = None
    replayed: bool = False

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, consumption_id: int, remaining: int, *, replayed: bool = False) -> "DebitResult":
        return cls(consumption_id=consumption_id, remaining=remaining, replayed=replayed)

    @classmethod
    def failed(cls, failure: DebitFailure) -> "DebitResult":
        return cls(failure=failure)


class FailureKind(str, Enum):
    BLOCKED = "blocked"
    VALIDATION = "validation"
    SLOT_CONFLICT = "slot_conflict"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    GRANT_EXPIRED = "grant_expired"
    UNAVAILABLE = "unavailable"


@dataclass
class SubmissionResult:
    """Outcome of one ``submit`` call.

    ``step``/``field`` point the client at the gate to re-enter;
    ``availability`` carries the refreshed slot view after a conflict.
    """

    application_id: Optional[str] = None
    failure: Optional[FailureKind] = None
    message: str = ""
    step: Optional[int] = None
    field: Optional[str] = None
    retryable: bool = False
    replayed: bool = False
    availability: Optional[dict] = None
    extra: dict[str, Any] = dc_field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.failure is None

    def to_payload(self) -> dict[str, Any]:
        if self.ok:
            return {"application_id": self.application_id, "replayed": self.replayed}
        payload: dict[str, Any] = {
            "code": self.failure.value,
            "detail": self.message,
            "retryable": self.retryable,
        }
        if self.application_id:
            payload["application_id"] = self.application_id
        if self.step is not None:
            payload["step"] = self.step
        if self.field:
            payload["field"] = self.field
        if self.availability is not None:
            payload["availability"] = self.availability
        payload.update(self.extra)
        return payload
