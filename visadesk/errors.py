"""
visadesk.errors
===============

Validation failures are *values*: every workflow operation returns a
:class:`Result` that either carries the updated case or a
:class:`TransitionError`.  Only transport-level problems (missing case,
concurrent write) are raised, as :class:`GatewayError` subclasses, so a
caller can tell "needs different input" from "system unavailable".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    CASE_TERMINAL = "case_terminal"
    CASE_ON_HOLD = "case_on_hold"
    PRIOR_STAGE_INCOMPLETE = "prior_stage_incomplete"
    MISSING_FIELD = "missing_field"
    MISSING_CHARGE_OPTION = "missing_charge_option"
    MISSING_ATTACHMENT = "missing_attachment"
    INVALID_CHARGE_ENTITY = "invalid_charge_entity"
    UNKNOWN_FIELD = "unknown_field"
    INVALID_VALUE = "invalid_value"
    ILLEGAL_TRANSITION = "illegal_transition"
    NOT_ELIGIBLE = "not_eligible"

    def __str__(self) -> str:
        return self.name


_MESSAGES = {
    ErrorKind.CASE_TERMINAL: "case is cancelled",
    ErrorKind.CASE_ON_HOLD: "case is on hold",
    ErrorKind.PRIOR_STAGE_INCOMPLETE: "previous stage is not completed",
    ErrorKind.MISSING_FIELD: "required field is missing",
    ErrorKind.MISSING_CHARGE_OPTION: "charge option is required",
    ErrorKind.MISSING_ATTACHMENT: "attachment is required",
    ErrorKind.INVALID_CHARGE_ENTITY: "charged entity does not belong to the charge option",
    ErrorKind.UNKNOWN_FIELD: "field is not part of this stage",
    ErrorKind.INVALID_VALUE: "invalid value",
    ErrorKind.ILLEGAL_TRANSITION: "illegal transition",
    ErrorKind.NOT_ELIGIBLE: "case is not eligible",
}


@dataclass(frozen=True)
class TransitionError:
    """A rejected update; *field* names the offending input where there is one."""
    kind: ErrorKind
    field: Optional[str] = None
    detail: Optional[str] = None

    @property
    def message(self) -> str:
        msg = _MESSAGES[self.kind]
        if self.field:
            msg = f"{msg}: {self.field}"
        if self.detail:
            msg = f"{msg} ({self.detail})"
        return msg

    @property
    def retryable(self) -> bool:
        """True when resubmitting unchanged input may succeed later."""
        return self.kind is ErrorKind.CASE_ON_HOLD

    @property
    def lookup_dependent(self) -> bool:
        """True when the failure may be caused by a stale lookup snapshot."""
        return self.kind is ErrorKind.INVALID_CHARGE_ENTITY

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either ``value`` (success) or ``error`` (rejection)."""
    value: Optional[T] = None
    error: Optional[TransitionError] = None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, field: Optional[str] = None,
                detail: Optional[str] = None) -> "Result[T]":
        return cls(error=TransitionError(kind, field, detail))

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise :class:`RejectedUpdate`."""
        if self.error is not None:
            raise RejectedUpdate(self.error)
        return self.value


class RejectedUpdate(Exception):
    """Raised only by :pymeth:`Result.unwrap` on a failed result."""

    def __init__(self, error: TransitionError):
        super().__init__(error.message)
        self.error = error


# ---------------------------------------------------------------------------
# Transport-level errors
# ---------------------------------------------------------------------------
class GatewayError(Exception):
    """Base class for persistence / service-boundary failures."""


class CaseNotFound(GatewayError, KeyError):
    def __init__(self, case_id: int):
        super().__init__(case_id)
        self.case_id = case_id

    def __str__(self) -> str:
        return f"case {self.case_id} not found"


class ConcurrentUpdateError(GatewayError):
    """The case was saved by someone else since it was loaded."""

    def __init__(self, case_id: int, expected: int, actual: int):
        super().__init__(f"case {case_id}: expected version {expected}, store has {actual}")
        self.case_id = case_id
        self.expected = expected
        self.actual = actual
