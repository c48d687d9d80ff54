"""
visadesk.custody
================

Emirates-ID card custody: a three-state pipeline run alongside the main
stages for cases that have completed the Emirates-ID typing stage.

Exactly one edge leaves each state and there is no way back; correcting
a mistaken *Received* is an administrative action outside this module.
"""

from __future__ import annotations

import copy
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ErrorKind, Result
from .models import Attachment, Case, CustodyStatus
from .stages import field_error

FRONT_FILE = "emiratesIDFrontFile"
BACK_FILE = "emiratesIDBackFile"

# ---------------------------------------------------------------------
# Allowed transitions: source status → set[valid target statuses]
# ---------------------------------------------------------------------
RULES = {
    CustodyStatus.PENDING:  {CustodyStatus.RECEIVED},
    CustodyStatus.RECEIVED: {CustodyStatus.DELIVERED},
}


class ReceivedFields(BaseModel):
    """Identity-document fields read off the physical card."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)

    eid_number: str = Field(alias="eidNumber", min_length=1)
    eid_expiry: date = Field(alias="eidExpiryDate")
    passenger_name: str = Field(min_length=1)
    dob: date
    gender: Optional[str] = None
    occupation: Optional[int] = None
    establishment: Optional[int] = Field(None, alias="establishmentName")


class DeliveredFields(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)

    delivered_at: Optional[datetime] = None
    recipient: Optional[str] = None


def advance_custody(
    case: Case,
    target: CustodyStatus,
    fields: Dict[str, Any],
    attachments: Iterable[Attachment] = (),
    min_progress: int = 7,
    now: Optional[datetime] = None,
) -> Result[Case]:
    """
    Move the card-custody state of *case* to *target*, returning an updated copy.

    Examples
    --------
    >>> advance_custody(case, CustodyStatus.DELIVERED, {}).error.kind
    <ErrorKind.ILLEGAL_TRANSITION: 'illegal_transition'>
    """
    if case.cancelled:
        return Result.failure(ErrorKind.CASE_TERMINAL)
    if case.on_hold:
        return Result.failure(ErrorKind.CASE_ON_HOLD)
    if case.progress < min_progress:
        return Result.failure(ErrorKind.NOT_ELIGIBLE, detail=f"stage {min_progress} not completed")

    current = case.custody.status
    if target not in RULES.get(current, set()):
        return Result.failure(ErrorKind.ILLEGAL_TRANSITION, detail=f"{current.name} → {target.name}")

    supplied = {k: v for k, v in fields.items() if v is not None and v != ""}
    files = list(attachments)

    if target is CustodyStatus.RECEIVED:
        try:
            parsed = ReceivedFields.model_validate(supplied)
        except ValidationError as exc:
            return Result(error=field_error(exc))
        stored_files: Dict[str, str] = {}
        for att in files:
            if att.field not in (FRONT_FILE, BACK_FILE) or att.field in stored_files:
                return Result.failure(ErrorKind.UNKNOWN_FIELD, att.field)
            stored_files[att.field] = att.filename

        updated = copy.deepcopy(case)
        updated.custody.values.update(parsed.model_dump(mode="json", exclude_none=True))
        updated.custody.attachments.update(stored_files)
        # the card is authoritative for the subject's identity fields
        updated.passenger_name = parsed.passenger_name
        updated.dob = parsed.dob
        if parsed.gender:
            updated.gender = parsed.gender
    else:
        if files:
            return Result.failure(ErrorKind.UNKNOWN_FIELD, files[0].field)
        try:
            parsed = DeliveredFields.model_validate(supplied)
        except ValidationError as exc:
            return Result(error=field_error(exc))
        updated = copy.deepcopy(case)
        updated.custody.values["delivered_at"] = (parsed.delivered_at or now or datetime.now()).isoformat()
        if parsed.recipient:
            updated.custody.values["recipient"] = parsed.recipient

    updated.custody.status = target
    return Result.success(updated)
