"""
visadesk.lifecycle
==================

Stage-transition engine for a :class:`visadesk.models.Case`.

:pyfunc:`apply_update` validates a proposed stage update against the
stage schema and the charge resolver and, only if every check passes,
returns an updated **copy** of the case.  The input case is never
mutated, so a rejected update leaves no trace.

Check order:

1. cancelled → ``CASE_TERMINAL``
2. on hold → ``CASE_ON_HOLD``
3. completing stage N needs stage N-1 completed → ``PRIOR_STAGE_INCOMPLETE``
4. fields must belong to the stage and parse → ``UNKNOWN_FIELD`` / ``INVALID_VALUE``
5. on completion every required field is present → ``MISSING_FIELD``
6. charge option / charged entity → ``MISSING_CHARGE_OPTION``,
   ``MISSING_FIELD``, ``INVALID_CHARGE_ENTITY``
7. on completion a mandatory attachment exists → ``MISSING_ATTACHMENT``
"""

from __future__ import annotations

import copy
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from .charges import validate_entity
from .errors import ErrorKind, Result
from .lookups import LookupSnapshot
from .models import (
    TOTAL_STAGES,
    Attachment,
    Cancellation,
    Case,
    ChargedEntityRef,
    ChargeOption,
    StageRecord,
)
from .stages import Stage, definition_for, field_error


def contiguous_progress(case: Case) -> int:
    """Length of the longest run of completed stages starting at stage 1."""
    n = 0
    while n < TOTAL_STAGES and case.is_stage_completed(n + 1):
        n += 1
    return n


def next_stage(case: Case) -> Optional[int]:
    """The stage a caller may act on next, or None for terminal / finished cases."""
    if case.cancelled:
        return None
    return case.next_stage


def apply_update(
    case: Case,
    stage_number: int,
    fields: Mapping[str, Any],
    lookups: LookupSnapshot,
    charge_option: Optional[ChargeOption] = None,
    charged_entity_id: Optional[int] = None,
    attachment: Optional[Attachment] = None,
    mark_complete: bool = False,
) -> Result[Case]:
    """
    Validate and apply one stage update.

    Examples
    --------
    >>> res = apply_update(case, 2, {"insuranceCost": 120}, lookups, mark_complete=True)
    >>> res.error.kind
    <ErrorKind.PRIOR_STAGE_INCOMPLETE: 'prior_stage_incomplete'>
    """
    if case.cancelled:
        return Result.failure(ErrorKind.CASE_TERMINAL)
    if case.on_hold:
        return Result.failure(ErrorKind.CASE_ON_HOLD)

    stage = definition_for(stage_number)

    if mark_complete and not case.is_stage_completed(stage_number - 1):
        return Result.failure(ErrorKind.PRIOR_STAGE_INCOMPLETE, detail=f"stage {stage_number - 1}")

    try:
        incoming = stage.parse(_supplied(fields)).persisted()
    except ValidationError as exc:
        return Result(error=field_error(exc))

    existing = case.stages.get(stage_number) or StageRecord(stage_number)
    merged: Dict[str, Any] = {**existing.values, **incoming}

    if mark_complete:
        for name in stage.required_fields:
            if merged.get(name) in (None, ""):
                return Result.failure(ErrorKind.MISSING_FIELD, name)

    charge = _resolve_charge(stage, existing, charge_option, charged_entity_id, lookups, mark_complete)
    if not charge.ok:
        return charge

    if attachment is not None and attachment.field != stage.file_field:
        return Result.failure(ErrorKind.UNKNOWN_FIELD, attachment.field)
    if mark_complete and stage.file_required and attachment is None and not existing.attachment:
        return Result.failure(ErrorKind.MISSING_ATTACHMENT, stage.file_field)

    # -- commit ------------------------------------------------------------
    updated = copy.deepcopy(case)
    rec = updated.record(stage_number)
    rec.values = merged
    rec.charged_entity = charge.value
    if attachment is not None:
        rec.attachment = attachment.filename
    # completion is sticky: re-editing a completed stage keeps it completed
    rec.completed = rec.completed or mark_complete
    updated.progress = max(updated.progress, contiguous_progress(updated))
    return Result.success(updated)


def cancel(case: Case, charge: Any, remarks: str, now: Optional[datetime] = None) -> Result[Case]:
    """
    Mark *case* terminal.  Remarks are mandatory; cancelling an already
    cancelled case returns it unchanged.
    """
    if case.cancelled:
        return Result.success(copy.deepcopy(case))
    if not remarks or not remarks.strip():
        return Result.failure(ErrorKind.MISSING_FIELD, "remarks")
    try:
        amount = Decimal(str(charge if charge is not None else 0))
    except InvalidOperation:
        return Result.failure(ErrorKind.INVALID_VALUE, "cancellation_charge")
    if not amount.is_finite() or amount < 0:
        return Result.failure(ErrorKind.INVALID_VALUE, "cancellation_charge")

    updated = copy.deepcopy(case)
    updated.cancelled = True
    updated.cancellation = Cancellation(amount, remarks.strip(), now or datetime.now())
    return Result.success(updated)


def set_hold(case: Case, on_hold: bool) -> Result[Case]:
    """Suspend or resume stage mutation; not allowed once cancelled."""
    if case.cancelled:
        return Result.failure(ErrorKind.CASE_TERMINAL)
    updated = copy.deepcopy(case)
    updated.on_hold = bool(on_hold)
    return Result.success(updated)


# ---------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------
def _supplied(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop nulls and blank strings; they mean "not supplied"."""
    out = {}
    for key, value in fields.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        out[key] = value
    return out


def _resolve_charge(
    stage: Stage,
    existing: StageRecord,
    charge_option: Optional[ChargeOption],
    charged_entity_id: Optional[int],
    lookups: LookupSnapshot,
    mark_complete: bool,
) -> Result[Optional[ChargedEntityRef]]:
    """Work out the charged-entity reference the record should hold after this update."""
    if not stage.chargeable:
        if charge_option is not None or charged_entity_id is not None:
            return Result.failure(ErrorKind.UNKNOWN_FIELD, "chargeOption")
        return Result.success(None)

    opt_col, ent_col = stage.charge_columns
    stored = existing.charged_entity

    if charge_option is not None:
        try:
            option = ChargeOption(int(charge_option))
        except (TypeError, ValueError):
            return Result.failure(ErrorKind.INVALID_VALUE, opt_col)
        entity_id = charged_entity_id
        if entity_id is None and stored is not None and stored.option is option:
            entity_id = stored.entity_id
    elif charged_entity_id is not None:
        if stored is None:
            return Result.failure(ErrorKind.MISSING_CHARGE_OPTION)
        option, entity_id = stored.option, charged_entity_id
    elif stored is not None:
        if not mark_complete:
            return Result.success(stored)
        option, entity_id = stored.option, stored.entity_id
    elif mark_complete:
        return Result.failure(ErrorKind.MISSING_CHARGE_OPTION)
    else:
        return Result.success(None)

    if entity_id is None:
        return Result.failure(ErrorKind.MISSING_FIELD, ent_col)
    try:
        ref = ChargedEntityRef(option, int(entity_id))
    except (TypeError, ValueError):
        return Result.failure(ErrorKind.INVALID_VALUE, ent_col)

    check = validate_entity(ref, lookups)
    if not check.ok:
        return Result.failure(ErrorKind.INVALID_CHARGE_ENTITY, ent_col, str(ref))
    return Result.success(ref)
