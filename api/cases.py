"""
Case endpoints: read a case, submit stage updates, cancel, hold and
card-custody updates.

Rejected updates surface as :class:`visadesk.errors.RejectedUpdate`
(raised by ``Result.unwrap``) and are turned into HTTP errors by the
handlers registered in :pymod:`api.main`.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path
from pydantic import Base64Bytes, BaseModel, Field

from visadesk.lifecycle import next_stage
from visadesk.models import TOTAL_STAGES, Attachment, Case, CustodyStatus
from visadesk.service import CaseService
from visadesk.stages import definition_for

from .deps import get_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cases", tags=["cases"])


# ---------- request bodies ----------
class AttachmentIn(BaseModel):
    field: str
    filename: str
    content: Base64Bytes = Field(b"", description="Base64-encoded file body")
    content_type: str = "application/octet-stream"

    def to_attachment(self) -> Attachment:
        return Attachment(self.field, self.filename, self.content, self.content_type)


class StageUpdateIn(BaseModel):
    fields: Dict[str, Any] = Field(default_factory=dict)
    charge_option: Optional[int] = None
    charged_entity_id: Optional[int] = None
    attachment: Optional[AttachmentIn] = None
    mark_complete: bool = False


class CancelIn(BaseModel):
    cancellation_charge: Decimal = Decimal("0")
    remarks: str = ""


class HoldIn(BaseModel):
    on_hold: bool


class CustodyIn(BaseModel):
    status: CustodyStatus
    fields: Dict[str, Any] = Field(default_factory=dict)
    attachments: List[AttachmentIn] = Field(default_factory=list)


# ---------- projection ----------
def case_view(case: Case, precision: int = 0) -> Dict[str, Any]:
    """Case document plus the derived next stage and completion percentage."""
    data = case.to_dict()
    data["next_stage"] = next_stage(case)
    data["percent_complete"] = case.percent_complete(precision)
    return data


# ---------- GET /cases/{case_id} ----------
@router.get("/{case_id}")
def get_case(case_id: int, svc: CaseService = Depends(get_service)):
    return case_view(svc.get_case(case_id), svc.config.percent_precision)


# ---------- GET /cases/{case_id}/export ----------
@router.get("/{case_id}/export")
def export_case(case_id: int, svc: CaseService = Depends(get_service)):
    """
    Flat view of every touched stage under the persisted column names,
    charge-option / charged-entity columns included.
    """
    case = svc.get_case(case_id)
    row: Dict[str, Any] = {"case_id": case.case_id, "progress": case.progress}
    for n, rec in sorted(case.stages.items()):
        row.update(definition_for(n).export(rec))
    return row


# ---------- POST /cases/{case_id}/stages/{stage} ----------
@router.post("/{case_id}/stages/{stage}")
def submit_stage(
    case_id: int,
    body: StageUpdateIn,
    stage: int = Path(..., ge=1, le=TOTAL_STAGES),
    svc: CaseService = Depends(get_service),
):
    result = svc.submit_stage_update(
        case_id,
        stage,
        body.fields,
        charge_option=body.charge_option,
        charged_entity_id=body.charged_entity_id,
        attachment=body.attachment.to_attachment() if body.attachment else None,
        mark_complete=body.mark_complete,
    )
    return case_view(result.unwrap(), svc.config.percent_precision)


# ---------- POST /cases/{case_id}/cancel ----------
@router.post("/{case_id}/cancel")
def cancel_case(case_id: int, body: CancelIn, svc: CaseService = Depends(get_service)):
    result = svc.cancel_case(case_id, body.cancellation_charge, body.remarks)
    return case_view(result.unwrap(), svc.config.percent_precision)


# ---------- POST /cases/{case_id}/hold ----------
@router.post("/{case_id}/hold")
def set_hold(case_id: int, body: HoldIn, svc: CaseService = Depends(get_service)):
    result = svc.set_hold(case_id, body.on_hold)
    return case_view(result.unwrap(), svc.config.percent_precision)


# ---------- POST /cases/{case_id}/custody ----------
@router.post("/{case_id}/custody")
def submit_custody(case_id: int, body: CustodyIn, svc: CaseService = Depends(get_service)):
    result = svc.submit_custody_update(
        case_id,
        body.status,
        body.fields,
        [a.to_attachment() for a in body.attachments],
    )
    return case_view(result.unwrap(), svc.config.percent_precision)
