"""
Reference-data endpoints: the lookup snapshot, the stage schema and the
selectable charged entities per charge option.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from visadesk.models import TOTAL_STAGES, ChargeOption
from visadesk.service import CaseService
from visadesk.stages import STAGES, definition_for

from .deps import get_service

router = APIRouter(tags=["reference"])


@router.get("/lookups")
def get_lookups(svc: CaseService = Depends(get_service)):
    return svc.lookups.start().to_dict()


@router.post("/lookups/refresh")
def refresh_lookups(svc: CaseService = Depends(get_service)):
    """Reload the session snapshot from the store and return its sizes."""
    return svc.lookups.refresh().counts()


@router.get("/stages", response_model=List[Dict[str, Any]])
def list_stages():
    return [s.describe() for s in STAGES]


@router.get("/stages/{stage}/entities")
def stage_entities(
    stage: int = Path(..., ge=1, le=TOTAL_STAGES),
    charge_option: int = Query(..., ge=1, le=3, description="1 = account, 2 = supplier, 3 = credit line"),
    svc: CaseService = Depends(get_service),
):
    """Payer rows selectable for *charge_option* on a chargeable stage."""
    if not definition_for(stage).chargeable:
        raise HTTPException(status_code=422, detail=f"stage {stage} has no charge")
    return [
        {"id": e.entity_id, "name": e.name, "charge_option": int(e.category)}
        for e in svc.charge_entities(ChargeOption(charge_option))
    ]
