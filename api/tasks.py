"""
Work-queue endpoints: cases waiting at a stage, per-stage badge counts
and the Emirates-ID card custody queues.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query

from visadesk.models import TOTAL_STAGES, Case, CustodyStatus
from visadesk.service import CaseService

from .deps import get_service

router = APIRouter(tags=["tasks"])


def _summary(case: Case, precision: int) -> Dict[str, Any]:
    return {
        "case_id": case.case_id,
        "passenger_name": case.passenger_name,
        "passport_number": case.passport_number,
        "progress": case.progress,
        "next_stage": case.next_stage,
        "percent_complete": case.percent_complete(precision),
        "custody_status": case.custody.status.value,
    }


@router.get("/tasks", response_model=List[Dict[str, Any]])
def list_tasks(
    stage: int = Query(..., ge=1, le=TOTAL_STAGES),
    svc: CaseService = Depends(get_service),
):
    return [_summary(c, svc.config.percent_precision) for c in svc.list_tasks(stage)]


@router.get("/tasks/counts")
def task_counts(svc: CaseService = Depends(get_service)):
    return svc.stage_counts()


@router.get("/custody", response_model=List[Dict[str, Any]])
def custody_tasks(
    status: CustodyStatus = Query(CustodyStatus.PENDING),
    svc: CaseService = Depends(get_service),
):
    return [_summary(c, svc.config.percent_precision) for c in svc.custody_tasks(status)]
