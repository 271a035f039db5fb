# schoolhub/api/routers/period_slots.py - Period slot routes
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional

from schoolhub.core.db import get_db
from schoolhub.api.deps.tenancy import require_tenant, require_tenant_admin
from schoolhub.api.utils import domain_errors, parse_uuid
from schoolhub.services.academic_service import AcademicService
from schoolhub.schemas.academic import PeriodSlotCreate, PeriodSlotOut

router = APIRouter()


@router.post("", response_model=PeriodSlotOut, status_code=status.HTTP_201_CREATED)
async def create_period_slot(
    period_data: PeriodSlotCreate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    with domain_errors():
        return AcademicService(db).create_period(
            ctx["tenant_id"],
            branch_id=period_data.branch_id,
            name=period_data.name,
            start_time=period_data.start_time,
            end_time=period_data.end_time,
            period_number=period_data.period_number,
        )


@router.get("", response_model=List[PeriodSlotOut])
async def list_period_slots(
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db),
    branch_id: Optional[str] = Query(None)
):
    """Active period slots ordered by start time"""
    return AcademicService(db).list_periods(ctx["tenant_id"], parse_uuid(branch_id, "branch"))


@router.delete("/{period_id}", response_model=PeriodSlotOut)
async def deactivate_period_slot(
    period_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Deactivate a period slot; its attendance history is kept"""
    period_uuid = parse_uuid(period_id, "period")
    with domain_errors():
        return AcademicService(db).deactivate_period(ctx["tenant_id"], period_uuid)
