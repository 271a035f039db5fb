# schoolhub/api/routers/staff_attendance.py - Staff check-in/out, HR marking and regularization routes
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, Any, List, Optional
from uuid import UUID

from schoolhub.core.db import get_db
from schoolhub.api.deps.tenancy import require_tenant, require_tenant_admin, is_tenant_admin
from schoolhub.api.utils import domain_errors, parse_date, parse_uuid
from schoolhub.repositories.attendance import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from schoolhub.repositories.staff_attendance import StaffAttendanceFilter
from schoolhub.services.staff_attendance_service import StaffAttendanceService
from schoolhub.schemas.staff_attendance import (
    CheckInIn,
    CheckOutIn,
    MarkStaffAttendanceIn,
    MonthlySummaryOut,
    RegularizationOut,
    RegularizationRejectIn,
    RegularizationRequestIn,
    StaffAttendanceListOut,
    StaffAttendanceOut,
    StaffSettingsOut,
    StaffSettingsUpdateIn,
)

router = APIRouter()


def _parse_cursor(cursor: Optional[str]) -> Optional[UUID]:
    if not cursor:
        return None
    try:
        return UUID(cursor)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid cursor")


def _listing(service: StaffAttendanceService, filters: StaffAttendanceFilter) -> StaffAttendanceListOut:
    with domain_errors():
        records, next_cursor, total = service.list_attendance(filters)
    return StaffAttendanceListOut(
        attendance=[StaffAttendanceOut.model_validate(r) for r in records],
        next_cursor=str(next_cursor) if next_cursor else None,
        has_more=next_cursor is not None,
        total=total,
    )


def _month_or_current(year: Optional[int], month: Optional[int]):
    today = datetime.utcnow().date()
    return year or today.year, month or today.month


# Self-service

@router.post("/check-in", response_model=StaffAttendanceOut)
async def check_in(
    check_in_data: CheckInIn,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Record the caller's arrival for today; lateness comes from the branch work hours"""
    with domain_errors():
        return StaffAttendanceService(db).check_in(
            ctx["tenant_id"],
            ctx["user"],
            half_day_type=check_in_data.half_day_type,
            remarks=check_in_data.remarks,
            branch_id=check_in_data.branch_id,
        )


@router.post("/check-out", response_model=StaffAttendanceOut)
async def check_out(
    check_out_data: CheckOutIn,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    with domain_errors():
        return StaffAttendanceService(db).check_out(ctx["tenant_id"], ctx["user"], remarks=check_out_data.remarks)


@router.get("/my", response_model=StaffAttendanceListOut)
async def my_attendance(
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    cursor: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    filters = StaffAttendanceFilter(
        tenant_id=ctx["tenant_id"],
        user_id=ctx["user"].id,
        date_from=parse_date(date_from, "date_from"),
        date_to=parse_date(date_to, "date_to"),
        cursor=_parse_cursor(cursor),
        limit=limit,
    )
    return _listing(StaffAttendanceService(db), filters)


@router.get("/my/today", response_model=Optional[StaffAttendanceOut])
async def my_today(
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Today's record, or null before the first check-in"""
    return StaffAttendanceService(db).get_today(ctx["tenant_id"], ctx["user"].id)


@router.get("/my/summary", response_model=MonthlySummaryOut)
async def my_summary(
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    year, month = _month_or_current(year, month)
    with domain_errors():
        return StaffAttendanceService(db).monthly_summary(ctx["tenant_id"], ctx["user"].id, year, month)


# HR

@router.get("", response_model=StaffAttendanceListOut)
async def list_staff_attendance(
    user_id: Optional[str] = Query(None),
    branch_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    cursor: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    filters = StaffAttendanceFilter(
        tenant_id=ctx["tenant_id"],
        user_id=parse_uuid(user_id, "user"),
        branch_id=parse_uuid(branch_id, "branch"),
        status=status_filter.strip().lower() if status_filter else None,
        date_from=parse_date(date_from, "date_from"),
        date_to=parse_date(date_to, "date_to"),
        cursor=_parse_cursor(cursor),
        limit=limit,
    )
    return _listing(StaffAttendanceService(db), filters)


@router.post("/mark", response_model=StaffAttendanceOut)
async def mark_staff_attendance(
    attendance_data: MarkStaffAttendanceIn,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Create or overwrite a staff member's record for a past or current day"""
    with domain_errors():
        return StaffAttendanceService(db).mark_attendance(
            ctx["tenant_id"],
            attendance_data.user_id,
            attendance_data.date,
            attendance_data.status,
            ctx["user"],
            check_in_time=attendance_data.check_in_time,
            check_out_time=attendance_data.check_out_time,
            half_day_type=attendance_data.half_day_type,
            remarks=attendance_data.remarks,
            branch_id=attendance_data.branch_id,
        )


@router.get("/staff/{user_id}/summary", response_model=MonthlySummaryOut)
async def staff_summary(
    user_id: str,
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None),
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    user_uuid = parse_uuid(user_id, "user")
    year, month = _month_or_current(year, month)
    with domain_errors():
        return StaffAttendanceService(db).monthly_summary(ctx["tenant_id"], user_uuid, year, month)


# Settings

@router.get("/settings", response_model=StaffSettingsOut)
async def get_staff_settings(
    branch_id: str = Query(...),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    branch_uuid = parse_uuid(branch_id, "branch")
    with domain_errors():
        return StaffAttendanceService(db).get_settings(ctx["tenant_id"], branch_uuid)


@router.put("/settings", response_model=StaffSettingsOut)
async def update_staff_settings(
    settings_data: StaffSettingsUpdateIn,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    values = settings_data.model_dump(exclude={"branch_id"})
    with domain_errors():
        return StaffAttendanceService(db).update_settings(
            ctx["tenant_id"], settings_data.branch_id, ctx["user"], **values
        )


# Regularization

@router.post("/regularization", response_model=RegularizationOut, status_code=status.HTTP_201_CREATED)
async def request_regularization(
    request_data: RegularizationRequestIn,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    with domain_errors():
        return StaffAttendanceService(db).request_regularization(
            ctx["tenant_id"],
            ctx["user"],
            request_data.date,
            request_data.requested_status,
            request_data.reason,
            supporting_document_url=request_data.supporting_document_url,
        )


@router.get("/regularization", response_model=List[RegularizationOut])
async def list_regularizations(
    user_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Admins see every request; other members see only their own"""
    user_uuid = parse_uuid(user_id, "user") if is_tenant_admin(ctx) else ctx["user"].id
    with domain_errors():
        return StaffAttendanceService(db).list_regularizations(ctx["tenant_id"], user_uuid, status_filter)


@router.get("/regularization/{regularization_id}", response_model=RegularizationOut)
async def get_regularization(
    regularization_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    regularization_uuid = parse_uuid(regularization_id, "regularization")
    with domain_errors():
        regularization = StaffAttendanceService(db).get_regularization(ctx["tenant_id"], regularization_uuid)
    if regularization.user_id != ctx["user"].id and not is_tenant_admin(ctx):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Regularization request not found")
    return regularization


@router.put("/regularization/{regularization_id}/approve", response_model=RegularizationOut)
async def approve_regularization(
    regularization_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Approve a pending request and apply it to the day's attendance"""
    regularization_uuid = parse_uuid(regularization_id, "regularization")
    with domain_errors():
        return StaffAttendanceService(db).approve_regularization(ctx["tenant_id"], regularization_uuid, ctx["user"])


@router.put("/regularization/{regularization_id}/reject", response_model=RegularizationOut)
async def reject_regularization(
    regularization_id: str,
    reject_data: RegularizationRejectIn,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    regularization_uuid = parse_uuid(regularization_id, "regularization")
    with domain_errors():
        return StaffAttendanceService(db).reject_regularization(
            ctx["tenant_id"], regularization_uuid, ctx["user"], reject_data.rejection_reason
        )


# Single record

@router.get("/{attendance_id}", response_model=StaffAttendanceOut)
async def get_staff_attendance(
    attendance_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    attendance_uuid = parse_uuid(attendance_id, "attendance")
    with domain_errors():
        record = StaffAttendanceService(db).get_attendance(ctx["tenant_id"], attendance_uuid)
    if record.user_id != ctx["user"].id and not is_tenant_admin(ctx):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff attendance record not found")
    return record
