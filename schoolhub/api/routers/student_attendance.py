# schoolhub/api/routers/student_attendance.py - Student attendance marking, editing and settings
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, Any, List, Optional
from uuid import UUID
import logging

from schoolhub.core.db import get_db
from schoolhub.api.deps.tenancy import require_tenant, require_tenant_admin, is_tenant_admin
from schoolhub.api.utils import domain_errors, parse_date, parse_uuid
from schoolhub.repositories.attendance import AttendanceFilter, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from schoolhub.services.attendance_service import StudentAttendanceService
from schoolhub.schemas.attendance import (
    AttendanceListOut,
    AttendanceRecordOut,
    AuditTrailOut,
    ClassAttendanceOut,
    DailySummaryOut,
    EditAttendanceIn,
    EditAttendanceResultOut,
    EditWindowOut,
    MarkAttendanceResultOut,
    MarkClassAttendanceIn,
    MarkPeriodAttendanceIn,
    PeriodAttendanceOut,
    SectionPeriodsOut,
    SettingsOut,
    SettingsUpdateIn,
    TeacherSectionOut,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _date_or_today(value: Optional[str]):
    return parse_date(value) or datetime.utcnow().date()


# Settings

@router.get("/settings", response_model=SettingsOut)
async def get_settings(
    branch_id: str = Query(...),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Attendance settings of a branch, or the defaults when none are stored"""
    branch_uuid = parse_uuid(branch_id, "branch")
    with domain_errors():
        return StudentAttendanceService(db).get_settings(ctx["tenant_id"], branch_uuid)


@router.put("/settings", response_model=SettingsOut)
async def update_settings(
    settings_data: SettingsUpdateIn,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    values = settings_data.model_dump(exclude={"branch_id"})
    with domain_errors():
        return StudentAttendanceService(db).update_settings(
            ctx["tenant_id"], settings_data.branch_id, ctx["user"], **values
        )


# Daily class marking

@router.get("/my-classes", response_model=List[TeacherSectionOut])
async def get_my_classes(
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    branch_id: Optional[str] = Query(None),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Sections with students, and whether they are marked for the date"""
    return StudentAttendanceService(db).get_teacher_sections(
        ctx["tenant_id"], _date_or_today(date), parse_uuid(branch_id, "branch")
    )


@router.get("/class/{section_id}", response_model=ClassAttendanceOut)
async def get_class_attendance(
    section_id: str,
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    section_uuid = parse_uuid(section_id, "section")
    with domain_errors():
        return StudentAttendanceService(db).get_class_attendance(
            ctx["tenant_id"], section_uuid, _date_or_today(date), ctx["user"], is_tenant_admin(ctx)
        )


@router.post("/class/{section_id}", response_model=MarkAttendanceResultOut)
async def mark_class_attendance(
    section_id: str,
    attendance_data: MarkClassAttendanceIn,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Mark (or re-mark within the edit window) a whole section for a date"""
    section_uuid = parse_uuid(section_id, "section")
    with domain_errors():
        return StudentAttendanceService(db).mark_class_attendance(
            ctx["tenant_id"],
            section_uuid,
            attendance_data.date,
            attendance_data.records,
            ctx["user"],
            is_tenant_admin(ctx),
        )


# Period-wise marking

@router.get("/periods", response_model=SectionPeriodsOut)
async def get_section_periods(
    section_id: str = Query(...),
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    section_uuid = parse_uuid(section_id, "section")
    with domain_errors():
        return StudentAttendanceService(db).get_section_periods(
            ctx["tenant_id"], section_uuid, _date_or_today(date)
        )


@router.get("/period/{period_id}", response_model=PeriodAttendanceOut)
async def get_period_attendance(
    period_id: str,
    section_id: str = Query(...),
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    period_uuid = parse_uuid(period_id, "period")
    section_uuid = parse_uuid(section_id, "section")
    with domain_errors():
        return StudentAttendanceService(db).get_class_attendance(
            ctx["tenant_id"],
            section_uuid,
            _date_or_today(date),
            ctx["user"],
            is_tenant_admin(ctx),
            period_id=period_uuid,
        )


@router.post("/period/{period_id}", response_model=MarkAttendanceResultOut)
async def mark_period_attendance(
    period_id: str,
    attendance_data: MarkPeriodAttendanceIn,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    period_uuid = parse_uuid(period_id, "period")
    with domain_errors():
        return StudentAttendanceService(db).mark_class_attendance(
            ctx["tenant_id"],
            attendance_data.section_id,
            attendance_data.date,
            attendance_data.records,
            ctx["user"],
            is_tenant_admin(ctx),
            period_id=period_uuid,
        )


@router.get("/daily-summary", response_model=DailySummaryOut)
async def get_daily_summary(
    section_id: str = Query(...),
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Per-student period statuses for a day"""
    section_uuid = parse_uuid(section_id, "section")
    with domain_errors():
        return StudentAttendanceService(db).get_daily_summary(
            ctx["tenant_id"], section_uuid, _date_or_today(date)
        )


# Listing

@router.get("", response_model=AttendanceListOut)
async def list_attendance(
    section_id: Optional[str] = Query(None),
    student_id: Optional[str] = Query(None),
    period_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    cursor: Optional[str] = Query(None, description="Id of the last record of the previous page"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Attendance records, newest first, with cursor pagination"""
    cursor_uuid = None
    if cursor:
        try:
            cursor_uuid = UUID(cursor)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid cursor")

    filters = AttendanceFilter(
        tenant_id=ctx["tenant_id"],
        section_id=parse_uuid(section_id, "section"),
        student_id=parse_uuid(student_id, "student"),
        period_id=parse_uuid(period_id, "period"),
        status=status_filter,
        date_from=parse_date(date_from, "date_from"),
        date_to=parse_date(date_to, "date_to"),
        cursor=cursor_uuid,
        limit=limit,
    )
    with domain_errors():
        records, next_cursor, total = StudentAttendanceService(db).list_attendance(filters)

    return AttendanceListOut(
        attendance=[AttendanceRecordOut.from_record(r) for r in records],
        next_cursor=str(next_cursor) if next_cursor else None,
        has_more=next_cursor is not None,
        total=total,
    )


# Single record

@router.get("/{attendance_id}", response_model=AttendanceRecordOut)
async def get_attendance(
    attendance_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    attendance_uuid = parse_uuid(attendance_id, "attendance")
    with domain_errors():
        record = StudentAttendanceService(db).get_attendance(ctx["tenant_id"], attendance_uuid)
    return AttendanceRecordOut.from_record(record)


@router.get("/{attendance_id}/edit-window", response_model=EditWindowOut)
async def get_edit_window(
    attendance_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Whether the caller may still edit this record, and until when"""
    attendance_uuid = parse_uuid(attendance_id, "attendance")
    with domain_errors():
        return StudentAttendanceService(db).get_edit_window(
            ctx["tenant_id"], attendance_uuid, ctx["user"], is_tenant_admin(ctx)
        )


@router.put("/{attendance_id}", response_model=EditAttendanceResultOut)
async def edit_attendance(
    attendance_id: str,
    edit_data: EditAttendanceIn,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Edit one record; the previous values are kept in the audit trail"""
    attendance_uuid = parse_uuid(attendance_id, "attendance")
    with domain_errors():
        return StudentAttendanceService(db).edit_attendance(
            ctx["tenant_id"],
            attendance_uuid,
            ctx["user"],
            reason=edit_data.reason,
            status=edit_data.status,
            remarks=edit_data.remarks,
            late_arrival_time=edit_data.late_arrival_time,
            is_admin=is_tenant_admin(ctx),
        )


@router.get("/{attendance_id}/audit", response_model=AuditTrailOut)
async def get_audit_trail(
    attendance_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    attendance_uuid = parse_uuid(attendance_id, "attendance")
    with domain_errors():
        return StudentAttendanceService(db).get_audit_trail(ctx["tenant_id"], attendance_uuid)
