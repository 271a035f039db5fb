# schoolhub/api/routers/attendance_reports.py - Student attendance reports
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, Any, Optional

from schoolhub.core.db import get_db
from schoolhub.api.deps.tenancy import require_tenant
from schoolhub.api.utils import domain_errors, parse_date, parse_uuid
from schoolhub.services.report_service import AttendanceReportService
from schoolhub.schemas.report import (
    ClassReportOut,
    LowAttendanceOut,
    MonthlyClassReportOut,
    StudentCalendarOut,
    UnmarkedOut,
)

router = APIRouter()


@router.get("/class/{section_id}", response_model=ClassReportOut)
async def class_report(
    section_id: str,
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Daily attendance report for one section"""
    section_uuid = parse_uuid(section_id, "section")
    report_date = parse_date(date) or datetime.utcnow().date()
    with domain_errors():
        return AttendanceReportService(db).class_report(ctx["tenant_id"], section_uuid, report_date)


@router.get("/class/{section_id}/monthly", response_model=MonthlyClassReportOut)
async def monthly_class_report(
    section_id: str,
    year: int = Query(...),
    month: int = Query(...),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Student-by-day grid of a section's attendance for a month"""
    section_uuid = parse_uuid(section_id, "section")
    with domain_errors():
        return AttendanceReportService(db).monthly_class_report(ctx["tenant_id"], section_uuid, year, month)


@router.get("/student/{student_id}/calendar", response_model=StudentCalendarOut)
async def student_calendar(
    student_id: str,
    year: int = Query(...),
    month: int = Query(...),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    student_uuid = parse_uuid(student_id, "student")
    with domain_errors():
        return AttendanceReportService(db).student_calendar(ctx["tenant_id"], student_uuid, year, month)


@router.get("/low-attendance", response_model=LowAttendanceOut)
async def low_attendance(
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    threshold: Optional[float] = Query(None, description="Percentage, defaults to the configured low threshold"),
    section_id: Optional[str] = Query(None),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Students whose attendance rate over the range is below the threshold"""
    with domain_errors():
        return AttendanceReportService(db).low_attendance(
            ctx["tenant_id"],
            date_from=parse_date(date_from, "date_from"),
            date_to=parse_date(date_to, "date_to"),
            threshold=threshold,
            section_id=parse_uuid(section_id, "section"),
        )


@router.get("/unmarked", response_model=UnmarkedOut)
async def unmarked_classes(
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Sections that have not been marked for the date"""
    report_date = parse_date(date) or datetime.utcnow().date()
    return AttendanceReportService(db).unmarked(ctx["tenant_id"], report_date)
