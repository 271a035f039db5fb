# schoolhub/schemas/attendance.py - Student attendance request/response schemas
import datetime as dt
from datetime import date, datetime, time
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, validator


# Requests

class AttendanceRecordIn(BaseModel):
    student_id: UUID
    status: str
    late_arrival_time: Optional[time] = None
    remarks: Optional[str] = Field(None, max_length=500)

    @validator("status")
    def normalize_status(cls, v):
        return v.strip().lower()


class MarkClassAttendanceIn(BaseModel):
    date: Optional[dt.date] = None
    records: List[AttendanceRecordIn] = []

    class Config:
        json_schema_extra = {
            "example": {
                "date": "2026-10-16",
                "records": [
                    {"student_id": "7c0e2a3e-5b9a-4c57-9a57-6f1f0e9f2a11", "status": "present"},
                    {"student_id": "1b8d4d4f-2f0e-4a53-8a3d-2c6c7f6c9b22", "status": "late", "late_arrival_time": "08:20"},
                ]
            }
        }


class MarkPeriodAttendanceIn(MarkClassAttendanceIn):
    section_id: UUID


class EditAttendanceIn(BaseModel):
    """Omitted fields stay unchanged; an empty remarks string clears them"""

    status: Optional[str] = None
    remarks: Optional[str] = None
    late_arrival_time: Optional[time] = None
    reason: Optional[str] = None

    @validator("status")
    def normalize_status(cls, v):
        return v.strip().lower() if v is not None else v


class SettingsUpdateIn(BaseModel):
    branch_id: UUID
    edit_window_minutes: Optional[int] = Field(None, ge=0, le=1440)
    late_threshold_minutes: Optional[int] = Field(None, ge=0, le=120)
    sms_on_absent: Optional[bool] = None
    period_attendance_enabled: Optional[bool] = None


# Responses

class AttendanceSummaryOut(BaseModel):
    total: int
    present: int
    absent: int
    late: int
    half_day: int


class TeacherSectionOut(BaseModel):
    section_id: UUID
    section_name: str
    section_code: str
    class_name: str
    class_code: str
    student_count: int
    is_marked_today: bool
    marked_count: int


class StudentForAttendanceOut(BaseModel):
    student_id: UUID
    admission_number: str
    roll_number: Optional[int] = None
    first_name: str
    last_name: str
    full_name: str
    status: Optional[str] = None
    late_arrival_time: Optional[time] = None
    remarks: Optional[str] = None
    last_5_days: List[str] = []


class ClassAttendanceOut(BaseModel):
    section_id: UUID
    section_name: str
    class_name: str
    date: date
    students: List[StudentForAttendanceOut]
    is_marked: bool
    can_edit: bool
    marked_at: Optional[datetime] = None
    marked_by: Optional[UUID] = None
    marked_by_name: Optional[str] = None
    summary: AttendanceSummaryOut


class PeriodInfoOut(BaseModel):
    period_id: UUID
    period_name: str
    period_number: Optional[int] = None
    start_time: time
    end_time: time
    is_marked: Optional[bool] = None
    marked_count: Optional[int] = None
    total_students: Optional[int] = None


class PeriodAttendanceOut(ClassAttendanceOut):
    period_id: UUID
    period_name: str
    period_number: Optional[int] = None
    start_time: time
    end_time: time


class SectionPeriodsOut(BaseModel):
    section_id: UUID
    section_name: str
    class_name: str
    date: date
    day_of_week: int
    day_name: str
    period_attendance_enabled: bool
    periods: List[PeriodInfoOut]


class MarkAttendanceResultOut(BaseModel):
    section_id: UUID
    period_id: Optional[UUID] = None
    date: date
    summary: AttendanceSummaryOut
    marked_at: datetime
    created: int
    updated: int
    message: str


class DailySummaryStudentOut(BaseModel):
    student_id: UUID
    admission_number: str
    roll_number: Optional[int] = None
    full_name: str
    period_statuses: Dict[str, str]
    total_periods: int
    marked_periods: int
    periods_present: int
    periods_absent: int
    periods_late: int
    periods_half_day: int
    attendance_percentage: float
    overall_status: Optional[str] = None


class DailySummaryTotalsOut(BaseModel):
    total_students: int
    total_periods: int
    average_attendance: float
    full_present_count: int
    absent_count: int


class DailySummaryOut(BaseModel):
    section_id: UUID
    section_name: str
    class_name: str
    date: date
    day_name: str
    periods: List[PeriodInfoOut]
    students: List[DailySummaryStudentOut]
    summary: DailySummaryTotalsOut


class EditWindowOut(BaseModel):
    attendance_id: UUID
    marked_at: datetime
    window_end_at: datetime
    window_minutes: int
    remaining_minutes: int
    is_within_window: bool
    is_original_marker: bool
    can_edit: bool
    requires_admin_edit: bool
    edit_denied_reason: Optional[str] = None


class EditAttendanceResultOut(BaseModel):
    attendance_id: UUID
    student_id: UUID
    date: date
    status: str
    edited_at: datetime
    edited_by: UUID
    message: str


class AuditEntryOut(BaseModel):
    id: UUID
    change_type: str
    previous_status: Optional[str] = None
    new_status: str
    previous_remarks: Optional[str] = None
    new_remarks: Optional[str] = None
    previous_late_arrival_time: Optional[time] = None
    new_late_arrival_time: Optional[time] = None
    change_reason: str
    changed_by_id: UUID
    changed_by_name: str
    changed_at: datetime


class AuditTrailOut(BaseModel):
    attendance_id: UUID
    student_id: UUID
    student_name: str
    date: date
    audit_entries: List[AuditEntryOut]
    total_changes: int


class AttendanceRecordOut(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    admission_number: Optional[str] = None
    section_id: UUID
    section_name: Optional[str] = None
    period_id: Optional[UUID] = None
    attendance_date: date
    status: str
    status_label: str
    late_arrival_time: Optional[time] = None
    remarks: Optional[str] = None
    marked_by: UUID
    marked_by_name: Optional[str] = None
    marked_at: datetime
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record) -> "AttendanceRecordOut":
        return cls(
            id=record.id,
            student_id=record.student_id,
            student_name=record.student.full_name if record.student else None,
            admission_number=record.student.admission_number if record.student else None,
            section_id=record.section_id,
            section_name=record.section.name if record.section else None,
            period_id=record.period_id,
            attendance_date=record.attendance_date,
            status=record.status,
            status_label=record.status_enum.label,
            late_arrival_time=record.late_arrival_time,
            remarks=record.remarks,
            marked_by=record.marked_by,
            marked_by_name=record.marked_by_user.full_name if record.marked_by_user else None,
            marked_at=record.marked_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class AttendanceListOut(BaseModel):
    attendance: List[AttendanceRecordOut]
    next_cursor: Optional[str] = None
    has_more: bool
    total: int


class SettingsOut(BaseModel):
    id: Optional[UUID] = None
    branch_id: UUID
    branch_name: Optional[str] = None
    edit_window_minutes: int
    late_threshold_minutes: int
    sms_on_absent: bool
    period_attendance_enabled: bool
    is_default: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
