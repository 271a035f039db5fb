# schoolhub/schemas/staff_attendance.py - Staff attendance request/response schemas
import datetime as dt
from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, validator


# Requests

class CheckInIn(BaseModel):
    half_day_type: Optional[str] = None
    remarks: Optional[str] = Field(None, max_length=500)
    branch_id: Optional[UUID] = None

    @validator("half_day_type")
    def normalize_half_day(cls, v):
        return v.strip().lower() if v is not None else v


class CheckOutIn(BaseModel):
    remarks: Optional[str] = Field(None, max_length=500)


class MarkStaffAttendanceIn(BaseModel):
    user_id: UUID
    date: Optional[dt.date] = None
    status: str
    check_in_time: Optional[time] = None
    check_out_time: Optional[time] = None
    half_day_type: Optional[str] = None
    remarks: Optional[str] = Field(None, max_length=500)
    branch_id: Optional[UUID] = None

    @validator("status", "half_day_type")
    def normalize_choice(cls, v):
        return v.strip().lower() if v is not None else v

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "7c0e2a3e-5b9a-4c57-9a57-6f1f0e9f2a11",
                "date": "2026-10-16",
                "status": "present",
                "check_in_time": "09:20",
                "check_out_time": "16:45",
            }
        }


class RegularizationRequestIn(BaseModel):
    date: Optional[dt.date] = None
    requested_status: str
    reason: Optional[str] = None
    supporting_document_url: Optional[str] = Field(None, max_length=512)

    @validator("requested_status")
    def normalize_status(cls, v):
        return v.strip().lower()


class RegularizationRejectIn(BaseModel):
    rejection_reason: Optional[str] = None


class StaffSettingsUpdateIn(BaseModel):
    branch_id: UUID
    work_start_time: Optional[time] = None
    work_end_time: Optional[time] = None
    late_threshold_minutes: Optional[int] = Field(None, ge=0, le=240)
    half_day_threshold_hours: Optional[float] = Field(None, gt=0, le=12)
    allow_self_checkout: Optional[bool] = None
    require_regularization_approval: Optional[bool] = None


# Responses

class StaffAttendanceOut(BaseModel):
    id: UUID
    user_id: UUID
    staff_name: Optional[str] = None
    branch_id: Optional[UUID] = None
    attendance_date: date
    status: str
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    is_late: bool
    late_minutes: int
    half_day_type: Optional[str] = None
    remarks: Optional[str] = None
    marked_by: Optional[UUID] = None
    marked_at: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StaffAttendanceListOut(BaseModel):
    attendance: List[StaffAttendanceOut]
    next_cursor: Optional[str] = None
    has_more: bool
    total: int


class MonthlySummaryOut(BaseModel):
    user_id: UUID
    year: int
    month: int
    month_name: str
    total_days: int
    present_days: int
    absent_days: int
    half_days: int
    leave_days: int
    holiday_days: int
    late_days: int
    total_late_minutes: int


class RegularizationOut(BaseModel):
    id: UUID
    user_id: UUID
    staff_name: Optional[str] = None
    attendance_id: Optional[UUID] = None
    request_date: date
    requested_status: str
    reason: str
    supporting_document_url: Optional[str] = None
    status: str
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StaffSettingsOut(BaseModel):
    id: Optional[UUID] = None
    branch_id: Optional[UUID] = None
    branch_name: Optional[str] = None
    work_start_time: time
    work_end_time: time
    late_threshold_minutes: int
    half_day_threshold_hours: float
    allow_self_checkout: bool
    require_regularization_approval: bool
    is_default: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
