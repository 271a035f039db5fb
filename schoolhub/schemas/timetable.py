# schoolhub/schemas/timetable.py - Timetable request/response schemas
from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, validator


class TimetableCreate(BaseModel):
    section_id: UUID
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None

    @validator("name")
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Timetable name cannot be blank")
        return v.strip()


class TimetableUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=128)
    description: Optional[str] = None
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None


class TimetableEntryIn(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    period_slot_id: UUID
    subject: Optional[str] = Field(None, max_length=100)
    teacher_id: Optional[UUID] = None
    room_number: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = None
    is_free_period: bool = False


class BulkTimetableEntriesIn(BaseModel):
    entries: List[TimetableEntryIn] = []


class TimetableOut(BaseModel):
    id: UUID
    branch_id: UUID
    section_id: UUID
    name: str
    description: Optional[str] = None
    status: str
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    published_at: Optional[datetime] = None
    published_by: Optional[UUID] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TimetableEntryOut(BaseModel):
    id: UUID
    timetable_id: UUID
    timetable_name: str
    section_id: UUID
    section_name: Optional[str] = None
    class_name: Optional[str] = None
    day_of_week: int
    day_name: str
    period_slot_id: UUID
    period_name: str
    start_time: time
    end_time: time
    subject: Optional[str] = None
    teacher_id: Optional[UUID] = None
    teacher_name: Optional[str] = None
    room_number: Optional[str] = None
    notes: Optional[str] = None
    is_free_period: bool


class TimetableDetailOut(TimetableOut):
    entries: List[TimetableEntryOut] = []


class TeacherScheduleOut(BaseModel):
    teacher_id: UUID
    entries: List[TimetableEntryOut]
    total_periods: int
