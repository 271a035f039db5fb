# schoolhub/schemas/academic.py - Class, section, student and period slot schemas
from datetime import datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, validator


class ClassCreate(BaseModel):
    branch_id: UUID
    name: str = Field(..., min_length=1, max_length=64)
    code: str = Field(..., min_length=1, max_length=20)
    display_order: int = Field(0, ge=0)

    @validator("name", "code")
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class ClassOut(BaseModel):
    id: UUID
    branch_id: UUID
    name: str
    code: str
    display_order: int
    created_at: datetime

    class Config:
        from_attributes = True


class SectionCreate(BaseModel):
    class_id: UUID
    name: str = Field(..., min_length=1, max_length=20)
    code: str = Field(..., min_length=1, max_length=20)
    display_order: int = Field(0, ge=0)
    class_teacher_id: Optional[UUID] = None

    @validator("name", "code")
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class SectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=20)
    display_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    class_teacher_id: Optional[UUID] = None


class SectionOut(BaseModel):
    id: UUID
    class_id: UUID
    class_name: str
    branch_id: UUID
    name: str
    code: str
    display_order: int
    is_active: bool
    class_teacher_id: Optional[UUID] = None
    student_count: int = 0

    class Config:
        from_attributes = True


class StudentCreate(BaseModel):
    admission_number: str
    first_name: str
    last_name: str
    section_id: Optional[UUID] = None
    roll_number: Optional[int] = Field(None, ge=1)

    @validator("admission_number")
    def validate_admission_number(cls, v):
        if not v or not v.strip():
            raise ValueError("Admission number cannot be empty")
        return v.strip()

    @validator("first_name", "last_name")
    def validate_names(cls, v):
        if not v or not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()


class StudentUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    section_id: Optional[UUID] = None
    roll_number: Optional[int] = Field(None, ge=1)
    status: Optional[str] = None


class StudentOut(BaseModel):
    id: UUID
    admission_number: str
    first_name: str
    last_name: str
    full_name: str
    section_id: Optional[UUID] = None
    roll_number: Optional[int] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class StudentList(BaseModel):
    students: List[StudentOut]
    total: int


class PeriodSlotCreate(BaseModel):
    branch_id: UUID
    name: str = Field(..., min_length=1, max_length=64)
    period_number: Optional[int] = Field(None, ge=1)
    start_time: time
    end_time: time


class PeriodSlotOut(BaseModel):
    id: UUID
    branch_id: UUID
    name: str
    period_number: Optional[int] = None
    start_time: time
    end_time: time
    is_active: bool

    class Config:
        from_attributes = True
