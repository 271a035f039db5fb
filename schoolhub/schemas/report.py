# schoolhub/schemas/report.py - Student attendance report schemas
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from schoolhub.schemas.attendance import AttendanceSummaryOut


class StudentReportEntryOut(BaseModel):
    student_id: UUID
    admission_number: str
    full_name: str
    roll_number: Optional[int] = None
    status: Optional[str] = None
    status_label: str
    remarks: Optional[str] = None


class ClassReportOut(BaseModel):
    section_id: UUID
    section_name: str
    class_name: str
    date: date
    students: List[StudentReportEntryOut]
    summary: AttendanceSummaryOut
    attendance_rate: float


class MonthlyStudentRowOut(BaseModel):
    student_id: UUID
    admission_number: str
    full_name: str
    roll_number: Optional[int] = None
    daily_status: Dict[str, str]
    present: int
    absent: int
    late: int
    half_day: int
    percentage: float


class ClassMonthlySummaryOut(BaseModel):
    total_students: int
    average_attendance: float


class MonthlyClassReportOut(BaseModel):
    section_id: UUID
    section_name: str
    class_name: str
    year: int
    month: int
    month_name: str
    working_days: int
    dates: List[date]
    students: List[MonthlyStudentRowOut]
    summary: ClassMonthlySummaryOut


class CalendarDayOut(BaseModel):
    date: date
    day_of_week: int
    status: Optional[str] = None
    is_weekend: bool
    is_holiday: bool
    remarks: Optional[str] = None


class MonthlySummaryOut(BaseModel):
    working_days: int
    present: int
    absent: int
    late: int
    half_day: int
    holidays: int
    percentage: float


class StudentCalendarOut(BaseModel):
    student_id: UUID
    student_name: str
    year: int
    month: int
    month_name: str
    days: List[CalendarDayOut]
    summary: MonthlySummaryOut
    class_average: float
    trend: str


class LowAttendanceStudentOut(BaseModel):
    student_id: UUID
    admission_number: str
    full_name: str
    class_name: str
    section_name: str
    attendance_rate: float
    days_absent: int
    last_present: Optional[date] = None
    consecutive_absent: int
    is_critical: bool


class ClassBreakdownOut(BaseModel):
    section_id: UUID
    section_name: str
    class_name: str
    total_students: int
    attendance_rate: float
    below_threshold: int


class LowAttendanceOut(BaseModel):
    date_from: date
    date_to: date
    threshold: float
    critical_threshold: float
    total_students: int
    below_threshold: int
    chronic_absentees: int
    overall_attendance_rate: float
    students: List[LowAttendanceStudentOut]
    class_breakdown: List[ClassBreakdownOut]


class UnmarkedClassOut(BaseModel):
    section_id: UUID
    section_name: str
    class_name: str
    teacher_id: Optional[UUID] = None
    teacher_name: Optional[str] = None
    student_count: int


class UnmarkedOut(BaseModel):
    date: date
    unmarked_classes: List[UnmarkedClassOut]
    total_classes: int
    marked_classes: int
