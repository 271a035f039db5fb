# schoolhub/models/__init__.py - Import all models so SQLAlchemy can discover them

from schoolhub.models.base import Base

from schoolhub.models.user import User, UserRole
from schoolhub.models.tenant import Tenant, TenantMember, Branch
from schoolhub.models.academic import SchoolClass, Section, Student, PeriodSlot
from schoolhub.models.attendance import (
    AttendanceStatus,
    AttendanceChangeType,
    StudentAttendance,
    StudentAttendanceSettings,
    StudentAttendanceAudit,
)
from schoolhub.models.staff_attendance import (
    StaffAttendanceStatus,
    HalfDayType,
    RegularizationStatus,
    StaffAttendance,
    StaffAttendanceRegularization,
    StaffAttendanceSettings,
)
from schoolhub.models.timetable import TimetableStatus, Timetable, TimetableEntry

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Tenant",
    "TenantMember",
    "Branch",
    "SchoolClass",
    "Section",
    "Student",
    "PeriodSlot",
    "AttendanceStatus",
    "AttendanceChangeType",
    "StudentAttendance",
    "StudentAttendanceSettings",
    "StudentAttendanceAudit",
    "StaffAttendanceStatus",
    "HalfDayType",
    "RegularizationStatus",
    "StaffAttendance",
    "StaffAttendanceRegularization",
    "StaffAttendanceSettings",
    "TimetableStatus",
    "Timetable",
    "TimetableEntry",
]
