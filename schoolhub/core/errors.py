# schoolhub/core/errors.py - Domain exceptions raised by services
from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400
    title = "Bad Request"
    default_detail = "Request could not be processed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    status_code = 400
    title = "Bad Request"
    default_detail = "Invalid request"


class NotFoundError(DomainError):
    status_code = 404
    title = "Not Found"
    default_detail = "Resource not found"


class ConflictError(DomainError):
    status_code = 409
    title = "Conflict"
    default_detail = "Resource already exists"


class PermissionDeniedError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403
    title = "Forbidden"
    default_detail = "You don't have permission to access this resource"


class AuthenticationError(DomainError):
    status_code = 401
    title = "Unauthorized"
    default_detail = "Invalid email or password"


# Tenancy / academics

class TenantNotFound(NotFoundError):
    default_detail = "Tenant not found"


class BranchNotFound(NotFoundError):
    default_detail = "Branch not found"


class ClassNotFound(NotFoundError):
    default_detail = "Class not found"


class SectionNotFound(NotFoundError):
    default_detail = "Section not found"


class StudentNotFound(NotFoundError):
    default_detail = "Student not found"


class PeriodNotFound(NotFoundError):
    default_detail = "Period slot not found"


class UserNotFound(NotFoundError):
    default_detail = "User not found"


# Student attendance

class AttendanceNotFound(NotFoundError):
    default_detail = "Attendance record not found"


class NoStudentsInSection(ValidationError):
    default_detail = "No students found in this section"


class FutureDate(ValidationError):
    default_detail = "Cannot mark attendance for a future date"


class EmptyAttendanceRecords(ValidationError):
    default_detail = "No attendance records provided"


class InvalidStatus(ValidationError):
    default_detail = "Invalid attendance status"


class PeriodAttendanceDisabled(ValidationError):
    default_detail = "Period-wise attendance is not enabled for this branch"


class NoChanges(ValidationError):
    default_detail = "No changes to apply"


class EditWindowExpired(PermissionDeniedError):
    default_detail = "Attendance edit window has expired"


class NotOriginalMarker(PermissionDeniedError):
    default_detail = "Only the teacher who marked this attendance or an admin can edit it"


# Staff attendance

class StaffAttendanceNotFound(NotFoundError):
    default_detail = "Staff attendance record not found"


class AlreadyCheckedIn(ConflictError):
    default_detail = "Already checked in for today"


class NotCheckedIn(ValidationError):
    default_detail = "Not checked in yet"


class AlreadyCheckedOut(ConflictError):
    default_detail = "Already checked out for today"


class SelfCheckoutDisabled(PermissionDeniedError):
    default_detail = "Self check-out is disabled for this branch"


class RegularizationNotFound(NotFoundError):
    default_detail = "Regularization request not found"


class PendingRegularizationExists(ConflictError):
    default_detail = "Pending regularization request already exists for this date"


class RegularizationAlreadyProcessed(ConflictError):
    default_detail = "Regularization request already processed"


# Timetables

class TimetableNotFound(NotFoundError):
    default_detail = "Timetable not found"


class TimetableEntryNotFound(NotFoundError):
    default_detail = "Timetable entry not found"


class TimetableNotDraft(ConflictError):
    default_detail = "Only draft timetables can be updated"


__all__ = [
    "DomainError", "ValidationError", "NotFoundError", "ConflictError",
    "PermissionDeniedError", "AuthenticationError",
    "TenantNotFound", "BranchNotFound", "ClassNotFound", "SectionNotFound",
    "StudentNotFound", "PeriodNotFound", "UserNotFound",
    "AttendanceNotFound", "NoStudentsInSection", "FutureDate",
    "EmptyAttendanceRecords", "InvalidStatus", "PeriodAttendanceDisabled",
    "NoChanges", "EditWindowExpired", "NotOriginalMarker",
    "StaffAttendanceNotFound", "AlreadyCheckedIn", "NotCheckedIn",
    "AlreadyCheckedOut", "SelfCheckoutDisabled", "RegularizationNotFound",
    "PendingRegularizationExists", "RegularizationAlreadyProcessed",
    "TimetableNotFound", "TimetableEntryNotFound", "TimetableNotDraft",
]
