# schoolhub/services/staff_attendance_service.py - Staff check-in/out, HR marking, monthly summary and regularization
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple
import calendar
import logging
import uuid

from sqlalchemy.orm import Session

from schoolhub.core.errors import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    BranchNotFound,
    FutureDate,
    InvalidStatus,
    NotCheckedIn,
    PendingRegularizationExists,
    RegularizationAlreadyProcessed,
    RegularizationNotFound,
    SelfCheckoutDisabled,
    StaffAttendanceNotFound,
    UserNotFound,
    ValidationError,
)
from schoolhub.models.staff_attendance import (
    HalfDayType,
    RegularizationStatus,
    StaffAttendance,
    StaffAttendanceRegularization,
    StaffAttendanceStatus,
)
from schoolhub.models.user import User
from schoolhub.repositories.staff_attendance import StaffAttendanceFilter, StaffAttendanceRepository
from schoolhub.repositories.tenant import BranchRepository, TenantRepository
from schoolhub.services.report_service import month_bounds

logger = logging.getLogger(__name__)

DEFAULT_WORK_SETTINGS = {
    "work_start_time": time(9, 0),
    "work_end_time": time(17, 0),
    "late_threshold_minutes": 15,
    "half_day_threshold_hours": 4.0,
    "allow_self_checkout": True,
    "require_regularization_approval": True,
}
MAX_REASON_LENGTH = 500


def compute_lateness(check_in: datetime, work_start: time, threshold_minutes: int) -> Tuple[bool, int]:
    """
    Late when the check-in is strictly after work start plus the threshold.

    Late minutes count from work start, not from the end of the grace period,
    so a check-in at 09:20 with a 09:00 start and 15-minute threshold is
    20 minutes late.
    """
    start = datetime.combine(check_in.date(), work_start)
    if check_in > start + timedelta(minutes=threshold_minutes):
        return True, int((check_in - start).total_seconds() // 60)
    return False, 0


def _parse_status(value: Any) -> StaffAttendanceStatus:
    try:
        return StaffAttendanceStatus(value)
    except ValueError:
        raise InvalidStatus(
            f"Invalid attendance status '{value}'. Allowed: {', '.join(StaffAttendanceStatus.values())}"
        )


def _parse_half_day(value: Optional[str], status: StaffAttendanceStatus) -> Optional[str]:
    if value is None:
        return None
    try:
        half_day = HalfDayType(value)
    except ValueError:
        raise ValidationError(
            f"Invalid half-day type '{value}'. Allowed: {', '.join(HalfDayType.values())}"
        )
    if status is not StaffAttendanceStatus.HALF_DAY:
        raise ValidationError("Half-day type is only allowed with half_day status")
    return half_day.value


def _clean(text: Optional[str]) -> Optional[str]:
    text = (text or "").strip()
    return text or None


class StaffAttendanceService:
    """Attendance of tenant members (teachers and other staff)"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock
        self.repo = StaffAttendanceRepository(db)
        self.branches = BranchRepository(db)
        self.tenants = TenantRepository(db)

    def _commit(self, obj, action: str):
        try:
            self.db.commit()
            self.db.refresh(obj)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error {action}: {e}")
            raise
        return obj

    def _ensure_member(self, tenant_id: uuid.UUID, user_id: uuid.UUID) -> None:
        if not self.tenants.get_membership(tenant_id, user_id):
            raise UserNotFound("Staff member is not a member of this tenant")

    def _resolve_branch(self, tenant_id: uuid.UUID, branch_id: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
        """The given branch, or the tenant's primary branch when none is given"""
        if branch_id is not None:
            if not self.branches.get(tenant_id, branch_id):
                raise BranchNotFound()
            return branch_id
        primary = self.branches.get_primary(tenant_id)
        return primary.id if primary else None

    def work_settings(self, tenant_id: uuid.UUID, branch_id: Optional[uuid.UUID]) -> Dict[str, Any]:
        """Stored work hours for a branch, or the defaults"""
        stored = self.repo.get_settings(tenant_id, branch_id) if branch_id else None
        if stored is None:
            return {"id": None, "branch_id": branch_id, **DEFAULT_WORK_SETTINGS, "is_default": True,
                    "created_at": None, "updated_at": None}
        values = {field: getattr(stored, field) for field in DEFAULT_WORK_SETTINGS}
        return {"id": stored.id, "branch_id": branch_id, **values, "is_default": False,
                "created_at": stored.created_at, "updated_at": stored.updated_at}

    def _lateness(self, tenant_id: uuid.UUID, branch_id: Optional[uuid.UUID], check_in: datetime) -> Tuple[bool, int]:
        config = self.work_settings(tenant_id, branch_id)
        return compute_lateness(check_in, config["work_start_time"], config["late_threshold_minutes"])

    # Self-service

    def check_in(
        self,
        tenant_id: uuid.UUID,
        user: User,
        half_day_type: Optional[str] = None,
        remarks: Optional[str] = None,
        branch_id: Optional[uuid.UUID] = None,
    ) -> StaffAttendance:
        now = self.clock()
        today = now.date()

        status = StaffAttendanceStatus.HALF_DAY if half_day_type else StaffAttendanceStatus.PRESENT
        half_day = _parse_half_day(half_day_type, status)

        record = self.repo.get_for_day(tenant_id, user.id, today)
        if record is not None and record.check_in_time is not None:
            raise AlreadyCheckedIn()

        branch_id = self._resolve_branch(tenant_id, branch_id or (record.branch_id if record else None))
        is_late, late_minutes = self._lateness(tenant_id, branch_id, now)

        if record is None:
            record = self.repo.add(StaffAttendance(tenant_id=tenant_id, user_id=user.id, attendance_date=today))
        record.branch_id = branch_id
        record.status = status.value
        record.half_day_type = half_day
        record.check_in_time = now
        record.is_late = is_late
        record.late_minutes = late_minutes
        record.remarks = _clean(remarks)
        record.marked_by = user.id
        record.marked_at = now

        self._commit(record, "checking in")
        logger.info(f"Staff check-in: {user.email} at {now:%H:%M}" + (f" ({late_minutes} min late)" if is_late else ""))
        return record

    def check_out(self, tenant_id: uuid.UUID, user: User, remarks: Optional[str] = None) -> StaffAttendance:
        now = self.clock()
        record = self.repo.get_for_day(tenant_id, user.id, now.date())
        if record is None or record.check_in_time is None:
            raise NotCheckedIn()
        if record.check_out_time is not None:
            raise AlreadyCheckedOut()
        if not self.work_settings(tenant_id, record.branch_id)["allow_self_checkout"]:
            raise SelfCheckoutDisabled()

        record.check_out_time = now
        remarks = _clean(remarks)
        if remarks:
            record.remarks = f"{record.remarks}; {remarks}" if record.remarks else remarks

        self._commit(record, "checking out")
        logger.info(f"Staff check-out: {user.email} at {now:%H:%M}")
        return record

    def get_today(self, tenant_id: uuid.UUID, user_id: uuid.UUID) -> Optional[StaffAttendance]:
        return self.repo.get_for_day(tenant_id, user_id, self.clock().date())

    # HR

    def mark_attendance(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        attendance_date: Optional[date],
        status: str,
        marked_by: User,
        check_in_time: Optional[time] = None,
        check_out_time: Optional[time] = None,
        half_day_type: Optional[str] = None,
        remarks: Optional[str] = None,
        branch_id: Optional[uuid.UUID] = None,
    ) -> StaffAttendance:
        """Create or overwrite a staff member's record for a day"""
        if attendance_date is None:
            raise ValidationError("Attendance date is required")
        if attendance_date > self.clock().date():
            raise FutureDate()
        parsed = _parse_status(status)
        half_day = _parse_half_day(half_day_type, parsed)
        if check_in_time and check_out_time and check_out_time <= check_in_time:
            raise ValidationError("Check-out time must be after check-in time")
        self._ensure_member(tenant_id, user_id)

        record = self.repo.get_for_day(tenant_id, user_id, attendance_date)
        branch_id = self._resolve_branch(tenant_id, branch_id or (record.branch_id if record else None))

        check_in = datetime.combine(attendance_date, check_in_time) if check_in_time else None
        check_out = datetime.combine(attendance_date, check_out_time) if check_out_time else None
        is_late, late_minutes = False, 0
        if parsed is StaffAttendanceStatus.PRESENT and check_in is not None:
            is_late, late_minutes = self._lateness(tenant_id, branch_id, check_in)

        if record is None:
            record = self.repo.add(StaffAttendance(tenant_id=tenant_id, user_id=user_id, attendance_date=attendance_date))
        record.branch_id = branch_id
        record.status = parsed.value
        record.half_day_type = half_day
        record.check_in_time = check_in
        record.check_out_time = check_out
        record.is_late = is_late
        record.late_minutes = late_minutes
        record.remarks = _clean(remarks)
        record.marked_by = marked_by.id
        record.marked_at = self.clock()

        self._commit(record, "marking staff attendance")
        logger.info(f"Staff attendance marked by {marked_by.email}: {user_id} {attendance_date} {parsed.value}")
        return record

    def get_attendance(self, tenant_id: uuid.UUID, attendance_id: uuid.UUID) -> StaffAttendance:
        record = self.repo.get(tenant_id, attendance_id)
        if not record:
            raise StaffAttendanceNotFound()
        return record

    def list_attendance(self, filters: StaffAttendanceFilter):
        if filters.status is not None:
            filters.status = _parse_status(filters.status).value
        try:
            return self.repo.list(filters)
        except LookupError:
            raise ValidationError("Invalid cursor")

    def monthly_summary(self, tenant_id: uuid.UUID, user_id: uuid.UUID, year: int, month: int) -> Dict[str, Any]:
        start, end = month_bounds(year, month)
        self._ensure_member(tenant_id, user_id)
        records = self.repo.get_in_range(tenant_id, user_id, start, end)

        counts = {status: 0 for status in StaffAttendanceStatus}
        late_days = total_late_minutes = 0
        for record in records:
            counts[StaffAttendanceStatus(record.status)] += 1
            if record.is_late:
                late_days += 1
                total_late_minutes += record.late_minutes

        return {
            "user_id": user_id,
            "year": year,
            "month": month,
            "month_name": calendar.month_name[month],
            "total_days": len(records),
            "present_days": counts[StaffAttendanceStatus.PRESENT],
            "absent_days": counts[StaffAttendanceStatus.ABSENT],
            "half_days": counts[StaffAttendanceStatus.HALF_DAY],
            "leave_days": counts[StaffAttendanceStatus.ON_LEAVE],
            "holiday_days": counts[StaffAttendanceStatus.HOLIDAY],
            "late_days": late_days,
            "total_late_minutes": total_late_minutes,
        }

    # Regularization

    def request_regularization(
        self,
        tenant_id: uuid.UUID,
        user: User,
        request_date: Optional[date],
        requested_status: str,
        reason: Optional[str],
        supporting_document_url: Optional[str] = None,
    ) -> StaffAttendanceRegularization:
        """
        Ask for a past day's attendance to be corrected.

        When the branch does not require approval, the request is applied
        straight away and comes back already approved.
        """
        if request_date is None:
            raise ValidationError("Request date is required")
        if request_date > self.clock().date():
            raise FutureDate("Cannot regularize attendance for a future date")
        parsed = _parse_status(requested_status)
        reason = _clean(reason)
        if not reason:
            raise ValidationError("A reason is required for regularization")
        if len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(f"Reason must be at most {MAX_REASON_LENGTH} characters")

        if self.repo.get_pending_regularization(tenant_id, user.id, request_date):
            raise PendingRegularizationExists()

        record = self.repo.get_for_day(tenant_id, user.id, request_date)
        regularization = self.repo.add(StaffAttendanceRegularization(
            tenant_id=tenant_id,
            user_id=user.id,
            attendance_id=record.id if record else None,
            request_date=request_date,
            requested_status=parsed.value,
            reason=reason,
            supporting_document_url=_clean(supporting_document_url),
            status=RegularizationStatus.PENDING.value,
        ))

        branch_id = record.branch_id if record and record.branch_id else self._resolve_branch(tenant_id, None)
        if not self.work_settings(tenant_id, branch_id)["require_regularization_approval"]:
            self._apply(regularization, user.id)

        self._commit(regularization, "requesting regularization")
        logger.info(f"Regularization requested by {user.email} for {request_date}: {parsed.value} ({regularization.status})")
        return regularization

    def list_regularizations(
        self,
        tenant_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> List[StaffAttendanceRegularization]:
        if status is not None:
            try:
                status = RegularizationStatus(status.strip().lower()).value
            except ValueError:
                raise ValidationError(
                    f"Invalid regularization status '{status}'. Allowed: "
                    + ", ".join(s.value for s in RegularizationStatus)
                )
        return list(self.repo.list_regularizations(tenant_id, user_id, status))

    def get_regularization(self, tenant_id: uuid.UUID, regularization_id: uuid.UUID) -> StaffAttendanceRegularization:
        regularization = self.repo.get_regularization(tenant_id, regularization_id)
        if not regularization:
            raise RegularizationNotFound()
        return regularization

    def _pending(self, tenant_id: uuid.UUID, regularization_id: uuid.UUID) -> StaffAttendanceRegularization:
        regularization = self.get_regularization(tenant_id, regularization_id)
        if regularization.status != RegularizationStatus.PENDING.value:
            raise RegularizationAlreadyProcessed()
        return regularization

    def _apply(self, regularization: StaffAttendanceRegularization, reviewer_id: uuid.UUID) -> StaffAttendance:
        """Approve the request and write the requested status onto the day's record"""
        now = self.clock()
        tenant_id = regularization.tenant_id
        status = StaffAttendanceStatus(regularization.requested_status)

        record = self.repo.get_for_day(tenant_id, regularization.user_id, regularization.request_date)
        if record is None:
            record = self.repo.add(StaffAttendance(
                tenant_id=tenant_id,
                user_id=regularization.user_id,
                branch_id=self._resolve_branch(tenant_id, None),
                attendance_date=regularization.request_date,
                marked_by=reviewer_id,
                marked_at=now,
            ))
        record.status = status.value
        record.remarks = f"Regularized: {regularization.reason}"
        if status is not StaffAttendanceStatus.HALF_DAY:
            record.half_day_type = None
        if status is not StaffAttendanceStatus.PRESENT:
            record.is_late = False
            record.late_minutes = 0

        regularization.attendance_id = record.id
        regularization.status = RegularizationStatus.APPROVED.value
        regularization.reviewed_by = reviewer_id
        regularization.reviewed_at = now
        self.db.flush()
        return record

    def approve_regularization(self, tenant_id: uuid.UUID, regularization_id: uuid.UUID, reviewer: User) -> StaffAttendanceRegularization:
        regularization = self._pending(tenant_id, regularization_id)
        try:
            self._apply(regularization, reviewer.id)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error approving regularization {regularization_id}: {e}")
            raise
        self._commit(regularization, "approving regularization")
        logger.info(f"Regularization {regularization_id} approved by {reviewer.email}")
        return regularization

    def reject_regularization(
        self,
        tenant_id: uuid.UUID,
        regularization_id: uuid.UUID,
        reviewer: User,
        rejection_reason: Optional[str],
    ) -> StaffAttendanceRegularization:
        regularization = self._pending(tenant_id, regularization_id)
        rejection_reason = _clean(rejection_reason)
        if not rejection_reason:
            raise ValidationError("A rejection reason is required")

        regularization.status = RegularizationStatus.REJECTED.value
        regularization.reviewed_by = reviewer.id
        regularization.reviewed_at = self.clock()
        regularization.rejection_reason = rejection_reason
        self._commit(regularization, "rejecting regularization")
        logger.info(f"Regularization {regularization_id} rejected by {reviewer.email}")
        return regularization

    # Settings

    def get_settings(self, tenant_id: uuid.UUID, branch_id: uuid.UUID) -> Dict[str, Any]:
        branch = self.branches.get(tenant_id, branch_id)
        if not branch:
            raise BranchNotFound()
        result = self.work_settings(tenant_id, branch_id)
        result["branch_name"] = branch.name
        return result

    def update_settings(self, tenant_id: uuid.UUID, branch_id: uuid.UUID, user: User, **values) -> Dict[str, Any]:
        branch = self.branches.get(tenant_id, branch_id)
        if not branch:
            raise BranchNotFound()

        values = {k: v for k, v in values.items() if v is not None}
        merged = {**self.work_settings(tenant_id, branch_id), **values}
        if merged["work_end_time"] <= merged["work_start_time"]:
            raise ValidationError("Work end time must be after work start time")

        try:
            self.repo.upsert_settings(tenant_id, branch_id, **values)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating staff attendance settings for branch {branch_id}: {e}")
            raise

        logger.info(f"Staff attendance settings updated for branch {branch.code} by {user.email}: {values}")
        result = self.work_settings(tenant_id, branch_id)
        result["branch_name"] = branch.name
        return result
