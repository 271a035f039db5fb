# schoolhub/services/attendance_service.py - Student attendance marking, editing and settings
from datetime import date, datetime, time
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolhub.core.config import settings as app_settings
from schoolhub.core.errors import (
    AttendanceNotFound,
    BranchNotFound,
    ConflictError,
    EmptyAttendanceRecords,
    FutureDate,
    InvalidStatus,
    NoChanges,
    NoStudentsInSection,
    PeriodAttendanceDisabled,
    PeriodNotFound,
    SectionNotFound,
    ValidationError,
)
from schoolhub.models.academic import PeriodSlot, Section
from schoolhub.models.attendance import (
    AttendanceChangeType,
    AttendanceStatus,
    StudentAttendance,
    StudentAttendanceAudit,
)
from schoolhub.models.user import User
from schoolhub.repositories.academic import AcademicRepository
from schoolhub.repositories.attendance import AttendanceFilter, AttendanceRepository
from schoolhub.repositories.tenant import BranchRepository
from schoolhub.services.attendance_stats import StatusCounts, count_statuses, format_mark_message
from schoolhub.services.edit_policy import EditWindowStatus, evaluate_edit_window

logger = logging.getLogger(__name__)

INITIAL_MARKING_REASON = "Initial marking"
REMARK_REASON = "Re-marked class attendance"
MAX_REASON_LENGTH = 500


def _parse_status(value: Any) -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError:
        raise InvalidStatus(
            f"Invalid attendance status '{value}'. Allowed: {', '.join(AttendanceStatus.values())}"
        )


def _field(record: Any, name: str, default=None):
    """Read a field from a dict or an object (Pydantic model)"""
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def summary_dict(counts: StatusCounts, total: int) -> Dict[str, int]:
    return {"total": total, **counts.as_dict()}


class StudentAttendanceService:
    """Service class for student attendance operations"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock
        self.repo = AttendanceRepository(db)
        self.academic = AcademicRepository(db)
        self.branches = BranchRepository(db)

    # Helpers

    def _today(self) -> date:
        return self.clock().date()

    def _ensure_not_future(self, attendance_date: Optional[date]) -> None:
        if attendance_date is None:
            raise ValidationError("Attendance date is required")
        if attendance_date > self._today():
            raise FutureDate()

    def _get_section(self, tenant_id: uuid.UUID, section_id: uuid.UUID) -> Section:
        section = self.academic.get_section(tenant_id, section_id)
        if not section:
            raise SectionNotFound()
        return section

    def _get_period(self, tenant_id: uuid.UUID, period_id: uuid.UUID, section: Section) -> PeriodSlot:
        period = self.academic.get_period(tenant_id, period_id)
        if not period:
            raise PeriodNotFound()
        if period.branch_id != section.branch_id:
            raise ValidationError("Period slot does not belong to this section's branch")
        if not self.branch_settings(tenant_id, section.branch_id)["period_attendance_enabled"]:
            raise PeriodAttendanceDisabled()
        return period

    def branch_settings(self, tenant_id: uuid.UUID, branch_id: uuid.UUID) -> Dict[str, Any]:
        """Stored settings for a branch, or the configured defaults"""
        stored = self.repo.get_settings(tenant_id, branch_id)
        if stored:
            return {
                "id": stored.id,
                "branch_id": branch_id,
                "edit_window_minutes": stored.edit_window_minutes,
                "late_threshold_minutes": stored.late_threshold_minutes,
                "sms_on_absent": stored.sms_on_absent,
                "period_attendance_enabled": stored.period_attendance_enabled,
                "is_default": False,
                "created_at": stored.created_at,
                "updated_at": stored.updated_at,
            }
        return {
            "id": None,
            "branch_id": branch_id,
            "edit_window_minutes": app_settings.ATTENDANCE_DEFAULT_EDIT_WINDOW_MINUTES,
            "late_threshold_minutes": app_settings.ATTENDANCE_DEFAULT_LATE_THRESHOLD_MINUTES,
            "sms_on_absent": False,
            "period_attendance_enabled": False,
            "is_default": True,
            "created_at": None,
            "updated_at": None,
        }

    def edit_window_minutes(self, tenant_id: uuid.UUID, section: Section) -> int:
        """Edit window for a section, read from its branch (section -> class -> branch)"""
        return self.branch_settings(tenant_id, section.branch_id)["edit_window_minutes"]

    def _evaluate(self, record: StudentAttendance, user: User, is_admin: bool, window_minutes: int) -> EditWindowStatus:
        return evaluate_edit_window(
            marked_at=record.marked_at,
            marked_by=record.marked_by,
            editor_id=user.id,
            editor_is_admin=is_admin,
            window_minutes=window_minutes,
            now=self.clock(),
        )

    @staticmethod
    def _student_row(student, record: Optional[StudentAttendance]) -> Dict[str, Any]:
        row = {
            "student_id": student.id,
            "admission_number": student.admission_number,
            "roll_number": student.roll_number,
            "first_name": student.first_name,
            "last_name": student.last_name,
            "full_name": student.full_name,
            "status": None,
            "late_arrival_time": None,
            "remarks": None,
        }
        if record is not None:
            row["status"] = record.status
            row["late_arrival_time"] = record.late_arrival_time
            row["remarks"] = record.remarks
        return row

    # Sections for marking

    def get_teacher_sections(
        self,
        tenant_id: uuid.UUID,
        attendance_date: date,
        branch_id: Optional[uuid.UUID] = None,
    ) -> List[Dict[str, Any]]:
        """Active sections with students and whether they are marked for the date"""
        student_counts = self.academic.count_students_by_section(tenant_id)
        marked_counts = self.repo.count_marked_by_section(tenant_id, attendance_date)

        sections = []
        for section in self.academic.list_sections(tenant_id):
            if branch_id and section.branch_id != branch_id:
                continue
            student_count = student_counts.get(section.id, 0)
            if student_count == 0:
                continue
            marked_count = marked_counts.get(section.id, 0)
            sections.append({
                "section_id": section.id,
                "section_name": section.name,
                "section_code": section.code,
                "class_name": section.class_name,
                "class_code": section.school_class.code if section.school_class else "",
                "student_count": student_count,
                "is_marked_today": marked_count > 0,
                "marked_count": marked_count,
            })
        return sections

    # Class (daily) attendance

    def get_class_attendance(
        self,
        tenant_id: uuid.UUID,
        section_id: uuid.UUID,
        attendance_date: date,
        user: User,
        is_admin: bool = False,
        period_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        """Students of a section with their status for a date (daily, or one period)"""
        self._ensure_not_future(attendance_date)
        section = self._get_section(tenant_id, section_id)
        period = self._get_period(tenant_id, period_id, section) if period_id else None

        students = self.academic.get_students_in_section(tenant_id, section_id)
        if not students:
            raise NoStudentsInSection()

        records = self.repo.get_section_records(tenant_id, section_id, attendance_date, period_id)
        by_student = {r.student_id: r for r in records}

        history = {}
        if period is None:
            history = self.repo.get_history(
                tenant_id,
                [s.id for s in students],
                attendance_date,
                app_settings.ATTENDANCE_HISTORY_DAYS,
            )

        rows = []
        for student in students:
            row = self._student_row(student, by_student.get(student.id))
            if period is None:
                row["last_5_days"] = [r.status_enum.short_label for r in history.get(student.id, [])]
            rows.append(row)

        counts = count_statuses(r.status for r in records)
        result = {
            "section_id": section.id,
            "section_name": section.name,
            "class_name": section.class_name,
            "date": attendance_date,
            "students": rows,
            "is_marked": bool(records),
            "can_edit": True,
            "marked_at": None,
            "marked_by": None,
            "marked_by_name": None,
            "summary": summary_dict(counts, len(students)),
        }

        if records:
            first = self.repo.get_first_record(tenant_id, section_id, attendance_date, period_id)
            window = self._evaluate(first, user, is_admin, self.edit_window_minutes(tenant_id, section))
            result["can_edit"] = window.can_edit
            result["marked_at"] = first.marked_at
            result["marked_by"] = first.marked_by
            result["marked_by_name"] = first.marked_by_user.full_name if first.marked_by_user else None

        if period is not None:
            result.update(self._period_info(period))
        return result

    def mark_class_attendance(
        self,
        tenant_id: uuid.UUID,
        section_id: uuid.UUID,
        attendance_date: Optional[date],
        records: Iterable[Any],
        user: User,
        is_admin: bool = False,
        period_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        """
        Mark attendance for a whole section in one transaction.

        A section that is already marked for the date (and period) may only be
        re-marked by someone who passes the edit window check against the
        earliest record. New rows get a ``create`` audit entry, changed rows an
        ``edit`` entry. Unchanged rows are left alone.
        """
        records = list(records)
        self._ensure_not_future(attendance_date)
        if not records:
            raise EmptyAttendanceRecords()

        section = self._get_section(tenant_id, section_id)
        if period_id:
            self._get_period(tenant_id, period_id, section)

        section_students = {s.id for s in self.academic.get_students_in_section(tenant_id, section_id)}

        prepared = []
        seen = set()
        counts = StatusCounts()
        for record in records:
            student_id = _field(record, "student_id")
            status = _parse_status(_field(record, "status"))
            if student_id in seen:
                raise ValidationError(f"Duplicate attendance record for student {student_id}")
            if student_id not in section_students:
                raise ValidationError(f"Student {student_id} does not belong to this section")
            seen.add(student_id)
            counts.add(status)
            prepared.append((
                student_id,
                status.value,
                _field(record, "late_arrival_time"),
                _field(record, "remarks"),
            ))

        windows = {section.id: self.edit_window_minutes(tenant_id, section)}
        first = self.repo.get_first_record(tenant_id, section_id, attendance_date, period_id)
        if first is not None:
            self._evaluate(first, user, is_admin, windows[section.id]).ensure_can_edit()

        # Rows may have been marked from another section before the student moved
        existing = self.repo.get_student_records(tenant_id, seen, attendance_date, period_id)
        for student_id, status, late_time, remarks in prepared:
            current = existing.get(student_id)
            if current is None or not self._will_change(current, section_id, status, remarks, late_time):
                continue
            if current.section_id not in windows:
                windows[current.section_id] = self.edit_window_minutes(tenant_id, current.section)
            self._evaluate(current, user, is_admin, windows[current.section_id]).ensure_can_edit()

        now = self.clock()
        created = updated = 0

        try:
            for student_id, status, late_time, remarks in prepared:
                current = existing.get(student_id)
                if current is None:
                    attendance = self.repo.add(StudentAttendance(
                        tenant_id=tenant_id,
                        student_id=student_id,
                        section_id=section_id,
                        period_id=period_id,
                        attendance_date=attendance_date,
                        status=status,
                        late_arrival_time=late_time,
                        remarks=remarks,
                        marked_by=user.id,
                        marked_at=now,
                    ))
                    self._audit(
                        attendance, AttendanceChangeType.CREATE, user, now, INITIAL_MARKING_REASON,
                        previous=None,
                    )
                    created += 1
                    continue

                if not self._will_change(current, section_id, status, remarks, late_time):
                    continue

                previous = self._snapshot(current)

                current.section_id = section_id
                current.status = status
                current.remarks = remarks
                current.late_arrival_time = late_time
                self._audit(current, AttendanceChangeType.EDIT, user, now, REMARK_REASON, previous=previous)
                updated += 1

            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Concurrent marking detected for section {section_id} on {attendance_date}: {e}")
            raise ConflictError("Attendance was marked concurrently. Reload and try again")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error marking attendance for section {section_id}: {e}")
            raise

        logger.info(
            f"Attendance marked for section {section_id} on {attendance_date}"
            f"{f' period {period_id}' if period_id else ''} by {user.email}: "
            f"{created} created, {updated} updated"
        )

        result = {
            "section_id": section_id,
            "date": attendance_date,
            "summary": summary_dict(counts, len(prepared)),
            "marked_at": first.marked_at if first is not None else now,
            "created": created,
            "updated": updated,
            "message": format_mark_message(counts),
        }
        if period_id:
            result["period_id"] = period_id
        return result

    @staticmethod
    def _snapshot(record: StudentAttendance):
        return record.status, record.remarks, record.late_arrival_time

    @classmethod
    def _will_change(cls, record: StudentAttendance, section_id: uuid.UUID, status, remarks, late_time) -> bool:
        return record.section_id != section_id or cls._snapshot(record) != (status, remarks, late_time)

    def _audit(
        self,
        record: StudentAttendance,
        change_type: AttendanceChangeType,
        user: User,
        changed_at: datetime,
        reason: str,
        previous=None,
    ) -> StudentAttendanceAudit:
        entry = StudentAttendanceAudit(
            tenant_id=record.tenant_id,
            attendance_id=record.id,
            change_type=change_type.value,
            new_status=record.status,
            new_remarks=record.remarks,
            new_late_arrival_time=record.late_arrival_time,
            change_reason=reason,
            changed_by=user.id,
            changed_at=changed_at,
        )
        if previous is not None:
            entry.previous_status, entry.previous_remarks, entry.previous_late_arrival_time = previous
        return self.repo.add_audit(entry)

    # Period-wise attendance

    @staticmethod
    def _period_info(period: PeriodSlot) -> Dict[str, Any]:
        return {
            "period_id": period.id,
            "period_name": period.name,
            "period_number": period.period_number,
            "start_time": period.start_time,
            "end_time": period.end_time,
        }

    def get_section_periods(self, tenant_id: uuid.UUID, section_id: uuid.UUID, attendance_date: date) -> Dict[str, Any]:
        section = self._get_section(tenant_id, section_id)
        enabled = self.branch_settings(tenant_id, section.branch_id)["period_attendance_enabled"]
        student_count = len(self.academic.get_students_in_section(tenant_id, section_id))

        marked: Dict[uuid.UUID, int] = {}
        for record in self.repo.get_period_records(tenant_id, section_id, attendance_date):
            marked[record.period_id] = marked.get(record.period_id, 0) + 1

        periods = []
        for period in self.academic.list_periods(tenant_id, section.branch_id):
            info = self._period_info(period)
            info["marked_count"] = marked.get(period.id, 0)
            info["is_marked"] = info["marked_count"] > 0
            info["total_students"] = student_count
            periods.append(info)

        return {
            "section_id": section.id,
            "section_name": section.name,
            "class_name": section.class_name,
            "date": attendance_date,
            "day_of_week": attendance_date.isoweekday() % 7,
            "day_name": attendance_date.strftime("%A"),
            "period_attendance_enabled": enabled,
            "periods": periods,
        }

    def get_daily_summary(self, tenant_id: uuid.UUID, section_id: uuid.UUID, attendance_date: date) -> Dict[str, Any]:
        """
        Per-student view of a day's period attendance.

        A student is ``present`` overall when more than half of the marked
        periods were attended (late and half day count as attended).
        """
        section = self._get_section(tenant_id, section_id)
        students = self.academic.get_students_in_section(tenant_id, section_id)
        periods = self.academic.list_periods(tenant_id, section.branch_id)

        statuses: Dict[uuid.UUID, Dict[uuid.UUID, str]] = {}
        for record in self.repo.get_period_records(tenant_id, section_id, attendance_date):
            statuses.setdefault(record.student_id, {})[record.period_id] = record.status

        rows = []
        percentages = []
        full_present = absent = 0
        for student in students:
            period_statuses = statuses.get(student.id, {})
            counts = count_statuses(period_statuses.values())
            percentage = round(counts.attended / counts.marked * 100, 2) if counts.marked else 0.0

            overall = None
            if counts.marked:
                overall = AttendanceStatus.PRESENT.value if counts.attended * 2 > counts.marked else AttendanceStatus.ABSENT.value
                percentages.append(percentage)
                if counts.present == len(periods):
                    full_present += 1
                if overall == AttendanceStatus.ABSENT.value:
                    absent += 1

            rows.append({
                "student_id": student.id,
                "admission_number": student.admission_number,
                "roll_number": student.roll_number,
                "full_name": student.full_name,
                "period_statuses": {str(pid): status for pid, status in period_statuses.items()},
                "total_periods": len(periods),
                "marked_periods": counts.marked,
                "periods_present": counts.present,
                "periods_absent": counts.absent,
                "periods_late": counts.late,
                "periods_half_day": counts.half_day,
                "attendance_percentage": percentage,
                "overall_status": overall,
            })

        return {
            "section_id": section.id,
            "section_name": section.name,
            "class_name": section.class_name,
            "date": attendance_date,
            "day_name": attendance_date.strftime("%A"),
            "periods": [self._period_info(p) for p in periods],
            "students": rows,
            "summary": {
                "total_students": len(students),
                "total_periods": len(periods),
                "average_attendance": round(sum(percentages) / len(percentages), 2) if percentages else 0.0,
                "full_present_count": full_present,
                "absent_count": absent,
            },
        }

    # Single record: edit window, edit, audit trail

    def get_attendance(self, tenant_id: uuid.UUID, attendance_id: uuid.UUID) -> StudentAttendance:
        record = self.repo.get(tenant_id, attendance_id)
        if not record:
            raise AttendanceNotFound()
        return record

    def _record_window(self, record: StudentAttendance, user: User, is_admin: bool) -> EditWindowStatus:
        section = self._get_section(record.tenant_id, record.section_id)
        return self._evaluate(record, user, is_admin, self.edit_window_minutes(record.tenant_id, section))

    def get_edit_window(self, tenant_id: uuid.UUID, attendance_id: uuid.UUID, user: User, is_admin: bool = False) -> Dict[str, Any]:
        record = self.get_attendance(tenant_id, attendance_id)
        window = self._record_window(record, user, is_admin)
        return {
            "attendance_id": record.id,
            "marked_at": window.marked_at,
            "window_end_at": window.window_end_at,
            "window_minutes": window.window_minutes,
            "remaining_minutes": window.remaining_minutes,
            "is_within_window": window.is_within_window,
            "is_original_marker": window.is_original_marker,
            "can_edit": window.can_edit,
            "requires_admin_edit": window.requires_admin_edit,
            "edit_denied_reason": window.edit_denied_reason,
        }

    def edit_attendance(
        self,
        tenant_id: uuid.UUID,
        attendance_id: uuid.UUID,
        user: User,
        reason: Optional[str],
        status: Optional[str] = None,
        remarks: Optional[str] = None,
        late_arrival_time: Optional[time] = None,
        is_admin: bool = False,
    ) -> Dict[str, Any]:
        """
        Edit a single attendance record and append an audit entry.

        ``None`` leaves a field unchanged. An empty ``remarks`` string clears the
        remarks. The check order is: record exists, reason valid, edit window,
        at least one field changes.
        """
        record = self.get_attendance(tenant_id, attendance_id)

        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to edit attendance")
        if len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(f"Reason must be at most {MAX_REASON_LENGTH} characters")

        new_status = _parse_status(status).value if status is not None else record.status

        self._record_window(record, user, is_admin).ensure_can_edit()

        previous = self._snapshot(record)
        new_values = (
            new_status,
            (remarks or None) if remarks is not None else record.remarks,
            late_arrival_time if late_arrival_time is not None else record.late_arrival_time,
        )
        if new_values == previous:
            raise NoChanges("No changes to apply: the new values match the current record")

        now = self.clock()
        try:
            record.status, record.remarks, record.late_arrival_time = new_values
            self._audit(record, AttendanceChangeType.EDIT, user, now, reason, previous=previous)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error editing attendance {attendance_id}: {e}")
            raise

        logger.info(f"Attendance {attendance_id} edited by {user.email}: {previous[0]} -> {record.status}")

        return {
            "attendance_id": record.id,
            "student_id": record.student_id,
            "date": record.attendance_date,
            "status": record.status,
            "edited_at": now,
            "edited_by": user.id,
            "message": "Attendance updated successfully",
        }

    def get_audit_trail(self, tenant_id: uuid.UUID, attendance_id: uuid.UUID) -> Dict[str, Any]:
        record = self.get_attendance(tenant_id, attendance_id)
        entries = []
        for entry in self.repo.list_audit(tenant_id, attendance_id):
            entries.append({
                "id": entry.id,
                "change_type": entry.change_type,
                "previous_status": entry.previous_status,
                "new_status": entry.new_status,
                "previous_remarks": entry.previous_remarks,
                "new_remarks": entry.new_remarks,
                "previous_late_arrival_time": entry.previous_late_arrival_time,
                "new_late_arrival_time": entry.new_late_arrival_time,
                "change_reason": entry.change_reason,
                "changed_by_id": entry.changed_by,
                "changed_by_name": entry.changed_by_user.full_name if entry.changed_by_user else "",
                "changed_at": entry.changed_at,
            })
        return {
            "attendance_id": record.id,
            "student_id": record.student_id,
            "student_name": record.student.full_name if record.student else "",
            "date": record.attendance_date,
            "audit_entries": entries,
            "total_changes": len(entries),
        }

    # Listing and settings

    def list_attendance(self, filters: AttendanceFilter):
        if filters.status is not None:
            filters.status = _parse_status(filters.status).value
        try:
            return self.repo.list(filters)
        except LookupError:
            raise ValidationError("Invalid cursor")

    def get_settings(self, tenant_id: uuid.UUID, branch_id: uuid.UUID) -> Dict[str, Any]:
        branch = self.branches.get(tenant_id, branch_id)
        if not branch:
            raise BranchNotFound()
        result = self.branch_settings(tenant_id, branch_id)
        result["branch_name"] = branch.name
        return result

    def update_settings(self, tenant_id: uuid.UUID, branch_id: uuid.UUID, user: User, **values) -> Dict[str, Any]:
        branch = self.branches.get(tenant_id, branch_id)
        if not branch:
            raise BranchNotFound()

        values = {k: v for k, v in values.items() if v is not None}
        try:
            self.repo.upsert_settings(tenant_id, branch_id, **values)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating attendance settings for branch {branch_id}: {e}")
            raise

        logger.info(f"Attendance settings updated for branch {branch.code} by {user.email}: {values}")
        result = self.branch_settings(tenant_id, branch_id)
        result["branch_name"] = branch.name
        return result
