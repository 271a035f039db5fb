# schoolhub/models/attendance.py - Student attendance, per-branch settings and audit trail
from __future__ import annotations
import enum
import uuid
from datetime import date, datetime, time
from sqlalchemy import String, Integer, Date, DateTime, Time, Text, Boolean, ForeignKey, Index, UniqueConstraint, CheckConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from schoolhub.models.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half_day"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def short_label(self) -> str:
        return STATUS_SHORT_LABELS[self]

    @property
    def is_attended(self) -> bool:
        return self is not AttendanceStatus.ABSENT

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


STATUS_LABELS = {
    AttendanceStatus.PRESENT: "Present",
    AttendanceStatus.ABSENT: "Absent",
    AttendanceStatus.LATE: "Late",
    AttendanceStatus.HALF_DAY: "Half Day",
}

STATUS_SHORT_LABELS = {
    AttendanceStatus.PRESENT: "P",
    AttendanceStatus.ABSENT: "A",
    AttendanceStatus.LATE: "L",
    AttendanceStatus.HALF_DAY: "H",
}


class AttendanceChangeType(str, enum.Enum):
    CREATE = "create"
    EDIT = "edit"


class StudentAttendance(Base):
    """One row per student per day (period_id NULL) or per student per period."""

    __tablename__ = "student_attendance"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    student_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    section_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("sections.id"), nullable=False, index=True)
    period_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("period_slots.id"), index=True)
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AttendanceStatus.PRESENT.value)
    late_arrival_time: Mapped[time | None] = mapped_column(Time)
    remarks: Mapped[str | None] = mapped_column(Text)
    marked_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    marked_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    student: Mapped["Student"] = relationship("Student")
    section: Mapped["Section"] = relationship("Section")
    marked_by_user: Mapped["User"] = relationship("User")
    audit_entries: Mapped[list["StudentAttendanceAudit"]] = relationship(
        "StudentAttendanceAudit",
        back_populates="attendance",
        order_by="StudentAttendanceAudit.changed_at",
    )

    __table_args__ = (
        Index(
            "uq_student_attendance_daily",
            "tenant_id", "student_id", "attendance_date",
            unique=True,
            postgresql_where=text("period_id IS NULL"),
            sqlite_where=text("period_id IS NULL"),
        ),
        Index(
            "uq_student_attendance_period",
            "tenant_id", "student_id", "attendance_date", "period_id",
            unique=True,
            postgresql_where=text("period_id IS NOT NULL"),
            sqlite_where=text("period_id IS NOT NULL"),
        ),
        CheckConstraint("status IN ('present','absent','late','half_day')", name="ck_student_attendance_status"),
    )

    @property
    def status_enum(self) -> AttendanceStatus:
        return AttendanceStatus(self.status)


class StudentAttendanceSettings(Base):
    __tablename__ = "student_attendance_settings"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    branch_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("branches.id"), nullable=False)
    edit_window_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=120)
    late_threshold_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    sms_on_absent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    period_attendance_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    branch: Mapped["Branch"] = relationship("Branch")

    __table_args__ = (
        UniqueConstraint("branch_id", name="uq_student_attendance_settings_branch"),
    )


class StudentAttendanceAudit(Base):
    """Append-only history of attendance changes. Rows are never updated."""

    __tablename__ = "student_attendance_audit"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    attendance_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("student_attendance.id"), nullable=False, index=True)
    change_type: Mapped[str] = mapped_column(String(20), nullable=False, default=AttendanceChangeType.EDIT.value)
    previous_status: Mapped[str | None] = mapped_column(String(20))
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    previous_remarks: Mapped[str | None] = mapped_column(Text)
    new_remarks: Mapped[str | None] = mapped_column(Text)
    previous_late_arrival_time: Mapped[time | None] = mapped_column(Time)
    new_late_arrival_time: Mapped[time | None] = mapped_column(Time)
    change_reason: Mapped[str] = mapped_column(Text, nullable=False)
    changed_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    changed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    attendance: Mapped["StudentAttendance"] = relationship("StudentAttendance", back_populates="audit_entries")
    changed_by_user: Mapped["User"] = relationship("User")
