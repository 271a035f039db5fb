# schoolhub/repositories/attendance.py - Queries for student attendance, settings and audit rows
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
import uuid

from sqlalchemy import select, func, and_, or_
from sqlalchemy.orm import Session, selectinload

from schoolhub.models.attendance import (
    StudentAttendance,
    StudentAttendanceSettings,
    StudentAttendanceAudit,
)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass
class AttendanceFilter:
    tenant_id: uuid.UUID
    section_id: Optional[uuid.UUID] = None
    student_id: Optional[uuid.UUID] = None
    period_id: Optional[uuid.UUID] = None
    status: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    cursor: Optional[uuid.UUID] = None
    limit: int = DEFAULT_PAGE_SIZE


def _period_clause(period_id: Optional[uuid.UUID]):
    """Daily records have no period; period records match exactly"""
    if period_id is None:
        return StudentAttendance.period_id.is_(None)
    return StudentAttendance.period_id == period_id


class AttendanceRepository:
    def __init__(self, db: Session):
        self.db = db

    # Records

    def get(self, tenant_id: uuid.UUID, attendance_id: uuid.UUID) -> Optional[StudentAttendance]:
        return self.db.execute(
            select(StudentAttendance)
            .options(
                selectinload(StudentAttendance.student),
                selectinload(StudentAttendance.section),
                selectinload(StudentAttendance.marked_by_user),
            )
            .where(StudentAttendance.tenant_id == tenant_id, StudentAttendance.id == attendance_id)
        ).scalar_one_or_none()

    def get_section_records(
        self,
        tenant_id: uuid.UUID,
        section_id: uuid.UUID,
        attendance_date: date,
        period_id: Optional[uuid.UUID] = None,
    ) -> Sequence[StudentAttendance]:
        return self.db.execute(
            select(StudentAttendance)
            .where(
                StudentAttendance.tenant_id == tenant_id,
                StudentAttendance.section_id == section_id,
                StudentAttendance.attendance_date == attendance_date,
                _period_clause(period_id),
            )
            .order_by(StudentAttendance.created_at)
        ).scalars().all()

    def get_student_records(
        self,
        tenant_id: uuid.UUID,
        student_ids: Iterable[uuid.UUID],
        attendance_date: date,
        period_id: Optional[uuid.UUID] = None,
    ) -> Dict[uuid.UUID, StudentAttendance]:
        """Existing records for the given students keyed by student id"""
        student_ids = list(student_ids)
        if not student_ids:
            return {}
        rows = self.db.execute(
            select(StudentAttendance).where(
                StudentAttendance.tenant_id == tenant_id,
                StudentAttendance.student_id.in_(student_ids),
                StudentAttendance.attendance_date == attendance_date,
                _period_clause(period_id),
            )
        ).scalars().all()
        return {row.student_id: row for row in rows}

    def get_period_records(
        self,
        tenant_id: uuid.UUID,
        section_id: uuid.UUID,
        attendance_date: date,
    ) -> Sequence[StudentAttendance]:
        """All period-wise records of a section for a day"""
        return self.db.execute(
            select(StudentAttendance).where(
                StudentAttendance.tenant_id == tenant_id,
                StudentAttendance.section_id == section_id,
                StudentAttendance.attendance_date == attendance_date,
                StudentAttendance.period_id.is_not(None),
            )
        ).scalars().all()

    def get_first_record(
        self,
        tenant_id: uuid.UUID,
        section_id: uuid.UUID,
        attendance_date: date,
        period_id: Optional[uuid.UUID] = None,
    ) -> Optional[StudentAttendance]:
        """Earliest marked record; its marker and time drive the edit window"""
        return self.db.execute(
            select(StudentAttendance)
            .options(selectinload(StudentAttendance.marked_by_user))
            .where(
                StudentAttendance.tenant_id == tenant_id,
                StudentAttendance.section_id == section_id,
                StudentAttendance.attendance_date == attendance_date,
                _period_clause(period_id),
            )
            .order_by(StudentAttendance.marked_at, StudentAttendance.created_at)
            .limit(1)
        ).scalars().first()

    def count_marked_by_section(self, tenant_id: uuid.UUID, attendance_date: date) -> Dict[uuid.UUID, int]:
        rows = self.db.execute(
            select(StudentAttendance.section_id, func.count(StudentAttendance.id))
            .where(
                StudentAttendance.tenant_id == tenant_id,
                StudentAttendance.attendance_date == attendance_date,
                StudentAttendance.period_id.is_(None),
            )
            .group_by(StudentAttendance.section_id)
        ).all()
        return {section_id: count for section_id, count in rows}

    def marked_section_ids(self, tenant_id: uuid.UUID, attendance_date: date) -> Set[uuid.UUID]:
        return set(self.count_marked_by_section(tenant_id, attendance_date))

    def get_history(
        self,
        tenant_id: uuid.UUID,
        student_ids: Iterable[uuid.UUID],
        end_date: date,
        days: int,
    ) -> Dict[uuid.UUID, List[StudentAttendance]]:
        """Daily records of the last ``days`` days up to ``end_date``, newest first"""
        student_ids = list(student_ids)
        history: Dict[uuid.UUID, List[StudentAttendance]] = {sid: [] for sid in student_ids}
        if not student_ids:
            return history

        rows = self.db.execute(
            select(StudentAttendance)
            .where(
                StudentAttendance.tenant_id == tenant_id,
                StudentAttendance.student_id.in_(student_ids),
                StudentAttendance.period_id.is_(None),
                StudentAttendance.attendance_date >= end_date - timedelta(days=days),
                StudentAttendance.attendance_date <= end_date,
            )
            .order_by(StudentAttendance.attendance_date.desc())
        ).scalars().all()

        for row in rows:
            history[row.student_id].append(row)
        return history

    def get_daily_records_in_range(
        self,
        tenant_id: uuid.UUID,
        date_from: date,
        date_to: date,
        section_id: Optional[uuid.UUID] = None,
        student_id: Optional[uuid.UUID] = None,
    ) -> Sequence[StudentAttendance]:
        query = select(StudentAttendance).where(
            StudentAttendance.tenant_id == tenant_id,
            StudentAttendance.period_id.is_(None),
            StudentAttendance.attendance_date >= date_from,
            StudentAttendance.attendance_date <= date_to,
        )
        if section_id:
            query = query.where(StudentAttendance.section_id == section_id)
        if student_id:
            query = query.where(StudentAttendance.student_id == student_id)
        return self.db.execute(query.order_by(StudentAttendance.attendance_date)).scalars().all()

    def list(self, filters: AttendanceFilter) -> Tuple[Sequence[StudentAttendance], Optional[uuid.UUID], int]:
        """
        Filtered listing ordered by date then id, newest first.

        The cursor is the id of the last record of the previous page. Returns
        ``(items, next_cursor, total)``; ``total`` ignores the cursor.
        Raises LookupError when the cursor record does not exist.
        """
        conditions = [StudentAttendance.tenant_id == filters.tenant_id]
        if filters.section_id:
            conditions.append(StudentAttendance.section_id == filters.section_id)
        if filters.student_id:
            conditions.append(StudentAttendance.student_id == filters.student_id)
        if filters.period_id:
            conditions.append(StudentAttendance.period_id == filters.period_id)
        if filters.status:
            conditions.append(StudentAttendance.status == filters.status)
        if filters.date_from:
            conditions.append(StudentAttendance.attendance_date >= filters.date_from)
        if filters.date_to:
            conditions.append(StudentAttendance.attendance_date <= filters.date_to)

        total = self.db.execute(
            select(func.count(StudentAttendance.id)).where(*conditions)
        ).scalar_one()

        query = (
            select(StudentAttendance)
            .options(
                selectinload(StudentAttendance.student),
                selectinload(StudentAttendance.section),
                selectinload(StudentAttendance.marked_by_user),
            )
            .where(*conditions)
        )

        if filters.cursor:
            anchor = self.db.execute(
                select(StudentAttendance.attendance_date, StudentAttendance.id).where(
                    StudentAttendance.tenant_id == filters.tenant_id,
                    StudentAttendance.id == filters.cursor,
                )
            ).first()
            if anchor is None:
                raise LookupError(f"Unknown cursor {filters.cursor}")
            anchor_date, anchor_id = anchor
            query = query.where(
                or_(
                    StudentAttendance.attendance_date < anchor_date,
                    and_(
                        StudentAttendance.attendance_date == anchor_date,
                        StudentAttendance.id < anchor_id,
                    ),
                )
            )

        limit = filters.limit if 0 < filters.limit <= MAX_PAGE_SIZE else DEFAULT_PAGE_SIZE
        rows = self.db.execute(
            query.order_by(StudentAttendance.attendance_date.desc(), StudentAttendance.id.desc())
            .limit(limit + 1)
        ).scalars().all()

        next_cursor = None
        if len(rows) > limit:
            rows = rows[:limit]
            next_cursor = rows[-1].id
        return rows, next_cursor, total

    def add(self, record: StudentAttendance) -> StudentAttendance:
        self.db.add(record)
        self.db.flush()
        return record

    # Settings

    def get_settings(self, tenant_id: uuid.UUID, branch_id: uuid.UUID) -> Optional[StudentAttendanceSettings]:
        return self.db.execute(
            select(StudentAttendanceSettings).where(
                StudentAttendanceSettings.tenant_id == tenant_id,
                StudentAttendanceSettings.branch_id == branch_id,
            )
        ).scalar_one_or_none()

    def upsert_settings(self, tenant_id: uuid.UUID, branch_id: uuid.UUID, **values) -> StudentAttendanceSettings:
        settings = self.get_settings(tenant_id, branch_id)
        if settings is None:
            settings = StudentAttendanceSettings(tenant_id=tenant_id, branch_id=branch_id)
            self.db.add(settings)
        for field, value in values.items():
            setattr(settings, field, value)
        self.db.flush()
        return settings

    # Audit

    def add_audit(self, entry: StudentAttendanceAudit) -> StudentAttendanceAudit:
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_audit(self, tenant_id: uuid.UUID, attendance_id: uuid.UUID) -> Sequence[StudentAttendanceAudit]:
        return self.db.execute(
            select(StudentAttendanceAudit)
            .options(selectinload(StudentAttendanceAudit.changed_by_user))
            .where(
                StudentAttendanceAudit.tenant_id == tenant_id,
                StudentAttendanceAudit.attendance_id == attendance_id,
            )
            .order_by(StudentAttendanceAudit.changed_at, StudentAttendanceAudit.created_at)
        ).scalars().all()
