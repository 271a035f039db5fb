# schoolhub/repositories/staff_attendance.py - Queries for staff attendance, regularizations and work-hour settings
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Tuple
import uuid

from sqlalchemy import select, func, and_, or_
from sqlalchemy.orm import Session, selectinload

from schoolhub.models.staff_attendance import (
    RegularizationStatus,
    StaffAttendance,
    StaffAttendanceRegularization,
    StaffAttendanceSettings,
)
from schoolhub.repositories.attendance import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


@dataclass
class StaffAttendanceFilter:
    tenant_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None
    status: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    cursor: Optional[uuid.UUID] = None
    limit: int = DEFAULT_PAGE_SIZE


class StaffAttendanceRepository:
    def __init__(self, db: Session):
        self.db = db

    # Records

    def get(self, tenant_id: uuid.UUID, attendance_id: uuid.UUID) -> Optional[StaffAttendance]:
        return self.db.execute(
            select(StaffAttendance).where(
                StaffAttendance.tenant_id == tenant_id,
                StaffAttendance.id == attendance_id,
            )
        ).scalar_one_or_none()

    def get_for_day(self, tenant_id: uuid.UUID, user_id: uuid.UUID, attendance_date: date) -> Optional[StaffAttendance]:
        return self.db.execute(
            select(StaffAttendance).where(
                StaffAttendance.tenant_id == tenant_id,
                StaffAttendance.user_id == user_id,
                StaffAttendance.attendance_date == attendance_date,
            )
        ).scalar_one_or_none()

    def get_in_range(self, tenant_id: uuid.UUID, user_id: uuid.UUID, start: date, end: date) -> Sequence[StaffAttendance]:
        return self.db.execute(
            select(StaffAttendance)
            .where(
                StaffAttendance.tenant_id == tenant_id,
                StaffAttendance.user_id == user_id,
                StaffAttendance.attendance_date >= start,
                StaffAttendance.attendance_date <= end,
            )
            .order_by(StaffAttendance.attendance_date)
        ).scalars().all()

    def list(self, filters: StaffAttendanceFilter) -> Tuple[Sequence[StaffAttendance], Optional[uuid.UUID], int]:
        """
        Same keyset paging as student attendance: newest date first, then id.
        Raises LookupError when the cursor record does not exist.
        """
        conditions = [StaffAttendance.tenant_id == filters.tenant_id]
        if filters.user_id:
            conditions.append(StaffAttendance.user_id == filters.user_id)
        if filters.branch_id:
            conditions.append(StaffAttendance.branch_id == filters.branch_id)
        if filters.status:
            conditions.append(StaffAttendance.status == filters.status)
        if filters.date_from:
            conditions.append(StaffAttendance.attendance_date >= filters.date_from)
        if filters.date_to:
            conditions.append(StaffAttendance.attendance_date <= filters.date_to)

        total = self.db.execute(
            select(func.count(StaffAttendance.id)).where(*conditions)
        ).scalar_one()

        query = select(StaffAttendance).options(selectinload(StaffAttendance.user)).where(*conditions)
        if filters.cursor:
            anchor = self.db.execute(
                select(StaffAttendance.attendance_date, StaffAttendance.id).where(
                    StaffAttendance.tenant_id == filters.tenant_id,
                    StaffAttendance.id == filters.cursor,
                )
            ).first()
            if anchor is None:
                raise LookupError(f"Unknown cursor {filters.cursor}")
            anchor_date, anchor_id = anchor
            query = query.where(
                or_(
                    StaffAttendance.attendance_date < anchor_date,
                    and_(StaffAttendance.attendance_date == anchor_date, StaffAttendance.id < anchor_id),
                )
            )

        limit = filters.limit if 0 < filters.limit <= MAX_PAGE_SIZE else DEFAULT_PAGE_SIZE
        rows = self.db.execute(
            query.order_by(StaffAttendance.attendance_date.desc(), StaffAttendance.id.desc())
            .limit(limit + 1)
        ).scalars().all()

        next_cursor = None
        if len(rows) > limit:
            rows = rows[:limit]
            next_cursor = rows[-1].id
        return rows, next_cursor, total

    def add(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    # Regularizations

    def get_regularization(self, tenant_id: uuid.UUID, regularization_id: uuid.UUID) -> Optional[StaffAttendanceRegularization]:
        return self.db.execute(
            select(StaffAttendanceRegularization).where(
                StaffAttendanceRegularization.tenant_id == tenant_id,
                StaffAttendanceRegularization.id == regularization_id,
            )
        ).scalar_one_or_none()

    def get_pending_regularization(self, tenant_id: uuid.UUID, user_id: uuid.UUID, request_date: date) -> Optional[StaffAttendanceRegularization]:
        return self.db.execute(
            select(StaffAttendanceRegularization).where(
                StaffAttendanceRegularization.tenant_id == tenant_id,
                StaffAttendanceRegularization.user_id == user_id,
                StaffAttendanceRegularization.request_date == request_date,
                StaffAttendanceRegularization.status == RegularizationStatus.PENDING.value,
            )
        ).scalars().first()

    def list_regularizations(
        self,
        tenant_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> Sequence[StaffAttendanceRegularization]:
        query = (
            select(StaffAttendanceRegularization)
            .options(selectinload(StaffAttendanceRegularization.user))
            .where(StaffAttendanceRegularization.tenant_id == tenant_id)
        )
        if user_id:
            query = query.where(StaffAttendanceRegularization.user_id == user_id)
        if status:
            query = query.where(StaffAttendanceRegularization.status == status)
        return self.db.execute(
            query.order_by(
                StaffAttendanceRegularization.request_date.desc(),
                StaffAttendanceRegularization.created_at.desc(),
            )
        ).scalars().all()

    # Settings

    def get_settings(self, tenant_id: uuid.UUID, branch_id: uuid.UUID) -> Optional[StaffAttendanceSettings]:
        return self.db.execute(
            select(StaffAttendanceSettings).where(
                StaffAttendanceSettings.tenant_id == tenant_id,
                StaffAttendanceSettings.branch_id == branch_id,
            )
        ).scalar_one_or_none()

    def upsert_settings(self, tenant_id: uuid.UUID, branch_id: uuid.UUID, **values) -> StaffAttendanceSettings:
        settings = self.get_settings(tenant_id, branch_id)
        if settings is None:
            settings = StaffAttendanceSettings(tenant_id=tenant_id, branch_id=branch_id)
            self.db.add(settings)
        for field, value in values.items():
            setattr(settings, field, value)
        self.db.flush()
        return settings
