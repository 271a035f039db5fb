# schoolhub/repositories/timetable.py - Queries for timetables and timetable entries
from typing import Optional, Sequence
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from schoolhub.models.academic import PeriodSlot
from schoolhub.models.timetable import Timetable, TimetableEntry, TimetableStatus


class TimetableRepository:
    def __init__(self, db: Session):
        self.db = db

    # Timetables

    def get(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID) -> Optional[Timetable]:
        return self.db.execute(
            select(Timetable).where(Timetable.tenant_id == tenant_id, Timetable.id == timetable_id)
        ).scalar_one_or_none()

    def list(
        self,
        tenant_id: uuid.UUID,
        section_id: Optional[uuid.UUID] = None,
        branch_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> Sequence[Timetable]:
        query = select(Timetable).where(Timetable.tenant_id == tenant_id)
        if section_id:
            query = query.where(Timetable.section_id == section_id)
        if branch_id:
            query = query.where(Timetable.branch_id == branch_id)
        if status:
            query = query.where(Timetable.status == status)
        return self.db.execute(
            query.order_by(Timetable.created_at.desc(), Timetable.name)
        ).scalars().all()

    def published_for_section(self, tenant_id: uuid.UUID, section_id: uuid.UUID) -> Sequence[Timetable]:
        return self.db.execute(
            select(Timetable).where(
                Timetable.tenant_id == tenant_id,
                Timetable.section_id == section_id,
                Timetable.status == TimetableStatus.PUBLISHED.value,
            )
        ).scalars().all()

    # Entries

    def list_entries(self, timetable_id: uuid.UUID) -> Sequence[TimetableEntry]:
        """Entries ordered by day, then by period start time"""
        return self.db.execute(
            select(TimetableEntry)
            .join(PeriodSlot, TimetableEntry.period_slot_id == PeriodSlot.id)
            .options(selectinload(TimetableEntry.teacher))
            .where(TimetableEntry.timetable_id == timetable_id)
            .order_by(TimetableEntry.day_of_week, PeriodSlot.start_time)
        ).scalars().all()

    def get_entry(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID, entry_id: uuid.UUID) -> Optional[TimetableEntry]:
        return self.db.execute(
            select(TimetableEntry).where(
                TimetableEntry.tenant_id == tenant_id,
                TimetableEntry.timetable_id == timetable_id,
                TimetableEntry.id == entry_id,
            )
        ).scalar_one_or_none()

    def get_entry_for_slot(self, timetable_id: uuid.UUID, day_of_week: int, period_slot_id: uuid.UUID) -> Optional[TimetableEntry]:
        return self.db.execute(
            select(TimetableEntry).where(
                TimetableEntry.timetable_id == timetable_id,
                TimetableEntry.day_of_week == day_of_week,
                TimetableEntry.period_slot_id == period_slot_id,
            )
        ).scalar_one_or_none()

    def teacher_entries(self, tenant_id: uuid.UUID, teacher_id: uuid.UUID) -> Sequence[TimetableEntry]:
        """A teacher's entries across every published timetable"""
        return self.db.execute(
            select(TimetableEntry)
            .join(Timetable, TimetableEntry.timetable_id == Timetable.id)
            .join(PeriodSlot, TimetableEntry.period_slot_id == PeriodSlot.id)
            .options(selectinload(TimetableEntry.timetable).selectinload(Timetable.section))
            .where(
                TimetableEntry.tenant_id == tenant_id,
                TimetableEntry.teacher_id == teacher_id,
                Timetable.status == TimetableStatus.PUBLISHED.value,
            )
            .order_by(TimetableEntry.day_of_week, PeriodSlot.start_time)
        ).scalars().all()

    def add(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    def delete(self, obj) -> None:
        self.db.delete(obj)
        self.db.flush()
