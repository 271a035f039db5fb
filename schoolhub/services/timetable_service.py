# schoolhub/services/timetable_service.py - Section timetables: drafting, entries, publishing and teacher schedules
import logging
import uuid
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from schoolhub.core.errors import (
    ConflictError,
    PeriodNotFound,
    SectionNotFound,
    TimetableEntryNotFound,
    TimetableNotDraft,
    TimetableNotFound,
    UserNotFound,
    ValidationError,
)
from schoolhub.models.timetable import DAY_NAMES, Timetable, TimetableEntry, TimetableStatus
from schoolhub.models.user import User
from schoolhub.repositories.academic import AcademicRepository
from schoolhub.repositories.tenant import TenantRepository
from schoolhub.repositories.timetable import TimetableRepository

logger = logging.getLogger(__name__)

ENTRY_FIELDS = ("subject", "teacher_id", "room_number", "notes", "is_free_period")


def _clean(text: Optional[str]) -> Optional[str]:
    text = (text or "").strip()
    return text or None


def _check_dates(effective_from: Optional[date], effective_to: Optional[date]) -> None:
    if effective_from and effective_to and effective_to < effective_from:
        raise ValidationError("Effective end date must not be before the start date")


class TimetableService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock
        self.repo = TimetableRepository(db)
        self.academic = AcademicRepository(db)
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

    # Timetables

    def create_timetable(
        self,
        tenant_id: uuid.UUID,
        user: User,
        section_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        effective_from: Optional[date] = None,
        effective_to: Optional[date] = None,
    ) -> Timetable:
        section = self.academic.get_section(tenant_id, section_id)
        if not section:
            raise SectionNotFound()
        _check_dates(effective_from, effective_to)

        timetable = self.repo.add(Timetable(
            tenant_id=tenant_id,
            branch_id=section.branch_id,
            section_id=section.id,
            name=name.strip(),
            description=_clean(description),
            status=TimetableStatus.DRAFT.value,
            effective_from=effective_from,
            effective_to=effective_to,
            created_by=user.id,
        ))
        self._commit(timetable, "creating timetable")
        logger.info(f"Timetable created: {timetable.name} for section {section.code}")
        return timetable

    def list_timetables(
        self,
        tenant_id: uuid.UUID,
        section_id: Optional[uuid.UUID] = None,
        branch_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> List[Timetable]:
        if status is not None:
            status = status.strip().lower()
            if status not in TimetableStatus.values():
                raise ValidationError(f"Invalid timetable status. Allowed: {', '.join(TimetableStatus.values())}")
        return list(self.repo.list(tenant_id, section_id, branch_id, status))

    def get_timetable(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID) -> Timetable:
        timetable = self.repo.get(tenant_id, timetable_id)
        if not timetable:
            raise TimetableNotFound()
        return timetable

    def _get_draft(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID) -> Timetable:
        timetable = self.get_timetable(tenant_id, timetable_id)
        if not timetable.is_draft:
            raise TimetableNotDraft()
        return timetable

    def update_timetable(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID, **changes) -> Timetable:
        timetable = self._get_draft(tenant_id, timetable_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if "description" in changes:
            changes["description"] = _clean(changes["description"])
        _check_dates(
            changes.get("effective_from", timetable.effective_from),
            changes.get("effective_to", timetable.effective_to),
        )
        for field, value in changes.items():
            setattr(timetable, field, value)
        return self._commit(timetable, "updating timetable")

    def delete_timetable(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID) -> None:
        timetable = self._get_draft(tenant_id, timetable_id)
        try:
            self.repo.delete(timetable)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting timetable {timetable_id}: {e}")
            raise
        logger.info(f"Timetable deleted: {timetable.name}")

    def publish_timetable(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID, user: User) -> Timetable:
        """Publish a draft; the section's previously published timetable is archived"""
        timetable = self.get_timetable(tenant_id, timetable_id)
        if timetable.status == TimetableStatus.PUBLISHED.value:
            raise ConflictError("Timetable is already published")
        if not timetable.is_draft:
            raise ConflictError("Only draft timetables can be published")

        for other in self.repo.published_for_section(tenant_id, timetable.section_id):
            other.status = TimetableStatus.ARCHIVED.value
            logger.info(f"Timetable archived on publish of {timetable.name}: {other.name}")

        timetable.status = TimetableStatus.PUBLISHED.value
        timetable.published_at = self.clock()
        timetable.published_by = user.id
        self._commit(timetable, "publishing timetable")
        logger.info(f"Timetable published: {timetable.name} by {user.email}")
        return timetable

    def archive_timetable(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID) -> Timetable:
        timetable = self.get_timetable(tenant_id, timetable_id)
        if timetable.status == TimetableStatus.ARCHIVED.value:
            raise ConflictError("Timetable is already archived")
        timetable.status = TimetableStatus.ARCHIVED.value
        return self._commit(timetable, "archiving timetable")

    # Entries

    def list_entries(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID) -> List[Dict[str, Any]]:
        timetable = self.get_timetable(tenant_id, timetable_id)
        return [self.entry_dict(entry, timetable) for entry in self.repo.list_entries(timetable.id)]

    def _prepare_entry(self, tenant_id: uuid.UUID, timetable: Timetable, entry: Dict[str, Any]) -> Dict[str, Any]:
        day_of_week = entry.get("day_of_week")
        if day_of_week is None or not 0 <= day_of_week <= 6:
            raise ValidationError("Day of week must be between 0 (Sunday) and 6 (Saturday)")

        period = self.academic.get_period(tenant_id, entry.get("period_slot_id"))
        if not period:
            raise PeriodNotFound()
        if period.branch_id != timetable.branch_id:
            raise ValidationError("Period slot does not belong to this timetable's branch")

        values = {
            "day_of_week": day_of_week,
            "period_slot_id": period.id,
            "subject": _clean(entry.get("subject")),
            "teacher_id": entry.get("teacher_id"),
            "room_number": _clean(entry.get("room_number")),
            "notes": _clean(entry.get("notes")),
            "is_free_period": bool(entry.get("is_free_period")),
        }
        if values["is_free_period"]:
            values["subject"] = None
            values["teacher_id"] = None
        if values["teacher_id"] and not self.tenants.get_membership(tenant_id, values["teacher_id"]):
            raise UserNotFound("Teacher is not a member of this tenant")
        return values

    def _upsert(self, tenant_id: uuid.UUID, timetable: Timetable, values: Dict[str, Any]) -> TimetableEntry:
        entry = self.repo.get_entry_for_slot(timetable.id, values["day_of_week"], values["period_slot_id"])
        if entry is None:
            return self.repo.add(TimetableEntry(tenant_id=tenant_id, timetable_id=timetable.id, **values))
        for field in ENTRY_FIELDS:
            setattr(entry, field, values[field])
        self.db.flush()
        return entry

    def upsert_entry(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID, **entry) -> Dict[str, Any]:
        """Create the entry for a day and period slot, or replace the one already there"""
        timetable = self._get_draft(tenant_id, timetable_id)
        values = self._prepare_entry(tenant_id, timetable, entry)
        try:
            saved = self._upsert(tenant_id, timetable, values)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error saving timetable entry: {e}")
            raise
        self._commit(saved, "saving timetable entry")
        return self.entry_dict(saved, timetable)

    def bulk_upsert_entries(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID, entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """All entries are validated before any is written"""
        timetable = self._get_draft(tenant_id, timetable_id)
        prepared = []
        seen = set()
        for entry in entries:
            values = self._prepare_entry(tenant_id, timetable, entry)
            slot = (values["day_of_week"], values["period_slot_id"])
            if slot in seen:
                raise ValidationError(
                    f"Duplicate entry for {DAY_NAMES[slot[0]]} and period slot {slot[1]}"
                )
            seen.add(slot)
            prepared.append(values)
        if not prepared:
            raise ValidationError("No timetable entries provided")

        try:
            for values in prepared:
                self._upsert(tenant_id, timetable, values)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error saving timetable entries for {timetable_id}: {e}")
            raise

        logger.info(f"Timetable {timetable.name}: {len(prepared)} entries saved")
        return self.list_entries(tenant_id, timetable_id)

    def delete_entry(self, tenant_id: uuid.UUID, timetable_id: uuid.UUID, entry_id: uuid.UUID) -> None:
        timetable = self._get_draft(tenant_id, timetable_id)
        entry = self.repo.get_entry(tenant_id, timetable.id, entry_id)
        if not entry:
            raise TimetableEntryNotFound()
        try:
            self.repo.delete(entry)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting timetable entry {entry_id}: {e}")
            raise

    # Teacher schedules

    def teacher_schedule(self, tenant_id: uuid.UUID, teacher_id: uuid.UUID) -> Dict[str, Any]:
        if not self.tenants.get_membership(tenant_id, teacher_id):
            raise UserNotFound("Teacher is not a member of this tenant")
        entries = [self.entry_dict(entry, entry.timetable) for entry in self.repo.teacher_entries(tenant_id, teacher_id)]
        return {"teacher_id": teacher_id, "entries": entries, "total_periods": len(entries)}

    @staticmethod
    def entry_dict(entry: TimetableEntry, timetable: Timetable) -> Dict[str, Any]:
        period = entry.period_slot
        section = timetable.section
        return {
            "id": entry.id,
            "timetable_id": timetable.id,
            "timetable_name": timetable.name,
            "section_id": timetable.section_id,
            "section_name": section.name if section else None,
            "class_name": section.class_name if section else None,
            "day_of_week": entry.day_of_week,
            "day_name": entry.day_name,
            "period_slot_id": entry.period_slot_id,
            "period_name": period.name,
            "start_time": period.start_time,
            "end_time": period.end_time,
            "subject": entry.subject,
            "teacher_id": entry.teacher_id,
            "teacher_name": entry.teacher.full_name if entry.teacher else None,
            "room_number": entry.room_number,
            "notes": entry.notes,
            "is_free_period": entry.is_free_period,
        }
