# schoolhub/api/routers/timetables.py - Timetable and timetable entry routes
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional

from schoolhub.core.db import get_db
from schoolhub.api.deps.tenancy import require_tenant, require_tenant_admin
from schoolhub.api.utils import domain_errors, parse_uuid
from schoolhub.services.timetable_service import TimetableService
from schoolhub.schemas.timetable import (
    BulkTimetableEntriesIn,
    TeacherScheduleOut,
    TimetableCreate,
    TimetableDetailOut,
    TimetableEntryIn,
    TimetableEntryOut,
    TimetableOut,
    TimetableUpdate,
)

router = APIRouter()


@router.post("", response_model=TimetableOut, status_code=status.HTTP_201_CREATED)
async def create_timetable(
    timetable_data: TimetableCreate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Create a draft timetable for a section"""
    with domain_errors():
        return TimetableService(db).create_timetable(
            ctx["tenant_id"],
            ctx["user"],
            section_id=timetable_data.section_id,
            name=timetable_data.name,
            description=timetable_data.description,
            effective_from=timetable_data.effective_from,
            effective_to=timetable_data.effective_to,
        )


@router.get("", response_model=List[TimetableOut])
async def list_timetables(
    section_id: Optional[str] = Query(None),
    branch_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    with domain_errors():
        return TimetableService(db).list_timetables(
            ctx["tenant_id"],
            section_id=parse_uuid(section_id, "section"),
            branch_id=parse_uuid(branch_id, "branch"),
            status=status_filter,
        )


# Teacher schedules come before /{timetable_id} so "teacher" is not read as an id

@router.get("/teacher/me", response_model=TeacherScheduleOut)
async def my_schedule(
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """The caller's periods across published timetables"""
    with domain_errors():
        return TimetableService(db).teacher_schedule(ctx["tenant_id"], ctx["user"].id)


@router.get("/teacher/{user_id}", response_model=TeacherScheduleOut)
async def teacher_schedule(
    user_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    user_uuid = parse_uuid(user_id, "user")
    with domain_errors():
        return TimetableService(db).teacher_schedule(ctx["tenant_id"], user_uuid)


@router.get("/{timetable_id}", response_model=TimetableDetailOut)
async def get_timetable(
    timetable_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    timetable_uuid = parse_uuid(timetable_id, "timetable")
    service = TimetableService(db)
    with domain_errors():
        timetable = service.get_timetable(ctx["tenant_id"], timetable_uuid)
        entries = service.list_entries(ctx["tenant_id"], timetable_uuid)
    return TimetableDetailOut(**TimetableOut.model_validate(timetable).model_dump(), entries=entries)


@router.put("/{timetable_id}", response_model=TimetableOut)
async def update_timetable(
    timetable_id: str,
    timetable_data: TimetableUpdate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Only draft timetables can be changed"""
    timetable_uuid = parse_uuid(timetable_id, "timetable")
    with domain_errors():
        return TimetableService(db).update_timetable(
            ctx["tenant_id"], timetable_uuid, **timetable_data.model_dump()
        )


@router.delete("/{timetable_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_timetable(
    timetable_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    timetable_uuid = parse_uuid(timetable_id, "timetable")
    with domain_errors():
        TimetableService(db).delete_timetable(ctx["tenant_id"], timetable_uuid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{timetable_id}/publish", response_model=TimetableOut)
async def publish_timetable(
    timetable_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    timetable_uuid = parse_uuid(timetable_id, "timetable")
    with domain_errors():
        return TimetableService(db).publish_timetable(ctx["tenant_id"], timetable_uuid, ctx["user"])


@router.post("/{timetable_id}/archive", response_model=TimetableOut)
async def archive_timetable(
    timetable_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    timetable_uuid = parse_uuid(timetable_id, "timetable")
    with domain_errors():
        return TimetableService(db).archive_timetable(ctx["tenant_id"], timetable_uuid)


# Entries

@router.get("/{timetable_id}/entries", response_model=List[TimetableEntryOut])
async def list_entries(
    timetable_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    timetable_uuid = parse_uuid(timetable_id, "timetable")
    with domain_errors():
        return TimetableService(db).list_entries(ctx["tenant_id"], timetable_uuid)


@router.post("/{timetable_id}/entries", response_model=TimetableEntryOut)
async def upsert_entry(
    timetable_id: str,
    entry_data: TimetableEntryIn,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Set what happens in one period slot on one day, replacing any existing entry"""
    timetable_uuid = parse_uuid(timetable_id, "timetable")
    with domain_errors():
        return TimetableService(db).upsert_entry(ctx["tenant_id"], timetable_uuid, **entry_data.model_dump())


@router.post("/{timetable_id}/entries/bulk", response_model=List[TimetableEntryOut])
async def bulk_upsert_entries(
    timetable_id: str,
    entries_data: BulkTimetableEntriesIn,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    timetable_uuid = parse_uuid(timetable_id, "timetable")
    with domain_errors():
        return TimetableService(db).bulk_upsert_entries(
            ctx["tenant_id"], timetable_uuid, [e.model_dump() for e in entries_data.entries]
        )


@router.delete("/{timetable_id}/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    timetable_id: str,
    entry_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    timetable_uuid = parse_uuid(timetable_id, "timetable")
    entry_uuid = parse_uuid(entry_id, "entry")
    with domain_errors():
        TimetableService(db).delete_entry(ctx["tenant_id"], timetable_uuid, entry_uuid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
