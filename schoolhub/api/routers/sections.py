# schoolhub/api/routers/sections.py - Section routes
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional
import logging

from schoolhub.core.db import get_db
from schoolhub.api.deps.tenancy import require_tenant, require_tenant_admin
from schoolhub.api.utils import domain_errors, parse_uuid
from schoolhub.services.academic_service import AcademicService
from schoolhub.schemas.academic import SectionCreate, SectionUpdate, SectionOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=SectionOut, status_code=status.HTTP_201_CREATED)
async def create_section(
    section_data: SectionCreate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    with domain_errors():
        section = AcademicService(db).create_section(
            ctx["tenant_id"],
            class_id=section_data.class_id,
            name=section_data.name,
            code=section_data.code,
            display_order=section_data.display_order,
            class_teacher_id=section_data.class_teacher_id,
        )
    return AcademicService.section_dict(section)


@router.get("", response_model=List[SectionOut])
async def list_sections(
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db),
    class_id: Optional[str] = Query(None),
    include_inactive: bool = Query(False)
):
    """Sections with their active student counts"""
    return AcademicService(db).list_sections(
        ctx["tenant_id"],
        class_id=parse_uuid(class_id, "class"),
        include_inactive=include_inactive,
    )


@router.get("/{section_id}", response_model=SectionOut)
async def get_section(
    section_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    section_uuid = parse_uuid(section_id, "section")
    with domain_errors():
        section = AcademicService(db).get_section(ctx["tenant_id"], section_uuid)
    active = sum(1 for s in section.students if s.status == "ACTIVE")
    return AcademicService.section_dict(section, active)


@router.put("/{section_id}", response_model=SectionOut)
async def update_section(
    section_id: str,
    section_data: SectionUpdate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    section_uuid = parse_uuid(section_id, "section")
    with domain_errors():
        section = AcademicService(db).update_section(
            ctx["tenant_id"], section_uuid, **section_data.model_dump(exclude_unset=True)
        )
    logger.info(f"Section {section.id} updated by {ctx['user'].email}")
    return AcademicService.section_dict(section)
