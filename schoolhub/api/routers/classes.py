# schoolhub/api/routers/classes.py - Class routes
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional
import logging

from schoolhub.core.db import get_db
from schoolhub.api.deps.tenancy import require_tenant, require_tenant_admin
from schoolhub.api.utils import domain_errors, parse_uuid
from schoolhub.services.academic_service import AcademicService
from schoolhub.schemas.academic import ClassCreate, ClassOut, SectionOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=ClassOut, status_code=status.HTTP_201_CREATED)
async def create_class(
    class_data: ClassCreate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Create a new class in a branch"""
    with domain_errors():
        new_class = AcademicService(db).create_class(
            ctx["tenant_id"],
            branch_id=class_data.branch_id,
            name=class_data.name,
            code=class_data.code,
            display_order=class_data.display_order,
        )
    logger.info(f"Class created: {new_class.name} by {ctx['user'].email}")
    return new_class


@router.get("", response_model=List[ClassOut])
async def get_classes(
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db),
    branch_id: Optional[str] = Query(None)
):
    """Get classes, optionally for one branch"""
    return AcademicService(db).list_classes(ctx["tenant_id"], parse_uuid(branch_id, "branch"))


@router.get("/{class_id}", response_model=ClassOut)
async def get_class(
    class_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    class_uuid = parse_uuid(class_id, "class")
    with domain_errors():
        return AcademicService(db).get_class(ctx["tenant_id"], class_uuid)


@router.get("/{class_id}/sections", response_model=List[SectionOut])
async def get_class_sections(
    class_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    class_uuid = parse_uuid(class_id, "class")
    service = AcademicService(db)
    with domain_errors():
        service.get_class(ctx["tenant_id"], class_uuid)
    return service.list_sections(ctx["tenant_id"], class_id=class_uuid)
