# schoolhub/api/routers/students.py - Student routes
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Dict, Any, Optional
import logging

from schoolhub.core.db import get_db
from schoolhub.api.deps.tenancy import require_tenant, require_tenant_admin
from schoolhub.api.utils import domain_errors, parse_uuid
from schoolhub.services.academic_service import AcademicService
from schoolhub.schemas.academic import StudentCreate, StudentUpdate, StudentOut, StudentList

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Create a new student, optionally placed in a section"""
    with domain_errors():
        student = AcademicService(db).create_student(
            ctx["tenant_id"],
            admission_number=student_data.admission_number,
            first_name=student_data.first_name,
            last_name=student_data.last_name,
            section_id=student_data.section_id,
            roll_number=student_data.roll_number,
        )
    logger.info(f"Student created: {student.full_name} by {ctx['user'].email}")
    return student


@router.get("", response_model=StudentList)
async def get_students(
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db),
    section_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None)
):
    """Get students with filtering"""
    with domain_errors():
        students = AcademicService(db).list_students(
            ctx["tenant_id"],
            section_id=parse_uuid(section_id, "section"),
            status=status,
            search=search,
        )
    return StudentList(students=students, total=len(students))


@router.get("/{student_id}", response_model=StudentOut)
async def get_student(
    student_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    student_uuid = parse_uuid(student_id, "student")
    with domain_errors():
        return AcademicService(db).get_student(ctx["tenant_id"], student_uuid)


@router.put("/{student_id}", response_model=StudentOut)
async def update_student(
    student_id: str,
    student_data: StudentUpdate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    student_uuid = parse_uuid(student_id, "student")
    with domain_errors():
        student = AcademicService(db).update_student(
            ctx["tenant_id"], student_uuid, **student_data.model_dump(exclude_unset=True)
        )
    logger.info(f"Student updated: {student.admission_number} by {ctx['user'].email}")
    return student
