# schoolhub/services/academic_service.py - Classes, sections, students and period slots
import logging
import uuid
from datetime import time
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from schoolhub.core.errors import (
    BranchNotFound,
    ClassNotFound,
    ConflictError,
    PeriodNotFound,
    SectionNotFound,
    StudentNotFound,
    UserNotFound,
    ValidationError,
)
from schoolhub.models.academic import PeriodSlot, SchoolClass, Section, Student
from schoolhub.repositories.academic import AcademicRepository
from schoolhub.repositories.tenant import BranchRepository, TenantRepository

logger = logging.getLogger(__name__)

STUDENT_STATUSES = ("ACTIVE", "INACTIVE", "GRADUATED", "TRANSFERRED")


class AcademicService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = AcademicRepository(db)
        self.branches = BranchRepository(db)
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

    def _ensure_branch(self, tenant_id: uuid.UUID, branch_id: uuid.UUID) -> None:
        if not self.branches.get(tenant_id, branch_id):
            raise BranchNotFound()

    # Classes

    def create_class(self, tenant_id: uuid.UUID, branch_id: uuid.UUID, name: str, code: str, display_order: int = 0) -> SchoolClass:
        self._ensure_branch(tenant_id, branch_id)
        if self.repo.get_class_by_code(tenant_id, branch_id, code):
            raise ConflictError(f"Class with code '{code}' already exists in this branch")

        school_class = self.repo.add(SchoolClass(
            tenant_id=tenant_id,
            branch_id=branch_id,
            name=name.strip(),
            code=code.strip(),
            display_order=display_order,
        ))
        self._commit(school_class, "creating class")
        logger.info(f"Class created: {school_class.name} ({school_class.code})")
        return school_class

    def list_classes(self, tenant_id: uuid.UUID, branch_id: Optional[uuid.UUID] = None) -> List[SchoolClass]:
        return list(self.repo.list_classes(tenant_id, branch_id))

    def get_class(self, tenant_id: uuid.UUID, class_id: uuid.UUID) -> SchoolClass:
        school_class = self.repo.get_class(tenant_id, class_id)
        if not school_class:
            raise ClassNotFound()
        return school_class

    # Sections

    def create_section(
        self,
        tenant_id: uuid.UUID,
        class_id: uuid.UUID,
        name: str,
        code: str,
        display_order: int = 0,
        class_teacher_id: Optional[uuid.UUID] = None,
    ) -> Section:
        self.get_class(tenant_id, class_id)
        if self.repo.get_section_by_code(class_id, code):
            raise ConflictError(f"Section with code '{code}' already exists in this class")
        if class_teacher_id:
            self._ensure_member(tenant_id, class_teacher_id)

        section = self.repo.add(Section(
            tenant_id=tenant_id,
            class_id=class_id,
            name=name.strip(),
            code=code.strip(),
            display_order=display_order,
            class_teacher_id=class_teacher_id,
        ))
        self._commit(section, "creating section")
        logger.info(f"Section created: {section.class_name} {section.name}")
        return section

    def _ensure_member(self, tenant_id: uuid.UUID, user_id: uuid.UUID) -> None:
        if not self.tenants.get_membership(tenant_id, user_id):
            raise UserNotFound("Class teacher is not a member of this tenant")

    def list_sections(self, tenant_id: uuid.UUID, class_id: Optional[uuid.UUID] = None, include_inactive: bool = False) -> List[Dict[str, Any]]:
        counts = self.repo.count_students_by_section(tenant_id)
        return [
            self.section_dict(section, counts.get(section.id, 0))
            for section in self.repo.list_sections(tenant_id, class_id, active_only=not include_inactive)
        ]

    def get_section(self, tenant_id: uuid.UUID, section_id: uuid.UUID) -> Section:
        section = self.repo.get_section(tenant_id, section_id)
        if not section:
            raise SectionNotFound()
        return section

    def update_section(self, tenant_id: uuid.UUID, section_id: uuid.UUID, **changes) -> Section:
        section = self.get_section(tenant_id, section_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if changes.get("class_teacher_id"):
            self._ensure_member(tenant_id, changes["class_teacher_id"])
        for field, value in changes.items():
            setattr(section, field, value)
        return self._commit(section, "updating section")

    @staticmethod
    def section_dict(section: Section, student_count: int = 0) -> Dict[str, Any]:
        return {
            "id": section.id,
            "class_id": section.class_id,
            "class_name": section.class_name,
            "branch_id": section.branch_id,
            "name": section.name,
            "code": section.code,
            "display_order": section.display_order,
            "is_active": section.is_active,
            "class_teacher_id": section.class_teacher_id,
            "student_count": student_count,
        }

    # Students

    def create_student(
        self,
        tenant_id: uuid.UUID,
        admission_number: str,
        first_name: str,
        last_name: str,
        section_id: Optional[uuid.UUID] = None,
        roll_number: Optional[int] = None,
    ) -> Student:
        admission_number = admission_number.strip()
        if self.repo.get_student_by_admission(tenant_id, admission_number):
            raise ConflictError(f"Student with admission number '{admission_number}' already exists")
        if section_id:
            self.get_section(tenant_id, section_id)

        student = self.repo.add(Student(
            tenant_id=tenant_id,
            admission_number=admission_number,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            section_id=section_id,
            roll_number=roll_number,
        ))
        self._commit(student, "creating student")
        logger.info(f"Student created: {student.full_name} ({student.admission_number})")
        return student

    def list_students(
        self,
        tenant_id: uuid.UUID,
        section_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Student]:
        if status:
            status = status.upper()
            if status not in STUDENT_STATUSES:
                raise ValidationError(f"Invalid status. Allowed: {', '.join(STUDENT_STATUSES)}")
        return list(self.repo.list_students(tenant_id, section_id, status, search))

    def get_student(self, tenant_id: uuid.UUID, student_id: uuid.UUID) -> Student:
        student = self.repo.get_student(tenant_id, student_id)
        if not student:
            raise StudentNotFound()
        return student

    def update_student(self, tenant_id: uuid.UUID, student_id: uuid.UUID, **changes) -> Student:
        student = self.get_student(tenant_id, student_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if "status" in changes:
            changes["status"] = changes["status"].upper()
            if changes["status"] not in STUDENT_STATUSES:
                raise ValidationError(f"Invalid status. Allowed: {', '.join(STUDENT_STATUSES)}")
        if changes.get("section_id"):
            self.get_section(tenant_id, changes["section_id"])
        for field, value in changes.items():
            setattr(student, field, value)
        return self._commit(student, "updating student")

    # Period slots

    def create_period(
        self,
        tenant_id: uuid.UUID,
        branch_id: uuid.UUID,
        name: str,
        start_time: time,
        end_time: time,
        period_number: Optional[int] = None,
    ) -> PeriodSlot:
        self._ensure_branch(tenant_id, branch_id)
        if end_time <= start_time:
            raise ValidationError("Period end time must be after its start time")

        period = self.repo.add(PeriodSlot(
            tenant_id=tenant_id,
            branch_id=branch_id,
            name=name.strip(),
            period_number=period_number,
            start_time=start_time,
            end_time=end_time,
        ))
        self._commit(period, "creating period slot")
        logger.info(f"Period slot created: {period.name} {period.start_time}-{period.end_time}")
        return period

    def list_periods(self, tenant_id: uuid.UUID, branch_id: Optional[uuid.UUID] = None) -> List[PeriodSlot]:
        return list(self.repo.list_periods(tenant_id, branch_id))

    def get_period(self, tenant_id: uuid.UUID, period_id: uuid.UUID) -> PeriodSlot:
        period = self.repo.get_period(tenant_id, period_id)
        if not period:
            raise PeriodNotFound()
        return period

    def deactivate_period(self, tenant_id: uuid.UUID, period_id: uuid.UUID) -> PeriodSlot:
        period = self.get_period(tenant_id, period_id)
        period.is_active = False
        return self._commit(period, "deactivating period slot")
