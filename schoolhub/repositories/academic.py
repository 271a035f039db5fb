# schoolhub/repositories/academic.py - Queries for classes, sections, students and period slots
from typing import Dict, Optional, Sequence
import uuid

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from schoolhub.models.academic import SchoolClass, Section, Student, PeriodSlot

ACTIVE = "ACTIVE"


class AcademicRepository:
    def __init__(self, db: Session):
        self.db = db

    # Classes

    def get_class(self, tenant_id: uuid.UUID, class_id: uuid.UUID) -> Optional[SchoolClass]:
        return self.db.execute(
            select(SchoolClass).where(SchoolClass.tenant_id == tenant_id, SchoolClass.id == class_id)
        ).scalar_one_or_none()

    def get_class_by_code(self, tenant_id: uuid.UUID, branch_id: uuid.UUID, code: str) -> Optional[SchoolClass]:
        return self.db.execute(
            select(SchoolClass).where(
                SchoolClass.tenant_id == tenant_id,
                SchoolClass.branch_id == branch_id,
                func.lower(SchoolClass.code) == code.lower(),
            )
        ).scalar_one_or_none()

    def list_classes(self, tenant_id: uuid.UUID, branch_id: Optional[uuid.UUID] = None) -> Sequence[SchoolClass]:
        query = select(SchoolClass).where(SchoolClass.tenant_id == tenant_id)
        if branch_id:
            query = query.where(SchoolClass.branch_id == branch_id)
        return self.db.execute(
            query.order_by(SchoolClass.display_order, SchoolClass.name)
        ).scalars().all()

    # Sections

    def get_section(self, tenant_id: uuid.UUID, section_id: uuid.UUID) -> Optional[Section]:
        return self.db.execute(
            select(Section).where(Section.tenant_id == tenant_id, Section.id == section_id)
        ).scalar_one_or_none()

    def get_section_by_code(self, class_id: uuid.UUID, code: str) -> Optional[Section]:
        return self.db.execute(
            select(Section).where(Section.class_id == class_id, func.lower(Section.code) == code.lower())
        ).scalar_one_or_none()

    def list_sections(
        self,
        tenant_id: uuid.UUID,
        class_id: Optional[uuid.UUID] = None,
        active_only: bool = True,
    ) -> Sequence[Section]:
        query = select(Section).where(Section.tenant_id == tenant_id)
        if class_id:
            query = query.where(Section.class_id == class_id)
        if active_only:
            query = query.where(Section.is_active.is_(True))
        return self.db.execute(
            query.order_by(Section.display_order, Section.name)
        ).scalars().all()

    # Students

    def get_student(self, tenant_id: uuid.UUID, student_id: uuid.UUID) -> Optional[Student]:
        return self.db.execute(
            select(Student).where(Student.tenant_id == tenant_id, Student.id == student_id)
        ).scalar_one_or_none()

    def get_student_by_admission(self, tenant_id: uuid.UUID, admission_number: str) -> Optional[Student]:
        return self.db.execute(
            select(Student).where(
                Student.tenant_id == tenant_id,
                Student.admission_number == admission_number,
            )
        ).scalar_one_or_none()

    def list_students(
        self,
        tenant_id: uuid.UUID,
        section_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[Student]:
        query = select(Student).where(Student.tenant_id == tenant_id)
        if section_id:
            query = query.where(Student.section_id == section_id)
        if status:
            query = query.where(Student.status == status)
        if search:
            term = f"%{search.lower()}%"
            query = query.where(
                func.lower(Student.first_name).like(term)
                | func.lower(Student.last_name).like(term)
                | func.lower(Student.admission_number).like(term)
            )
        return self.db.execute(
            query.order_by(Student.first_name, Student.last_name)
        ).scalars().all()

    def get_students_in_section(self, tenant_id: uuid.UUID, section_id: uuid.UUID) -> Sequence[Student]:
        """Active students of a section ordered by name"""
        return self.list_students(tenant_id, section_id=section_id, status=ACTIVE)

    def count_students_by_section(self, tenant_id: uuid.UUID) -> Dict[uuid.UUID, int]:
        rows = self.db.execute(
            select(Student.section_id, func.count(Student.id))
            .where(Student.tenant_id == tenant_id, Student.status == ACTIVE, Student.section_id.is_not(None))
            .group_by(Student.section_id)
        ).all()
        return {section_id: count for section_id, count in rows}

    # Period slots

    def get_period(self, tenant_id: uuid.UUID, period_id: uuid.UUID) -> Optional[PeriodSlot]:
        return self.db.execute(
            select(PeriodSlot).where(PeriodSlot.tenant_id == tenant_id, PeriodSlot.id == period_id)
        ).scalar_one_or_none()

    def list_periods(self, tenant_id: uuid.UUID, branch_id: Optional[uuid.UUID] = None) -> Sequence[PeriodSlot]:
        query = select(PeriodSlot).where(PeriodSlot.tenant_id == tenant_id, PeriodSlot.is_active.is_(True))
        if branch_id:
            query = query.where(PeriodSlot.branch_id == branch_id)
        return self.db.execute(
            query.order_by(PeriodSlot.start_time, PeriodSlot.period_number)
        ).scalars().all()

    def add(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    def delete(self, obj) -> None:
        self.db.delete(obj)
        self.db.flush()
