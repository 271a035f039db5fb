#!/usr/bin/env python3
# scripts/seed_demo.py - Create a demo tenant with a class, a section and students
import sys
import os
import logging
from datetime import time

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from schoolhub.core.db import db_manager
from schoolhub.core.logging_config import setup_logging
from schoolhub.core.security import password_manager
from schoolhub.models import (
    Base, User, Tenant, TenantMember, Branch, SchoolClass, Section, Student, PeriodSlot,
    StaffAttendanceSettings, Timetable, TimetableEntry,
)

logger = logging.getLogger("seed_demo")

DEMO_PASSWORD = "DemoPass123"
DEMO_STUDENTS = [
    ("Amani", "Otieno"), ("Baraka", "Kamau"), ("Chebet", "Kiprop"),
    ("Dalia", "Mwangi"), ("Eli", "Njoroge"), ("Faith", "Wanjiku"),
]
DEMO_PERIODS = [
    ("Period 1", time(8, 0), time(8, 40)),
    ("Period 2", time(8, 40), time(9, 20)),
    ("Period 3", time(9, 40), time(10, 20)),
]


def _user(session, email: str, full_name: str, roles) -> User:
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user:
        return user
    user = User(email=email, full_name=full_name, password_hash=password_manager.hash_password(DEMO_PASSWORD))
    user.set_roles(roles)
    session.add(user)
    session.flush()
    return user


def seed():
    Base.metadata.create_all(bind=db_manager.engine)

    with db_manager.transaction() as session:
        if session.execute(select(Tenant).where(Tenant.slug == "demo-academy")).scalar_one_or_none():
            logger.info("Demo tenant already exists, nothing to do")
            return

        admin = _user(session, "admin@demo.school", "Demo Admin", ["ADMIN"])
        teacher = _user(session, "teacher@demo.school", "Demo Teacher", ["TEACHER"])

        tenant = Tenant(name="Demo Academy", slug="demo-academy", created_by=admin.id)
        session.add(tenant)
        session.flush()
        session.add_all([
            TenantMember(tenant_id=tenant.id, user_id=admin.id, role="OWNER"),
            TenantMember(tenant_id=tenant.id, user_id=teacher.id, role="TEACHER"),
        ])

        branch = Branch(tenant_id=tenant.id, name="Main Campus", code="MAIN", is_primary=True)
        session.add(branch)
        session.flush()

        school_class = SchoolClass(tenant_id=tenant.id, branch_id=branch.id, name="Grade 4", code="G4")
        session.add(school_class)
        session.flush()

        section = Section(
            tenant_id=tenant.id, class_id=school_class.id, name="A", code="G4A", class_teacher_id=teacher.id
        )
        session.add(section)
        session.flush()

        for roll, (first, last) in enumerate(DEMO_STUDENTS, start=1):
            session.add(Student(
                tenant_id=tenant.id,
                section_id=section.id,
                admission_number=f"DEMO-{roll:03d}",
                first_name=first,
                last_name=last,
                roll_number=roll,
            ))

        periods = [
            PeriodSlot(
                tenant_id=tenant.id, branch_id=branch.id, name=name,
                period_number=number, start_time=start, end_time=end,
            )
            for number, (name, start, end) in enumerate(DEMO_PERIODS, start=1)
        ]
        session.add_all(periods)
        session.add(StaffAttendanceSettings(
            tenant_id=tenant.id, branch_id=branch.id, work_start_time=time(7, 30), work_end_time=time(16, 0),
        ))

        timetable = Timetable(
            tenant_id=tenant.id, branch_id=branch.id, section_id=section.id,
            name="Grade 4A weekly", created_by=admin.id,
        )
        session.add(timetable)
        session.flush()
        # Monday to Friday, the class teacher takes the first period
        for day in range(1, 6):
            session.add(TimetableEntry(
                tenant_id=tenant.id, timetable_id=timetable.id, day_of_week=day,
                period_slot_id=periods[0].id, subject="Mathematics", teacher_id=teacher.id,
            ))

    logger.info("Demo tenant created: demo-academy")
    logger.info(f"Log in as admin@demo.school or teacher@demo.school with password {DEMO_PASSWORD}")


if __name__ == "__main__":
    setup_logging()
    db_manager.initialize()
    seed()
