import os

# Settings are read at import time, so the environment must be ready first
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-key-with-at-least-32-characters"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_REQUESTS"] = "false"

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, time
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, update
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from schoolhub.core.db import get_db
from schoolhub.core.security import password_manager, token_manager
from schoolhub.main import app
from schoolhub.models import (
    Base, User, Tenant, TenantMember, Branch, SchoolClass, Section, Student, PeriodSlot,
    StudentAttendance, StudentAttendanceSettings,
)

PASSWORD = "Secret123Pass"
STUDENT_NAMES = [("Alice", "Achieng"), ("Brian", "Barasa"), ("Cynthia", "Chebet"), ("David", "Dida")]
API = "/api/v1"


@dataclass
class SchoolContext:
    """A tenant with one branch, one class, one section and four students"""

    session_factory: sessionmaker
    tenant_id: uuid.UUID
    branch_id: uuid.UUID
    class_id: uuid.UUID
    section_id: uuid.UUID
    student_ids: List[uuid.UUID]
    users: Dict[str, uuid.UUID]
    tokens: Dict[str, str] = field(default_factory=dict)
    period_ids: List[uuid.UUID] = field(default_factory=list)

    def header(self, who: str, tenant_id: Optional[uuid.UUID] = None) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.tokens[who]}"}
        if tenant_id is not None:
            headers["X-Tenant-ID"] = str(tenant_id)
        return headers

    def records(self, *statuses: str) -> List[dict]:
        """Attendance payload for the students in name order"""
        return [
            {"student_id": str(student_id), "status": status}
            for student_id, status in zip(self.student_ids, statuses)
        ]

    def age_attendance(self, minutes: int) -> None:
        """Move marked_at of every record back in time to simulate the window passing"""
        with self.session_factory() as session:
            for record in session.query(StudentAttendance).filter_by(tenant_id=self.tenant_id):
                record.marked_at = record.marked_at - timedelta(minutes=minutes)
            session.commit()

    def set_settings(self, **values) -> None:
        with self.session_factory() as session:
            session.add(StudentAttendanceSettings(tenant_id=self.tenant_id, branch_id=self.branch_id, **values))
            session.commit()

    def set_student_status(self, student_id: uuid.UUID, status: str) -> None:
        with self.session_factory() as session:
            session.execute(update(Student).where(Student.id == student_id).values(status=status))
            session.commit()


def _make_user(session: Session, email: str, full_name: str, roles=None) -> User:
    user = User(email=email, full_name=full_name, password_hash=password_manager.hash_password(PASSWORD))
    user.set_roles(roles or ["TEACHER"])
    session.add(user)
    session.flush()
    return user


def build_school(session_factory: sessionmaker, slug: str, with_periods: bool = True) -> SchoolContext:
    with session_factory() as session:
        owner = _make_user(session, f"owner@{slug}.test", f"{slug.title()} Owner")
        teacher = _make_user(session, f"teacher@{slug}.test", "Grace Wanjiru")
        teacher2 = _make_user(session, f"teacher2@{slug}.test", "Peter Odhiambo")

        tenant = Tenant(name=f"{slug.title()} School", slug=slug, created_by=owner.id)
        session.add(tenant)
        session.flush()
        session.add_all([
            TenantMember(tenant_id=tenant.id, user_id=owner.id, role="OWNER"),
            TenantMember(tenant_id=tenant.id, user_id=teacher.id, role="TEACHER"),
            TenantMember(tenant_id=tenant.id, user_id=teacher2.id, role="TEACHER"),
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

        student_ids = []
        for roll, (first, last) in enumerate(STUDENT_NAMES, start=1):
            student = Student(
                tenant_id=tenant.id,
                section_id=section.id,
                admission_number=f"ADM-{roll:03d}",
                first_name=first,
                last_name=last,
                roll_number=roll,
            )
            session.add(student)
            session.flush()
            student_ids.append(student.id)

        period_ids = []
        if with_periods:
            for number, (start, end) in enumerate([(time(8, 0), time(8, 40)), (time(8, 40), time(9, 20))], start=1):
                period = PeriodSlot(
                    tenant_id=tenant.id, branch_id=branch.id, name=f"Period {number}",
                    period_number=number, start_time=start, end_time=end,
                )
                session.add(period)
                session.flush()
                period_ids.append(period.id)

        session.commit()

        users = {"owner": owner.id, "teacher": teacher.id, "teacher2": teacher2.id}
        context = SchoolContext(
            session_factory=session_factory,
            tenant_id=tenant.id,
            branch_id=branch.id,
            class_id=school_class.id,
            section_id=section.id,
            student_ids=student_ids,
            users=users,
            period_ids=period_ids,
        )

    context.tokens = {who: token_manager.create_access_token(subject=str(user_id)) for who, user_id in users.items()}
    return context


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def school(session_factory) -> SchoolContext:
    return build_school(session_factory, "greenfield")


@pytest.fixture
def other_school(session_factory) -> SchoolContext:
    return build_school(session_factory, "hillside", with_periods=False)


@pytest.fixture
def outsider_token(session_factory) -> str:
    with session_factory() as session:
        user = _make_user(session, "outsider@nowhere.test", "Out Sider")
        session.commit()
        return token_manager.create_access_token(subject=str(user.id))


@pytest.fixture
def today():
    return datetime.utcnow().date()
