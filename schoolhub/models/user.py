# schoolhub/models/user.py - User accounts and system-wide roles
from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Boolean
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from schoolhub.models.base import Base
import enum


class UserRole(str, enum.Enum):
    """System-wide user roles"""
    SUPER_ADMIN = "SUPER_ADMIN"  # Can manage all tenants
    ADMIN = "ADMIN"              # Platform administrator
    TEACHER = "TEACHER"          # Marks attendance
    STAFF = "STAFF"              # Back-office staff


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Role system - store as CSV for multiple roles
    roles_csv: Mapped[str] = mapped_column(String(255), default="TEACHER", nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def roles(self) -> list[str]:
        """Get list of user roles"""
        if not self.roles_csv:
            return [UserRole.TEACHER.value]
        return [role.strip() for role in self.roles_csv.split(",") if role.strip()]

    def set_roles(self, roles: list[str]) -> None:
        """Set user roles from list, ignoring unknown roles"""
        valid_roles = [role for role in roles if role in [r.value for r in UserRole]]
        if not valid_roles:
            valid_roles = [UserRole.TEACHER.value]
        self.roles_csv = ",".join(sorted(set(valid_roles)))

    def has_any_role(self, roles: list[str]) -> bool:
        return any(role in self.roles for role in roles)

    def is_admin(self) -> bool:
        """Check if user has platform-wide admin privileges"""
        return self.has_any_role([UserRole.SUPER_ADMIN.value, UserRole.ADMIN.value])

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', roles={self.roles})>"
