# schoolhub/repositories/tenant.py - Queries for tenants, memberships and branches
from typing import Optional, Sequence
import uuid

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from schoolhub.models.tenant import Tenant, TenantMember, Branch
from schoolhub.models.user import User


class TenantRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, tenant_id: uuid.UUID) -> Optional[Tenant]:
        return self.db.get(Tenant, tenant_id)

    def get_by_slug(self, slug: str) -> Optional[Tenant]:
        return self.db.execute(
            select(Tenant).where(Tenant.slug == slug)
        ).scalar_one_or_none()

    def add(self, tenant: Tenant) -> Tenant:
        self.db.add(tenant)
        self.db.flush()
        return tenant

    def get_membership(self, tenant_id: uuid.UUID, user_id: uuid.UUID) -> Optional[TenantMember]:
        return self.db.execute(
            select(TenantMember).where(
                TenantMember.tenant_id == tenant_id,
                TenantMember.user_id == user_id,
            )
        ).scalar_one_or_none()

    def add_member(self, tenant_id: uuid.UUID, user_id: uuid.UUID, role: str) -> TenantMember:
        member = TenantMember(tenant_id=tenant_id, user_id=user_id, role=role)
        self.db.add(member)
        self.db.flush()
        return member

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(User.email == email.lower().strip())
        ).scalar_one_or_none()


class BranchRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, tenant_id: uuid.UUID, branch_id: uuid.UUID) -> Optional[Branch]:
        return self.db.execute(
            select(Branch).where(Branch.tenant_id == tenant_id, Branch.id == branch_id)
        ).scalar_one_or_none()

    def get_by_code(self, tenant_id: uuid.UUID, code: str) -> Optional[Branch]:
        return self.db.execute(
            select(Branch).where(Branch.tenant_id == tenant_id, Branch.code == code)
        ).scalar_one_or_none()

    def get_primary(self, tenant_id: uuid.UUID) -> Optional[Branch]:
        return self.db.execute(
            select(Branch).where(Branch.tenant_id == tenant_id, Branch.is_primary.is_(True))
        ).scalars().first()

    def list(self, tenant_id: uuid.UUID, include_inactive: bool = False) -> Sequence[Branch]:
        query = select(Branch).where(Branch.tenant_id == tenant_id)
        if not include_inactive:
            query = query.where(Branch.is_active.is_(True))
        return self.db.execute(
            query.order_by(Branch.is_primary.desc(), Branch.name)
        ).scalars().all()

    def add(self, branch: Branch) -> Branch:
        self.db.add(branch)
        self.db.flush()
        return branch

    def clear_primary(self, tenant_id: uuid.UUID, except_id: Optional[uuid.UUID] = None) -> None:
        stmt = update(Branch).where(Branch.tenant_id == tenant_id, Branch.is_primary.is_(True))
        if except_id is not None:
            stmt = stmt.where(Branch.id != except_id)
        self.db.execute(stmt.values(is_primary=False))

    def delete(self, branch: Branch) -> None:
        self.db.delete(branch)
        self.db.flush()
