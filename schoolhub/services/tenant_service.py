# schoolhub/services/tenant_service.py - Tenants, memberships and branches
import logging
import re
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolhub.core.errors import (
    BranchNotFound,
    ConflictError,
    TenantNotFound,
    UserNotFound,
    ValidationError,
)
from schoolhub.models.tenant import MEMBER_ROLES, Branch, Tenant, TenantMember
from schoolhub.models.user import User
from schoolhub.repositories.tenant import BranchRepository, TenantRepository

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_NAME = "Main Campus"
DEFAULT_BRANCH_CODE = "MAIN"


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug[:64] or "tenant"


class TenantService:
    def __init__(self, db: Session):
        self.db = db
        self.tenants = TenantRepository(db)
        self.branches = BranchRepository(db)

    # Tenants

    def create_tenant(
        self,
        user: User,
        name: str,
        slug: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        branch_name: Optional[str] = None,
        branch_code: Optional[str] = None,
    ) -> Tenant:
        """Create a tenant with its primary branch; the creator becomes OWNER"""
        slug = slugify(slug or name)
        if self.tenants.get_by_slug(slug):
            raise ConflictError(f"Tenant with slug '{slug}' already exists")

        try:
            tenant = self.tenants.add(Tenant(
                name=name.strip(),
                slug=slug,
                email=email,
                phone=phone,
                created_by=user.id,
            ))
            self.tenants.add_member(tenant.id, user.id, "OWNER")
            self.branches.add(Branch(
                tenant_id=tenant.id,
                name=branch_name or DEFAULT_BRANCH_NAME,
                code=(branch_code or DEFAULT_BRANCH_CODE).upper(),
                is_primary=True,
            ))
            self.db.commit()
            self.db.refresh(tenant)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating tenant: {e}")
            raise

        logger.info(f"New tenant created: {tenant.name} ({tenant.slug}) by {user.email}")
        return tenant

    def get_tenant(self, tenant_id: uuid.UUID) -> Tenant:
        tenant = self.tenants.get(tenant_id)
        if not tenant:
            raise TenantNotFound()
        return tenant

    def add_member(self, tenant_id: uuid.UUID, email: str, role: str, added_by: User) -> Dict[str, Any]:
        role = role.upper()
        if role not in MEMBER_ROLES:
            raise ValidationError(f"Invalid role '{role}'. Allowed: {', '.join(MEMBER_ROLES)}")

        user = self.tenants.get_user_by_email(email)
        if not user:
            raise UserNotFound(f"No user registered with email {email}")
        if self.tenants.get_membership(tenant_id, user.id):
            raise ConflictError(f"{user.email} is already a member of this tenant")

        try:
            member = self.tenants.add_member(tenant_id, user.id, role)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error adding member {email}: {e}")
            raise

        logger.info(f"User {user.email} added to tenant {tenant_id} as {role} by {added_by.email}")
        return self._member_dict(member, user)

    def list_members(self, tenant_id: uuid.UUID) -> List[Dict[str, Any]]:
        tenant = self.get_tenant(tenant_id)
        return [self._member_dict(m, m.user) for m in tenant.members]

    @staticmethod
    def _member_dict(member: TenantMember, user: User) -> Dict[str, Any]:
        return {
            "id": member.id,
            "user_id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "role": member.role,
            "created_at": member.created_at,
        }

    # Branches

    def list_branches(self, tenant_id: uuid.UUID, include_inactive: bool = False) -> List[Branch]:
        return list(self.branches.list(tenant_id, include_inactive=include_inactive))

    def get_branch(self, tenant_id: uuid.UUID, branch_id: uuid.UUID) -> Branch:
        branch = self.branches.get(tenant_id, branch_id)
        if not branch:
            raise BranchNotFound()
        return branch

    def create_branch(
        self,
        tenant_id: uuid.UUID,
        name: str,
        code: str,
        address: Optional[str] = None,
        is_primary: bool = False,
    ) -> Branch:
        code = code.strip().upper()
        if self.branches.get_by_code(tenant_id, code):
            raise ConflictError(f"Branch with code '{code}' already exists")

        # The first branch of a tenant is always primary
        if not self.branches.list(tenant_id, include_inactive=True):
            is_primary = True

        try:
            if is_primary:
                self.branches.clear_primary(tenant_id)
            branch = self.branches.add(Branch(
                tenant_id=tenant_id,
                name=name.strip(),
                code=code,
                address=address,
                is_primary=is_primary,
            ))
            self.db.commit()
            self.db.refresh(branch)
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(f"Branch with code '{code}' already exists")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating branch: {e}")
            raise

        logger.info(f"Branch created: {branch.code} in tenant {tenant_id}")
        return branch

    def update_branch(self, tenant_id: uuid.UUID, branch_id: uuid.UUID, **changes) -> Branch:
        branch = self.get_branch(tenant_id, branch_id)
        changes = {k: v for k, v in changes.items() if v is not None}

        if "code" in changes:
            code = changes["code"].strip().upper()
            existing = self.branches.get_by_code(tenant_id, code)
            if existing and existing.id != branch.id:
                raise ConflictError(f"Branch with code '{code}' already exists")
            changes["code"] = code

        if branch.is_primary and changes.get("is_primary") is False:
            raise ValidationError("Mark another branch primary instead of unsetting the primary branch")
        if branch.is_primary and changes.get("is_active") is False:
            raise ValidationError("Cannot deactivate the primary branch")

        try:
            if changes.get("is_primary") and not branch.is_primary:
                self.branches.clear_primary(tenant_id, except_id=branch.id)
            for field, value in changes.items():
                setattr(branch, field, value)
            self.db.commit()
            self.db.refresh(branch)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating branch {branch_id}: {e}")
            raise

        logger.info(f"Branch updated: {branch.code} fields={sorted(changes)}")
        return branch

    def delete_branch(self, tenant_id: uuid.UUID, branch_id: uuid.UUID) -> None:
        branch = self.get_branch(tenant_id, branch_id)
        if branch.is_primary:
            raise ValidationError("Cannot delete the primary branch")

        try:
            self.branches.delete(branch)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Branch is still referenced by classes or settings")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting branch {branch_id}: {e}")
            raise

        logger.info(f"Branch deleted: {branch.code} from tenant {tenant_id}")
