# schoolhub/services/auth_service.py - Authentication business logic
from sqlalchemy.orm import Session
from sqlalchemy import select
from datetime import datetime
from typing import Optional, Dict, Any, List
import logging
import uuid

from schoolhub.core.errors import AuthenticationError, ConflictError, PermissionDeniedError, ValidationError
from schoolhub.core.security import password_manager, token_manager
from schoolhub.models.user import User, UserRole
from schoolhub.models.tenant import Tenant, TenantMember

logger = logging.getLogger(__name__)


class AuthService:
    """Service class for authentication operations"""

    def __init__(self, db: Session):
        self.db = db

    def create_user(
        self,
        email: str,
        full_name: str,
        password: str,
        roles: Optional[List[str]] = None
    ) -> User:
        """
        Create a new user account

        Args:
            email: User email (will be lowercased)
            full_name: User's full name
            password: Plain text password (will be hashed)
            roles: List of system roles (defaults to ['TEACHER'])

        Raises:
            ValidationError: If the password is too weak
            ConflictError: If the email is already registered
        """
        email = email.lower().strip()

        validation = password_manager.validate_password_strength(password)
        if not validation["valid"]:
            raise ValidationError("; ".join(validation["feedback"]))

        existing_user = self.db.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()
        if existing_user:
            raise ConflictError("User with this email already exists")

        user = User(
            email=email,
            full_name=full_name.strip(),
            password_hash=password_manager.hash_password(password),
            is_active=True,
        )
        user.set_roles(roles or [UserRole.TEACHER.value])

        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating user: {e}")
            raise

        logger.info(f"User created: {email}")
        return user

    def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate user with email and password

        Raises:
            AuthenticationError: On unknown email, wrong password or inactive account
        """
        email = email.lower().strip()

        user = self.db.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()

        if not user or not password_manager.verify_password(password, user.password_hash):
            raise AuthenticationError("Incorrect email or password")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        user.last_login = datetime.utcnow()
        self.db.commit()

        logger.info(f"User authenticated: {email}")
        return user

    def get_user_tenants(self, user_id: uuid.UUID) -> List[Dict[str, Any]]:
        """Tenants the user is a member of, with their membership role"""
        rows = self.db.execute(
            select(TenantMember, Tenant)
            .join(Tenant, Tenant.id == TenantMember.tenant_id)
            .where(TenantMember.user_id == user_id)
            .order_by(Tenant.name)
        ).all()

        return [
            {"id": tenant.id, "name": tenant.name, "slug": tenant.slug, "role": member.role}
            for member, tenant in rows
        ]

    def default_tenant_id(self, user_id: uuid.UUID) -> Optional[str]:
        """The single tenant of a user with exactly one membership"""
        tenants = self.get_user_tenants(user_id)
        if len(tenants) == 1:
            return str(tenants[0]["id"])
        return None

    def ensure_member(self, user: User, tenant_id: uuid.UUID) -> None:
        membership = self.db.execute(
            select(TenantMember).where(
                TenantMember.user_id == user.id,
                TenantMember.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        if not membership:
            raise PermissionDeniedError("You are not a member of this tenant")

    def create_access_token_for_user(self, user: User, active_tenant_id: Optional[str] = None) -> str:
        """
        Create access token for authenticated user

        Args:
            user: Authenticated user object
            active_tenant_id: Optional active tenant for the session
        """
        additional_claims = {
            "email": user.email,
            "roles": user.roles,
        }
        if active_tenant_id:
            additional_claims["active_tenant_id"] = str(active_tenant_id)

        return token_manager.create_access_token(
            subject=str(user.id),
            additional_claims=additional_claims
        )
