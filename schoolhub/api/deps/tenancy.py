# schoolhub/api/deps/tenancy.py - Active tenant resolution
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import select
from typing import Optional, Dict, Any
from uuid import UUID

from schoolhub.core.db import get_db, set_tenant_context
from schoolhub.api.deps.auth import get_current_user
from schoolhub.models.tenant import ADMIN_MEMBER_ROLES, Tenant, TenantMember


def require_tenant(
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
    x_tenant_id: Optional[str] = Header(default=None, alias="X-Tenant-ID"),
) -> Dict[str, Any]:
    """
    Resolve the active tenant for the request and return a context dict.

    Order: X-Tenant-ID header, then the token's active_tenant_id claim, then
    the caller's only membership.
    """
    claims = ctx["claims"]
    user = ctx["user"]

    tenant_id = x_tenant_id or claims.get("active_tenant_id")

    if not tenant_id:
        memberships = db.execute(
            select(TenantMember.tenant_id).where(TenantMember.user_id == user.id)
        ).all()
        if not memberships:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="You are not a member of any tenant")
        if len(memberships) > 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Multiple tenants detected. Provide X-Tenant-ID or call /auth/activate-tenant to set an active tenant."
            )
        tenant_id = memberships[0][0]

    if not isinstance(tenant_id, UUID):
        try:
            tenant_id = UUID(str(tenant_id))
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid tenant ID format")

    if not db.get(Tenant, tenant_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")

    membership = db.execute(
        select(TenantMember).where(TenantMember.tenant_id == tenant_id, TenantMember.user_id == user.id)
    ).scalar_one_or_none()
    if not membership:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this tenant")

    set_tenant_context(db, user_id=user.id, tenant_id=tenant_id)

    return {"user": user, "tenant_id": tenant_id, "role": membership.role}


def is_tenant_admin(ctx: Dict[str, Any]) -> bool:
    """Tenant OWNER/ADMIN, or a platform-wide admin"""
    return ctx["role"] in ADMIN_MEMBER_ROLES or ctx["user"].is_admin()


def require_tenant_admin(ctx: Dict[str, Any] = Depends(require_tenant)) -> Dict[str, Any]:
    if not is_tenant_admin(ctx):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tenant admin access required"
        )
    return ctx
