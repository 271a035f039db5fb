# schoolhub/api/routers/tenants.py - Tenant management routes
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Dict, Any, List
import logging

from schoolhub.core.db import get_db
from schoolhub.api.deps.auth import get_current_user
from schoolhub.api.deps.tenancy import require_tenant, require_tenant_admin
from schoolhub.api.utils import domain_errors
from schoolhub.services.auth_service import AuthService
from schoolhub.services.tenant_service import TenantService
from schoolhub.schemas.tenant import TenantCreate, TenantOut, TenantMineItem, MemberCreate, MemberOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=TenantOut, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_data: TenantCreate,
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a new tenant with a primary branch; the creator becomes its OWNER"""
    with domain_errors():
        tenant = TenantService(db).create_tenant(
            ctx["user"],
            name=tenant_data.name,
            slug=tenant_data.slug,
            email=tenant_data.email,
            phone=tenant_data.phone,
            branch_name=tenant_data.branch_name,
            branch_code=tenant_data.branch_code,
        )
    return tenant


@router.get("/mine", response_model=List[TenantMineItem])
async def get_my_tenants(
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get tenants the current user is a member of"""
    return AuthService(db).get_user_tenants(ctx["user"].id)


@router.get("/members", response_model=List[MemberOut])
async def list_members(
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    """Members of the active tenant"""
    with domain_errors():
        return TenantService(db).list_members(ctx["tenant_id"])


@router.post("/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
async def add_member(
    member_data: MemberCreate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Add a registered user to the active tenant"""
    with domain_errors():
        return TenantService(db).add_member(
            ctx["tenant_id"], member_data.email, member_data.role, added_by=ctx["user"]
        )
