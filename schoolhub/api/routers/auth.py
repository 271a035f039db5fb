# schoolhub/api/routers/auth.py - Registration, login and current user
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Dict, Any
import logging

from schoolhub.core.db import get_db
from schoolhub.api.deps.auth import get_current_user
from schoolhub.api.utils import domain_errors
from schoolhub.services.auth_service import AuthService
from schoolhub.schemas.auth import (
    RegisterIn,
    LoginIn,
    LoginOut,
    SwitchTenantIn,
    MeOut,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=LoginOut, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: RegisterIn,
    db: Session = Depends(get_db)
):
    """Register a new user account"""
    service = AuthService(db)
    with domain_errors():
        user = service.create_user(
            email=user_data.email,
            full_name=user_data.full_name,
            password=user_data.password,
        )

    access_token = service.create_access_token_for_user(user)
    logger.info(f"Token created for new user: {user.email}")

    return LoginOut(access_token=access_token, token_type="bearer")


@router.post("/login", response_model=LoginOut)
async def login(
    credentials: LoginIn,
    db: Session = Depends(get_db)
):
    """Authenticate user and return access token"""
    service = AuthService(db)
    with domain_errors():
        user = service.authenticate_user(credentials.email, credentials.password)

    # A user with exactly one tenant gets it as the active tenant
    active_tenant_id = service.default_tenant_id(user.id)
    access_token = service.create_access_token_for_user(user, active_tenant_id)

    return LoginOut(
        access_token=access_token,
        token_type="bearer",
        tenant_id=active_tenant_id
    )


@router.post("/activate-tenant", response_model=LoginOut)
async def activate_tenant(
    tenant_data: SwitchTenantIn,
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Switch the active tenant for multi-tenant users"""
    user = ctx["user"]
    service = AuthService(db)
    with domain_errors():
        service.ensure_member(user, tenant_data.tenant_id)

    tenant_id = str(tenant_data.tenant_id)
    return LoginOut(
        access_token=service.create_access_token_for_user(user, tenant_id),
        token_type="bearer",
        tenant_id=tenant_id
    )


@router.post("/refresh", response_model=LoginOut)
async def refresh_token(
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Refresh access token, keeping the active tenant"""
    user = ctx["user"]
    active_tenant_id = ctx["claims"].get("active_tenant_id")

    logger.info(f"Refreshing token for user: {user.email}")

    return LoginOut(
        access_token=AuthService(db).create_access_token_for_user(user, active_tenant_id),
        token_type="bearer",
        tenant_id=active_tenant_id
    )


@router.get("/me", response_model=MeOut)
async def get_current_user_info(
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get current user information and tenant memberships"""
    user = ctx["user"]

    return MeOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        roles=user.roles,
        is_active=user.is_active,
        active_tenant_id=ctx["claims"].get("active_tenant_id"),
        tenants=AuthService(db).get_user_tenants(user.id),
    )
