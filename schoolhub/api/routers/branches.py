# schoolhub/api/routers/branches.py - Branch management routes
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import Dict, Any
import logging

from schoolhub.core.db import get_db
from schoolhub.api.deps.tenancy import require_tenant, require_tenant_admin
from schoolhub.api.utils import domain_errors, parse_uuid
from schoolhub.services.tenant_service import TenantService
from schoolhub.schemas.tenant import BranchCreate, BranchUpdate, BranchOut, BranchList

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=BranchOut, status_code=status.HTTP_201_CREATED)
async def create_branch(
    branch_data: BranchCreate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Create a branch; a primary branch replaces the current one"""
    with domain_errors():
        branch = TenantService(db).create_branch(
            ctx["tenant_id"],
            name=branch_data.name,
            code=branch_data.code,
            address=branch_data.address,
            is_primary=branch_data.is_primary,
        )
    logger.info(f"Branch {branch.code} created by {ctx['user'].email}")
    return branch


@router.get("", response_model=BranchList)
async def list_branches(
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db),
    include_inactive: bool = Query(False)
):
    branches = TenantService(db).list_branches(ctx["tenant_id"], include_inactive=include_inactive)
    return BranchList(branches=branches, total=len(branches))


@router.get("/{branch_id}", response_model=BranchOut)
async def get_branch(
    branch_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant),
    db: Session = Depends(get_db)
):
    branch_uuid = parse_uuid(branch_id, "branch")
    with domain_errors():
        return TenantService(db).get_branch(ctx["tenant_id"], branch_uuid)


@router.put("/{branch_id}", response_model=BranchOut)
async def update_branch(
    branch_id: str,
    branch_data: BranchUpdate,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    """Update a branch. Setting is_primary clears the flag on the other branches."""
    branch_uuid = parse_uuid(branch_id, "branch")
    with domain_errors():
        return TenantService(db).update_branch(
            ctx["tenant_id"], branch_uuid, **branch_data.model_dump(exclude_unset=True)
        )


@router.delete("/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_branch(
    branch_id: str,
    ctx: Dict[str, Any] = Depends(require_tenant_admin),
    db: Session = Depends(get_db)
):
    branch_uuid = parse_uuid(branch_id, "branch")
    with domain_errors():
        TenantService(db).delete_branch(ctx["tenant_id"], branch_uuid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
