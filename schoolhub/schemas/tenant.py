# schoolhub/schemas/tenant.py - Tenant, membership and branch schemas
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, validator


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128, description="Tenant (school group) name")
    slug: Optional[str] = Field(None, max_length=64, description="URL-friendly identifier; derived from name if omitted")
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)
    branch_name: Optional[str] = Field(None, max_length=128, description="Name of the primary branch")
    branch_code: Optional[str] = Field(None, max_length=20, description="Code of the primary branch")

    @validator("name")
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Tenant name cannot be empty")
        return v.strip()


class TenantOut(BaseModel):
    id: UUID
    name: str
    slug: str
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TenantMineItem(BaseModel):
    id: UUID
    name: str
    slug: str
    role: str


class MemberCreate(BaseModel):
    email: EmailStr
    role: str = "TEACHER"


class MemberOut(BaseModel):
    id: UUID
    user_id: UUID
    email: str
    full_name: str
    role: str
    created_at: datetime


class BranchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    code: str = Field(..., min_length=1, max_length=20)
    address: Optional[str] = Field(None, max_length=256)
    is_primary: bool = False

    @validator("name", "code")
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=128)
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    address: Optional[str] = Field(None, max_length=256)
    is_primary: Optional[bool] = None
    is_active: Optional[bool] = None


class BranchOut(BaseModel):
    id: UUID
    name: str
    code: str
    address: Optional[str] = None
    is_primary: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BranchList(BaseModel):
    branches: List[BranchOut]
    total: int
