# schoolhub/schemas/auth.py - Authentication schemas
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, validator


class RegisterIn(BaseModel):
    email: EmailStr
    full_name: str
    password: str

    @validator("full_name")
    def validate_full_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "email": "teacher@example.com",
                "full_name": "Grace Wanjiru",
                "password": "Passw0rdSecure"
            }
        }


class LoginIn(BaseModel):
    email: str
    password: str


class LoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    tenant_id: Optional[str] = None


class SwitchTenantIn(BaseModel):
    tenant_id: UUID


class MembershipOut(BaseModel):
    id: UUID
    name: str
    slug: str
    role: str


class MeOut(BaseModel):
    id: UUID
    email: str
    full_name: str
    roles: List[str]
    is_active: bool
    active_tenant_id: Optional[str] = None
    tenants: List[MembershipOut] = []
