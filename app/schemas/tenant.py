from typing import Optional
from pydantic import BaseModel, EmailStr, Field, UUID4
from datetime import datetime


class TenantBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    domain: Optional[str] = None
    currency: str = Field("USD", min_length=3, max_length=3)
    contact_email: Optional[EmailStr] = None


class TenantCreate(TenantBase):
    tenant_id: str = Field(..., pattern=r"^[a-z0-9][a-z0-9-]{0,63}$")


class TenantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    domain: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    contact_email: Optional[EmailStr] = None
    is_active: Optional[bool] = None


class Tenant(TenantBase):
    id: UUID4
    tenant_id: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
