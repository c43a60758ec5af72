from typing import Optional, List
from pydantic import BaseModel, Field, UUID4
from decimal import Decimal
from datetime import datetime


# Booking options; `id` is only sent when editing an existing option
class TourOptionCreate(BaseModel):
    id: Optional[UUID4] = None
    type: str = Field(..., min_length=1, max_length=100)   # e.g. "private-tour"
    label: str = Field(..., min_length=1, max_length=255)  # e.g. "Private Tour"
    price: Decimal = Field(..., ge=0)
    display_order: int = 0


class TourOption(TourOptionCreate):
    id: UUID4

    class Config:
        from_attributes = True


# Add-ons
class TourAddOnCreate(BaseModel):
    id: Optional[UUID4] = None
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., ge=0)
    per_guest: bool = False


class TourAddOn(TourAddOnCreate):
    id: UUID4

    class Config:
        from_attributes = True


# Tour
class TourBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    discount_price: Optional[Decimal] = Field(None, ge=0)
    duration_minutes: Optional[int] = Field(None, ge=0)


class TourCreate(TourBase):
    tenant_id: str
    options: List[TourOptionCreate] = []
    add_ons: List[TourAddOnCreate] = []


class TourUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    discount_price: Optional[Decimal] = Field(None, ge=0)
    duration_minutes: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    # When given, these replace the existing lists
    options: Optional[List[TourOptionCreate]] = None
    add_ons: Optional[List[TourAddOnCreate]] = None


class Tour(TourBase):
    id: UUID4
    tenant_id: str
    slug: str
    is_active: bool
    created_at: Optional[datetime] = None
    options: List[TourOption] = []
    add_ons: List[TourAddOn] = []

    class Config:
        from_attributes = True


# Compact tour for nested responses (bookings, stop-sale logs)
class TourSummary(BaseModel):
    id: UUID4
    title: str
    slug: str

    class Config:
        from_attributes = True
