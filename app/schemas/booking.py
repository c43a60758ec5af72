from typing import Optional, List, Dict
from pydantic import BaseModel, EmailStr, Field, UUID4, field_validator, model_validator
from decimal import Decimal
from datetime import date, datetime

from app.schemas.availability import TIME_RE
from app.schemas.tour import TourSummary
from app.utils.booking_status import BookingStatus, to_booking_status


def _parse_status(v):
    if v is None or isinstance(v, BookingStatus):
        return v
    status = to_booking_status(v)
    if status is None:
        raise ValueError(f"Unknown booking status: {v}")
    return status


# Booking: Manual create (POST /admin/bookings)
class BookingCreate(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    tour_id: UUID4
    option_id: Optional[UUID4] = None
    tour_date: date
    time: Optional[str] = None
    adult_guests: int = Field(1, ge=0)
    child_guests: int = Field(0, ge=0)
    infant_guests: int = Field(0, ge=0)
    add_ons: Dict[str, int] = {}            # add-on id -> quantity
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    offer_code: Optional[str] = None
    apply_offers: bool = True
    status: BookingStatus = BookingStatus.confirmed
    notes: Optional[str] = None

    @field_validator("option_id", "time", "offer_code", mode="before")
    @classmethod
    def parse_empty_str_to_none(cls, v):
        if v == "":
            return None
        return v

    @field_validator("time")
    @classmethod
    def check_time(cls, v):
        if v is not None and not TIME_RE.match(v.strip()):
            raise ValueError("time must be HH:MM")
        return v.strip() if v else v

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _parse_status(v)

    @model_validator(mode="after")
    def check_guests(self):
        if self.adult_guests + self.child_guests + self.infant_guests < 1:
            raise ValueError("A booking needs at least one guest")
        return self


# Booking: Status change (PATCH /admin/bookings/{id}/status)
class BookingStatusUpdate(BaseModel):
    status: BookingStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _parse_status(v)


# Two-decimal view of app.utils.pricing.PricingBreakdown
class PricingBreakdown(BaseModel):
    adult_price: Decimal
    child_price: Decimal
    tour_subtotal: Decimal
    add_ons_total: Decimal
    subtotal: Decimal
    service_fee: Decimal
    tax: Decimal
    calculated_total: Decimal
    total: Decimal
    discount_amount: Decimal
    amount_due: Decimal


class SelectedOption(BaseModel):
    id: Optional[str] = None
    type: Optional[str] = None
    label: Optional[str] = None
    price: Optional[Decimal] = None


class BookingOfferSummary(BaseModel):
    id: UUID4
    name: str
    type: str


# Booking: Admin response (GET /admin/bookings)
class Booking(BaseModel):
    id: UUID4
    tenant_id: str
    tour_id: UUID4
    booking_reference: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    tour_date: date
    time: Optional[str] = None
    guests: int
    adult_guests: Optional[int] = None
    child_guests: Optional[int] = None
    infant_guests: Optional[int] = None
    selected_option: Optional[SelectedOption] = None
    selected_add_ons: Dict[str, int] = {}
    total_price: Decimal
    discount_amount: Decimal = Decimal("0")
    status: str
    status_label: Optional[str] = None
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    tour: Optional[TourSummary] = None
    offer: Optional[BookingOfferSummary] = None


# Booking: Detail with price breakdown (GET /admin/bookings/{id})
class BookingDetail(Booking):
    pricing: Optional[PricingBreakdown] = None


# Booking: Cancel response (PATCH /admin/bookings/{id}/cancel)
class BookingCancelResponse(BaseModel):
    id: UUID4
    booking_reference: str
    status: str
    cancelled_at: datetime
