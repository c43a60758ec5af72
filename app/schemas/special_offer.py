from typing import Optional, List
from pydantic import BaseModel, Field, UUID4, field_validator, model_validator
from decimal import Decimal
from datetime import datetime

from app.models.special_offer import OfferType
from app.utils.offers import validate_offer_fields


class TourOptionSelection(BaseModel):
    tour_id: UUID4
    all_options: bool = True
    selected_options: List[str] = []   # option type-codes, e.g. "private-tour"


class SpecialOfferBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    type: OfferType = OfferType.percentage
    discount_value: Decimal = Field(..., ge=0)
    code: Optional[str] = Field(None, max_length=50)

    min_booking_value: Optional[Decimal] = Field(None, ge=0)
    max_discount: Optional[Decimal] = Field(None, ge=0)
    min_group_size: Optional[int] = Field(None, ge=2)
    min_days_in_advance: Optional[int] = Field(None, ge=1)
    max_days_before_tour: Optional[int] = Field(None, ge=0)

    start_date: datetime
    end_date: datetime
    travel_start_date: Optional[datetime] = None
    travel_end_date: Optional[datetime] = None

    applicable_tours: List[UUID4] = []
    tour_option_selections: List[TourOptionSelection] = []
    excluded_tours: List[UUID4] = []

    usage_limit: Optional[int] = Field(None, ge=0)

    is_active: bool = True
    is_featured: bool = False
    featured_badge_text: Optional[str] = Field("Special Offer", max_length=50)
    priority: int = 0
    terms: List[str] = []


# Offer: Create (POST /admin/special-offers)
class SpecialOfferCreate(SpecialOfferBase):
    tenant_id: str = Field(..., min_length=1)

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v):
        if v is None:
            return None
        v = str(v).strip().upper()
        return v or None

    @model_validator(mode="after")
    def check_offer(self):
        validate_offer_fields(self.type, self.discount_value, self.start_date, self.end_date)
        if self.type == OfferType.promo_code and not self.code:
            raise ValueError("code is required for promo_code offers")
        # A tour with an option selection is always one of the applicable tours
        for selection in self.tour_option_selections:
            if selection.tour_id not in self.applicable_tours:
                self.applicable_tours.append(selection.tour_id)
        return self


# Offer: Update (PATCH /admin/special-offers/{id}); cross-field checks run on the merged row
class SpecialOfferUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    type: Optional[OfferType] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)
    code: Optional[str] = Field(None, max_length=50)
    min_booking_value: Optional[Decimal] = Field(None, ge=0)
    max_discount: Optional[Decimal] = Field(None, ge=0)
    min_group_size: Optional[int] = Field(None, ge=2)
    min_days_in_advance: Optional[int] = Field(None, ge=1)
    max_days_before_tour: Optional[int] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    travel_start_date: Optional[datetime] = None
    travel_end_date: Optional[datetime] = None
    applicable_tours: Optional[List[UUID4]] = None
    tour_option_selections: Optional[List[TourOptionSelection]] = None
    excluded_tours: Optional[List[UUID4]] = None
    usage_limit: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    featured_badge_text: Optional[str] = Field(None, max_length=50)
    priority: Optional[int] = None
    terms: Optional[List[str]] = None

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v):
        if v is None:
            return None
        return str(v).strip().upper() or None


# Offer: DB response
class SpecialOffer(SpecialOfferBase):
    id: UUID4
    tenant_id: str
    used_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Public: offers for a tour (GET /offers/tour/{tour_id})
class OfferDiscount(BaseModel):
    original_price: Decimal
    discounted_price: Decimal
    discount_amount: Decimal
    discount_percentage: int


class ApplicableOffer(BaseModel):
    id: UUID4
    name: str
    description: Optional[str] = None
    type: OfferType
    discount_value: Decimal
    is_featured: bool = False
    featured_badge_text: Optional[str] = None
    priority: int = 0
    end_date: datetime
    display_text: str
    time_remaining: str
    show_urgency: bool
    discount: Optional[OfferDiscount] = None   # None when not applicable to this booking
    reason: Optional[str] = None


class TourOffersResponse(BaseModel):
    tour_id: UUID4
    original_price: Decimal
    offers: List[ApplicableOffer]
    best_offer: Optional[ApplicableOffer] = None
