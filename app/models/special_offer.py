import uuid
import enum
from sqlalchemy import Column, String, Boolean, DateTime, func, Text, DECIMAL, Integer, JSON, Enum as SAEnum, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from app.db.session import Base

class OfferType(str, enum.Enum):
    percentage = "percentage"
    fixed = "fixed"
    bundle = "bundle"
    early_bird = "early_bird"
    last_minute = "last_minute"
    group = "group"
    promo_code = "promo_code"

class SpecialOffer(Base):
    __tablename__ = "special_offers"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_special_offer_code"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    type = Column(SAEnum(OfferType, native_enum=False), nullable=False, default=OfferType.percentage)
    discount_value = Column(DECIMAL(10, 2), nullable=False)
    code = Column(String(50), nullable=True)

    min_booking_value = Column(DECIMAL(10, 2), nullable=True)
    max_discount = Column(DECIMAL(10, 2), nullable=True)
    min_group_size = Column(Integer, nullable=True)
    min_days_in_advance = Column(Integer, nullable=True)
    max_days_before_tour = Column(Integer, nullable=True)

    # Validity period (when the offer can be used)
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)
    end_date = Column(DateTime(timezone=True), nullable=False, index=True)
    # Travel window (when the tour must take place)
    travel_start_date = Column(DateTime(timezone=True), nullable=True)
    travel_end_date = Column(DateTime(timezone=True), nullable=True)

    applicable_tours = Column(JSON, nullable=False, default=list) # tour ids, empty => all tours
    tour_option_selections = Column(JSON, nullable=False, default=list) # [{tour_id, all_options, selected_options}]
    excluded_tours = Column(JSON, nullable=False, default=list)

    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, default=True, index=True)
    is_featured = Column(Boolean, default=False)
    featured_badge_text = Column(String(50), default="Special Offer")
    priority = Column(Integer, default=0)
    terms = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
