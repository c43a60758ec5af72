import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, DECIMAL, Integer, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

class Tour(Base):
    __tablename__ = "tours"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(DECIMAL(10, 2), nullable=True)
    discount_price = Column(DECIMAL(10, 2), nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Relationships
    options = relationship(
        "TourOption", back_populates="tour", cascade="all, delete-orphan",
        order_by="TourOption.display_order",
    )
    add_ons = relationship("TourAddOn", back_populates="tour", cascade="all, delete-orphan")


class TourOption(Base):
    """A priced booking variant of a tour, e.g. "Private Tour"."""
    __tablename__ = "tour_options"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tour_id = Column(UUID(as_uuid=True), ForeignKey("tours.id"), nullable=False, index=True)
    type = Column(String(100), nullable=False) # type-code matched by offer selections, e.g. "private-tour"
    label = Column(String(255), nullable=False)
    price = Column(DECIMAL(10, 2), nullable=False)
    display_order = Column(Integer, default=0)

    tour = relationship("Tour", back_populates="options")


class TourAddOn(Base):
    __tablename__ = "tour_add_ons"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tour_id = Column(UUID(as_uuid=True), ForeignKey("tours.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(DECIMAL(10, 2), nullable=False)
    per_guest = Column(Boolean, default=False)

    tour = relationship("Tour", back_populates="add_ons")
