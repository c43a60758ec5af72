import uuid
from sqlalchemy import Column, String, DateTime, func, DECIMAL, Integer, ForeignKey, Text, Date, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

class Booking(Base):
    __tablename__ = "bookings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    tour_id = Column(UUID(as_uuid=True), ForeignKey("tours.id"), nullable=False, index=True)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(30), nullable=True)
    tour_date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=True) # HH:MM slot
    guests = Column(Integer, nullable=False, default=1)
    adult_guests = Column(Integer, nullable=True)
    child_guests = Column(Integer, nullable=True)
    infant_guests = Column(Integer, nullable=True)
    selected_option = Column(JSON, nullable=True) # {id, type, label, price}
    selected_add_ons = Column(JSON, nullable=False, default=dict) # add-on id -> quantity
    selected_add_on_details = Column(JSON, nullable=False, default=dict) # add-on id -> {name, price, per_guest}
    total_price = Column(DECIMAL(10, 2), nullable=False, default=0)
    discount_amount = Column(DECIMAL(10, 2), nullable=False, default=0)
    offer_id = Column(UUID(as_uuid=True), ForeignKey("special_offers.id"), nullable=True)
    status = Column(String(20), default="confirmed", index=True) # see app.utils.booking_status
    notes = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Relationships
    tour = relationship("Tour")
    offer = relationship("SpecialOffer")
