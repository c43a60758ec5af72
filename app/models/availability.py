import uuid
from sqlalchemy import Column, String, DateTime, func, ForeignKey, Text, Date, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

class Availability(Base):
    """Slots and stop-sale state of one tour on one calendar date."""
    __tablename__ = "availability"
    __table_args__ = (
        UniqueConstraint("tenant_id", "tour_id", "date", name="uq_availability_tour_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    tour_id = Column(UUID(as_uuid=True), ForeignKey("tours.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    slots = Column(JSON, nullable=False, default=list) # [{time, capacity, booked, blocked, block_reason, price, extra_capacity}]
    stop_sale_status = Column(String(10), nullable=False, default="none", index=True) # none, partial, full
    stopped_option_ids = Column(JSON, nullable=False, default=list)
    stop_sale_reasons = Column(JSON, nullable=False, default=dict) # "all" | option id -> reason
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    tour = relationship("Tour")
