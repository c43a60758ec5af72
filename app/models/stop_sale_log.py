import uuid
from sqlalchemy import Column, String, DateTime, func, ForeignKey, Text, Date
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

class StopSaleLog(Base):
    __tablename__ = "stop_sale_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    tour_id = Column(UUID(as_uuid=True), ForeignKey("tours.id"), nullable=False, index=True)
    option_id = Column(String(64), nullable=True) # NULL => all options
    date_from = Column(Date, nullable=False, index=True)
    date_to = Column(Date, nullable=False, index=True)
    reason = Column(Text, default="")
    status = Column(String(10), default="active", index=True) # active, removed
    applied_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    applied_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    removed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    removed_at = Column(DateTime(timezone=True), nullable=True)

    tour = relationship("Tour")
    applied_by_user = relationship("User", foreign_keys=[applied_by])
    removed_by_user = relationship("User", foreign_keys=[removed_by])
