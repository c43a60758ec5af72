import enum
import re
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, UUID4, field_validator, model_validator
from decimal import Decimal
from datetime import date, datetime

from app.utils.availability import CalendarStatus, StopSaleStatus, iter_dates

TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# One bookable time slot on a date
class Slot(BaseModel):
    time: str                                  # "HH:MM"
    capacity: int = Field(10, ge=0)
    booked: int = Field(0, ge=0)
    blocked: bool = False                      # legacy per-slot block
    block_reason: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    extra_capacity: int = Field(0, ge=0)

    @field_validator("time")
    @classmethod
    def check_time(cls, v: str) -> str:
        v = v.strip()
        if not TIME_RE.match(v):
            raise ValueError("time must be HH:MM")
        return v


# Single-date editor (POST /admin/availability)
class AvailabilityUpsert(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    tour_id: UUID4
    date: date
    slots: List[Slot] = []
    stop_sale: bool = False
    stop_sale_reason: Optional[str] = None
    notes: Optional[str] = None


class BulkAction(str, enum.Enum):
    block = "block"
    unblock = "unblock"
    update_slots = "updateSlots"
    set_stop_sale = "setStopSale"


# Bulk update (PUT /admin/availability): either a list of dates or a range
class AvailabilityBulkUpdate(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    tour_id: UUID4
    action: BulkAction
    dates: List[date] = []
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    slots: Optional[List[Slot]] = None
    stop_sale: Optional[bool] = None
    stop_sale_reason: Optional[str] = None

    @model_validator(mode="after")
    def check_payload(self):
        if not self.dates and not (self.start_date and self.end_date):
            raise ValueError("Provide dates or start_date/end_date")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        if self.action == BulkAction.update_slots and self.slots is None:
            raise ValueError("slots are required for update_slots")
        if self.action == BulkAction.set_stop_sale and self.stop_sale is None:
            raise ValueError("stop_sale is required for set_stop_sale")
        return self

    def resolved_dates(self) -> List[date]:
        days = set(self.dates)
        if self.start_date and self.end_date:
            days.update(iter_dates(self.start_date, self.end_date))
        return sorted(days)


class BulkUpdateResult(BaseModel):
    created: int
    modified: int


class AvailabilityRecord(BaseModel):
    id: UUID4
    tenant_id: str
    tour_id: UUID4
    date: date
    slots: List[Slot] = []
    stop_sale_status: StopSaleStatus
    stopped_option_ids: List[str] = []
    stop_sale_reasons: Dict[str, str] = {}
    # Legacy pair, computed from stop_sale_status
    stop_sale: bool
    stop_sale_reason: str = ""
    status: CalendarStatus
    total_capacity: int
    total_booked: int
    notes: Optional[str] = None


class AvailabilityMonthMeta(BaseModel):
    month: int
    year: int
    count: int


class AvailabilityMonthResponse(BaseModel):
    data: List[AvailabilityRecord]
    calendar: Dict[str, Dict[str, CalendarStatus]]  # tour id -> "YYYY-MM-DD" -> status
    meta: AvailabilityMonthMeta


# Scoped stop-sale (PUT/DELETE /availability/stop-sale)
class StopSaleRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    tour_id: UUID4
    option_ids: List[str] = []                # empty => all options
    start_date: date
    end_date: date
    reason: str = ""

    @field_validator("option_ids")
    @classmethod
    def normalize_option_ids(cls, v: List[str]) -> List[str]:
        seen = []
        for option_id in v:
            option_id = option_id.strip()
            if option_id and option_id not in seen:
                seen.append(option_id)
        return seen

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        return v.strip()


class StopSaleResult(BaseModel):
    dates: int
    created: int
    modified: int
    log_entries: int


class StopSaleLog(BaseModel):
    id: UUID4
    tenant_id: str
    tour_id: UUID4
    tour_title: Optional[str] = None
    option_id: Optional[str] = None
    date_from: date
    date_to: date
    reason: Optional[str] = ""
    status: str
    applied_by: UUID4
    applied_by_name: Optional[str] = None
    applied_at: Optional[datetime] = None
    removed_by: Optional[UUID4] = None
    removed_by_name: Optional[str] = None
    removed_at: Optional[datetime] = None


# Public tour availability (GET /availability/{tour_id})
class OptionRef(BaseModel):
    id: str
    label: str
    type: str


class StopSaleDay(BaseModel):
    stop_sale_status: StopSaleStatus
    stopped_option_ids: List[str] = []
    reasons: Dict[str, str] = {}
    status: CalendarStatus


class TourAvailabilityMonth(BaseModel):
    tour_id: UUID4
    options: List[OptionRef]
    days: Dict[str, StopSaleDay]


class TourAvailabilityDay(StopSaleDay):
    tour_id: UUID4
    date: date
    options: List[OptionRef]
    slots: List[Slot] = []
