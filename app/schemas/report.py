from typing import List
from pydantic import BaseModel, UUID4
from decimal import Decimal


class ReportSummary(BaseModel):
    total_revenue: Decimal
    total_bookings: int
    total_guests: int
    total_discounts: Decimal
    avg_per_booking: Decimal
    # Always computed separately, not affected by include_cancelled flag
    cancelled_revenue: Decimal
    cancelled_bookings: int


class TimeSeriesPoint(BaseModel):
    period: str          # "2026-02-25" | "2026-02" | "2026"
    revenue: Decimal
    bookings: int
    guests: int


class TourBreakdown(BaseModel):
    tour_id: UUID4
    title: str
    slug: str
    revenue: Decimal
    bookings: int
    guests: int


class ReportResponse(BaseModel):
    summary: ReportSummary
    time_series: List[TimeSeriesPoint]
    by_tour: List[TourBreakdown]
