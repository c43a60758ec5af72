from uuid import UUID
from typing import Optional, Dict
from datetime import date
from decimal import Decimal
from collections import OrderedDict

from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import func

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.models.user import User
from app.models.booking import Booking
from app.models.tour import Tour
from app.schemas.report import (
    ReportResponse,
    ReportSummary,
    TimeSeriesPoint,
    TourBreakdown,
)
from app.utils.availability import month_bounds
from app.utils.booking_status import BookingStatus, PAID_STATUSES
from app.utils.pricing import to_cents

router = APIRouter(prefix="/admin/reports", tags=["Admin - Reports"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _filters(tenant_id, date_from, date_to, tour_id):
    """Filters shared by every sub-query (no status filter here)."""
    filters = [Booking.tenant_id == tenant_id]
    if date_from:
        filters.append(Booking.tour_date >= date_from)
    if date_to:
        filters.append(Booking.tour_date <= date_to)
    if tour_id:
        filters.append(Booking.tour_id == tour_id)
    return filters


def _period(day: date, group_by: str) -> str:
    if group_by == "day":
        return day.strftime("%Y-%m-%d")
    elif group_by == "month":
        return day.strftime("%Y-%m")
    return day.strftime("%Y")


# ---------------------------------------------------------------------------
# Report endpoint
# ---------------------------------------------------------------------------


@router.get("/", response_model=ReportResponse)
def get_report(
    tenant_id: str = Query(...),

    # --- Date range (applied to tour_date, i.e. when the tour runs) ---
    date_from: Optional[date] = Query(None, description="Start date (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(None, description="End date (YYYY-MM-DD)"),
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Filter entire year"),
    month: Optional[int] = Query(None, ge=1, le=12, description="Filter a specific month (requires year)"),

    tour_id: Optional[UUID] = Query(None, description="Filter by a specific tour"),

    # --- Time series grouping ---
    group_by: str = Query("month", pattern="^(day|month|year)$", description="Time-series granularity"),

    # --- Cancelled handling ---
    include_cancelled: bool = Query(
        False,
        description=(
            "Include cancelled bookings in main revenue totals. "
            "Cancelled stats are always shown separately regardless."
        ),
    ),

    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Revenue report of one tenant.

    **Date filtering** (on `tour_date`):
    - `date_from` / `date_to` for a custom range.
    - `year` alone for a full calendar year, `year` + `month` for one month.

    **Response includes:**
    - `summary`: totals, discounts granted and cancelled stats
    - `time_series`: revenue over time (granularity set by `group_by`)
    - `by_tour`: top 20 tours by revenue
    """
    if month and not year:
        raise HTTPException(
            status_code=400, detail="Provide `year` alongside `month`."
        )

    # Resolve year/month convenience params into date_from / date_to
    if year and not date_from and not date_to:
        if month:
            date_from, date_to = month_bounds(year, month)
        else:
            date_from = date(year, 1, 1)
            date_to = date(year, 12, 31)

    if date_from and date_to and date_to < date_from:
        raise HTTPException(status_code=400, detail="date_to must be on or after date_from")

    dim = _filters(tenant_id, date_from, date_to, tour_id)
    statuses = list(PAID_STATUSES) + ([BookingStatus.cancelled.value] if include_cancelled else [])
    revenue_filters = [Booking.status.in_(statuses)] + dim
    cancelled_filters = [Booking.status == BookingStatus.cancelled.value] + dim

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------
    s = (
        db.query(
            func.coalesce(func.sum(Booking.total_price), 0).label("revenue"),
            func.count(Booking.id).label("bookings"),
            func.coalesce(func.sum(Booking.guests), 0).label("guests"),
            func.coalesce(func.sum(Booking.discount_amount), 0).label("discounts"),
        )
        .filter(*revenue_filters)
        .one()
    )
    revenue = Decimal(str(s.revenue))
    avg = to_cents(revenue / s.bookings) if s.bookings > 0 else Decimal("0.00")

    c = (
        db.query(
            func.coalesce(func.sum(Booking.total_price), 0).label("revenue"),
            func.count(Booking.id).label("bookings"),
        )
        .filter(*cancelled_filters)
        .one()
    )

    summary = ReportSummary(
        total_revenue=to_cents(revenue),
        total_bookings=s.bookings,
        total_guests=s.guests,
        total_discounts=to_cents(Decimal(str(s.discounts))),
        avg_per_booking=avg,
        cancelled_revenue=to_cents(Decimal(str(c.revenue))),
        cancelled_bookings=c.bookings,
    )

    # ------------------------------------------------------------------
    # Time series (grouped per tour date, bucketed here so any backend works)
    # ------------------------------------------------------------------
    day_rows = (
        db.query(
            Booking.tour_date.label("day"),
            func.coalesce(func.sum(Booking.total_price), 0).label("revenue"),
            func.count(Booking.id).label("bookings"),
            func.coalesce(func.sum(Booking.guests), 0).label("guests"),
        )
        .filter(*revenue_filters)
        .group_by(Booking.tour_date)
        .order_by(Booking.tour_date)
        .all()
    )

    buckets: Dict[str, dict] = OrderedDict()
    for r in day_rows:
        bucket = buckets.setdefault(
            _period(r.day, group_by), {"revenue": Decimal("0"), "bookings": 0, "guests": 0}
        )
        bucket["revenue"] += Decimal(str(r.revenue))
        bucket["bookings"] += r.bookings
        bucket["guests"] += r.guests

    time_series = [
        TimeSeriesPoint(
            period=period,
            revenue=to_cents(b["revenue"]),
            bookings=b["bookings"],
            guests=b["guests"],
        )
        for period, b in buckets.items()
    ]

    # ------------------------------------------------------------------
    # By tour (top 20)
    # ------------------------------------------------------------------
    tour_rows = (
        db.query(
            Tour.id.label("tour_id"),
            Tour.title.label("title"),
            Tour.slug.label("slug"),
            func.coalesce(func.sum(Booking.total_price), 0).label("revenue"),
            func.count(Booking.id).label("bookings"),
            func.coalesce(func.sum(Booking.guests), 0).label("guests"),
        )
        .select_from(Booking)
        .join(Tour, Tour.id == Booking.tour_id)
        .filter(*revenue_filters)
        .group_by(Tour.id, Tour.title, Tour.slug)
        .order_by(func.sum(Booking.total_price).desc())
        .limit(20)
        .all()
    )

    by_tour = [
        TourBreakdown(
            tour_id=r.tour_id,
            title=r.title,
            slug=r.slug,
            revenue=to_cents(Decimal(str(r.revenue))),
            bookings=r.bookings,
            guests=r.guests,
        )
        for r in tour_rows
    ]

    return ReportResponse(summary=summary, time_series=time_series, by_tour=by_tour)
