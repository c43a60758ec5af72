from uuid import UUID
from typing import Optional, Union
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from app.db.session import get_db
from app.api.v1.admin.availability import get_record, option_ids_of
from app.models.tour import Tour
from app.models.availability import Availability
from app.schemas.availability import (
    OptionRef,
    StopSaleDay,
    TourAvailabilityDay,
    TourAvailabilityMonth,
)
from app.utils.availability import StopSaleState, derive_status, iter_dates, month_bounds

router = APIRouter(prefix="/availability", tags=["Availability"])


def _stop_sale_day(record: Optional[Availability], option_ids) -> StopSaleDay:
    state = StopSaleState.from_record(record)
    return StopSaleDay(
        stop_sale_status=state.status,
        stopped_option_ids=sorted(state.option_ids),
        reasons=state.reasons,
        status=derive_status(record, option_ids),
    )


@router.get("/{tour_id}", response_model=Union[TourAvailabilityDay, TourAvailabilityMonth])
def get_tour_availability(
    tour_id: UUID,
    tenant_id: str = Query(...),
    day: Optional[date] = Query(None, alias="date", description="Single day (YYYY-MM-DD)"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
):
    """
    Stop-sale state of a tour, per day. With `date` the response is flattened
    to that day and includes its slots; otherwise every day of `month`/`year`
    (default: the current month) is listed.
    """
    tour = (
        db.query(Tour)
        .options(selectinload(Tour.options))
        .filter(Tour.id == tour_id, Tour.tenant_id == tenant_id, Tour.is_active == True)  # noqa: E712
        .first()
    )
    if not tour:
        raise HTTPException(status_code=404, detail="Tour not found")

    option_ids = option_ids_of(tour)
    options = [OptionRef(id=str(o.id), label=o.label, type=o.type) for o in tour.options]

    if day is not None:
        record = get_record(db, tenant_id, tour_id, day)
        state = _stop_sale_day(record, option_ids)
        return TourAvailabilityDay(
            tour_id=tour_id,
            date=day,
            options=options,
            slots=record.slots if record else [],
            **state.model_dump(),
        )

    if (month is None) != (year is None):
        raise HTTPException(status_code=400, detail="Provide both `month` and `year`.")
    today = date.today()
    first, last = month_bounds(year or today.year, month or today.month)

    records = {
        r.date: r
        for r in db.query(Availability).filter(
            Availability.tenant_id == tenant_id,
            Availability.tour_id == tour_id,
            Availability.date >= first,
            Availability.date <= last,
        )
    }
    days = {
        d.isoformat(): _stop_sale_day(records.get(d), option_ids)
        for d in iter_dates(first, last)
    }
    return TourAvailabilityMonth(tour_id=tour_id, options=options, days=days)