import logging
from uuid import UUID
from typing import Optional, List, Dict, Tuple
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.api.v1.admin.tours import get_tour_or_404
from app.models.user import User
from app.models.tour import Tour
from app.models.availability import Availability
from app.models.stop_sale_log import StopSaleLog
from app.schemas.availability import (
    AvailabilityUpsert,
    AvailabilityBulkUpdate,
    BulkAction,
    BulkUpdateResult,
    AvailabilityRecord,
    AvailabilityMonthMeta,
    AvailabilityMonthResponse,
    StopSaleRequest,
    StopSaleResult,
    StopSaleLog as StopSaleLogSchema,
)
from app.schemas.common import PaginatedResponse, paginate
from app.utils.availability import (
    CalendarStatus,
    StopSaleState,
    derive_status,
    iter_dates,
    month_bounds,
    slot_totals,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/availability", tags=["Admin - Availability"])
stop_sale_router = APIRouter(prefix="/availability", tags=["Admin - Stop Sale"])
log_router = APIRouter(prefix="/admin/stop-sale-logs", tags=["Admin - Stop Sale"])

DEFAULT_BLOCK_REASON = "Blocked"


# ---------------------------------------------------------------------------
# Helpers (shared with bookings and the public calendar)
# ---------------------------------------------------------------------------


def get_record(db: Session, tenant_id: str, tour_id: UUID, day: date) -> Optional[Availability]:
    return (
        db.query(Availability)
        .filter(
            Availability.tenant_id == tenant_id,
            Availability.tour_id == tour_id,
            Availability.date == day,
        )
        .first()
    )


def get_or_create_record(
    db: Session, tenant_id: str, tour_id: UUID, day: date
) -> Tuple[Availability, bool]:
    """The date's record, creating an empty one if missing. Returns (record, created)."""
    record = get_record(db, tenant_id, tour_id, day)
    if record is not None:
        return record, False
    record = Availability(
        tenant_id=tenant_id,
        tour_id=tour_id,
        date=day,
        slots=[],
        stop_sale_status="none",
        stopped_option_ids=[],
        stop_sale_reasons={},
    )
    db.add(record)
    return record, True


def option_ids_of(tour: Tour) -> List[str]:
    return [str(o.id) for o in tour.options]


def serialize_record(record: Availability, option_ids: Optional[List[str]] = None) -> AvailabilityRecord:
    state = StopSaleState.from_record(record)
    capacity, booked = slot_totals(record.slots)
    return AvailabilityRecord(
        id=record.id,
        tenant_id=record.tenant_id,
        tour_id=record.tour_id,
        date=record.date,
        slots=record.slots or [],
        stop_sale_status=state.status,
        stopped_option_ids=sorted(state.option_ids),
        stop_sale_reasons=state.reasons,
        stop_sale=state.stop_sale,
        stop_sale_reason=state.stop_sale_reason,
        status=derive_status(record, option_ids),
        total_capacity=capacity,
        total_booked=booked,
        notes=record.notes,
    )


def _slots_json(slots) -> list:
    return [s.model_dump(mode="json") for s in slots]


def _check_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must be on or after start_date")


# ---------------------------------------------------------------------------
# Month view
# ---------------------------------------------------------------------------


@router.get("/", response_model=AvailabilityMonthResponse)
def get_month(
    tenant_id: str = Query(...),
    tour_id: Optional[UUID] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Availability records of one month with their derived status, plus a
    calendar per tour covering every day of the month. Days without a record
    show as `default`.
    """
    today = date.today()
    month = month or today.month
    year = year or today.year
    first, last = month_bounds(year, month)

    tours_q = db.query(Tour).options(selectinload(Tour.options)).filter(Tour.tenant_id == tenant_id)
    if tour_id:
        tours_q = tours_q.filter(Tour.id == tour_id)
    else:
        tours_q = tours_q.filter(Tour.is_active == True)  # noqa: E712
    tours = tours_q.all()
    if tour_id and not tours:
        raise HTTPException(status_code=404, detail="Tour not found")
    options_by_tour = {t.id: option_ids_of(t) for t in tours}

    query = db.query(Availability).filter(
        Availability.tenant_id == tenant_id,
        Availability.date >= first,
        Availability.date <= last,
    )
    if tour_id:
        query = query.filter(Availability.tour_id == tour_id)
    records = query.order_by(Availability.date, Availability.tour_id).all()

    calendar: Dict[str, Dict[str, CalendarStatus]] = {
        str(t.id): {d.isoformat(): CalendarStatus.default for d in iter_dates(first, last)}
        for t in tours
    }
    data = []
    for record in records:
        item = serialize_record(record, options_by_tour.get(record.tour_id))
        data.append(item)
        calendar.setdefault(
            str(record.tour_id),
            {d.isoformat(): CalendarStatus.default for d in iter_dates(first, last)},
        )[record.date.isoformat()] = item.status

    return AvailabilityMonthResponse(
        data=data,
        calendar=calendar,
        meta=AvailabilityMonthMeta(month=month, year=year, count=len(data)),
    )


# ---------------------------------------------------------------------------
# Single-date editor
# ---------------------------------------------------------------------------


@router.post("/", response_model=AvailabilityRecord, status_code=status.HTTP_200_OK)
def upsert_date(
    data: AvailabilityUpsert,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Replace one date's slots and notes. The legacy `stop_sale` flag maps onto
    the all-options stop; options stopped individually are left alone.
    """
    tour = get_tour_or_404(db, data.tenant_id, data.tour_id)
    record, created = get_or_create_record(db, data.tenant_id, data.tour_id, data.date)

    record.slots = _slots_json(data.slots)
    record.notes = data.notes

    state = StopSaleState.from_record(record)
    if data.stop_sale:
        state = state.apply((), data.stop_sale_reason or "")
    else:
        state = state.remove(())
    state.write_to(record)

    db.commit()
    db.refresh(record)
    logger.info(
        "Availability %s for tour %s on %s (stop_sale=%s)",
        "created" if created else "updated", data.tour_id, data.date, state.status.value,
    )
    return serialize_record(record, option_ids_of(tour))


# ---------------------------------------------------------------------------
# Bulk update
# ---------------------------------------------------------------------------


@router.put("/", response_model=BulkUpdateResult)
def bulk_update(
    data: AvailabilityBulkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    get_tour_or_404(db, data.tenant_id, data.tour_id)

    created = 0
    modified = 0
    for day in data.resolved_dates():
        record, is_new = get_or_create_record(db, data.tenant_id, data.tour_id, day)
        state = StopSaleState.from_record(record)

        if data.action == BulkAction.block:
            state = state.apply((), data.stop_sale_reason or DEFAULT_BLOCK_REASON)
        elif data.action == BulkAction.unblock:
            state = state.remove(())
        elif data.action == BulkAction.update_slots:
            record.slots = _slots_json(data.slots)
        elif data.action == BulkAction.set_stop_sale:
            if data.stop_sale:
                state = state.apply((), data.stop_sale_reason or "")
            else:
                state = state.remove(())

        state.write_to(record)
        if is_new:
            created += 1
        else:
            modified += 1

    db.commit()
    logger.info(
        "Bulk %s on tour %s by %s: %d created, %d modified",
        data.action.value, data.tour_id, current_user.email, created, modified,
    )
    return BulkUpdateResult(created=created, modified=modified)


# ---------------------------------------------------------------------------
# Scoped stop-sale (all options or selected options over a date range)
# ---------------------------------------------------------------------------


def _validated_tour(db: Session, data: StopSaleRequest) -> Tour:
    _check_range(data.start_date, data.end_date)
    tour = get_tour_or_404(db, data.tenant_id, data.tour_id)
    known = set(option_ids_of(tour))
    unknown = [i for i in data.option_ids if i not in known]
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown option ids for this tour: {', '.join(unknown)}",
        )
    return tour


@stop_sale_router.put("/stop-sale", response_model=StopSaleResult)
def apply_stop_sale(
    data: StopSaleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Stop sales for the given options (or every option) on each date of the range."""
    _validated_tour(db, data)

    created = 0
    modified = 0
    days = list(iter_dates(data.start_date, data.end_date))
    for day in days:
        record, is_new = get_or_create_record(db, data.tenant_id, data.tour_id, day)
        StopSaleState.from_record(record).apply(data.option_ids, data.reason).write_to(record)
        if is_new:
            created += 1
        else:
            modified += 1

    entries = [
        StopSaleLog(
            tenant_id=data.tenant_id,
            tour_id=data.tour_id,
            option_id=option_id,
            date_from=data.start_date,
            date_to=data.end_date,
            reason=data.reason,
            status="active",
            applied_by=current_user.id,
        )
        for option_id in (data.option_ids or [None])
    ]
    db.add_all(entries)
    db.commit()

    logger.info(
        "Stop-sale applied on tour %s (%s) %s..%s by %s",
        data.tour_id, ", ".join(data.option_ids) or "all options",
        data.start_date, data.end_date, current_user.email,
    )
    return StopSaleResult(dates=len(days), created=created, modified=modified, log_entries=len(entries))


@stop_sale_router.delete("/stop-sale", response_model=StopSaleResult)
def remove_stop_sale(
    data: StopSaleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Lift the stop-sale for the given options (or the all-options stop) over the range."""
    _validated_tour(db, data)

    records = (
        db.query(Availability)
        .filter(
            Availability.tenant_id == data.tenant_id,
            Availability.tour_id == data.tour_id,
            Availability.date >= data.start_date,
            Availability.date <= data.end_date,
        )
        .all()
    )
    for record in records:
        StopSaleState.from_record(record).remove(data.option_ids).write_to(record)

    if data.option_ids:
        scope = StopSaleLog.option_id.in_(data.option_ids)
    else:
        scope = StopSaleLog.option_id.is_(None)
    active_logs = (
        db.query(StopSaleLog)
        .filter(
            StopSaleLog.tenant_id == data.tenant_id,
            StopSaleLog.tour_id == data.tour_id,
            StopSaleLog.status == "active",
            scope,
            # overlapping ranges
            StopSaleLog.date_from <= data.end_date,
            StopSaleLog.date_to >= data.start_date,
        )
        .all()
    )
    removed_at = datetime.now(timezone.utc)
    for entry in active_logs:
        entry.status = "removed"
        entry.removed_by = current_user.id
        entry.removed_at = removed_at

    db.commit()
    logger.info(
        "Stop-sale removed on tour %s (%s) %s..%s by %s",
        data.tour_id, ", ".join(data.option_ids) or "all options",
        data.start_date, data.end_date, current_user.email,
    )
    return StopSaleResult(
        dates=(data.end_date - data.start_date).days + 1,
        created=0,
        modified=len(records),
        log_entries=len(active_logs),
    )


# ---------------------------------------------------------------------------
# Stop-sale history
# ---------------------------------------------------------------------------


def _serialize_log(entry: StopSaleLog) -> StopSaleLogSchema:
    return StopSaleLogSchema(
        id=entry.id,
        tenant_id=entry.tenant_id,
        tour_id=entry.tour_id,
        tour_title=entry.tour.title if entry.tour else None,
        option_id=entry.option_id,
        date_from=entry.date_from,
        date_to=entry.date_to,
        reason=entry.reason or "",
        status=entry.status,
        applied_by=entry.applied_by,
        applied_by_name=entry.applied_by_user.full_name if entry.applied_by_user else None,
        applied_at=entry.applied_at,
        removed_by=entry.removed_by,
        removed_by_name=entry.removed_by_user.full_name if entry.removed_by_user else None,
        removed_at=entry.removed_at,
    )


@log_router.get("/", response_model=PaginatedResponse[StopSaleLogSchema])
def list_stop_sale_logs(
    tenant_id: str = Query(...),
    tour_id: Optional[UUID] = Query(None),
    option_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None, pattern="^(active|removed)$"),
    date_from: Optional[date] = Query(None, description="Stop-sales covering dates on/after this day"),
    date_to: Optional[date] = Query(None, description="Stop-sales covering dates on/before this day"),
    sort_by: str = Query("applied_at", pattern="^(applied_at|date_from)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(StopSaleLog).filter(StopSaleLog.tenant_id == tenant_id)
    if tour_id:
        query = query.filter(StopSaleLog.tour_id == tour_id)
    if option_id:
        # an all-options entry covers every option
        query = query.filter(or_(StopSaleLog.option_id == option_id, StopSaleLog.option_id.is_(None)))
    if status:
        query = query.filter(StopSaleLog.status == status)
    if date_from:
        query = query.filter(StopSaleLog.date_to >= date_from)
    if date_to:
        query = query.filter(StopSaleLog.date_from <= date_to)

    total = query.count()
    column = getattr(StopSaleLog, sort_by)
    entries = (
        query.options(
            joinedload(StopSaleLog.tour),
            joinedload(StopSaleLog.applied_by_user),
            joinedload(StopSaleLog.removed_by_user),
        )
        .order_by(column.asc() if order == "asc" else column.desc(), StopSaleLog.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return paginate([_serialize_log(e) for e in entries], total, page, limit)
