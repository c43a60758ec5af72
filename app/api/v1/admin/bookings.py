import logging
import uuid
from uuid import UUID
from typing import Optional
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from app.db.session import get_db
from app.core.config import settings
from app.api.deps import get_current_admin_user
from app.api.v1.admin.tours import get_tour_or_404
from app.api.v1.admin.availability import get_record
from app.models.user import User
from app.models.booking import Booking
from app.models.special_offer import SpecialOffer
from app.schemas.booking import (
    Booking as BookingSchema,
    BookingCreate,
    BookingDetail,
    BookingStatusUpdate,
    BookingCancelResponse,
    BookingOfferSummary,
    PricingBreakdown,
)
from app.schemas.tour import TourSummary
from app.schemas.common import PaginatedResponse, paginate
from app.utils.availability import StopSaleState
from app.utils.booking_status import BookingStatus, to_booking_status, to_booking_status_label
from app.utils.fields import to_int
from app.utils.offers import OfferContext, select_offer
from app.utils.pricing import compute_pricing, to_cents

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/bookings", tags=["Admin - Bookings"])


def _serialize_booking(booking: Booking, schema=BookingSchema):
    tour_summary = TourSummary.model_validate(booking.tour) if booking.tour else None
    offer_summary = None
    if booking.offer:
        offer_summary = BookingOfferSummary(
            id=booking.offer.id, name=booking.offer.name, type=booking.offer.type.value
        )
    extra = {}
    if schema is BookingDetail:
        pricing = compute_pricing(booking)
        extra["pricing"] = PricingBreakdown(**pricing.rounded()) if pricing else None

    return schema(
        id=booking.id,
        tenant_id=booking.tenant_id,
        tour_id=booking.tour_id,
        booking_reference=booking.booking_reference,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        customer_phone=booking.customer_phone,
        tour_date=booking.tour_date,
        time=booking.time,
        guests=booking.guests,
        adult_guests=booking.adult_guests,
        child_guests=booking.child_guests,
        infant_guests=booking.infant_guests,
        selected_option=booking.selected_option,
        selected_add_ons=booking.selected_add_ons or {},
        total_price=booking.total_price,
        discount_amount=booking.discount_amount or 0,
        status=booking.status,
        status_label=to_booking_status_label(booking.status),
        notes=booking.notes,
        cancelled_at=booking.cancelled_at,
        created_at=booking.created_at,
        tour=tour_summary,
        offer=offer_summary,
        **extra,
    )


def _get_booking_or_404(db: Session, tenant_id: str, id: UUID) -> Booking:
    booking = (
        db.query(Booking)
        .options(joinedload(Booking.tour), joinedload(Booking.offer))
        .filter(Booking.id == id, Booking.tenant_id == tenant_id)
        .first()
    )
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def _new_reference(db: Session) -> str:
    while True:
        reference = f"TRB-{uuid.uuid4().hex[:8].upper()}"
        if not db.query(Booking.id).filter(Booking.booking_reference == reference).first():
            return reference


def _adjust_booked(record, time: str, delta: int) -> None:
    """Add `delta` guests to the slot at `time`; the slot list is replaced so the JSON change is tracked."""
    slots = []
    for slot in record.slots or []:
        slot = dict(slot)
        if slot.get("time") == time:
            slot["booked"] = max(to_int(slot.get("booked"), 0) + delta, 0)
        slots.append(slot)
    record.slots = slots


def _reserve_capacity(db: Session, tenant_id: str, tour_id, tour_date, time: Optional[str], option_id, guests: int):
    """
    Take `guests` seats on a date, rejecting it when sales are stopped or the
    slot is short. `option_id` is None for tours without options.
    """
    record = get_record(db, tenant_id, tour_id, tour_date)
    state = StopSaleState.from_record(record)
    stopped = state.is_option_stopped(option_id) if option_id is not None else state.is_full
    if stopped:
        reason = state.reasons.get(str(option_id)) if option_id is not None else None
        reason = reason or state.stop_sale_reason
        raise HTTPException(
            status_code=409,
            detail=f"Sales are stopped for this date{': ' + reason if reason else ''}",
        )

    if record is None or not record.slots:
        return
    if time is None:
        raise HTTPException(status_code=400, detail="time is required on dates with slots")
    slot = next((s for s in record.slots if s.get("time") == time), None)
    if slot is None:
        raise HTTPException(status_code=400, detail=f"No slot at {time} on {tour_date}")
    if slot.get("blocked"):
        raise HTTPException(status_code=409, detail=f"The {time} slot is blocked")
    available = to_int(slot.get("capacity"), 0) + to_int(slot.get("extra_capacity"), 0) - to_int(slot.get("booked"), 0)
    if guests > available:
        raise HTTPException(
            status_code=409,
            detail=f"Insufficient capacity at {time}: {max(available, 0)} available, {guests} requested",
        )
    _adjust_booked(record, time, guests)


def _release_capacity(db: Session, booking: Booking) -> None:
    if not booking.time:
        return
    record = get_record(db, booking.tenant_id, booking.tour_id, booking.tour_date)
    if record is not None:
        _adjust_booked(record, booking.time, -booking.guests)


# ---------------------------------------------------------------------------
# Listing / detail
# ---------------------------------------------------------------------------


@router.get("/", response_model=PaginatedResponse[BookingSchema])
def list_bookings(
    tenant_id: str = Query(...),
    tour_id: Optional[UUID] = Query(None),
    status: Optional[str] = Query(None, description="Status code or label, e.g. confirmed or 'Partial Refunded'"),
    tour_date: Optional[date] = Query(None, description="Filter by tour date (YYYY-MM-DD)"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Reference, customer name or email"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(Booking).filter(Booking.tenant_id == tenant_id)

    if tour_id:
        query = query.filter(Booking.tour_id == tour_id)
    if status:
        normalized = to_booking_status(status)
        if normalized is None:
            raise HTTPException(status_code=400, detail=f"Unknown booking status: {status}")
        query = query.filter(Booking.status == normalized.value)
    if tour_date:
        query = query.filter(Booking.tour_date == tour_date)
    if date_from:
        query = query.filter(Booking.tour_date >= date_from)
    if date_to:
        query = query.filter(Booking.tour_date <= date_to)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            Booking.booking_reference.ilike(pattern)
            | Booking.customer_name.ilike(pattern)
            | Booking.customer_email.ilike(pattern)
        )

    total = query.count()
    bookings = (
        query.options(joinedload(Booking.tour), joinedload(Booking.offer))
        .order_by(Booking.created_at.desc(), Booking.booking_reference)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return paginate([_serialize_booking(b) for b in bookings], total, page, limit)


@router.get("/{id}", response_model=BookingDetail)
def get_booking(
    id: UUID,
    tenant_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Booking with its price breakdown."""
    return _serialize_booking(_get_booking_or_404(db, tenant_id, id), BookingDetail)


# ---------------------------------------------------------------------------
# Manual booking
# ---------------------------------------------------------------------------


@router.post("/", response_model=BookingDetail, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Book a tour on behalf of a customer.

    Rejected with 409 when the option is under stop-sale or the slot lacks
    capacity. The best eligible offer is applied unless `apply_offers` is off.
    """
    tour = get_tour_or_404(db, data.tenant_id, data.tour_id)
    if not tour.is_active:
        raise HTTPException(status_code=400, detail="Tour is not active")

    # --- Option ---
    option = None
    if data.option_id is not None:
        option = next((o for o in tour.options if o.id == data.option_id), None)
        if option is None:
            raise HTTPException(status_code=400, detail="Unknown option for this tour")
    elif tour.options:
        raise HTTPException(status_code=400, detail="option_id is required for this tour")

    if option is not None:
        selected_option = {"id": str(option.id), "type": option.type, "label": option.label, "price": str(option.price)}
    else:
        price = tour.discount_price or tour.price or 0
        selected_option = {"id": None, "type": None, "label": tour.title, "price": str(price)}

    # --- Stop-sale and capacity ---
    guests = data.adult_guests + data.child_guests + data.infant_guests
    _reserve_capacity(
        db, data.tenant_id, data.tour_id, data.tour_date, data.time,
        option.id if option is not None else None, guests,
    )

    # --- Add-ons ---
    add_ons = {str(a.id): a for a in tour.add_ons}
    unknown = [i for i in data.add_ons if i not in add_ons]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown add-ons: {', '.join(unknown)}")
    selected_add_ons = {i: q for i, q in data.add_ons.items() if q > 0}
    add_on_details = {
        i: {"name": add_ons[i].name, "price": str(add_ons[i].price), "per_guest": bool(add_ons[i].per_guest)}
        for i in selected_add_ons
    }

    booking = Booking(
        tenant_id=data.tenant_id,
        tour_id=tour.id,
        booking_reference=_new_reference(db),
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        customer_phone=data.customer_phone,
        tour_date=data.tour_date,
        time=data.time,
        guests=guests,
        adult_guests=data.adult_guests,
        child_guests=data.child_guests,
        infant_guests=data.infant_guests,
        selected_option=selected_option,
        selected_add_ons=selected_add_ons,
        selected_add_on_details=add_on_details,
        status=data.status.value,
        notes=data.notes,
    )

    # --- Pricing and offer ---
    pricing = compute_pricing(booking)
    discount = 0
    if data.apply_offers:
        offers = (
            db.query(SpecialOffer)
            .filter(SpecialOffer.tenant_id == data.tenant_id, SpecialOffer.is_active == True)  # noqa: E712
            .all()
        )
        context = OfferContext(
            tour_id=str(tour.id),
            option_type=option.type if option is not None else None,
            tour_date=data.tour_date,
            booking_date=date.today(),
            party_size=data.adult_guests + data.child_guests,
            subtotal=pricing.subtotal,
            code=data.offer_code,
        )
        best = select_offer(offers, context, pricing.subtotal, policy=settings.OFFER_SELECTION_POLICY)
        if best is not None:
            discount = to_cents(best.discount_amount)
            booking.offer_id = best.offer.id
            best.offer.used_count = (best.offer.used_count or 0) + 1

    booking.discount_amount = discount
    booking.total_price = to_cents(pricing.calculated_total - discount)

    db.add(booking)
    db.commit()
    logger.info(
        "Manual booking %s for tour %s on %s (%d guests, total %s) by %s",
        booking.booking_reference, tour.id, data.tour_date, guests, booking.total_price, current_user.email,
    )
    return _serialize_booking(_get_booking_or_404(db, data.tenant_id, booking.id), BookingDetail)


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


@router.patch("/{id}/status", response_model=BookingSchema)
def update_booking_status(
    id: UUID,
    data: BookingStatusUpdate,
    tenant_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    booking = _get_booking_or_404(db, tenant_id, id)
    previous = booking.status

    was_cancelled = previous == BookingStatus.cancelled.value
    if data.status == BookingStatus.cancelled and not was_cancelled:
        _release_capacity(db, booking)
        booking.cancelled_at = datetime.now(timezone.utc)
    elif data.status != BookingStatus.cancelled and was_cancelled:
        # Reinstated bookings take their seats back
        option_id = (booking.selected_option or {}).get("id")
        _reserve_capacity(
            db, booking.tenant_id, booking.tour_id, booking.tour_date, booking.time, option_id, booking.guests
        )
        booking.cancelled_at = None
    booking.status = data.status.value

    db.commit()
    logger.info("Booking %s status %s -> %s", booking.booking_reference, previous, booking.status)
    return _serialize_booking(_get_booking_or_404(db, tenant_id, id))


@router.patch("/{id}/cancel", response_model=BookingCancelResponse)
def cancel_booking(
    id: UUID,
    tenant_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    booking = _get_booking_or_404(db, tenant_id, id)
    if booking.status == BookingStatus.cancelled.value:
        raise HTTPException(status_code=400, detail="Booking is already cancelled")

    _release_capacity(db, booking)
    booking.status = BookingStatus.cancelled.value
    booking.cancelled_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s cancelled by %s", booking.booking_reference, current_user.email)

    return BookingCancelResponse(
        id=booking.id,
        booking_reference=booking.booking_reference,
        status=booking.status,
        cancelled_at=booking.cancelled_at,
    )
