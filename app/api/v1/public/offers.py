from uuid import UUID
from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from app.db.session import get_db
from app.core.config import settings
from app.models.tour import Tour
from app.models.special_offer import SpecialOffer, OfferType
from app.schemas.special_offer import ApplicableOffer, OfferDiscount, TourOffersResponse
from app.utils.fields import to_decimal
from app.utils.offers import (
    OfferContext,
    OfferResult,
    evaluate,
    ineligibility_reason,
    is_scope_eligible,
    is_time_eligible,
    offer_display_text,
    select_offer,
    should_show_urgency,
    time_remaining,
)
from app.utils.pricing import to_cents

router = APIRouter(prefix="/offers", tags=["Offers"])


def _discount(result: Optional[OfferResult]) -> Optional[OfferDiscount]:
    if result is None:
        return None
    return OfferDiscount(
        original_price=to_cents(result.original_price),
        discounted_price=to_cents(result.discounted_price),
        discount_amount=to_cents(result.discount_amount),
        discount_percentage=result.discount_percentage,
    )


def _applicable(offer: SpecialOffer, result: Optional[OfferResult], reason: Optional[str]) -> ApplicableOffer:
    return ApplicableOffer(
        id=offer.id,
        name=offer.name,
        description=offer.description,
        type=offer.type,
        discount_value=offer.discount_value,
        is_featured=bool(offer.is_featured),
        featured_badge_text=offer.featured_badge_text,
        priority=offer.priority or 0,
        end_date=offer.end_date,
        display_text=offer_display_text(offer),
        time_remaining=time_remaining(offer.end_date),
        show_urgency=should_show_urgency(offer.end_date),
        discount=_discount(result),
        reason=reason,
    )


@router.get("/tour/{tour_id}", response_model=TourOffersResponse)
def get_tour_offers(
    tour_id: UUID,
    tenant_id: str = Query(...),
    option_id: Optional[UUID] = Query(None, description="Booking option; defaults to the tour price"),
    tour_date: Optional[date] = Query(None),
    adults: int = Query(1, ge=0),
    children: int = Query(0, ge=0),
    code: Optional[str] = Query(None, description="Promo code entered by the customer"),
    db: Session = Depends(get_db),
):
    """
    Offers currently running for a tour, each with the discount it would give
    this booking (or why it does not apply), and the offer that would be
    applied automatically.
    """
    tour = (
        db.query(Tour)
        .options(selectinload(Tour.options))
        .filter(Tour.id == tour_id, Tour.tenant_id == tenant_id, Tour.is_active == True)  # noqa: E712
        .first()
    )
    if not tour:
        raise HTTPException(status_code=404, detail="Tour not found")

    option = None
    if option_id is not None:
        option = next((o for o in tour.options if o.id == option_id), None)
        if option is None:
            raise HTTPException(status_code=404, detail="Option not found for this tour")

    base_price = to_decimal(option.price if option else (tour.discount_price or tour.price))
    amount = base_price * adults + (base_price / 2) * children

    context = OfferContext(
        tour_id=str(tour.id),
        option_type=option.type if option else None,
        tour_date=tour_date,
        booking_date=date.today(),
        party_size=adults + children,
        subtotal=amount,
        code=code,
    )

    running = (
        db.query(SpecialOffer)
        .filter(SpecialOffer.tenant_id == tenant_id, SpecialOffer.is_active == True)  # noqa: E712
        .order_by(SpecialOffer.is_featured.desc(), SpecialOffer.priority.desc(), SpecialOffer.name)
        .all()
    )
    visible = [
        o for o in running
        if is_time_eligible(o)
        and is_scope_eligible(o, context.tour_id, context.option_type)
        # promo offers stay hidden until their code is entered
        and (o.type != OfferType.promo_code or ineligibility_reason(o, context) is None)
    ]

    offers = []
    for offer in visible:
        result = evaluate(offer, context, amount)
        offers.append(_applicable(offer, result, None if result else ineligibility_reason(offer, context)))

    best = select_offer(visible, context, amount, policy=settings.OFFER_SELECTION_POLICY)
    best_offer = next((o for o in offers if best and o.id == best.offer.id), None)

    return TourOffersResponse(
        tour_id=tour.id,
        original_price=to_cents(amount),
        offers=offers,
        best_offer=best_offer,
    )
