import logging
from uuid import UUID
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.api.v1.admin.tenants import get_active_tenant
from app.models.user import User
from app.models.special_offer import SpecialOffer, OfferType
from app.models.booking import Booking
from app.schemas.special_offer import (
    SpecialOfferCreate,
    SpecialOfferUpdate,
    SpecialOffer as SpecialOfferSchema,
)
from app.schemas.common import PaginatedResponse, paginate
from app.utils.offers import validate_offer_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/special-offers", tags=["Admin - Special Offers"])


def _to_columns(values: dict) -> dict:
    """UUIDs inside JSON columns are stored as strings."""
    if values.get("applicable_tours") is not None:
        values["applicable_tours"] = [str(t) for t in values["applicable_tours"]]
    if values.get("excluded_tours") is not None:
        values["excluded_tours"] = [str(t) for t in values["excluded_tours"]]
    if values.get("tour_option_selections") is not None:
        values["tour_option_selections"] = [
            {**s, "tour_id": str(s["tour_id"])} for s in values["tour_option_selections"]
        ]
    return values


def _check_code_unique(db: Session, tenant_id: str, code: Optional[str], exclude_id=None) -> None:
    if not code:
        return
    query = db.query(SpecialOffer.id).filter(
        SpecialOffer.tenant_id == tenant_id, SpecialOffer.code == code
    )
    if exclude_id is not None:
        query = query.filter(SpecialOffer.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail=f"Offer code {code} already exists")


def _get_offer_or_404(db: Session, tenant_id: str, id: UUID) -> SpecialOffer:
    offer = (
        db.query(SpecialOffer)
        .filter(SpecialOffer.id == id, SpecialOffer.tenant_id == tenant_id)
        .first()
    )
    if not offer:
        raise HTTPException(status_code=404, detail="Special offer not found")
    return offer


@router.get("/", response_model=PaginatedResponse[SpecialOfferSchema])
def list_offers(
    tenant_id: str = Query(...),
    is_active: Optional[bool] = Query(None),
    type: Optional[OfferType] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(SpecialOffer).filter(SpecialOffer.tenant_id == tenant_id)
    if is_active is not None:
        query = query.filter(SpecialOffer.is_active == is_active)
    if type is not None:
        query = query.filter(SpecialOffer.type == type)

    total = query.count()
    offers = (
        query.order_by(SpecialOffer.priority.desc(), SpecialOffer.created_at.desc(), SpecialOffer.name)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return paginate([SpecialOfferSchema.model_validate(o) for o in offers], total, page, limit)


@router.get("/{id}", response_model=SpecialOfferSchema)
def get_offer(
    id: UUID,
    tenant_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    return _get_offer_or_404(db, tenant_id, id)


@router.post("/", response_model=SpecialOfferSchema, status_code=status.HTTP_201_CREATED)
def create_offer(
    data: SpecialOfferCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    get_active_tenant(db, data.tenant_id)
    _check_code_unique(db, data.tenant_id, data.code)

    offer = SpecialOffer(used_count=0, **_to_columns(data.model_dump()))
    db.add(offer)
    db.commit()
    db.refresh(offer)
    logger.info("Special offer %s (%s) created for tenant %s", offer.name, offer.type.value, offer.tenant_id)
    return offer


@router.patch("/{id}", response_model=SpecialOfferSchema)
@router.put("/{id}", response_model=SpecialOfferSchema)
def update_offer(
    id: UUID,
    data: SpecialOfferUpdate,
    tenant_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    offer = _get_offer_or_404(db, tenant_id, id)
    changes = _to_columns(data.model_dump(exclude_unset=True))

    # Cross-field rules are checked against the merged result
    merged = {
        field: changes.get(field, getattr(offer, field))
        for field in ("type", "discount_value", "start_date", "end_date", "code")
    }
    try:
        validate_offer_fields(merged["type"], merged["discount_value"], merged["start_date"], merged["end_date"])
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if getattr(merged["type"], "value", merged["type"]) == OfferType.promo_code.value and not merged["code"]:
        raise HTTPException(status_code=422, detail="code is required for promo_code offers")
    if "code" in changes:
        _check_code_unique(db, tenant_id, changes["code"], exclude_id=offer.id)

    for field, value in changes.items():
        setattr(offer, field, value)

    selections = changes.get("tour_option_selections")
    if selections:
        applicable = list(offer.applicable_tours or [])
        for selection in selections:
            if selection["tour_id"] not in applicable:
                applicable.append(selection["tour_id"])
        offer.applicable_tours = applicable

    db.commit()
    db.refresh(offer)
    logger.info("Special offer %s updated (%s)", offer.id, ", ".join(sorted(changes)))
    return offer


@router.delete("/{id}", status_code=status.HTTP_200_OK)
def delete_offer(
    id: UUID,
    tenant_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    offer = _get_offer_or_404(db, tenant_id, id)
    # Bookings keep their discount amount but lose the link
    db.query(Booking).filter(Booking.offer_id == offer.id).update({"offer_id": None})
    db.delete(offer)
    db.commit()
    logger.info("Special offer %s deleted from tenant %s", id, tenant_id)
    return {"id": str(id), "deleted": True}
