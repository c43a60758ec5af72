import logging
from uuid import UUID
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, selectinload

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.api.v1.admin.tenants import get_active_tenant
from app.models.user import User
from app.models.tour import Tour, TourOption, TourAddOn
from app.schemas.tour import TourCreate, TourUpdate, Tour as TourSchema
from app.schemas.common import PaginatedResponse, paginate
from app.utils.slug import make_unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/tours", tags=["Admin - Tours"])


def get_tour_or_404(db: Session, tenant_id: str, tour_id: UUID) -> Tour:
    """A tour of this tenant; other tenants' tours are invisible."""
    tour = (
        db.query(Tour)
        .options(selectinload(Tour.options), selectinload(Tour.add_ons))
        .filter(Tour.id == tour_id, Tour.tenant_id == tenant_id)
        .first()
    )
    if not tour:
        raise HTTPException(status_code=404, detail="Tour not found")
    return tour


def _merge_children(current, items, model, match_field=None):
    """
    Apply an edited list of options or add-ons onto the existing rows.

    Items match an existing row by `id`, or else by `match_field`, and are
    updated in place so the row keeps its id (stop-sales and bookings refer
    to option ids). Unmatched items become new rows; rows left out are dropped.
    """
    by_id = {row.id: row for row in current}
    by_key = {getattr(row, match_field): row for row in current} if match_field else {}
    unknown = [str(item.id) for item in items if item.id is not None and item.id not in by_id]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown ids for this tour: {', '.join(unknown)}")

    merged = []
    for item in items:
        if item.id is not None:
            row = by_id[item.id]
        else:
            row = by_key.get(getattr(item, match_field)) if match_field else None
        if row is None or any(row is m for m in merged):
            row = model()
        for field, value in item.model_dump(exclude={"id"}).items():
            setattr(row, field, value)
        merged.append(row)
    return merged


@router.post("/", response_model=TourSchema, status_code=status.HTTP_201_CREATED)
def create_tour(
    data: TourCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    get_active_tenant(db, data.tenant_id)

    tour = Tour(
        slug=make_unique_slug(db, data.title),
        **data.model_dump(exclude={"options", "add_ons"}),
    )
    tour.options = [TourOption(**o.model_dump(exclude={"id"})) for o in data.options]
    tour.add_ons = [TourAddOn(**a.model_dump(exclude={"id"})) for a in data.add_ons]
    db.add(tour)
    db.commit()
    db.refresh(tour)
    logger.info("Tour %s created for tenant %s", tour.slug, tour.tenant_id)
    return tour


@router.get("/", response_model=PaginatedResponse[TourSchema])
def list_tours(
    tenant_id: str = Query(...),
    search: Optional[str] = Query(None, description="Case-insensitive title search"),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(Tour).filter(Tour.tenant_id == tenant_id)
    if search:
        query = query.filter(Tour.title.ilike(f"%{search}%"))
    if is_active is not None:
        query = query.filter(Tour.is_active == is_active)

    total = query.count()
    tours = (
        query.options(selectinload(Tour.options), selectinload(Tour.add_ons))
        .order_by(Tour.created_at.desc(), Tour.title)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return paginate([TourSchema.model_validate(t) for t in tours], total, page, limit)


@router.get("/{id}", response_model=TourSchema)
def get_tour(
    id: UUID,
    tenant_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    return get_tour_or_404(db, tenant_id, id)


@router.patch("/{id}", response_model=TourSchema)
def update_tour(
    id: UUID,
    data: TourUpdate,
    tenant_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    tour = get_tour_or_404(db, tenant_id, id)
    changes = data.model_dump(exclude_unset=True, exclude={"options", "add_ons"})

    if "title" in changes and changes["title"] != tour.title:
        tour.slug = make_unique_slug(db, changes["title"])
    for field, value in changes.items():
        setattr(tour, field, value)

    if data.options is not None:
        tour.options = _merge_children(tour.options, data.options, TourOption, match_field="type")
    if data.add_ons is not None:
        tour.add_ons = _merge_children(tour.add_ons, data.add_ons, TourAddOn)

    db.commit()
    db.refresh(tour)
    return tour


@router.delete("/{id}", status_code=status.HTTP_200_OK)
def delete_tour(
    id: UUID,
    tenant_id: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    tour = get_tour_or_404(db, tenant_id, id)
    tour.is_active = False
    db.commit()
    logger.info("Tour %s deactivated", tour.slug)
    return {"id": str(id), "is_active": False}
