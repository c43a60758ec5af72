import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.models.user import User
from app.models.tenant import Tenant
from app.schemas.tenant import TenantCreate, TenantUpdate, Tenant as TenantSchema
from app.schemas.common import PaginatedResponse, paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/tenants", tags=["Admin - Tenants"])


def get_active_tenant(db: Session, tenant_id: str) -> Tenant:
    """Tenant by its slug; 404 when unknown or deactivated."""
    tenant = (
        db.query(Tenant)
        .filter(Tenant.tenant_id == tenant_id, Tenant.is_active == True)  # noqa: E712
        .first()
    )
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


@router.post("/", response_model=TenantSchema, status_code=status.HTTP_201_CREATED)
def create_tenant(
    data: TenantCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    if db.query(Tenant.id).filter(Tenant.tenant_id == data.tenant_id).first():
        raise HTTPException(status_code=400, detail="Tenant id already in use")

    tenant = Tenant(**data.model_dump())
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    logger.info("Tenant %s created by %s", tenant.tenant_id, current_user.email)
    return tenant


@router.get("/", response_model=PaginatedResponse[TenantSchema])
def list_tenants(
    include_inactive: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(Tenant)
    if not include_inactive:
        query = query.filter(Tenant.is_active == True)  # noqa: E712

    total = query.count()
    tenants = query.order_by(Tenant.name).offset((page - 1) * limit).limit(limit).all()
    return paginate([TenantSchema.model_validate(t) for t in tenants], total, page, limit)


@router.get("/{tenant_id}", response_model=TenantSchema)
def get_tenant(
    tenant_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    tenant = db.query(Tenant).filter(Tenant.tenant_id == tenant_id).first()
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


@router.patch("/{tenant_id}", response_model=TenantSchema)
def update_tenant(
    tenant_id: str,
    data: TenantUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    tenant = db.query(Tenant).filter(Tenant.tenant_id == tenant_id).first()
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(tenant, field, value)

    db.commit()
    db.refresh(tenant)
    return tenant


@router.delete("/{tenant_id}", status_code=status.HTTP_200_OK)
def deactivate_tenant(
    tenant_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    tenant = get_active_tenant(db, tenant_id)
    tenant.is_active = False
    db.commit()
    logger.info("Tenant %s deactivated by %s", tenant_id, current_user.email)
    return {"tenant_id": tenant_id, "is_active": False}
