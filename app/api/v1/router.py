from fastapi import APIRouter

# Auth
from app.api.v1.public.auth import router as auth_router

# Public: tour availability & offers
from app.api.v1.public.availability import router as public_availability_router
from app.api.v1.public.offers import router as public_offers_router

# Admin
from app.api.v1.admin.tenants import router as tenants_router
from app.api.v1.admin.tours import router as tours_router
from app.api.v1.admin.availability import (
    router as availability_router,
    stop_sale_router,
    log_router as stop_sale_log_router,
)
from app.api.v1.admin.special_offers import router as special_offers_router
from app.api.v1.admin.bookings import router as bookings_router
from app.api.v1.admin.reports import router as reports_router

api_router = APIRouter()

# --- Auth ---
api_router.include_router(auth_router)

# --- Admin: stop-sale (PUT/DELETE /availability/stop-sale, registered before the public GET) ---
api_router.include_router(stop_sale_router)

# --- Public ---
api_router.include_router(public_availability_router)
api_router.include_router(public_offers_router)

# --- Admin ---
api_router.include_router(tenants_router)
api_router.include_router(tours_router)
api_router.include_router(availability_router)
api_router.include_router(stop_sale_log_router)
api_router.include_router(special_offers_router)
api_router.include_router(bookings_router)
api_router.include_router(reports_router)
