from app.schemas.common import PaginatedResponse
from app.schemas.user import User, UserCreate, AdminCreate, Token, TokenPayload
from app.schemas.tenant import Tenant, TenantCreate, TenantUpdate
from app.schemas.tour import (
    Tour, TourCreate, TourUpdate, TourSummary,
    TourOption, TourOptionCreate, TourAddOn, TourAddOnCreate,
)
from app.schemas.availability import (
    Slot, AvailabilityUpsert, AvailabilityBulkUpdate, BulkAction, BulkUpdateResult,
    AvailabilityRecord, AvailabilityMonthResponse,
    StopSaleRequest, StopSaleResult, StopSaleLog,
    TourAvailabilityMonth, TourAvailabilityDay,
)
from app.schemas.special_offer import (
    SpecialOffer, SpecialOfferCreate, SpecialOfferUpdate, TourOptionSelection,
    ApplicableOffer, TourOffersResponse,
)
from app.schemas.booking import (
    Booking, BookingCreate, BookingDetail, BookingStatusUpdate, BookingCancelResponse,
    PricingBreakdown,
)
from app.schemas.report import ReportResponse, ReportSummary, TimeSeriesPoint, TourBreakdown
