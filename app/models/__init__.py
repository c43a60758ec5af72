from app.models.user import User
from app.models.tenant import Tenant
from app.models.tour import Tour, TourOption, TourAddOn
from app.models.availability import Availability
from app.models.stop_sale_log import StopSaleLog
from app.models.special_offer import SpecialOffer, OfferType
from app.models.booking import Booking
