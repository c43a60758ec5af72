"""
Special-offer eligibility and discount calculation.

Offer types:

* percentage : `discount_value` % off, optionally capped by `max_discount`
* fixed      : `discount_value` off, never more than the amount itself
* early_bird : percentage, booked at least `min_days_in_advance` days ahead
* last_minute: percentage, booked at most `max_days_before_tour` days ahead
* group      : percentage, party of at least `min_group_size`
* bundle     : percentage, no extra constraint yet
* promo_code : percentage, only when the customer enters the offer's code

Offers are read attribute-style (ORM rows or schemas) and are assumed to have
passed `validate_offer_fields` when they were saved.
"""
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from app.utils.fields import get_field, to_decimal, to_int

PERCENT_TYPES = {"percentage", "early_bird", "last_minute", "group", "bundle", "promo_code"}

DEFAULT_MIN_DAYS_IN_ADVANCE = 7
DEFAULT_MAX_DAYS_BEFORE_TOUR = 2
DEFAULT_MIN_GROUP_SIZE = 2

SELECTION_POLICIES = ("priority", "best_discount")


@dataclass(frozen=True)
class OfferContext:
    """What we know about the booking an offer is evaluated against."""
    tour_id: Optional[str] = None
    option_type: Optional[str] = None
    tour_date: Optional[date] = None
    booking_date: Optional[date] = None
    party_size: int = 1
    subtotal: Optional[Decimal] = None
    code: Optional[str] = None


@dataclass(frozen=True)
class OfferResult:
    offer: Any
    original_price: Decimal
    discount_amount: Decimal

    @property
    def discounted_price(self) -> Decimal:
        return self.original_price - self.discount_amount

    @property
    def discount_percentage(self) -> int:
        if self.original_price <= 0:
            return 0
        ratio = self.discount_amount * 100 / self.original_price
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _type(offer) -> str:
    value = get_field(offer, "type", "")
    return getattr(value, "value", value)


def _as_utc(value) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        # SQLite drops tzinfo; everything is stored in UTC
        return value.replace(tzinfo=timezone.utc)
    return value


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value).date()
    return value


def days_between(booking_date: date, tour_date: date) -> int:
    """Whole days from booking to tour; negative when the tour is in the past."""
    return (tour_date - booking_date).days


# ---------------------------------------------------------------------------
# Eligibility checks
# ---------------------------------------------------------------------------


def is_time_eligible(offer, now: Optional[datetime] = None) -> bool:
    now = _as_utc(now) or datetime.now(timezone.utc)
    if not get_field(offer, "is_active", False):
        return False
    start = _as_utc(get_field(offer, "start_date"))
    end = _as_utc(get_field(offer, "end_date"))
    if start is None or end is None:
        return False
    return start <= now <= end


def is_usage_eligible(offer) -> bool:
    limit = get_field(offer, "usage_limit")
    if limit is None:
        return True
    return to_int(get_field(offer, "used_count"), 0) < to_int(limit)


def is_scope_eligible(offer, tour_id: Optional[str], option_type: Optional[str] = None) -> bool:
    """
    An empty `applicable_tours` means every tour. Otherwise the tour must be
    listed, and its option selection (if any) must cover the option type.
    """
    tour_key = str(tour_id) if tour_id is not None else None

    excluded = {str(t) for t in get_field(offer, "excluded_tours", [])}
    if tour_key is not None and tour_key in excluded:
        return False

    applicable = {str(t) for t in get_field(offer, "applicable_tours", [])}
    if not applicable:
        return True
    if tour_key is None or tour_key not in applicable:
        return False

    if not option_type:
        return True

    for selection in get_field(offer, "tour_option_selections", []):
        if str(get_field(selection, "tour_id")) != tour_key:
            continue
        if get_field(selection, "all_options", True):
            return True
        return option_type in get_field(selection, "selected_options", [])

    # Tour listed without an option selection: all options
    return True


def is_travel_date_eligible(offer, tour_date: Optional[date]) -> bool:
    if tour_date is None:
        return True
    travel_start = _as_date(get_field(offer, "travel_start_date"))
    travel_end = _as_date(get_field(offer, "travel_end_date"))
    if travel_start and tour_date < travel_start:
        return False
    if travel_end and tour_date > travel_end:
        return False
    return True


def ineligibility_reason(offer, context: OfferContext, now: Optional[datetime] = None) -> Optional[str]:
    """Return why `offer` does not apply to `context`, or None when it does."""
    now = _as_utc(now) or datetime.now(timezone.utc)

    if not is_time_eligible(offer, now):
        return "Offer is not currently active"
    if not is_usage_eligible(offer):
        return "Offer usage limit reached"
    if not is_scope_eligible(offer, context.tour_id, context.option_type):
        return "Offer does not apply to this tour option"
    if not is_travel_date_eligible(offer, context.tour_date):
        return "Offer not valid for selected travel date"

    min_value = get_field(offer, "min_booking_value")
    if min_value is not None and to_decimal(context.subtotal) < to_decimal(min_value):
        return f"Minimum booking value of {to_decimal(min_value)} required"

    offer_type = _type(offer)
    booking_date = context.booking_date or now.date()

    if offer_type == "early_bird":
        if context.tour_date is None:
            return "Travel date required for early bird discount"
        min_days = to_int(get_field(offer, "min_days_in_advance"), DEFAULT_MIN_DAYS_IN_ADVANCE)
        if days_between(booking_date, context.tour_date) < min_days:
            return f"Book at least {min_days} days in advance to qualify"

    elif offer_type == "last_minute":
        if context.tour_date is None:
            return "Travel date required for last minute discount"
        max_days = to_int(get_field(offer, "max_days_before_tour"), DEFAULT_MAX_DAYS_BEFORE_TOUR)
        days = days_between(booking_date, context.tour_date)
        if days < 0 or days > max_days:
            return f"Only valid when booking within {max_days} days of tour"

    elif offer_type == "group":
        min_size = to_int(get_field(offer, "min_group_size"), DEFAULT_MIN_GROUP_SIZE)
        if context.party_size < min_size:
            return f"Minimum group size of {min_size} required"

    elif offer_type == "promo_code":
        code = get_field(offer, "code")
        if not code or not context.code or context.code.strip().upper() != code.upper():
            return "Promo code required"

    elif offer_type not in ("percentage", "fixed", "bundle"):
        return "Unknown offer type"

    return None


def is_eligible(offer, context: OfferContext, now: Optional[datetime] = None) -> bool:
    return ineligibility_reason(offer, context, now) is None


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------


def apply_discount(offer, amount) -> Decimal:
    """Discount `offer` grants on `amount`. Never negative, never above `amount`."""
    amount = to_decimal(amount)
    if amount <= 0:
        return Decimal("0")

    value = to_decimal(get_field(offer, "discount_value"))
    if _type(offer) == "fixed":
        discount = min(value, amount)
    else:
        discount = amount * value / 100

    max_discount = get_field(offer, "max_discount")
    if max_discount is not None:
        discount = min(discount, to_decimal(max_discount))

    return max(min(discount, amount), Decimal("0"))


def evaluate(offer, context: OfferContext, amount, now: Optional[datetime] = None) -> Optional[OfferResult]:
    """OfferResult for an eligible offer, None otherwise."""
    amount = to_decimal(amount)
    if context.subtotal is None:
        context = replace(context, subtotal=amount)
    if not is_eligible(offer, context, now):
        return None
    return OfferResult(offer=offer, original_price=amount, discount_amount=apply_discount(offer, amount))


def select_offer(
    offers: Iterable[Any],
    context: OfferContext,
    amount,
    policy: str = "priority",
    now: Optional[datetime] = None,
) -> Optional[OfferResult]:
    """
    Pick the single offer to apply; offers never stack.

    `priority`:      highest priority, then largest discount.
    `best_discount`: largest discount, then highest priority.
    Remaining ties are broken by name so the choice is stable.
    """
    if policy not in SELECTION_POLICIES:
        raise ValueError(f"Unknown offer selection policy: {policy!r}")

    results = [r for r in (evaluate(o, context, amount, now) for o in offers) if r is not None]
    if not results:
        return None

    def sort_key(result: OfferResult):
        priority = to_int(get_field(result.offer, "priority"), 0)
        name = str(get_field(result.offer, "name", ""))
        if policy == "priority":
            return (-priority, -result.discount_amount, name)
        return (-result.discount_amount, -priority, name)

    return sorted(results, key=sort_key)[0]


# ---------------------------------------------------------------------------
# Validation (data entry)
# ---------------------------------------------------------------------------


def validate_offer_fields(offer_type, discount_value, start_date, end_date) -> None:
    """Raise ValueError for an offer that must not be saved."""
    offer_type = getattr(offer_type, "value", offer_type)
    if discount_value is not None:
        value = to_decimal(discount_value)
        if value < 0:
            raise ValueError("discount_value must be >= 0")
        if offer_type in PERCENT_TYPES and value > 100:
            raise ValueError("Percentage discounts must be between 0 and 100")
    if start_date is not None and end_date is not None:
        if _as_utc(end_date) <= _as_utc(start_date):
            raise ValueError("end_date must be after start_date")


# ---------------------------------------------------------------------------
# Display helpers (public offer listing)
# ---------------------------------------------------------------------------


def offer_display_text(offer) -> str:
    value = to_decimal(get_field(offer, "discount_value")).normalize()
    value_text = f"{value:f}"
    labels = {
        "percentage": f"{value_text}% OFF",
        "fixed": f"${value_text} OFF",
        "early_bird": f"EARLY BIRD {value_text}% OFF",
        "last_minute": f"LAST MINUTE {value_text}% OFF",
        "group": f"GROUP {value_text}% OFF",
        "bundle": f"BUNDLE {value_text}% OFF",
        "promo_code": "USE CODE",
    }
    return labels.get(_type(offer), "SPECIAL OFFER")


def time_remaining(end_date, now: Optional[datetime] = None) -> str:
    now = _as_utc(now) or datetime.now(timezone.utc)
    diff = _as_utc(end_date) - now
    if diff.total_seconds() <= 0:
        return "Expired"

    days = diff.days
    hours = diff.seconds // 3600
    if days > 30:
        return f"{days // 30} months left"
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} left"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} left"
    return "Ends soon"


def should_show_urgency(end_date, now: Optional[datetime] = None) -> bool:
    now = _as_utc(now) or datetime.now(timezone.utc)
    diff = _as_utc(end_date) - now
    return diff.total_seconds() > 0 and diff.days <= 7
