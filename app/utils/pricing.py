from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from app.utils.fields import get_field, to_decimal, to_int

SERVICE_FEE_RATE = Decimal("0.03")
TAX_RATE = Decimal("0.05")

CENTS = Decimal("0.01")


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingBreakdown:
    adult_price: Decimal
    child_price: Decimal
    tour_subtotal: Decimal
    add_ons_total: Decimal
    subtotal: Decimal
    service_fee: Decimal
    tax: Decimal
    calculated_total: Decimal
    total: Decimal
    discount_amount: Decimal = Decimal("0")
    amount_due: Decimal = Decimal("0")

    def rounded(self) -> dict:
        """Two-decimal presentation copy; the breakdown itself stays unrounded."""
        return {
            name: to_cents(value)
            for name, value in asdict(self).items()
        }


def add_ons_total(selected_add_ons: Any, add_on_details: Any, billable_guests: int) -> Decimal:
    """
    Sum the selected add-ons.

    Per-guest add-ons are multiplied by adults + children (infants are never
    billed); the others are charged once per booking whatever the quantity.
    """
    total = Decimal("0")
    if not selected_add_ons or not add_on_details:
        return total

    for add_on_id, quantity in dict(selected_add_ons).items():
        detail = add_on_details.get(add_on_id) if isinstance(add_on_details, dict) else None
        if not detail or to_int(quantity) <= 0:
            continue
        price = max(to_decimal(get_field(detail, "price")), Decimal("0"))
        units = billable_guests if get_field(detail, "per_guest", False) else 1
        total += price * units
    return total


def compute_pricing(booking: Any) -> Optional[PricingBreakdown]:
    """
    Compute the price breakdown of a single booking.

    `booking` may be an ORM Booking, a schema or a dict. Missing fields fall
    back to one adult, no children, no infants and a zero unit price; the
    function never raises on partial data.

    The stored `total_price` wins only when it is strictly greater than the
    subtotal (legacy bookings whose total already includes an older fee
    schedule); otherwise the freshly calculated total is used. A booking with
    a `discount_amount` stores its charge net of the discount, so its `total`
    is always the calculated one and `amount_due` is what the customer pays.
    """
    if booking is None:
        return None

    adults = max(to_int(get_field(booking, "adult_guests"), 1), 0)
    children = max(to_int(get_field(booking, "child_guests"), 0), 0)

    option = get_field(booking, "selected_option")
    base_price = max(to_decimal(get_field(option, "price")), Decimal("0"))

    adult_price = base_price * adults
    # Children always pay half the adult unit price
    child_price = (base_price / 2) * children
    tour_subtotal = adult_price + child_price

    extras = add_ons_total(
        get_field(booking, "selected_add_ons"),
        get_field(booking, "selected_add_on_details"),
        adults + children,
    )

    subtotal = tour_subtotal + extras
    service_fee = subtotal * SERVICE_FEE_RATE
    tax = subtotal * TAX_RATE
    calculated_total = subtotal + service_fee + tax

    discount = max(to_decimal(get_field(booking, "discount_amount")), Decimal("0"))
    stored_total = to_decimal(get_field(booking, "total_price"))
    if discount > 0:
        total = calculated_total
    else:
        total = stored_total if stored_total > subtotal else calculated_total

    return PricingBreakdown(
        adult_price=adult_price,
        child_price=child_price,
        tour_subtotal=tour_subtotal,
        add_ons_total=extras,
        subtotal=subtotal,
        service_fee=service_fee,
        tax=tax,
        calculated_total=calculated_total,
        total=total,
        discount_amount=discount,
        amount_due=max(total - discount, Decimal("0")),
    )
