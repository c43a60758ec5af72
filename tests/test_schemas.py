import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app import schemas

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def offer_payload(**fields):
    values = dict(
        tenant_id="acme",
        name="Summer",
        type="percentage",
        discount_value="10",
        start_date=NOW,
        end_date=NOW + timedelta(days=30),
    )
    values.update(fields)
    return values


def test_user_create():
    user = schemas.UserCreate(email="test@example.com", full_name="Test User", password="password")
    assert user.email == "test@example.com"


def test_offer_percentage_over_100_rejected():
    with pytest.raises(ValidationError):
        schemas.SpecialOfferCreate(**offer_payload(discount_value="150"))


def test_offer_end_must_follow_start():
    with pytest.raises(ValidationError):
        schemas.SpecialOfferCreate(**offer_payload(end_date=NOW))


@pytest.mark.parametrize(
    "field,value",
    [("discount_value", "-1"), ("min_group_size", 1), ("min_days_in_advance", 0), ("max_days_before_tour", -1)],
)
def test_offer_field_bounds(field, value):
    with pytest.raises(ValidationError):
        schemas.SpecialOfferCreate(**offer_payload(**{field: value}))


def test_offer_code_is_upper_cased_and_required_for_promo():
    offer = schemas.SpecialOfferCreate(**offer_payload(type="promo_code", code=" summer10 "))
    assert offer.code == "SUMMER10"
    with pytest.raises(ValidationError):
        schemas.SpecialOfferCreate(**offer_payload(type="promo_code"))


def test_option_selection_tour_is_applicable():
    tour_id = uuid.uuid4()
    offer = schemas.SpecialOfferCreate(
        **offer_payload(tour_option_selections=[{"tour_id": str(tour_id), "all_options": False, "selected_options": ["private-tour"]}])
    )
    assert offer.applicable_tours == [tour_id]


def test_slot_time_format():
    assert schemas.Slot(time="09:30").capacity == 10
    with pytest.raises(ValidationError):
        schemas.Slot(time="9:30am")
    with pytest.raises(ValidationError):
        schemas.Slot(time="24:00")


def test_bulk_update_needs_dates():
    with pytest.raises(ValidationError):
        schemas.AvailabilityBulkUpdate(tenant_id="acme", tour_id=uuid.uuid4(), action="block")


def test_bulk_update_resolves_range_and_list():
    body = schemas.AvailabilityBulkUpdate(
        tenant_id="acme",
        tour_id=uuid.uuid4(),
        action="block",
        dates=[date(2026, 7, 10), date(2026, 7, 2)],
        start_date=date(2026, 7, 1),
        end_date=date(2026, 7, 3),
    )
    assert body.resolved_dates() == [date(2026, 7, d) for d in (1, 2, 3, 10)]


def test_update_slots_requires_slots():
    with pytest.raises(ValidationError):
        schemas.AvailabilityBulkUpdate(
            tenant_id="acme", tour_id=uuid.uuid4(), action="updateSlots", dates=[date(2026, 7, 1)]
        )


def test_stop_sale_request_dedupes_option_ids():
    body = schemas.StopSaleRequest(
        tenant_id="acme",
        tour_id=uuid.uuid4(),
        option_ids=["a", " a", "", "b"],
        start_date=date(2026, 7, 1),
        end_date=date(2026, 7, 1),
        reason="  Weather ",
    )
    assert body.option_ids == ["a", "b"]
    assert body.reason == "Weather"


def test_booking_create_status_and_guests():
    base = dict(
        tenant_id="acme",
        tour_id=uuid.uuid4(),
        tour_date=date(2026, 7, 1),
        customer_name="Sam",
        customer_email="sam@example.com",
    )
    booking = schemas.BookingCreate(status="Partial Refunded", **base)
    assert booking.status.value == "partial_refunded"
    with pytest.raises(ValidationError):
        schemas.BookingCreate(status="shipped", **base)
    with pytest.raises(ValidationError):
        schemas.BookingCreate(adult_guests=0, **base)


def test_pricing_schema_serializes_money():
    pricing = schemas.PricingBreakdown(**{k: Decimal("1.50") for k in schemas.PricingBreakdown.model_fields})
    assert pricing.model_dump()["total"] == Decimal("1.50")


def test_offer_selection_policy_is_checked_at_load():
    from app.core.config import Settings

    assert Settings(OFFER_SELECTION_POLICY="best_discount").OFFER_SELECTION_POLICY == "best_discount"
    with pytest.raises(ValidationError):
        Settings(OFFER_SELECTION_POLICY="cheapest")
