from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

import pytest

from app.utils.offers import (
    OfferContext,
    apply_discount,
    ineligibility_reason,
    is_eligible,
    is_scope_eligible,
    offer_display_text,
    select_offer,
    should_show_urgency,
    time_remaining,
    validate_offer_fields,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


@dataclass
class Offer:
    name: str = "Offer"
    type: str = "percentage"
    discount_value: Decimal = Decimal("10")
    code: Optional[str] = None
    min_booking_value: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    min_group_size: Optional[int] = None
    min_days_in_advance: Optional[int] = None
    max_days_before_tour: Optional[int] = None
    start_date: datetime = NOW - timedelta(days=10)
    end_date: datetime = NOW + timedelta(days=10)
    travel_start_date: Optional[datetime] = None
    travel_end_date: Optional[datetime] = None
    applicable_tours: List[str] = field(default_factory=list)
    tour_option_selections: List[dict] = field(default_factory=list)
    excluded_tours: List[str] = field(default_factory=list)
    usage_limit: Optional[int] = None
    used_count: int = 0
    is_active: bool = True
    priority: int = 0


def ctx(**fields):
    values = dict(tour_id="tour-1", option_type="private-tour", booking_date=TODAY, party_size=2)
    values.update(fields)
    return OfferContext(**values)


# ---------------------------------------------------------------------------
# Time, usage and scope
# ---------------------------------------------------------------------------


def test_validity_window_is_inclusive():
    offer = Offer(start_date=NOW, end_date=NOW + timedelta(hours=1))
    assert is_eligible(offer, ctx(), now=NOW)
    assert is_eligible(offer, ctx(), now=NOW + timedelta(hours=1))
    assert not is_eligible(offer, ctx(), now=NOW + timedelta(hours=1, seconds=1))
    assert not is_eligible(offer, ctx(), now=NOW - timedelta(seconds=1))


def test_inactive_offer_is_not_eligible():
    assert ineligibility_reason(Offer(is_active=False), ctx(), now=NOW) == "Offer is not currently active"


def test_naive_datetimes_are_treated_as_utc():
    offer = Offer(start_date=datetime(2026, 5, 1), end_date=datetime(2026, 7, 1))
    assert is_eligible(offer, ctx(), now=NOW)


def test_usage_limit():
    assert is_eligible(Offer(usage_limit=3, used_count=2), ctx(), now=NOW)
    assert ineligibility_reason(Offer(usage_limit=3, used_count=3), ctx(), now=NOW) == "Offer usage limit reached"


@pytest.mark.parametrize("tour_id,option_type", [("tour-1", "private-tour"), ("tour-9", "shared"), ("x", None)])
def test_empty_applicable_tours_means_every_tour(tour_id, option_type):
    offer = Offer(applicable_tours=[])
    assert is_eligible(offer, ctx(tour_id=tour_id, option_type=option_type), now=NOW)


def test_tour_must_be_listed():
    offer = Offer(applicable_tours=["tour-2"])
    assert not is_scope_eligible(offer, "tour-1", "private-tour")
    assert is_scope_eligible(offer, "tour-2", "private-tour")


def test_option_selection():
    offer = Offer(
        applicable_tours=["tour-1"],
        tour_option_selections=[{"tour_id": "tour-1", "all_options": False, "selected_options": ["shared-tour"]}],
    )
    assert is_scope_eligible(offer, "tour-1", "shared-tour")
    assert not is_scope_eligible(offer, "tour-1", "private-tour")
    # No option in the context: tour membership is enough
    assert is_scope_eligible(offer, "tour-1", None)


def test_listed_tour_without_selection_covers_all_options():
    offer = Offer(applicable_tours=["tour-1"])
    assert is_scope_eligible(offer, "tour-1", "anything")


def test_excluded_tour_wins():
    offer = Offer(excluded_tours=["tour-1"])
    assert not is_eligible(offer, ctx(), now=NOW)


def test_travel_window():
    offer = Offer(
        travel_start_date=datetime(2026, 7, 1, tzinfo=timezone.utc),
        travel_end_date=datetime(2026, 7, 31, tzinfo=timezone.utc),
    )
    assert is_eligible(offer, ctx(tour_date=date(2026, 7, 1)), now=NOW)
    assert is_eligible(offer, ctx(tour_date=date(2026, 7, 31)), now=NOW)
    assert not is_eligible(offer, ctx(tour_date=date(2026, 8, 1)), now=NOW)


def test_min_booking_value_applies_to_every_type():
    for offer_type in ("percentage", "fixed", "group", "bundle"):
        offer = Offer(type=offer_type, min_booking_value=Decimal("100"))
        assert not is_eligible(offer, ctx(subtotal=Decimal("99.99")), now=NOW)
        assert is_eligible(offer, ctx(subtotal=Decimal("100")), now=NOW)


# ---------------------------------------------------------------------------
# Type rules
# ---------------------------------------------------------------------------


def test_early_bird():
    offer = Offer(type="early_bird", min_days_in_advance=14)
    assert is_eligible(offer, ctx(tour_date=TODAY + timedelta(days=14)), now=NOW)
    assert not is_eligible(offer, ctx(tour_date=TODAY + timedelta(days=13)), now=NOW)
    assert not is_eligible(offer, ctx(tour_date=None), now=NOW)


def test_early_bird_default_is_seven_days():
    offer = Offer(type="early_bird")
    assert is_eligible(offer, ctx(tour_date=TODAY + timedelta(days=7)), now=NOW)
    assert not is_eligible(offer, ctx(tour_date=TODAY + timedelta(days=6)), now=NOW)


def test_last_minute():
    offer = Offer(type="last_minute", max_days_before_tour=3)
    assert is_eligible(offer, ctx(tour_date=TODAY), now=NOW)
    assert is_eligible(offer, ctx(tour_date=TODAY + timedelta(days=3)), now=NOW)
    assert not is_eligible(offer, ctx(tour_date=TODAY + timedelta(days=4)), now=NOW)
    assert not is_eligible(offer, ctx(tour_date=TODAY - timedelta(days=1)), now=NOW)


def test_group():
    offer = Offer(type="group", min_group_size=4)
    assert is_eligible(offer, ctx(party_size=4), now=NOW)
    assert ineligibility_reason(offer, ctx(party_size=3), now=NOW) == "Minimum group size of 4 required"


def test_promo_code_is_case_insensitive():
    offer = Offer(type="promo_code", code="SUMMER10")
    assert is_eligible(offer, ctx(code=" summer10 "), now=NOW)
    assert not is_eligible(offer, ctx(code="WINTER"), now=NOW)
    assert not is_eligible(offer, ctx(), now=NOW)


def test_unknown_type():
    assert ineligibility_reason(Offer(type="mystery"), ctx(), now=NOW) == "Unknown offer type"


# ---------------------------------------------------------------------------
# Discounts and selection
# ---------------------------------------------------------------------------


def test_percentage_discount():
    assert apply_discount(Offer(discount_value=Decimal("15")), Decimal("200")) == Decimal("30")


def test_fixed_discount_never_exceeds_amount():
    offer = Offer(type="fixed", discount_value=Decimal("50"))
    assert apply_discount(offer, Decimal("80")) == Decimal("50")
    assert apply_discount(offer, Decimal("30")) == Decimal("30")


def test_max_discount_cap():
    offer = Offer(discount_value=Decimal("50"), max_discount=Decimal("25"))
    assert apply_discount(offer, Decimal("200")) == Decimal("25")


def test_zero_amount():
    assert apply_discount(Offer(), 0) == 0


def test_priority_policy_prefers_priority_then_discount():
    low = Offer(name="Big", discount_value=Decimal("40"), priority=1)
    high = Offer(name="Small", discount_value=Decimal("5"), priority=5)
    tie = Offer(name="Tie", discount_value=Decimal("10"), priority=5)

    best = select_offer([low, high, tie], ctx(), Decimal("100"), policy="priority", now=NOW)
    assert best.offer is tie
    assert best.discount_amount == Decimal("10")


def test_best_discount_policy():
    low = Offer(name="Big", discount_value=Decimal("40"), priority=1)
    high = Offer(name="Small", discount_value=Decimal("5"), priority=5)
    best = select_offer([low, high], ctx(), Decimal("100"), policy="best_discount", now=NOW)
    assert best.offer is low
    assert best.discounted_price == Decimal("60")
    assert best.discount_percentage == 40


def test_select_ignores_ineligible_offers():
    expired = Offer(end_date=NOW - timedelta(days=1), discount_value=Decimal("90"))
    assert select_offer([expired], ctx(), Decimal("100"), now=NOW) is None


def test_select_rejects_unknown_policy():
    with pytest.raises(ValueError):
        select_offer([], ctx(), Decimal("100"), policy="stack")


# ---------------------------------------------------------------------------
# Validation and display
# ---------------------------------------------------------------------------


def test_percentage_over_100_is_rejected():
    with pytest.raises(ValueError):
        validate_offer_fields("percentage", Decimal("150"), NOW, NOW + timedelta(days=1))


def test_fixed_over_100_is_allowed():
    validate_offer_fields("fixed", Decimal("150"), NOW, NOW + timedelta(days=1))


@pytest.mark.parametrize("end", [NOW, NOW - timedelta(minutes=1)])
def test_end_not_after_start_is_rejected(end):
    with pytest.raises(ValueError):
        validate_offer_fields("percentage", Decimal("10"), NOW, end)


def test_display_text():
    assert offer_display_text(Offer(discount_value=Decimal("15.00"))) == "15% OFF"
    assert offer_display_text(Offer(type="fixed", discount_value=Decimal("20.50"))) == "$20.5 OFF"
    assert offer_display_text(Offer(type="promo_code")) == "USE CODE"


def test_time_remaining_and_urgency():
    assert time_remaining(NOW + timedelta(days=3, hours=1), now=NOW) == "3 days left"
    assert time_remaining(NOW + timedelta(hours=5), now=NOW) == "5 hours left"
    assert time_remaining(NOW - timedelta(seconds=1), now=NOW) == "Expired"
    assert should_show_urgency(NOW + timedelta(days=2), now=NOW)
    assert not should_show_urgency(NOW + timedelta(days=20), now=NOW)
