import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.models.availability import Availability
from app.models.booking import Booking
from app.models.special_offer import OfferType

URL = "/api/v1/admin/bookings/"
TOUR_DATE = date.today() + timedelta(days=20)


@pytest.fixture()
def slots(db, tour):
    record = Availability(
        tenant_id="acme",
        tour_id=tour.id,
        date=TOUR_DATE,
        slots=[{"time": "09:00", "capacity": 4, "booked": 1, "extra_capacity": 0}],
        stop_sale_status="none",
        stopped_option_ids=[],
        stop_sale_reasons={},
    )
    db.add(record)
    db.commit()
    return record


def payload(tour, **fields):
    values = {
        "tenant_id": "acme",
        "tour_id": str(tour.id),
        "option_id": str(tour.options[0].id),
        "tour_date": TOUR_DATE.isoformat(),
        "time": "09:00",
        "adult_guests": 2,
        "child_guests": 1,
        "add_ons": {str(tour.add_ons[0].id): 1},
        "customer_name": "Sam Traveller",
        "customer_email": "sam@example.com",
        "apply_offers": False,
    }
    values.update(fields)
    return values


def booked(db, tour):
    db.expire_all()
    record = db.query(Availability).filter(Availability.tour_id == tour.id).one()
    return record.slots[0]["booked"]


def test_manual_booking_prices_and_reserves(client, tour, slots, db):
    resp = client.post(URL, json=payload(tour))
    assert resp.status_code == 201, resp.text
    body = resp.json()

    assert body["booking_reference"].startswith("TRB-")
    assert body["guests"] == 3
    pricing = body["pricing"]
    assert Decimal(pricing["subtotal"]) == Decimal("310.00")
    assert Decimal(pricing["service_fee"]) == Decimal("9.30")
    assert Decimal(pricing["tax"]) == Decimal("15.50")
    assert Decimal(pricing["total"]) == Decimal("334.80")
    assert Decimal(body["total_price"]) == Decimal("334.80")
    assert body["status"] == "confirmed"

    assert booked(db, tour) == 4


def test_insufficient_capacity(client, tour, slots, db):
    resp = client.post(URL, json=payload(tour, adult_guests=3, child_guests=1))
    assert resp.status_code == 409
    assert booked(db, tour) == 1
    assert db.query(Booking).count() == 0


def test_unknown_slot(client, tour, slots):
    resp = client.post(URL, json=payload(tour, time="18:00"))
    assert resp.status_code == 400


def test_stopped_option_is_rejected(client, tour, slots, db):
    shared = str(tour.options[0].id)
    client.put(
        "/api/v1/availability/stop-sale",
        json={
            "tenant_id": "acme",
            "tour_id": str(tour.id),
            "option_ids": [shared],
            "start_date": TOUR_DATE.isoformat(),
            "end_date": TOUR_DATE.isoformat(),
            "reason": "Guide sick",
        },
    )
    resp = client.post(URL, json=payload(tour))
    assert resp.status_code == 409
    assert "Guide sick" in resp.json()["detail"]

    # The other option is still on sale
    resp = client.post(URL, json=payload(tour, option_id=str(tour.options[1].id), child_guests=0))
    assert resp.status_code == 201, resp.text


def test_full_stop_sale_blocks_every_option(client, tour, slots):
    client.put(
        "/api/v1/availability/stop-sale",
        json={
            "tenant_id": "acme",
            "tour_id": str(tour.id),
            "start_date": TOUR_DATE.isoformat(),
            "end_date": TOUR_DATE.isoformat(),
        },
    )
    resp = client.post(URL, json=payload(tour, option_id=str(tour.options[1].id)))
    assert resp.status_code == 409


def test_best_offer_is_applied(client, tour, slots, make_offer, db):
    offer = make_offer(name="Ten", discount_value=Decimal("10"), priority=1)
    make_offer(name="Early", type=OfferType.early_bird, discount_value=Decimal("25"), min_days_in_advance=30)

    resp = client.post(URL, json=payload(tour, apply_offers=True))
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["offer"]["name"] == "Ten"
    assert Decimal(body["discount_amount"]) == Decimal("31.00")
    assert Decimal(body["total_price"]) == Decimal("303.80")

    db.refresh(offer)
    assert offer.used_count == 1


def test_cancel_frees_capacity(client, tour, slots, db):
    booking_id = client.post(URL, json=payload(tour)).json()["id"]
    assert booked(db, tour) == 4

    resp = client.patch(f"{URL}{booking_id}/cancel", params={"tenant_id": "acme"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert booked(db, tour) == 1

    resp = client.patch(f"{URL}{booking_id}/cancel", params={"tenant_id": "acme"})
    assert resp.status_code == 400


def test_status_update_accepts_labels(client, tour, slots):
    booking_id = client.post(URL, json=payload(tour)).json()["id"]
    resp = client.patch(
        f"{URL}{booking_id}/status", params={"tenant_id": "acme"}, json={"status": "Partial Refunded"}
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "partial_refunded"
    assert resp.json()["status_label"] == "Partial Refunded"

    resp = client.patch(f"{URL}{booking_id}/status", params={"tenant_id": "acme"}, json={"status": "lost"})
    assert resp.status_code == 422


def test_list_and_detail(client, tour, slots):
    booking_id = client.post(URL, json=payload(tour, adult_guests=1, child_guests=0)).json()["id"]

    resp = client.get(URL, params={"tenant_id": "acme", "status": "Confirmed"})
    assert resp.status_code == 200
    assert resp.json()["total"] == 1
    assert resp.json()["data"][0]["tour"]["title"] == "Desert Safari"

    assert client.get(URL, params={"tenant_id": "other"}).json()["total"] == 0

    resp = client.get(f"{URL}{booking_id}", params={"tenant_id": "acme"})
    assert Decimal(resp.json()["pricing"]["adult_price"]) == Decimal("100.00")

    assert client.get(f"{URL}{booking_id}", params={"tenant_id": "other"}).status_code == 404


def test_reports(client, tour, slots):
    client.post(URL, json=payload(tour, adult_guests=1, child_guests=0, add_ons={}))
    cancelled = client.post(URL, json=payload(tour, adult_guests=1, child_guests=0, add_ons={})).json()["id"]
    client.patch(f"{URL}{cancelled}/cancel", params={"tenant_id": "acme"})

    resp = client.get("/api/v1/admin/reports/", params={"tenant_id": "acme", "group_by": "day"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["summary"]["total_bookings"] == 1
    assert Decimal(body["summary"]["total_revenue"]) == Decimal("108.00")
    assert body["summary"]["cancelled_bookings"] == 1
    assert body["time_series"][0]["period"] == TOUR_DATE.isoformat()
    assert body["by_tour"][0]["title"] == "Desert Safari"


def test_reinstating_a_cancelled_booking_takes_seats_again(client, tour, slots, db):
    first = client.post(URL, json=payload(tour, add_ons={})).json()["id"]
    client.patch(f"{URL}{first}/cancel", params={"tenant_id": "acme"})
    assert booked(db, tour) == 1

    # The freed seats went to someone else
    assert client.post(URL, json=payload(tour, add_ons={})).status_code == 201
    assert booked(db, tour) == 4

    resp = client.patch(f"{URL}{first}/status", params={"tenant_id": "acme"}, json={"status": "confirmed"})
    assert resp.status_code == 409
    assert booked(db, tour) == 4
    db.expire_all()
    assert db.query(Booking).filter(Booking.id == uuid.UUID(first)).one().status == "cancelled"


def test_reinstating_with_room_rebooks_the_slot(client, tour, slots, db):
    booking_id = client.post(URL, json=payload(tour)).json()["id"]
    client.patch(f"{URL}{booking_id}/cancel", params={"tenant_id": "acme"})

    resp = client.patch(f"{URL}{booking_id}/status", params={"tenant_id": "acme"}, json={"status": "pending"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["cancelled_at"] is None
    assert booked(db, tour) == 4


def test_reinstating_under_stop_sale_is_rejected(client, tour, slots, db):
    booking_id = client.post(URL, json=payload(tour)).json()["id"]
    client.patch(f"{URL}{booking_id}/cancel", params={"tenant_id": "acme"})
    client.put(
        "/api/v1/availability/stop-sale",
        json={
            "tenant_id": "acme",
            "tour_id": str(tour.id),
            "option_ids": [str(tour.options[0].id)],
            "start_date": TOUR_DATE.isoformat(),
            "end_date": TOUR_DATE.isoformat(),
        },
    )

    resp = client.patch(f"{URL}{booking_id}/status", params={"tenant_id": "acme"}, json={"status": "confirmed"})
    assert resp.status_code == 409
    assert booked(db, tour) == 1


def test_discounted_booking_breakdown_shows_amount_due(client, tour, slots, make_offer):
    make_offer(name="Ten", discount_value=Decimal("10"))

    body = client.post(URL, json=payload(tour, apply_offers=True)).json()
    pricing = body["pricing"]
    assert Decimal(pricing["total"]) == Decimal("334.80")
    assert Decimal(pricing["discount_amount"]) == Decimal("31.00")
    assert Decimal(pricing["amount_due"]) == Decimal("303.80")
    assert Decimal(pricing["amount_due"]) == Decimal(body["total_price"])

    # The detail view shows the same figures
    detail = client.get(f"{URL}{body['id']}", params={"tenant_id": "acme"}).json()
    assert detail["pricing"] == pricing


def test_option_stop_sale_survives_tour_edit(client, tour, slots):
    shared = str(tour.options[0].id)
    client.put(
        "/api/v1/availability/stop-sale",
        json={
            "tenant_id": "acme",
            "tour_id": str(tour.id),
            "option_ids": [shared],
            "start_date": TOUR_DATE.isoformat(),
            "end_date": TOUR_DATE.isoformat(),
        },
    )

    resp = client.patch(
        f"/api/v1/admin/tours/{tour.id}",
        params={"tenant_id": "acme"},
        json={
            "options": [
                {"type": "shared-tour", "label": "Shared Tour", "price": "110"},
                {"type": "private-tour", "label": "Private Tour", "price": "250"},
            ]
        },
    )
    assert resp.status_code == 200, resp.text
    options = {o["type"]: o for o in resp.json()["options"]}
    assert options["shared-tour"]["id"] == shared
    assert Decimal(options["shared-tour"]["price"]) == Decimal("110")

    resp = client.post(URL, json=payload(tour, option_id=shared))
    assert resp.status_code == 409
