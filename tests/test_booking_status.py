import pytest

from app.utils.booking_status import BookingStatus, to_booking_status, to_booking_status_label


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("confirmed", BookingStatus.confirmed),
        ("Confirmed", BookingStatus.confirmed),
        ("  PENDING ", BookingStatus.pending),
        ("partial_refunded", BookingStatus.partial_refunded),
        ("Partial Refunded", BookingStatus.partial_refunded),
        ("partial-refunded", BookingStatus.partial_refunded),
    ],
)
def test_normalizes_codes_and_labels(raw, expected):
    assert to_booking_status(raw) is expected


@pytest.mark.parametrize("raw", [None, "", "   ", "shipped"])
def test_unknown_status(raw):
    assert to_booking_status(raw) is None
    assert to_booking_status_label(raw) is None


def test_label():
    assert to_booking_status_label("partial_refunded") == "Partial Refunded"
    assert to_booking_status_label("cancelled") == "Cancelled"
