import enum
from typing import Optional


class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    refunded = "refunded"
    partial_refunded = "partial_refunded"


BOOKING_STATUS_LABEL = {
    BookingStatus.pending: "Pending",
    BookingStatus.confirmed: "Confirmed",
    BookingStatus.completed: "Completed",
    BookingStatus.cancelled: "Cancelled",
    BookingStatus.refunded: "Refunded",
    BookingStatus.partial_refunded: "Partial Refunded",
}

# Statuses that represent real collected money
PAID_STATUSES = (BookingStatus.confirmed.value, BookingStatus.completed.value)


def to_booking_status(value: Optional[str]) -> Optional[BookingStatus]:
    """Accept codes ("partial_refunded"), labels ("Partial Refunded") or hyphenated forms."""
    raw = str(value or "").strip()
    if not raw:
        return None
    normalized = "_".join(raw.lower().split()).replace("-", "_")
    try:
        return BookingStatus(normalized)
    except ValueError:
        return None


def to_booking_status_label(value: Optional[str]) -> Optional[str]:
    status = to_booking_status(value)
    return BOOKING_STATUS_LABEL[status] if status else None
