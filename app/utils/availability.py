import enum
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, FrozenSet, Iterable, Iterator, Optional, Tuple

from app.utils.fields import get_field, to_int

ALL_OPTIONS = "all"


class StopSaleStatus(str, enum.Enum):
    none = "none"
    partial = "partial"
    full = "full"


class CalendarStatus(str, enum.Enum):
    default = "default"  # no record for the date; open for booking
    available = "available"
    limited = "limited"
    sold_out = "sold_out"
    stop_sale_partial = "stop_sale_partial"
    stop_sale_full = "stop_sale_full"


@dataclass(frozen=True)
class StopSaleState:
    """
    Stop-sale state of one tour date.

    `full` means an all-options stop-sale is in force. Options stopped one by
    one are kept in `option_ids` underneath it, so lifting the all-options
    stop falls back to `partial` rather than clearing them. Reasons are keyed
    by option id, or by "all" for the all-options stop.
    """
    status: StopSaleStatus = StopSaleStatus.none
    option_ids: FrozenSet[str] = frozenset()
    reasons: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Any) -> "StopSaleState":
        if record is None:
            return cls()
        option_ids = frozenset(str(i) for i in get_field(record, "stopped_option_ids", []))
        reasons = dict(get_field(record, "stop_sale_reasons", {}))
        full = get_field(record, "stop_sale_status", "none") == StopSaleStatus.full.value
        return cls._build(full, option_ids, reasons)

    @classmethod
    def _build(cls, full: bool, option_ids: FrozenSet[str], reasons: Dict[str, str]) -> "StopSaleState":
        if full:
            status = StopSaleStatus.full
        elif option_ids:
            status = StopSaleStatus.partial
        else:
            status = StopSaleStatus.none
        return cls(status=status, option_ids=option_ids, reasons=reasons)

    @property
    def is_full(self) -> bool:
        return self.status is StopSaleStatus.full

    # Legacy single-flag view, only used when serialising
    @property
    def stop_sale(self) -> bool:
        return self.is_full

    @property
    def stop_sale_reason(self) -> str:
        return self.reasons.get(ALL_OPTIONS, "") if self.is_full else ""

    def is_option_stopped(self, option_id) -> bool:
        return self.is_full or str(option_id) in self.option_ids

    def apply(self, option_ids: Iterable[str] = (), reason: str = "") -> "StopSaleState":
        """Stop sales for the given options, or for every option when none are given."""
        ids = frozenset(str(i) for i in option_ids if i)
        reasons = dict(self.reasons)
        keys = ids or {ALL_OPTIONS}
        for key in keys:
            if reason:
                reasons[key] = reason
            else:
                reasons.pop(key, None)
        if not ids:
            return self._build(True, self.option_ids, reasons)
        return self._build(self.is_full, self.option_ids | ids, reasons)

    def remove(self, option_ids: Iterable[str] = ()) -> "StopSaleState":
        """Lift the stop-sale for the given options, or the all-options stop when none are given."""
        ids = frozenset(str(i) for i in option_ids if i)
        reasons = dict(self.reasons)
        if not ids:
            reasons.pop(ALL_OPTIONS, None)
            return self._build(False, self.option_ids, reasons)
        for key in ids:
            reasons.pop(key, None)
        return self._build(self.is_full, self.option_ids - ids, reasons)

    def write_to(self, record: Any) -> None:
        record.stop_sale_status = self.status.value
        record.stopped_option_ids = sorted(self.option_ids)
        record.stop_sale_reasons = dict(self.reasons)


def slot_totals(slots: Optional[Iterable[Any]]) -> Tuple[int, int]:
    """(total capacity incl. extra capacity, total booked) over a date's slots."""
    capacity = 0
    booked = 0
    for slot in slots or []:
        capacity += to_int(get_field(slot, "capacity"), 0) + to_int(get_field(slot, "extra_capacity"), 0)
        booked += to_int(get_field(slot, "booked"), 0)
    return capacity, booked


def derive_status(record: Any, option_ids: Optional[Iterable[str]] = None) -> CalendarStatus:
    """
    Single calendar status for one date.

    Stop-sale wins over capacity. When the tour's option ids are given, a date
    on which every option is stopped individually shows as a full stop-sale.
    """
    if record is None:
        return CalendarStatus.default

    state = StopSaleState.from_record(record)
    if state.is_full:
        return CalendarStatus.stop_sale_full
    if state.status is StopSaleStatus.partial:
        known = {str(i) for i in option_ids or []}
        if known and known <= state.option_ids:
            return CalendarStatus.stop_sale_full
        return CalendarStatus.stop_sale_partial

    capacity, booked = slot_totals(get_field(record, "slots", []))
    if booked >= capacity:
        return CalendarStatus.sold_out
    # at or above 80% of capacity
    if booked * 5 >= capacity * 4:
        return CalendarStatus.limited
    return CalendarStatus.available


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every date from `start` to `end`, both inclusive."""
    cur = start
    while cur <= end:
        yield cur
        cur += timedelta(days=1)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])
