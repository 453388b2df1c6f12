"""
Availability engine: bookability of a single instant and the open
30-minute slots of a day, derived from a provider's weekly schedule,
blocked dates and live bookings.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Optional

from models import db
from models.availability import WeeklyAvailabilitySlot, BlockedDate
from models.booking import Booking
from services.errors import NotFound

logger = logging.getLogger(__name__)

SLOT_STEP_MINUTES = 30

REASON_DATE_BLOCKED = "Date is blocked"
REASON_NO_SCHEDULE = "No availability set for this day"
REASON_OUTSIDE_HOURS = "Time slot is outside business hours"
REASON_ALREADY_BOOKED = "Time slot is already booked"


@dataclass(frozen=True)
class SlotCheck:
    available: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        out = {"available": self.available}
        if self.reason:
            out["reason"] = self.reason
        return out


def day_of_week(day: date) -> int:
    # 0=Sunday .. 6=Saturday
    return (day.weekday() + 1) % 7


def normalize_instant(instant: datetime) -> datetime:
    """Naive values are local wall-clock time; aware ones are converted to it."""
    if instant.tzinfo is not None:
        instant = instant.astimezone().replace(tzinfo=None)
    return instant


def truncate_to_minute(instant: datetime) -> datetime:
    return normalize_instant(instant).replace(second=0, microsecond=0)


def parse_time_of_day(value) -> time:
    """Accepts a time object or "HH:MM" / "HH:MM:SS"."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError("time must be a string like 09:00")
    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time of day: {value!r}")
    return time(*(int(p) for p in parts))


def format_hhmm(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def iter_slot_times(start: time, end: time, step_minutes: int = SLOT_STEP_MINUTES) -> Iterator[str]:
    """Yields HH:MM from start in fixed steps while strictly before end."""
    hour, minute = start.hour, start.minute
    while (hour, minute) < (end.hour, end.minute):
        yield f"{hour:02d}:{minute:02d}"
        minute += step_minutes
        while minute >= 60:
            minute -= 60
            hour += 1


def _open_slots_for_day(provider_id: int, dow: int) -> List[WeeklyAvailabilitySlot]:
    return (
        WeeklyAvailabilitySlot.query
        .filter_by(provider_id=provider_id, day_of_week=dow, is_available=True)
        .order_by(WeeklyAvailabilitySlot.id.asc())
        .all()
    )


def _live_bookings_between(provider_id: int, start: datetime, end: datetime):
    return Booking.query.filter(
        Booking.provider_id == provider_id,
        Booking.slot_key >= start,
        Booking.slot_key < end,
        Booking.status != "cancelled",
    )


def is_date_blocked(provider_id: int, day: date) -> bool:
    return (
        BlockedDate.query
        .filter_by(provider_id=provider_id, blocked_date=day)
        .first()
        is not None
    )


def is_slot_available(provider_id: int, instant: datetime) -> SlotCheck:
    slot_key = truncate_to_minute(instant)
    day = slot_key.date()
    time_of_day = slot_key.time()

    if is_date_blocked(provider_id, day):
        return SlotCheck(False, REASON_DATE_BLOCKED)

    slots = _open_slots_for_day(provider_id, day_of_week(day))
    if not slots:
        return SlotCheck(False, REASON_NO_SCHEDULE)

    # Half-open: a slot ending at 17:00 does not include 17:00
    in_hours = any(
        s.start_time.replace(second=0, microsecond=0) <= time_of_day < s.end_time
        for s in slots
    )
    if not in_hours:
        return SlotCheck(False, REASON_OUTSIDE_HOURS)

    booked = _live_bookings_between(provider_id, slot_key, slot_key + timedelta(minutes=1)).first()
    if booked is not None:
        return SlotCheck(False, REASON_ALREADY_BOOKED)

    return SlotCheck(True)


def list_available_slots(provider_id: int, day: date, honor_blocked_dates: bool = False) -> List[str]:
    """
    Open HH:MM start times for ``day``, in weekly-slot order. Times covered by
    two overlapping slots are listed once.
    """
    if isinstance(day, datetime):
        day = day.date()

    if honor_blocked_dates and is_date_blocked(provider_id, day):
        return []

    slots = _open_slots_for_day(provider_id, day_of_week(day))
    if not slots:
        return []

    day_start = datetime.combine(day, time.min)
    booked = {
        format_hhmm(b.slot_key.time())
        for b in _live_bookings_between(provider_id, day_start, day_start + timedelta(days=1)).all()
    }

    out: List[str] = []
    seen = set()
    for slot in slots:
        for hhmm in iter_slot_times(slot.start_time, slot.end_time):
            if hhmm in booked or hhmm in seen:
                continue
            seen.add(hhmm)
            out.append(hhmm)
    return out


def set_weekly_availability(provider_id: int, slots: Iterable[dict]) -> List[WeeklyAvailabilitySlot]:
    """Replaces the provider's whole weekly schedule in one transaction."""
    rows = []
    try:
        WeeklyAvailabilitySlot.query.filter_by(provider_id=provider_id).delete(synchronize_session=False)
        for item in slots:
            is_available = item.get("is_available")
            if is_available is not None and not isinstance(is_available, bool):
                raise ValueError("is_available must be a boolean")
            row = WeeklyAvailabilitySlot(
                provider_id=provider_id,
                day_of_week=int(item["day_of_week"]),
                start_time=parse_time_of_day(item["start_time"]),
                end_time=parse_time_of_day(item["end_time"]),
                is_available=True if is_available is None else is_available,
            )
            db.session.add(row)
            rows.append(row)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Weekly schedule replaced for provider %s (%d slots)", provider_id, len(rows))
    return rows


def get_weekly_availability(provider_id: int) -> List[WeeklyAvailabilitySlot]:
    return (
        WeeklyAvailabilitySlot.query
        .filter_by(provider_id=provider_id)
        .order_by(WeeklyAvailabilitySlot.day_of_week.asc(), WeeklyAvailabilitySlot.start_time.asc())
        .all()
    )


def block_date(provider_id: int, day: date, reason: Optional[str] = None) -> BlockedDate:
    row = BlockedDate(provider_id=provider_id, blocked_date=day, reason=reason or None)
    db.session.add(row)
    db.session.commit()
    return row


def list_blocked_dates(provider_id: int, start: date, end: date) -> List[BlockedDate]:
    return (
        BlockedDate.query
        .filter(
            BlockedDate.provider_id == provider_id,
            BlockedDate.blocked_date >= start,
            BlockedDate.blocked_date <= end,
        )
        .order_by(BlockedDate.blocked_date.asc())
        .all()
    )


def unblock_date(provider_id: int, block_id: int) -> bool:
    row = BlockedDate.query.filter_by(id=block_id, provider_id=provider_id).first()
    if row is None:
        raise NotFound("Blocked date not found or unauthorized")
    db.session.delete(row)
    db.session.commit()
    return True


def slot_to_dict(slot: WeeklyAvailabilitySlot) -> dict:
    return {
        "id": slot.id,
        "provider_id": slot.provider_id,
        "day_of_week": slot.day_of_week,
        "start_time": format_hhmm(slot.start_time),
        "end_time": format_hhmm(slot.end_time),
        "is_available": slot.is_available,
    }


def blocked_date_to_dict(row: BlockedDate) -> dict:
    return {
        "id": row.id,
        "provider_id": row.provider_id,
        "blocked_date": row.blocked_date.isoformat(),
        "reason": row.reason,
    }
