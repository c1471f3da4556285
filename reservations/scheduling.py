"""
Slot generation, overlap detection and capacity resolution.

Everything here is a pure function of its arguments; the booking service
feeds it rows loaded from the database. Times are "HH:MM" strings on the
wire and minutes-since-midnight internally.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Set, Tuple

from .config import Settings
from .errors import ValidationError

logger = logging.getLogger(__name__)

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")
_TWELVE_HOUR = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AP]M)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class CapacityVerdict:
    single_table_fit: bool
    combination_fit: bool
    remaining_capacity: int

    @property
    def available(self) -> bool:
        return self.single_table_fit or self.combination_fit


@dataclass(frozen=True)
class SlotAvailability:
    time: str
    available: bool
    remaining_capacity: int


def normalize_time(value: str) -> str:
    """Convert "09:00 PM" style times to "21:00".

    Strings without an AM/PM marker are returned untouched, so the function
    is safe to apply to values that are already 24-hour.
    """
    upper = value.upper()
    if "AM" not in upper and "PM" not in upper:
        return value

    match = _TWELVE_HOUR.match(value)
    if not match:
        raise ValidationError(f"Invalid time: {value!r}")
    hours, minutes, period = match.groups()
    try:
        parsed = datetime.strptime(f"{int(hours)}:{minutes} {period.upper()}", "%I:%M %p")
    except ValueError:
        raise ValidationError(f"Invalid time: {value!r}") from None
    return parsed.strftime("%H:%M")


def to_minutes(value: str) -> int:
    """Minutes since midnight for an "HH:MM" string. "24:00" is accepted as end of day."""
    match = _HHMM.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(f"Invalid time: {value!r}. Use HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes):
        raise ValidationError(f"Invalid time: {value!r}. Use HH:MM")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str) -> date:
    """Parse a "YYYY-MM-DD" calendar day"""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD") from None


def generate_time_slots(open_time: str, close_time: str, interval_minutes: int = 30) -> List[str]:
    """Start times from open_time up to, but not including, close_time."""
    if interval_minutes <= 0:
        raise ValidationError("Slot interval must be positive")

    current = to_minutes(open_time)
    end = to_minutes(close_time)

    slots = []
    while current < end:
        slots.append(format_minutes(current))
        current += interval_minutes
    return slots


def resolve_operating_window(operating_hours: Optional[dict], day: date,
                             settings: Settings) -> Optional[Tuple[str, str]]:
    """Return (open, close) in 24-hour form for the weekday, or None when closed.

    Days with no configuration use the default window from settings.
    """
    day_name = DAY_NAMES[day.weekday()]
    day_hours = (operating_hours or {}).get(day_name)

    open_time = settings.default_open_time
    close_time = settings.default_close_time

    if day_hours:
        if day_hours.get("closed") is True:
            logger.debug("Closed on %s", day_name)
            return None
        if day_hours.get("open") and day_hours.get("close"):
            open_time = day_hours["open"]
            close_time = day_hours["close"]
    else:
        logger.debug("No operating hours for %s, using defaults", day_name)

    try:
        window = normalize_time(open_time), normalize_time(close_time)
        to_minutes(window[0])
        to_minutes(window[1])
    except ValidationError as e:
        logger.warning("Bad operating hours for %s (%s), using defaults", day_name, e)
        return normalize_time(settings.default_open_time), normalize_time(settings.default_close_time)
    return window


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return (
        (b_start <= a_start < b_end)
        or (b_start < a_end <= b_end)
        or (a_start <= b_start and a_end >= b_end)
    )


def booking_window(booking, default_duration: int) -> Tuple[int, int]:
    start = to_minutes(booking.time)
    return start, start + (booking.duration or default_duration)


def occupied_table_ids(slot: str, bookings: Iterable, slot_duration: int,
                       default_duration: Optional[int] = None) -> Set[int]:
    """Tables held during [slot, slot + slot_duration) by the given active bookings.

    Bookings without a table never occupy one.
    """
    if default_duration is None:
        default_duration = slot_duration
    slot_start = to_minutes(slot)
    slot_end = slot_start + slot_duration

    occupied = set()
    for booking in bookings:
        if not booking.table_id:
            continue
        start, end = booking_window(booking, default_duration)
        if intervals_overlap(slot_start, slot_end, start, end):
            occupied.add(booking.table_id)
    return occupied


def resolve_capacity(tables: Iterable, occupied: Set[int], guests: int) -> CapacityVerdict:
    free = [t for t in tables if t.is_active and t.id not in occupied]
    if not free:
        return CapacityVerdict(False, False, 0)

    total = sum(t.capacity for t in free)
    single = any(t.capacity >= guests for t in free)
    return CapacityVerdict(single, total >= guests, total)


def assemble_slots(slots: Iterable[str], tables: list, bookings: list, guests: int,
                   duration: int) -> List[SlotAvailability]:
    """One verdict per slot, in slot order. Nothing is dropped."""
    result = []
    for slot in slots:
        if not tables:
            result.append(SlotAvailability(slot, False, 0))
            continue
        occupied = occupied_table_ids(slot, bookings, duration)
        verdict = resolve_capacity(tables, occupied, guests)
        logger.debug("Slot %s: occupied=%s available=%s remaining=%d",
                     slot, sorted(occupied), verdict.available, verdict.remaining_capacity)
        result.append(SlotAvailability(slot, verdict.available, verdict.remaining_capacity))
    return result
