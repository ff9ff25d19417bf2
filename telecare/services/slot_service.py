from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from telecare.core.config import settings
from telecare.models.slot import Period, TimeSlot


def parse_time(value: str) -> time:
    """Parse "HH:MM" (or "HH:MM:SS") into a time."""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    raise ValueError(f"invalid time {value!r}, expected HH:MM")


def format_time(t: time) -> str:
    return t.strftime("%H:%M")


def format_time_12h(value: str) -> str:
    """"13:05" -> "1:05 PM"."""
    t = parse_time(value)
    suffix = "PM" if t.hour >= 12 else "AM"
    return f"{t.hour % 12 or 12}:{t.minute:02d} {suffix}"


def period_for_start(start: str) -> Period | None:
    """Bucket a start time by hour; starts outside the day's buckets get None."""
    hour = parse_time(start).hour
    if settings.morning_start_hour <= hour < settings.afternoon_start_hour:
        return Period.MORNING
    if settings.afternoon_start_hour <= hour < settings.evening_start_hour:
        return Period.AFTERNOON
    if settings.evening_start_hour <= hour < settings.evening_end_hour:
        return Period.EVENING
    return None


def slot_period(slot: TimeSlot) -> Period | None:
    """The slot's own period when the source sent one, else derived from its start."""
    if slot.period is not None:
        return slot.period
    return period_for_start(slot.start)


def group_slots_by_period(slots: Iterable[TimeSlot]) -> dict[Period, list[TimeSlot]]:
    """Group slots for display. Every period is present; unbucketed slots are hidden."""
    groups: dict[Period, list[TimeSlot]] = {p: [] for p in Period}
    for slot in sorted(slots, key=lambda s: (s.start, s.end)):
        period = slot_period(slot)
        if period is not None:
            groups[period].append(slot)
    return groups


def derive_end_time(start: str, minutes: int | None = None) -> str:
    """Default end of an appointment starting at `start`, wrapping within 24h."""
    if minutes is None:
        minutes = settings.slot_duration_minutes
    t = parse_time(start)
    total = (t.hour * 60 + t.minute + minutes) % (24 * 60)
    return format_time(time(total // 60, total % 60))


def generate_time_slots(
    work_start: str, work_end: str, minutes: int | None = None
) -> list[TimeSlot]:
    """Consecutive slots that fit fully inside [work_start, work_end]."""
    if minutes is None:
        minutes = settings.slot_duration_minutes
    if minutes <= 0:
        raise ValueError("slot length must be positive")
    day = date(2000, 1, 1)
    current = datetime.combine(day, parse_time(work_start))
    end = datetime.combine(day, parse_time(work_end))
    delta = timedelta(minutes=minutes)
    slots: list[TimeSlot] = []
    while current + delta <= end:
        slots.append(
            TimeSlot(start=format_time(current.time()), end=format_time((current + delta).time()))
        )
        current += delta
    return slots


def normalize_slots(slots: Iterable[TimeSlot]) -> list[TimeSlot]:
    """Drop booked slots and value-duplicates, sorted by start then end."""
    seen: set[tuple[str, str]] = set()
    out: list[TimeSlot] = []
    for slot in sorted(slots, key=lambda s: (s.start, s.end)):
        key = (slot.start, slot.end)
        if slot.booked or key in seen:
            continue
        seen.add(key)
        out.append(slot)
    return out