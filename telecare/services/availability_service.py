"""Doctor-side availability: working-hours templates for one day."""
from collections.abc import Iterable
from datetime import date, timedelta

from telecare.core.errors import PastDateError, ValidationError
from telecare.models.slot import TimeSlot
from telecare.services.slot_service import format_time, generate_time_slots, parse_time

REPEAT_WEEK_CHOICES = (1, 2, 4, 8, 12)
DEFAULT_WORK_START = "09:00"
DEFAULT_WORK_END = "17:00"


def check_availability_date(day: date, today: date) -> None:
    """Availability can be set for today or later."""
    if day < today:
        raise PastDateError("You can only set availability for current or future dates")


def _clock(value: str, name: str) -> str:
    try:
        return format_time(parse_time(value))
    except (ValueError, AttributeError):
        raise ValidationError(f"{name} must be HH:MM") from None


def _working_template(work_start: str, work_end: str, minutes: int | None) -> list[TimeSlot]:
    start = _clock(work_start, "work_start")
    end = _clock(work_end, "work_end")
    if end <= start:
        raise ValidationError("End time must be after start time")
    return generate_time_slots(start, end, minutes)


def day_template(
    work_start: str,
    work_end: str,
    existing: Iterable[TimeSlot] = (),
    minutes: int | None = None,
) -> list[tuple[TimeSlot, bool]]:
    """Working-hours slots paired with whether each is already offered.

    Booking state comes from `existing`; booked slots count as offered.
    """
    saved = {(s.start, s.end): s for s in existing}
    out = []
    for slot in _working_template(work_start, work_end, minutes):
        match = saved.get((slot.start, slot.end))
        if match is not None and match.booked:
            slot = slot.model_copy(update={"booked": True})
        out.append((slot, match is not None))
    return out


def plan_day_slots(
    work_start: str,
    work_end: str,
    existing: Iterable[TimeSlot] = (),
    selected_starts: Iterable[str] | None = None,
    minutes: int | None = None,
) -> list[TimeSlot]:
    """Slots to save for a day: the chosen working-hours slots plus every
    already-booked slot.

    `selected_starts=None` offers the whole template. Booked slots are kept
    even when they fall outside the new working hours.
    """
    template = _working_template(work_start, work_end, minutes)
    booked = {(s.start, s.end): s for s in existing if s.booked}
    if selected_starts is None:
        chosen = {s.start for s in template}
    else:
        chosen = {_clock(s, "selected start") for s in selected_starts}
        unknown = chosen - {s.start for s in template}
        if unknown:
            raise ValidationError(f"Outside working hours: {', '.join(sorted(unknown))}")

    slots = []
    for slot in template:
        key = (slot.start, slot.end)
        if key in booked:
            slots.append(slot.model_copy(update={"booked": True}))
        elif slot.start in chosen:
            slots.append(slot)
    template_keys = {(s.start, s.end) for s in template}
    slots.extend(s for key, s in booked.items() if key not in template_keys)
    return sorted(slots, key=lambda s: (s.start, s.end))


def recurring_dates(day: date, weeks: int) -> list[date]:
    """`day` and the same weekday in the following weeks, `weeks` dates in all."""
    if weeks not in REPEAT_WEEK_CHOICES:
        choices = ", ".join(str(w) for w in REPEAT_WEEK_CHOICES)
        raise ValidationError(f"repeat_weeks must be one of {choices}")
    return [day + timedelta(weeks=i) for i in range(weeks)]
