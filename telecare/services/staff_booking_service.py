from datetime import date

from telecare.core.errors import PastDateError, ValidationError
from telecare.models.booking import StaffBooking
from telecare.models.slot import AppointmentType
from telecare.services.slot_service import derive_end_time, format_time, parse_time


def build_staff_booking(
    patient_id: str,
    day: date,
    start: str,
    today: date,
    end: str | None = None,
    type: AppointmentType | str = AppointmentType.IN_PERSON,
    reason: str = "",
    notes: str | None = None,
) -> StaffBooking:
    """Validate a staff-entered appointment; end defaults to start + slot length.

    An end that wraps past midnight is rejected: appointments are single-day.
    """
    if not patient_id or not patient_id.strip():
        raise ValidationError("patient_id is required")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("reason is required")
    if day < today:
        raise PastDateError(f"{day.isoformat()} is in the past")
    try:
        start_t = parse_time(start)
        end_t = parse_time(end) if end else parse_time(derive_end_time(start))
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if end_t <= start_t:
        raise ValidationError(
            f"appointment must end after {format_time(start_t)} on the same day"
        )
    try:
        appointment_type = AppointmentType(type)
    except ValueError:
        raise ValidationError(f"unknown appointment type {type!r}") from None
    return StaffBooking(
        patient_id=patient_id.strip(),
        date=day,
        start=format_time(start_t),
        end=format_time(end_t),
        type=appointment_type,
        reason=reason,
        notes=(notes or "").strip() or None,
    )
