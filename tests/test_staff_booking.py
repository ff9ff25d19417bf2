from datetime import timedelta

import pytest

from conftest import TODAY, TOMORROW
from telecare.core.errors import PastDateError, ValidationError
from telecare.models.slot import AppointmentType
from telecare.services.staff_booking_service import build_staff_booking


def test_end_defaults_to_half_hour_later():
    booking = build_staff_booking("p1", TOMORROW, "08:45", today=TODAY, reason="follow-up")
    assert (booking.start, booking.end) == ("08:45", "09:15")
    assert booking.type is AppointmentType.IN_PERSON


def test_explicit_end_and_type():
    booking = build_staff_booking(
        "p1", TODAY, "10:00", today=TODAY, end="11:00", type="video", reason="review", notes="  "
    )
    assert booking.end == "11:00"
    assert booking.type is AppointmentType.VIDEO
    assert booking.notes is None


def test_wrapped_end_is_rejected():
    with pytest.raises(ValidationError):
        build_staff_booking("p1", TOMORROW, "23:50", today=TODAY, reason="night shift")


def test_end_before_start_is_rejected():
    with pytest.raises(ValidationError):
        build_staff_booking("p1", TOMORROW, "10:00", today=TODAY, end="09:00", reason="x")


def test_past_date_is_rejected():
    with pytest.raises(PastDateError):
        build_staff_booking("p1", TODAY - timedelta(days=1), "10:00", today=TODAY, reason="x")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"patient_id": "", "reason": "x"},
        {"patient_id": "p1", "reason": " "},
        {"patient_id": "p1", "reason": "x", "start": "ten"},
        {"patient_id": "p1", "reason": "x", "type": "home-visit"},
    ],
)
def test_invalid_input(kwargs):
    args = {"day": TOMORROW, "start": "10:00", "today": TODAY, **kwargs}
    with pytest.raises(ValidationError):
        build_staff_booking(**args)
