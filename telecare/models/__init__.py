from telecare.models.slot import AppointmentType, Period, TimeSlot
from telecare.models.booking import BookingDraft, SelectedBooking, StaffBooking
from telecare.models.remote import (
    Acknowledgement,
    AvailableDatesResponse,
    CreatedAppointment,
    TimeSlotsResponse,
)

__all__ = [
    "AppointmentType",
    "Period",
    "TimeSlot",
    "BookingDraft",
    "SelectedBooking",
    "StaffBooking",
    "Acknowledgement",
    "AvailableDatesResponse",
    "CreatedAppointment",
    "TimeSlotsResponse",
]
