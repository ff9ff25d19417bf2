import logging

from fastapi import APIRouter, Depends, status

from telecare.api.deps import get_bearer_token, get_registry
from telecare.api.schemas.booking import StaffAppointmentRequest, StaffAppointmentResponse
from telecare.services.availability_client import AvailabilityClient
from telecare.services.session_registry import BookingSessionRegistry
from telecare.services.staff_booking_service import build_staff_booking

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/staff-appointments", tags=["staff"])


@router.post("", response_model=StaffAppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_staff_appointment(
    body: StaffAppointmentRequest,
    token: str = Depends(get_bearer_token),
    registry: BookingSessionRegistry = Depends(get_registry),
) -> StaffAppointmentResponse:
    """Create an appointment for a patient; end time defaults to start + slot length."""
    booking = build_staff_booking(
        patient_id=body.patient_id,
        day=body.date,
        start=body.start,
        today=registry.today(),
        end=body.end,
        type=body.type,
        reason=body.reason,
        notes=body.notes,
    )
    async with registry.open_api(token) as api:
        created = await AvailabilityClient(api).create_staff_appointment(booking)
    logger.info("Staff appointment %s created for %s %s", created.appointment_id, booking.date, booking.start)
    return StaffAppointmentResponse(
        appointment_id=created.appointment_id,
        date=booking.date,
        start=booking.start,
        end=booking.end,
    )
