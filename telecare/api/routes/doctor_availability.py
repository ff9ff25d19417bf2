import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from telecare.api.deps import get_bearer_token, get_registry
from telecare.api.schemas.availability import (
    AvailabilitySlot,
    AvailabilityStatusRequest,
    AvailabilityStatusResponse,
    DayTemplateResponse,
    SaveAvailabilityRequest,
    SaveAvailabilityResponse,
)
from telecare.services.availability_client import AvailabilityClient
from telecare.services.availability_service import (
    DEFAULT_WORK_END,
    DEFAULT_WORK_START,
    check_availability_date,
    day_template,
    plan_day_slots,
    recurring_dates,
)
from telecare.services.session_registry import BookingSessionRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/doctor-availability", tags=["doctor-availability"])


@router.get("/dates/{day}", response_model=DayTemplateResponse)
async def get_day_template(
    day: date,
    work_start: str = Query(DEFAULT_WORK_START),
    work_end: str = Query(DEFAULT_WORK_END),
    token: str = Depends(get_bearer_token),
    registry: BookingSessionRegistry = Depends(get_registry),
) -> DayTemplateResponse:
    """Working-hours slots for the signed-in doctor, marked offered/booked from what is saved."""
    async with registry.open_api(token) as api:
        saved = await AvailabilityClient(api).get_own_time_slots(day)
    template = day_template(work_start, work_end, saved.slots)
    return DayTemplateResponse(
        date=day,
        work_start=work_start,
        work_end=work_end,
        slots=[
            AvailabilitySlot(start=s.start, end=s.end, booked=s.booked, offered=offered)
            for s, offered in template
        ],
    )


@router.put("/dates/{day}", response_model=SaveAvailabilityResponse)
async def save_day(
    day: date,
    body: SaveAvailabilityRequest,
    token: str = Depends(get_bearer_token),
    registry: BookingSessionRegistry = Depends(get_registry),
) -> SaveAvailabilityResponse:
    """Save the day's slots, optionally repeated weekly. Booked slots are always kept."""
    check_availability_date(day, registry.today())
    dates = recurring_dates(day, body.repeat_weeks) if body.repeat_weeks else [day]
    async with registry.open_api(token) as api:
        client = AvailabilityClient(api)
        saved = await client.get_own_time_slots(day)
        slots = plan_day_slots(body.work_start, body.work_end, saved.slots, body.selected_starts)
        if body.repeat_weeks:
            ack = await client.save_recurring_time_slots(day, slots, body.repeat_weeks)
        else:
            ack = await client.save_time_slots(day, slots)
    logger.info("Availability saved for %s (%d slot(s), %d date(s))", day, len(slots), len(dates))
    return SaveAvailabilityResponse(
        dates=dates,
        slots=[AvailabilitySlot(start=s.start, end=s.end, booked=s.booked) for s in slots],
        message=ack.message,
    )


@router.delete("/dates/{day}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_day(
    day: date,
    token: str = Depends(get_bearer_token),
    registry: BookingSessionRegistry = Depends(get_registry),
) -> None:
    async with registry.open_api(token) as api:
        await AvailabilityClient(api).delete_availability(day)
    logger.info("Availability removed for %s", day)


@router.patch("/status", response_model=AvailabilityStatusResponse)
async def update_status(
    body: AvailabilityStatusRequest,
    token: str = Depends(get_bearer_token),
    registry: BookingSessionRegistry = Depends(get_registry),
) -> AvailabilityStatusResponse:
    """Accepting appointments or on leave; patients see no dates while on leave."""
    async with registry.open_api(token) as api:
        ack = await AvailabilityClient(api).update_availability_status(body.is_accepting_appointments)
    logger.info("Doctor availability status set to accepting=%s", body.is_accepting_appointments)
    return AvailabilityStatusResponse(
        is_accepting_appointments=body.is_accepting_appointments,
        message=ack.message,
    )
