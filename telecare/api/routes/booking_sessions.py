import logging

from fastapi import APIRouter, Depends, status

from telecare.api.deps import get_bearer_token, get_booking_session, get_registry
from telecare.api.schemas.booking import (
    BookRequest,
    BookResponse,
    DraftInfo,
    GroupedSlotsResponse,
    LoadResponse,
    OperationInfo,
    SelectDateRequest,
    SelectDoctorRequest,
    SelectSlotRequest,
    SessionStateResponse,
    SlotInfo,
)
from telecare.models.slot import Period, TimeSlot
from telecare.services.coordinator import CoordinatorState, OperationStatus
from telecare.services.session_registry import BookingSession, BookingSessionRegistry
from telecare.services.slot_service import format_time_12h, slot_period

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/booking-sessions", tags=["booking"])


def _slot_info(slot: TimeSlot, index: int) -> SlotInfo:
    return SlotInfo(
        index=index,
        start=slot.start,
        end=slot.end,
        period=slot_period(slot),
        label=format_time_12h(slot.start),
    )


def _operation_info(op: OperationStatus) -> OperationInfo:
    if op.error is None:
        return OperationInfo(loading=op.loading)
    return OperationInfo(loading=op.loading, error=op.error.detail, error_code=op.error.code)


def _to_state(session: BookingSession) -> SessionStateResponse:
    coordinator = session.coordinator
    state: CoordinatorState = coordinator.state
    draft = state.draft
    draft_slot = None
    if draft.slot is not None:
        index = next((i for i, s in enumerate(state.slots) if s is draft.slot), None)
        if index is not None:
            draft_slot = _slot_info(draft.slot, index)
    return SessionStateResponse(
        session_id=session.id,
        doctor_id=state.doctor_id,
        is_accepting_appointments=state.is_accepting_appointments,
        dates=list(state.dates),
        first_bookable_date=coordinator.first_bookable_date(),
        slots=[_slot_info(s, i) for i, s in enumerate(state.slots)],
        slots_fetch_id=state.slots_fetch_id,
        draft=DraftInfo(doctor_id=draft.doctor_id, date=draft.date, slot=draft_slot),
        dates_status=_operation_info(state.dates_status),
        slots_status=_operation_info(state.slots_status),
        can_finalize=draft.complete and draft.date in state.dates,
        token_needs_refresh=session.api.needs_refresh(),
    )


@router.post("", response_model=SessionStateResponse, status_code=status.HTTP_201_CREATED)
async def open_session(
    token: str = Depends(get_bearer_token),
    registry: BookingSessionRegistry = Depends(get_registry),
) -> SessionStateResponse:
    session = registry.create(token)
    return _to_state(session)


@router.get("/{session_id}", response_model=SessionStateResponse)
async def get_state(session: BookingSession = Depends(get_booking_session)) -> SessionStateResponse:
    return _to_state(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session: BookingSession = Depends(get_booking_session),
    registry: BookingSessionRegistry = Depends(get_registry),
) -> None:
    await registry.remove(session.id)


@router.post("/{session_id}/doctor", response_model=LoadResponse)
async def select_doctor(
    body: SelectDoctorRequest,
    session: BookingSession = Depends(get_booking_session),
) -> LoadResponse:
    """Load the doctor's available dates; clears any selected date and slot."""
    result = await session.coordinator.load_available_dates(body.doctor_id)
    return LoadResponse(status=result.status.value, state=_to_state(session))


@router.post("/{session_id}/date", response_model=LoadResponse)
async def select_date(
    body: SelectDateRequest,
    session: BookingSession = Depends(get_booking_session),
) -> LoadResponse:
    """Load time slots for the date; a load failure is reported in the status, not as an error."""
    coordinator = session.coordinator
    doctor_id = coordinator.state.doctor_id or ""
    result = await coordinator.load_time_slots(doctor_id, body.date)
    return LoadResponse(status=result.status.value, state=_to_state(session))


@router.get("/{session_id}/slots/grouped", response_model=GroupedSlotsResponse)
async def grouped_slots(session: BookingSession = Depends(get_booking_session)) -> GroupedSlotsResponse:
    state = session.coordinator.state
    index_of = {id(s): i for i, s in enumerate(state.slots)}
    groups = session.coordinator.group_slots()
    return GroupedSlotsResponse(
        slots_fetch_id=state.slots_fetch_id,
        **{
            period.value: [_slot_info(s, index_of[id(s)]) for s in groups[period]]
            for period in Period
        },
    )


@router.post("/{session_id}/slot", response_model=SessionStateResponse)
async def select_slot(
    body: SelectSlotRequest,
    session: BookingSession = Depends(get_booking_session),
) -> SessionStateResponse:
    session.coordinator.select_slot_at(body.fetch_id, body.index)
    return _to_state(session)


@router.post("/{session_id}/book", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
async def book(
    body: BookRequest,
    session: BookingSession = Depends(get_booking_session),
) -> BookResponse:
    """Finalize the selection and submit it to the appointment backend.

    The booked slot is then taken out of the session, so a repeated submit
    gets 409 instead of a second appointment.
    """
    coordinator = session.coordinator
    async with session.booking_lock:
        booking = coordinator.finalize_booking(body.type, body.reason, body.attached_record_ids)
        created = await session.client.create_appointment(booking)
        if not coordinator.disposed:
            coordinator.mark_booked(booking)
    logger.info(
        "Appointment %s booked with doctor %s on %s %s",
        created.appointment_id,
        booking.doctor_id,
        booking.date,
        booking.slot.start,
    )
    return BookResponse(
        appointment_id=created.appointment_id,
        doctor_id=booking.doctor_id,
        date=booking.date,
        start=booking.slot.start,
        end=booking.slot.end,
        type=booking.type,
    )
