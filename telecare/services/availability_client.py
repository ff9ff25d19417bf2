import logging
from datetime import date
from typing import TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from telecare.core.errors import FetchError, SessionClosedError
from telecare.core.session import ApiSession
from telecare.models.booking import SelectedBooking, StaffBooking
from telecare.models.remote import (
    Acknowledgement,
    AvailableDatesResponse,
    CreatedAppointment,
    TimeSlotsResponse,
)
from telecare.models.slot import TimeSlot

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _segment(value: str) -> str:
    return quote(value, safe="")


def _slot_payload(slot: TimeSlot) -> dict:
    return {"start": slot.start, "end": slot.end, "booked": slot.booked}


class AvailabilityClient:
    """Typed calls to the appointment backend over an ApiSession."""

    def __init__(self, session: ApiSession) -> None:
        self._session = session

    async def get_available_dates(self, doctor_id: str) -> AvailableDatesResponse:
        return await self._request(
            "GET", f"/doctors/{_segment(doctor_id)}/available-dates", AvailableDatesResponse
        )

    async def get_available_time_slots(self, doctor_id: str, day: date) -> TimeSlotsResponse:
        return await self._request(
            "GET",
            f"/doctors/{_segment(doctor_id)}/available-slots/{day.isoformat()}",
            TimeSlotsResponse,
        )

    async def create_appointment(self, booking: SelectedBooking) -> CreatedAppointment:
        return await self._request(
            "POST", "/appointments", CreatedAppointment, json=booking.to_payload()
        )

    async def create_staff_appointment(self, booking: StaffBooking) -> CreatedAppointment:
        return await self._request(
            "POST", "/appointments/admin", CreatedAppointment, json=booking.to_payload()
        )

    # Doctor side: the signed-in doctor's own availability

    async def get_own_time_slots(self, day: date) -> TimeSlotsResponse:
        return await self._request(
            "GET", "/doctors/time-slots", TimeSlotsResponse, params={"date": day.isoformat()}
        )

    async def save_time_slots(self, day: date, slots: list[TimeSlot]) -> Acknowledgement:
        return await self._request(
            "POST",
            "/doctors/time-slots",
            Acknowledgement,
            json={"date": day.isoformat(), "slots": [_slot_payload(s) for s in slots]},
        )

    async def save_recurring_time_slots(
        self, day: date, slots: list[TimeSlot], repeat_for: int
    ) -> Acknowledgement:
        """Save the same slots on `day` and the following weeks, `repeat_for` weeks in all."""
        return await self._request(
            "POST",
            "/doctors/time-slots/recurring",
            Acknowledgement,
            json={
                "date": day.isoformat(),
                "slots": [_slot_payload(s) for s in slots],
                "repeatFor": repeat_for,
            },
        )

    async def delete_availability(self, day: date) -> Acknowledgement:
        return await self._request(
            "DELETE", "/doctors/time-slots", Acknowledgement, params={"date": day.isoformat()}
        )

    async def update_availability_status(self, accepting: bool) -> Acknowledgement:
        return await self._request(
            "PATCH",
            "/doctors/availability-status",
            Acknowledgement,
            json={"isAcceptingAppointments": accepting},
        )

    async def _request(
        self,
        method: str,
        url: str,
        model: type[M],
        json: dict | None = None,
        params: dict | None = None,
    ) -> M:
        try:
            resp = await self._session.client.request(method, url, json=json, params=params)
        except SessionClosedError as e:
            raise FetchError(e.detail) from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise FetchError(f"Could not reach appointment service: {type(e).__name__}") from e
        if resp.status_code >= 400:
            logger.warning(
                "%s %s returned status=%s body=%s", method, url, resp.status_code, resp.text[:500]
            )
            raise FetchError(_error_message(resp), status_code=resp.status_code)
        try:
            # 204 and other empty bodies validate as an empty object
            return model.model_validate(resp.json() if resp.content else {})
        except ValueError as e:  # bad JSON or schema mismatch
            logger.warning("%s %s returned an unexpected body: %s", method, url, e)
            raise FetchError("Unexpected response from appointment service", status_code=resp.status_code) from e


def _error_message(resp: httpx.Response) -> str:
    """Backend error message when the body carries one."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return f"Appointment service returned status {resp.status_code}"
