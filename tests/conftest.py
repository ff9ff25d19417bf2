import asyncio
from datetime import UTC, date, datetime, timedelta

import pytest
from jose import jwt

from telecare.models.remote import AvailableDatesResponse, TimeSlotsResponse
from telecare.models.slot import TimeSlot
from telecare.services.coordinator import SlotBookingCoordinator

TODAY = date(2026, 10, 19)
TOMORROW = TODAY + timedelta(days=1)
NEXT_WEEK = TODAY + timedelta(days=7)


def make_token(sub: str = "patient-1", expires_in: timedelta = timedelta(hours=1)) -> str:
    exp = datetime.now(UTC) + expires_in
    return jwt.encode({"sub": sub, "exp": int(exp.timestamp())}, "test-secret", algorithm="HS256")


def slots_response(*pairs: tuple[str, str]) -> TimeSlotsResponse:
    return TimeSlotsResponse(slots=[TimeSlot(start=s, end=e) for s, e in pairs])


class FakeSource:
    """Availability source whose answers and answer timing tests control."""

    def __init__(self) -> None:
        self.dates: dict[str, AvailableDatesResponse | Exception] = {}
        self.slots: dict[tuple[str, date], TimeSlotsResponse | Exception] = {}
        self.dates_calls: list[str] = []
        self.slot_calls: list[tuple[str, date]] = []
        self._gates: dict[tuple, asyncio.Future] = {}

    def hold(self, *key) -> asyncio.Future:
        """Make the call for `key` wait until the returned future is resolved."""
        gate = asyncio.get_running_loop().create_future()
        self._gates[key] = gate
        return gate

    async def _wait(self, key: tuple) -> None:
        gate = self._gates.pop(key, None)
        if gate is not None:
            await gate

    async def get_available_dates(self, doctor_id: str) -> AvailableDatesResponse:
        self.dates_calls.append(doctor_id)
        await self._wait(("dates", doctor_id))
        answer = self.dates.get(doctor_id, AvailableDatesResponse())
        if isinstance(answer, Exception):
            raise answer
        # a fresh parse per call, like the real client
        return answer.model_copy(deep=True)

    async def get_available_time_slots(self, doctor_id: str, day: date) -> TimeSlotsResponse:
        self.slot_calls.append((doctor_id, day))
        await self._wait(("slots", doctor_id, day))
        answer = self.slots.get((doctor_id, day), TimeSlotsResponse())
        if isinstance(answer, Exception):
            raise answer
        # a fresh parse per call, like the real client
        return answer.model_copy(deep=True)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def coordinator(source: FakeSource) -> SlotBookingCoordinator:
    return SlotBookingCoordinator(source, today=lambda: TODAY)
