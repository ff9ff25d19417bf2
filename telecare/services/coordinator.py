"""Appointment slot selection for one booking flow.

Turns a doctor's remote availability into a local selection and produces a
submit-ready booking. Responses are applied last-request-wins: each load is
tagged with a per-kind sequence number and a response whose number is no
longer the latest is dropped, whatever order responses arrive in.
"""
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Generic, Protocol, TypeVar
from zoneinfo import ZoneInfo

from telecare.core.config import settings
from telecare.core.errors import (
    CoordinatorDisposedError,
    FetchError,
    IncompleteSelectionError,
    PastDateError,
    StaleSelectionError,
    ValidationError,
)
from telecare.models.booking import BookingDraft, SelectedBooking
from telecare.models.remote import AvailableDatesResponse, TimeSlotsResponse
from telecare.models.slot import AppointmentType, Period, TimeSlot
from telecare.services.events import StateEvents, Subscription
from telecare.services.slot_service import group_slots_by_period, normalize_slots

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AvailabilitySource(Protocol):
    async def get_available_dates(self, doctor_id: str) -> AvailableDatesResponse:
        ...

    async def get_available_time_slots(self, doctor_id: str, day: date) -> TimeSlotsResponse:
        ...


class LoadStatus(str, Enum):
    OK = "ok"
    UNAVAILABLE = "unavailable"
    SUPERSEDED = "superseded"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class LoadResult(Generic[T]):
    status: LoadStatus
    items: tuple[T, ...] = ()
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.status is LoadStatus.OK

    @property
    def applied(self) -> bool:
        """Whether this result (success or failure) is what the state now shows."""
        return self.status in (LoadStatus.OK, LoadStatus.UNAVAILABLE)


@dataclass(frozen=True)
class OperationStatus:
    loading: bool = False
    error: FetchError | None = None


@dataclass(frozen=True)
class CoordinatorState:
    doctor_id: str | None = None
    is_accepting_appointments: bool | None = None
    dates: tuple[date, ...] = ()
    slots: tuple[TimeSlot, ...] = ()
    slots_fetch_id: int | None = None
    draft: BookingDraft = field(default_factory=BookingDraft)
    dates_status: OperationStatus = field(default_factory=OperationStatus)
    slots_status: OperationStatus = field(default_factory=OperationStatus)
    disposed: bool = False


def local_today() -> date:
    return datetime.now(ZoneInfo(settings.timezone)).date()


class SlotBookingCoordinator:
    def __init__(
        self,
        source: AvailabilitySource,
        *,
        today: Callable[[], date] | None = None,
        events: StateEvents[CoordinatorState] | None = None,
    ) -> None:
        self._source = source
        self._today = today or local_today
        self.events: StateEvents[CoordinatorState] = events or StateEvents()
        self._dates_seq = 0
        self._slots_seq = 0
        self._doctor_id: str | None = None
        self._accepting: bool | None = None
        self._dates: tuple[date, ...] = ()
        self._slots: tuple[TimeSlot, ...] = ()
        self._slots_fetch_id: int | None = None
        self._selected_date: date | None = None
        self._selected_slot: TimeSlot | None = None
        self._dates_status = OperationStatus()
        self._slots_status = OperationStatus()
        self._disposed = False

    async def __aenter__(self) -> "SlotBookingCoordinator":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.dispose()

    # --- state ---

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def draft(self) -> BookingDraft:
        return BookingDraft(
            doctor_id=self._doctor_id,
            date=self._selected_date,
            slot=self._selected_slot,
        )

    @property
    def state(self) -> CoordinatorState:
        return CoordinatorState(
            doctor_id=self._doctor_id,
            is_accepting_appointments=self._accepting,
            dates=self._dates,
            slots=self._slots,
            slots_fetch_id=self._slots_fetch_id,
            draft=self.draft,
            dates_status=self._dates_status,
            slots_status=self._slots_status,
            disposed=self._disposed,
        )

    def subscribe(self, callback: Callable[[CoordinatorState], None]) -> Subscription:
        self._ensure_open()
        return self.events.subscribe(callback)

    def group_slots(self) -> dict[Period, list[TimeSlot]]:
        return group_slots_by_period(self._slots)

    def first_bookable_date(self) -> date | None:
        """Earliest loaded date that is not in the past."""
        today = self._today()
        return next((d for d in self._dates if d >= today), None)

    # --- operations ---

    async def load_available_dates(self, doctor_id: str) -> LoadResult[date]:
        self._ensure_open()
        doctor_id = _require_id(doctor_id, "doctor_id")
        self._dates_seq += 1
        seq = self._dates_seq
        # a slot load for the previous doctor must not land afterwards
        self._slots_seq += 1
        self._doctor_id = doctor_id
        self._accepting = None
        self._dates = ()
        self._clear_slots()
        self._selected_date = None
        self._dates_status = OperationStatus(loading=True)
        self._publish()

        try:
            response = await self._source.get_available_dates(doctor_id)
        except FetchError as e:
            if not self._is_current(seq, self._dates_seq, "dates", doctor_id):
                return self._dropped()
            logger.warning("Available dates for doctor %s unavailable: %s", doctor_id, e.detail)
            self._dates_status = OperationStatus(error=e)
            self._publish()
            return LoadResult(LoadStatus.UNAVAILABLE, error=e)
        except BaseException:
            # unexpected failure or cancellation: the load is over either way
            if seq == self._dates_seq and not self._disposed:
                self._dates_status = OperationStatus()
                self._publish()
            raise

        if not self._is_current(seq, self._dates_seq, "dates", doctor_id):
            return self._dropped()
        self._accepting = response.is_accepting_appointments
        # not accepting wins over whatever dates were returned
        self._dates = tuple(sorted(set(response.dates))) if self._accepting else ()
        self._dates_status = OperationStatus()
        self._publish()
        logger.debug("Loaded %d available date(s) for doctor %s", len(self._dates), doctor_id)
        return LoadResult(LoadStatus.OK, self._dates)

    async def load_time_slots(self, doctor_id: str, day: date) -> LoadResult[TimeSlot]:
        self._ensure_open()
        doctor_id = _require_id(doctor_id, "doctor_id")
        if day < self._today():
            raise PastDateError(f"{day.isoformat()} is in the past")
        if doctor_id != self._doctor_id:
            self._dates_seq += 1
            self._doctor_id = doctor_id
            self._accepting = None
            self._dates = ()
            self._dates_status = OperationStatus()
        self._slots_seq += 1
        seq = self._slots_seq
        self._selected_date = day
        self._clear_slots()
        self._slots_status = OperationStatus(loading=True)
        self._publish()

        try:
            response = await self._source.get_available_time_slots(doctor_id, day)
        except FetchError as e:
            if not self._is_current(seq, self._slots_seq, "slots", doctor_id):
                return self._dropped()
            logger.warning("Time slots for doctor %s on %s unavailable: %s", doctor_id, day, e.detail)
            self._slots_status = OperationStatus(error=e)
            self._publish()
            return LoadResult(LoadStatus.UNAVAILABLE, error=e)
        except BaseException:
            if seq == self._slots_seq and not self._disposed:
                self._slots_status = OperationStatus()
                self._publish()
            raise

        if not self._is_current(seq, self._slots_seq, "slots", doctor_id):
            return self._dropped()
        self._slots = tuple(normalize_slots(response.slots))
        self._slots_fetch_id = seq
        self._slots_status = OperationStatus()
        self._publish()
        logger.debug("Loaded %d slot(s) for doctor %s on %s", len(self._slots), doctor_id, day)
        return LoadResult(LoadStatus.OK, self._slots)

    def select_slot(self, slot: TimeSlot) -> BookingDraft:
        """Choose one of the slots of the latest fetch (by identity, not value)."""
        self._ensure_open()
        if not _contains(self._slots, slot):
            raise StaleSelectionError()
        self._selected_slot = slot
        self._publish()
        return self.draft

    def select_slot_at(self, fetch_id: int, index: int) -> BookingDraft:
        """Choose a slot by its position in the fetch identified by `fetch_id`."""
        self._ensure_open()
        if fetch_id != self._slots_fetch_id or not 0 <= index < len(self._slots):
            raise StaleSelectionError()
        return self.select_slot(self._slots[index])

    def finalize_booking(
        self,
        type: AppointmentType | str,
        reason: str,
        attached_record_ids: Iterable[str] = (),
    ) -> SelectedBooking:
        self._ensure_open()
        if self._doctor_id is None or self._selected_date is None or self._selected_slot is None:
            raise IncompleteSelectionError()
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("reason is required")
        try:
            appointment_type = AppointmentType(type)
        except ValueError:
            raise ValidationError(f"unknown appointment type {type!r}") from None
        if self._selected_date not in self._dates:
            raise StaleSelectionError(f"{self._selected_date.isoformat()} is no longer available")
        if not _contains(self._slots, self._selected_slot):
            raise StaleSelectionError()
        return SelectedBooking(
            doctor_id=self._doctor_id,
            date=self._selected_date,
            slot=self._selected_slot,
            type=appointment_type,
            reason=reason,
            attached_record_ids=tuple(r for r in attached_record_ids if r),
        )

    def mark_booked(self, booking: SelectedBooking) -> None:
        """Record that `booking` was accepted by the backend.

        Its slot leaves the current slot set and the selection is cleared, so
        the same slot cannot be finalized twice. The slot set gets a new fetch
        id because positions shift.
        """
        self._ensure_open()
        if self._selected_slot is booking.slot:
            self._selected_slot = None
        if _contains(self._slots, booking.slot):
            self._slots_seq += 1
            self._slots = tuple(s for s in self._slots if s is not booking.slot)
            self._slots_fetch_id = self._slots_seq
        self._publish()
        logger.debug("Slot %s on %s marked booked", booking.slot.start, booking.date)

    def dispose(self) -> None:
        """Drop in-flight results on arrival and stop notifying listeners."""
        if self._disposed:
            return
        self._disposed = True
        self._dates_seq += 1
        self._slots_seq += 1
        self.events.close()
        logger.debug("Coordinator for doctor %s disposed", self._doctor_id)

    # --- helpers ---

    def _ensure_open(self) -> None:
        if self._disposed:
            raise CoordinatorDisposedError()

    def _clear_slots(self) -> None:
        self._slots = ()
        self._slots_fetch_id = None
        self._selected_slot = None
        self._slots_status = OperationStatus()

    def _is_current(self, seq: int, latest: int, kind: str, doctor_id: str) -> bool:
        if self._disposed:
            logger.debug("Dropping %s response for doctor %s: coordinator disposed", kind, doctor_id)
            return False
        if seq != latest:
            logger.debug("Dropping stale %s response #%d for doctor %s (latest #%d)", kind, seq, doctor_id, latest)
            return False
        return True

    def _dropped(self) -> LoadResult:
        return LoadResult(LoadStatus.DISPOSED if self._disposed else LoadStatus.SUPERSEDED)

    def _publish(self) -> None:
        self.events.publish(self.state)


def _require_id(value: str, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


def _contains(slots: Iterable[TimeSlot], slot: TimeSlot) -> bool:
    return any(s is slot for s in slots)
