import datetime as dt

from pydantic import BaseModel

from telecare.services.availability_service import DEFAULT_WORK_END, DEFAULT_WORK_START


class AvailabilitySlot(BaseModel):
    start: str
    end: str
    booked: bool = False
    offered: bool = True


class DayTemplateResponse(BaseModel):
    date: dt.date
    work_start: str
    work_end: str
    slots: list[AvailabilitySlot]


class SaveAvailabilityRequest(BaseModel):
    work_start: str = DEFAULT_WORK_START
    work_end: str = DEFAULT_WORK_END
    selected_starts: list[str] | None = None  # None offers every working-hours slot
    repeat_weeks: int | None = None  # 1, 2, 4, 8 or 12


class SaveAvailabilityResponse(BaseModel):
    dates: list[dt.date]
    slots: list[AvailabilitySlot]
    message: str | None = None


class AvailabilityStatusRequest(BaseModel):
    is_accepting_appointments: bool


class AvailabilityStatusResponse(BaseModel):
    is_accepting_appointments: bool
    message: str | None = None
