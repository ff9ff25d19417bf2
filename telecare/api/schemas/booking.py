import datetime as dt

from pydantic import BaseModel, Field

from telecare.models.slot import AppointmentType, Period


class SlotInfo(BaseModel):
    index: int
    start: str  # HH:MM
    end: str  # HH:MM
    period: Period | None
    label: str  # e.g. "9:30 AM"


class OperationInfo(BaseModel):
    loading: bool = False
    error: str | None = None
    error_code: str | None = None


class DraftInfo(BaseModel):
    doctor_id: str | None = None
    date: dt.date | None = None
    slot: SlotInfo | None = None


class SessionStateResponse(BaseModel):
    session_id: str
    doctor_id: str | None = None
    is_accepting_appointments: bool | None = None
    dates: list[dt.date]
    first_bookable_date: dt.date | None = None
    slots: list[SlotInfo]
    slots_fetch_id: int | None = None
    draft: DraftInfo
    dates_status: OperationInfo
    slots_status: OperationInfo
    can_finalize: bool = False
    token_needs_refresh: bool = False


class LoadResponse(BaseModel):
    status: str  # ok | unavailable | superseded | disposed
    state: SessionStateResponse


class GroupedSlotsResponse(BaseModel):
    slots_fetch_id: int | None = None
    morning: list[SlotInfo]
    afternoon: list[SlotInfo]
    evening: list[SlotInfo]


class SelectDoctorRequest(BaseModel):
    doctor_id: str = Field(min_length=1)


class SelectDateRequest(BaseModel):
    date: dt.date


class SelectSlotRequest(BaseModel):
    fetch_id: int
    index: int = Field(ge=0)


class BookRequest(BaseModel):
    type: AppointmentType = AppointmentType.IN_PERSON
    reason: str = ""
    attached_record_ids: list[str] = Field(default_factory=list)


class BookResponse(BaseModel):
    appointment_id: str
    doctor_id: str
    date: dt.date
    start: str
    end: str
    type: AppointmentType


class StaffAppointmentRequest(BaseModel):
    patient_id: str
    date: dt.date
    start: str
    end: str | None = None  # defaults to start + slot length
    type: AppointmentType = AppointmentType.IN_PERSON
    reason: str = ""
    notes: str | None = None


class StaffAppointmentResponse(BaseModel):
    appointment_id: str
    date: dt.date
    start: str
    end: str
