from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Period(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


_PERIODS = {p.value for p in Period}


class AppointmentType(str, Enum):
    IN_PERSON = "in-person"
    VIDEO = "video"
    PHONE = "phone"


def _clock(value: str) -> str:
    """Normalize "H:MM", "HH:MM" or "HH:MM:SS" to "HH:MM"."""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt).strftime("%H:%M")
        except ValueError:
            continue
    raise ValueError(f"invalid time {value!r}, expected HH:MM")


class TimeSlot(BaseModel):
    """Bookable interval on one day. Instances are immutable; two fetches of
    the same interval produce distinct objects."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start: str = Field(validation_alias=AliasChoices("start", "startTime", "start_time"))
    end: str = Field(validation_alias=AliasChoices("end", "endTime", "end_time"))
    period: Period | None = None
    booked: bool = Field(default=False, validation_alias=AliasChoices("booked", "isBooked", "is_booked"))

    @field_validator("start", "end", mode="before")
    @classmethod
    def _normalize_clock(cls, v: object) -> str:
        if not isinstance(v, str):
            raise ValueError("time must be a string")
        return _clock(v)

    @field_validator("period", mode="before")
    @classmethod
    def _known_period(cls, v: object) -> object:
        # blank or unrecognised labels fall back to the start-time bucket
        if isinstance(v, str):
            v = v.strip().lower()
            return v if v in _PERIODS else None
        return v

    @model_validator(mode="after")
    def _start_before_end(self) -> "TimeSlot":
        # zero-padded HH:MM strings order the same as the times they encode
        if self.start >= self.end:
            raise ValueError(f"slot start {self.start} must be before end {self.end}")
        return self
