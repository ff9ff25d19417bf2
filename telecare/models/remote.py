"""Response contracts of the appointment backend.

Bodies are validated here once; callers never inspect raw JSON.
"""
from datetime import date

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field, field_validator

from telecare.models.slot import TimeSlot


class AvailableDatesResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    dates: list[date] = Field(default_factory=list)
    # Absent flag means the doctor is accepting appointments
    is_accepting_appointments: bool = Field(
        default=True,
        validation_alias=AliasChoices("isAcceptingAppointments", "is_accepting_appointments"),
    )

    @field_validator("dates", mode="before")
    @classmethod
    def _null_dates(cls, v: object) -> object:
        return [] if v is None else v


class TimeSlotsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    slots: list[TimeSlot] = Field(default_factory=list)

    @field_validator("slots", mode="before")
    @classmethod
    def _null_slots(cls, v: object) -> object:
        return [] if v is None else v


class CreatedAppointment(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    appointment_id: str = Field(
        validation_alias=AliasChoices(
            AliasPath("data", "_id"),
            AliasPath("data", "id"),
            "appointmentId",
            "appointment_id",
        )
    )

    @field_validator("appointment_id", mode="before")
    @classmethod
    def _stringify(cls, v: object) -> object:
        return str(v) if isinstance(v, int) else v


class Acknowledgement(BaseModel):
    """Body of backend writes that return no resource."""

    model_config = ConfigDict(extra="ignore")

    success: bool = True
    message: str | None = None
