import datetime as dt

from pydantic import BaseModel, ConfigDict

from telecare.models.slot import AppointmentType, TimeSlot


class BookingDraft(BaseModel):
    """Selection in progress; any field may still be missing."""

    model_config = ConfigDict(frozen=True)

    doctor_id: str | None = None
    date: dt.date | None = None
    slot: TimeSlot | None = None

    @property
    def complete(self) -> bool:
        return self.doctor_id is not None and self.date is not None and self.slot is not None


class SelectedBooking(BaseModel):
    """Submit-ready booking. Only built once doctor, date and slot are chosen."""

    model_config = ConfigDict(frozen=True)

    doctor_id: str
    date: dt.date
    slot: TimeSlot
    type: AppointmentType
    reason: str
    attached_record_ids: tuple[str, ...] = ()

    def to_payload(self) -> dict:
        """Request body for the backend's appointment creation call."""
        return {
            "doctorId": self.doctor_id,
            "date": self.date.isoformat(),
            "time": {"start": self.slot.start, "end": self.slot.end},
            "type": self.type.value,
            "reason": self.reason,
            "attachedRecords": list(self.attached_record_ids),
        }


class StaffBooking(BaseModel):
    """Appointment entered by clinic staff on behalf of a patient."""

    model_config = ConfigDict(frozen=True)

    patient_id: str
    date: dt.date
    start: str
    end: str
    type: AppointmentType = AppointmentType.IN_PERSON
    reason: str
    notes: str | None = None

    def to_payload(self) -> dict:
        payload = {
            "patientId": self.patient_id,
            "date": self.date.isoformat(),
            "time": {"start": self.start, "end": self.end},
            "type": self.type.value,
            "reason": self.reason,
        }
        if self.notes:
            payload["notes"] = self.notes
        return payload
