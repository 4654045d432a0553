from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from beanie import Document
from pydantic import Field
from pymongo import IndexModel

from app.shared.schemas import CamelModel


class ReminderKind(str, Enum):
    APPOINTMENT = "appointment"
    MEDICATION = "medication"


class ReminderStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class AppointmentReminderPayload(CamelModel):
    reminder_type: Literal["appointment"] = "appointment"
    appointment_id: str
    doctor_name: str
    appointment_at: datetime


class MedicationReminderPayload(CamelModel):
    reminder_type: Literal["medication"] = "medication"
    medication_id: str
    medication_name: str
    dosage: str


ReminderPayload = Annotated[
    Union[AppointmentReminderPayload, MedicationReminderPayload],
    Field(discriminator="reminder_type"),
]


class ScheduledReminder(Document):
    """A notification to deliver at `due_at`; survives restarts."""

    kind: ReminderKind
    recipient_id: str = Field(..., min_length=1)
    due_at: datetime
    payload: ReminderPayload
    status: ReminderStatus = ReminderStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "scheduled_reminders"
        indexes = [
            IndexModel([("status", 1), ("due_at", 1)]),
            IndexModel([("recipient_id", 1), ("due_at", -1)]),
        ]
