from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import Field

from app.modules.alerts.models import AlertKind, AlertPriority
from app.modules.vitals.classifier import VitalType
from app.shared.schemas import CamelModel, PyObjectId


class VitalAlertDetails(CamelModel):
    detail_type: Literal["vital"] = "vital"
    patient_id: str
    patient_name: str
    vital_type: VitalType
    vital_value: str


class PatientDetails(CamelModel):
    detail_type: Literal["patient"] = "patient"
    patient_id: str
    patient_name: str
    last_reading_at: Optional[datetime] = None


class AppointmentDetails(CamelModel):
    detail_type: Literal["appointment"] = "appointment"
    appointment_id: str
    appointment_at: datetime
    counterpart_name: str


class MedicationDetails(CamelModel):
    detail_type: Literal["medication"] = "medication"
    medication_id: str
    medication_name: str
    dosage: str


class SystemDetails(CamelModel):
    detail_type: Literal["system"] = "system"


NotificationDetails = Annotated[
    Union[
        VitalAlertDetails,
        PatientDetails,
        AppointmentDetails,
        MedicationDetails,
        SystemDetails,
    ],
    Field(discriminator="detail_type"),
]


class NotificationCreate(CamelModel):
    """A notification ready to be stored for one recipient."""

    recipient_id: str = Field(..., min_length=1)
    kind: AlertKind
    priority: AlertPriority
    title: str
    message: str
    details: NotificationDetails = Field(default_factory=SystemDetails)
    action_url: Optional[str] = None
    expires_at: Optional[datetime] = None


class NotificationResponse(NotificationCreate):
    id: PyObjectId
    read: bool
    created_at: datetime


class UnreadCountResponse(CamelModel):
    unread: int


class NotificationEvent(CamelModel):
    """Change event pushed to a recipient's live notification list."""

    event: Literal["created", "updated", "deleted", "cleared"]
    recipient_id: str
    notification_id: Optional[str] = None
    notification: Optional[NotificationResponse] = None
