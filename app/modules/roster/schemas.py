from datetime import datetime
from typing import Optional

from pydantic import Field

from app.modules.alerts.models import PatientSnapshot
from app.modules.vitals.classifier import VitalStatus, VitalType, format_value
from app.shared.constants import LinkStatus
from app.shared.schemas import CamelModel


class LinkResponse(CamelModel):
    doctor_id: str
    patient_id: str
    status: LinkStatus
    assigned_at: datetime


class RosterPatient(CamelModel):
    """One row of a doctor's patient roster."""

    patient_id: str
    patient_name: str
    status: VitalStatus
    last_reading_at: Optional[datetime] = None
    latest_vitals: dict[VitalType, str] = Field(default_factory=dict)

    @classmethod
    def from_snapshot(cls, snapshot: PatientSnapshot) -> "RosterPatient":
        return cls(
            patient_id=snapshot.patient_id,
            patient_name=snapshot.patient_name,
            status=snapshot.status,
            last_reading_at=snapshot.last_reading_at,
            latest_vitals={
                vital_type: format_value(vital_type, value)
                for vital_type, value in snapshot.latest_vitals.items()
            },
        )
