from datetime import datetime, timezone
from typing import Optional

from pydantic import Field, field_validator

from app.modules.vitals.classifier import VitalStatus, VitalType
from app.shared.schemas import CamelModel


class BloodPressureInput(CamelModel):
    """Structured blood pressure input; the classifier enforces the numbers."""

    systolic: int | float | str | None = None
    diastolic: int | float | str | None = None


class VitalCreate(CamelModel):
    """Inbound payload for a single reading.

    Shape only: numeric validation happens in ``classifier.parse_value`` so the
    same corrective messages reach HTTP and non-HTTP callers.
    """

    type: VitalType
    value: float | str | None = None
    blood_pressure: BloodPressureInput | None = None
    notes: Optional[str] = Field(default=None, max_length=500)
    recorded_at: Optional[datetime] = None

    @field_validator("recorded_at", mode="before")
    @classmethod
    def parse_epoch_timestamp(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value, tz=timezone.utc)
        return value


class VitalsQueryParams(CamelModel):
    """Query params for listing readings newest-first."""

    type: Optional[VitalType] = Field(default=None, description="Filter by vital type")
    limit: int = Field(default=50, ge=1, le=500, description="Maximum items to return")
    skip: int = Field(default=0, ge=0, description="Items to skip for pagination")


class LatestVital(CamelModel):
    type: VitalType
    value: str
    unit: str
    status: VitalStatus
    recorded_at: datetime


class LatestVitalsResponse(CamelModel):
    """Newest reading per vital type plus the worst of their statuses."""

    status: VitalStatus
    last_reading_at: Optional[datetime] = None
    vitals: list[LatestVital] = Field(default_factory=list)
