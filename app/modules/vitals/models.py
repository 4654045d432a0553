from datetime import datetime, timezone
from typing import Optional

from beanie import Document
from pydantic import Field
from pymongo import IndexModel

from app.modules.vitals.classifier import (
    BloodPressure,
    VitalStatus,
    VitalType,
    VitalValue,
)


class VitalReading(Document):
    """A single patient-submitted measurement. Never updated after insert."""

    user_id: str = Field(..., min_length=1)
    type: VitalType
    value: str
    systolic: Optional[int] = None
    diastolic: Optional[int] = None
    unit: str
    notes: Optional[str] = None
    status: VitalStatus
    recorded_at: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "vital_readings"
        indexes = [
            IndexModel([("user_id", 1), ("type", 1), ("recorded_at", -1)]),
            IndexModel([("user_id", 1), ("recorded_at", -1)]),
        ]

    def typed_value(self) -> VitalValue:
        """Rebuild the classifier input from the stored fields."""
        if self.type == VitalType.BLOOD_PRESSURE:
            if self.systolic is not None and self.diastolic is not None:
                return BloodPressure(systolic=self.systolic, diastolic=self.diastolic)
            systolic, diastolic = self.value.split("/", 1)
            return BloodPressure(systolic=int(systolic), diastolic=int(diastolic))
        return float(self.value)
