from datetime import datetime, timezone

from beanie import Document, Insert, Replace, Save, Update, before_event
from pydantic import Field
from pymongo import IndexModel

from app.shared.constants import LinkStatus


class DoctorPatientLink(Document):
    """Doctor <-> patient care relationship (soft-revocable)."""

    doctor_id: str = Field(..., min_length=1)
    patient_id: str = Field(..., min_length=1)
    status: LinkStatus = LinkStatus.ACTIVE
    assigned_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "doctor_patient_links"
        indexes = [
            IndexModel([("doctor_id", 1), ("patient_id", 1)], unique=True),
            IndexModel([("doctor_id", 1), ("status", 1)]),
            IndexModel([("patient_id", 1), ("status", 1)]),
        ]

    @before_event(Insert, Replace, Save, Update)
    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)
