from datetime import datetime
from typing import List, Optional

import structlog

from app.modules.alerts.manager import reading_hub
from app.modules.vitals.classifier import (
    DEFAULT_UNITS,
    BloodPressure,
    VitalStatus,
    VitalType,
    VitalValue,
    classify,
    format_value,
    parse_value,
    worst,
)
from app.modules.vitals.models import VitalReading
from app.modules.vitals.schemas import LatestVital, LatestVitalsResponse, VitalCreate
from app.shared.schemas import ensure_utc, utc_now

log = structlog.get_logger()


def reading_value(reading: VitalReading) -> VitalValue:
    return reading.typed_value()


def reclassify(reading: VitalReading) -> VitalStatus:
    """Classify a stored reading again from its persisted value."""
    return classify(reading.type, reading_value(reading))


class VitalService:
    """Validation, persistence and lookup for patient readings."""

    async def submit_reading(
        self,
        subject_id: str,
        vital_type: VitalType,
        raw_value: object,
        systolic: object = None,
        diastolic: object = None,
        notes: str | None = None,
        recorded_at: datetime | None = None,
    ) -> VitalReading:
        """Validate, classify and store a reading, then announce it to subscribers.

        Raises InvalidReadingError before anything is written.
        """
        value = parse_value(vital_type, raw_value, systolic=systolic, diastolic=diastolic)
        status = classify(vital_type, value)
        reading = VitalReading(
            user_id=subject_id,
            type=vital_type,
            value=format_value(vital_type, value),
            systolic=value.systolic if isinstance(value, BloodPressure) else None,
            diastolic=value.diastolic if isinstance(value, BloodPressure) else None,
            unit=DEFAULT_UNITS[vital_type],
            notes=notes,
            status=status,
            recorded_at=self._normalize_timestamp(recorded_at or utc_now()),
        )
        await reading.insert()
        log.info(
            "vitals.reading_stored",
            user_id=subject_id,
            type=vital_type.value,
            status=status.value,
        )
        await reading_hub.publish(subject_id, reading)
        return reading

    async def submit(self, vital_in: VitalCreate, subject_id: str) -> VitalReading:
        bp = vital_in.blood_pressure
        return await self.submit_reading(
            subject_id,
            vital_in.type,
            vital_in.value,
            systolic=bp.systolic if bp else None,
            diastolic=bp.diastolic if bp else None,
            notes=vital_in.notes,
            recorded_at=vital_in.recorded_at,
        )

    async def get_history(
        self,
        user_id: str,
        type: Optional[VitalType] = None,
        limit: int = 50,
        skip: int = 0,
    ) -> List[VitalReading]:
        """Return readings for a user newest-first with optional type filter."""
        query = VitalReading.find(VitalReading.user_id == user_id)
        if type:
            query = query.find(VitalReading.type == type)
        readings: List[VitalReading] = (
            await query.sort("-recorded_at").skip(skip).limit(limit).to_list()
        )
        return readings

    async def get_latest(
        self, user_id: str, type: Optional[VitalType] = None
    ) -> VitalReading | None:
        query = VitalReading.find(VitalReading.user_id == user_id)
        if type:
            query = query.find(VitalReading.type == type)
        return await query.sort("-recorded_at").first_or_none()

    async def get_latest_by_type(self, user_id: str) -> dict[VitalType, VitalReading]:
        latest: dict[VitalType, VitalReading] = {}
        for vital_type in VitalType:
            reading = await self.get_latest(user_id, type=vital_type)
            if reading:
                latest[vital_type] = reading
        return latest

    async def get_latest_summary(self, user_id: str) -> LatestVitalsResponse:
        latest = await self.get_latest_by_type(user_id)
        readings = list(latest.values())
        return LatestVitalsResponse(
            status=worst([r.status for r in readings]),
            last_reading_at=max((ensure_utc(r.recorded_at) for r in readings), default=None),
            vitals=[
                LatestVital(
                    type=r.type,
                    value=r.value,
                    unit=r.unit,
                    status=r.status,
                    recorded_at=r.recorded_at,
                )
                for r in readings
            ],
        )

    @staticmethod
    def _normalize_timestamp(value: datetime) -> datetime:
        """UTC, second precision."""
        return ensure_utc(value).replace(microsecond=0)
