from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from app.modules.alerts.models import PatientSnapshot
from app.modules.vitals.classifier import VitalType, classify, worst
from app.modules.vitals.models import VitalReading
from app.shared.schemas import ensure_utc


@dataclass
class _BoardEntry:
    patient_name: str
    readings: dict[VitalType, VitalReading] = field(default_factory=dict)


class PatientStatusBoard:
    """Latest reading per vital type for each watched patient.

    Entries are keyed by ``recorded_at``, not arrival order: a reading older
    than the one already held for its type is ignored, so retried or reordered
    deliveries never replace newer data.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _BoardEntry] = {}

    def track(self, patient_id: str, patient_name: str) -> None:
        """Watch a patient even before any reading arrives."""
        entry = self._entries.setdefault(patient_id, _BoardEntry(patient_name=patient_name))
        entry.patient_name = patient_name

    def forget(self, patient_id: str) -> None:
        self._entries.pop(patient_id, None)

    def apply(self, reading: VitalReading, patient_name: str | None = None) -> bool:
        """Fold a reading in; returns False when a newer reading of that type is held."""
        entry = self._entries.get(reading.user_id)
        if entry is None:
            entry = _BoardEntry(patient_name=patient_name or "Unknown Patient")
            self._entries[reading.user_id] = entry
        elif patient_name:
            entry.patient_name = patient_name

        current = entry.readings.get(reading.type)
        if current is not None and ensure_utc(current.recorded_at) > ensure_utc(reading.recorded_at):
            return False
        entry.readings[reading.type] = reading
        return True

    def apply_many(self, readings: Iterable[VitalReading], patient_name: str | None = None) -> None:
        for reading in readings:
            self.apply(reading, patient_name)

    def is_tracking(self, patient_id: str) -> bool:
        return patient_id in self._entries

    def patient_ids(self) -> list[str]:
        return list(self._entries)

    def snapshot(self, patient_id: str) -> PatientSnapshot | None:
        entry = self._entries.get(patient_id)
        if entry is None:
            return None
        readings = list(entry.readings.values())
        latest_vitals = {r.type: r.typed_value() for r in readings}
        return PatientSnapshot(
            patient_id=patient_id,
            patient_name=entry.patient_name,
            status=worst([classify(t, v) for t, v in latest_vitals.items()]),
            latest_vitals=latest_vitals,
            last_reading_at=max((ensure_utc(r.recorded_at) for r in readings), default=None),
        )

    def snapshots(self) -> list[PatientSnapshot]:
        return [s for s in (self.snapshot(pid) for pid in self._entries) if s is not None]
