from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from app.modules.vitals.classifier import VitalStatus, VitalType, VitalValue


class AlertKind(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    APPOINTMENT = "appointment"
    MEDICATION = "medication"
    SYSTEM = "system"


class AlertPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertRule(str, Enum):
    STATUS_CRITICAL = "status_critical"
    STATUS_WARNING = "status_warning"
    STALE_VITALS = "stale_vitals"
    VITAL = "vital"


KIND_RANK: dict[AlertKind, int] = {
    AlertKind.CRITICAL: 3,
    AlertKind.WARNING: 2,
    AlertKind.INFO: 1,
}

PRIORITY_RANK: dict[AlertPriority, int] = {
    AlertPriority.CRITICAL: 4,
    AlertPriority.HIGH: 3,
    AlertPriority.MEDIUM: 2,
    AlertPriority.LOW: 1,
}


@dataclass
class PatientSnapshot:
    """What the alert generator knows about one patient."""

    patient_id: str
    patient_name: str
    status: VitalStatus = VitalStatus.NORMAL
    latest_vitals: dict[VitalType, VitalValue] = field(default_factory=dict)
    last_reading_at: Optional[datetime] = None


@dataclass
class Alert:
    id: str
    kind: AlertKind
    priority: AlertPriority
    rule: AlertRule
    title: str
    message: str
    patient_id: str
    patient_name: str
    created_at: datetime
    action_required: bool = False
    vital_type: Optional[VitalType] = None
    vital_value: Optional[str] = None
    recipient_id: Optional[str] = None
    read: bool = False

    @property
    def dedup_key(self) -> tuple[str, AlertRule, Optional[VitalType]]:
        return (self.patient_id, self.rule, self.vital_type)
