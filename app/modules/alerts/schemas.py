from dataclasses import asdict
from datetime import datetime
from typing import List, Literal, Optional

from app.modules.alerts.models import Alert, AlertKind, AlertPriority, AlertRule
from app.modules.vitals.classifier import VitalType
from app.shared.schemas import CamelModel


class AlertResponse(CamelModel):
    """Alert as shown to a doctor (toast or dashboard list)."""

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
    read: bool = False

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertResponse":
        return cls.model_validate(asdict(alert))


class AlertEvent(CamelModel):
    """Ephemeral toast pushed to one recipient."""

    event: Literal["alert"] = "alert"
    recipient_id: str
    alert: AlertResponse


class AlertSetEvent(CamelModel):
    """Full regenerated alert set; replaces whatever the client showed before."""

    event: Literal["alerts"] = "alerts"
    alerts: List[AlertResponse]
