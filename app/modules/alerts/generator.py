"""Pure alert generation: snapshots in, ranked and de-duplicated alerts out.

Nothing here performs I/O. Delivery (toasts, persisted notifications) is done
by ``AlertService`` from the values returned by these functions.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional, Protocol, Sequence, TypeVar

from app.core.config import settings
from app.modules.alerts.models import (
    KIND_RANK,
    PRIORITY_RANK,
    Alert,
    AlertKind,
    AlertPriority,
    AlertRule,
    PatientSnapshot,
)
from app.modules.notifications import builders
from app.modules.notifications.schemas import NotificationCreate
from app.modules.vitals.classifier import (
    DEFAULT_UNITS,
    VitalStatus,
    VitalType,
    VitalValue,
    classify,
    classify_side,
    format_value,
)
from app.modules.vitals.models import VitalReading
from app.shared.schemas import ensure_utc, utc_now


class _Ranked(Protocol):
    priority: AlertPriority
    created_at: datetime


R = TypeVar("R", bound=_Ranked)


def default_stale_after() -> timedelta:
    return timedelta(hours=settings.STALE_VITALS_HOURS)


def generate_alerts(
    snapshots: Iterable[PatientSnapshot],
    now: Optional[datetime] = None,
    recipient_id: Optional[str] = None,
    stale_after: Optional[timedelta] = None,
) -> list[Alert]:
    """Build the full alert set for a roster.

    Calling this twice with the same snapshots yields equal alerts apart from
    ``created_at``; callers replace their previous set rather than append.
    """
    now = now or utc_now()
    stale_after = stale_after or default_stale_after()
    alerts: list[Alert] = []
    for snapshot in snapshots:
        alerts.extend(_alerts_for(snapshot, now, stale_after, recipient_id))
    return sort_alerts(dedupe_alerts(alerts))


def _alerts_for(
    snapshot: PatientSnapshot,
    now: datetime,
    stale_after: timedelta,
    recipient_id: Optional[str],
) -> list[Alert]:
    alerts: list[Alert] = []
    name = snapshot.patient_name

    if snapshot.status == VitalStatus.CRITICAL:
        alerts.append(
            _alert(
                snapshot,
                AlertRule.STATUS_CRITICAL,
                AlertKind.CRITICAL,
                AlertPriority.CRITICAL,
                "Critical Patient Alert",
                f"{name} has critical vital signs requiring immediate attention",
                now,
                recipient_id,
                action_required=True,
            )
        )
    elif snapshot.status == VitalStatus.WARNING:
        alerts.append(
            _alert(
                snapshot,
                AlertRule.STATUS_WARNING,
                AlertKind.WARNING,
                AlertPriority.HIGH,
                "Patient Monitoring Required",
                f"{name} has vital signs outside normal range",
                now,
                recipient_id,
                action_required=True,
            )
        )

    if snapshot.last_reading_at is None:
        stale_message = f"{name} has not recorded any vitals yet"
    elif now - ensure_utc(snapshot.last_reading_at) > stale_after:
        hours = int(stale_after.total_seconds() // 3600)
        stale_message = f"{name} hasn't recorded vitals in over {hours} hours"
    else:
        stale_message = None
    if stale_message:
        alerts.append(
            _alert(
                snapshot,
                AlertRule.STALE_VITALS,
                AlertKind.INFO,
                AlertPriority.LOW,
                "No Recent Vitals",
                stale_message,
                now,
                recipient_id,
            )
        )

    for vital_type, value in snapshot.latest_vitals.items():
        alert = vital_alert(
            snapshot.patient_id, name, vital_type, value, now, recipient_id=recipient_id
        )
        if alert:
            alerts.append(alert)
    return alerts


def vital_alert(
    patient_id: str,
    patient_name: str,
    vital_type: VitalType,
    value: VitalValue,
    now: datetime,
    recipient_id: Optional[str] = None,
) -> Alert | None:
    """Alert for a single vital value, or None when the value is normal."""
    status = classify(vital_type, value)
    if status == VitalStatus.NORMAL:
        return None
    side = classify_side(vital_type, value) or "high"
    label = vital_type.value.replace("_", " ").title()

    if status == VitalStatus.CRITICAL:
        kind, priority, action_required = AlertKind.CRITICAL, AlertPriority.CRITICAL, True
        title = f"Critical {side.title()} {label} Alert"
    elif vital_type == VitalType.HEART_RATE and side == "low":
        kind, priority, action_required = AlertKind.INFO, AlertPriority.LOW, False
        title = f"Low {label} Alert"
    else:
        kind, priority, action_required = AlertKind.WARNING, AlertPriority.HIGH, True
        title = f"{side.title()} {label} Alert"

    display = format_value(vital_type, value)
    return Alert(
        id=_alert_id(AlertRule.VITAL, patient_id, vital_type),
        kind=kind,
        priority=priority,
        rule=AlertRule.VITAL,
        title=title,
        message=f"{patient_name} - {label}: {display} {DEFAULT_UNITS[vital_type]} ({side.title()})",
        patient_id=patient_id,
        patient_name=patient_name,
        created_at=now,
        action_required=action_required,
        vital_type=vital_type,
        vital_value=display,
        recipient_id=recipient_id,
    )


def _alert(
    snapshot: PatientSnapshot,
    rule: AlertRule,
    kind: AlertKind,
    priority: AlertPriority,
    title: str,
    message: str,
    now: datetime,
    recipient_id: Optional[str],
    action_required: bool = False,
) -> Alert:
    return Alert(
        id=_alert_id(rule, snapshot.patient_id),
        kind=kind,
        priority=priority,
        rule=rule,
        title=title,
        message=message,
        patient_id=snapshot.patient_id,
        patient_name=snapshot.patient_name,
        created_at=now,
        action_required=action_required,
        recipient_id=recipient_id,
    )


def _alert_id(rule: AlertRule, patient_id: str, vital_type: Optional[VitalType] = None) -> str:
    parts = [rule.value, patient_id]
    if vital_type:
        parts.append(vital_type.value)
    return "-".join(parts)


def dedupe_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Keep the first alert for each (patient, rule, vital type)."""
    seen: set[tuple] = set()
    unique: list[Alert] = []
    for alert in alerts:
        if alert.dedup_key in seen:
            continue
        seen.add(alert.dedup_key)
        unique.append(alert)
    return unique


def sort_alerts(alerts: Sequence[Alert]) -> list[Alert]:
    """Kind rank (critical, warning, info) descending, then newest first; stable."""
    return sorted(
        alerts,
        key=lambda a: (-KIND_RANK.get(a.kind, 0), -ensure_utc(a.created_at).timestamp()),
    )


def sort_notifications(items: Sequence[R]) -> list[R]:
    """Priority descending, then newest first; stable."""
    return sorted(
        items,
        key=lambda n: (
            -PRIORITY_RANK.get(n.priority, 0),
            -ensure_utc(n.created_at).timestamp(),
        ),
    )


def plan_vital_notifications(
    reading: VitalReading,
    patient_name: str,
    doctor_ids: Iterable[str],
    now: Optional[datetime] = None,
) -> list[NotificationCreate]:
    """One notification per linked doctor for a critical or warning reading."""
    now = now or utc_now()
    status = classify(reading.type, reading.typed_value())
    if status == VitalStatus.NORMAL:
        return []
    build = (
        builders.critical_vital_notification
        if status == VitalStatus.CRITICAL
        else builders.warning_vital_notification
    )
    display = f"{reading.value} {reading.unit}"
    return [
        build(
            doctor_id=doctor_id,
            patient_id=reading.user_id,
            patient_name=patient_name,
            vital_type=reading.type,
            vital_value=display,
            now=now,
        )
        for doctor_id in dict.fromkeys(doctor_ids)
    ]
