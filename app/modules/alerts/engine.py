from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional

import structlog

from app.modules.alerts.context import MonitoringContext, default_context
from app.modules.alerts.generator import plan_vital_notifications, vital_alert
from app.modules.alerts.models import Alert
from app.modules.notifications.models import Notification
from app.modules.vitals.classifier import VitalStatus
from app.modules.vitals.models import VitalReading
from app.modules.vitals.service import reading_value, reclassify
from app.shared.exceptions import MonitoringError, PersistenceError, RecipientResolutionError

log = structlog.get_logger()


@dataclass
class DeliveryReport:
    """Outcome of fanning one reading out to the patient's doctors."""

    patient_id: str
    status: VitalStatus
    alert: Optional[Alert] = None
    recipients: List[str] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)
    errors: List[MonitoringError] = field(default_factory=list)
    used_fallback_recipients: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise self.errors[0]


class AlertService:
    """Turns stored readings into toasts and persisted notifications for linked doctors."""

    def __init__(self, context: Optional[MonitoringContext] = None) -> None:
        self._context = context
        self._last_known_recipients: dict[str, List[str]] = {}

    @property
    def context(self) -> MonitoringContext:
        if self._context is None:
            self._context = default_context()
        return self._context

    async def process_reading(
        self, reading: VitalReading, context: Optional[MonitoringContext] = None
    ) -> DeliveryReport:
        """Deliver alerts for one reading.

        Normal readings produce an empty report. When recipient lookup fails the
        last doctors known for the patient still get the toast, but nothing is
        persisted. Each failed notification write is recorded in the report and
        does not stop the remaining recipients.
        """
        context = context or self.context
        patient_id = reading.user_id
        report = DeliveryReport(patient_id=patient_id, status=reclassify(reading))
        if report.status == VitalStatus.NORMAL:
            return report

        now = context.clock()
        patient_name = await context.directory.fetch_display_name(patient_id)
        report.alert = vital_alert(patient_id, patient_name, reading.type, reading_value(reading), now)

        try:
            doctor_ids = list(dict.fromkeys(await context.directory.fetch_active_links(patient_id)))
            if doctor_ids:
                self._last_known_recipients[patient_id] = doctor_ids
            else:
                self._last_known_recipients.pop(patient_id, None)
        except RecipientResolutionError as exc:
            log.warning("alerts.recipients_unresolved", patient_id=patient_id, error=exc.reason)
            report.errors.append(exc)
            report.used_fallback_recipients = True
            doctor_ids = self._last_known_recipients.get(patient_id, [])
        report.recipients = doctor_ids

        for doctor_id in doctor_ids:
            await context.channel.send_alert(doctor_id, replace(report.alert, recipient_id=doctor_id))

        if not report.used_fallback_recipients:
            planned = plan_vital_notifications(reading, patient_name, doctor_ids, now=now)
            for data in planned:
                try:
                    report.notifications.append(await context.store.persist(data))
                except PersistenceError as exc:
                    log.error(
                        "alerts.delivery_failed",
                        patient_id=patient_id,
                        recipient_id=exc.recipient_id,
                        error=exc.reason,
                    )
                    report.errors.append(exc)

        log.info(
            "alerts.reading_processed",
            patient_id=patient_id,
            status=report.status.value,
            recipients=len(doctor_ids),
            stored=len(report.notifications),
            failed=len(report.errors),
        )
        return report

    async def on_reading(self, reading: VitalReading) -> None:
        """Reading hub callback; failures are already logged per recipient."""
        await self.process_reading(reading)
