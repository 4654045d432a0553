from datetime import datetime, timedelta
from typing import List, Optional

import structlog

from app.core.config import settings
from app.modules.notifications import builders
from app.modules.notifications.models import Notification
from app.modules.notifications.schemas import NotificationCreate, PatientDetails
from app.modules.notifications.service import NotificationService
from app.modules.reminders.models import (
    AppointmentReminderPayload,
    MedicationReminderPayload,
    ReminderKind,
    ReminderStatus,
    ScheduledReminder,
)
from app.modules.roster.service import RosterService
from app.modules.vitals.service import VitalService
from app.shared.exceptions import PersistenceError
from app.shared.schemas import ensure_utc, utc_now

log = structlog.get_logger()


class ReminderService:
    """Durable reminder jobs plus the periodic missed-vitals sweep.

    Jobs are delivered by whichever process calls ``run_due`` (see
    ``scripts/run_reminders.py``). A job is marked sent only after its
    notification is stored, so a crash between the two repeats the delivery.
    """

    def __init__(
        self,
        notifications: Optional[NotificationService] = None,
        roster: Optional[RosterService] = None,
        vitals: Optional[VitalService] = None,
    ) -> None:
        self.notifications = notifications or NotificationService()
        self.vitals = vitals or VitalService()
        self.roster = roster or RosterService(vitals=self.vitals, notifications=self.notifications)

    async def schedule_appointment_reminder(
        self,
        patient_id: str,
        appointment_id: str,
        doctor_name: str,
        appointment_at: datetime,
        now: Optional[datetime] = None,
    ) -> ScheduledReminder | None:
        """Due REMINDER_LEAD_HOURS before the appointment; None if that moment has passed."""
        now = now or utc_now()
        appointment_at = ensure_utc(appointment_at)
        due_at = appointment_at - timedelta(hours=settings.REMINDER_LEAD_HOURS)
        if due_at <= now:
            log.info(
                "reminders.appointment_too_late",
                patient_id=patient_id,
                appointment_id=appointment_id,
            )
            return None
        reminder = ScheduledReminder(
            kind=ReminderKind.APPOINTMENT,
            recipient_id=patient_id,
            due_at=due_at,
            payload=AppointmentReminderPayload(
                appointment_id=appointment_id,
                doctor_name=doctor_name,
                appointment_at=appointment_at,
            ),
        )
        await reminder.insert()
        log.info("reminders.scheduled", kind=reminder.kind.value, recipient_id=patient_id)
        return reminder

    async def schedule_medication_reminder(
        self,
        patient_id: str,
        medication_id: str,
        medication_name: str,
        dosage: str,
        due_at: datetime,
    ) -> ScheduledReminder:
        reminder = ScheduledReminder(
            kind=ReminderKind.MEDICATION,
            recipient_id=patient_id,
            due_at=ensure_utc(due_at),
            payload=MedicationReminderPayload(
                medication_id=medication_id,
                medication_name=medication_name,
                dosage=dosage,
            ),
        )
        await reminder.insert()
        log.info("reminders.scheduled", kind=reminder.kind.value, recipient_id=patient_id)
        return reminder

    async def run_due(self, now: Optional[datetime] = None) -> int:
        """Deliver every pending reminder that is due; returns how many were sent."""
        now = now or utc_now()
        due: List[ScheduledReminder] = (
            await ScheduledReminder.find(
                ScheduledReminder.status == ReminderStatus.PENDING,
                ScheduledReminder.due_at <= now,
            )
            .sort("due_at")
            .to_list()
        )
        sent = 0
        for reminder in due:
            reminder.attempts += 1
            try:
                await self.notifications.persist(self._build(reminder, now))
            except PersistenceError as exc:
                reminder.status = ReminderStatus.FAILED
                reminder.last_error = exc.reason
                log.error(
                    "reminders.delivery_failed",
                    reminder_id=str(reminder.id),
                    recipient_id=reminder.recipient_id,
                    error=exc.reason,
                )
            else:
                reminder.status = ReminderStatus.SENT
                reminder.sent_at = now
                sent += 1
            await reminder.save()
        if due:
            log.info("reminders.run_due", due=len(due), sent=sent)
        return sent

    async def sweep_missed_vitals(self, now: Optional[datetime] = None) -> int:
        """Warn doctors about linked patients with no reading inside the stale window.

        A doctor is told at most once per patient per silent period.
        """
        now = now or utc_now()
        window = timedelta(hours=settings.STALE_VITALS_HOURS)
        notified = 0
        for link in await self.roster.list_active_links():
            latest = await self.vitals.get_latest(link.patient_id)
            last_reading_at = ensure_utc(latest.recorded_at) if latest else None
            if last_reading_at and now - last_reading_at <= window:
                continue
            silent_since = last_reading_at or ensure_utc(link.assigned_at)
            if await self._already_warned(link.doctor_id, link.patient_id, silent_since):
                continue
            patient_name = await self.roster.fetch_display_name(link.patient_id)
            try:
                await self.notifications.persist(
                    builders.missed_vitals_notification(
                        link.doctor_id,
                        link.patient_id,
                        patient_name,
                        last_reading_at,
                        settings.STALE_VITALS_HOURS,
                    )
                )
            except PersistenceError as exc:
                log.error(
                    "reminders.missed_vitals_failed",
                    doctor_id=link.doctor_id,
                    patient_id=link.patient_id,
                    error=exc.reason,
                )
                continue
            notified += 1
        return notified

    async def _already_warned(self, doctor_id: str, patient_id: str, since: datetime) -> bool:
        earlier: List[Notification] = await Notification.find(
            Notification.recipient_id == doctor_id,
            Notification.title == builders.MISSED_VITALS_TITLE,
        ).to_list()
        return any(
            isinstance(n.details, PatientDetails)
            and n.details.patient_id == patient_id
            and ensure_utc(n.created_at) >= since
            for n in earlier
        )

    @staticmethod
    def _build(reminder: ScheduledReminder, now: datetime) -> NotificationCreate:
        payload = reminder.payload
        if isinstance(payload, AppointmentReminderPayload):
            return builders.appointment_reminder_notification(
                reminder.recipient_id,
                payload.appointment_id,
                payload.doctor_name,
                ensure_utc(payload.appointment_at),
            )
        return builders.medication_reminder_notification(
            reminder.recipient_id,
            payload.medication_id,
            payload.medication_name,
            payload.dosage,
            now,
        )
