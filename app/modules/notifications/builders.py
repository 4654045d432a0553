"""Message templates for every persisted notification the service sends."""

from datetime import datetime, timedelta
from typing import Optional

from app.modules.alerts.models import AlertKind, AlertPriority
from app.modules.notifications.schemas import (
    AppointmentDetails,
    MedicationDetails,
    NotificationCreate,
    PatientDetails,
    SystemDetails,
    VitalAlertDetails,
)
from app.modules.vitals.classifier import VitalType

CRITICAL_VITAL_TTL = timedelta(hours=24)
WARNING_VITAL_TTL = timedelta(hours=48)
MEDICATION_REMINDER_TTL = timedelta(hours=4)

MISSED_VITALS_TITLE = "Missing Vital Signs"


def _vital_label(vital_type: VitalType) -> str:
    return vital_type.value.replace("_", " ")


def critical_vital_notification(
    doctor_id: str,
    patient_id: str,
    patient_name: str,
    vital_type: VitalType,
    vital_value: str,
    now: datetime,
) -> NotificationCreate:
    return NotificationCreate(
        recipient_id=doctor_id,
        kind=AlertKind.CRITICAL,
        priority=AlertPriority.CRITICAL,
        title=f"Critical Alert: {patient_name}",
        message=(
            f"{patient_name} has recorded a critical {_vital_label(vital_type)} reading of "
            f"{vital_value}. Immediate attention may be required."
        ),
        details=VitalAlertDetails(
            patient_id=patient_id,
            patient_name=patient_name,
            vital_type=vital_type,
            vital_value=vital_value,
        ),
        action_url=f"/patients/{patient_id}",
        expires_at=now + CRITICAL_VITAL_TTL,
    )


def warning_vital_notification(
    doctor_id: str,
    patient_id: str,
    patient_name: str,
    vital_type: VitalType,
    vital_value: str,
    now: datetime,
) -> NotificationCreate:
    return NotificationCreate(
        recipient_id=doctor_id,
        kind=AlertKind.WARNING,
        priority=AlertPriority.HIGH,
        title=f"Warning: {patient_name}",
        message=(
            f"{patient_name} has recorded a concerning {_vital_label(vital_type)} reading of "
            f"{vital_value}. Please review when convenient."
        ),
        details=VitalAlertDetails(
            patient_id=patient_id,
            patient_name=patient_name,
            vital_type=vital_type,
            vital_value=vital_value,
        ),
        action_url=f"/patients/{patient_id}",
        expires_at=now + WARNING_VITAL_TTL,
    )


def missed_vitals_notification(
    doctor_id: str,
    patient_id: str,
    patient_name: str,
    last_reading_at: Optional[datetime],
    hours: int,
) -> NotificationCreate:
    return NotificationCreate(
        recipient_id=doctor_id,
        kind=AlertKind.WARNING,
        priority=AlertPriority.MEDIUM,
        title=MISSED_VITALS_TITLE,
        message=(
            f"{patient_name} hasn't recorded vital signs in over {hours} hours. "
            "You may want to check in with them."
        ),
        details=PatientDetails(
            patient_id=patient_id,
            patient_name=patient_name,
            last_reading_at=last_reading_at,
        ),
        action_url="/patients",
    )


def appointment_reminder_notification(
    patient_id: str,
    appointment_id: str,
    doctor_name: str,
    appointment_at: datetime,
) -> NotificationCreate:
    when = appointment_at.strftime("%A, %B %d, %Y at %H:%M UTC")
    return NotificationCreate(
        recipient_id=patient_id,
        kind=AlertKind.APPOINTMENT,
        priority=AlertPriority.MEDIUM,
        title="Appointment Reminder",
        message=(
            f"You have an upcoming appointment with Dr. {doctor_name} on {when}. "
            "Please arrive 15 minutes early."
        ),
        details=AppointmentDetails(
            appointment_id=appointment_id,
            appointment_at=appointment_at,
            counterpart_name=doctor_name,
        ),
        action_url="/appointments",
        expires_at=appointment_at,
    )


def appointment_confirmation_notification(
    doctor_id: str,
    appointment_id: str,
    patient_name: str,
    appointment_at: datetime,
) -> NotificationCreate:
    when = appointment_at.strftime("%A, %B %d, %Y at %H:%M UTC")
    return NotificationCreate(
        recipient_id=doctor_id,
        kind=AlertKind.APPOINTMENT,
        priority=AlertPriority.MEDIUM,
        title="New Appointment Scheduled",
        message=f"{patient_name} has scheduled an appointment for {when}.",
        details=AppointmentDetails(
            appointment_id=appointment_id,
            appointment_at=appointment_at,
            counterpart_name=patient_name,
        ),
        action_url="/appointments",
    )


def medication_reminder_notification(
    patient_id: str,
    medication_id: str,
    medication_name: str,
    dosage: str,
    now: datetime,
) -> NotificationCreate:
    return NotificationCreate(
        recipient_id=patient_id,
        kind=AlertKind.MEDICATION,
        priority=AlertPriority.MEDIUM,
        title="Medication Reminder",
        message=(
            f"Time to take your {medication_name} ({dosage}). "
            "Don't forget to log it in your dashboard!"
        ),
        details=MedicationDetails(
            medication_id=medication_id,
            medication_name=medication_name,
            dosage=dosage,
        ),
        action_url="/medications",
        expires_at=now + MEDICATION_REMINDER_TTL,
    )


def new_patient_notification(
    doctor_id: str, patient_id: str, patient_name: str
) -> NotificationCreate:
    return NotificationCreate(
        recipient_id=doctor_id,
        kind=AlertKind.INFO,
        priority=AlertPriority.LOW,
        title="New Patient Added",
        message=(
            f"{patient_name} has been added to your patient list and is now sharing "
            "their health data with you."
        ),
        details=PatientDetails(patient_id=patient_id, patient_name=patient_name),
        action_url="/patients",
    )


def welcome_notification(user_id: str, name: str, is_doctor: bool) -> NotificationCreate:
    if is_doctor:
        title = f"Welcome to CareSync, Dr. {name}!"
        message = (
            "Your doctor dashboard is ready. You can now monitor your patients, review "
            "vital signs, and manage appointments all in one place."
        )
    else:
        title = f"Welcome to CareSync, {name}!"
        message = (
            "Your patient portal is ready. Start tracking your vital signs and stay "
            "connected with your healthcare team."
        )
    return NotificationCreate(
        recipient_id=user_id,
        kind=AlertKind.SYSTEM,
        priority=AlertPriority.LOW,
        title=title,
        message=message,
        details=SystemDetails(),
        action_url="/doctor-dashboard" if is_doctor else "/patient-dashboard",
    )
