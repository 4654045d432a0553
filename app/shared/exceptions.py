"""Error taxonomy for reading validation and alert delivery."""


class MonitoringError(Exception):
    """Base class for vitals monitoring failures."""


class InvalidReadingError(MonitoringError, ValueError):
    """A submitted reading is malformed or out of domain; nothing was stored."""


class RecipientResolutionError(MonitoringError):
    """Looking up the doctors linked to a patient failed."""

    def __init__(self, patient_id: str, reason: str) -> None:
        super().__init__(f"could not resolve recipients for patient {patient_id}: {reason}")
        self.patient_id = patient_id
        self.reason = reason


class PersistenceError(MonitoringError):
    """Writing to the notification store failed."""

    def __init__(self, recipient_id: str, reason: str) -> None:
        super().__init__(f"could not store notification for {recipient_id}: {reason}")
        self.recipient_id = recipient_id
        self.reason = reason


class SubscriptionError(MonitoringError):
    """A real-time channel is closed; the caller must subscribe again."""
