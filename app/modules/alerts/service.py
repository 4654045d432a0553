from app.modules.alerts.engine import AlertService
from app.modules.alerts.manager import Subscription, subscribe_to_new_readings

alert_service = AlertService()


def start_alert_pipeline(service: AlertService = alert_service) -> Subscription:
    """Feed every newly stored reading into the alert pipeline."""
    return subscribe_to_new_readings(["*"], service.on_reading)
