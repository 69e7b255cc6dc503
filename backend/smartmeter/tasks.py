import logging

from celery import Celery

from smartmeter.config import settings
from smartmeter.database import SessionLocal
from smartmeter.models.alert import Alert
from smartmeter.services.notifications import Notifier, build_gateway
from smartmeter.services.stores import SqlUserDirectory

logger = logging.getLogger(__name__)

# Celery Configuration
celery_app = Celery('smartmeter', broker=settings.celery_broker_url)
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_ignore_result=True,
)


def send_alert_notification(db, alert_id: int, device_name: str = None):
    """Load an alert and notify its owner. Returns the DeliveryResult, if any."""
    alert = db.get(Alert, alert_id)
    if alert is None:
        logger.warning("Alert %s disappeared before notification", alert_id)
        return None
    notifier = Notifier(SqlUserDirectory(db), build_gateway(settings))
    return notifier.notify(alert.owner_id, alert.device_id, alert, device_name=device_name)


@celery_app.task(name='smartmeter.tasks.notify_alert')
def notify_alert(alert_id: int, device_name: str = None):
    """Deliver the notification for a stored alert; delivery errors are logged only."""
    db = SessionLocal()
    try:
        result = send_alert_notification(db, alert_id, device_name)
        return bool(result and result.ok)
    finally:
        db.close()
