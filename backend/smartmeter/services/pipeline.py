"""One detection cycle per ingested reading.

    Received -> Evaluated -> NO_SPIKE
                          -> spike -> ALERT_FAILED
                                   -> alert persisted -> NOTIFICATION_ATTEMPTED

Two requests for the same device may overlap and both raise an alert for
what is one spike; detection is not serialized per device.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from smartmeter.exceptions import StorageUnavailable
from smartmeter.models.alert import Alert
from smartmeter.models.reading import EnergyReading
from smartmeter.schemas import SpikeEvent
from smartmeter.services.alert_recorder import AlertRecorder
from smartmeter.services.spike_detection import SpikeDetector

logger = logging.getLogger(__name__)


class CycleState(str, enum.Enum):
    NO_SPIKE = "no_spike"
    ALERT_FAILED = "alert_failed"
    NOTIFICATION_ATTEMPTED = "notification_attempted"


@dataclass
class CycleResult:
    state: CycleState
    event: Optional[SpikeEvent] = None
    alert: Optional[Alert] = None


class InlineNotificationDispatcher:
    """Run the notifier in-process."""

    def __init__(self, notifier):
        self.notifier = notifier

    def dispatch(self, alert: Alert, device_name: Optional[str] = None) -> None:
        self.notifier.notify(alert.owner_id, alert.device_id, alert, device_name=device_name)


class CeleryNotificationDispatcher:
    """Queue the notification on the Celery worker and return immediately."""

    def dispatch(self, alert: Alert, device_name: Optional[str] = None) -> None:
        from smartmeter.tasks import notify_alert

        try:
            notify_alert.delay(alert.id, device_name)
        except Exception as e:
            logger.error("Could not queue notification for alert %s: %s", alert.id, e)


class SpikeAlertPipeline:
    def __init__(self, detector: SpikeDetector, recorder: AlertRecorder, dispatcher):
        self.detector = detector
        self.recorder = recorder
        self.dispatcher = dispatcher

    def run(self, reading: EnergyReading, device_name: Optional[str] = None) -> CycleResult:
        """Evaluate ``reading`` against the readings stored before it. Never raises."""
        try:
            event = self.detector.evaluate(
                reading.device_id, reading.power, reading.owner_id, exclude_id=reading.id
            )
        except StorageUnavailable as e:
            logger.error("Power spike check skipped for %s: %s", reading.device_id, e)
            return CycleResult(CycleState.NO_SPIKE)

        if event is None:
            return CycleResult(CycleState.NO_SPIKE)

        try:
            alert = self.recorder.record(event)
        except StorageUnavailable as e:
            logger.error("Power spike alert for %s not saved: %s", reading.device_id, e)
            return CycleResult(CycleState.ALERT_FAILED, event=event)

        try:
            self.dispatcher.dispatch(alert, device_name=device_name)
        except Exception:
            logger.exception("Notification dispatch failed for alert %s", alert.id)
        return CycleResult(CycleState.NOTIFICATION_ATTEMPTED, event=event, alert=alert)
