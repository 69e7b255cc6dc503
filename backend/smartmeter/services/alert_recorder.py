from smartmeter.models.alert import Alert, AlertKind, AlertSeverity
from smartmeter.schemas import SpikeEvent


def spike_message(event: SpikeEvent) -> str:
    above = (event.ratio - 1) * 100
    return (
        f"Power spike detected! Current power: {event.current_power:.2f}W "
        f"is {above:.0f}% above average: {event.average_power:.2f}W"
    )


class AlertRecorder:
    def __init__(self, alert_store):
        self.alert_store = alert_store

    def record(self, event: SpikeEvent) -> Alert:
        """Persist a high severity power_spike alert for ``event``."""
        alert = Alert(
            owner_id=event.owner_id,
            device_id=event.device_id,
            message=spike_message(event),
            kind=AlertKind.POWER_SPIKE.value,
            severity=AlertSeverity.HIGH.value,
            is_read=False,
            is_resolved=False,
            current_power=event.current_power,
            average_power=event.average_power,
            threshold=event.threshold,
        )
        return self.alert_store.insert(alert)
