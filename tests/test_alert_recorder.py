"""Tests for smartmeter.services.alert_recorder."""

import pytest

from smartmeter.exceptions import StorageUnavailable
from smartmeter.schemas import SpikeEvent
from smartmeter.services.alert_recorder import AlertRecorder, spike_message
from tests.conftest import FakeAlertStore


def make_event(**overrides) -> SpikeEvent:
    fields = dict(
        device_id="ESP32-001",
        owner_id=7,
        current_power=200.0,
        average_power=100.0,
        threshold=150.0,
    )
    fields.update(overrides)
    return SpikeEvent(**fields)


class TestSpikeMessage:
    def test_two_decimal_places(self):
        msg = spike_message(make_event(current_power=123.456, average_power=80.1))
        assert "123.46W" in msg
        assert "80.10W" in msg

    def test_default_ratio_reads_fifty_percent(self):
        assert spike_message(make_event()) == (
            "Power spike detected! Current power: 200.00W is 50% above average: 100.00W"
        )

    def test_custom_ratio_percentage(self):
        assert "100% above average" in spike_message(make_event(ratio=2.0))


class TestAlertRecorder:
    def test_record_persists_high_power_spike(self):
        store = FakeAlertStore()
        alert = AlertRecorder(store).record(make_event())
        assert store.alerts == [alert]
        assert alert.id == 1
        assert alert.kind == "power_spike"
        assert alert.severity == "high"
        assert alert.is_read is False
        assert alert.is_resolved is False
        assert alert.owner_id == 7

    def test_metadata_matches_event(self):
        alert = AlertRecorder(FakeAlertStore()).record(make_event())
        assert alert.to_dict()["metadata"] == {
            "current_power": 200.0,
            "average_power": 100.0,
            "threshold": 150.0,
        }
        assert alert.threshold == pytest.approx(alert.average_power * 1.5)

    def test_storage_failure_propagates(self):
        with pytest.raises(StorageUnavailable):
            AlertRecorder(FakeAlertStore(fail=True)).record(make_event())
