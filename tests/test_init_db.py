"""Tests for smartmeter.init_db."""

from smartmeter.init_db import init_db
from smartmeter.models.device import Device
from smartmeter.models.user import User


def test_seeds_demo_device(db_session):
    init_db(db_session)
    device = db_session.query(Device).one()
    assert device.device_id == "ESP32-001"
    assert db_session.get(User, device.owner_id).email == "owner@example.com"


def test_seed_is_skipped_when_devices_exist(db_session, device):
    init_db(db_session)
    assert db_session.query(Device).count() == 1
