"""Shared fixtures for the Smart Energy Meter tests."""

import os

# Configure the app for tests before anything from smartmeter is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["NOTIFICATION_MODE"] = "inline"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("FIREBASE_KEY_BASE64", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from smartmeter.database import Base
from smartmeter.exceptions import StorageUnavailable
from smartmeter.models.alert import Alert
from smartmeter.models.device import Device
from smartmeter.models.reading import EnergyReading
from smartmeter.models.user import User
from smartmeter.services.notifications import DeliveryResult

# ── Builders ────────────────────────────────────────────────────────────


def make_reading(
    *,
    power: float = 100.0,
    device_id: str = "ESP32-001",
    owner_id: int = 1,
    reading_id: int = None,
    voltage: float = 230.0,
    temperature: float = 25.0,
) -> EnergyReading:
    return EnergyReading(
        id=reading_id,
        device_id=device_id,
        owner_id=owner_id,
        current=power / voltage,
        voltage=voltage,
        temperature=temperature,
        power=power,
    )


def make_alert(
    *,
    alert_id: int = 1,
    owner_id: int = 1,
    device_id: str = "ESP32-001",
    current_power: float = 200.0,
    average_power: float = 100.0,
    threshold: float = 150.0,
) -> Alert:
    return Alert(
        id=alert_id,
        owner_id=owner_id,
        device_id=device_id,
        message="Power spike detected! Current power: 200.00W is 50% above average: 100.00W",
        kind="power_spike",
        severity="high",
        is_read=False,
        is_resolved=False,
        current_power=current_power,
        average_power=average_power,
        threshold=threshold,
    )


# ── In-memory collaborators ─────────────────────────────────────────────


class FakeReadingStore:
    def __init__(self, powers=(), device_id="ESP32-001", fail=False):
        self.readings = []
        self.fail = fail
        self.calls = 0
        for power in powers:
            self.insert(make_reading(power=power, device_id=device_id))

    def recent_readings(self, device_id, limit, exclude_id=None):
        self.calls += 1
        if self.fail:
            raise StorageUnavailable()
        rows = [
            r for r in reversed(self.readings)
            if r.device_id == device_id and (exclude_id is None or r.id != exclude_id)
        ]
        return rows[:limit]

    def insert(self, reading):
        reading.id = len(self.readings) + 1
        self.readings.append(reading)
        return reading


class FakeAlertStore:
    def __init__(self, fail=False):
        self.alerts = []
        self.fail = fail

    def insert(self, alert):
        if self.fail:
            raise StorageUnavailable()
        alert.id = len(self.alerts) + 1
        self.alerts.append(alert)
        return alert


class FakeUserDirectory:
    def __init__(self, users=None, fail=False):
        self.users = dict(users or {})
        self.fail = fail

    def find_by_id(self, user_id):
        if self.fail:
            raise StorageUnavailable()
        return self.users.get(user_id)


class FakeGateway:
    def __init__(self, result=None, exc=None):
        self.sent = []
        self.result = result or DeliveryResult(ok=True, channels=["email"])
        self.exc = exc

    def send(self, msg):
        self.sent.append(msg)
        if self.exc is not None:
            raise self.exc
        return self.result


class RecordingDispatcher:
    def __init__(self, exc=None):
        self.dispatched = []
        self.exc = exc

    def dispatch(self, alert, device_name=None):
        self.dispatched.append((alert, device_name))
        if self.exc is not None:
            raise self.exc


# ── Database fixtures ───────────────────────────────────────────────────


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def owner(db_session) -> User:
    user = User(name="Ada", email="ada@example.com")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def device(db_session, owner) -> Device:
    dev = Device(device_id="ESP32-001", name="Kitchen", owner_id=owner.id)
    db_session.add(dev)
    db_session.commit()
    return dev


# ── HTTP fixtures ───────────────────────────────────────────────────────


def post_power(client, power, device_id="ESP32-001"):
    # voltage 100 keeps power == current * 100 exact
    return client.post(
        "/api/v1/energy/add",
        json={"device_id": device_id, "current": power / 100, "voltage": 100.0, "temperature": 24.5},
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(db_session, gateway):
    from fastapi.testclient import TestClient

    from smartmeter.database import get_db
    from smartmeter.main import app
    from smartmeter.routes.readings import get_dispatcher
    from smartmeter.services.notifications import Notifier
    from smartmeter.services.pipeline import InlineNotificationDispatcher
    from smartmeter.services.stores import SqlUserDirectory

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: InlineNotificationDispatcher(
        Notifier(SqlUserDirectory(db_session), gateway)
    )
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
