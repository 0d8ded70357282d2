import functools
import os
import tempfile
from decimal import Decimal

os.environ.setdefault("FUELQUOTA_SCHEDULER_ENABLED", "false")
os.environ.setdefault(
    "FUELQUOTA_DATABASE_URL",
    f"sqlite+pysqlite:///{os.path.join(tempfile.gettempdir(), 'fuelquota-app.db')}",
)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fuelquota.api import deps
from fuelquota.core.database import Base, get_db
from fuelquota.main import app
from fuelquota.models import FuelType, Owner, Vehicle, VehicleType
from fuelquota.services.credential_resolvers import QrTextResolver
from fuelquota.services.notifications import DeliveryChannel, EventPublisher
from fuelquota.services.registration_service import vehicle_qr_text


class RecordingChannel(DeliveryChannel):
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, destination, message, *, subject=None):
        if self.fail:
            raise ConnectionError("gateway down")
        self.sent.append((destination, message))

    def last_code(self):
        return self.sent[-1][1].split("code is ")[1][:6]


class RecordingPublisher(EventPublisher):
    def __init__(self, fail=False):
        self.fail = fail
        self.events = []

    def publish(self, event_type, payload):
        if self.fail:
            raise ConnectionError("broker down")
        self.events.append((event_type, payload))


@pytest.fixture()
def engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_engine(
        f"sqlite+pysqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def SessionLocal(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(SessionLocal):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def email_channel():
    return RecordingChannel()


@pytest.fixture()
def sms_channel():
    return RecordingChannel()


@pytest.fixture()
def publisher():
    return RecordingPublisher()


@pytest.fixture()
def client(SessionLocal, email_channel, sms_channel, publisher):
    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.email_channel_dependency] = lambda: email_channel
    app.dependency_overrides[deps.sms_channel_dependency] = lambda: sms_channel
    app.dependency_overrides[deps.event_publisher_dependency] = lambda: publisher
    app.dependency_overrides[deps.resolver_dependency] = QrTextResolver
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_vehicle(session, *, number="CAB-1234", allowance="20", nic="199012345678", phone="0771234567"):
    vehicle_type = session.query(VehicleType).filter_by(name="Car").one_or_none()
    if vehicle_type is None:
        vehicle_type = VehicleType(name="Car", fuel_type=FuelType.PETROL, weekly_quota=Decimal(allowance))
        session.add(vehicle_type)
    owner = session.query(Owner).filter_by(nic=nic).one_or_none()
    if owner is None:
        owner = Owner(
            nic=nic,
            first_name="Nimal",
            last_name="Perera",
            email=f"{nic}@example.lk",
            phone=phone,
            email_verified=True,
        )
        session.add(owner)
    vehicle = Vehicle(
        vehicle_number=number,
        chassis_number=f"CH-{number}",
        vehicle_type=vehicle_type,
        owner=owner,
        fuel_type=FuelType.PETROL,
        weekly_allowance=Decimal(allowance),
        remaining=Decimal(allowance),
        qr_payload=vehicle_qr_text(number, "Car", nic, allowance),
        qr_token=f"token-{number}",
        verified=True,
    )
    session.add(vehicle)
    session.commit()
    return vehicle


@pytest.fixture()
def make_vehicle(db_session):
    return functools.partial(_make_vehicle, db_session)
