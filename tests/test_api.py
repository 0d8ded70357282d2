from decimal import Decimal

from fuelquota import schemas
from fuelquota.api import deps
from fuelquota.jobs import weekly_reset
from fuelquota.services import otp_service, quota_service

from conftest import RecordingChannel


def test_health(client):
    assert client.get("/api/v1/health").json() == {"status": "ok"}


def test_every_exported_schema_is_served(client):
    components = client.get("/openapi.json").json()["components"]["schemas"]

    assert set(schemas.__all__) <= set(components)


def test_dispense_flow(client, make_vehicle, sms_channel):
    vehicle = make_vehicle(allowance="20")

    response = client.post("/api/v1/dispense", json={"credential": vehicle.qr_payload, "amount": 8})
    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["remaining"]) == Decimal("12")
    assert body["owner"]["nic"] == "199012345678"
    assert len(sms_channel.sent) == 1

    response = client.post("/api/v1/dispense", json={"credential": vehicle.qr_payload, "amount": 13})
    assert response.status_code == 409

    response = client.post("/api/v1/dispense", json={"credential": "Vehicle Number: NONE-1", "amount": 1})
    assert response.status_code == 404

    response = client.post("/api/v1/dispense", json={"credential": vehicle.qr_payload, "amount": 0})
    assert response.status_code == 422

    quota = client.get("/api/v1/vehicles/CAB-1234/quota").json()
    assert Decimal(quota["remaining"]) == Decimal("12")

    history = client.get("/api/v1/vehicles/CAB-1234/transactions").json()
    assert len(history) == 1

    lookup = client.post("/api/v1/dispense/lookup", json={"credential": vehicle.qr_payload})
    assert Decimal(lookup.json()["weekly_allowance"]) == Decimal("20")


def test_oversized_amounts_rejected(client, make_vehicle):
    vehicle = make_vehicle(allowance="20")

    response = client.post("/api/v1/dispense", json={"credential": vehicle.qr_payload, "amount": "1e30"})
    assert response.status_code == 422

    station = client.post(
        "/api/v1/stations",
        json={"name": "Central", "location": "Colombo", "owner_name": "Kamal", "contact_number": "0112345678"},
    ).json()
    restock = client.post(
        f"/api/v1/stations/{station['station_id']}/inventory/DIESEL/restock", json={"amount": "1e30"}
    )
    assert restock.status_code == 422


def test_idempotent_dispense_over_http(client, make_vehicle):
    vehicle = make_vehicle(allowance="20")
    payload = {"credential": vehicle.qr_payload, "amount": 5, "idempotency_key": "pump-9-1"}

    first = client.post("/api/v1/dispense", json=payload).json()
    second = client.post("/api/v1/dispense", json=payload).json()

    assert second["replayed"] is True
    assert second["transaction_id"] == first["transaction_id"]
    assert Decimal(client.get("/api/v1/vehicles/CAB-1234/quota").json()["remaining"]) == Decimal("15")


def test_distribution_lifecycle(client, publisher):
    station = client.post(
        "/api/v1/stations",
        json={"name": "Central", "location": "Colombo", "owner_name": "Kamal", "contact_number": "0112345678"},
    )
    assert station.status_code == 201
    station_id = station.json()["station_id"]

    created = client.post(
        "/api/v1/distributions", json={"station_id": station_id, "fuel_type": "DIESEL", "amount": 1000}
    )
    assert created.status_code == 201
    distribution_id = created.json()["distribution_id"]
    assert created.json()["status"] == "PENDING"
    assert publisher.events[0][1]["reference"] == created.json()["reference"]

    bad = client.patch(f"/api/v1/distributions/{distribution_id}/status", json={"status": "DELIVERED"})
    assert bad.status_code == 409

    for target in ("IN_TRANSIT", "DELIVERED"):
        moved = client.patch(f"/api/v1/distributions/{distribution_id}/status", json={"status": target})
        assert moved.status_code == 200
    assert moved.json()["completed_at"] is not None

    inventory = client.get(f"/api/v1/stations/{station_id}/inventory").json()
    assert [(row["fuel_type"], Decimal(row["amount"])) for row in inventory] == [("DIESEL", Decimal("1000"))]

    consumed = client.post(f"/api/v1/stations/{station_id}/inventory/DIESEL/consume", json={"amount": 1500})
    assert consumed.status_code == 409

    stats = client.get("/api/v1/distributions/stats").json()
    assert Decimal(stats["DIESEL"]) == Decimal("1000")

    listed = client.get(f"/api/v1/stations/{station_id}/distributions", params={"status": "DELIVERED"}).json()
    assert [item["distribution_id"] for item in listed] == [distribution_id]

    assert client.get("/api/v1/distributions/999").status_code == 404


def test_owner_registration_and_verification(client, email_channel, monkeypatch):
    monkeypatch.setattr(otp_service, "generate_code", lambda: "482913")

    vehicle_type = client.post(
        "/api/v1/vehicle-types", json={"name": "Car", "fuel_type": "PETROL", "weekly_quota": 20}
    )
    assert vehicle_type.status_code == 201

    registered = client.post(
        "/api/v1/owners",
        json={
            "nic": "199012345678",
            "first_name": "Nimal",
            "last_name": "Perera",
            "email": "nimal@example.lk",
            "vehicle": {
                "vehicle_number": "CAB-1234",
                "chassis_number": "NZE141-0012345",
                "vehicle_type": {"kind": "name", "value": "Car"},
            },
        },
    )
    assert registered.status_code == 201
    assert registered.json()["email_verified"] is False
    assert registered.json()["vehicles"][0]["qr_payload"].startswith("Vehicle Number: CAB-1234")

    wrong = client.post("/api/v1/owners/verify-email", json={"email": "nimal@example.lk", "code": "000000"})
    assert wrong.status_code == 400
    full_width = client.post(
        "/api/v1/owners/verify-email", json={"email": "nimal@example.lk", "code": "\uff14\uff18\uff12\uff19\uff11\uff13"}
    )
    assert full_width.status_code == 422

    verified = client.post(
        "/api/v1/owners/verify-email", json={"email": "nimal@example.lk", "code": email_channel.last_code()}
    )
    assert verified.status_code == 200
    assert verified.json()["email_verified"] is True

    in_use = client.delete(f"/api/v1/vehicle-types/{vehicle_type.json()['vehicle_type_id']}")
    assert in_use.status_code == 409


def test_registration_rolled_back_when_email_fails(client, email_channel):
    email_channel.fail = True
    response = client.post(
        "/api/v1/owners",
        json={"nic": "199012345678", "first_name": "Nimal", "last_name": "Perera", "email": "nimal@example.lk"},
    )
    assert response.status_code == 502

    email_channel.fail = False
    retry = client.post(
        "/api/v1/owners",
        json={"nic": "199012345678", "first_name": "Nimal", "last_name": "Perera", "email": "nimal@example.lk"},
    )
    assert retry.status_code == 201


def test_weekly_reset_job(SessionLocal, make_vehicle, monkeypatch, db_session):
    make_vehicle(allowance="20")
    quota_service.try_debit(db_session, "CAB-1234", 20)
    db_session.commit()
    monkeypatch.setattr(weekly_reset, "SessionLocal", SessionLocal)

    assert weekly_reset.run_reset_once() == {"vehicles_reset": 1}
    assert quota_service.get_remaining(db_session, "CAB-1234") == Decimal("20.00")


class ClosingChannel(RecordingChannel):
    closed = False

    def close(self):
        self.closed = True


def test_collaborators_are_shared_and_closed(monkeypatch):
    built = []

    def build(settings):
        built.append(ClosingChannel())
        return built[-1]

    monkeypatch.setattr(deps, "get_email_channel", build)
    deps.close_collaborators()

    assert deps.email_channel_dependency() is deps.email_channel_dependency()
    deps.close_collaborators()
    assert len(built) == 1 and built[0].closed

    deps.email_channel_dependency()
    assert len(built) == 2
    deps.close_collaborators()
    assert built[1].closed
