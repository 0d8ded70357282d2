from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from fuelquota.core.errors import InsufficientStock, InvalidArgument, NotFound
from fuelquota.services import inventory_service, station_service


@pytest.fixture()
def station_id(db_session):
    station = station_service.create_station(
        db_session, name="Harbour", location="Galle", owner_name="Sunil", contact_number="0912345678"
    )
    return station.station_id


def test_first_touch_creates_empty_row(db_session, station_id):
    inventory = inventory_service.get_inventory(db_session, station_id=station_id, fuel_type="KEROSENE")
    assert inventory.amount == Decimal("0.00")


def test_set_consume_restock(db_session, station_id):
    inventory_service.set_amount(db_session, station_id=station_id, fuel_type="PETROL", amount=100)

    inventory = inventory_service.consume(db_session, station_id=station_id, fuel_type="PETROL", amount=40)
    assert inventory.amount == Decimal("60.00")

    with pytest.raises(InsufficientStock) as excinfo:
        inventory_service.consume(db_session, station_id=station_id, fuel_type="PETROL", amount=61)
    assert excinfo.value.available == Decimal("60.00")
    assert inventory_service.get_inventory(db_session, station_id=station_id, fuel_type="PETROL").amount == Decimal(
        "60.00"
    )

    inventory = inventory_service.restock(db_session, station_id=station_id, fuel_type="PETROL", amount=15)
    assert inventory.amount == Decimal("75.00")

    inventory = inventory_service.consume(db_session, station_id=station_id, fuel_type="PETROL", amount=75)
    assert inventory.amount == Decimal("0.00")


@pytest.mark.parametrize("operation", ["set_amount", "consume", "restock"])
def test_negative_amounts_rejected(db_session, station_id, operation):
    with pytest.raises(InvalidArgument):
        getattr(inventory_service, operation)(db_session, station_id=station_id, fuel_type="DIESEL", amount=-1)


def test_unknown_station(db_session):
    with pytest.raises(NotFound):
        inventory_service.restock(db_session, station_id=404, fuel_type="DIESEL", amount=10)


def test_list_inventory(db_session, station_id):
    inventory_service.set_amount(db_session, station_id=station_id, fuel_type="DIESEL", amount=10)
    inventory_service.set_amount(db_session, station_id=station_id, fuel_type="PETROL", amount=20)

    rows = inventory_service.list_inventory(db_session, station_id=station_id)

    assert {(row.fuel_type.value, row.amount) for row in rows} == {
        ("DIESEL", Decimal("10.00")),
        ("PETROL", Decimal("20.00")),
    }


def test_fractional_consumption_is_exact(db_session, station_id):
    inventory_service.set_amount(db_session, station_id=station_id, fuel_type="DIESEL", amount="0.3")

    for _ in range(3):
        inventory = inventory_service.consume(db_session, station_id=station_id, fuel_type="DIESEL", amount="0.1")

    assert inventory.amount == Decimal("0.00")


def test_amount_limits(db_session, station_id):
    with pytest.raises(InvalidArgument):
        inventory_service.restock(db_session, station_id=station_id, fuel_type="PETROL", amount=Decimal("1e30"))

    inventory_service.set_amount(db_session, station_id=station_id, fuel_type="PETROL", amount="9999999999.00")
    with pytest.raises(InvalidArgument):
        inventory_service.restock(db_session, station_id=station_id, fuel_type="PETROL", amount=1)
    inventory = inventory_service.get_inventory(db_session, station_id=station_id, fuel_type="PETROL")
    assert inventory.amount == Decimal("9999999999.00")


def test_concurrent_first_touch_creates_one_row(SessionLocal, db_session, station_id):
    db_session.commit()
    barrier = Barrier(2)

    def restock():
        session = SessionLocal()
        try:
            barrier.wait()
            inventory_service.restock(session, station_id=station_id, fuel_type="DIESEL", amount=10)
            session.commit()
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [pool.submit(restock) for _ in range(2)]
        for future in futures:
            future.result()

    session = SessionLocal()
    try:
        rows = inventory_service.list_inventory(session, station_id=station_id)
        assert [(row.fuel_type.value, row.amount) for row in rows] == [("DIESEL", Decimal("20.00"))]
    finally:
        session.close()
