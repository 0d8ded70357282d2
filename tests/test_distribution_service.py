import re
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from fuelquota.core.errors import InvalidArgument, InvalidTransition, NotFound
from fuelquota.models import DistributionStatus, FuelType
from fuelquota.services import distribution_service, inventory_service, station_service

from conftest import RecordingPublisher


@pytest.fixture()
def station(db_session):
    return station_service.create_station(
        db_session, name="Central", location="Colombo", owner_name="Kamal", contact_number="0112345678"
    )


def test_create_publishes_event(db_session, station, publisher):
    now = datetime(2026, 1, 5, 8, 15)
    distribution = distribution_service.create_distribution(
        db_session,
        station_id=station.station_id,
        fuel_type="diesel",
        amount=1500,
        publisher=publisher,
        now=now,
    )

    assert distribution.status == DistributionStatus.PENDING
    assert distribution.fuel_type == FuelType.DIESEL
    assert re.fullmatch(r"DIST-20260105-[0-9A-F]{8}", distribution.reference)

    event_type, payload = publisher.events[0]
    assert event_type == "distribution.created"
    assert payload["distributionId"] == distribution.distribution_id
    assert payload["stationName"] == "Central"
    assert payload["fuelType"] == "DIESEL"
    assert payload["amount"] == "1500.00"
    assert payload["reference"] == distribution.reference


def test_publish_failure_does_not_block_creation(db_session, station):
    distribution = distribution_service.create_distribution(
        db_session,
        station_id=station.station_id,
        fuel_type=FuelType.PETROL,
        amount=100,
        publisher=RecordingPublisher(fail=True),
    )
    assert distribution.distribution_id is not None


def test_create_validation(db_session, station):
    with pytest.raises(InvalidArgument):
        distribution_service.create_distribution(
            db_session, station_id=station.station_id, fuel_type="DIESEL", amount=0
        )
    with pytest.raises(InvalidArgument):
        distribution_service.create_distribution(
            db_session, station_id=station.station_id, fuel_type="JET_A1", amount=10
        )
    with pytest.raises(NotFound):
        distribution_service.create_distribution(db_session, station_id=999, fuel_type="DIESEL", amount=10)


def test_delivery_restocks_inventory(db_session, station):
    distribution = distribution_service.create_distribution(
        db_session, station_id=station.station_id, fuel_type="DIESEL", amount=500
    )
    delivered_at = datetime(2026, 1, 6, 14, 0)

    distribution_service.set_status(
        db_session, distribution_id=distribution.distribution_id, status=DistributionStatus.IN_TRANSIT
    )
    distribution_service.set_status(
        db_session, distribution_id=distribution.distribution_id, status="DELIVERED", now=delivered_at
    )

    assert distribution.status == DistributionStatus.DELIVERED
    assert distribution.completed_at == delivered_at
    inventory = inventory_service.get_inventory(db_session, station_id=station.station_id, fuel_type="DIESEL")
    assert inventory.amount == Decimal("500.00")


def test_transition_table(db_session, station):
    distribution = distribution_service.create_distribution(
        db_session, station_id=station.station_id, fuel_type="PETROL", amount=100
    )
    distribution_id = distribution.distribution_id

    with pytest.raises(InvalidTransition):
        distribution_service.set_status(db_session, distribution_id=distribution_id, status="DELIVERED")

    # Same status again is accepted and changes nothing.
    same = distribution_service.set_status(db_session, distribution_id=distribution_id, status="PENDING")
    assert same.status == DistributionStatus.PENDING

    distribution_service.set_status(db_session, distribution_id=distribution_id, status="CANCELLED")
    for target in ("PENDING", "IN_TRANSIT", "DELIVERED"):
        with pytest.raises(InvalidTransition):
            distribution_service.set_status(db_session, distribution_id=distribution_id, status=target)

    with pytest.raises(InvalidArgument):
        distribution_service.set_status(db_session, distribution_id=distribution_id, status="LOST")
    with pytest.raises(NotFound):
        distribution_service.set_status(db_session, distribution_id=12345, status="CANCELLED")


def test_delivered_is_terminal(db_session, station):
    distribution = distribution_service.create_distribution(
        db_session, station_id=station.station_id, fuel_type="PETROL", amount=100
    )
    distribution_service.set_status(db_session, distribution_id=distribution.distribution_id, status="IN_TRANSIT")
    distribution_service.set_status(db_session, distribution_id=distribution.distribution_id, status="DELIVERED")

    with pytest.raises(InvalidTransition):
        distribution_service.set_status(db_session, distribution_id=distribution.distribution_id, status="CANCELLED")

    inventory = inventory_service.get_inventory(db_session, station_id=station.station_id, fuel_type="PETROL")
    assert inventory.amount == Decimal("100.00")


def test_list_for_station_newest_first_with_filter(db_session, station):
    start = datetime(2026, 1, 1, 9, 0)
    created = [
        distribution_service.create_distribution(
            db_session,
            station_id=station.station_id,
            fuel_type="DIESEL",
            amount=100 + index,
            now=start + timedelta(days=index),
        )
        for index in range(3)
    ]
    distribution_service.set_status(db_session, distribution_id=created[0].distribution_id, status="CANCELLED")

    listed = distribution_service.list_for_station(db_session, station_id=station.station_id)
    assert [item.distribution_id for item in listed] == [d.distribution_id for d in reversed(created)]

    pending = distribution_service.list_for_station(db_session, station_id=station.station_id, status="PENDING")
    assert {item.distribution_id for item in pending} == {created[1].distribution_id, created[2].distribution_id}

    page = distribution_service.list_for_station(db_session, station_id=station.station_id, limit=1, offset=1)
    assert [item.distribution_id for item in page] == [created[1].distribution_id]

    assert len(distribution_service.list_recent(db_session, limit=2)) == 2


def test_stats_count_only_delivered(db_session, station):
    delivered = distribution_service.create_distribution(
        db_session, station_id=station.station_id, fuel_type="DIESEL", amount=300
    )
    distribution_service.create_distribution(db_session, station_id=station.station_id, fuel_type="DIESEL", amount=50)
    distribution_service.set_status(db_session, distribution_id=delivered.distribution_id, status="IN_TRANSIT")
    distribution_service.set_status(db_session, distribution_id=delivered.distribution_id, status="DELIVERED")

    stats = distribution_service.stats_by_fuel_type(db_session)

    assert stats["DIESEL"] == Decimal("300.00")
    assert stats["PETROL"] == Decimal("0.00")
    assert set(stats) == {kind.value for kind in FuelType}


def test_only_delivery_touches_inventory(db_session, station):
    inventory_service.set_amount(db_session, station_id=station.station_id, fuel_type="PETROL", amount=40)
    in_transit = distribution_service.create_distribution(
        db_session, station_id=station.station_id, fuel_type="PETROL", amount=100
    )
    cancelled = distribution_service.create_distribution(
        db_session, station_id=station.station_id, fuel_type="PETROL", amount=250
    )

    def stock():
        return inventory_service.get_inventory(db_session, station_id=station.station_id, fuel_type="PETROL").amount

    distribution_service.set_status(db_session, distribution_id=in_transit.distribution_id, status="IN_TRANSIT")
    assert stock() == Decimal("40.00")

    distribution_service.set_status(db_session, distribution_id=cancelled.distribution_id, status="CANCELLED")
    assert stock() == Decimal("40.00")

    distribution_service.set_status(db_session, distribution_id=in_transit.distribution_id, status="CANCELLED")
    assert stock() == Decimal("40.00")
