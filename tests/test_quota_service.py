from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal

import pytest

from fuelquota.core.errors import InsufficientQuota, InvalidArgument, NotFound
from fuelquota.services import quota_service


def test_debits_until_exhausted(db_session, make_vehicle):
    make_vehicle(allowance="20")

    assert quota_service.try_debit(db_session, "CAB-1234", 8) == Decimal("12.00")
    assert quota_service.try_debit(db_session, "CAB-1234", Decimal("4.5")) == Decimal("7.50")

    with pytest.raises(InsufficientQuota) as excinfo:
        quota_service.try_debit(db_session, "CAB-1234", 8)
    assert excinfo.value.remaining == Decimal("7.50")
    assert quota_service.get_remaining(db_session, "CAB-1234") == Decimal("7.50")

    assert quota_service.try_debit(db_session, "CAB-1234", Decimal("7.50")) == Decimal("0.00")


@pytest.mark.parametrize("amount", [0, -1, "abc", float("nan")])
def test_rejects_non_positive_or_malformed_amounts(db_session, make_vehicle, amount):
    make_vehicle()

    with pytest.raises(InvalidArgument):
        quota_service.try_debit(db_session, "CAB-1234", amount)
    assert quota_service.get_remaining(db_session, "CAB-1234") == Decimal("20.00")


def test_unknown_vehicle(db_session):
    with pytest.raises(NotFound):
        quota_service.try_debit(db_session, "NOPE-0000", 1)
    with pytest.raises(NotFound):
        quota_service.get_remaining(db_session, "NOPE-0000")


def test_concurrent_debits_never_overdraw(SessionLocal, make_vehicle):
    make_vehicle(allowance="20")

    def debit():
        session = SessionLocal()
        try:
            quota_service.try_debit(session, "CAB-1234", 3)
            session.commit()
            return True
        except InsufficientQuota:
            session.rollback()
            return False
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda _: debit(), range(10)))

    assert outcomes.count(True) == 6
    session = SessionLocal()
    try:
        assert quota_service.get_remaining(session, "CAB-1234") == Decimal("2.00")
    finally:
        session.close()


def test_reset_all_restores_every_allowance(db_session, make_vehicle):
    make_vehicle(number="CAB-1234", allowance="20")
    make_vehicle(number="CAB-5678", allowance="20")
    quota_service.try_debit(db_session, "CAB-1234", 15)
    quota_service.try_debit(db_session, "CAB-5678", 20)

    reset_at = datetime(2026, 1, 5, 0, 5)
    summary = quota_service.reset_all(db_session, now=reset_at)
    db_session.commit()

    assert summary == {"vehicles_reset": 2}
    for number in ("CAB-1234", "CAB-5678"):
        vehicle = quota_service.get_vehicle(db_session, number, refresh=True)
        assert vehicle.remaining == Decimal("20.00")
        assert vehicle.last_reset_at == reset_at


def test_reset_single_vehicle(db_session, make_vehicle):
    make_vehicle(allowance="20")
    quota_service.try_debit(db_session, "CAB-1234", 5)

    vehicle = quota_service.reset_vehicle(db_session, "CAB-1234")

    assert vehicle.remaining == Decimal("20.00")


def test_fractional_debits_use_exact_arithmetic(db_session, make_vehicle):
    make_vehicle(allowance="0.3")

    results = [quota_service.try_debit(db_session, "CAB-1234", Decimal("0.1")) for _ in range(3)]

    assert results == [Decimal("0.20"), Decimal("0.10"), Decimal("0.00")]
    with pytest.raises(InsufficientQuota):
        quota_service.try_debit(db_session, "CAB-1234", Decimal("0.01"))


@pytest.mark.parametrize("amount", [Decimal("1e30"), Decimal("10000000000")])
def test_rejects_amounts_beyond_storage_range(db_session, make_vehicle, amount):
    make_vehicle()

    with pytest.raises(InvalidArgument):
        quota_service.try_debit(db_session, "CAB-1234", amount)
    assert quota_service.get_remaining(db_session, "CAB-1234") == Decimal("20.00")
