"""Column type for fuel volumes."""

from decimal import ROUND_HALF_EVEN, Decimal

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

HUNDREDTHS = Decimal(100)
QUANTUM = Decimal("0.01")


class Litres(TypeDecorator):
    """Litres with two decimal places, stored as an integer count of hundredths.

    Keeping the column integral makes ``remaining >= :amount`` and
    ``remaining - :amount`` exact on every backend, including SQLite where
    ``Numeric`` is stored as a float. Plain Python values compared against or
    combined with a ``Litres`` column are bound through this type as well.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        scaled = Decimal(str(value)) * HUNDREDTHS
        return int(scaled.to_integral_value(rounding=ROUND_HALF_EVEN))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(int(value)) / HUNDREDTHS).quantize(QUANTUM)

    def coerce_compared_value(self, op, value):
        return self
