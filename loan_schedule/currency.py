"""
Currency Precision Module

ISO 4217 currency codes and the Decimal rounding rules applied at schedule
row and aggregate boundaries. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, getcontext
from enum import Enum
from typing import Union

# Set global decimal context for financial precision
getcontext().prec = 28  # High precision for financial calculations

ZERO = Decimal('0')


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    GBP = ("GBP", 2)  # British Pound, 2 decimal places
    USD = ("USD", 2)  # US Dollar, 2 decimal places
    EUR = ("EUR", 2)  # Euro, 2 decimal places
    JPY = ("JPY", 0)  # Japanese Yen, 0 decimal places

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @property
    def quantum(self) -> Decimal:
        """Smallest representable unit, e.g. 0.01"""
        return Decimal('0.1') ** self.precision


def to_decimal(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """Convert a ledger value to Decimal, treating None as zero"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() first so floats convert by their shortest repr, not binary expansion
    return Decimal(str(value))


def round_currency(amount: Union[Decimal, int, float, str],
                   currency: Currency = Currency.GBP) -> Decimal:
    """
    Round to currency precision, half away from zero.

    Only called at schedule row and aggregate boundaries; intermediate
    segment interest stays unrounded.
    """
    return to_decimal(amount).quantize(currency.quantum, rounding=ROUND_HALF_UP)
