"""
Common Value Objects

Value objects used across multiple domains:
- Money: Represents monetary amounts with currency
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('BRL', 'USD', 'EUR')

MINOR_UNIT_FACTOR = Decimal('100')


def to_decimal(value) -> Decimal:
    """
    Coerce a number into a Decimal without binary float artefacts.

    Floats go through ``str`` first so that ``1234.56`` becomes
    ``Decimal('1234.56')`` instead of ``Decimal('1234.559999...')``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a monetary amount")
    if isinstance(value, (int, float, str)):
        return Decimal(str(value))
    raise TypeError(f"Unsupported amount type: {type(value).__name__}")


def to_minor_units(amount) -> int:
    """
    Convert a major-unit amount to an integer count of minor units.

    Uses banker's rounding (ROUND_HALF_EVEN) after scaling by 100, so
    1234.56 maps to exactly 123456.
    """
    scaled = to_decimal(amount) * MINOR_UNIT_FACTOR
    return int(scaled.quantize(Decimal('1'), rounding=ROUND_HALF_EVEN))


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Immutable and supports arithmetic operations.
    """
    amount: Decimal
    currency: str = 'BRL'

    def __post_init__(self):
        # Normalise floats and ints coming from request payloads
        object.__setattr__(self, 'amount', to_decimal(self.amount))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        object.__setattr__(self, 'currency', self.currency.upper())
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    def minor_units(self) -> int:
        """Amount in the gateway's minor unit (cents)"""
        return to_minor_units(self.amount)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"
