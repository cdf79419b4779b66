"""
Common Value Objects

Value objects used across the stringing domains:
- Money: Represents monetary amounts with currency
"""

from dataclasses import dataclass
from decimal import Decimal

from shared.domain.base import ValueObject


SUPPORTED_CURRENCIES = ('KRW', 'USD')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Immutable and supports arithmetic operations.
    KRW has no minor unit, so amounts are whole won in practice.
    """
    amount: Decimal
    currency: str = 'KRW'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'KRW') -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __bool__(self) -> bool:
        return self.amount != 0

    @property
    def won(self) -> int:
        """Whole-unit amount, as stored in the database"""
        return int(self.amount)

    def __str__(self):
        return f"{self.amount:,.0f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"
