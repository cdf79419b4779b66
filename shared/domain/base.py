"""
Base Domain Classes

Foundational building blocks shared by the stringing workflow domains:
- ValueObject: Immutable objects compared by value
"""

from abc import ABC
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """

    def to_dict(self) -> dict:
        """Convert value object to a plain dictionary for serialization"""
        return asdict(self)
