"""
Attribute value types for the ABE policy engine.
"""

from dataclasses import dataclass
from enum import Enum

from .errors import InvalidAttribute

# Separator between the axis and the attribute name
ATTRIBUTE_SEPARATOR = "::"


class EncryptionHint(str, Enum):
    """Cryptographic treatment requested for an attribute."""
    CLASSIC = "Classic"
    HYBRIDIZED = "Hybridized"

    @classmethod
    def new(cls, is_hybridized: bool) -> "EncryptionHint":
        return cls.HYBRIDIZED if is_hybridized else cls.CLASSIC

    def __or__(self, other: "EncryptionHint") -> "EncryptionHint":
        # Hybridized wins: the weakest mode sufficient for every operand
        if self is EncryptionHint.HYBRIDIZED or other is EncryptionHint.HYBRIDIZED:
            return EncryptionHint.HYBRIDIZED
        return EncryptionHint.CLASSIC

    @property
    def is_hybridized(self) -> bool:
        return self is EncryptionHint.HYBRIDIZED


@dataclass(frozen=True, order=True)
class Attribute:
    """A named value within an axis, e.g. `Department::HR`."""
    axis: str
    name: str

    @classmethod
    def from_string(cls, value: str) -> "Attribute":
        """Parse the `AXIS::NAME` form."""
        parts = value.split(ATTRIBUTE_SEPARATOR)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise InvalidAttribute(
                f"'{value}' does not respect the format <axis{ATTRIBUTE_SEPARATOR}name>"
            )
        return cls(axis=parts[0], name=parts[1])

    def __str__(self) -> str:
        return f"{self.axis}{ATTRIBUTE_SEPARATOR}{self.name}"
