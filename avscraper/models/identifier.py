"""Canonical identifier data model."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class IdFormat(Enum):
    """Identifier families used to pick compatible source adapters."""
    STANDARD = "standard"
    FC2 = "fc2"
    DOUJIN = "doujin"
    CONTENT_ID = "content_id"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: str) -> 'IdFormat':
        """Resolve a format from its value or member name (case insensitive)."""
        lowered = str(value).strip().lower()
        for member in cls:
            if member.value == lowered or member.name.lower() == lowered:
                return member
        raise ValueError(f"Unknown identifier format: {value}")


@dataclass(frozen=True, eq=False)
class Identifier:
    """
    Canonical key for a single media item.

    Two identifiers are equal when their normalized forms are equal; the raw
    input and the decomposition are informational.
    """

    raw: str
    normalized: str
    series: str
    number: str
    studio: Optional[str] = None
    format: IdFormat = IdFormat.STANDARD

    def __post_init__(self):
        if not self.normalized:
            raise ValueError("normalized identifier cannot be empty")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identifier):
            return NotImplemented
        return self.normalized == other.normalized

    def __hash__(self) -> int:
        return hash(self.normalized)

    def __str__(self) -> str:
        return self.normalized

    def to_dict(self):
        return {
            'raw': self.raw,
            'normalized': self.normalized,
            'series': self.series,
            'number': self.number,
            'studio': self.studio,
            'format': self.format.value,
        }


@dataclass(frozen=True)
class NormalizationError:
    """No identifier could be extracted from the input. Returned, not raised."""

    raw: str
    reason: str = field(default="no pattern matched")

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.reason}: {self.raw!r}"
