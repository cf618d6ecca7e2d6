"""
Common Schema Types
==================

Bounded Context: Shared Data Structures

Types shared by the live-data and history messages.

Design Principles:
- Immutability: frozen=True prevents accidental mutation
- Serialization: to_dict() for JSON export
- Validation: Constructor validates invariants
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict


@dataclass(frozen=True)
class Timestamp:
    """
    Immutable ISO 8601 timestamp wrapper (always timezone-aware, UTC).

    Example:
        >>> ts = Timestamp.now()
        >>> ts.value
        '2025-10-24T15:30:45.123456+00:00'
    """
    value: str

    def __post_init__(self):
        """Validate the value parses as ISO 8601."""
        self.to_datetime()

    @classmethod
    def now(cls) -> 'Timestamp':
        """Create timestamp from current time."""
        return cls(value=datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_datetime(cls, dt: datetime) -> 'Timestamp':
        """Create timestamp from datetime object (naive values are taken as UTC)."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return cls(value=dt.isoformat())

    def to_datetime(self) -> datetime:
        """Parse to datetime object.

        Raises:
            ValueError: If timestamp format invalid
        """
        try:
            return datetime.fromisoformat(self.value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid ISO timestamp: {self.value}") from e

    def to_dict(self) -> str:
        """Serialize to JSON (as string)."""
        return self.value


def require_fields(data: Dict[str, Any], *names: str) -> None:
    """Raise ValueError naming the first missing key."""
    for name in names:
        if name not in data:
            raise ValueError(f"Missing required field: '{name}'")
