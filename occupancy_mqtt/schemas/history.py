"""
History Update Message Schema
=============================

Bounded Context: Hourly Aggregation Signal

Emitted once per committed snapshot so the hourly aggregator can fold the
observation into its bucket.

Wire shape:
    {"placeId": "p1", "placeName": "Cafe", "occupiedSeats": 13, "totalSeats": 20}
"""

from dataclasses import dataclass
from typing import Any, Dict

from .common import require_fields


@dataclass(frozen=True)
class HistoryUpdateMessage:
    """
    Occupancy observation for the history aggregator.

    Invariants:
        - total_seats >= 1
        - 0 <= occupied_seats <= total_seats
    """
    place_id: str
    place_name: str
    occupied_seats: int
    total_seats: int

    def __post_init__(self):
        """Validate invariants."""
        if self.total_seats < 1:
            raise ValueError(f"total_seats must be >= 1, got {self.total_seats}")
        if not 0 <= self.occupied_seats <= self.total_seats:
            raise ValueError(
                f"occupied_seats must be in [0, {self.total_seats}], "
                f"got {self.occupied_seats}"
            )

    @property
    def occupancy_rate(self) -> float:
        """Occupied share in percent (0..100)."""
        return self.occupied_seats / self.total_seats * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            'placeId': self.place_id,
            'placeName': self.place_name,
            'occupiedSeats': self.occupied_seats,
            'totalSeats': self.total_seats,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HistoryUpdateMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        require_fields(data, 'placeId', 'placeName', 'occupiedSeats', 'totalSeats')
        try:
            return cls(
                place_id=str(data['placeId']),
                place_name=str(data['placeName']),
                occupied_seats=int(data['occupiedSeats']),
                total_seats=int(data['totalSeats']),
            )
        except TypeError as e:
            raise ValueError(f"Invalid history update data: {e}") from e
