"""
Live Data Message Schema
========================

Bounded Context: Live Occupancy Broadcast

The message pushed to viewers whenever a place's snapshot is replaced.

Wire shape:
    {
        "placeId": "p1",
        "placeName": "Cafe Central",
        "seats": [{"id": "1-1", "occupied": true}, ...],
        "tables": [{"id": "Table 1", "seats": [{"id": "T1-1", "occupied": true}, ...]}, ...],
        "lastUpdate": "2025-10-24T15:30:45.123456+00:00"
    }

Message Flow:
    OccupancyAnalysisService → LiveDataMessage → LiveDataPublisher → MQTT → viewers
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from occupancy_vision.seating import OccupancySnapshot, Seat, Table
from .common import Timestamp, require_fields


def _seat_from_dict(data: Dict[str, Any]) -> Seat:
    require_fields(data, 'id', 'occupied')
    return Seat(seat_id=str(data['id']), occupied=bool(data['occupied']))


@dataclass(frozen=True)
class LiveDataMessage:
    """
    Complete live-data message for one place.

    Attributes:
        place_id: Place identifier
        place_name: Display name
        seats: Flat seat grid
        tables: Table layout mirroring the seat flags
        last_update: When the snapshot was produced
    """
    place_id: str
    place_name: str
    seats: Tuple[Seat, ...]
    tables: Tuple[Table, ...]
    last_update: Timestamp

    def __post_init__(self):
        """Validate invariants."""
        if not self.place_id:
            raise ValueError("place_id must not be empty")

    @classmethod
    def from_snapshot(
        cls,
        place_id: str,
        place_name: str,
        snapshot: OccupancySnapshot
    ) -> 'LiveDataMessage':
        """Build the broadcast message for a committed snapshot."""
        return cls(
            place_id=place_id,
            place_name=place_name,
            seats=tuple(snapshot.seats),
            tables=tuple(snapshot.tables),
            last_update=Timestamp.from_datetime(snapshot.last_update),
        )

    @property
    def occupied_seats(self) -> int:
        return sum(1 for seat in self.seats if seat.occupied)

    @property
    def total_seats(self) -> int:
        return len(self.seats)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'placeId': self.place_id,
            'placeName': self.place_name,
            'seats': [seat.to_dict() for seat in self.seats],
            'tables': [table.to_dict() for table in self.tables],
            'lastUpdate': self.last_update.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LiveDataMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        require_fields(data, 'placeId', 'placeName', 'seats', 'tables', 'lastUpdate')
        tables = []
        for table in data['tables']:
            require_fields(table, 'id', 'seats')
            tables.append(
                Table(
                    table_id=str(table['id']),
                    seats=tuple(_seat_from_dict(s) for s in table['seats']),
                )
            )
        return cls(
            place_id=str(data['placeId']),
            place_name=str(data['placeName']),
            seats=tuple(_seat_from_dict(s) for s in data['seats']),
            tables=tuple(tables),
            last_update=Timestamp(value=data['lastUpdate']),
        )
