"""
Seat Synthesizer Module
=======================

Builds a seat grid and a table layout for a capacity, then marks exactly
round(percent/100 * capacity) seats occupied.

Design:
- Grid: cols = ceil(sqrt(capacity)), ids "{row}-{col}" (1-indexed)
- Tables: ceil(capacity/6) tables of 4..8 seats, the last table absorbs
  the remainder (may fall outside 4..8)
- Occupancy: shuffled index list, first N indices occupied (uniform scatter)
- Tables mirror the flat seat flags positionally, table-then-seat order
"""

import math
import random
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from occupancy_vision.errors import InvalidCapacityError
from occupancy_vision.rounding import round_half_up

AVG_SEATS_PER_TABLE = 6
MIN_SEATS_PER_TABLE = 4
MAX_SEATS_PER_TABLE = 8


def occupied_count_for(occupancy_percent: float, capacity: int) -> int:
    """Number of seats that must be occupied for a percentage."""
    return round_half_up(occupancy_percent / 100 * capacity)


def _validate_capacity(capacity: int) -> None:
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise InvalidCapacityError(f"capacity must be an int, got {capacity!r}")
    if capacity < 1:
        raise InvalidCapacityError(f"capacity must be >= 1, got {capacity}")


@dataclass(frozen=True)
class Seat:
    """Single seat. seat_id is a stable label ("2-3" or "T1-4")."""

    seat_id: str
    occupied: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire shape {id, occupied}."""
        return {"id": self.seat_id, "occupied": self.occupied}


@dataclass(frozen=True)
class Table:
    """Table with an ordered tuple of seats."""

    table_id: str
    seats: Tuple[Seat, ...] = ()

    @property
    def occupied_count(self) -> int:
        return sum(1 for seat in self.seats if seat.occupied)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire shape {id, seats: [...]}."""
        return {
            "id": self.table_id,
            "seats": [seat.to_dict() for seat in self.seats],
        }


@dataclass(frozen=True)
class OccupancySnapshot:
    """
    One complete, internally-consistent result of an analysis run.

    Invariants:
        - occupied seats == round(occupancy_percent/100 * capacity)
        - table seat flags mirror the flat seat list index-for-index
    """

    seats: Tuple[Seat, ...]
    tables: Tuple[Table, ...]
    occupancy_percent: int
    last_update: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate invariants."""
        if not 0 <= self.occupancy_percent <= 100:
            raise ValueError(
                f"occupancy_percent must be in [0, 100], got {self.occupancy_percent}"
            )
        expected = occupied_count_for(self.occupancy_percent, len(self.seats))
        if self.occupied_count != expected:
            raise ValueError(
                f"Snapshot has {self.occupied_count} occupied seats, "
                f"expected {expected} for {self.occupancy_percent}% of {len(self.seats)}"
            )

    @property
    def capacity(self) -> int:
        return len(self.seats)

    @property
    def occupied_count(self) -> int:
        return sum(1 for seat in self.seats if seat.occupied)

    @property
    def free_count(self) -> int:
        return self.capacity - self.occupied_count

    def __str__(self) -> str:
        """Human-readable representation."""
        return (
            f"{self.occupancy_percent}% "
            f"({self.occupied_count}/{self.capacity} seats, {len(self.tables)} tables)"
        )


class SeatSynthesizer:
    """
    Generates randomized but count-exact seating states.

    Usage:
        synthesizer = SeatSynthesizer(rng=random.Random(7))
        snapshot = synthesizer.synthesize(capacity=20, occupancy_percent=65)
        snapshot.occupied_count  # 13

    Thread Safety:
        Not thread-safe when sharing the rng; give each worker its own
        synthesizer or serialize calls.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    @staticmethod
    def grid_shape(capacity: int) -> Tuple[int, int]:
        """(rows, cols) of the square-ish seat grid."""
        _validate_capacity(capacity)
        cols = math.ceil(math.sqrt(capacity))
        rows = math.ceil(capacity / cols)
        return rows, cols

    def synthesize_grid(self, capacity: int) -> List[Seat]:
        """All-free grid seats with "{row}-{col}" ids."""
        _, cols = self.grid_shape(capacity)
        return [
            Seat(seat_id=f"{i // cols + 1}-{i % cols + 1}")
            for i in range(capacity)
        ]

    def synthesize_tables(self, capacity: int) -> List[Table]:
        """
        All-free tables whose seat counts sum to capacity.

        Non-last tables take a random 4..8 seats bounded by what remains;
        the last table takes whatever is left.
        """
        _validate_capacity(capacity)
        num_tables = max(1, math.ceil(capacity / AVG_SEATS_PER_TABLE))

        tables = []
        remaining = capacity
        for i in range(num_tables):
            if i == num_tables - 1:
                seat_count = remaining
            else:
                pick = self.rng.randint(MIN_SEATS_PER_TABLE, MAX_SEATS_PER_TABLE)
                seat_count = min(max(MIN_SEATS_PER_TABLE, pick), remaining)

            tables.append(
                Table(
                    table_id=f"Table {i + 1}",
                    seats=tuple(
                        Seat(seat_id=f"T{i + 1}-{j + 1}")
                        for j in range(seat_count)
                    ),
                )
            )
            remaining -= seat_count

        return tables

    def apply_occupancy(
        self,
        seats: Sequence[Seat],
        occupancy_percent: float,
        capacity: int,
    ) -> List[Seat]:
        """
        Return seats with exactly round(percent/100 * capacity) occupied.

        Raises:
            InvalidCapacityError: If capacity < 1
            ValueError: If percent is outside [0, 100] or len(seats) != capacity
        """
        _validate_capacity(capacity)
        if not 0 <= occupancy_percent <= 100:
            raise ValueError(
                f"occupancy_percent must be in [0, 100], got {occupancy_percent}"
            )
        if len(seats) != capacity:
            raise ValueError(
                f"Expected {capacity} seats, got {len(seats)}"
            )

        occupied_count = occupied_count_for(occupancy_percent, capacity)

        indices = list(range(capacity))
        self.rng.shuffle(indices)
        occupied = set(indices[:occupied_count])

        return [
            replace(seat, occupied=i in occupied)
            for i, seat in enumerate(seats)
        ]

    @staticmethod
    def mirror_tables(tables: Sequence[Table], seats: Sequence[Seat]) -> List[Table]:
        """
        Copy occupied flags from the flat seat list into tables positionally.

        Table seats past the end of the flat list default to free.
        """
        mirrored = []
        pointer = 0
        for table in tables:
            table_seats = []
            for seat in table.seats:
                occupied = seats[pointer].occupied if pointer < len(seats) else False
                table_seats.append(replace(seat, occupied=occupied))
                pointer += 1
            mirrored.append(replace(table, seats=tuple(table_seats)))
        return mirrored

    def synthesize(
        self,
        capacity: int,
        occupancy_percent: float,
        now: Optional[datetime] = None,
    ) -> OccupancySnapshot:
        """
        Full pass: grid, occupancy, tables, mirroring.

        A fractional percent is rounded half-up before use.
        """
        occupancy_percent = round_half_up(occupancy_percent)
        seats = self.apply_occupancy(
            self.synthesize_grid(capacity), occupancy_percent, capacity
        )
        tables = self.mirror_tables(self.synthesize_tables(capacity), seats)

        return OccupancySnapshot(
            seats=tuple(seats),
            tables=tuple(tables),
            occupancy_percent=occupancy_percent,
            last_update=now or datetime.now(timezone.utc),
        )
