"""
Seating Layer
=============

Bounded Context: Turning a scalar occupancy percentage into a structured,
count-exact seat/table state.

Design Philosophy:
- Immutable outputs (Seat, Table, OccupancySnapshot)
- Randomness injected (seedable random.Random)
- Regenerated wholesale on every run, never patched
"""

from occupancy_vision.seating.synthesizer import (
    Seat,
    Table,
    OccupancySnapshot,
    SeatSynthesizer,
    occupied_count_for,
)

__all__ = [
    "Seat",
    "Table",
    "OccupancySnapshot",
    "SeatSynthesizer",
    "occupied_count_for",
]
