"""
Analytics Layer
===============

Bounded Context: Hour-of-day occupancy trends per place.

Design Philosophy:
- Mutable accumulator (OccupancyHistory)
- Immutable outputs (HourlyBucket, DailyStats)
- Thread-safety via encapsulation (caller must synchronize)
"""

from occupancy_vision.analytics.history import (
    HourlyBucket,
    DailyStats,
    OccupancyHistory,
    wait_time_band,
    hour_range_label,
)

__all__ = [
    "HourlyBucket",
    "DailyStats",
    "OccupancyHistory",
    "wait_time_band",
    "hour_range_label",
]
