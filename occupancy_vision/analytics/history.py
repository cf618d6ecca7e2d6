"""
Occupancy History Module
========================

Stateful accumulator of 24 hour-of-day buckets for one place.

Per recorded snapshot at hour h with rate = occupied / total * 100:
    avg[h]      = round((avg[h] + rate) / 2)     (running half-weight blend)
    peak[h]     = max(peak[h], rate)
    visitors[h] += occupied
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from occupancy_vision.errors import InvalidCapacityError
from occupancy_vision.rounding import round_half_up

HOURS_PER_DAY = 24


def wait_time_band(occupancy_rate: float) -> str:
    """Estimated wait-time label for an occupancy rate (0..100)."""
    if occupancy_rate < 30:
        return "0-2 min"
    if occupancy_rate < 70:
        return "3-5 min"
    if occupancy_rate < 90:
        return "5-10 min"
    return "10+ min"


def hour_range_label(hour: int) -> str:
    """Label like "9:00 - 10:00" for a bucket."""
    return f"{hour}:00 - {hour + 1}:00"


@dataclass(frozen=True)
class HourlyBucket:
    """Immutable statistics for one hour of the day."""

    hour: int
    avg_occupancy: float = 0.0
    peak_occupancy: float = 0.0
    total_visitors: int = 0

    def __post_init__(self):
        """Validate invariants."""
        if not 0 <= self.hour < HOURS_PER_DAY:
            raise ValueError(f"hour must be in [0, 23], got {self.hour}")
        if self.total_visitors < 0:
            raise ValueError(f"total_visitors must be >= 0, got {self.total_visitors}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with wire field names."""
        return {
            "hour": self.hour,
            "avgOccupancy": self.avg_occupancy,
            "peakOccupancy": self.peak_occupancy,
            "totalVisitors": self.total_visitors,
        }


@dataclass(frozen=True)
class DailyStats:
    """Immutable day-level summary derived from the buckets."""

    avg_occupancy: int = 0
    peak_time: str = "N/A"
    avg_wait_time: str = "0 min"
    total_visitors: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "avgOccupancy": self.avg_occupancy,
            "peakTime": self.peak_time,
            "avgWaitTime": self.avg_wait_time,
            "totalVisitors": self.total_visitors,
        }


class OccupancyHistory:
    """
    Hour-of-day occupancy accumulator for one place.

    Usage:
        history = OccupancyHistory(place_id="p1", place_name="Cafe")
        history.record(occupied_seats=13, total_seats=20)
        history.get_buckets()[datetime.now().hour].avg_occupancy
        history.get_daily_stats().avg_wait_time  # "3-5 min"

    Thread Safety:
        None internally; the place registry serializes access per place.
    """

    def __init__(self, place_id: str, place_name: str):
        self.place_id = place_id
        self.place_name = place_name
        self._buckets: List[HourlyBucket] = [
            HourlyBucket(hour=h) for h in range(HOURS_PER_DAY)
        ]
        self._avg_wait_time = "0 min"
        self._last_recorded: Optional[datetime] = None

    def record(
        self,
        occupied_seats: int,
        total_seats: int,
        when: Optional[datetime] = None,
    ) -> HourlyBucket:
        """
        Fold one observation into its hour-of-day bucket.

        Returns:
            The updated bucket

        Raises:
            InvalidCapacityError: If total_seats < 1
            ValueError: If occupied_seats is outside [0, total_seats]
        """
        if total_seats < 1:
            raise InvalidCapacityError(f"total_seats must be >= 1, got {total_seats}")
        if not 0 <= occupied_seats <= total_seats:
            raise ValueError(
                f"occupied_seats must be in [0, {total_seats}], got {occupied_seats}"
            )

        when = when or datetime.now()
        rate = occupied_seats / total_seats * 100

        bucket = self._buckets[when.hour]
        updated = replace(
            bucket,
            avg_occupancy=float(round_half_up((bucket.avg_occupancy + rate) / 2)),
            peak_occupancy=max(bucket.peak_occupancy, rate),
            total_visitors=bucket.total_visitors + occupied_seats,
        )
        self._buckets[when.hour] = updated

        self._avg_wait_time = wait_time_band(rate)
        self._last_recorded = when
        return updated

    def get_buckets(self) -> List[HourlyBucket]:
        """Copy of all 24 buckets, ordered by hour."""
        return list(self._buckets)

    def get_daily_stats(self) -> DailyStats:
        """Day-level summary (mean of non-zero hourly averages, peak hour, ...)."""
        active = [b.avg_occupancy for b in self._buckets if b.avg_occupancy > 0]
        avg_occupancy = round_half_up(sum(active) / len(active)) if active else 0

        peak = self._buckets[0]
        for bucket in self._buckets[1:]:
            if bucket.peak_occupancy > peak.peak_occupancy:
                peak = bucket

        return DailyStats(
            avg_occupancy=avg_occupancy,
            peak_time=hour_range_label(peak.hour) if peak.peak_occupancy > 0 else "N/A",
            avg_wait_time=self._avg_wait_time,
            total_visitors=sum(b.total_visitors for b in self._buckets),
        )

    def peak_hours(self, n: int = 3) -> List[HourlyBucket]:
        """
        Top n hours by peak occupancy (stable on ties, earliest first).

        Hours with no observation are never listed, so fewer than n buckets
        may be returned.
        """
        active = [b for b in self._buckets if b.peak_occupancy > 0]
        return sorted(active, key=lambda b: b.peak_occupancy, reverse=True)[:n]

    @property
    def last_recorded(self) -> Optional[datetime]:
        return self._last_recorded

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the full history with wire field names."""
        return {
            "placeId": self.place_id,
            "placeName": self.place_name,
            "hourlyData": [b.to_dict() for b in self._buckets],
            "todayStats": self.get_daily_stats().to_dict(),
            "peakHours": [
                {"time": hour_range_label(b.hour), "occupancy": f"{round_half_up(b.peak_occupancy)}%"}
                for b in self.peak_hours()
            ],
        }

    def reset(self) -> None:
        """Clear all buckets."""
        self._buckets = [HourlyBucket(hour=h) for h in range(HOURS_PER_DAY)]
        self._avg_wait_time = "0 min"
        self._last_recorded = None
