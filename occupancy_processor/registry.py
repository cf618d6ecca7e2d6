"""
Place Registry - Thread-safe management of analyzed places.

Each place owns its capacity, its hour-of-day history, the latest committed
snapshot and two locks:

- run_lock: held for the whole of an analysis run (fetch, estimate,
  synthesize, commit), so runs for the same place never interleave
- state_lock: held only while reading or replacing capacity, snapshot and
  history, so queries and capacity changes never wait for a run

Lock order is run_lock then state_lock.

Thread Safety:
- Registry dict mutations guarded by a registry-level lock
- Per-place state guarded by the place's state lock
- Readers take snapshots under the lock and return immutable values
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from occupancy_vision.analytics import OccupancyHistory
from occupancy_vision.errors import InvalidCapacityError
from occupancy_vision.seating import OccupancySnapshot

from .config import PlaceConfig


@dataclass
class ManagedPlace:
    """
    Mutable per-place state.

    capacity, snapshot and history are only touched while holding
    state_lock. run_lock serializes analysis runs and guards nothing else.
    """

    place_id: str
    name: str
    capacity: int
    history: OccupancyHistory
    image_url: Optional[str] = None
    snapshot: Optional[OccupancySnapshot] = None
    run_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    state_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def initialized(self) -> bool:
        """False until the first snapshot is committed."""
        return self.snapshot is not None

    def summary(self) -> Dict[str, Any]:
        """Wire-friendly summary (for list_places)."""
        with self.state_lock:
            snapshot = self.snapshot
            capacity = self.capacity
        return {
            'placeId': self.place_id,
            'placeName': self.name,
            'capacity': capacity,
            'initialized': snapshot is not None,
            'occupancyPercent': snapshot.occupancy_percent if snapshot else None,
            'lastUpdate': snapshot.last_update.isoformat() if snapshot else None,
        }


class PlaceRegistry:
    """
    Thread-safe registry of places.

    Usage:
        registry = PlaceRegistry()
        registry.add_place(PlaceConfig(place_id="p1", name="Cafe", capacity=20))

        with registry.acquire("p1") as place:
            # exclusive for the whole run
            capacity = registry.get_capacity("p1")
            ...
            with registry.state("p1"):
                place.snapshot = snapshot
                place.history.record(snapshot.occupied_count, snapshot.capacity)
    """

    def __init__(self):
        self._places: Dict[str, ManagedPlace] = {}
        self._lock = threading.Lock()

    def add_place(self, config: PlaceConfig) -> ManagedPlace:
        """
        Register a place.

        Raises:
            ValueError: If place_id already exists
        """
        place = ManagedPlace(
            place_id=config.place_id,
            name=config.name,
            capacity=config.capacity,
            history=OccupancyHistory(place_id=config.place_id, place_name=config.name),
            image_url=config.image_url,
        )
        with self._lock:
            if config.place_id in self._places:
                raise ValueError(f"Place '{config.place_id}' already exists")
            self._places[config.place_id] = place
        return place

    def remove_place(self, place_id: str) -> None:
        """
        Raises:
            KeyError: If place_id does not exist
        """
        with self._lock:
            if place_id not in self._places:
                raise KeyError(f"Place '{place_id}' not found")
            del self._places[place_id]

    def get(self, place_id: str) -> ManagedPlace:
        """
        Raises:
            KeyError: If place_id does not exist
        """
        with self._lock:
            try:
                return self._places[place_id]
            except KeyError:
                raise KeyError(f"Place '{place_id}' not found") from None

    def __contains__(self, place_id: str) -> bool:
        with self._lock:
            return place_id in self._places

    def __len__(self) -> int:
        with self._lock:
            return len(self._places)

    @contextmanager
    def acquire(self, place_id: str) -> Iterator[ManagedPlace]:
        """Hold the place's run lock for the duration of the block (one run)."""
        place = self.get(place_id)
        with place.run_lock:
            yield place

    @contextmanager
    def state(self, place_id: str) -> Iterator[ManagedPlace]:
        """Hold the place's state lock; keep the block short."""
        place = self.get(place_id)
        with place.state_lock:
            yield place

    def get_capacity(self, place_id: str) -> int:
        with self.state(place_id) as place:
            return place.capacity

    def set_capacity(self, place_id: str, capacity: int) -> None:
        """
        Change a place's capacity; takes effect on the next run.

        Does not wait for an in-flight run, which keeps the capacity it
        read when it started.

        Raises:
            KeyError: If place_id does not exist
            InvalidCapacityError: If capacity is not an int >= 1
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise InvalidCapacityError(f"capacity must be an int >= 1, got {capacity!r}")

        with self.state(place_id) as place:
            place.capacity = capacity

    def get_snapshot(self, place_id: str) -> Optional[OccupancySnapshot]:
        """Latest committed snapshot, or None when not initialized."""
        with self.state(place_id) as place:
            return place.snapshot

    def get_history(self, place_id: str) -> Dict[str, Any]:
        """Serialized history (hourly buckets, daily stats, peak hours)."""
        with self.state(place_id) as place:
            return place.history.to_dict()

    def list_places(self) -> List[Dict[str, Any]]:
        """
        Summaries of all places.

        Snapshot pattern: copy the place list under the registry lock, then
        read each place without holding it.
        """
        with self._lock:
            places = list(self._places.values())
        return [place.summary() for place in places]
