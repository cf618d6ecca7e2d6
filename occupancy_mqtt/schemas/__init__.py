"""
Occupancy MQTT Schemas
=====================

Bounded Context: Data Structures

Immutable, typed data structures for MQTT messages.

Design:
- Frozen dataclasses (immutability)
- to_dict() for JSON serialization (camelCase wire names)
- from_dict() for deserialization

Public API
----------
    Timestamp: ISO 8601 timestamp wrapper
    LiveDataMessage: Snapshot broadcast for one place
    HistoryUpdateMessage: Observation for the hourly aggregator
"""

from .common import Timestamp
from .live_data import LiveDataMessage
from .history import HistoryUpdateMessage

__all__ = [
    'Timestamp',
    'LiveDataMessage',
    'HistoryUpdateMessage',
]
