"""
Occupancy MQTT Communication Package
====================================

Bounded Context: Communication Protocol for Occupancy Broadcast

MQTT messaging between the occupancy analyzer and its consumers: viewers of
live seat maps and the hourly history aggregator.

Architecture:
- schemas/: Immutable data structures (camelCase wire shapes)
- publishers/: Message producers (LiveDataPublisher, HistoryUpdatePublisher)
- logging/: Structured JSON logging for observability

Public API
----------
Schemas:
    Timestamp, LiveDataMessage, HistoryUpdateMessage

Publishers:
    LiveDataPublisher, HistoryUpdatePublisher
    BasePublisher (for custom publishers)

Logging:
    LogEvent, StructuredLogger, create_logger

Example:
    >>> from occupancy_mqtt import LiveDataPublisher, LiveDataMessage, create_logger
    >>>
    >>> logger = create_logger("analyzer")
    >>> publisher = LiveDataPublisher(
    ...     broker_host="localhost",
    ...     topic="occupancy/data/live/analyzer-1",
    ...     logger=logger
    ... )
    >>> publisher.connect()
    >>> publisher.publish_live_data(LiveDataMessage.from_snapshot("p1", "Cafe", snapshot))
"""

from .schemas import Timestamp, LiveDataMessage, HistoryUpdateMessage
from .publishers import BasePublisher, LiveDataPublisher, HistoryUpdatePublisher
from .logging import LogEvent, StructuredLogger, create_logger

__version__ = "1.0.0"

__all__ = [
    # Schemas
    'Timestamp',
    'LiveDataMessage',
    'HistoryUpdateMessage',
    # Publishers
    'BasePublisher',
    'LiveDataPublisher',
    'HistoryUpdatePublisher',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
