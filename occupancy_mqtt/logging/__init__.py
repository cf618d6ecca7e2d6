"""
Structured Logging for Occupancy MQTT
=====================================

Bounded Context: Observability

Design:
- JSON output (parseable by ELK, CloudWatch, Loki)
- Typed events (enums prevent typos)
- Contextual metadata (place_id, source, samples, ...)
- Thread-safe

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function
"""

from .events import LogEvent
from .structured import StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
