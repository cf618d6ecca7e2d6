"""
MQTT Publishers
==============

Bounded Context: Message Production

Design:
- BasePublisher: Abstract base with connection management
- LiveDataPublisher: Publishes retained live snapshots
- HistoryUpdatePublisher: Publishes history observations

Public API
----------
    BasePublisher: Abstract publisher (for custom publishers)
    LiveDataPublisher: Live data publisher
    HistoryUpdatePublisher: History update publisher
"""

from .base import BasePublisher
from .live_data import LiveDataPublisher
from .history import HistoryUpdatePublisher

__all__ = [
    'BasePublisher',
    'LiveDataPublisher',
    'HistoryUpdatePublisher',
]
