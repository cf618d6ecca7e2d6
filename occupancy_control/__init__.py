"""
Occupancy Control Plane
=======================

MQTT command reception for the occupancy analyzer: the upstream "media
uploaded" events (analyze_image, analyze_video) plus management commands.

Public API
----------
    MQTTControlPlane: Connection, command subscription, status publishing
    CommandRegistry: Explicit command registration with payload validation
    CommandNotAvailableError, CommandValidationError
"""

from .plane import MQTTControlPlane
from .registry import CommandRegistry, CommandNotAvailableError, CommandValidationError

__all__ = [
    'MQTTControlPlane',
    'CommandRegistry',
    'CommandNotAvailableError',
    'CommandValidationError',
]
