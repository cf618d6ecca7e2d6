"""
Structured JSON Logger
=====================

Bounded Context: Observability Infrastructure

Operators see analysis outcomes only through these logs, so every run
ends in exactly one structured record (completed, no_data or error.*).

Design:
- JSON output (compatible with log aggregators)
- Thread-safe (uses standard logging module)
- Contextual metadata (place_id, source, samples, ...)
- Type-safe events (LogEvent enum)

Example:
    >>> logger = StructuredLogger(component="analyzer")
    >>> logger.info(
    ...     event=LogEvent.ANALYSIS_IMAGE_COMPLETED,
    ...     message="Image analyzed",
    ...     metadata={'place_id': 'p1', 'occupancy_percent': 65}
    ... )

Output:
    {
        "timestamp": "2025-10-24T15:30:45.123456+00:00",
        "level": "INFO",
        "component": "analyzer",
        "event": "analysis.image.completed",
        "message": "Image analyzed",
        "metadata": {"place_id": "p1", "occupancy_percent": 65}
    }
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from .events import LogEvent


class StructuredLogger:
    """
    JSON structured logger for production observability.

    Attributes:
        component: Component name (e.g., "analyzer", "mqtt_publisher")
        logger: Underlying Python logger instance

    Thread Safety:
        Thread-safe via Python's logging module.
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None
    ):
        """
        Initialize structured logger.

        Args:
            component: Component identifier (e.g., "analyzer")
            level: Logging level (default: INFO)
            logger_name: Custom logger name (default: occupancy_mqtt.<component>)
        """
        self.component = component
        self.logger_name = logger_name or f"occupancy_mqtt.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)

        # JSON lines go to our own handler, not through root formatting
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def build_entry(
        self,
        level: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> Dict[str, Any]:
        """Assemble the JSON-compatible log record."""
        entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level,
            'component': self.component,
            'event': LogEvent(event).value,
            'message': message,
        }

        if metadata:
            entry['metadata'] = metadata

        if exc_info:
            entry['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info)
            }

        return entry

    def _log(
        self,
        level: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        entry = self.build_entry(level, event, message, metadata, exc_info)
        self.logger.log(
            getattr(logging, level),
            json.dumps(entry, default=str),
            exc_info=exc_info if level == 'ERROR' else None
        )

    def info(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log INFO level message."""
        self._log('INFO', event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Log WARNING level message.

        Example:
            >>> logger.warning(
            ...     event=LogEvent.DECODE_ERROR,
            ...     message="Upload is not an image",
            ...     metadata={'place_id': 'p1'}
            ... )
        """
        self._log('WARNING', event, message, metadata, exc_info)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Log ERROR level message (traceback attached when exc_info given).

        Example:
            >>> try:
            ...     synthesizer.synthesize(capacity=0, occupancy_percent=50)
            ... except InvalidCapacityError as e:
            ...     logger.error(
            ...         event=LogEvent.INVALID_CAPACITY,
            ...         message="Place record has invalid capacity",
            ...         exc_info=e,
            ...         metadata={'place_id': 'p1'}
            ...     )
        """
        self._log('ERROR', event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        """Change logging level dynamically."""
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """
    Pass-through formatter: StructuredLogger already emits JSON.

    Tracebacks (ERROR records) are appended on following lines.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def create_logger(
    component: str,
    level: int = logging.INFO
) -> StructuredLogger:
    """
    Factory function to create configured StructuredLogger.

    Example:
        >>> logger = create_logger("analyzer", level=logging.DEBUG)
    """
    return StructuredLogger(component=component, level=level)
