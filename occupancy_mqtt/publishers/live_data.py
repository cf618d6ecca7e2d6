"""
Live Data Publisher
===================

Bounded Context: Live Occupancy Broadcast

Publishes a place's latest snapshot. Messages are retained so a viewer that
subscribes later immediately receives the current state.

Example:
    >>> logger = create_logger("analyzer")
    >>> publisher = LiveDataPublisher(
    ...     broker_host="localhost",
    ...     topic="occupancy/data/live/analyzer-1",
    ...     logger=logger
    ... )
    >>> publisher.connect()
    >>> publisher.publish_live_data(LiveDataMessage.from_snapshot("p1", "Cafe", snapshot))
"""

from typing import Dict, Any, Optional
from .base import BasePublisher
from ..schemas import LiveDataMessage
from ..logging import StructuredLogger, LogEvent


class LiveDataPublisher(BasePublisher):
    """Publisher for LiveDataMessage instances."""

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "occupancy_live_data_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
        retain: bool = True
    ):
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            topic=topic,
            client_id=client_id,
            logger=logger,
            username=username,
            password=password,
            qos=qos
        )
        self.retain = retain

    def format_message(self, live_msg: LiveDataMessage) -> Dict[str, Any]:
        """Format LiveDataMessage to a JSON-compatible dict."""
        formatted = live_msg.to_dict()

        self.logger.info(
            event=LogEvent.LIVE_DATA_SERIALIZED,
            message="Serialized live data message",
            metadata={
                'place_id': live_msg.place_id,
                'occupied_seats': live_msg.occupied_seats,
                'total_seats': live_msg.total_seats,
                'tables': len(live_msg.tables)
            }
        )
        return formatted

    def publish_live_data(self, live_msg: LiveDataMessage) -> bool:
        """
        Publish live data for one place.

        Returns:
            True if published successfully, False otherwise
        """
        return self.publish(self.format_message(live_msg), retain=self.retain)
