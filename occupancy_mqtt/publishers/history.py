"""
History Update Publisher
========================

Bounded Context: Hourly Aggregation Signal

Publishes one HistoryUpdateMessage per committed snapshot for the external
hourly aggregator. Not retained: every message is a distinct observation.
"""

from typing import Dict, Any, Optional
from .base import BasePublisher
from ..schemas import HistoryUpdateMessage
from ..logging import StructuredLogger, LogEvent


class HistoryUpdatePublisher(BasePublisher):
    """Publisher for HistoryUpdateMessage instances."""

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "occupancy_history_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1
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

    def format_message(self, update_msg: HistoryUpdateMessage) -> Dict[str, Any]:
        formatted = update_msg.to_dict()

        self.logger.info(
            event=LogEvent.HISTORY_UPDATE_SERIALIZED,
            message="Serialized history update",
            metadata={
                'place_id': update_msg.place_id,
                'occupied_seats': update_msg.occupied_seats,
                'total_seats': update_msg.total_seats
            }
        )
        return formatted

    def publish_update(self, update_msg: HistoryUpdateMessage) -> bool:
        """Publish one history observation; True on success."""
        return self.publish(self.format_message(update_msg))
