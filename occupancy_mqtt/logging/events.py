"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

This module defines typed event names for structured logging.

Design:
- Enum-based (prevents typos, enables autocomplete)
- Hierarchical naming (namespace.category.action)
- Searchable in log aggregators (Elasticsearch, CloudWatch Insights)

Event Naming Convention:
    <component>.<category>.<action>

    component: analysis, snapshot, history, mqtt, error
    category: image, video, publish
    action: started, completed, success, failed

Example Log Query (CloudWatch Insights):
    fields @timestamp, event, message, metadata.place_id
    | filter event = "analysis.video.no_data"
    | stats count() by bin(1h)
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - analysis.*: Analysis run lifecycle
    - snapshot.* / history.*: Committed results
    - mqtt.*: MQTT broker interactions
    - error.*: Error conditions (one per error kind)
    """

    # ========== Analysis Events ==========
    ANALYSIS_IMAGE_STARTED = "analysis.image.started"
    """Image analysis run started for a place."""

    ANALYSIS_IMAGE_COMPLETED = "analysis.image.completed"
    """Image analysis produced a snapshot."""

    ANALYSIS_VIDEO_STARTED = "analysis.video.started"
    """Video analysis run started for a place."""

    ANALYSIS_VIDEO_COMPLETED = "analysis.video.completed"
    """Video analysis produced a snapshot."""

    ANALYSIS_VIDEO_NO_DATA = "analysis.video.no_data"
    """Frames were extracted but none could be scored."""

    # ========== Result Events ==========
    SNAPSHOT_COMMITTED = "snapshot.committed"
    """Snapshot replaced the place's live data."""

    HISTORY_UPDATED = "history.updated"
    """Hourly bucket updated from a committed snapshot."""

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    LIVE_DATA_SERIALIZED = "live_data.serialized"
    """Live-data message serialized to JSON."""

    HISTORY_UPDATE_SERIALIZED = "history.update.serialized"
    """History update message serialized to JSON."""

    # ========== Error Events ==========
    DECODE_ERROR = "error.decode"
    """Image buffer is not a recognized raster format."""

    INVALID_CAPACITY = "error.invalid_capacity"
    """Place capacity below 1 (data-integrity issue)."""

    NO_FRAMES_AVAILABLE = "error.no_frames"
    """No video frame could be extracted, fallback included."""

    REMOTE_FETCH_ERROR = "error.remote_fetch"
    """Remote image could not be fetched."""

    MEDIA_NOT_FOUND = "error.media_not_found"
    """Local upload or video file is missing."""

    ANALYSIS_ERROR = "error.analysis"
    """Unexpected failure inside an analysis run."""

    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize message to JSON."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""


# Event categories for filtering
ANALYSIS_EVENTS = {
    LogEvent.ANALYSIS_IMAGE_STARTED,
    LogEvent.ANALYSIS_IMAGE_COMPLETED,
    LogEvent.ANALYSIS_VIDEO_STARTED,
    LogEvent.ANALYSIS_VIDEO_COMPLETED,
    LogEvent.ANALYSIS_VIDEO_NO_DATA,
}

MQTT_EVENTS = {
    LogEvent.MQTT_CONNECTED,
    LogEvent.MQTT_DISCONNECTED,
    LogEvent.MQTT_PUBLISH_SUCCESS,
    LogEvent.MQTT_PUBLISH_FAILED,
}

ERROR_EVENTS = {
    LogEvent.DECODE_ERROR,
    LogEvent.INVALID_CAPACITY,
    LogEvent.NO_FRAMES_AVAILABLE,
    LogEvent.REMOTE_FETCH_ERROR,
    LogEvent.MEDIA_NOT_FOUND,
    LogEvent.ANALYSIS_ERROR,
    LogEvent.SERIALIZATION_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
    LogEvent.MQTT_PUBLISH_ERROR,
}
