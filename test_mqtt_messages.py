"""
Test MQTT Messages and Control Plane (Without Real Broker)
=========================================================

Serializes live-data and history messages the way the publishers do, and
drives the command registry and control plane dispatch directly.

Usage:
    python test_mqtt_messages.py
    pytest test_mqtt_messages.py
"""

import json
import random
from datetime import datetime, timezone

import pytest

from occupancy_control import (
    CommandNotAvailableError,
    CommandRegistry,
    CommandValidationError,
    MQTTControlPlane,
)
from occupancy_mqtt import (
    HistoryUpdatePublisher,
    LiveDataPublisher,
    LogEvent,
    create_logger,
)
from occupancy_mqtt.schemas import HistoryUpdateMessage, LiveDataMessage, Timestamp
from occupancy_vision import SeatSynthesizer


def make_snapshot(capacity: int = 20, percent: int = 65):
    return SeatSynthesizer(random.Random(3)).synthesize(
        capacity, percent, now=datetime(2025, 10, 24, 15, 30, tzinfo=timezone.utc)
    )


def test_live_data_serialization():
    print("\n" + "=" * 60)
    print("TEST: Live data serialization")
    print("=" * 60)

    logger = create_logger("test")
    publisher = LiveDataPublisher(
        broker_host="localhost",
        topic="occupancy/data/live/test",
        logger=logger,
    )
    print("✓ LiveDataPublisher created")

    msg = LiveDataMessage.from_snapshot("cafe", "Cafe Central", make_snapshot())
    serialized = publisher.format_message(msg)
    json_str = json.dumps(serialized)
    print(f"✓ Serialized to JSON ({len(json_str)} bytes)")

    data = json.loads(json_str)
    assert set(data) == {"placeId", "placeName", "seats", "tables", "lastUpdate"}
    assert data["placeId"] == "cafe"
    assert data["seats"][0] == {"id": "1-1", "occupied": data["seats"][0]["occupied"]}
    assert sum(1 for s in data["seats"] if s["occupied"]) == 13
    assert set(data["tables"][0]) == {"id", "seats"}
    assert data["lastUpdate"] == "2025-10-24T15:30:00+00:00"
    print("✓ Wire shape {placeId, placeName, seats, tables, lastUpdate}")

    reconstructed = LiveDataMessage.from_dict(data)
    assert reconstructed == msg
    assert reconstructed.occupied_seats == 13
    assert reconstructed.total_seats == 20
    print("✓ Verification passed: Original == Reconstructed")


def test_history_update_serialization():
    print("\n" + "=" * 60)
    print("TEST: History update serialization")
    print("=" * 60)

    publisher = HistoryUpdatePublisher(
        broker_host="localhost",
        topic="occupancy/data/history/test",
        logger=create_logger("test"),
    )
    msg = HistoryUpdateMessage(place_id="cafe", place_name="Cafe", occupied_seats=13, total_seats=20)
    data = json.loads(json.dumps(publisher.format_message(msg)))

    assert data == {"placeId": "cafe", "placeName": "Cafe", "occupiedSeats": 13, "totalSeats": 20}
    assert HistoryUpdateMessage.from_dict(data) == msg
    assert msg.occupancy_rate == pytest.approx(65.0)
    print("✓ {placeId, placeName, occupiedSeats, totalSeats}")

    with pytest.raises(ValueError):
        HistoryUpdateMessage(place_id="cafe", place_name="Cafe", occupied_seats=1, total_seats=0)
    with pytest.raises(ValueError):
        HistoryUpdateMessage(place_id="cafe", place_name="Cafe", occupied_seats=21, total_seats=20)
    with pytest.raises(ValueError):
        HistoryUpdateMessage.from_dict({"placeId": "cafe", "placeName": "Cafe", "totalSeats": 20})
    print("✓ Invalid counts and missing fields rejected")


def test_timestamp():
    naive = Timestamp.from_datetime(datetime(2025, 1, 2, 3, 4, 5))
    assert naive.value == "2025-01-02T03:04:05+00:00"
    assert naive.to_datetime().tzinfo is not None
    assert Timestamp.now().to_datetime().tzinfo is not None
    with pytest.raises(ValueError):
        Timestamp(value="yesterday")


def test_publish_without_broker_fails_cleanly():
    publisher = LiveDataPublisher(
        broker_host="localhost",
        topic="occupancy/data/live/test",
        logger=create_logger("test"),
    )
    msg = LiveDataMessage.from_snapshot("cafe", "Cafe", make_snapshot(capacity=4, percent=50))

    assert publisher.is_connected() is False
    assert publisher.publish_live_data(msg) is False
    assert publisher.get_stats()["message_count"] == 0


def test_structured_log_entry():
    logger = create_logger("test_entry")
    entry = logger.build_entry(
        "ERROR",
        LogEvent.DECODE_ERROR,
        "Upload is not an image",
        metadata={"place_id": "cafe"},
        exc_info=ValueError("bad bytes"),
    )
    assert entry["event"] == "error.decode"
    assert entry["component"] == "test_entry"
    assert entry["metadata"] == {"place_id": "cafe"}
    assert entry["exception"] == {"type": "ValueError", "message": "bad bytes"}
    json.dumps(entry)


def test_command_registry():
    print("\n" + "=" * 60)
    print("TEST: Command registry")
    print("=" * 60)

    calls = []
    registry = CommandRegistry()
    registry.register(
        "analyze_image",
        lambda data: calls.append(data) or "queued",
        "Analyze an image",
        required_fields=("place_id", "image_ref"),
    )
    registry.register("list_places", lambda data: "listed", "List places")

    assert registry.count() == 2
    assert registry.available_commands == {"analyze_image", "list_places"}
    assert registry.required_fields("analyze_image") == ("place_id", "image_ref")

    payload = {"command": "analyze_image", "place_id": "cafe", "image_ref": "/uploads/a.jpg"}
    assert registry.execute("analyze_image", payload) == "queued"
    assert calls == [payload]
    print("✓ Registered command executes with full payload")

    with pytest.raises(CommandValidationError):
        registry.execute("analyze_image", {"command": "analyze_image", "place_id": "cafe"})
    with pytest.raises(CommandValidationError):
        registry.execute("analyze_image", {"place_id": "", "image_ref": "/uploads/a.jpg"})
    with pytest.raises(CommandNotAvailableError):
        registry.execute("reboot", {})
    with pytest.raises(ValueError):
        registry.register("list_places", lambda data: None, "again")
    assert len(calls) == 1
    print("✓ Missing fields, unknown and duplicate commands rejected")


def test_control_plane_dispatch_without_broker():
    print("\n" + "=" * 60)
    print("TEST: Control plane dispatch")
    print("=" * 60)

    plane = MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic="occupancy/control/test/commands",
        status_topic="occupancy/control/test/status",
        client_id="test_control",
    )
    seen = []
    plane.command_registry.register(
        "get_history", seen.append, "History", required_fields=("place_id",)
    )

    assert plane.dispatch({"command": "GET_HISTORY", "place_id": "cafe"}) is True
    assert seen == [{"command": "GET_HISTORY", "place_id": "cafe"}]
    print("✓ Command names are case-insensitive")

    assert plane.dispatch({"command": "get_history"}) is False
    assert plane.dispatch({"command": "unknown"}) is False
    assert plane.dispatch({}) is False
    assert plane.dispatch(["not", "an", "object"]) is False
    assert len(seen) == 1
    print("✓ Rejected commands never reach handlers")

    status = plane.build_status("history", {"placeId": "cafe"})
    assert status["status"] == "history"
    assert status["client_id"] == "test_control"
    assert status["details"] == {"placeId": "cafe"}
    assert "details" not in plane.build_status("running")


def main():
    """Run all tests."""
    print("\n📡 occupancy_mqtt / occupancy_control - Message Tests")
    print("=" * 60)
    print("Testing without real MQTT broker")
    print("=" * 60)

    try:
        test_live_data_serialization()
        test_history_update_serialization()
        test_timestamp()
        test_publish_without_broker_fails_cleanly()
        test_structured_log_entry()
        test_command_registry()
        test_control_plane_dispatch_without_broker()

        print("\n" + "=" * 60)
        print("✅ ALL TESTS PASSED!")
        print("=" * 60)
        print("\n🎯 Next Steps:")
        print("   1. Start MQTT broker: mosquitto -v")
        print("   2. python run_analyzer.py --config config/analyzer_config.yaml")
        print("   3. occupancy-cli --wait analyze-image cafe-central /uploads/places/cafe-central.jpg")

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        raise


if __name__ == "__main__":
    main()
