"""
Occupancy CLI - Main entry point.

Sends MQTT commands to the occupancy analyzer, and runs the estimator
offline on a local image or video.
"""

import argparse
import json
import random
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from occupancy_vision import (
    OccupancyError,
    SeatSynthesizer,
    VideoFrameExtractor,
    VideoSampler,
    build_image_estimator,
    build_video_estimator,
)
from occupancy_mqtt.schemas import LiveDataMessage

from .mqtt_client import MQTTCommandClient

VIDEO_SUFFIXES = {".mp4", ".mov", ".avi", ".mkv", ".webm"}


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load a command payload from YAML.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")


def command_topic(service_id: str) -> str:
    return f"occupancy/control/{service_id}/commands"


def status_topic(service_id: str) -> str:
    return f"occupancy/control/{service_id}/status"


def build_command(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed arguments into a control-plane payload."""
    if args.command == 'analyze-image':
        command = {'command': 'analyze_image', 'place_id': args.place_id}
        if args.image_ref:
            command['image_ref'] = args.image_ref
        return command

    if args.command == 'analyze-video':
        return {
            'command': 'analyze_video',
            'place_id': args.place_id,
            'video_path': args.video_path,
        }

    if args.command == 'set-capacity':
        return {
            'command': 'set_capacity',
            'place_id': args.place_id,
            'capacity': args.capacity,
        }

    if args.command == 'history':
        return {'command': 'get_history', 'place_id': args.place_id}

    if args.command == 'live':
        return {'command': 'get_live_data', 'place_id': args.place_id}

    if args.command == 'list-places':
        return {'command': 'list_places'}

    if args.command == 'send':
        return load_yaml_config(args.config)

    raise ValueError(f"Not a control command: {args.command}")


def estimate_offline(
    media_path: str,
    capacity: int,
    place_id: str = "local",
    seed: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Run the estimator and synthesizer on a local file (no broker needed).

    Returns:
        Live-data payload plus occupancyPercent

    Raises:
        OccupancyError: If the media cannot be analyzed
    """
    rng = random.Random(seed)
    path = Path(media_path)

    if path.suffix.lower() in VIDEO_SUFFIXES:
        extractor = VideoFrameExtractor(path)
        result = VideoSampler().sample_and_score(
            extractor.probe_duration(),
            frame_extractor=extractor.extract_at,
            frame_scorer=build_video_estimator(rng=rng).score_frame,
            fallback_extractor=extractor.extract_first,
        )
        percent = result.occupancy_percent
        if percent is None:
            raise OccupancyError(f"No frame of {media_path} could be scored")
    else:
        if not path.is_file():
            raise FileNotFoundError(f"Image not found: {media_path}")
        percent = build_image_estimator(rng=rng).estimate_image(path.read_bytes()).occupancy_percent

    snapshot = SeatSynthesizer(rng).synthesize(capacity, percent)
    payload = LiveDataMessage.from_snapshot(place_id, path.name, snapshot).to_dict()
    payload['occupancyPercent'] = snapshot.occupancy_percent
    return payload


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Occupancy CLI - Control the occupancy analyzer over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze the uploaded image of a place
  occupancy-cli analyze-image cafe-central /uploads/places/cafe.jpg

  # Analyze an uploaded video and wait for the result
  occupancy-cli --wait analyze-video cafe-central /uploads/videos/clip.mp4

  # Management
  occupancy-cli set-capacity cafe-central 32
  occupancy-cli --wait list-places
  occupancy-cli --wait history cafe-central
  occupancy-cli --wait live cafe-central
  occupancy-cli status

  # Raw command from YAML
  occupancy-cli send config/commands/analyze_image.yaml

  # Offline estimate (no broker)
  occupancy-cli estimate photo.jpg --capacity 20 --seed 7
"""
    )

    parser.add_argument(
        "--service-id",
        default="analyzer-1",
        help="Target service ID (default: analyzer-1)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for the analyzer's status reply and print it"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Seconds to wait for a reply (default: 10)"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    analyze_image = subparsers.add_parser('analyze-image', help='Analyze an image for a place')
    analyze_image.add_argument('place_id', help='Place ID')
    analyze_image.add_argument('image_ref', nargs='?', help='/uploads/... path or URL (default: place image_url)')

    analyze_video = subparsers.add_parser('analyze-video', help='Analyze a video for a place')
    analyze_video.add_argument('place_id', help='Place ID')
    analyze_video.add_argument('video_path', help='/uploads/... path or file path on the analyzer host')

    set_capacity = subparsers.add_parser('set-capacity', help='Change seat capacity of a place')
    set_capacity.add_argument('place_id', help='Place ID')
    set_capacity.add_argument('capacity', type=int, help='New capacity (>= 1)')

    history = subparsers.add_parser('history', help='Hourly history of a place')
    history.add_argument('place_id', help='Place ID')

    live = subparsers.add_parser('live', help='Latest snapshot of a place')
    live.add_argument('place_id', help='Place ID')

    subparsers.add_parser('list-places', help='List managed places')
    subparsers.add_parser('status', help='Show the last retained analyzer status')

    send = subparsers.add_parser('send', help='Send a raw command from YAML')
    send.add_argument('config', help='Path to command YAML')

    estimate = subparsers.add_parser('estimate', help='Estimate occupancy of a local file offline')
    estimate.add_argument('media', help='Image or video file')
    estimate.add_argument('--capacity', type=int, default=20, help='Seat capacity (default: 20)')
    estimate.add_argument('--seed', type=int, default=None, help='Random seed for reproducible output')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == 'estimate':
            print(json.dumps(estimate_offline(args.media, args.capacity, seed=args.seed), indent=2))
            return

        client = MQTTCommandClient(broker=args.broker, port=args.port)

        if args.command == 'status':
            status = client.read_status(status_topic(args.service_id), timeout=args.timeout)
            if status is None:
                print("⚠️ No status retained for this service", file=sys.stderr)
                sys.exit(2)
            print(json.dumps(status, indent=2))
            return

        command = build_command(args)
        if args.wait:
            reply = client.request(
                command_topic(args.service_id),
                status_topic(args.service_id),
                command,
                timeout=args.timeout,
            )
            if reply is None:
                print(f"⚠️ No reply within {args.timeout}s", file=sys.stderr)
                sys.exit(2)
            print(json.dumps(reply, indent=2))
        else:
            client.send_command(command_topic(args.service_id), command, qos=1)

    except (OccupancyError, OSError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
