"""
Configuration schema for the occupancy analyzer service.

This module defines the configuration structure for the analyzer: signal and
scoring parameters, video sampling limits, the managed places, and MQTT
publishing settings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import yaml

from occupancy_vision.sampling import DEFAULT_MAX_WIDTH
from occupancy_vision.signals import (
    EDGE_THRESHOLD,
    IMAGE_SKIN_SAMPLES,
    VIDEO_SKIN_SAMPLES,
    EdgePrecision,
)
from occupancy_vision.scoring import JITTER_AMPLITUDE


@dataclass(frozen=True)
class AnalysisConfig:
    """Signal extraction and scoring parameters."""

    max_width: int = DEFAULT_MAX_WIDTH
    edge_threshold: float = EDGE_THRESHOLD
    image_edge_precision: str = "sobel"
    video_edge_precision: str = "coarse"
    image_skin_samples: int = IMAGE_SKIN_SAMPLES
    video_skin_samples: int = VIDEO_SKIN_SAMPLES
    jitter_amplitude: float = JITTER_AMPLITUDE
    seed: Optional[int] = None  # None = nondeterministic jitter and layout

    def __post_init__(self):
        """Validate analysis configuration."""
        if self.max_width < 1:
            raise ValueError(f"max_width must be >= 1, got {self.max_width}")

        valid_precisions = {p.value for p in EdgePrecision}
        for name in ("image_edge_precision", "video_edge_precision"):
            value = getattr(self, name)
            if value not in valid_precisions:
                raise ValueError(
                    f"Invalid {name}: {value}. Must be one of {valid_precisions}"
                )

        if self.image_skin_samples < 1 or self.video_skin_samples < 1:
            raise ValueError("skin sample budgets must be >= 1")

        if self.jitter_amplitude < 0:
            raise ValueError(
                f"jitter_amplitude must be >= 0, got {self.jitter_amplitude}"
            )


@dataclass(frozen=True)
class VideoConfig:
    """Video frame sampling limits."""

    max_frames: int = 8
    timeout_floor_s: float = 2.0
    per_frame_timeout_s: float = 0.7

    def __post_init__(self):
        """Validate video configuration."""
        if self.max_frames < 1:
            raise ValueError(f"max_frames must be >= 1, got {self.max_frames}")
        if self.timeout_floor_s <= 0 or self.per_frame_timeout_s <= 0:
            raise ValueError("video timeouts must be > 0")


@dataclass(frozen=True)
class PlaceConfig:
    """A managed place. Capacity is the seat count used for synthesis."""

    place_id: str
    name: str
    capacity: int = 20
    image_url: Optional[str] = None

    def __post_init__(self):
        """Validate place configuration."""
        if not self.place_id:
            raise ValueError("place_id cannot be empty")
        if not isinstance(self.capacity, int) or self.capacity < 1:
            raise ValueError(
                f"Place '{self.place_id}' capacity must be an int >= 1, got {self.capacity!r}"
            )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1

    live_data_topic: str = "occupancy/data/live/{service_id}"
    history_topic: str = "occupancy/data/history/{service_id}"
    command_topic: str = "occupancy/control/{service_id}/commands"
    status_topic: str = "occupancy/control/{service_id}/status"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

    def topic(self, template: str, service_id: str) -> str:
        """Expand a topic template for a service."""
        return template.format(service_id=service_id)


@dataclass(frozen=True)
class AnalyzerConfig:
    """
    Main configuration for the analyzer service.

    Loaded from YAML and validated at startup. Immutable after construction.
    """

    service_id: str
    uploads_dir: Path = Path("./uploads")
    max_workers: int = 4
    fetch_timeout_s: float = 10.0

    analysis_config: AnalysisConfig = field(default_factory=AnalysisConfig)
    video_config: VideoConfig = field(default_factory=VideoConfig)
    places: List[PlaceConfig] = field(default_factory=list)
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)

    def __post_init__(self):
        """Validate analyzer configuration."""
        if not self.service_id:
            raise ValueError("service_id cannot be empty")

        if not 1 <= self.max_workers <= 64:
            raise ValueError(
                f"max_workers must be in [1, 64], got {self.max_workers}"
            )

        if self.fetch_timeout_s <= 0:
            raise ValueError(
                f"fetch_timeout_s must be > 0, got {self.fetch_timeout_s}"
            )

        place_ids = [p.place_id for p in self.places]
        duplicates = {pid for pid in place_ids if place_ids.count(pid) > 1}
        if duplicates:
            raise ValueError(f"Duplicate place_id(s): {sorted(duplicates)}")

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "AnalyzerConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            service_id: "analyzer-1"
            uploads_dir: "./uploads"
            max_workers: 4

            analysis_config:
              max_width: 320
              seed: null

            video_config:
              max_frames: 8

            places:
              - place_id: "cafe-central"
                name: "Cafe Central"
                capacity: 24

            mqtt_config:
              broker: "localhost"
              port: 1883

        Raises:
            FileNotFoundError: If yaml_path does not exist
            ValueError: If any section is invalid
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        analysis_config = AnalysisConfig(**data.get("analysis_config", {}))
        video_config = VideoConfig(**data.get("video_config", {}))
        mqtt_config = MQTTConfig(**data.get("mqtt_config", {}))

        places = [
            PlaceConfig(
                place_id=str(p["place_id"]),
                name=p.get("name", str(p["place_id"])),
                capacity=p.get("capacity", 20),
                image_url=p.get("image_url"),
            )
            for p in data.get("places", [])
        ]

        return cls(
            service_id=data["service_id"],
            uploads_dir=Path(data.get("uploads_dir", "./uploads")),
            max_workers=data.get("max_workers", 4),
            fetch_timeout_s=data.get("fetch_timeout_s", 10.0),
            analysis_config=analysis_config,
            video_config=video_config,
            places=places,
            mqtt_config=mqtt_config,
        )
