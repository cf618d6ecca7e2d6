"""
occupancy_processor - Occupancy analysis service

Bounded Context: Turning upload events into committed occupancy snapshots
Responsibilities:
  - Configuration (YAML → frozen dataclasses)
  - Place registry (capacity, per-place run lock, history, latest snapshot)
  - Media resolution (uploads dir or remote URL)
  - Orchestration of image and video runs on a bounded worker pool
"""

from occupancy_processor.config import (
    AnalysisConfig,
    AnalyzerConfig,
    MQTTConfig,
    PlaceConfig,
    VideoConfig,
)
from occupancy_processor.media import MediaSource
from occupancy_processor.registry import ManagedPlace, PlaceRegistry
from occupancy_processor.service import AnalysisResult, OccupancyAnalysisService

__all__ = [
    "AnalysisConfig",
    "AnalyzerConfig",
    "MQTTConfig",
    "PlaceConfig",
    "VideoConfig",
    "MediaSource",
    "ManagedPlace",
    "PlaceRegistry",
    "AnalysisResult",
    "OccupancyAnalysisService",
]
