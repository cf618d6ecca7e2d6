"""
Occupancy Vision v1.0
=====================

Bounded Context: Heuristic crowd-occupancy estimation from images and
short videos, plus synthesis of a plausible seat/table state.

Design Philosophy:
- Heuristics, not models: edges, skin tone and brightness
- Jitter is a product decision; randomness is injected, never global
- Pure core: returns values, never publishes or persists

Architecture:

    occupancy_vision/
    ├── sampling/          # PixelSampler: bytes/frame -> bounded RGBA grid
    ├── signals/           # SignalExtractor: grid -> FrameSignals (deterministic)
    ├── scoring/           # OccupancyScorer: FrameSignals -> 5..98 %
    ├── seating/           # SeatSynthesizer: % + capacity -> OccupancySnapshot
    ├── video/             # VideoFrameExtractor + VideoSampler (aggregation)
    ├── analytics/         # OccupancyHistory (hourly buckets)
    └── estimator.py       # Single-frame chain (sampling -> signals -> scoring)

Usage:

    import random
    from occupancy_vision import build_image_estimator, SeatSynthesizer

    rng = random.Random(42)
    estimate = build_image_estimator(rng=rng).estimate_image(image_bytes)
    snapshot = SeatSynthesizer(rng=rng).synthesize(
        capacity=20, occupancy_percent=estimate.occupancy_percent
    )
    snapshot.occupied_count  # round(percent / 100 * 20)
"""

# Errors
from occupancy_vision.errors import (
    OccupancyError,
    DecodeError,
    InvalidCapacityError,
    ExtractionFailure,
    NoFramesAvailable,
    RemoteFetchFailure,
    MediaNotFoundError,
)

# Sampling / Signals / Scoring (per frame)
from occupancy_vision.sampling import PixelGrid, PixelSampler
from occupancy_vision.signals import EdgePrecision, FrameSignals, SignalExtractor
from occupancy_vision.scoring import OccupancyScorer
from occupancy_vision.estimator import (
    FrameEstimate,
    OccupancyEstimator,
    build_image_estimator,
    build_video_estimator,
)

# Seating
from occupancy_vision.seating import Seat, Table, OccupancySnapshot, SeatSynthesizer

# Video
from occupancy_vision.video import VideoFrameExtractor, VideoSampler, VideoSamplingResult

# Analytics
from occupancy_vision.analytics import HourlyBucket, DailyStats, OccupancyHistory

__all__ = [
    # Errors
    "OccupancyError",
    "DecodeError",
    "InvalidCapacityError",
    "ExtractionFailure",
    "NoFramesAvailable",
    "RemoteFetchFailure",
    "MediaNotFoundError",
    # Per-frame
    "PixelGrid",
    "PixelSampler",
    "EdgePrecision",
    "FrameSignals",
    "SignalExtractor",
    "OccupancyScorer",
    "FrameEstimate",
    "OccupancyEstimator",
    "build_image_estimator",
    "build_video_estimator",
    # Seating
    "Seat",
    "Table",
    "OccupancySnapshot",
    "SeatSynthesizer",
    # Video
    "VideoFrameExtractor",
    "VideoSampler",
    "VideoSamplingResult",
    # Analytics
    "HourlyBucket",
    "DailyStats",
    "OccupancyHistory",
]

__version__ = "1.0.0"
