"""
Signals Layer
=============

Bounded Context: Deterministic scalar features over a PixelGrid.

Signals:
- avg_brightness: mean luma (0..255)
- edge_density: share of pixels with gradient magnitude above threshold
- skin_density: share of sampled pixels matching an RGB skin-tone rule
"""

from occupancy_vision.signals.extractor import (
    EdgePrecision,
    FrameSignals,
    SignalExtractor,
    EDGE_THRESHOLD,
    IMAGE_SKIN_SAMPLES,
    VIDEO_SKIN_SAMPLES,
)

__all__ = [
    "EdgePrecision",
    "FrameSignals",
    "SignalExtractor",
    "EDGE_THRESHOLD",
    "IMAGE_SKIN_SAMPLES",
    "VIDEO_SKIN_SAMPLES",
]
