"""
Scoring Layer
=============

Maps FrameSignals to an occupancy percentage with bounded jitter.
"""

from occupancy_vision.scoring.scorer import (
    OccupancyScorer,
    MIN_PERCENT,
    MAX_PERCENT,
    JITTER_AMPLITUDE,
)

__all__ = [
    "OccupancyScorer",
    "MIN_PERCENT",
    "MAX_PERCENT",
    "JITTER_AMPLITUDE",
]
