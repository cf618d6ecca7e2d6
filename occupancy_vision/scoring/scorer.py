"""
Occupancy Scorer Module
=======================

Weighted heuristic: edges are the strongest occupancy signal, skin tone a
corroborating one, darkness a weak tertiary proxy.

    edge_score       = min(1, edge_density * 3)
    skin_score       = min(1, skin_density * 4)
    brightness_score = 1 - min(1, avg_brightness / 255)
    combined         = clamp(0.6*edge + 0.3*skin + 0.1*brightness, 0, 1)
    raw              = 10 + combined * 85
    final            = clamp(round(raw + (random() - 0.5) * 6), 5, 98)

The output is stochastic. Pass a seeded random.Random for
repeatable results.
"""

import random
from typing import Optional

from occupancy_vision.rounding import round_half_up
from occupancy_vision.signals.extractor import FrameSignals

EDGE_WEIGHT = 0.6
SKIN_WEIGHT = 0.3
BRIGHTNESS_WEIGHT = 0.1

EDGE_GAIN = 3.0
SKIN_GAIN = 4.0

BASE_PERCENT = 10.0
PERCENT_SPAN = 85.0

# Never report a literal empty or full space
MIN_PERCENT = 5
MAX_PERCENT = 98

JITTER_AMPLITUDE = 6.0


class OccupancyScorer:
    """
    Combines FrameSignals into an occupancy percentage in [5, 98].

    Attributes:
        rng: Random source used for jitter
        jitter_amplitude: Full width of the uniform jitter window (default 6,
            i.e. +/-3 percentage points)
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        jitter_amplitude: float = JITTER_AMPLITUDE,
    ):
        if jitter_amplitude < 0:
            raise ValueError(
                f"jitter_amplitude must be >= 0, got {jitter_amplitude}"
            )
        self.rng = rng or random.Random()
        self.jitter_amplitude = jitter_amplitude

    @staticmethod
    def combined_score(signals: FrameSignals) -> float:
        """Pre-jitter weighted score in [0, 1]."""
        edge_score = min(1.0, signals.edge_density * EDGE_GAIN)
        skin_score = min(1.0, signals.skin_density * SKIN_GAIN)
        brightness_score = 1.0 - min(1.0, signals.avg_brightness / 255.0)

        combined = (
            EDGE_WEIGHT * edge_score
            + SKIN_WEIGHT * skin_score
            + BRIGHTNESS_WEIGHT * brightness_score
        )
        return max(0.0, min(1.0, combined))

    @classmethod
    def raw_percent(cls, signals: FrameSignals) -> float:
        """Pre-jitter occupancy in [10, 95]."""
        return BASE_PERCENT + cls.combined_score(signals) * PERCENT_SPAN

    def score(self, signals: FrameSignals) -> int:
        """Jittered, rounded and clamped occupancy percentage."""
        jitter = (self.rng.random() - 0.5) * self.jitter_amplitude
        percent = round_half_up(self.raw_percent(signals) + jitter)
        return max(MIN_PERCENT, min(MAX_PERCENT, percent))
