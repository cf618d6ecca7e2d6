"""
Occupancy Estimator
===================

Chains PixelSampler -> SignalExtractor -> OccupancyScorer for one image
buffer or one decoded video frame.

Two stock variants:
- image path: full Sobel, 20000 skin samples
- video path: coarse strided gradient, 8000 skin samples
"""

import random
from dataclasses import dataclass
from typing import Optional

import numpy as np

from occupancy_vision.sampling.pixels import PixelSampler, DEFAULT_MAX_WIDTH
from occupancy_vision.signals.extractor import (
    EdgePrecision,
    FrameSignals,
    SignalExtractor,
    EDGE_THRESHOLD,
    IMAGE_SKIN_SAMPLES,
    VIDEO_SKIN_SAMPLES,
)
from occupancy_vision.scoring.scorer import OccupancyScorer, JITTER_AMPLITUDE


@dataclass(frozen=True)
class FrameEstimate:
    """Signals plus the jittered occupancy percentage derived from them."""

    signals: FrameSignals
    occupancy_percent: int


class OccupancyEstimator:
    """
    Single-frame occupancy estimation.

    Usage:
        estimator = build_image_estimator(rng=random.Random(3))
        estimate = estimator.estimate_image(image_bytes)
        estimate.occupancy_percent  # 5..98
    """

    def __init__(
        self,
        sampler: PixelSampler,
        extractor: SignalExtractor,
        scorer: OccupancyScorer,
    ):
        self.sampler = sampler
        self.extractor = extractor
        self.scorer = scorer

    def estimate_image(self, buffer: bytes) -> FrameEstimate:
        """
        Estimate occupancy for an encoded image.

        Raises:
            DecodeError: If buffer is not a recognized raster image
        """
        return self._estimate(self.sampler.sample(buffer))

    def estimate_frame(self, frame: np.ndarray) -> FrameEstimate:
        """Estimate occupancy for a decoded BGR frame."""
        return self._estimate(self.sampler.sample_frame(frame))

    def score_frame(self, frame: np.ndarray) -> int:
        """Occupancy percentage only (frame scorer for VideoSampler)."""
        return self.estimate_frame(frame).occupancy_percent

    def _estimate(self, grid) -> FrameEstimate:
        signals = self.extractor.extract(grid)
        return FrameEstimate(
            signals=signals,
            occupancy_percent=self.scorer.score(signals),
        )


def build_image_estimator(
    rng: Optional[random.Random] = None,
    max_width: int = DEFAULT_MAX_WIDTH,
    edge_precision: EdgePrecision = EdgePrecision.SOBEL,
    skin_sample_budget: int = IMAGE_SKIN_SAMPLES,
    edge_threshold: float = EDGE_THRESHOLD,
    jitter_amplitude: float = JITTER_AMPLITUDE,
) -> OccupancyEstimator:
    """Estimator tuned for still images."""
    return OccupancyEstimator(
        sampler=PixelSampler(max_width=max_width),
        extractor=SignalExtractor(edge_precision, skin_sample_budget, edge_threshold),
        scorer=OccupancyScorer(rng=rng, jitter_amplitude=jitter_amplitude),
    )


def build_video_estimator(
    rng: Optional[random.Random] = None,
    max_width: int = DEFAULT_MAX_WIDTH,
    edge_precision: EdgePrecision = EdgePrecision.COARSE,
    skin_sample_budget: int = VIDEO_SKIN_SAMPLES,
    edge_threshold: float = EDGE_THRESHOLD,
    jitter_amplitude: float = JITTER_AMPLITUDE,
) -> OccupancyEstimator:
    """Estimator tuned for sampled video frames (lighter sampling)."""
    return OccupancyEstimator(
        sampler=PixelSampler(max_width=max_width),
        extractor=SignalExtractor(edge_precision, skin_sample_budget, edge_threshold),
        scorer=OccupancyScorer(rng=rng, jitter_amplitude=jitter_amplitude),
    )
