"""
Video Sampler Module
====================

Selects a bounded set of timestamps, extracts one frame per timestamp
concurrently (bounded by a timeout), scores each frame independently and
averages the samples.

Timestamp selection (d = floor(duration)):
- d > 0: step = max(1, floor(d / min(max_frames, d))); t = 0, step, ...
  while t < d and count < max_frames; then append max(0, d - 1) once if
  fewer than max_frames were collected (final moment sampled)
- unknown or 0: [0, 1, 2] truncated to max_frames

Failure policy:
- One extraction failure or timeout: frame skipped
- Zero frames: one fallback extraction; if that fails, NoFramesAvailable
- Zero scored samples: occupancy_percent is None ("no data", never 0%)
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import cv2
import numpy as np

from occupancy_vision.errors import NoFramesAvailable, OccupancyError
from occupancy_vision.rounding import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_MAX_FRAMES = 8
UNKNOWN_DURATION_TIMESTAMPS = (0.0, 1.0, 2.0)

FrameExtractorFn = Callable[[float], np.ndarray]
FrameScorerFn = Callable[[np.ndarray], int]
FallbackExtractorFn = Callable[[], np.ndarray]


@dataclass(frozen=True)
class VideoSamplingResult:
    """
    Outcome of sampling one video.

    Attributes:
        timestamps: Timestamps requested (seconds)
        samples: Per-frame occupancy percentages, in timestamp order
        skipped: Timestamps whose extraction or scoring failed
        used_fallback: True when the single-frame fallback produced the frame
    """

    timestamps: Tuple[float, ...]
    samples: Tuple[int, ...] = ()
    skipped: Tuple[float, ...] = ()
    used_fallback: bool = False

    @property
    def has_data(self) -> bool:
        return len(self.samples) > 0

    @property
    def occupancy_percent(self) -> Optional[int]:
        """Rounded mean of samples, or None when no sample succeeded."""
        if not self.samples:
            return None
        return round_half_up(sum(self.samples) / len(self.samples))


class VideoSampler:
    """
    Drives frame extraction and scoring for one video.

    The extractor and scorer are injected, so the sampler has no I/O of its
    own and can be exercised with plain callables.

    Usage:
        extractor = VideoFrameExtractor(path)
        sampler = VideoSampler(max_frames=8)
        result = sampler.sample_and_score(
            extractor.probe_duration(),
            frame_extractor=extractor.extract_at,
            frame_scorer=estimator.score_frame,
            fallback_extractor=extractor.extract_first,
        )
        result.occupancy_percent  # None means "no data"
    """

    def __init__(
        self,
        max_frames: int = DEFAULT_MAX_FRAMES,
        timeout_floor_s: float = 2.0,
        per_frame_timeout_s: float = 0.7,
        max_workers: Optional[int] = None,
    ):
        if max_frames < 1:
            raise ValueError(f"max_frames must be >= 1, got {max_frames}")
        if timeout_floor_s <= 0 or per_frame_timeout_s <= 0:
            raise ValueError("Extraction timeouts must be positive")

        self.max_frames = max_frames
        self.timeout_floor_s = timeout_floor_s
        self.per_frame_timeout_s = per_frame_timeout_s
        self.max_workers = max_workers

    @staticmethod
    def select_timestamps(
        duration_s: Optional[float],
        max_frames: int = DEFAULT_MAX_FRAMES,
    ) -> List[float]:
        """Timestamps (seconds) to sample for a video of the given duration."""
        whole_seconds = int(math.floor(duration_s)) if duration_s and duration_s > 0 else 0

        if whole_seconds <= 0:
            return list(UNKNOWN_DURATION_TIMESTAMPS[:max_frames])

        frame_count = min(max_frames, whole_seconds)
        step = max(1, whole_seconds // frame_count)

        timestamps = []
        t = 0
        while t < whole_seconds and len(timestamps) < max_frames:
            timestamps.append(float(t))
            t += step

        if len(timestamps) < max_frames:
            timestamps.append(float(max(0, whole_seconds - 1)))

        return timestamps

    def extraction_timeout(self, frame_count: int) -> float:
        """Wall-clock budget for extracting frame_count frames."""
        return max(self.timeout_floor_s, self.per_frame_timeout_s * frame_count)

    def sample_and_score(
        self,
        duration_s: Optional[float],
        frame_extractor: FrameExtractorFn,
        frame_scorer: FrameScorerFn,
        fallback_extractor: Optional[FallbackExtractorFn] = None,
    ) -> VideoSamplingResult:
        """
        Sample, score and aggregate one video.

        Raises:
            NoFramesAvailable: If no frame could be extracted, fallback included
        """
        timestamps = self.select_timestamps(duration_s, self.max_frames)
        frames, skipped = self._extract_frames(timestamps, frame_extractor)

        used_fallback = False
        if not frames:
            frames = [(0.0, self._extract_fallback(fallback_extractor))]
            used_fallback = True

        samples = []
        for timestamp, frame in frames:
            try:
                samples.append(int(frame_scorer(frame)))
            except (OccupancyError, ValueError, cv2.error) as e:
                logger.warning(f"Skipping frame at t={timestamp}s: scoring failed ({e})")
                skipped.append(timestamp)

        return VideoSamplingResult(
            timestamps=tuple(timestamps),
            samples=tuple(samples),
            skipped=tuple(skipped),
            used_fallback=used_fallback,
        )

    def _extract_frames(
        self,
        timestamps: List[float],
        frame_extractor: FrameExtractorFn,
    ) -> Tuple[List[Tuple[float, np.ndarray]], List[float]]:
        """
        Extract frames concurrently; proceed with whatever is ready at the deadline.

        Returns:
            ([(timestamp, frame), ...] in timestamp order, [skipped timestamps])
        """
        timeout = self.extraction_timeout(len(timestamps))
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers or len(timestamps),
            thread_name_prefix="FrameExtractor",
        )
        try:
            futures = [executor.submit(frame_extractor, ts) for ts in timestamps]
            _, pending = wait(futures, timeout=timeout)
        finally:
            # Do not block on extractions that overran the deadline
            executor.shutdown(wait=False, cancel_futures=True)

        frames = []
        skipped = []
        for timestamp, future in zip(timestamps, futures):
            if future in pending:
                logger.warning(
                    f"Skipping frame at t={timestamp}s: extraction exceeded {timeout:.1f}s"
                )
                skipped.append(timestamp)
                continue

            error = future.exception()
            if error is not None:
                logger.warning(f"Skipping frame at t={timestamp}s: {error}")
                skipped.append(timestamp)
                continue

            frames.append((timestamp, future.result()))

        return frames, skipped

    @staticmethod
    def _extract_fallback(
        fallback_extractor: Optional[FallbackExtractorFn],
    ) -> np.ndarray:
        if fallback_extractor is None:
            raise NoFramesAvailable("No frames extracted and no fallback strategy configured")

        try:
            frame = fallback_extractor()
        except Exception as e:
            raise NoFramesAvailable(f"Fallback frame extraction failed: {e}") from e

        logger.info("Using single fallback frame at t=0s")
        return frame
