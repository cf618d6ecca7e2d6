"""
Test Video Sampling (Timestamps, Timeouts, Fallback, Aggregation)
=================================================================

Drives VideoSampler with plain callables standing in for the frame
extractor and scorer, plus one round trip through a real video file
written with OpenCV.

Usage:
    python test_video_sampling.py
    pytest test_video_sampling.py
"""

import random
import tempfile
import threading
from pathlib import Path

import cv2
import numpy as np
import pytest

from occupancy_vision import (
    ExtractionFailure,
    MediaNotFoundError,
    NoFramesAvailable,
    VideoFrameExtractor,
    VideoSampler,
    build_video_estimator,
)


def marker_frame(value: int) -> np.ndarray:
    return np.full((4, 4, 3), value, dtype=np.uint8)


def marker_scorer(frame: np.ndarray) -> int:
    """Score = 30 + marker / 2, so frames at t=0,2,4 (markers 0,20,40) score 30,40,50."""
    return 30 + int(frame[0, 0, 0]) // 2


def test_timestamp_selection():
    print("\n" + "=" * 60)
    print("TEST: Timestamp selection")
    print("=" * 60)

    select = VideoSampler.select_timestamps

    assert select(10, 8) == [0, 1, 2, 3, 4, 5, 6, 7]
    assert select(60, 8) == [0, 7, 14, 21, 28, 35, 42, 49]
    print("✓ 10s → every second, 60s → every 7s")

    assert select(5, 8) == [0, 1, 2, 3, 4, 4]
    assert select(1.9, 8) == [0, 0]
    print("✓ Short videos append the final second")

    assert select(None, 8) == [0, 1, 2]
    assert select(0, 8) == [0, 1, 2]
    assert select(None, 2) == [0, 1]
    print("✓ Unknown duration → [0, 1, 2] truncated to max_frames")

    for duration in (1, 3, 8, 9, 17, 100, 3600):
        timestamps = select(duration, 8)
        assert 1 <= len(timestamps) <= 8
        assert all(0 <= t < max(duration, 1) for t in timestamps)


def test_extraction_timeout():
    sampler = VideoSampler()
    assert sampler.extraction_timeout(1) == pytest.approx(2.0)
    assert sampler.extraction_timeout(8) == pytest.approx(5.6)


def test_partial_extraction_failures_are_skipped():
    print("\n" + "=" * 60)
    print("TEST: Partial extraction failures")
    print("=" * 60)

    def extractor(t: float) -> np.ndarray:
        if t in (1.0, 3.0):
            raise ExtractionFailure(f"seek failed at {t}")
        return marker_frame(int(t) * 10)

    result = VideoSampler(max_frames=5).sample_and_score(5, extractor, marker_scorer)

    assert result.timestamps == (0.0, 1.0, 2.0, 3.0, 4.0)
    assert result.samples == (30, 40, 50)
    assert sorted(result.skipped) == [1.0, 3.0]
    assert result.used_fallback is False
    assert result.occupancy_percent == 40
    print(f"✓ 3 of 5 frames used, mean {result.occupancy_percent}%")


def test_mean_rounds_half_up():
    scores = iter([40, 41])
    result = VideoSampler(max_frames=2).sample_and_score(
        None, lambda t: marker_frame(0), lambda frame: next(scores)
    )
    assert result.samples == (40, 41)
    assert result.occupancy_percent == 41


def test_all_extractions_fail_uses_fallback():
    print("\n" + "=" * 60)
    print("TEST: Fallback extraction")
    print("=" * 60)

    def failing(t: float) -> np.ndarray:
        raise ExtractionFailure("no seek support")

    result = VideoSampler().sample_and_score(
        12, failing, marker_scorer, fallback_extractor=lambda: marker_frame(40)
    )
    assert result.used_fallback is True
    assert result.samples == (50,)
    assert result.occupancy_percent == 50
    print("✓ Single fallback frame scored")

    def broken_fallback() -> np.ndarray:
        raise ExtractionFailure("unreadable")

    with pytest.raises(NoFramesAvailable):
        VideoSampler().sample_and_score(12, failing, marker_scorer, broken_fallback)
    with pytest.raises(NoFramesAvailable):
        VideoSampler().sample_and_score(12, failing, marker_scorer)
    print("✓ Fallback failure raises NoFramesAvailable")


def test_scoring_failures_mean_no_data():
    print("\n" + "=" * 60)
    print("TEST: Scoring failures → no data")
    print("=" * 60)

    def failing_scorer(frame: np.ndarray) -> int:
        raise ValueError("bad frame")

    result = VideoSampler(max_frames=3).sample_and_score(
        None, lambda t: marker_frame(0), failing_scorer
    )
    assert result.has_data is False
    assert result.occupancy_percent is None
    assert len(result.skipped) == 3
    print("✓ No samples → occupancy_percent is None (not 0)")


def test_slow_extraction_is_abandoned_at_deadline():
    print("\n" + "=" * 60)
    print("TEST: Extraction deadline")
    print("=" * 60)

    release = threading.Event()

    def extractor(t: float) -> np.ndarray:
        if t == 1.0:
            release.wait(timeout=10.0)
        return marker_frame(int(t) * 10)

    sampler = VideoSampler(max_frames=3, timeout_floor_s=0.3, per_frame_timeout_s=0.05)
    try:
        result = sampler.sample_and_score(3, extractor, marker_scorer)
    finally:
        release.set()

    assert 1.0 in result.skipped
    assert result.timestamps == (0.0, 1.0, 2.0)
    assert result.samples == (30, 40)
    assert result.occupancy_percent == 35
    print("✓ Frame still pending at the deadline is skipped")


def write_test_video(path: Path, seconds: int = 3, fps: int = 10) -> bool:
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), fps, (64, 48))
    if not writer.isOpened():
        return False
    try:
        for i in range(seconds * fps):
            frame = np.full((48, 64, 3), (i * 8) % 256, dtype=np.uint8)
            frame[::8, :] = 255
            writer.write(frame)
    finally:
        writer.release()
    return path.exists() and path.stat().st_size > 0


def test_video_file_round_trip(tmp_path: Path):
    print("\n" + "=" * 60)
    print("TEST: Real video file")
    print("=" * 60)

    video_path = tmp_path / "clip.avi"
    if not write_test_video(video_path):
        pytest.skip("MJPG writer not available in this OpenCV build")

    extractor = VideoFrameExtractor(video_path)
    duration = extractor.probe_duration()
    assert duration == pytest.approx(3.0, abs=0.5)
    print(f"✓ Duration probed: {duration:.2f}s")

    assert extractor.extract_at(1.0).shape == (48, 64, 3)
    assert extractor.extract_first().shape == (48, 64, 3)
    print("✓ Seek and fallback grab return BGR frames")

    result = VideoSampler().sample_and_score(
        duration,
        frame_extractor=extractor.extract_at,
        frame_scorer=build_video_estimator(rng=random.Random(4)).score_frame,
        fallback_extractor=extractor.extract_first,
    )
    assert result.has_data
    assert 5 <= result.occupancy_percent <= 98
    print(f"✓ Video occupancy: {result.occupancy_percent}% from {len(result.samples)} frames")


def test_missing_video_file(tmp_path: Path):
    with pytest.raises(MediaNotFoundError):
        VideoFrameExtractor(tmp_path / "missing.mp4")


def main():
    """Run all tests."""
    print("\n🎞️  occupancy_vision.video - Sampling Tests")
    print("=" * 60)

    try:
        test_timestamp_selection()
        test_extraction_timeout()
        test_partial_extraction_failures_are_skipped()
        test_mean_rounds_half_up()
        test_all_extractions_fail_uses_fallback()
        test_scoring_failures_mean_no_data()
        test_slow_extraction_is_abandoned_at_deadline()
        with tempfile.TemporaryDirectory() as tmp:
            test_video_file_round_trip(Path(tmp))
            test_missing_video_file(Path(tmp))

        print("\n" + "=" * 60)
        print("✅ ALL TESTS PASSED!")
        print("=" * 60)

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        raise


if __name__ == "__main__":
    main()
