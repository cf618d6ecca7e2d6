"""
Test Occupancy Pipeline (Pixels → Signals → Score → Seats)
==========================================================

Exercises the per-frame estimation chain and seat synthesis on synthetic
images. No files, no broker.

Usage:
    python test_occupancy_pipeline.py
    pytest test_occupancy_pipeline.py
"""

import random
from datetime import datetime, timezone

import cv2
import numpy as np
import pytest

from occupancy_vision import (
    DecodeError,
    EdgePrecision,
    FrameSignals,
    InvalidCapacityError,
    OccupancyScorer,
    PixelSampler,
    SeatSynthesizer,
    SignalExtractor,
    build_image_estimator,
    build_video_estimator,
)
from occupancy_vision.rounding import round_half_up
from occupancy_vision.seating import occupied_count_for

FIXED_NOW = datetime(2025, 10, 24, 15, 30, tzinfo=timezone.utc)


def encode_png(rgb: np.ndarray) -> bytes:
    """Encode an RGB uint8 array as PNG bytes."""
    ok, buffer = cv2.imencode(".png", cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
    assert ok
    return buffer.tobytes()


def solid(width: int, height: int, rgb) -> np.ndarray:
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :] = rgb
    return image


def checkerboard(size: int = 160, square: int = 7) -> np.ndarray:
    ys, xs = np.indices((size, size))
    mask = ((ys // square) + (xs // square)) % 2 == 0
    image = np.zeros((size, size, 3), dtype=np.uint8)
    image[mask] = 255
    return image


def test_rounding_is_half_up():
    """Ties round away from zero for positive values."""
    print("\n" + "=" * 60)
    print("TEST: Half-up rounding")
    print("=" * 60)

    assert round_half_up(32.5) == 33
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4999) == 2
    assert round_half_up(13.0) == 13
    print("✓ 32.5 → 33, 0.5 → 1, 2.5 → 3")


def test_pixel_sampler_downsizes_wide_images():
    print("\n" + "=" * 60)
    print("TEST: PixelSampler downsizing")
    print("=" * 60)

    sampler = PixelSampler(max_width=320)

    grid = sampler.sample(encode_png(solid(640, 480, (10, 20, 30))))
    assert (grid.width, grid.height) == (320, 240)
    assert grid.rgba.shape == (240, 320, 4)
    assert grid.total_pixels == 320 * 240
    print(f"✓ 640x480 → {grid.width}x{grid.height}")

    small = sampler.sample(encode_png(solid(100, 50, (10, 20, 30))))
    assert (small.width, small.height) == (100, 50)
    print("✓ 100x50 kept as is")

    # Channel order is RGBA after decoding
    assert tuple(small.rgba[0, 0]) == (10, 20, 30, 255)
    print("✓ Pixels are RGBA")


def test_pixel_sampler_rejects_non_images():
    print("\n" + "=" * 60)
    print("TEST: PixelSampler decode errors")
    print("=" * 60)

    sampler = PixelSampler()
    with pytest.raises(DecodeError):
        sampler.sample(b"")
    with pytest.raises(DecodeError):
        sampler.sample(b"definitely not a png")
    with pytest.raises(DecodeError):
        sampler.sample_frame(np.zeros((0, 0, 3), dtype=np.uint8))
    print("✓ Empty and non-raster buffers raise DecodeError")


def test_signals_on_uniform_images():
    print("\n" + "=" * 60)
    print("TEST: Signals on uniform images")
    print("=" * 60)

    sampler = PixelSampler()
    extractor = SignalExtractor(EdgePrecision.SOBEL, 20000)

    gray = extractor.extract(sampler.sample(encode_png(solid(200, 100, (128, 128, 128)))))
    assert gray.avg_brightness == pytest.approx(128.0)
    assert gray.edge_density == 0.0
    assert gray.skin_density == 0.0
    print(f"✓ Gray: {gray.to_dict()}")

    skin = extractor.extract(sampler.sample(encode_png(solid(200, 100, (200, 120, 90)))))
    assert skin.skin_density == 1.0
    assert skin.edge_density == 0.0
    print(f"✓ Skin tone: {skin.to_dict()}")


def test_signals_are_deterministic_on_texture():
    print("\n" + "=" * 60)
    print("TEST: Signals deterministic on checkerboard")
    print("=" * 60)

    grid = PixelSampler().sample(encode_png(checkerboard()))

    for precision, budget in ((EdgePrecision.SOBEL, 20000), (EdgePrecision.COARSE, 8000)):
        extractor = SignalExtractor(precision, budget)
        first = extractor.extract(grid)
        second = extractor.extract(grid)
        assert first == second
        assert 0.0 < first.edge_density <= 1.0
        assert first.skin_density == 0.0
        print(f"✓ {precision.value}: edge_density={first.edge_density:.4f}")


def test_sobel_ignores_grids_below_three_pixels():
    grid = PixelSampler().sample(encode_png(checkerboard(size=2, square=1)))
    signals = SignalExtractor(EdgePrecision.SOBEL, 20000).extract(grid)
    assert signals.edge_density == 0.0


def test_scorer_bounds_and_monotonicity():
    print("\n" + "=" * 60)
    print("TEST: OccupancyScorer")
    print("=" * 60)

    flat = OccupancyScorer(rng=random.Random(0), jitter_amplitude=0.0)
    empty = FrameSignals(avg_brightness=255.0, edge_density=0.0, skin_density=0.0)
    busy = FrameSignals(avg_brightness=0.0, edge_density=1.0, skin_density=1.0)
    assert flat.score(empty) == 10
    assert flat.score(busy) == 95
    print("✓ No jitter: empty → 10, busy → 95")

    previous = -1
    for edge in (0.0, 0.05, 0.1, 0.2, 0.3):
        score = flat.score(FrameSignals(avg_brightness=128.0, edge_density=edge, skin_density=0.0))
        assert score >= previous
        previous = score
    print("✓ Score non-decreasing in edge density")

    jittered = OccupancyScorer(rng=random.Random(42))
    middle = FrameSignals(avg_brightness=128.0, edge_density=0.1, skin_density=0.05)
    raw = OccupancyScorer.raw_percent(middle)
    for _ in range(500):
        score = jittered.score(middle)
        assert raw - 3 - 1 <= score <= raw + 3 + 1

    rng = random.Random(7)
    for _ in range(500):
        signals = FrameSignals(
            avg_brightness=rng.uniform(0, 255),
            edge_density=rng.random(),
            skin_density=rng.random(),
        )
        assert 5 <= jittered.score(signals) <= 98
    print("✓ Jitter stays within ±3 and output within [5, 98]")


def test_estimators_end_to_end():
    print("\n" + "=" * 60)
    print("TEST: Image and video estimators")
    print("=" * 60)

    noise = np.random.default_rng(3).integers(0, 256, size=(360, 480, 3), dtype=np.uint8)
    image_estimate = build_image_estimator(rng=random.Random(1)).estimate_image(encode_png(noise))
    assert 5 <= image_estimate.occupancy_percent <= 98
    assert image_estimate.signals.edge_density > 0
    print(f"✓ Image: {image_estimate.occupancy_percent}%")

    frame = cv2.cvtColor(noise, cv2.COLOR_RGB2BGR)
    video_score = build_video_estimator(rng=random.Random(1)).score_frame(frame)
    assert 5 <= video_score <= 98
    print(f"✓ Video frame: {video_score}%")


def test_synthesis_example_twenty_seats():
    print("\n" + "=" * 60)
    print("TEST: Seat synthesis (capacity 20, 65%)")
    print("=" * 60)

    snapshot = SeatSynthesizer(random.Random(11)).synthesize(20, 65, now=FIXED_NOW)

    assert snapshot.capacity == 20
    assert snapshot.occupied_count == 13
    assert snapshot.free_count == 7
    assert snapshot.occupancy_percent == 65
    assert snapshot.last_update == FIXED_NOW
    print(f"✓ {snapshot}")

    assert snapshot.seats[0].seat_id == "1-1"
    assert snapshot.seats[-1].seat_id == "4-5"
    print("✓ Grid 4x5 with ids 1-1 … 4-5")

    assert len(snapshot.tables) == 4
    assert sum(len(t.seats) for t in snapshot.tables) == 20
    assert [t.table_id for t in snapshot.tables] == ["Table 1", "Table 2", "Table 3", "Table 4"]
    assert snapshot.tables[0].seats[0].seat_id == "T1-1"
    print(f"✓ Tables: {[len(t.seats) for t in snapshot.tables]}")

    flat_table_flags = [s.occupied for t in snapshot.tables for s in t.seats]
    assert flat_table_flags == [s.occupied for s in snapshot.seats]
    assert sum(t.occupied_count for t in snapshot.tables) == 13
    print("✓ Tables mirror the seat list index-for-index")


def test_synthesis_counts_for_many_capacities():
    rng = random.Random(5)
    synthesizer = SeatSynthesizer(rng)
    for capacity in range(1, 501):
        for percent in (0, 33, 65, 100):
            snapshot = synthesizer.synthesize(capacity, percent, now=FIXED_NOW)
            assert snapshot.occupied_count == occupied_count_for(percent, capacity)
            assert sum(len(t.seats) for t in snapshot.tables) == capacity
            assert len(snapshot.tables) == -(-capacity // 6)
            flags = [s.occupied for t in snapshot.tables for s in t.seats]
            assert flags == [s.occupied for s in snapshot.seats]


def test_synthesis_edge_cases():
    print("\n" + "=" * 60)
    print("TEST: Synthesis edge cases")
    print("=" * 60)

    synthesizer = SeatSynthesizer(random.Random(2))

    assert synthesizer.synthesize(1, 50, now=FIXED_NOW).occupied_count == 1
    assert synthesizer.synthesize(1, 49, now=FIXED_NOW).occupied_count == 0
    assert synthesizer.synthesize(20, 0, now=FIXED_NOW).occupied_count == 0
    assert synthesizer.synthesize(20, 100, now=FIXED_NOW).occupied_count == 20
    print("✓ 1 seat at 50% → occupied; 0% and 100% exact")

    for bad in (0, -3):
        with pytest.raises(InvalidCapacityError):
            synthesizer.synthesize(bad, 50)
    with pytest.raises(ValueError):
        synthesizer.synthesize(0, 50)
    print("✓ capacity < 1 raises InvalidCapacityError (a ValueError)")

    with pytest.raises(ValueError):
        synthesizer.synthesize(10, 120)
    print("✓ percent > 100 rejected")

    assert synthesizer.synthesize(20, 64.9, now=FIXED_NOW).occupancy_percent == 65
    assert synthesizer.synthesize(20, 64.5, now=FIXED_NOW).occupancy_percent == 65
    assert synthesizer.synthesize(20, 64.4, now=FIXED_NOW).occupied_count == 13
    print("✓ Fractional percent rounded half-up, not truncated")


def test_synthesis_reproducible_with_seed():
    a = SeatSynthesizer(random.Random(99)).synthesize(30, 40, now=FIXED_NOW)
    b = SeatSynthesizer(random.Random(99)).synthesize(30, 40, now=FIXED_NOW)
    assert a == b


def main():
    """Run all tests."""
    print("\n🪑 occupancy_vision - Pipeline Tests")
    print("=" * 60)

    try:
        test_rounding_is_half_up()
        test_pixel_sampler_downsizes_wide_images()
        test_pixel_sampler_rejects_non_images()
        test_signals_on_uniform_images()
        test_signals_are_deterministic_on_texture()
        test_sobel_ignores_grids_below_three_pixels()
        test_scorer_bounds_and_monotonicity()
        test_estimators_end_to_end()
        test_synthesis_example_twenty_seats()
        test_synthesis_counts_for_many_capacities()
        test_synthesis_edge_cases()
        test_synthesis_reproducible_with_seed()

        print("\n" + "=" * 60)
        print("✅ ALL TESTS PASSED!")
        print("=" * 60)

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        raise


if __name__ == "__main__":
    main()
