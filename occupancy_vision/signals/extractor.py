"""
Signal Extractor Module
=======================

Stateless, deterministic feature extraction - no randomness in this stage.

Design:
- One edge algorithm with a precision knob instead of two code paths:
  SOBEL (full 3x3 Sobel on every interior pixel) for still images,
  COARSE (strided 2-tap gradient) for video frames
- Vectorized with numpy slicing (no per-pixel Python loops)
- Same magnitude threshold and density normalization for both precisions
"""

import numpy as np
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict

from occupancy_vision.sampling.pixels import PixelGrid

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

EDGE_THRESHOLD = 60.0
IMAGE_SKIN_SAMPLES = 20000
VIDEO_SKIN_SAMPLES = 8000

# COARSE precision samples roughly a 40x40 lattice
COARSE_GRID_DIVISIONS = 40


class EdgePrecision(str, Enum):
    """Edge detection precision."""
    SOBEL = "sobel"
    COARSE = "coarse"


@dataclass(frozen=True)
class FrameSignals:
    """
    Immutable per-frame signal snapshot.

    Attributes:
        avg_brightness: Mean luma in [0, 255]
        edge_density: Edge pixel share in [0, 1]
        skin_density: Skin-tone sample share in [0, 1]
    """

    avg_brightness: float
    edge_density: float
    skin_density: float

    def __post_init__(self):
        """Validate ranges."""
        if not 0.0 <= self.avg_brightness <= 255.0:
            raise ValueError(
                f"avg_brightness must be in [0, 255], got {self.avg_brightness}"
            )
        if not 0.0 <= self.edge_density <= 1.0:
            raise ValueError(
                f"edge_density must be in [0, 1], got {self.edge_density}"
            )
        if not 0.0 <= self.skin_density <= 1.0:
            raise ValueError(
                f"skin_density must be in [0, 1], got {self.skin_density}"
            )

    def to_dict(self) -> Dict[str, float]:
        """Serialize to JSON-compatible dict."""
        return asdict(self)


class SignalExtractor:
    """
    Computes FrameSignals from a PixelGrid.

    Attributes:
        edge_precision: SOBEL or COARSE
        skin_sample_budget: Target number of pixels inspected by the skin rule
        edge_threshold: Gradient magnitude above which a pixel counts as edge

    Usage:
        image_extractor = SignalExtractor(EdgePrecision.SOBEL, IMAGE_SKIN_SAMPLES)
        frame_extractor = SignalExtractor(EdgePrecision.COARSE, VIDEO_SKIN_SAMPLES)
        signals = image_extractor.extract(grid)
    """

    def __init__(
        self,
        edge_precision: EdgePrecision = EdgePrecision.SOBEL,
        skin_sample_budget: int = IMAGE_SKIN_SAMPLES,
        edge_threshold: float = EDGE_THRESHOLD,
    ):
        if skin_sample_budget < 1:
            raise ValueError(
                f"skin_sample_budget must be >= 1, got {skin_sample_budget}"
            )
        if edge_threshold < 0:
            raise ValueError(f"edge_threshold must be >= 0, got {edge_threshold}")

        self.edge_precision = EdgePrecision(edge_precision)
        self.skin_sample_budget = skin_sample_budget
        self.edge_threshold = edge_threshold

    def extract(self, grid: PixelGrid) -> FrameSignals:
        """Compute brightness, edge density and skin density for one grid."""
        luma = self.luma(grid)

        if self.edge_precision is EdgePrecision.SOBEL:
            edge_density = self._sobel_edge_density(luma)
        else:
            edge_density = self._coarse_edge_density(luma)

        return FrameSignals(
            avg_brightness=float(np.clip(luma.mean(), 0.0, 255.0)),
            edge_density=edge_density,
            skin_density=self._skin_density(grid),
        )

    @staticmethod
    def luma(grid: PixelGrid) -> np.ndarray:
        """(H, W) float64 luma array: 0.299R + 0.587G + 0.114B."""
        return grid.rgba[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS

    def _sobel_edge_density(self, luma: np.ndarray) -> float:
        """
        Full 3x3 Sobel over interior pixels (1-pixel border excluded).

        Density is normalized by the total pixel count, border included.
        """
        height, width = luma.shape
        total = height * width
        if height < 3 or width < 3:
            return 0.0

        top_left = luma[:-2, :-2]
        top = luma[:-2, 1:-1]
        top_right = luma[:-2, 2:]
        left = luma[1:-1, :-2]
        right = luma[1:-1, 2:]
        bottom_left = luma[2:, :-2]
        bottom = luma[2:, 1:-1]
        bottom_right = luma[2:, 2:]

        gx = (top_right + 2 * right + bottom_right) - (top_left + 2 * left + bottom_left)
        gy = (bottom_left + 2 * bottom + bottom_right) - (top_left + 2 * top + top_right)

        edge_count = int(np.count_nonzero(np.hypot(gx, gy) > self.edge_threshold))
        return min(1.0, edge_count / total)

    def _coarse_edge_density(self, luma: np.ndarray) -> float:
        """
        Strided 2-tap gradient anchored at the top-left neighbour.

        gx = L[y-1, x+1] - L[y-1, x-1]
        gy = L[y+1, x-1] - L[y-1, x-1]

        Density is normalized by the number of lattice cells,
        floor(W/step) * floor(H/step).
        """
        height, width = luma.shape
        step = max(1, min(width, height) // COARSE_GRID_DIVISIONS)
        cells = max(1, (width // step) * (height // step))

        ys = np.arange(1, height - 1, step)
        xs = np.arange(1, width - 1, step)
        if ys.size == 0 or xs.size == 0:
            return 0.0

        anchor = luma[np.ix_(ys - 1, xs - 1)]
        gx = luma[np.ix_(ys - 1, xs + 1)] - anchor
        gy = luma[np.ix_(ys + 1, xs - 1)] - anchor

        edge_count = int(np.count_nonzero(np.hypot(gx, gy) > self.edge_threshold))
        return min(1.0, edge_count / cells)

    def _skin_density(self, grid: PixelGrid) -> float:
        """
        Share of strided pixel samples matching the RGB skin-tone rule.

        Rule: R>95, G>40, B>20, max-min>15, R>G, R>B.
        Stride: max(1, total_pixels // skin_sample_budget).
        """
        step = max(1, grid.total_pixels // self.skin_sample_budget)
        samples = grid.rgba.reshape(-1, 4)[::step, :3].astype(np.int16)

        r, g, b = samples[:, 0], samples[:, 1], samples[:, 2]
        spread = samples.max(axis=1) - samples.min(axis=1)
        skin = (r > 95) & (g > 40) & (b > 20) & (spread > 15) & (r > g) & (r > b)

        return int(np.count_nonzero(skin)) / len(samples)
