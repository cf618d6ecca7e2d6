"""
Pixel Sampler Module
====================

Pure transform: bytes -> PixelGrid. NO state, NO side effects.

Design:
- Decoding via cv2.imdecode (PNG, JPEG, BMP, WebP, TIFF, ...)
- Proportional downsizing to a bounded working width
- Channels normalized to RGBA uint8 regardless of source layout
"""

import numpy as np
import cv2
from dataclasses import dataclass

from occupancy_vision.errors import DecodeError

DEFAULT_MAX_WIDTH = 320


@dataclass(frozen=True)
class PixelGrid:
    """
    Immutable RGBA pixel grid.

    Attributes:
        width: Grid width (pixels)
        height: Grid height (pixels)
        rgba: (height, width, 4) uint8 array, channel order R, G, B, A

    Invariants:
        - rgba.shape == (height, width, 4)
        - width >= 1 and height >= 1
    """

    width: int
    height: int
    rgba: np.ndarray

    def __post_init__(self):
        """Validate invariants and freeze the pixel buffer."""
        if self.width < 1 or self.height < 1:
            raise ValueError(
                f"PixelGrid must be at least 1x1, got {self.width}x{self.height}"
            )
        if self.rgba.shape != (self.height, self.width, 4):
            raise ValueError(
                f"rgba must have shape {(self.height, self.width, 4)}, "
                f"got {self.rgba.shape}"
            )
        if self.rgba.dtype != np.uint8:
            raise ValueError(f"rgba must be uint8, got {self.rgba.dtype}")

        self.rgba.flags.writeable = False

    @property
    def total_pixels(self) -> int:
        """Number of pixels in the grid."""
        return self.width * self.height

    @classmethod
    def from_rgb(cls, rgb: np.ndarray) -> "PixelGrid":
        """
        Build a grid from an (H, W, 3) RGB array (alpha set to 255).

        Handy for synthetic grids in tests and tools.
        """
        rgb = np.asarray(rgb, dtype=np.uint8)
        height, width = rgb.shape[:2]
        alpha = np.full((height, width, 1), 255, dtype=np.uint8)
        return cls(width=width, height=height, rgba=np.concatenate([rgb, alpha], axis=2))


class PixelSampler:
    """
    Decodes image buffers into PixelGrids at a bounded resolution.

    Downsizing bounds the cost of the O(width x height) signal extraction
    regardless of the source resolution. Height is derived from the width
    ratio, never specified independently.

    Usage:
        sampler = PixelSampler(max_width=320)
        grid = sampler.sample(image_bytes)       # encoded image
        grid = sampler.sample_frame(bgr_frame)   # decoded video frame
    """

    def __init__(self, max_width: int = DEFAULT_MAX_WIDTH):
        if max_width < 1:
            raise ValueError(f"max_width must be >= 1, got {max_width}")
        self.max_width = max_width

    def sample(self, buffer: bytes) -> PixelGrid:
        """
        Decode an encoded image buffer into a PixelGrid.

        Args:
            buffer: Encoded image bytes

        Returns:
            PixelGrid, downsized to max_width if wider

        Raises:
            DecodeError: If buffer is empty or not a recognized raster format
        """
        if not buffer:
            raise DecodeError("Empty image buffer")

        encoded = np.frombuffer(buffer, dtype=np.uint8)
        image = cv2.imdecode(encoded, cv2.IMREAD_UNCHANGED)
        if image is None:
            raise DecodeError(
                f"Buffer is not a recognized raster image ({len(buffer)} bytes)"
            )

        return self._to_grid(image)

    def sample_frame(self, frame: np.ndarray) -> PixelGrid:
        """
        Build a PixelGrid from an already-decoded BGR(A) or grayscale frame.

        Raises:
            DecodeError: If frame is empty or has an unsupported layout
        """
        if frame is None or frame.size == 0:
            raise DecodeError("Empty video frame")
        return self._to_grid(frame)

    def _to_grid(self, image: np.ndarray) -> PixelGrid:
        """Normalize depth and channels, then downsize."""
        if image.dtype == np.uint16:
            image = (image // 257).astype(np.uint8)
        elif image.dtype != np.uint8:
            image = np.clip(image, 0, 255).astype(np.uint8)

        if image.ndim == 2:
            rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
        elif image.ndim == 3 and image.shape[2] == 1:
            rgba = cv2.cvtColor(image[:, :, 0], cv2.COLOR_GRAY2RGBA)
        elif image.ndim == 3 and image.shape[2] == 3:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
        elif image.ndim == 3 and image.shape[2] == 4:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
        else:
            raise DecodeError(f"Unsupported pixel layout: shape={image.shape}")

        height, width = rgba.shape[:2]
        if width > self.max_width:
            new_height = max(1, int(round(height * self.max_width / width)))
            rgba = cv2.resize(
                rgba, (self.max_width, new_height), interpolation=cv2.INTER_AREA
            )
            height, width = rgba.shape[:2]

        return PixelGrid(width=width, height=height, rgba=np.ascontiguousarray(rgba))
