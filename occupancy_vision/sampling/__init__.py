"""
Sampling Layer
==============

Decodes raw image bytes (or decoded video frames) into a bounded-size
RGBA pixel grid.
"""

from occupancy_vision.sampling.pixels import PixelGrid, PixelSampler, DEFAULT_MAX_WIDTH

__all__ = [
    "PixelGrid",
    "PixelSampler",
    "DEFAULT_MAX_WIDTH",
]
