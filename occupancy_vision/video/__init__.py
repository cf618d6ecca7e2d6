"""
Video Layer
===========

Bounded Context: Turning a video file into a handful of occupancy samples.

Architecture:

    video/
    ├── extractor.py   # VideoFrameExtractor (I/O: probe, seek, grab)
    └── sampler.py     # VideoSampler (timestamps, timeout, fallback, mean)
"""

from occupancy_vision.video.extractor import VideoFrameExtractor
from occupancy_vision.video.sampler import VideoSampler, VideoSamplingResult

__all__ = [
    "VideoFrameExtractor",
    "VideoSampler",
    "VideoSamplingResult",
]
