"""
Video Frame Extractor Module
============================

The only I/O-bound piece of the video path.

Design:
- Duration probe via supervision.VideoInfo (total_frames / fps)
- Timestamp seek via cv2.VideoCapture (CAP_PROP_POS_MSEC), one capture per
  call so extractions can run concurrently
- Fallback first-frame grab via supervision.get_video_frames_generator
"""

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
import supervision as sv

from occupancy_vision.errors import ExtractionFailure, MediaNotFoundError

logger = logging.getLogger(__name__)


class VideoFrameExtractor:
    """
    Extracts decoded BGR frames from a video file.

    Usage:
        extractor = VideoFrameExtractor("uploads/videos/clip.mp4")
        duration = extractor.probe_duration()   # None when unknown
        frame = extractor.extract_at(2.0)       # raises ExtractionFailure
        frame = extractor.extract_first()       # fallback strategy
    """

    def __init__(self, video_path: Union[str, Path]):
        self.video_path = Path(video_path)
        if not self.video_path.exists():
            raise MediaNotFoundError(f"Video file not found: {self.video_path}")

    def probe_duration(self) -> Optional[float]:
        """
        Video duration in seconds, or None when it cannot be determined.
        """
        try:
            info = sv.VideoInfo.from_video_path(str(self.video_path))
        except Exception as e:
            logger.warning(f"Could not probe video duration for {self.video_path}: {e}")
            return None

        if not info.fps or info.fps <= 0 or not info.total_frames or info.total_frames <= 0:
            return None

        return info.total_frames / info.fps

    def extract_at(self, timestamp_s: float) -> np.ndarray:
        """
        Decode the frame at a timestamp.

        Raises:
            ExtractionFailure: If the video cannot be opened or the seek/read fails
        """
        capture = cv2.VideoCapture(str(self.video_path))
        try:
            if not capture.isOpened():
                raise ExtractionFailure(f"Cannot open video: {self.video_path}")

            capture.set(cv2.CAP_PROP_POS_MSEC, float(timestamp_s) * 1000.0)
            ok, frame = capture.read()
            if not ok or frame is None:
                raise ExtractionFailure(
                    f"No frame at t={timestamp_s}s in {self.video_path}"
                )
            return frame
        finally:
            capture.release()

    def extract_first(self) -> np.ndarray:
        """
        Grab the first decodable frame (fallback strategy).

        Raises:
            ExtractionFailure: If no frame can be decoded
        """
        try:
            frames = sv.get_video_frames_generator(str(self.video_path), end=1)
            return next(frames)
        except StopIteration:
            raise ExtractionFailure(f"Video has no decodable frames: {self.video_path}")
        except Exception as e:
            raise ExtractionFailure(
                f"Fallback frame extraction failed for {self.video_path}: {e}"
            ) from e
