"""
Occupancy Error Taxonomy
========================

Every failure an analysis run can hit is one of these types. The core
raises them; the service layer is the run boundary that logs them and
commits nothing.
"""


class OccupancyError(Exception):
    """Base class for all analysis-run failures"""
    pass


class DecodeError(OccupancyError):
    """Raised when a buffer is not a recognized raster image"""
    pass


class InvalidCapacityError(OccupancyError, ValueError):
    """Raised when a place capacity is below 1 (data-integrity issue)"""
    pass


class ExtractionFailure(OccupancyError):
    """Raised when a single video frame cannot be extracted"""
    pass


class NoFramesAvailable(OccupancyError):
    """Raised when no video frame could be extracted, fallback included"""
    pass


class RemoteFetchFailure(OccupancyError):
    """Raised when a remote image cannot be fetched"""
    pass


class MediaNotFoundError(OccupancyError):
    """Raised when a local upload or video file does not exist"""
    pass
