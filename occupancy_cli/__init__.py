"""
Occupancy CLI - Command-line interface for the occupancy analyzer.

Sends MQTT commands to the analyzer service without manually writing JSON,
and runs the estimator offline on local files.

Usage:
    occupancy-cli analyze-image cafe-central /uploads/places/cafe.jpg
    occupancy-cli analyze-video cafe-central /uploads/videos/clip.mp4
    occupancy-cli set-capacity cafe-central 32
    occupancy-cli --wait history cafe-central
    occupancy-cli estimate photo.jpg --capacity 20
"""

__version__ = "1.0.0"
