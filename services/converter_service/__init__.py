"""
Converter Service - Cloud-native video to frame-archive converter

This service polls a work queue for conversion requests and, for each one:
- Downloads the source video from object storage
- Samples still frames at a fixed time interval with FFmpeg
- Bundles the frames into a single compressed ZIP archive
- Uploads the archive under the requesting user's namespace
- Reports STARTED / PROCESSED / ERROR status to the tracking service
"""

__version__ = "1.0.0"
__author__ = "Cloud Native File Operations Platform"
