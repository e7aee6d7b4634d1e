"""
Conversion pipeline components
"""

from .archive_builder import ArchiveBuilder
from .conversion_pipeline import ConversionPipeline
from .frame_extractor import FrameExtractor
from .message_source import SQSMessageSource
from .notification_service import StatusNotifier, TrackingNotificationClient
from .object_store import S3ObjectStore
from .poll_loop import PollLoop
from .retry_handler import RetryHandler
from .staging_area import StagingAreaManager

__all__ = [
    'ArchiveBuilder',
    'ConversionPipeline',
    'FrameExtractor',
    'SQSMessageSource',
    'StatusNotifier',
    'TrackingNotificationClient',
    'S3ObjectStore',
    'PollLoop',
    'RetryHandler',
    'StagingAreaManager'
]
