import pytest
import tempfile
import json
from pathlib import Path
from unittest.mock import Mock, AsyncMock

from services.converter_service.config import Settings
from services.converter_service.models import ConversionMessage, QueueMessage
from services.converter_service.services.archive_builder import ArchiveBuilder
from services.converter_service.services.conversion_pipeline import ConversionPipeline
from services.converter_service.services.frame_extractor import FrameExtractor, FrameExtractionResult
from services.converter_service.services.message_source import SQSMessageSource
from services.converter_service.services.notification_service import StatusNotifier
from services.converter_service.services.object_store import S3ObjectStore
from services.converter_service.services.staging_area import StagingAreaManager

VALID_BODY = {
    "fileName": "clip.mp4",
    "userId": "u1",
    "fileStorageKey": "raw/clip.mp4",
    "fileId": "f1",
    "screenshotsTime": 20
}

@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)

@pytest.fixture
def test_settings(temp_dir):
    """Create test settings"""
    return Settings(
        environment="testing",
        aws_bucket="test-bucket",
        aws_sqs_url="https://sqs.us-east-1.amazonaws.com/123456789012/test-queue",
        tracking_api_base_url="http://tracking.test",
        temp_dir=str(temp_dir / "staging"),
        poll_enabled=False
    )

def make_message(body=None, message_id="m1") -> ConversionMessage:
    """Build a parsed message from a dict body (serialized as JSON) or a raw string"""
    if body is None:
        body = VALID_BODY
    raw = body if isinstance(body, str) else json.dumps(body)
    return ConversionMessage.from_queue_message(
        QueueMessage(id=message_id, receipt_token=f"receipt-{message_id}", body=raw)
    )

@pytest.fixture
def message_factory():
    return make_message

@pytest.fixture
def valid_message():
    return make_message()

@pytest.fixture
def mock_message_source():
    """Create a mock message source"""
    source = Mock(spec=SQSMessageSource)
    source.receive = AsyncMock(return_value=[])
    source.delete = AsyncMock()
    return source

@pytest.fixture
def mock_object_store():
    """Create a mock object store that writes a fake video on download"""
    store = Mock(spec=S3ObjectStore)

    async def download_to(key, destination):
        Path(destination).write_bytes(b"fake video content")
        return 18

    async def put(key, data, content_type="application/zip"):
        return key

    store.download_to = AsyncMock(side_effect=download_to)
    store.put = AsyncMock(side_effect=put)
    store.delete = AsyncMock(return_value=True)
    return store

@pytest.fixture
def mock_notifier():
    """Create a mock status notifier"""
    notifier = Mock(spec=StatusNotifier)
    notifier.send_started = AsyncMock()
    notifier.send_processed = AsyncMock()
    notifier.send_error = AsyncMock()
    return notifier

@pytest.fixture
def mock_frame_extractor():
    """Create a frame extractor mock that writes two JPEG frames"""
    extractor = Mock(spec=FrameExtractor)

    async def extract(video_path, output_dir, interval_seconds):
        output_dir = Path(output_dir)
        frames = []
        for index in (1, 2):
            frame = output_dir / f"frame_{index:05d}.jpg"
            frame.write_bytes(b"\xff\xd8\xff" + bytes([index]) * 64)
            frames.append(frame)
        return FrameExtractionResult(
            output_dir=output_dir, frames=frames, interval_seconds=interval_seconds
        )

    extractor.extract = AsyncMock(side_effect=extract)
    return extractor

@pytest.fixture
def staging_manager(test_settings):
    return StagingAreaManager(test_settings.temp_dir)

@pytest.fixture
async def pipeline(
    mock_message_source,
    mock_object_store,
    mock_notifier,
    mock_frame_extractor,
    staging_manager
):
    """Create a pipeline with mocked external collaborators and real disk tools"""
    pipeline = ConversionPipeline(
        message_source=mock_message_source,
        object_store=mock_object_store,
        notifier=mock_notifier,
        frame_extractor=mock_frame_extractor,
        archive_builder=ArchiveBuilder(),
        staging_manager=staging_manager
    )
    yield pipeline
    await pipeline.wait_idle()
