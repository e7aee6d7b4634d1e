from fastapi import FastAPI
from contextlib import asynccontextmanager
from typing import Optional
import uvicorn
import logging
import boto3

from .config import Settings, get_settings
from .services.archive_builder import ArchiveBuilder
from .services.conversion_pipeline import ConversionPipeline
from .services.frame_extractor import FrameExtractor
from .services.message_source import SQSMessageSource
from .services.notification_service import StatusNotifier, TrackingNotificationClient
from .services.object_store import S3ObjectStore
from .services.poll_loop import PollLoop
from .services.staging_area import StagingAreaManager

settings = get_settings()

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

def create_aws_client(service_name: str, settings: Settings):
    return boto3.client(
        service_name,
        region_name=settings.aws_region,
        endpoint_url=settings.aws_endpoint_url
    )

def build_pipeline(
    settings: Settings,
    sqs_client,
    s3_client,
    notification_client: TrackingNotificationClient
) -> ConversionPipeline:
    """Wire the pipeline from settings and already created clients"""
    return ConversionPipeline(
        message_source=SQSMessageSource(
            sqs_client,
            settings.aws_sqs_url,
            max_messages=settings.sqs_max_messages,
            visibility_timeout=settings.sqs_visibility_timeout,
            wait_time_seconds=settings.sqs_wait_time_seconds
        ),
        object_store=S3ObjectStore(s3_client, settings.aws_bucket),
        notifier=StatusNotifier(notification_client),
        frame_extractor=FrameExtractor(settings.ffmpeg_path, quality=settings.frame_quality),
        archive_builder=ArchiveBuilder(settings.archive_compression_level),
        staging_manager=StagingAreaManager(settings.temp_dir),
        max_concurrent_conversions=settings.max_concurrent_conversions,
        wait_for_batch_completion=settings.wait_for_batch_completion
    )

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Converter Service...")

    notification_client = TrackingNotificationClient(
        settings.tracking_api_base_url,
        timeout=settings.notification_timeout_seconds,
        retry_attempts=settings.notification_retry_attempts,
        retry_base_delay=settings.notification_retry_base_delay
    )
    pipeline = build_pipeline(
        settings,
        create_aws_client('sqs', settings),
        create_aws_client('s3', settings),
        notification_client
    )
    poll_loop = PollLoop(pipeline, settings.poll_interval_seconds)

    # Store services in app state
    app.state.notification_client = notification_client
    app.state.pipeline = pipeline
    app.state.poll_loop = poll_loop

    if settings.poll_enabled:
        await poll_loop.start()
    else:
        logger.info("Polling disabled, queue will not be read")

    logger.info(f"Converter Service started successfully ({settings.environment})")

    yield

    # Shutdown
    logger.info("Shutting down Converter Service...")
    await poll_loop.stop()
    # Conversions already started still need the notification client
    await pipeline.wait_idle()
    await notification_client.close()
    logger.info("Converter Service shutdown complete")

app = FastAPI(
    title=settings.app_name,
    description="Converts queued videos into archives of sampled frames",
    version="1.0.0",
    lifespan=lifespan
)

# Health check
@app.get("/health")
async def health_check():
    return {"message": "Health Check Converter - Ok"}

def run(port: Optional[int] = None):
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port or settings.port
    )

if __name__ == "__main__":
    run()
