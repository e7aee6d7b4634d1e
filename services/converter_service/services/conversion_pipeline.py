import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Set

from ..models import (
    ConversionMessage, ConversionOutcome, ConversionRequest, ConversionStep,
    InvalidRequest
)
from .archive_builder import ArchiveBuilder
from .frame_extractor import FrameExtractor
from .message_source import SQSMessageSource
from .notification_service import StatusNotifier
from .object_store import ARCHIVE_CONTENT_TYPE, S3ObjectStore, build_archive_key
from .staging_area import StagingArea, StagingAreaManager

logger = logging.getLogger(__name__)

def build_archive_name(file_name: str, now: Optional[datetime] = None) -> str:
    """Archive file name: lower-cased file stem plus a second-resolution timestamp"""
    now = now or datetime.now(timezone.utc)
    stem = Path(file_name).name.split('.')[0].lower() or "frames"
    return f"{stem}_{now.strftime('%Y%m%d%H%M%S')}.zip"

class ConversionPipeline:
    """Drives queue messages through fetch, extract, archive, upload, notify, ack and cleanup"""

    def __init__(
        self,
        message_source: SQSMessageSource,
        object_store: S3ObjectStore,
        notifier: StatusNotifier,
        frame_extractor: FrameExtractor,
        archive_builder: ArchiveBuilder,
        staging_manager: StagingAreaManager,
        max_concurrent_conversions: int = 0,
        wait_for_batch_completion: bool = False
    ):
        self.message_source = message_source
        self.object_store = object_store
        self.notifier = notifier
        self.frame_extractor = frame_extractor
        self.archive_builder = archive_builder
        self.staging_manager = staging_manager
        self.wait_for_batch_completion = wait_for_batch_completion

        self._semaphore = (
            asyncio.Semaphore(max_concurrent_conversions)
            if max_concurrent_conversions > 0 else None
        )
        self._conversions: Set[asyncio.Task] = set()
        self._source_deletes: Set[asyncio.Task] = set()

    @property
    def active_conversions(self) -> int:
        return len(self._conversions)

    async def process_batch(self) -> List[asyncio.Task]:
        """
        Receive one batch and start one conversion task per message

        Receive failures are logged and yield an empty batch. Unless the
        completion gate is enabled the returned tasks are still running.
        """
        try:
            queue_messages = await self.message_source.receive()
        except Exception as e:
            logger.error(f"Error receiving conversion messages: {str(e)}")
            return []

        logger.info(f"Total messages found: {len(queue_messages)}")

        tasks = []
        for queue_message in queue_messages:
            message = ConversionMessage.from_queue_message(queue_message)
            task = asyncio.create_task(self._run_conversion(message))
            self._conversions.add(task)
            task.add_done_callback(self._conversions.discard)
            tasks.append(task)

        if self.wait_for_batch_completion and tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        return tasks

    async def _run_conversion(self, message: ConversionMessage) -> ConversionOutcome:
        if self._semaphore is None:
            return await self.convert_one(message)

        async with self._semaphore:
            return await self.convert_one(message)

    async def convert_one(self, message: ConversionMessage) -> ConversionOutcome:
        """
        Run a single message to a terminal state

        Invalid requests are logged and left on the queue. Every valid
        request is acknowledged and its staging area removed whether the
        conversion succeeded or not.

        Returns:
            ConversionOutcome listing the steps that were entered
        """
        outcome = ConversionOutcome(message_id=message.id)
        outcome.steps.append(ConversionStep.VALIDATE)

        if isinstance(message.payload, InvalidRequest):
            outcome.error = message.payload.reason
            logger.error(
                f"Discarding invalid message {message.id}: {message.payload.error.to_dict()}"
            )
            return outcome

        request = message.request
        area = self.staging_manager.new_area(request.user_id)
        logger.info(f"Starting conversion of {request.file_name} for message {message.id}")

        try:
            try:
                outcome.archive_key = await self._convert(request, area, outcome)
                outcome.succeeded = True
            except Exception as e:
                await self._handle_failure(message, request, outcome, e)

            await self._acknowledge(message, outcome)
        finally:
            self._schedule_source_delete(request.source_storage_key)
            await self._cleanup(area)
            outcome.steps.append(ConversionStep.CLEANED)

        if outcome.succeeded:
            logger.info(
                f"Conversion of {request.file_name} for user {request.user_id} completed: "
                f"{outcome.archive_key}"
            )
        return outcome

    async def _convert(
        self,
        request: ConversionRequest,
        area: StagingArea,
        outcome: ConversionOutcome
    ) -> str:
        outcome.steps.append(ConversionStep.STARTED)
        await self.notifier.send_started(request)

        outcome.steps.append(ConversionStep.FETCHING)
        self.staging_manager.create_dir(area.root)
        video_path = area.video_path(request.file_name)
        await self.object_store.download_to(request.source_storage_key, video_path)

        outcome.steps.append(ConversionStep.EXTRACTING)
        self.staging_manager.create_dir(area.frames_dir)
        await self.frame_extractor.extract(
            video_path, area.frames_dir, request.frame_interval_seconds
        )

        outcome.steps.append(ConversionStep.ARCHIVING)
        archive_name = build_archive_name(request.file_name)
        archive = await self.archive_builder.build(
            area.frames_dir, area.archive_path(archive_name)
        )

        outcome.steps.append(ConversionStep.UPLOADING)
        content = await asyncio.to_thread(archive.path.read_bytes)
        archive_key = await self.object_store.put(
            build_archive_key(request.user_id, archive_name),
            content,
            ARCHIVE_CONTENT_TYPE
        )

        outcome.steps.append(ConversionStep.NOTIFY_DONE)
        await self.notifier.send_processed(request, archive_key)

        return archive_key

    async def _handle_failure(
        self,
        message: ConversionMessage,
        request: ConversionRequest,
        outcome: ConversionOutcome,
        error: Exception
    ):
        failed_step = outcome.final_step
        outcome.steps.append(ConversionStep.FAILED)
        outcome.error = str(error)
        logger.error(
            f"Error converting message {message.id} at step {failed_step.value}: {str(error)}. "
            f"Request: {request.model_dump_json(by_alias=True)}"
        )

        outcome.steps.append(ConversionStep.NOTIFY_ERROR)
        try:
            await self.notifier.send_error(request)
        except Exception as e:
            logger.error(f"Error sending failure notification for message {message.id}: {str(e)}")

    async def _acknowledge(self, message: ConversionMessage, outcome: ConversionOutcome):
        try:
            await self.message_source.delete(message.id, message.receipt_token)
            outcome.steps.append(ConversionStep.ACKED)
        except Exception as e:
            logger.error(f"Error acknowledging message {message.id}: {str(e)}")

    def _schedule_source_delete(self, key: str):
        """Start deleting the source video without waiting for it"""
        task = asyncio.create_task(self.object_store.delete(key))
        self._source_deletes.add(task)
        task.add_done_callback(self._on_source_delete_done)

    def _on_source_delete_done(self, task: asyncio.Task):
        self._source_deletes.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Error deleting source object: {str(error)}")

    async def _cleanup(self, area: StagingArea):
        try:
            failures = await asyncio.to_thread(self.staging_manager.remove_tree, area.root)
        except Exception as e:
            logger.error(f"Error removing staging area {area.root}: {str(e)}")
            return

        if failures:
            logger.warning(f"Staging area {area.root} left {failures} entries behind")

    async def wait_idle(self):
        """Wait for running conversions and pending source deletes"""
        while True:
            pending = [
                task for task in (*self._conversions, *self._source_deletes)
                if not task.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
