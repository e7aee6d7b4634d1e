import asyncio
import logging
from typing import Optional, Set

from .conversion_pipeline import ConversionPipeline

logger = logging.getLogger(__name__)

class PollLoop:
    """Triggers a pipeline batch on a fixed interval"""

    def __init__(self, pipeline: ConversionPipeline, interval_seconds: float = 60.0):
        self.pipeline = pipeline
        self.interval_seconds = interval_seconds
        self._loop_task: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def start(self):
        """Start the background loop"""
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._poll_loop())
        logger.info(f"Poll loop started, interval {self.interval_seconds}s")

    async def stop(self):
        """Stop scheduling ticks; conversions already started keep running"""
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
            logger.info("Poll loop stopped")

        # Let ticks that are mid-receive finish dispatching their batch
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)

    def run_once(self) -> asyncio.Task:
        """Start one batch without waiting for it"""
        task = asyncio.create_task(self.pipeline.process_batch())
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)
        return task

    async def _poll_loop(self):
        """Background polling loop"""
        while True:
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Error in poll loop: {str(e)}")

            await asyncio.sleep(self.interval_seconds)
