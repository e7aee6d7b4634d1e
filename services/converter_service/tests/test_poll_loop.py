import pytest
import asyncio
from unittest.mock import Mock, AsyncMock

from services.converter_service.services.conversion_pipeline import ConversionPipeline
from services.converter_service.services.poll_loop import PollLoop

@pytest.fixture
def mock_pipeline():
    pipeline = Mock(spec=ConversionPipeline)
    pipeline.process_batch = AsyncMock(return_value=[])
    return pipeline

class TestPollLoop:

    @pytest.mark.asyncio
    async def test_run_once(self, mock_pipeline):
        loop = PollLoop(mock_pipeline, interval_seconds=60)

        await loop.run_once()

        mock_pipeline.process_batch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_ticks_until_stopped(self, mock_pipeline):
        loop = PollLoop(mock_pipeline, interval_seconds=0.01)

        await loop.start()
        assert loop.running
        await asyncio.sleep(0.05)
        await loop.stop()

        assert not loop.running
        calls = mock_pipeline.process_batch.await_count
        assert calls >= 2

        await asyncio.sleep(0.03)
        assert mock_pipeline.process_batch.await_count == calls

    @pytest.mark.asyncio
    async def test_ticks_overlap_slow_batches(self, mock_pipeline):
        in_flight = 0
        peak = 0

        async def slow_batch():
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.05)
            in_flight -= 1
            return []

        mock_pipeline.process_batch.side_effect = slow_batch
        loop = PollLoop(mock_pipeline, interval_seconds=0.01)

        await loop.start()
        await asyncio.sleep(0.04)
        await loop.stop()

        assert peak >= 2

        # batches already started are not cancelled by stop
        await asyncio.sleep(0.1)
        assert in_flight == 0

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, mock_pipeline):
        loop = PollLoop(mock_pipeline, interval_seconds=60)

        await loop.start()
        first_task = loop._loop_task
        await loop.start()

        assert loop._loop_task is first_task
        await loop.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, mock_pipeline):
        loop = PollLoop(mock_pipeline)

        await loop.stop()

        assert not loop.running
