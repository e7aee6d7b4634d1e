import pytest
from unittest.mock import Mock

from botocore.exceptions import EndpointConnectionError

from services.converter_service.errors import QueueError
from services.converter_service.models import QueueMessage
from services.converter_service.services.message_source import SQSMessageSource

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/test-queue"

@pytest.fixture
def sqs_client():
    return Mock()

@pytest.fixture
def source(sqs_client):
    return SQSMessageSource(sqs_client, QUEUE_URL)

class TestSQSMessageSource:

    @pytest.mark.asyncio
    async def test_receive(self, source, sqs_client):
        sqs_client.receive_message.return_value = {
            'Messages': [
                {'MessageId': 'm1', 'ReceiptHandle': 'r1', 'Body': '{"userId": "u1"}'},
                {'MessageId': 'm2', 'ReceiptHandle': 'r2'},
            ]
        }

        messages = await source.receive()

        assert messages == [
            QueueMessage(id='m1', receipt_token='r1', body='{"userId": "u1"}'),
            QueueMessage(id='m2', receipt_token='r2', body=None),
        ]
        sqs_client.receive_message.assert_called_once_with(
            QueueUrl=QUEUE_URL,
            MaxNumberOfMessages=10,
            VisibilityTimeout=20,
            WaitTimeSeconds=0,
            MessageAttributeNames=['All']
        )

    @pytest.mark.asyncio
    async def test_receive_empty_queue(self, source, sqs_client):
        sqs_client.receive_message.return_value = {}

        assert await source.receive() == []

    @pytest.mark.asyncio
    async def test_receive_uses_configured_parameters(self, sqs_client):
        source = SQSMessageSource(
            sqs_client, QUEUE_URL, max_messages=5, visibility_timeout=120, wait_time_seconds=10
        )
        sqs_client.receive_message.return_value = {}

        await source.receive()

        kwargs = sqs_client.receive_message.call_args.kwargs
        assert kwargs['MaxNumberOfMessages'] == 5
        assert kwargs['VisibilityTimeout'] == 120
        assert kwargs['WaitTimeSeconds'] == 10

    @pytest.mark.asyncio
    async def test_receive_failure(self, source, sqs_client):
        sqs_client.receive_message.side_effect = EndpointConnectionError(endpoint_url=QUEUE_URL)

        with pytest.raises(QueueError):
            await source.receive()

    @pytest.mark.asyncio
    async def test_delete(self, source, sqs_client):
        await source.delete('m1', 'r1')

        sqs_client.delete_message.assert_called_once_with(QueueUrl=QUEUE_URL, ReceiptHandle='r1')

    @pytest.mark.asyncio
    async def test_delete_failure(self, source, sqs_client):
        sqs_client.delete_message.side_effect = EndpointConnectionError(endpoint_url=QUEUE_URL)

        with pytest.raises(QueueError) as exc_info:
            await source.delete('m1', 'r1')

        assert exc_info.value.message_id == 'm1'
