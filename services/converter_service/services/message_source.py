import asyncio
import logging
from typing import List

from ..errors import QueueError
from ..models import QueueMessage

logger = logging.getLogger(__name__)

class SQSMessageSource:
    """Receives conversion messages from an SQS queue and deletes them once handled"""

    def __init__(
        self,
        client,
        queue_url: str,
        max_messages: int = 10,
        visibility_timeout: int = 20,
        wait_time_seconds: int = 0
    ):
        self._sqs_client = client
        self.queue_url = queue_url
        self.max_messages = max_messages
        self.visibility_timeout = visibility_timeout
        self.wait_time_seconds = wait_time_seconds

    async def receive(self) -> List[QueueMessage]:
        """
        Receive one batch of messages

        Returns:
            Possibly empty list of queue messages

        Raises:
            QueueError: if the queue cannot be read
        """
        try:
            response = await asyncio.to_thread(
                self._sqs_client.receive_message,
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=self.max_messages,
                VisibilityTimeout=self.visibility_timeout,
                WaitTimeSeconds=self.wait_time_seconds,
                MessageAttributeNames=['All']
            )
        except Exception as e:
            logger.error(f"Error receiving messages from {self.queue_url}: {str(e)}")
            raise QueueError(f"Receive failed: {e}") from e

        messages = [
            QueueMessage(
                id=item['MessageId'],
                receipt_token=item['ReceiptHandle'],
                body=item.get('Body')
            )
            for item in response.get('Messages', [])
        ]

        if messages:
            logger.info(f"Received {len(messages)} messages from queue")
        return messages

    async def delete(self, message_id: str, receipt_token: str):
        """
        Acknowledge a message so it is not delivered again

        Raises:
            QueueError: if the delete call fails
        """
        try:
            await asyncio.to_thread(
                self._sqs_client.delete_message,
                QueueUrl=self.queue_url,
                ReceiptHandle=receipt_token
            )
        except Exception as e:
            logger.error(f"Error deleting message {message_id}: {str(e)}")
            raise QueueError(f"Delete failed: {e}", message_id=message_id) from e

        logger.info(f"Message {message_id} deleted from queue")
