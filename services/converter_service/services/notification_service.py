from typing import Dict, Any, Optional
import logging
import httpx

from ..errors import NotificationError
from ..models import ConversionRequest, ConversionStatus, StatusNotification
from .retry_handler import RetryHandler, RetryConfig, RetryStrategy

logger = logging.getLogger(__name__)

NOTIFICATIONS_PATH = "/notifications"

class TrackingNotificationClient:
    """Posts conversion status changes to the tracking service"""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        retry_attempts: int = 3,
        retry_base_delay: float = 1.0,
        retry_strategy: RetryStrategy = RetryStrategy.EXPONENTIAL_BACKOFF
    ):
        self.url = f"{base_url.rstrip('/')}{NOTIFICATIONS_PATH}"
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

        # retry_attempts counts retries, not the first try
        self.retry_config = RetryConfig(
            max_attempts=retry_attempts + 1,
            strategy=retry_strategy,
            base_delay_seconds=retry_base_delay,
            retry_on_exceptions=(httpx.TransportError, NotificationError)
        )
        self.retry_handler = RetryHandler(self.retry_config)

    async def post(self, notification: StatusNotification) -> None:
        """
        Send one notification, retrying network errors and non-success statuses

        Raises:
            NotificationError: once every attempt has failed
        """
        payload = notification.to_payload()
        operation_id = f"{notification.status.value}:{notification.file_id}"

        try:
            await self.retry_handler.execute_with_retry(
                operation_id, self._post_once, payload
            )
        except NotificationError:
            raise
        except httpx.HTTPError as e:
            raise NotificationError(details={'error': str(e), 'payload': payload}) from e

        logger.info(
            f"Notification {notification.status.value} sent for file {notification.file_id} "
            f"of user {notification.user_id}"
        )

    async def _post_once(self, payload: Dict[str, Any]) -> httpx.Response:
        response = await self.client.post(
            self.url,
            json=payload,
            headers={'Content-Type': 'application/json'}
        )

        if not response.is_success:
            raise NotificationError(
                f"Tracking service responded with status {response.status_code}",
                status_code=response.status_code,
                details={'payload': payload}
            )

        return response

    async def close(self):
        if self._owns_client:
            await self.client.aclose()

class StatusNotifier:
    """Builds the STARTED, PROCESSED and ERROR notifications for a request"""

    def __init__(self, client: TrackingNotificationClient):
        self.client = client

    async def send_started(self, request: ConversionRequest):
        await self.client.post(StatusNotification(
            status=ConversionStatus.STARTED,
            user_id=request.user_id,
            file_id=request.file_id
        ))

    async def send_processed(self, request: ConversionRequest, archive_key: str):
        await self.client.post(StatusNotification(
            status=ConversionStatus.PROCESSED,
            user_id=request.user_id,
            file_id=request.file_id,
            archive_key=archive_key
        ))

    async def send_error(self, request: ConversionRequest):
        await self.client.post(StatusNotification(
            status=ConversionStatus.ERROR,
            user_id=request.user_id,
            file_id=request.file_id
        ))
