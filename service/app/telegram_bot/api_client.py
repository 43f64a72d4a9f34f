"""
HTTP client for the crew task API and the webhook capture service.

The task runner cannot call the bot directly, it posts results to a
webhook.site capture URL. This client submits tasks with that URL and
reads back what was captured.
"""

import httpx
from typing import Optional

from app.config import get_settings
from app.crew.schemas import (
    CapturedRequest,
    CapturedRequestPage,
    TaskCreateRequest,
    TaskCreateResponse,
)
from .logging_config import bot_logger as logger


class CrewAPIClient:
    """
    Client for the crew task API and the capture endpoint.

    A single httpx.AsyncClient is shared by all calls.
    """

    def __init__(
        self,
        api_endpoint: str,
        webhook_url: str,
        webhook_fetch_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_endpoint = api_endpoint
        self.webhook_url = webhook_url
        self.webhook_fetch_url = webhook_fetch_url
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def create_task(self, query: str) -> str:
        """
        Call POST {api_endpoint} to start a crew run.

        Returns the task id assigned by the API.
        """
        payload = TaskCreateRequest(webhook=self.webhook_url, query_post=query or None)
        body = payload.model_dump(exclude_none=True)

        logger.info(f"Sending API request to {self.api_endpoint}, payload={body}")
        response = await self.client.post(self.api_endpoint, json=body)
        logger.info(f"API response status: {response.status_code}")

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError:
            logger.error(f"API call failed: status={response.status_code}, body={response.text[:500]}")
            raise

        return TaskCreateResponse.model_validate(response.json()).task_id

    async def fetch_captured_requests(self) -> list[CapturedRequest]:
        """
        Call GET on the capture endpoint.

        Returns captured deliveries, newest first.
        """
        response = await self.client.get(self.webhook_fetch_url)
        response.raise_for_status()
        return CapturedRequestPage.model_validate(response.json()).data

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()


# Global instance
_api_client: Optional[CrewAPIClient] = None


def get_api_client() -> CrewAPIClient:
    """Get or create crew API client singleton."""
    global _api_client
    if _api_client is None:
        settings = get_settings()
        _api_client = CrewAPIClient(
            api_endpoint=settings.api_endpoint,
            webhook_url=settings.webhook_url,
            webhook_fetch_url=settings.webhook_fetch_url,
            timeout=settings.http_timeout_seconds,
        )
    return _api_client


async def close_api_client() -> None:
    """Close and forget the singleton (call on shutdown)."""
    global _api_client
    if _api_client is not None:
        await _api_client.close()
        _api_client = None
