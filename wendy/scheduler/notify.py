"""Best-effort completion notice to the performance service."""

import logging
from typing import Optional

import httpx

from wendy.config import settings

logger = logging.getLogger(__name__)


class PerformanceNotifier:
    """PATCHes a performance with the public URL of its finished recording."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.friends_url).rstrip("/")
        self.timeout = timeout or settings.notify_timeout_seconds
        self._transport = transport

    async def job_completed(self, performance_id: int, url: str) -> bool:
        """Send the notice. Errors are logged and reported as False, never raised."""
        payload = {"status": "satisfied", "url": url}
        endpoint = f"{self.base_url}/performance/{performance_id}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.patch(endpoint, json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Error on patch to %s: %s", endpoint, exc)
            return False
        logger.info("Patched performance %s with values %s", performance_id, payload)
        return True
