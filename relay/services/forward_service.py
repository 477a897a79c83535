"""Fire-and-forget copy of inbound webhook payloads to a logging endpoint
(e.g. a Google Apps Script web app that appends rows to a Sheet)."""

import asyncio
from typing import Optional

import httpx

from relay.logging_config import get_logger

logger = get_logger("forward_service")


class InboundForwarder:
    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._pending: set[asyncio.Task] = set()

    async def forward(self, form: dict[str, str]) -> bool:
        """POST the form, url-encoded. Never raises."""
        try:
            response = await self._client.post(
                self.url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except Exception as e:
            logger.error(f"Inbound forward failed: {e}")
            return False

        if response.status_code >= 400:
            logger.warning(f"Inbound forward rejected: status={response.status_code}")
            return False

        logger.info("Inbound forward OK")
        return True

    def dispatch(self, form: dict[str, str]) -> asyncio.Task:
        """Schedule ``forward`` on the running loop without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.forward(dict(form)))
        # keep a reference until done, otherwise the loop may drop the task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def aclose(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._owns_client:
            await self._client.aclose()
