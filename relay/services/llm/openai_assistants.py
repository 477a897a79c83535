from typing import Any, Optional

import httpx

from relay.errors import TransportError
from relay.logging_config import get_logger
from relay.schemas.assistant import AssistantRun, AssistantThread, ThreadMessage
from relay.services.llm.base import AssistantBackend

logger = get_logger("llm.openai")

ASSISTANTS_BETA_HEADER = "assistants=v2"


class OpenAIAssistantsClient(AssistantBackend):
    """OpenAI Assistants v2 API client (threads, messages, runs)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "OpenAI-Beta": ASSISTANTS_BETA_HEADER,
        }

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug(f"OpenAI request: {method} {path}")
        try:
            response = await self._client.request(method, url, headers=self._headers(), json=payload, params=params)
        except httpx.HTTPError as e:
            logger.error(f"OpenAI transport error: {method} {path}: {e}")
            raise TransportError(f"OpenAI request failed: {method} {path}", detail=str(e)) from e

        logger.debug(f"OpenAI response status: {response.status_code}")

        if response.status_code >= 400:
            detail = _error_message(response)
            logger.error(f"OpenAI error: {response.status_code} - {detail}")
            raise TransportError(
                f"OpenAI API error: {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )

        return response.json()

    async def create_thread(self) -> AssistantThread:
        data = await self._request("POST", "/threads", payload={})
        return AssistantThread.model_validate(data)

    async def add_message(self, thread_id: str, content: str) -> ThreadMessage:
        data = await self._request(
            "POST",
            f"/threads/{thread_id}/messages",
            payload={"role": "user", "content": content},
        )
        return ThreadMessage.model_validate(data)

    async def create_run(self, thread_id: str, assistant_id: str) -> AssistantRun:
        data = await self._request("POST", f"/threads/{thread_id}/runs", payload={"assistant_id": assistant_id})
        return AssistantRun.model_validate(data)

    async def retrieve_run(self, thread_id: str, run_id: str) -> AssistantRun:
        data = await self._request("GET", f"/threads/{thread_id}/runs/{run_id}")
        return AssistantRun.model_validate(data)

    async def list_messages(self, thread_id: str, limit: int = 10, order: str = "desc") -> list[ThreadMessage]:
        data = await self._request(
            "GET",
            f"/threads/{thread_id}/messages",
            params={"order": order, "limit": limit},
        )
        return [ThreadMessage.model_validate(item) for item in data.get("data", [])]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:500]
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return response.text[:500]
