"""OpenAI-compatible chat completion gateway.

Sends a system prompt plus the user's question to a chat-completions
endpoint under a hard wall-clock timeout. The in-flight request is
cancelled when the timeout fires. Durations of successful requests feed
a rolling latency window.

Request:
    {"model": "...", "messages": [{"role": "system", ...}, {"role": "user", ...}],
     "max_tokens": 1024, "temperature": 0.75, "top_p": 0.9}

Response:
    {"choices": [{"message": {"content": "..."}}]}
"""

import asyncio
import logging
import time
from typing import Any

import httpx

from worklog_assistant.config import settings
from worklog_assistant.errors import (
    CompletionError,
    CompletionInvalidResponse,
    CompletionTimeout,
    CompletionTransportError,
)
from worklog_assistant.models import LatencyWindow

logger = logging.getLogger(__name__)


def extract_answer(data: Any) -> str:
    """Pull the trimmed answer text out of a chat-completions response body.

    Raises:
        CompletionInvalidResponse: If the body has no non-empty answer
    """
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise CompletionInvalidResponse("Invalid response format from AI service") from e

    if not isinstance(content, str):
        raise CompletionInvalidResponse("AI service returned non-text content")

    answer = content.strip()
    if not answer:
        raise CompletionInvalidResponse("AI service returned an empty answer")
    return answer


class CompletionGateway:
    """HTTP implementation of CompletionProvider protocol.

    Example:
        ```python
        gateway = CompletionGateway.create()
        answer = await gateway.complete(system_prompt, "What did the platform team ship?")
        print(gateway.get_stats())
        ```
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        model_name: str | None = None,
        timeout: float | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        latency_window: LatencyWindow | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the completion gateway.

        Args:
            api_url: Chat-completions endpoint. Defaults to settings.completion_api_url.
            api_key: Bearer token. Defaults to settings.model_access_key.
            model_name: Model identifier. Defaults to settings.completion_model.
            timeout: Wall-clock limit per request in seconds.
            max_tokens: Completion token cap.
            temperature: Sampling temperature.
            top_p: Nucleus sampling parameter.
            latency_window: Rolling window for successful request durations.
            client: Pre-built async HTTP client (tests inject a mock transport here).
        """
        self._api_url = api_url or settings.completion_api_url
        self._api_key = api_key if api_key is not None else settings.model_access_key
        self._model_name = model_name or settings.completion_model
        self._timeout = timeout or settings.completion_timeout
        self._max_tokens = max_tokens or settings.completion_max_tokens
        self._temperature = settings.completion_temperature if temperature is None else temperature
        self._top_p = settings.completion_top_p if top_p is None else top_p
        # an empty window is falsy, so test for None explicitly
        if latency_window is None:
            latency_window = LatencyWindow(settings.latency_window_size)
        self._latency = latency_window
        self._client = client

    @classmethod
    def create(
        cls,
        api_url: str | None = None,
        model_name: str | None = None,
        timeout: float | None = None,
    ) -> "CompletionGateway":
        """Factory method to create CompletionGateway with defaults."""
        return cls(api_url=api_url, model_name=model_name, timeout=timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def timeout(self) -> float:
        return self._timeout

    def _build_payload(self, system_prompt: str, user_message: str) -> dict[str, Any]:
        return {
            "model": self._model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "top_p": self._top_p,
        }

    async def _post(self, payload: dict[str, Any]) -> Any:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        try:
            response = await self.client.post(self._api_url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise CompletionTimeout(f"AI request timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise CompletionTransportError(f"AI service request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(
                "AI service returned %s: %s", response.status_code, response.text[:200]
            )
            raise CompletionTransportError(f"AI service unavailable: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise CompletionInvalidResponse("AI service returned invalid JSON") from e

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """Generate an answer to `user_message` under `system_prompt`.

        Returns:
            Non-empty, trimmed answer text

        Raises:
            CompletionError: If no API key is configured
            CompletionTimeout: If the request exceeds the wall-clock timeout
            CompletionTransportError: On network failure or a non-2xx status
            CompletionInvalidResponse: If the response has no answer text
        """
        if not self._api_key:
            raise CompletionError("MODEL_ACCESS_KEY not configured")

        payload = self._build_payload(system_prompt, user_message)
        start_time = time.perf_counter()

        try:
            data = await asyncio.wait_for(self._post(payload), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning("AI request cancelled after %ss", self._timeout)
            raise CompletionTimeout(f"AI request timed out after {self._timeout}s") from e

        answer = extract_answer(data)

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._latency.record(duration_ms)
        logger.info("AI response received in %.0fms", duration_ms)
        return answer

    def get_stats(self) -> dict:
        """Latency statistics over the rolling window.

        Returns:
            {average_response_time, total_requests, recent_times}
        """
        return self._latency.to_dict()

    async def close(self) -> None:
        """Close the async HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
