"""
Tests for the completion gateway against a mocked HTTP transport.
"""

import asyncio
import json
import time

import httpx
import pytest

from worklog_assistant.errors import (
    CompletionError,
    CompletionInvalidResponse,
    CompletionTimeout,
    CompletionTransportError,
)
from worklog_assistant.models import LatencyWindow
from worklog_assistant.repositories import CompletionGateway
from worklog_assistant.repositories.completion_gateway import extract_answer

API_URL = "https://llm.test/v1/chat/completions"


def ok_body(content="  Alice migrated billing.  "):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def run_gateway(handler, *, api_key="secret", timeout=2.0, window=None, calls=1):
    """Run `calls` completions against `handler`; return (answers or error, gateway)."""

    async def main():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = CompletionGateway(
            api_url=API_URL,
            api_key=api_key,
            model_name="test-model",
            timeout=timeout,
            latency_window=window,
            client=client,
        )
        try:
            answers = [await gateway.complete("system", "question") for _ in range(calls)]
        finally:
            await gateway.close()
        return answers, gateway

    return asyncio.run(main())


def test_complete_sends_chat_payload_and_returns_trimmed_answer():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=ok_body())

    answers, gateway = run_gateway(handler)

    assert answers == ["Alice migrated billing."]
    assert seen["auth"] == "Bearer secret"
    body = seen["body"]
    assert body["model"] == "test-model"
    assert body["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "question"},
    ]
    assert {"max_tokens", "temperature", "top_p"} <= set(body)
    assert gateway.get_stats()["total_requests"] == 1


def test_missing_api_key_fails_without_request():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(CompletionError, match="MODEL_ACCESS_KEY not configured"):
        run_gateway(handler, api_key="")


def test_error_status_is_transport_error():
    def handler(request):
        return httpx.Response(503, text="overloaded")

    with pytest.raises(CompletionTransportError, match="AI service unavailable: 503"):
        run_gateway(handler)


def test_network_failure_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CompletionTransportError):
        run_gateway(handler)


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": None}}]},
        ok_body(content="   "),
    ],
)
def test_unexpected_shape_or_empty_answer_is_invalid_response(body):
    def handler(request):
        return httpx.Response(200, json=body)

    with pytest.raises(CompletionInvalidResponse):
        run_gateway(handler)


def test_extract_answer():
    assert extract_answer(ok_body("\nhi\n")) == "hi"
    with pytest.raises(CompletionInvalidResponse):
        extract_answer(None)


def test_slow_upstream_is_cancelled_at_timeout():
    cancelled = {}

    async def handler(request):
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled["yes"] = True
            raise
        return httpx.Response(200, json=ok_body())

    started = time.perf_counter()
    with pytest.raises(CompletionTimeout):
        run_gateway(handler, timeout=0.2)
    elapsed = time.perf_counter() - started

    assert elapsed < 2.0
    assert cancelled.get("yes") is True


def test_latency_window_keeps_only_recent_requests():
    def handler(request):
        return httpx.Response(200, json=ok_body())

    _, gateway = run_gateway(handler, window=LatencyWindow(size=3), calls=5)
    stats = gateway.get_stats()

    assert stats["total_requests"] == 3
    assert len(stats["recent_times"]) == 3
    assert stats["average_response_time"] >= 0


def test_failed_requests_are_not_recorded():
    def handler(request):
        return httpx.Response(500)

    async def main():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = CompletionGateway(api_url=API_URL, api_key="k", client=client)
        with pytest.raises(CompletionTransportError):
            await gateway.complete("s", "q")
        await gateway.close()
        return gateway.get_stats()

    assert asyncio.run(main())["total_requests"] == 0


def test_injected_empty_window_is_used():
    def handler(request):
        return httpx.Response(200, json=ok_body())

    window = LatencyWindow(size=2)
    assert len(window) == 0

    _, gateway = run_gateway(handler, window=window, calls=4)

    assert window.to_dict()["total_requests"] == 2
    assert gateway.get_stats() == window.to_dict()
