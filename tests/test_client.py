"""Client tests against a mocked Ollama server (httpx.MockTransport)."""

import asyncio
import logging
from unittest.mock import patch

import httpx
import pytest
from tenacity import wait_none

from json_translate.client import OutcomeStatus, list_models, translate, translate_text
from json_translate.errors import ModelListError
from tests.conftest import TEST_ENDPOINT, FakeOllama, run_with_session


def _translate(handler, text="Hello World", **session_kwargs):
    return run_with_session(
        handler,
        lambda s: translate_text(text, "llama2", "English", "Chinese", s),
        **session_kwargs,
    )


def test_request_payload_and_url(echo_server):
    """One POST to /api/generate with the prompt embedding both languages."""
    outcome = _translate(echo_server)

    assert outcome.text == "<TRANSLATED>"
    assert outcome.status is OutcomeStatus.TRANSLATED
    assert len(echo_server.requests) == 1
    request = echo_server.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{TEST_ENDPOINT}/api/generate"
    assert echo_server.payloads[0] == {
        "model": "llama2",
        "prompt": "Translate the following English text to Chinese: Hello World",
        "stream": False,
    }


def test_response_is_stripped():
    outcome = _translate(FakeOllama(reply="  你好世界\n"))
    assert outcome.text == "你好世界"
    assert outcome.translated


@pytest.mark.parametrize("body", [
    b'{"done": true}',
    b'{"response": null}',
    b'{"response": "   "}',
    b'{"response": 42}',
    b'["not", "an", "object"]',
])
def test_missing_or_blank_response_falls_back(body, caplog):
    with caplog.at_level(logging.WARNING, logger="json_translate.client"):
        outcome = _translate(FakeOllama(body=body))

    assert outcome.text == "Hello World"
    assert outcome.status is OutcomeStatus.FALLBACK
    assert outcome.reason == "empty_response"
    assert "empty or missing" in caplog.text


def test_http_error_falls_back_and_logs(failing_server, caplog):
    with caplog.at_level(logging.ERROR, logger="json_translate.client"):
        outcome = _translate(failing_server)

    assert outcome.text == "Hello World"
    assert outcome.reason == "http_status"
    assert "500" in caplog.text
    assert "model runner crashed" in caplog.text


def test_non_json_body_falls_back():
    outcome = _translate(FakeOllama(body=b"<html>bad gateway</html>"))
    assert outcome.text == "Hello World"
    assert outcome.reason == "invalid_response"


def test_connection_error_falls_back():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    outcome = _translate(handler)
    assert outcome.text == "Hello World"
    assert outcome.reason == "transport"


def test_connection_error_is_retried_up_to_max_attempts():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"response": "Bonjour"})

    with patch("json_translate.client.wait_exponential", return_value=wait_none()):
        outcome = _translate(handler, max_attempts=3)

    assert outcome.text == "Bonjour"
    assert len(calls) == 2


def test_connect_timeout_is_not_retried_and_reported_as_timeout():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectTimeout("connect timed out", request=request)

    with patch("json_translate.client.wait_exponential", return_value=wait_none()):
        outcome = _translate(handler, max_attempts=3)

    assert outcome.text == "Hello World"
    assert outcome.reason == "timeout"
    assert len(calls) == 1


def test_http_status_errors_are_not_retried(failing_server):
    outcome = _translate(failing_server, max_attempts=3)
    assert outcome.reason == "http_status"
    assert len(failing_server.requests) == 1


def test_timeout_aborts_call_and_falls_back():
    async def slow_handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json={"response": "too late"})

    outcome = _translate(slow_handler, timeout=0.05)
    assert outcome.text == "Hello World"
    assert outcome.reason == "timeout"


def test_cancel_event_aborts_in_flight_call():
    async def handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json={"response": "too late"})

    async def cancel_soon(session):
        task = asyncio.ensure_future(translate_text("Hello", "llama2", "English", "Chinese", session))
        await asyncio.sleep(0.05)
        session.cancel()
        return await task

    outcome = run_with_session(handler, cancel_soon)
    assert outcome.text == "Hello"
    assert outcome.reason == "cancelled"


def test_already_cancelled_session_sends_nothing(echo_server):
    async def scenario(session):
        session.cancel()
        return await translate_text("Hello", "llama2", "English", "Chinese", session)

    outcome = run_with_session(echo_server, scenario)
    assert outcome.reason == "cancelled"
    assert echo_server.requests == []


def test_task_cancellation_propagates():
    """Cancelling the caller's task is not absorbed as a fallback."""
    async def handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json={"response": "too late"})

    async def scenario(session):
        task = asyncio.ensure_future(translate_text("Hello", "llama2", "English", "Chinese", session))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return True

    assert run_with_session(handler, scenario) is True


def test_translate_returns_plain_string(echo_server):
    result = run_with_session(echo_server, lambda s: translate("Hi", "llama2", "English", "French", s))
    assert result == "<TRANSLATED>"
    assert "English text to French: Hi" in echo_server.payloads[0]["prompt"]


def test_list_models_reads_tag_names():
    def handler(request):
        assert request.url.path == "/api/tags"
        return httpx.Response(200, json={"models": [{"name": "llama2:latest"}, {"name": "qwen2:7b"}]})

    assert run_with_session(handler, list_models) == ["llama2:latest", "qwen2:7b"]


@pytest.mark.parametrize("response", [
    httpx.Response(404, text="not found"),
    httpx.Response(200, json={"models": [{"id": "no-name"}]}),
    httpx.Response(200, text="not json"),
])
def test_list_models_failures_raise(response):
    with pytest.raises(ModelListError):
        run_with_session(lambda request: response, list_models)
