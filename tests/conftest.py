"""Shared fixtures and fake Ollama servers for the translator test suite."""

import asyncio
import json

import httpx
import pytest

from json_translate.session import TranslationSession

TEST_ENDPOINT = "http://ollama.test:11434"


class FakeOllama:
    """Callable httpx.MockTransport handler recording every generate request."""

    def __init__(self, reply="<TRANSLATED>", status_code=200, body=None):
        self.reply = reply
        self.status_code = status_code
        self.body = body
        self.requests: list[httpx.Request] = []

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="model runner crashed")
        if self.body is not None:
            return httpx.Response(200, content=self.body)
        return httpx.Response(200, json={"model": "llama2", "response": self.reply, "done": True})


def make_session(handler, **kwargs) -> TranslationSession:
    return TranslationSession(TEST_ENDPOINT, transport=httpx.MockTransport(handler), **kwargs)


def run_with_session(handler, coro_factory, **session_kwargs):
    """Open a mock-backed session, await ``coro_factory(session)`` and close it."""

    async def scenario():
        async with make_session(handler, **session_kwargs) as session:
            return await coro_factory(session)

    return asyncio.run(scenario())


@pytest.fixture
def sample_document() -> dict:
    return {"title": "Hello World", "id": "abc123", "nested": ["Good Morning", "你好"]}


@pytest.fixture
def echo_server() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def failing_server() -> FakeOllama:
    return FakeOllama(status_code=500)
