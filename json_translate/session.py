"""
Per-pass connection settings for the Ollama generation service.

A ``TranslationSession`` is created at the start of a pass and handed to every
client call made during it, so two passes against different endpoints can run
side by side. The module-level default endpoint is only read when a session
is constructed; changing it later never redirects a pass already underway.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:11434"
DEFAULT_TIMEOUT  = 1800.0   # seconds; sized for large documents on a local model

_default_endpoint = DEFAULT_ENDPOINT


def set_default_endpoint(url: str) -> None:
    """Set the endpoint used by sessions created without an explicit one."""
    global _default_endpoint
    _default_endpoint = url


def get_default_endpoint() -> str:
    return _default_endpoint


class TranslationSession:
    """
    Endpoint, timeout, retry policy and cancellation signal for one pass.

    Use as an async context manager so the underlying ``httpx.AsyncClient``
    is closed when the pass ends::

        async with TranslationSession("http://gpu-box:11434") as session:
            result = await translate_json(data, "llama3", "English", "Chinese",
                                          session=session)

    Args:
        endpoint:     base URL of the Ollama server; defaults to the current
                      module default.
        timeout:      hard limit in seconds for a single generation call.
        max_attempts: attempts per call on connection errors (1 = no retry).
        cancel_event: setting it aborts the in-flight call and makes every
                      later call fall back immediately.
        transport:    optional httpx transport, e.g. ``httpx.MockTransport``.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = 1,
        cancel_event: asyncio.Event | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = (endpoint or _default_endpoint).rstrip("/")
        self.timeout = float(timeout)
        self.max_attempts = max(1, int(max_attempts))
        self.cancel_event = cancel_event if cancel_event is not None else asyncio.Event()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def url(self, path: str) -> str:
        return f"{self.endpoint}/{path.lstrip('/')}"

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Abort the in-flight call; remaining leaves keep their original text."""
        if not self.cancel_event.is_set():
            logger.info("Cancellation requested for session %s", self.endpoint)
        self.cancel_event.set()

    def get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            # The hard per-call limit is enforced by the caller, so httpx
            # itself only bounds connection setup.
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(None, connect=min(self.timeout, 30.0)),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "TranslationSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"TranslationSession(endpoint={self.endpoint!r}, timeout={self.timeout})"
