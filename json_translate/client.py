"""
Ollama generation client with hard timeout, cancellation and fail-open fallback.

One request is issued per string. Whatever goes wrong with that request
(connection refused, non-2xx status, garbage body, empty answer, timeout,
cancellation) the original text comes back, tagged as a fallback, and the
failure is logged. A broken service therefore degrades a document to
"untranslated" instead of aborting it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from json_translate.errors import ModelListError
from json_translate.prompts import build_prompt
from json_translate.session import TranslationSession

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
TAGS_PATH     = "/api/tags"
TAGS_TIMEOUT  = 30.0
LOG_SNIPPET   = 100


class OutcomeStatus(str, Enum):
    TRANSLATED = "translated"
    FALLBACK   = "fallback"


@dataclass(frozen=True)
class LeafOutcome:
    """Result of translating one string: the text plus how it was obtained."""

    text: str
    status: OutcomeStatus
    reason: str | None = None

    @property
    def translated(self) -> bool:
        return self.status is OutcomeStatus.TRANSLATED


class _Aborted(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def _fallback(text: str, reason: str) -> LeafOutcome:
    return LeafOutcome(text=text, status=OutcomeStatus.FALLBACK, reason=reason)


async def _post_generate(session: TranslationSession, payload: dict[str, Any]) -> Any:
    response = await session.get_client().post(session.url(GENERATE_PATH), json=payload)
    response.raise_for_status()
    return response.json()


async def _generate(session: TranslationSession, payload: dict[str, Any]) -> Any:
    """POST the payload, retrying connection-level errors other than timeouts."""
    async for attempt in AsyncRetrying(
        retry=(
            retry_if_exception_type(httpx.TransportError)
            & retry_if_not_exception_type(httpx.TimeoutException)
        ),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        stop=stop_after_attempt(session.max_attempts),
        reraise=True,
    ):
        with attempt:
            return await _post_generate(session, payload)


async def _run_abortable(coro, session: TranslationSession) -> Any:
    """
    Await `coro` until it finishes, the session timeout expires, or the
    session's cancel event is set. In the latter two cases the request is
    cancelled and ``_Aborted`` is raised.
    """
    request = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(session.cancel_event.wait())
    try:
        done, _ = await asyncio.wait(
            {request, waiter},
            timeout=session.timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        request.cancel()
        waiter.cancel()
        raise
    waiter.cancel()

    if request in done:
        return request.result()

    request.cancel()
    await asyncio.wait({request})
    raise _Aborted("cancelled" if session.cancelled else "timeout")


async def translate_text(
    text: str,
    model: str,
    source_language: str,
    target_language: str,
    session: TranslationSession | None = None,
) -> LeafOutcome:
    """
    Translate a single string via ``POST {endpoint}/api/generate``.

    Args:
        text:            the string to translate.
        model:           Ollama model name, e.g. "llama3".
        source_language: label embedded in the prompt, e.g. "English".
        target_language: label embedded in the prompt, e.g. "Chinese".
        session:         pass context; a throwaway one for the default
                         endpoint is used when omitted.

    Returns:
        A ``LeafOutcome``. Its text is the stripped model answer, or the
        original `text` when the call failed for any reason.
    """
    if session is None:
        async with TranslationSession() as own_session:
            return await translate_text(text, model, source_language, target_language, own_session)

    snippet = text[:LOG_SNIPPET]

    if session.cancelled:
        logger.warning('Translation cancelled, keeping original text: "%s..."', snippet)
        return _fallback(text, "cancelled")

    payload = {
        "model": model,
        "prompt": build_prompt(text, source_language, target_language),
        "stream": False,
    }

    try:
        data = await _run_abortable(_generate(session, payload), session)
    except _Aborted as exc:
        logger.error(
            'Ollama call aborted (%s) after %.0fs. Returning original text: "%s..."',
            exc.reason, session.timeout, snippet,
        )
        return _fallback(text, exc.reason)
    except httpx.HTTPStatusError as exc:
        logger.error(
            'Ollama API non-ok response for text: "%s..." Status: %d Error: %s',
            snippet, exc.response.status_code, exc.response.text,
        )
        return _fallback(text, "http_status")
    except httpx.TimeoutException as exc:
        logger.error(
            'Ollama request timed out. Returning original text: "%s..." (%s)',
            snippet, exc,
        )
        return _fallback(text, "timeout")
    except httpx.HTTPError as exc:
        logger.error(
            'Error translating text with Ollama. Returning original text: "%s..." (%s)',
            snippet, exc,
        )
        return _fallback(text, "transport")
    except ValueError as exc:
        logger.error('Ollama returned a non-JSON body for text: "%s..." (%s)', snippet, exc)
        return _fallback(text, "invalid_response")
    except Exception:
        logger.exception('Unexpected error translating text: "%s..."', snippet)
        return _fallback(text, "error")

    logger.debug('Ollama raw response for text: "%s...": %r', snippet, data)

    translated = data.get("response") if isinstance(data, dict) else None
    if not isinstance(translated, str) or not translated.strip():
        logger.warning(
            'Ollama returned empty or missing "response" field for text: "%s..."', snippet,
        )
        return _fallback(text, "empty_response")

    return LeafOutcome(text=translated.strip(), status=OutcomeStatus.TRANSLATED)


async def translate(
    text: str,
    model: str,
    source_language: str,
    target_language: str,
    session: TranslationSession | None = None,
) -> str:
    """Like ``translate_text`` but returns only the resulting string."""
    outcome = await translate_text(text, model, source_language, target_language, session)
    return outcome.text


async def list_models(session: TranslationSession) -> list[str]:
    """
    Return the model names served at the session endpoint (``GET /api/tags``).

    Raises:
        ModelListError: if the server is unreachable or answers with
                        something other than ``{"models": [{"name": ...}]}``.
    """
    try:
        response = await session.get_client().get(session.url(TAGS_PATH), timeout=TAGS_TIMEOUT)
        response.raise_for_status()
        data = response.json()
        return [m["name"] for m in data.get("models", [])]
    except httpx.HTTPStatusError as exc:
        raise ModelListError(
            f"Failed to fetch Ollama models: {exc.response.status_code} - {exc.response.text}"
        ) from exc
    except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
        raise ModelListError(
            f"Failed to connect to Ollama at {session.endpoint} or fetch models: {exc}"
        ) from exc
