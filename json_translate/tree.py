"""
Recursive translation of JSON documents.

``translate_json`` rebuilds a parsed JSON value with the same shape: every
dict keeps its keys in order, every list keeps its length, and only string
leaves that pass the eligibility predicate are replaced by their translation.
Leaves are translated one at a time in depth-first order.

Excluded keys are matched against dict keys only, never list positions. A
string sitting directly in a list is always checked by the predicate.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable

from json_translate.client import LeafOutcome, translate_text
from json_translate.eligibility import Predicate, needs_translation
from json_translate.errors import TranslationRequestError
from json_translate.exclusions import resolve_exclusions
from json_translate.session import DEFAULT_TIMEOUT, TranslationSession, get_default_endpoint

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[LeafOutcome], None]


@dataclass
class TranslationReport:
    """Tally of what happened to the string leaves of one pass."""

    translated: int = 0
    fallback: int = 0
    skipped: int = 0
    excluded: int = 0
    fallback_reasons: Counter = field(default_factory=Counter)

    @property
    def attempted(self) -> int:
        return self.translated + self.fallback

    @property
    def complete(self) -> bool:
        """True when every eligible string was actually translated."""
        return self.fallback == 0

    def record(self, outcome: LeafOutcome) -> None:
        if outcome.translated:
            self.translated += 1
        else:
            self.fallback += 1
            self.fallback_reasons[outcome.reason] += 1


class _Pass:
    """State shared by every recursion step of one pass."""

    def __init__(
        self,
        model: str,
        source_language: str,
        target_language: str,
        excluded: frozenset[str],
        session: TranslationSession,
        predicate: Predicate,
        report: TranslationReport,
        progress: ProgressCallback | None,
    ):
        self.model = model
        self.source_language = source_language
        self.target_language = target_language
        self.excluded = excluded
        self.session = session
        self.predicate = predicate
        self.report = report
        self.progress = progress

    async def string(self, text: str) -> str:
        if not self.predicate(text):
            self.report.skipped += 1
            return text
        outcome = await translate_text(
            text, self.model, self.source_language, self.target_language, self.session,
        )
        self.report.record(outcome)
        if self.progress is not None:
            self.progress(outcome)
        return outcome.text

    async def value(self, value: Any) -> Any:
        if isinstance(value, list):
            out_list = []
            for item in value:
                if isinstance(item, str):
                    out_list.append(await self.string(item))
                else:
                    out_list.append(await self.value(item))
            return out_list

        if isinstance(value, dict):
            out: dict[Any, Any] = {}
            for key, item in value.items():
                if key in self.excluded:
                    if isinstance(item, str):
                        self.report.excluded += 1
                    out[key] = item
                elif isinstance(item, str):
                    out[key] = await self.string(item)
                elif isinstance(item, (dict, list)):
                    out[key] = await self.value(item)
                else:
                    out[key] = item
            return out

        return value


async def translate_json(
    value: Any,
    model: str,
    source_language: str,
    target_language: str,
    keys_to_exclude: str | None = "",
    *,
    session: TranslationSession | None = None,
    predicate: Predicate = needs_translation,
    report: TranslationReport | None = None,
    progress: ProgressCallback | None = None,
) -> Any:
    """
    Return a translated copy of a parsed JSON value.

    Args:
        value:            dict / list / scalar as produced by ``json.load``.
        model:            Ollama model name.
        source_language:  source language label used in the prompt.
        target_language:  target language label used in the prompt.
        keys_to_exclude:  comma-separated dict keys whose values are copied
                          verbatim, e.g. ``"id,url"``.
        session:          pass context; when omitted a session for the
                          default endpoint is opened for this call only.
        predicate:        decides which strings are sent for translation.
        report:           optional ``TranslationReport`` filled in place.
        progress:         called with each outcome after a remote call.

    The input is never mutated. A root that is not a dict or list is
    returned as is.
    """
    if not isinstance(value, (dict, list)):
        return value

    if session is None:
        async with TranslationSession() as own_session:
            return await translate_json(
                value, model, source_language, target_language, keys_to_exclude,
                session=own_session, predicate=predicate, report=report, progress=progress,
            )

    walk = _Pass(
        model=model,
        source_language=source_language,
        target_language=target_language,
        excluded=resolve_exclusions(keys_to_exclude),
        session=session,
        predicate=predicate,
        report=report if report is not None else TranslationReport(),
        progress=progress,
    )
    return await walk.value(value)


def count_eligible(
    value: Any,
    keys_to_exclude: str | None = "",
    predicate: Predicate = needs_translation,
) -> int:
    """Number of strings ``translate_json`` would send to the model."""
    excluded = resolve_exclusions(keys_to_exclude)

    def _count(node: Any) -> int:
        if isinstance(node, str):
            return int(predicate(node))
        if isinstance(node, list):
            return sum(_count(item) for item in node)
        if isinstance(node, dict):
            return sum(_count(item) for key, item in node.items() if key not in excluded)
        return 0

    if not isinstance(value, (dict, list)):
        return 0
    return _count(value)


async def translate_document(
    json_value: Any,
    model: str,
    source_language: str,
    target_language: str,
    keys_to_exclude: str | None = "",
    *,
    endpoint: str | None = None,
    timeout: float | None = None,
    max_attempts: int | None = None,
    session: TranslationSession | None = None,
    predicate: Predicate = needs_translation,
    report: TranslationReport | None = None,
    progress: ProgressCallback | None = None,
) -> Any:
    """
    Validate the request and run one full pass over `json_value`.

    Either pass an open `session`, or an `endpoint` (plus `timeout` and
    `max_attempts`) from which a session is created for this pass only.
    Without either, the default endpoint (``set_default_endpoint``) is used.
    Passing `session` together with `endpoint`, `timeout` or `max_attempts`
    is rejected, since the session already fixes them.

    Raises:
        TranslationRequestError: when the model, the endpoint or a language
                                 label is missing, or when session settings
                                 are given twice.
    """
    if session is not None and (endpoint, timeout, max_attempts) != (None, None, None):
        raise TranslationRequestError(
            "Pass either a session or endpoint/timeout/max_attempts, not both."
        )
    if endpoint is None:
        endpoint = get_default_endpoint()
    if not model:
        raise TranslationRequestError("No Ollama model provided for translation.")
    if session is None and not endpoint:
        raise TranslationRequestError("No Ollama API URL provided for translation.")
    if not source_language:
        raise TranslationRequestError("No source language provided for translation.")
    if not target_language:
        raise TranslationRequestError("No target language provided for translation.")

    if session is not None:
        return await _run_pass(
            json_value, model, source_language, target_language, keys_to_exclude,
            session, predicate, report, progress,
        )

    async with TranslationSession(
        endpoint,
        timeout=DEFAULT_TIMEOUT if timeout is None else timeout,
        max_attempts=1 if max_attempts is None else max_attempts,
    ) as own_session:
        return await _run_pass(
            json_value, model, source_language, target_language, keys_to_exclude,
            own_session, predicate, report, progress,
        )


async def _run_pass(
    json_value, model, source_language, target_language, keys_to_exclude,
    session, predicate, report, progress,
):
    logger.info(
        "Translating from %s to %s with model: %s using Ollama API: %s",
        source_language, target_language, model, session.endpoint,
    )
    report = report if report is not None else TranslationReport()
    result = await translate_json(
        json_value, model, source_language, target_language, keys_to_exclude,
        session=session, predicate=predicate, report=report, progress=progress,
    )
    logger.info(
        "Pass finished: %d translated, %d fallback, %d skipped, %d excluded",
        report.translated, report.fallback, report.skipped, report.excluded,
    )
    if report.fallback:
        logger.warning("Fallback reasons: %s", dict(report.fallback_reasons))
    return result
