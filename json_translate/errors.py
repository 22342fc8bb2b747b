"""Exceptions raised to callers of the translation engine.

Per-leaf translation failures are never raised: the client falls back to the
original text. These cover the cases where there is nothing to fall back to.
"""


class TranslationRequestError(ValueError):
    """A pass was requested without a model, endpoint, or language label."""


class ModelListError(RuntimeError):
    """The remote service could not be asked which models it serves."""
