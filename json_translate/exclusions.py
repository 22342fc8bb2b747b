"""Parsing of the comma-separated "keys to exclude" option."""

from __future__ import annotations


def resolve_exclusions(spec: str | None) -> frozenset[str]:
    """
    Turn ``"id, slug,,url "`` into ``{"id", "slug", "url"}``.

    Tokens are trimmed and empty ones dropped, so any string (including an
    empty or whitespace-only one) is a valid spec.
    """
    if not spec:
        return frozenset()
    return frozenset(key.strip() for key in spec.split(",") if key.strip())
