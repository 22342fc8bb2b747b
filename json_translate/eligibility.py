"""
Cheap per-string check deciding whether a leaf is sent for translation.

This is a script heuristic, not language identification: a string is a
candidate when it has Latin letters and no CJK ideographs. It ignores the
configured language labels, so pairs other than Latin-script -> CJK need a
different predicate (see ``translate_json(predicate=...)``).
"""

from __future__ import annotations

import re
from typing import Callable

RE_LATIN = re.compile(r"[A-Za-z]")
RE_CJK   = re.compile(r"[\u4e00-\u9fa5]")

Predicate = Callable[[str], bool]


def needs_translation(text: str) -> bool:
    """True if `text` has at least one Latin letter and no CJK ideograph."""
    return bool(RE_LATIN.search(text)) and not RE_CJK.search(text)
