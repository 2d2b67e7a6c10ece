"""Case- and punctuation-insensitive string similarity (normalised Levenshtein)."""

from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_text(value: str | None) -> str:
    """Lower-case and drop everything except ASCII letters and digits."""
    if not value:
        return ""
    return _NON_ALNUM.sub("", value.lower())


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance with a rolling row."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def similarity(left: str | None, right: str | None) -> float:
    """1 - distance / max length over normalised strings, in [0, 1].

    Either side empty after normalisation scores 0.
    """
    a, b = normalize_text(left), normalize_text(right)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))
