from __future__ import annotations

import re

SIGNATURE_LENGTH = 40

_TRAILING_WS = re.compile(r"[ \t]+\n")
_BLANK_RUNS = re.compile(r"\n{3,}")
_INLINE_WS = re.compile(r"[ \t]+")


def normalize(text: str | None) -> str:
    s = (text or "").replace("\u00a0", " ")
    s = _TRAILING_WS.sub("\n", s)
    s = _BLANK_RUNS.sub("\n\n", s)
    return s.strip()


def normalize_whitespace(text: str | None) -> str:
    """`normalize` plus collapsing runs of spaces/tabs and trimming every line."""
    s = normalize(text)
    lines = [_INLINE_WS.sub(" ", line).strip() for line in s.split("\n")]
    return _BLANK_RUNS.sub("\n\n", "\n".join(lines)).strip()


def signature_of(text: str | None) -> str:
    """First line of the payload, whitespace-normalized, truncated.

    A best-effort disambiguator, not a digest: payloads sharing a first line share
    a signature.
    """
    first_line = normalize_whitespace(text).split("\n", 1)[0]
    return first_line[:SIGNATURE_LENGTH]


def contains_signature(observed: str | None, signature: str) -> bool:
    """Case-insensitive substring check after normalizing both sides."""
    if not signature:
        return False
    haystack = _INLINE_WS.sub(" ", (observed or "").replace("\u00a0", " ")).lower()
    needle = _INLINE_WS.sub(" ", signature.replace("\u00a0", " ")).lower()
    return needle in haystack
