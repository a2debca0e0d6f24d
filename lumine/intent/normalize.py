"""Canonical lowercase form of a chat message, shared by every matcher in the intent layer."""

from __future__ import annotations

import re

_DASHES_AND_QUOTES = str.maketrans({
    "—": "-",
    "–": "-",
    "`": " ",
    '"': " ",
    "'": " ",
    "‘": " ",
    "’": " ",
    "“": " ",
    "”": " ",
})

# `.`, `,`, `/` and `-` survive inside tokens: "12.000", "2,5jt", "03/06/2025", "gado-gado".
_DISALLOWED = re.compile(r"[^0-9a-z_\s.,/\-]+")
_DANGLING_SEPARATOR = re.compile(r"[.,/\-]+(?=\s|$)")
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase `text`, blank out punctuation and collapse whitespace.

    A separator left at the end of a word ("boros?", "ribu.", "kopi,") is dropped so that keyword
    and amount patterns can anchor on word boundaries.
    """

    value = (text or "").lower().translate(_DASHES_AND_QUOTES)
    value = _DISALLOWED.sub(" ", value)
    value = _DANGLING_SEPARATOR.sub(" ", value)
    return _WHITESPACE_RUN.sub(" ", value).strip()
