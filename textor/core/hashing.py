"""Content hashing with optional normalization.

Every component that compares "what we wrote" with "what is on disk now" goes
through :func:`calculate_hash`, so formatting tools that only touch line
endings or whitespace do not make a file look modified.
"""

from __future__ import annotations

import hashlib
import re
from enum import Enum


class NormalizationMode(str, Enum):
    """How content is normalized before it is hashed."""

    NONE = "none"
    EOL = "normalizeEOL"
    WHITESPACE = "normalizeWhitespace"


DEFAULT_NORMALIZATION = NormalizationMode.EOL

_LINE_ENDINGS = re.compile(r"\r\n?")
_WHITESPACE_RUN = re.compile(r"[ \t\f\v]+")


def _coerce_mode(mode: NormalizationMode | str | None) -> NormalizationMode:
    if mode is None:
        return DEFAULT_NORMALIZATION
    if isinstance(mode, NormalizationMode):
        return mode
    try:
        return NormalizationMode(mode)
    except ValueError:
        raise ValueError(
            f"Unknown normalization mode '{mode}'. "
            f"Expected one of: {', '.join(m.value for m in NormalizationMode)}"
        ) from None


def normalize_content(
    content: str, mode: NormalizationMode | str | None = DEFAULT_NORMALIZATION
) -> str:
    """Return *content* normalized according to *mode*.

    * ``none`` leaves the text untouched.
    * ``normalizeEOL`` turns CRLF and lone CR into LF.
    * ``normalizeWhitespace`` additionally strips every line, collapses runs of
      spaces/tabs to a single space and drops blank lines.

    Normalization is idempotent: ``normalize_content(normalize_content(c, m), m)``
    equals ``normalize_content(c, m)``.
    """
    resolved = _coerce_mode(mode)
    if resolved is NormalizationMode.NONE:
        return content

    text = _LINE_ENDINGS.sub("\n", content)
    if resolved is NormalizationMode.EOL:
        return text

    lines = (_WHITESPACE_RUN.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def calculate_hash(
    content: str, normalization: NormalizationMode | str | None = DEFAULT_NORMALIZATION
) -> str:
    """Return the SHA-256 hex digest of *content* after normalization."""
    normalized = normalize_content(content, normalization)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
