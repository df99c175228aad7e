"""Arabic text helpers used for duplicate detection and name matching."""

from __future__ import annotations

import re
from typing import Iterable, Optional

# Fathatan .. Sukun (U+064B..U+0652)
_DIACRITICS_RE = re.compile("[\u064B-\u0652]")
_ALEF_RE = re.compile("[أإآ]")
_SPACES_RE = re.compile(r"\s+")


def normalize_arabic(text: Optional[str]) -> str:
    """Normalize an Arabic string for comparison.

    - unify Alef forms (أ/إ/آ → ا)
    - Taa Marbuta → Haa (ة → ه)
    - strip tashkeel
    - collapse whitespace and trim
    """
    if not text:
        return ""
    s = str(text)
    s = _ALEF_RE.sub("ا", s)
    s = s.replace("ة", "ه")
    s = _DIACRITICS_RE.sub("", s)
    s = _SPACES_RE.sub(" ", s)
    return s.strip()


def join_name_parts(parts: Iterable[Optional[str]]) -> str:
    """Four-part name as displayed (not normalized)."""
    return " ".join("" if p is None else str(p) for p in parts)


def normalized_full_name(*parts: Optional[str]) -> str:
    return normalize_arabic(join_name_parts(parts))
