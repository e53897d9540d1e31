"""Russian/English detection by Cyrillic character ratio."""
from __future__ import annotations

import re

_CYRILLIC_RE = re.compile(r"[Ѐ-ӿ]")

DEFAULT_THRESHOLD = 0.3

_NAMES: dict[str, str] = {"ru": "Russian", "en": "English"}


def detect_language(text: str | None, threshold: float = DEFAULT_THRESHOLD) -> str:
    """Return ``"ru"`` when at least *threshold* of the letters are Cyrillic."""
    if not text or not text.strip():
        return "en"
    cyrillic = len(_CYRILLIC_RE.findall(text))
    # isalpha() is true for any Unicode letter, Latin or not.
    letters = sum(1 for ch in text if ch.isalpha()) or 1
    return "ru" if cyrillic / letters >= threshold else "en"


def contains_cyrillic(text: str | None) -> bool:
    return bool(text) and _CYRILLIC_RE.search(text) is not None


def language_name(lang: str) -> str:
    return _NAMES.get(lang, "English")
