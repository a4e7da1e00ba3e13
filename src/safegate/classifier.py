"""Classifier: case-sensitive substring checks against a pattern store.

Categories are pre-indexed per domain at construction time; every check is a
scan over that fixed tuple, so results are deterministic for a given store.
"""

from __future__ import annotations

import sys
from fnmatch import fnmatchcase

from safegate.models import ClassificationResult, PatternCategory, PatternDomain
from safegate.pattern_store import PatternStore

_GLOB_CHARS = ("*", "?")


def pattern_matches(pattern: str, text: str) -> bool:
    """Return True if *pattern* occurs in *text*.

    Plain patterns are literal substrings. A pattern containing ``*`` or ``?``
    is a glob that may match anywhere in the text.
    """
    if any(ch in pattern for ch in _GLOB_CHARS):
        return fnmatchcase(text, f"*{pattern}*")
    return pattern in text


def first_match(text: str, categories: tuple[PatternCategory, ...]) -> PatternCategory | None:
    if not text:
        return None
    for category in categories:
        for pattern in category.patterns:
            if pattern_matches(pattern, text):
                return category
    return None


class Classifier:
    """Decides whether an input matches any pattern in a domain."""

    def __init__(self, store: PatternStore, *, platform: str | None = None) -> None:
        self._store = store
        self._platform = platform or sys.platform
        self._index: dict[PatternDomain, tuple[PatternCategory, ...]] = {
            patterns.domain: tuple(
                c for c in patterns.categories if c.applies_to(self._platform)
            )
            for patterns in store
        }

    @property
    def store(self) -> PatternStore:
        return self._store

    @property
    def platform(self) -> str:
        return self._platform

    def categories(self, domain: PatternDomain) -> tuple[PatternCategory, ...]:
        """Categories that apply on this platform, in scan order."""
        return self._index[domain]

    def classify(self, domain: PatternDomain, text: str) -> ClassificationResult:
        category = first_match(text, self._index[domain])
        if category is None:
            return ClassificationResult(domain=domain, matched=False)
        return ClassificationResult(domain=domain, matched=True, key=category.key, category=category)

    def is_dangerous_operation(self, command: str) -> bool:
        return self.classify(PatternDomain.DANGEROUS_OPERATION, command).matched

    def is_critical_path(self, path: str) -> bool:
        return self.classify(PatternDomain.CRITICAL_PATH, path).matched

    def contains_likely_secret(self, text: str) -> bool:
        return self.classify(PatternDomain.SECRET, text).matched
