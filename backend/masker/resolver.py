from __future__ import annotations

import re
import string

from masker.taxonomy import PLACEHOLDER_RE, EntityCategory
from schemas.entities import DetectedSpan, EntityGroup

# Titles that should be stripped during normalisation.
_TITLE_PATTERN = re.compile(
    r"^(mr|mrs|ms|miss|dr|prof|judge|justice|hon|shri|sri|smt|kumari|late)\.?\s+",
    re.IGNORECASE,
)

# Legal-form suffixes ignored when comparing organisation names.
_ORG_SUFFIXES = frozenset({
    "ltd", "limited", "pvt", "private", "llp", "llc", "inc", "incorporated",
    "corp", "corporation", "co", "company", "plc", "gmbh", "&",
})

_NON_ALNUM = re.compile(r"[^0-9a-z]")

# Categories whose mentions may be shortened forms of an earlier mention.
_ALIASABLE = {EntityCategory.PERSON_NAME, EntityCategory.ORGANIZATION}


class _GroupState:
    """Working data for one group while spans are being resolved."""

    def __init__(self, group: EntityGroup, key: str, tokens: frozenset[str]) -> None:
        self.group = group
        self.keys: set[str] = {key}
        # Token set of the mention that opened the group. Later aliases
        # never replace it.
        self.canonical: frozenset[str] = tokens


def existing_ordinals(text: str) -> dict[str, int]:
    """Highest ordinal per prefix among placeholder tokens already in *text*."""
    highest: dict[str, int] = {}
    for match in PLACEHOLDER_RE.finditer(text):
        prefix, _, number = match.group(0)[1:-1].rpartition("_")
        highest[prefix] = max(highest.get(prefix, 0), int(number))
    return highest


class IdentityResolver:
    """Groups spans that refer to the same real-world entity.

    Ordinals are assigned per placeholder prefix in order of first
    appearance. Counters live inside :meth:`resolve`, so every call starts
    afresh and concurrent calls share nothing. When the source text already
    contains placeholder tokens, numbering continues after the highest one.

    Matching strategy (in order):
    1. Normalised match (case-insensitive, titles and punctuation stripped;
       digits-only for numbers, lower-case for emails).
    2. Organisations: same name tokens once legal-form suffixes are removed.
    3. Person names: a later, shorter mention whose tokens are contained in
       exactly one earlier group's opening mention. A longer mention never
       joins a shorter group, and ambiguity creates a new group.
    """

    def resolve(self, spans: list[DetectedSpan], text: str = "") -> list[EntityGroup]:
        counters: dict[str, int] = existing_ordinals(text)
        states: dict[str, list[_GroupState]] = {}

        for span in sorted(spans, key=lambda s: (s.start, s.end)):
            prefix = span.prefix
            key = self.normalize(span)
            tokens = self._tokens(span)
            candidates = states.setdefault(prefix, [])

            state = self._find_group(candidates, span.category, key, tokens)
            if state is None:
                counters[prefix] = counters.get(prefix, 0) + 1
                group = EntityGroup(
                    category=span.category,
                    ordinal=counters[prefix],
                    prefix=prefix,
                )
                state = _GroupState(group, key, tokens)
                candidates.append(state)
            else:
                state.keys.add(key)
            state.group.members.append(span)

        groups = [state.group for prefix_states in states.values() for state in prefix_states]
        groups.sort(key=lambda g: g.first_offset)
        return groups

    # ------------------------------------------------------------------
    # Matching helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _find_group(
        candidates: list[_GroupState],
        category: EntityCategory,
        key: str,
        tokens: frozenset[str],
    ) -> _GroupState | None:
        for state in candidates:
            if key in state.keys:
                return state

        if category not in _ALIASABLE or not tokens:
            return None

        if category is EntityCategory.ORGANIZATION:
            matches = [state for state in candidates if state.canonical == tokens]
        else:
            matches = [state for state in candidates if tokens <= state.canonical]
        if len(matches) == 1:
            return matches[0]
        return None

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------

    @classmethod
    def normalize(cls, span: DetectedSpan) -> str:
        """Comparison key for *span* within its category."""
        text = span.original_text
        if span.category in (
            EntityCategory.PHONE_NUMBER,
            EntityCategory.ID_NUMBER,
            EntityCategory.FINANCIAL,
            EntityCategory.LAND_DETAIL,
        ):
            # Separators and spacing vary between mentions of the same number.
            compact = _NON_ALNUM.sub("", text.lower())
            if compact:
                return compact
        if span.category is EntityCategory.EMAIL:
            return text.strip().lower()
        return cls._normalize_text(text)

    @staticmethod
    def _normalize_text(text: str) -> str:
        """Lowercase, collapse whitespace, strip titles and punctuation."""
        lowered = " ".join(text.lower().split())
        lowered = _TITLE_PATTERN.sub("", lowered)
        # Strip trailing/leading punctuation.
        lowered = lowered.strip(string.punctuation + " ")
        return lowered

    @classmethod
    def _tokens(cls, span: DetectedSpan) -> frozenset[str]:
        if span.category not in _ALIASABLE:
            return frozenset()
        words = [
            w.strip(string.punctuation)
            for w in cls._normalize_text(span.original_text).split()
        ]
        words = [w for w in words if w]
        if span.category is EntityCategory.ORGANIZATION:
            words = [w for w in words if w not in _ORG_SUFFIXES]
        # Bare initials ("J.") are too weak to link two names.
        return frozenset(w for w in words if len(w) > 1)
