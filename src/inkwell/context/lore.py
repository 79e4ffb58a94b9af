"""Trigger-based lore matching.

Scans a passage of prose for the primary keys, alias keywords and regex
patterns of auto-trigger facts, scores the hits and keeps the best ones
that fit a token budget. The result is rendered as a "World Information"
block for the prompt.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from ..store.models import Fact
from .scoring import as_utc

logger = logging.getLogger(__name__)

KEY_POINTS = 10
ALIAS_POINTS = 5
REGEX_POINTS = 3
REGEX_KEPT_MATCHES = 3
PRIORITY_WEIGHT = 2
RECENT_USE_POINTS = 3
RECENT_WINDOW = timedelta(days=7)
DEFAULT_MAX_ENTRIES = 10
DEFAULT_TOKEN_BUDGET = 2000


def estimate_tokens(text: str) -> int:
    """Rough token count: the mean of a word-based and a char-based guess."""
    if not text:
        return 0
    by_words = len(text.split()) * 1.3
    by_chars = len(text) / 4
    return math.ceil((by_words + by_chars) / 2)


@dataclass
class TriggeredFact:
    """A fact pulled in by lore matching and the text that triggered it."""

    fact: Fact
    score: int
    matched: list[str] = field(default_factory=list)

    @property
    def tokens(self) -> int:
        return estimate_tokens(self.fact.value)


def _regex_hits(pattern: str, text: str) -> list[str]:
    try:
        compiled = re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.warning("Invalid trigger pattern %r: %s", pattern, e)
        return []
    return [m.group(0) for m in compiled.finditer(text) if m.group(0)]


def trigger_fact(fact: Fact, text: str, now: datetime | None = None) -> TriggeredFact | None:
    """Check one fact against a passage.

    Returns:
        The triggered fact with its score, or None when nothing matched
        or the fact is manual or unsearchable.
    """
    if fact.trigger_mode != "auto" or not fact.searchable:
        return None

    lowered = text.lower()
    matched: list[str] = []
    score = 0

    if fact.key and fact.key.lower() in lowered:
        matched.append(fact.key)
        score += KEY_POINTS

    for alias in fact.keywords:
        if alias and alias.lower() in lowered:
            matched.append(alias)
            score += ALIAS_POINTS

    if fact.regex_pattern:
        hits = _regex_hits(fact.regex_pattern, text)
        matched.extend(hits[:REGEX_KEPT_MATCHES])
        score += REGEX_POINTS * len(hits)

    if not matched:
        return None

    score += PRIORITY_WEIGHT * fact.priority
    if fact.last_used_at is not None:
        current = now or datetime.now(timezone.utc)
        if current - as_utc(fact.last_used_at) < RECENT_WINDOW:
            score += RECENT_USE_POINTS

    return TriggeredFact(fact=fact, score=score, matched=matched)


def match_lore(
    facts: Iterable[Fact],
    text: str,
    max_entries: int = DEFAULT_MAX_ENTRIES,
    token_budget: int | None = DEFAULT_TOKEN_BUDGET,
    now: datetime | None = None,
) -> list[TriggeredFact]:
    """Find the facts a passage triggers, best first.

    At most `max_entries` are considered. With a token budget, entries are
    taken in score order until the next one would overflow it; later,
    smaller entries are not used to fill the gap.
    """
    triggered: list[TriggeredFact] = []
    for fact in facts:
        hit = trigger_fact(fact, text, now)
        if hit is not None:
            triggered.append(hit)
    triggered.sort(key=lambda hit: hit.score, reverse=True)
    selected = triggered[:max_entries]
    if not token_budget:
        return selected

    within: list[TriggeredFact] = []
    spent = 0
    for hit in selected:
        if spent + hit.tokens > token_budget:
            break
        within.append(hit)
        spent += hit.tokens
    return within


def format_world_info(triggered: Sequence[TriggeredFact]) -> str:
    """Render triggered facts as a "# World Information" prompt section."""
    if not triggered:
        return ""
    sections = []
    for hit in triggered:
        header = f"[{hit.fact.key}]"
        if hit.fact.category:
            header += f" ({hit.fact.category})"
        sections.append(f"{header}\n{hit.fact.value}")
    return "# World Information\n\n" + "\n\n---\n\n".join(sections)
