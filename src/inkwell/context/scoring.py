"""Additive relevance scoring for facts.

Scores are unnormalized and uncapped. Each point traces back to one rule
and only the relative order inside one request matters.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone

from ..store.models import Fact

KEYWORD_POINTS = 3
CATEGORY_POINTS = 2
RECENT_USE_POINTS = 2
FREQUENT_USE_POINTS = 1
RECENT_WINDOW = timedelta(days=7)
FREQUENT_USE_THRESHOLD = 5


class RelevanceScorer:
    """Scores facts against a keyword set plus usage signals."""

    def score(
        self,
        fact: Fact,
        keywords: Iterable[str],
        category: str | None = None,
        now: datetime | None = None,
    ) -> int:
        """Score one fact.

        Args:
            fact: The candidate fact.
            keywords: Lower-cased keywords from the request.
            category: Optional explicit category filter.
            now: Reference time for the recency bonus.

        Returns:
            priority + 3 per keyword found in the fact's searchable text
            + 2 on category match + 2 if used in the last 7 days
            + 1 if used more than 5 times.
        """
        total = fact.priority
        text = fact.searchable_text
        total += KEYWORD_POINTS * sum(1 for keyword in keywords if keyword in text)

        if category and fact.category == category:
            total += CATEGORY_POINTS

        if fact.last_used_at is not None:
            current = now or datetime.now(timezone.utc)
            if current - as_utc(fact.last_used_at) < RECENT_WINDOW:
                total += RECENT_USE_POINTS

        if fact.use_count > FREQUENT_USE_THRESHOLD:
            total += FREQUENT_USE_POINTS

        return total

    def rank(
        self,
        facts: Sequence[Fact],
        keywords: Sequence[str],
        category: str | None = None,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[tuple[Fact, int]]:
        """Score and order facts, highest first.

        Ties keep the repository's order since sorted() is stable.
        """
        scored = [(fact, self.score(fact, keywords, category, now)) for fact in facts]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:limit] if limit is not None else scored


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
