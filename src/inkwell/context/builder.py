"""Task-specific context assembly from project facts and characters."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from ..store.models import CharacterProfile, Fact
from ..store.repository import Repository
from .keywords import KeywordExtractor
from .lore import DEFAULT_MAX_ENTRIES, DEFAULT_TOKEN_BUDGET, TriggeredFact, match_lore
from .models import CharacterView, ContextBundle, FactView, TaskType
from .scoring import RelevanceScorer

logger = logging.getLogger(__name__)

T = TypeVar("T")

WORLD_FACT_LIMIT = 10
WORLD_SUMMARY_SOURCES = 5
CHARACTER_FACT_LIMIT = 5
EDIT_FACT_LIMIT = 3
EDIT_SEARCH_TERMS = 5
EDIT_HITS_PER_TERM = 3
SUMMARY_CHARS = 150
STORY_SUMMARY_CHARS = 200
EDIT_FACT_CHARS = 300
STORY_TRAITS = 3
DEFAULT_CATEGORY = "General"


def apply_content_strategy(fact: Fact) -> str | None:
    """Return the part of a fact's text that may enter a prompt."""
    if fact.content_strategy == "reference":
        return None
    if fact.content_strategy == "summary":
        return fact.value[:SUMMARY_CHARS] + "..."
    return fact.value


def mentions_name(text: str, name: str) -> bool:
    """Case-insensitive whole-word check for a character name."""
    if not name.strip():
        return False
    pattern = rf"(?<!\w){re.escape(name.strip())}(?!\w)"
    return re.search(pattern, text, re.IGNORECASE) is not None


class ContextBuilder:
    """Builds size-bounded context bundles for one project.

    Every repository call is guarded: a failing store yields an otherwise
    valid bundle with empty facts or characters, since the prompt can
    still be sent without background.
    """

    def __init__(
        self,
        repository: Repository,
        project_id: str,
        scorer: RelevanceScorer | None = None,
        keyword_extractor: KeywordExtractor | None = None,
    ) -> None:
        self.repository = repository
        self.project_id = project_id
        self.scorer = scorer or RelevanceScorer()
        self.keywords = keyword_extractor or KeywordExtractor()

    def _fetch(self, label: str, call: Callable[..., T], *args: Any) -> T | None:
        try:
            return call(*args)
        except Exception as e:
            logger.warning(
                "Repository %s failed for project %s: %s", label, self.project_id, e
            )
            return None

    def _search_aggregated(
        self,
        terms: Sequence[str],
        limit: int,
        hits_per_term: int | None = None,
    ) -> list[tuple[Fact, int]]:
        """Search each term and accumulate priority + 1 per hit.

        A fact matched by several terms collects points from each search.
        """
        scores: dict[str, int] = {}
        found: dict[str, Fact] = {}
        for term in terms:
            hits = self._fetch("search_facts", self.repository.search_facts, self.project_id, term)
            for fact in (hits or [])[:hits_per_term]:
                if fact.id is None:
                    continue
                scores[fact.id] = scores.get(fact.id, 0) + fact.priority + 1
                found.setdefault(fact.id, fact)

        ordered = sorted(found, key=lambda fact_id: scores[fact_id], reverse=True)
        return [(found[fact_id], scores[fact_id]) for fact_id in ordered[:limit]]

    def build_world_context(self, prompt: str, category: str | None = None) -> ContextBundle:
        """Top scored facts, each trimmed by its content strategy."""
        keywords = self.keywords.extract(prompt)
        bundle = ContextBundle(task=TaskType.WORLD_BUILDING, keywords=keywords)

        facts = self._fetch("get_facts", self.repository.get_facts, self.project_id, category)
        if not facts:
            return bundle

        ranked = self.scorer.rank(facts, keywords, category, limit=WORLD_FACT_LIMIT)
        bundle.facts = [
            FactView(
                id=fact.id,
                key=fact.key,
                category=fact.category,
                priority=fact.priority,
                text=apply_content_strategy(fact),
                score=score,
            )
            for fact, score in ranked
        ]

        categories = list(dict.fromkeys(
            view.category for view in bundle.facts[:WORLD_SUMMARY_SOURCES] if view.category
        ))
        if categories:
            bundle.summary = f"Existing world elements: {', '.join(categories)}"
        return bundle

    def build_character_context(
        self, prompt: str, target_character_id: str | None = None
    ) -> ContextBundle:
        """Target profile in full, other characters in brief, top 5 facts."""
        keywords = self.keywords.extract(prompt)
        bundle = ContextBundle(task=TaskType.CHARACTER_DEVELOPMENT, keywords=keywords)

        target: CharacterProfile | None = None
        if target_character_id:
            target = self._fetch(
                "get_character", self.repository.get_character, target_character_id
            )
            if target is not None:
                bundle.main_character = CharacterView.full(target)

        characters = self._fetch("get_characters", self.repository.get_characters, self.project_id)
        bundle.characters = [
            CharacterView(id=c.id, name=c.name, role=c.role, age=c.age)
            for c in characters or []
            if c.id != target_character_id
        ]

        terms = list(keywords)
        if target is not None:
            terms.append(target.name.lower())

        bundle.facts = [
            FactView(
                id=fact.id,
                key=fact.key,
                category=fact.category,
                priority=fact.priority,
                text=fact.value,
                score=score,
            )
            for fact, score in self._search_aggregated(terms, CHARACTER_FACT_LIMIT)
        ]
        return bundle

    def build_story_context(self, prompt: str) -> ContextBundle:
        """Every character in brief and one top fact per category."""
        bundle = ContextBundle(
            task=TaskType.STORY_PLANNING, keywords=self.keywords.extract(prompt)
        )

        characters = self._fetch("get_characters", self.repository.get_characters, self.project_id)
        bundle.characters = [
            CharacterView(
                id=c.id,
                name=c.name,
                role=c.role,
                goals=c.goals,
                traits=list(c.traits[:STORY_TRAITS]),
            )
            for c in characters or []
        ]

        facts = self._fetch("get_facts", self.repository.get_facts, self.project_id, None)
        by_category: dict[str, list[Fact]] = {}
        for fact in facts or []:
            by_category.setdefault(fact.category or DEFAULT_CATEGORY, []).append(fact)

        for category, entries in by_category.items():
            top = max(entries, key=lambda f: f.priority)
            bundle.facts.append(
                FactView(
                    id=top.id,
                    key=top.key,
                    category=category,
                    priority=top.priority,
                    text=top.value[:STORY_SUMMARY_CHARS],
                    score=top.priority,
                )
            )
        return bundle

    def build_edit_context(self, selected_text: str, instruction: str) -> ContextBundle:
        """Characters named in the selection plus the top 3 matching facts."""
        keywords = self.keywords.extract(f"{selected_text} {instruction}")
        bundle = ContextBundle(
            task=TaskType.EDITING,
            keywords=keywords,
            selected_text=selected_text,
            instruction=instruction,
        )

        characters = self._fetch("get_characters", self.repository.get_characters, self.project_id)
        bundle.characters = [
            CharacterView.full(c) for c in characters or [] if mentions_name(selected_text, c.name)
        ]

        ranked = self._search_aggregated(
            keywords[:EDIT_SEARCH_TERMS], EDIT_FACT_LIMIT, hits_per_term=EDIT_HITS_PER_TERM
        )
        bundle.facts = [
            FactView(
                id=fact.id,
                key=fact.key,
                category=fact.category,
                priority=fact.priority,
                text=fact.value[:EDIT_FACT_CHARS],
                score=score,
            )
            for fact, score in ranked
        ]
        return bundle

    def match_lore(
        self,
        scene_text: str,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        token_budget: int | None = DEFAULT_TOKEN_BUDGET,
    ) -> list[TriggeredFact]:
        """Auto-trigger facts whose key, aliases or pattern occur in a passage."""
        if not scene_text.strip():
            return []
        facts = self._fetch("get_facts", self.repository.get_facts, self.project_id, None)
        return match_lore(facts or [], scene_text, max_entries, token_budget)

    def record_usage(
        self, bundle: ContextBundle, triggered: Sequence[TriggeredFact] = ()
    ) -> int:
        """Ask the repository to mark every fact in a bundle as used.

        Facts pulled in by lore matching are marked too; a fact present in
        both is marked once.

        Returns:
            Number of facts successfully marked.
        """
        fact_ids = [view.id for view in bundle.facts] + [hit.fact.id for hit in triggered]
        marked = 0
        for fact_id in dict.fromkeys(fact_ids):
            if fact_id is None:
                continue
            if self._fetch("mark_fact_used", self.repository.mark_fact_used, fact_id) is not None:
                marked += 1
        return marked
