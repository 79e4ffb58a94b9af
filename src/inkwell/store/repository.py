"""Repository interface and the in-memory implementation.

The agent core never issues raw queries: it only talks to an object
satisfying the Repository protocol, which may be backed by any store.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Protocol

from .models import CharacterProfile, Fact


class RepositoryError(Exception):
    """Raised when the underlying store cannot serve a request."""


class Repository(Protocol):
    """Storage operations the agent core depends on."""

    def get_facts(self, project_id: str, category: str | None = None) -> list[Fact]: ...

    def search_facts(self, project_id: str, term: str) -> list[Fact]: ...

    def get_characters(self, project_id: str) -> list[CharacterProfile]: ...

    def get_character(self, character_id: str) -> CharacterProfile | None: ...

    def create_fact(self, fact: Fact) -> Fact: ...

    def update_fact(self, fact_id: str, **changes: Any) -> Fact: ...

    def mark_fact_used(self, fact_id: str) -> Fact: ...

    def create_character(self, profile: CharacterProfile) -> CharacterProfile: ...

    def update_character(self, character_id: str, **changes: Any) -> CharacterProfile: ...


def fact_sort_key(fact: Fact) -> tuple[int, int]:
    """Listing order: priority desc, then use_count desc."""
    return (-fact.priority, -fact.use_count)


def matches_term(fact: Fact, term: str) -> bool:
    """Case-insensitive substring match against key, value and keywords."""
    return fact.searchable and term.lower() in fact.searchable_text


class InMemoryRepository:
    """Dict-backed repository for the CLI and tests.

    Ordering mirrors the SQLite store: listings by priority then usage,
    searches by priority.
    """

    def __init__(self) -> None:
        self._facts: dict[str, Fact] = {}
        self._characters: dict[str, CharacterProfile] = {}

    def get_facts(self, project_id: str, category: str | None = None) -> list[Fact]:
        facts = [f for f in self._facts.values() if f.project_id == project_id]
        if category:
            facts = [f for f in facts if f.category == category]
        return sorted(facts, key=fact_sort_key)

    def search_facts(self, project_id: str, term: str) -> list[Fact]:
        facts = [
            f
            for f in self._facts.values()
            if f.project_id == project_id and matches_term(f, term)
        ]
        return sorted(facts, key=lambda f: -f.priority)

    def get_characters(self, project_id: str) -> list[CharacterProfile]:
        return [c for c in self._characters.values() if c.project_id == project_id]

    def get_character(self, character_id: str) -> CharacterProfile | None:
        return self._characters.get(character_id)

    def create_fact(self, fact: Fact) -> Fact:
        stored = replace(
            fact,
            id=f"lore_{uuid.uuid4().hex[:12]}",
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self._facts[stored.id] = stored
        return stored

    def update_fact(self, fact_id: str, **changes: Any) -> Fact:
        fact = self._facts.get(fact_id)
        if fact is None:
            raise RepositoryError(f"Fact not found: {fact_id}")
        updated = replace(fact, **changes)
        self._facts[fact_id] = updated
        return updated

    def mark_fact_used(self, fact_id: str) -> Fact:
        fact = self._facts.get(fact_id)
        if fact is None:
            raise RepositoryError(f"Fact not found: {fact_id}")
        return self.update_fact(
            fact_id,
            use_count=fact.use_count + 1,
            last_used_at=datetime.now(timezone.utc),
        )

    def create_character(self, profile: CharacterProfile) -> CharacterProfile:
        stored = replace(profile, id=f"char_{uuid.uuid4().hex[:12]}")
        self._characters[stored.id] = stored
        return stored

    def update_character(self, character_id: str, **changes: Any) -> CharacterProfile:
        profile = self._characters.get(character_id)
        if profile is None:
            raise RepositoryError(f"Character not found: {character_id}")
        updated = replace(profile, **changes)
        self._characters[character_id] = updated
        return updated

    def clear(self) -> None:
        """Drop all stored facts and characters."""
        self._facts.clear()
        self._characters.clear()
