"""Context bundle types handed from the builder to the agents."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from ..store.models import CharacterProfile


class TaskType(Enum):
    """Kinds of work the coordinator can dispatch."""

    WORLD_BUILDING = "world_building"
    CHARACTER_DEVELOPMENT = "character_development"
    STORY_PLANNING = "story_planning"
    EDITING = "editing"
    PLANNING = "planning"
    FULL_PROJECT = "full_project"


@dataclass
class FactView:
    """A fact as it enters a prompt. text is None for reference-only facts."""

    id: str | None
    key: str
    category: str | None
    priority: int
    text: str | None
    score: int = 0

    def to_prompt_line(self, max_chars: int | None = None) -> str:
        category = self.category or "General"
        if self.text is None:
            body = "Reference only"
        elif max_chars is not None:
            body = self.text[:max_chars]
        else:
            body = self.text
        return f"- [{category}] {self.key}: {body}"


@dataclass
class CharacterView:
    """The subset of a character profile included for a task."""

    name: str
    id: str | None = None
    role: str | None = None
    age: str | None = None
    description: str | None = None
    traits: list[str] = field(default_factory=list)
    background: str | None = None
    goals: str | None = None
    relationships: dict[str, str] = field(default_factory=dict)

    @classmethod
    def full(cls, profile: CharacterProfile) -> CharacterView:
        return cls(
            id=profile.id,
            name=profile.name,
            role=profile.role,
            age=profile.age,
            description=profile.description,
            traits=list(profile.traits),
            background=profile.background,
            goals=profile.goals,
            relationships=dict(profile.relationships),
        )


@dataclass
class ContextBundle:
    """Task-specific background assembled for one model call.

    Built fresh per request and discarded once the prompt is assembled.
    """

    task: TaskType
    keywords: list[str] = field(default_factory=list)
    facts: list[FactView] = field(default_factory=list)
    characters: list[CharacterView] = field(default_factory=list)
    summary: str | None = None
    main_character: CharacterView | None = None
    selected_text: str | None = None
    instruction: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict, excluding empty values."""
        data = asdict(self)
        data["task"] = self.task.value
        return {k: v for k, v in data.items() if v is not None and v != [] and v != {}}
