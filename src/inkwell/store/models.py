"""Data models for project facts and characters."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

CONTENT_STRATEGIES = ("full", "summary", "reference")
TRIGGER_MODES = ("auto", "manual")
DEFAULT_PAYLOAD_PRIORITY = 5
DEFAULT_PAYLOAD_CATEGORY = "General"


@dataclass(frozen=True)
class Fact:
    """A lore entry or memory record stored for a project.

    Attributes:
        key: Main trigger word or title (e.g., 'Crystal City').
        value: The fact text.
        project_id: Owning project.
        id: Repository ID, None for new facts.
        category: Optional grouping (e.g., 'Locations', 'plot-analysis').
        keywords: Alias keywords that also make the fact searchable.
        priority: Author-assigned importance, 0..10.
        use_count: How many times the fact was fed into a prompt.
        last_used_at: When the fact was last fed into a prompt.
        content_strategy: 'full', 'summary' or 'reference'.
        searchable: Whether keyword search may return the fact.
        trigger_mode: 'auto' facts may be pulled in by lore matching,
            'manual' ones only when asked for.
        regex_pattern: Optional case-insensitive trigger pattern.
        created_at: ISO timestamp when created.
    """

    key: str
    value: str
    project_id: str = ""
    id: str | None = None
    category: str | None = None
    keywords: tuple[str, ...] = ()
    priority: int = 0
    use_count: int = 0
    last_used_at: datetime | None = None
    content_strategy: str = "full"
    searchable: bool = True
    trigger_mode: str = "auto"
    regex_pattern: str | None = None
    created_at: str | None = None

    @property
    def searchable_text(self) -> str:
        """Lower-cased key, value and alias keywords joined for matching."""
        return " ".join([self.key, self.value, *self.keywords]).lower()

    @classmethod
    def from_payload(cls, project_id: str, data: dict[str, Any]) -> Fact:
        """Build a new fact from a model-produced lorebook payload.

        Accepts both the snake_case field names and the camelCase names
        the agent prompts ask the model to emit. A missing priority
        defaults to 5 and a missing category to "General".

        Raises:
            KeyError: If key or value is absent.
            ValueError: If the key is blank.
        """
        keywords = data.get("keywords", data.get("keys")) or []
        if isinstance(keywords, str):
            keywords = [keywords]
        elif not isinstance(keywords, list):
            keywords = []

        strategy = data.get("content_strategy", data.get("contextStrategy")) or "full"
        if strategy not in CONTENT_STRATEGIES:
            strategy = "full"

        trigger_mode = data.get("trigger_mode", data.get("triggerMode")) or "auto"
        if trigger_mode not in TRIGGER_MODES:
            trigger_mode = "auto"

        key = _text(data["key"]).strip()
        if not key:
            raise ValueError("lorebook entry has a blank key")

        return cls(
            key=key,
            value=_text(data["value"]),
            project_id=project_id,
            category=_text(data.get("category")) or DEFAULT_PAYLOAD_CATEGORY,
            keywords=tuple(_text(k) for k in keywords if _text(k)),
            priority=_clamp_priority(data.get("priority")),
            content_strategy=strategy,
            searchable=data.get("searchable", True) is not False,
            trigger_mode=trigger_mode,
            regex_pattern=_text(data.get("regex_pattern", data.get("regexPattern"))) or None,
        )


@dataclass(frozen=True)
class CharacterProfile:
    """A character in a project."""

    name: str
    project_id: str = ""
    id: str | None = None
    role: str | None = None
    age: str | None = None
    description: str | None = None
    traits: tuple[str, ...] = ()
    background: str | None = None
    goals: str | None = None
    relationships: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, project_id: str, data: dict[str, Any]) -> CharacterProfile:
        """Build a new profile from a model-produced character payload.

        Non-string free-text fields (lists, objects) are flattened to text.
        """
        traits = data.get("traits") or []
        if isinstance(traits, str):
            traits = [t.strip() for t in traits.split(",") if t.strip()]
        elif not isinstance(traits, list):
            traits = [traits]

        relationships = data.get("relationships") or {}
        if not isinstance(relationships, dict):
            relationships = {}

        name = _text(data["name"]).strip()
        if not name:
            raise ValueError("character has a blank name")

        return cls(
            name=name,
            project_id=project_id,
            role=_text(data.get("role")) or None,
            age=_text(data.get("age")) or None,
            description=_text(data.get("description")) or None,
            traits=tuple(_text(t) for t in traits if _text(t)),
            background=_text(data.get("background")) or None,
            goals=_text(data.get("goals")) or None,
            relationships={_text(k): _text(v) for k, v in relationships.items()},
        )


def _text(value: Any) -> str:
    """Flatten a payload field to text: lists are joined, objects JSON-encoded."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ", ".join(part for part in (_text(v) for v in value) if part)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _clamp_priority(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_PAYLOAD_PRIORITY
    try:
        priority = int(value)
    except (TypeError, ValueError):
        return DEFAULT_PAYLOAD_PRIORITY
    return max(0, min(10, priority))


def encode_json(value: Any) -> str:
    """Encode a list/dict column for storage."""
    return json.dumps(value, ensure_ascii=False)


def decode_json(raw: str | None, default: Any) -> Any:
    """Decode a list/dict column, returning default on bad data."""
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default
