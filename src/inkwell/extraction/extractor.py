"""Structured entity extraction from free-form model output.

Agents ask the model to emit fenced blocks such as:

    ```json
    {"type": "character", "data": {"name": "Aria", "role": "Protagonist"}}
    ```

Models do not reliably follow that format, so when no tagged block is
found a fallback scans the text for bare JSON objects that look like
characters (have a "name") or lore entries (have "key" and "value").
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Literal

logger = logging.getLogger(__name__)

EntityType = Literal["character", "lorebook", "scene"]
ENTITY_TYPES: frozenset[str] = frozenset({"character", "lorebook", "scene"})

JSON_BLOCK_RE = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL | re.IGNORECASE)


@dataclass
class DetectedEntity:
    """A typed record recovered from model text."""

    type: EntityType
    data: dict[str, Any] | list[dict[str, Any]]

    @property
    def items(self) -> list[dict[str, Any]]:
        """The payload as a list, whether one object or several."""
        if isinstance(self.data, list):
            return [item for item in self.data if isinstance(item, dict)]
        return [self.data]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.data}


class EntityExtractor:
    """Detects structured entities in model responses. Never raises."""

    def detect(self, text: str) -> list[DetectedEntity]:
        """Detect entities in a response.

        Args:
            text: Raw model output.

        Returns:
            Entities in order of appearance; empty when nothing matches.
        """
        if not text:
            return []

        entities = self._detect_tagged_blocks(text)
        if entities:
            return entities

        return self._detect_bare_objects(text)

    def _detect_tagged_blocks(self, text: str) -> list[DetectedEntity]:
        """Parse ```json blocks carrying a type discriminator and data."""
        entities: list[DetectedEntity] = []
        for match in JSON_BLOCK_RE.finditer(text):
            try:
                parsed = json.loads(match.group(1))
            except json.JSONDecodeError as e:
                logger.debug("Skipping unparseable JSON block: %s", e)
                continue

            if not isinstance(parsed, dict):
                continue
            entity_type = parsed.get("type")
            data = parsed.get("data")
            if entity_type in ENTITY_TYPES and isinstance(data, (dict, list)):
                entities.append(DetectedEntity(type=entity_type, data=data))
        return entities

    def _detect_bare_objects(self, text: str) -> list[DetectedEntity]:
        """Group untagged character-like and lore-like objects by type."""
        characters: list[dict[str, Any]] = []
        lore: list[dict[str, Any]] = []

        for candidate in iter_json_objects(text):
            if candidate.get("name"):
                characters.append(candidate)
            elif candidate.get("key") and candidate.get("value"):
                lore.append(candidate)

        entities: list[DetectedEntity] = []
        if characters:
            entities.append(
                DetectedEntity(
                    type="character",
                    data=characters[0] if len(characters) == 1 else characters,
                )
            )
        if lore:
            entities.append(
                DetectedEntity(type="lorebook", data=lore[0] if len(lore) == 1 else lore)
            )
        return entities


def iter_json_objects(text: str) -> Iterator[dict[str, Any]]:
    """Yield every parseable brace-delimited object with an entity shape.

    Objects without a recognizable shape, or that fail to parse, are
    searched for nested objects instead; a bad candidate never stops the
    scan.
    """
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        resume = start + 1
        if end is not None:
            try:
                parsed = json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict) and _has_entity_shape(parsed):
                yield parsed
                resume = end + 1
        start = text.find("{", resume)


def _has_entity_shape(obj: dict[str, Any]) -> bool:
    return bool(obj.get("name")) or bool(obj.get("key") and obj.get("value"))


def _matching_brace(text: str, start: int) -> int | None:
    """Index of the brace closing the one at start, skipping string literals."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


_default_extractor = EntityExtractor()


def detect_entities(text: str) -> list[DetectedEntity]:
    """Detect entities with the default extractor."""
    return _default_extractor.detect(text)
