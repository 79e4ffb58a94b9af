"""Character development agent."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from ..store.models import CharacterProfile
from ..store.repository import RepositoryError
from .base import TaskAgent
from .prompts import CHARACTER_DEVELOPER_PROMPT, format_fact_keys, format_facts, format_roster

logger = logging.getLogger(__name__)

LORE_PREVIEW_CHARS = 100
BACKGROUND_PREVIEW_CHARS = 200
NO_CHARACTERS = "No characters available for dynamics analysis."
CHARACTER_NOT_FOUND = "Character not found."


def _or(value: str | None, fallback: str = "Not defined") -> str:
    return value or fallback


class CharacterDeveloper(TaskAgent):
    """Creates new characters and deepens existing ones."""

    role = "character_developer"
    system_prompt = CHARACTER_DEVELOPER_PROMPT

    def _characters(self, project_id: str) -> list[CharacterProfile]:
        try:
            return self.repository.get_characters(project_id)
        except RepositoryError as e:
            logger.warning("Could not load characters for project %s: %s", project_id, e)
            return []

    async def develop_character(
        self, project_id: str, prompt: str, existing_character_id: str | None = None
    ) -> str:
        """Create a new character, or expand an existing one when its id is given.

        An unknown id falls back to creating a new character.
        """
        builder = self._builder(project_id)
        bundle = builder.build_character_context(prompt, existing_character_id)
        main = bundle.main_character

        if main is not None:
            message = f"""Develop and expand the existing character based on user request.

CURRENT CHARACTER:
Name: {main.name}
Role: {_or(main.role)}
Age: {_or(main.age)}
Description: {_or(main.description)}
Traits: {', '.join(main.traits) or 'None'}
Background: {_or(main.background)}
Goals: {_or(main.goals)}
Existing Relationships: {json.dumps(main.relationships, ensure_ascii=False)}

OTHER CHARACTERS IN WORLD:
{format_roster(bundle.characters)}

RELEVANT WORLD LORE:
{format_fact_keys(bundle.facts)}

USER REQUEST: {prompt}

TASK:
Provide detailed improvements or expansions to this character:
1. Enhanced or refined traits
2. Deeper background story
3. Potential relationships with other characters
4. Clear goals and motivations
5. Character arc possibilities

Output the updated profile as a character json block."""
        else:
            roster = "\n".join(
                f"- {c.name} ({c.role or 'Unknown role'}, Age: {c.age or 'Unknown'})"
                for c in bundle.characters
            )
            message = f"""Create a NEW character based on user request.

USER REQUEST: {prompt}

EXISTING CHARACTERS (for avoiding duplicates and creating relationships):
{roster or 'None'}

WORLD CONTEXT:
{format_facts(bundle.facts, LORE_PREVIEW_CHARS)}

TASK:
Create a unique, compelling character that:
1. Has distinct personality and appearance
2. Fits naturally into the existing world
3. Has potential for interesting relationships with existing characters
4. Has clear, compelling goals and motivations
5. Has a rich background that connects to the world

Provide the complete profile as a character json block."""

        return await self._chat_with_context(builder, bundle, message)

    async def analyze_character_dynamics(
        self, project_id: str, character_ids: Sequence[str] | None = None
    ) -> str:
        """Analyze conflicts, alliances and arcs between characters.

        Returns a fixed message without calling the model when there is
        nobody to analyze.
        """
        characters = self._characters(project_id)
        if character_ids is not None:
            wanted = set(character_ids)
            characters = [c for c in characters if c.id in wanted]
        if not characters:
            return NO_CHARACTERS

        blocks = "\n---\n".join(
            f"""Name: {c.name}
Role: {c.role or 'Unknown'}
Traits: {', '.join(c.traits) or 'None'}
Goals: {c.goals or 'None'}
Background: {(c.background or 'None')[:BACKGROUND_PREVIEW_CHARS]}
Current Relationships: {json.dumps(c.relationships, ensure_ascii=False)}"""
            for c in characters
        )

        message = f"""Analyze the dynamics and relationships between these characters:

CHARACTERS:
{blocks}

TASK:
Provide comprehensive analysis of:
1. Potential conflicts and tensions between characters
2. Complementary traits that could lead to alliances
3. Opportunities for character growth through interactions
4. Suggested relationship developments (friendships, rivalries, mentorships)
5. Story arc possibilities based on character dynamics
6. How character goals might clash or align

Focus on dramatic potential and story opportunities."""

        return await self.chat(message)

    async def suggest_relationships(self, project_id: str, character_id: str) -> str:
        """Suggest 3-5 relationships between one character and the rest of the cast."""
        try:
            target = self.repository.get_character(character_id)
        except RepositoryError as e:
            logger.warning("Could not load character %s: %s", character_id, e)
            target = None
        if target is None:
            return CHARACTER_NOT_FOUND

        others = "\n".join(
            f"- {c.name} ({c.role or 'Unknown role'}): {', '.join(c.traits) or 'No traits'}"
            for c in self._characters(project_id)
            if c.id != character_id
        )

        message = f"""Suggest meaningful relationships for this character with others in the story.

TARGET CHARACTER:
Name: {target.name}
Role: {_or(target.role)}
Traits: {', '.join(target.traits) or 'None'}
Goals: {_or(target.goals)}
Background: {_or(target.background)}
Existing Relationships: {json.dumps(target.relationships, ensure_ascii=False)}

OTHER CHARACTERS:
{others or 'None'}

TASK:
For 3-5 of the other characters, suggest:
1. Type of relationship (ally, rival, mentor, friend, enemy, etc.)
2. Why this relationship makes sense based on traits and roles
3. How this relationship could create dramatic tension or growth
4. Specific conflict or connection points

Format as a JSON array:
[{{
  "character": "character name",
  "relationshipType": "type",
  "description": "detailed description",
  "storyPotential": "how this serves the narrative"
}}]"""

        return await self.chat(message)
