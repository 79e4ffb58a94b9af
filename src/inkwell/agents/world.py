"""World-building agent."""

from __future__ import annotations

from .base import TaskAgent
from .prompts import WORLD_BUILDER_PROMPT, format_facts

LORE_PREVIEW_CHARS = 100


class WorldBuilder(TaskAgent):
    """Creates and expands lorebook entries consistent with existing lore."""

    role = "world_builder"
    system_prompt = WORLD_BUILDER_PROMPT

    async def build_world(
        self, project_id: str, prompt: str, category: str | None = None
    ) -> str:
        """Create new world-building elements for a request.

        Args:
            project_id: Project whose lore is used as context.
            prompt: The author's request.
            category: Optional focus category, also used to filter lore.

        Returns:
            The model's reply, normally lorebook json blocks.
        """
        builder = self._builder(project_id)
        bundle = builder.build_world_context(prompt, category)

        focus = f"Focus Category: {category}\n" if category else ""
        message = f"""Based on the user's request and existing world context, create new world-building elements.

User Request: {prompt}
{focus}
EXISTING WORLD CONTEXT:
{bundle.summary or 'No existing world elements'}

Relevant Existing Lore ({len(bundle.facts)} entries):
{format_facts(bundle.facts, LORE_PREVIEW_CHARS, empty='')}

TASK:
1. Analyze the request and existing context for consistency
2. Create NEW lorebook entries that complement existing lore
3. Suggest connections between new and existing elements
4. Ensure no contradictions with established world rules

Provide 2-5 new lorebook entries as lorebook json blocks."""

        return await self._chat_with_context(builder, bundle, message)

    async def expand_lore(self, project_id: str, topic: str, depth: str = "detailed") -> str:
        """Deepen an existing topic with 1-3 new lorebook entries."""
        builder = self._builder(project_id)
        bundle = builder.build_world_context(topic)

        scope = "comprehensive, multi-layered" if depth == "detailed" else "focused, essential"
        message = f"""Expand on the topic: "{topic}"

Depth level: {depth}

EXISTING CONTEXT:
{format_facts(bundle.facts, empty='No existing lore found for this topic')}

TASK:
Provide {scope} expansion that:
1. Builds upon existing lore elements
2. Adds new dimensions and depth
3. Creates interesting story possibilities
4. Maintains consistency with existing world rules

Create 1-3 new lorebook entries that expand this topic as lorebook json blocks."""

        return await self._chat_with_context(builder, bundle, message)
