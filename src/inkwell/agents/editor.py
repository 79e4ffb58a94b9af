"""Prose editing agent."""

from __future__ import annotations

from collections.abc import Sequence

from ..context.lore import TriggeredFact, format_world_info
from ..context.models import ContextBundle
from .base import TaskAgent
from .prompts import EDITOR_PROMPT, format_facts

IMPROVE_DIALOGUE = (
    "Improve the dialogue to make it more natural, distinctive, and character-appropriate. "
    "Add subtext and emotional depth."
)
ENHANCE_DESCRIPTION = (
    "Enhance the descriptive elements with more vivid, sensory details while maintaining "
    "pacing. Show, don't tell."
)
ADD_TENSION = "Increase dramatic tension and emotional stakes. Add urgency and conflict."
CONDENSE_TEXT = (
    "Condense this text to be more concise and punchy while keeping the essential meaning "
    "and impact."
)
EXPAND_TEXT = (
    "Expand this text with more detail, emotion, and depth. Add breathing room and development."
)


def _scene_background(bundle: ContextBundle, triggered: Sequence[TriggeredFact] = ()) -> str:
    sections = []
    if triggered:
        sections.append(format_world_info(triggered))
    if bundle.characters:
        cast = "\n".join(
            f"- {c.name} ({c.role or 'Unknown role'})\n"
            f"  Traits: {', '.join(c.traits) or 'None'}\n"
            f"  Goals: {c.goals or 'None'}\n"
            f"  Description: {c.description or 'None'}"
            for c in bundle.characters
        )
        sections.append(f"CHARACTERS IN THIS SCENE:\n{cast}")
    shown = {hit.fact.id for hit in triggered}
    facts = [view for view in bundle.facts if view.id not in shown]
    if facts:
        sections.append(f"RELEVANT WORLD ELEMENTS:\n{format_facts(facts)}")
    return "\n\n".join(sections)


class Editor(TaskAgent):
    """Revises selected prose while keeping the author's voice."""

    role = "editor"
    system_prompt = EDITOR_PROMPT

    async def edit_paragraph(self, project_id: str, selected_text: str, instruction: str) -> str:
        """Rewrite a passage according to an instruction.

        Returns:
            Only the revised text.
        """
        builder = self._builder(project_id)
        bundle = builder.build_edit_context(selected_text, instruction)
        triggered = builder.match_lore(selected_text)
        background = _scene_background(bundle, triggered)

        message = f'''Edit the selected text according to the user's instruction.

SELECTED TEXT:
"""
{selected_text}
"""

USER INSTRUCTION: {instruction}

{background}

TASK:
Edit the selected text to: {instruction}

Requirements:
- Maintain character voices and personalities
- Respect established world rules
- Keep similar length unless instructed otherwise
- Focus only on what the user requested
- Output ONLY the revised text

REVISED TEXT:'''

        return await self._chat_with_context(builder, bundle, message, triggered)

    async def improve_dialogue(self, project_id: str, selected_text: str) -> str:
        return await self.edit_paragraph(project_id, selected_text, IMPROVE_DIALOGUE)

    async def enhance_description(self, project_id: str, selected_text: str) -> str:
        return await self.edit_paragraph(project_id, selected_text, ENHANCE_DESCRIPTION)

    async def add_tension(self, project_id: str, selected_text: str) -> str:
        return await self.edit_paragraph(project_id, selected_text, ADD_TENSION)

    async def condense_text(self, project_id: str, selected_text: str) -> str:
        return await self.edit_paragraph(project_id, selected_text, CONDENSE_TEXT)

    async def expand_text(self, project_id: str, selected_text: str) -> str:
        return await self.edit_paragraph(project_id, selected_text, EXPAND_TEXT)
