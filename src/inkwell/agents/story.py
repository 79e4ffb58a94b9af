"""Story planning agent."""

from __future__ import annotations

from ..context.models import CharacterView
from .base import TaskAgent
from .prompts import STORY_PLANNER_PROMPT, format_fact_keys, format_facts, format_roster

PLOT_POINT_FACTS = 5
SCENE_FACTS = 8

THREE_ACT_GUIDELINES = """
Structure Guidelines:
ACT 1 (Setup - 25%): Introduce characters, world, establish stakes
- Opening hook
- Introduce protagonist and world
- Inciting incident
- First plot point (point of no return)

ACT 2 (Confrontation - 50%): Rising action, complications, development
- Rising action and obstacles
- Midpoint twist or revelation
- Darkest moment / All is lost
- Second plot point (final push)

ACT 3 (Resolution - 25%): Climax and resolution
- Final confrontation / Climax
- Resolution of character arcs
- Denouement / New normal
"""


def _cast_with_goals(characters: list[CharacterView]) -> str:
    if not characters:
        return "None"
    return "\n".join(
        f"- {c.name} ({c.role or 'Unknown role'}): Goals - {c.goals or 'None'}, "
        f"Key Traits - {', '.join(c.traits) or 'None'}"
        for c in characters
    )


class StoryPlanner(TaskAgent):
    """Outlines stories and works on plot points, pacing and scenes."""

    role = "story_planner"
    system_prompt = STORY_PLANNER_PROMPT

    async def create_outline(
        self, project_id: str, prompt: str, structure: str = "three-act"
    ) -> str:
        """Outline a story using the project's cast and world."""
        builder = self._builder(project_id)
        bundle = builder.build_story_context(prompt)
        guidelines = THREE_ACT_GUIDELINES if structure == "three-act" else ""

        message = f"""Create a story outline using {structure} structure.

STORY CONCEPT: {prompt}

AVAILABLE CHARACTERS:
{_cast_with_goals(bundle.characters)}

WORLD ELEMENTS:
{format_facts(bundle.facts)}

TASK:
Create a detailed {structure} story outline that:
1. Integrates the available characters naturally
2. Leverages the existing world elements
3. Creates clear character arcs for the main protagonists
4. Balances action, dialogue, and character development
5. Includes specific plot beats and turning points
6. Suggests chapter/scene breakdowns
{guidelines}
Format as a structured outline with clear sections and bullet points."""

        return await self._chat_with_context(builder, bundle, message)

    async def develop_plot_point(
        self, project_id: str, plot_description: str, position: str = "middle"
    ) -> str:
        """Break one plot point into scenes and beats."""
        builder = self._builder(project_id)
        bundle = builder.build_story_context(plot_description)
        cast = "\n".join(
            f"- {c.name} ({c.role or 'Unknown role'}): {c.goals or 'No defined goals'}"
            for c in bundle.characters
        )

        message = f"""Develop this plot point in detail.

PLOT POINT: {plot_description}
POSITION IN STORY: {position}

AVAILABLE CHARACTERS:
{cast or 'None'}

RELEVANT WORLD ELEMENTS:
{format_fact_keys(bundle.facts[:PLOT_POINT_FACTS])}

TASK:
Develop this plot point with:
1. Scene-by-scene breakdown (2-4 scenes)
2. Which characters are involved and their actions
3. Emotional beats and character development moments
4. World details to include (locations, rules, etc.)
5. Dialogue suggestions or key exchanges
6. How this advances the main narrative
7. Setup for future plot points or payoffs
8. Pacing considerations (fast/slow moments)

Provide a detailed scene breakdown with specific beats."""

        return await self._chat_with_context(builder, bundle, message)

    async def analyze_pacing(self, project_id: str, outline: str) -> str:
        """Critique the pacing of an outline. Uses no project context."""
        message = f"""Analyze the pacing of this story outline:

OUTLINE:
{outline}

TASK:
Evaluate and provide feedback on:
1. Overall pacing rhythm (fast/medium/slow sections)
2. Balance of action, dialogue, and exposition
3. Tension and release patterns
4. Character development pacing
5. Potential slow spots that need tightening
6. Rushed sections that need expansion
7. Placement of major beats (are they well-spaced?)
8. Reader engagement throughout the narrative

Provide specific recommendations with:
- What's working well
- What needs adjustment
- Concrete suggestions for improvement
- Estimated reading time for each section"""

        return await self.chat(message)

    async def suggest_scenes(self, project_id: str, chapter_description: str) -> str:
        """Suggest 3-5 scenes for a chapter as scene json blocks."""
        builder = self._builder(project_id)
        bundle = builder.build_story_context(chapter_description)

        message = f"""Suggest scenes for this chapter/section.

CHAPTER/SECTION DESCRIPTION: {chapter_description}

AVAILABLE CHARACTERS:
{format_roster(bundle.characters)}

WORLD ELEMENTS:
{format_fact_keys(bundle.facts[:SCENE_FACTS])}

TASK:
Suggest 3-5 scenes for this chapter that:
1. Advance the plot effectively
2. Develop character relationships
3. Reveal world details naturally
4. Vary in pacing and tone
5. Build toward the chapter's climax

Emit a scene json block whose data is a list of scenes shaped like:
{{
  "sceneTitle": "brief title",
  "location": "where it takes place",
  "characters": ["character1", "character2"],
  "purpose": "what this scene accomplishes",
  "mood": "emotional tone",
  "keyBeats": ["beat1", "beat2", "beat3"]
}}"""

        return await self._chat_with_context(builder, bundle, message)
