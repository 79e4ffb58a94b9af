"""Dispatches author tasks to the right agent."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from ..config import InkwellConfig
from ..context.models import TaskType
from ..logging import JSONLLogger, get_logger
from ..providers.base import ConversationTurn, ProviderClient
from ..providers.factory import create_provider
from ..store.repository import Repository
from .base import TaskAgent
from .character import CharacterDeveloper
from .editor import Editor
from .planning import PlanningOrchestrator, PlanningResult
from .prompts import STORY_PLANNING_PROMPT
from .story import StoryPlanner
from .world import WorldBuilder

logger = logging.getLogger(__name__)

A = TypeVar("A", bound=TaskAgent)

ProviderFactory = Callable[[str], ProviderClient]
FullProjectResult = dict[str, str | None]


@dataclass
class TaskOptions:
    """Per-task knobs; each task type reads only the fields it needs."""

    category: str | None = None
    character_id: str | None = None
    structure: str = "three-act"
    selected_text: str | None = None
    history: Sequence[ConversationTurn] = ()


def provider_factory_from_config(
    config: InkwellConfig, event_logger: JSONLLogger | None = None
) -> ProviderFactory:
    """Build a factory that opens one provider session per system prompt."""

    def factory(system_prompt: str) -> ProviderClient:
        return create_provider(
            config.provider,
            config.api_key or "",
            config.model,
            system_prompt,
            config.provider_settings(),
            event_logger,
        )

    return factory


class AgentCoordinator:
    """Routes tasks to lazily created agents.

    Each agent gets its own provider session from provider_factory, so
    conversation history never leaks between roles.
    """

    def __init__(
        self,
        repository: Repository,
        provider_factory: ProviderFactory | None = None,
        config: InkwellConfig | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.repository = repository
        self._event_logger = event_logger
        self._provider_factory = provider_factory or provider_factory_from_config(
            config or InkwellConfig(), event_logger
        )
        self._agents: dict[type[TaskAgent], TaskAgent] = {}
        self._planner: PlanningOrchestrator | None = None

    @property
    def event_logger(self) -> JSONLLogger:
        return self._event_logger or get_logger()

    def _agent(self, agent_cls: type[A]) -> A:
        agent = self._agents.get(agent_cls)
        if agent is None:
            agent = agent_cls(
                self._provider_factory(agent_cls.system_prompt),
                self.repository,
                self._event_logger,
            )
            self._agents[agent_cls] = agent
        return agent  # type: ignore[return-value]

    @property
    def world_builder(self) -> WorldBuilder:
        return self._agent(WorldBuilder)

    @property
    def character_developer(self) -> CharacterDeveloper:
        return self._agent(CharacterDeveloper)

    @property
    def story_planner(self) -> StoryPlanner:
        return self._agent(StoryPlanner)

    @property
    def editor(self) -> Editor:
        return self._agent(Editor)

    @property
    def planner(self) -> PlanningOrchestrator:
        if self._planner is None:
            self._planner = PlanningOrchestrator(
                self._provider_factory(STORY_PLANNING_PROMPT),
                self.repository,
                self._event_logger,
            )
        return self._planner

    async def process_task(
        self,
        project_id: str,
        task: str,
        task_type: TaskType | str,
        options: TaskOptions | None = None,
    ) -> str | FullProjectResult:
        """Run one task and return the agent's text.

        full_project returns a dict with world_building, characters and
        story_outline entries, any of which is None if its stage failed.

        Raises:
            ValueError: If task_type is not a known TaskType.
            ProviderError: If the model call fails (except in full_project).
        """
        try:
            kind = TaskType(task_type)
        except ValueError:
            raise ValueError(f"Unknown task type: {task_type}") from None

        options = options or TaskOptions()
        started = time.time()
        try:
            result = await self._dispatch(project_id, task, kind, options)
        except Exception as e:
            self.event_logger.log_task(
                kind.value,
                project_id=project_id,
                duration_ms=(time.time() - started) * 1000,
                error=str(e),
            )
            raise

        self.event_logger.log_task(
            kind.value, project_id=project_id, duration_ms=(time.time() - started) * 1000
        )
        return result

    async def _dispatch(
        self, project_id: str, task: str, kind: TaskType, options: TaskOptions
    ) -> str | FullProjectResult:
        if kind == TaskType.WORLD_BUILDING:
            return await self.world_builder.build_world(project_id, task, options.category)
        if kind == TaskType.CHARACTER_DEVELOPMENT:
            return await self.character_developer.develop_character(
                project_id, task, options.character_id
            )
        if kind == TaskType.STORY_PLANNING:
            return await self.story_planner.create_outline(project_id, task, options.structure)
        if kind == TaskType.EDITING:
            return await self.editor.edit_paragraph(project_id, options.selected_text or "", task)
        if kind == TaskType.PLANNING:
            result: PlanningResult = await self.planner.run(project_id, task, options.history)
            return result.content
        return await self.coordinate_full_project(project_id, task)

    async def coordinate_full_project(self, project_id: str, description: str) -> FullProjectResult:
        """Build world, then characters, then an outline.

        A failing stage is logged and recorded as None; later stages still run.
        """
        results: FullProjectResult = {
            "world_building": None,
            "characters": None,
            "story_outline": None,
        }

        stages = (
            (
                "world_building",
                lambda: self.world_builder.build_world(
                    project_id, f"Create a comprehensive world for: {description}"
                ),
            ),
            (
                "characters",
                lambda: self.character_developer.develop_character(
                    project_id, f"Create main characters for: {description}"
                ),
            ),
            ("story_outline", lambda: self.story_planner.create_outline(project_id, description)),
        )

        for name, stage in stages:
            logger.info("Full project %s: running %s", project_id, name)
            try:
                results[name] = await stage()
            except Exception as e:
                logger.warning("Full project %s: %s failed: %s", project_id, name, e)
        return results

    def clear_all_history(self) -> None:
        """Clear the session history of every agent created so far."""
        for agent in self._agents.values():
            agent.clear_history()
        if self._planner is not None:
            self._planner.provider.clear_history()
