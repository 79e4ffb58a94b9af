"""Tests for AgentCoordinator."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from inkwell.agents import AgentCoordinator, TaskOptions
from inkwell.agents.prompts import (
    CHARACTER_DEVELOPER_PROMPT,
    EDITOR_PROMPT,
    STORY_PLANNER_PROMPT,
    STORY_PLANNING_PROMPT,
    WORLD_BUILDER_PROMPT,
)
from inkwell.config import InkwellConfig
from inkwell.context import TaskType
from inkwell.logging import JSONLLogger
from inkwell.providers import ProviderError
from inkwell.providers.groq_provider import GroqProvider
from inkwell.store import CharacterProfile

PROJECT = "p1"


class FakeFactory:
    """Provider factory that records one mock session per system prompt."""

    def __init__(self) -> None:
        self.sessions: dict[str, MagicMock] = {}

    def __call__(self, system_prompt: str) -> MagicMock:
        provider = MagicMock()
        provider.chat = AsyncMock(return_value=f"reply for {len(self.sessions)}")
        provider.complete = AsyncMock(return_value="false")
        self.sessions[system_prompt] = provider
        return provider


@pytest.fixture
def factory() -> FakeFactory:
    return FakeFactory()


@pytest.fixture
def coordinator(repository, factory) -> AgentCoordinator:
    return AgentCoordinator(repository, provider_factory=factory)


class TestProcessTask:
    """Tests for process_task dispatch."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "task_type,prompt",
        [
            (TaskType.WORLD_BUILDING, WORLD_BUILDER_PROMPT),
            ("character_development", CHARACTER_DEVELOPER_PROMPT),
            ("story_planning", STORY_PLANNER_PROMPT),
            ("editing", EDITOR_PROMPT),
        ],
    )
    async def test_routes_to_agent_session(self, coordinator, factory, task_type, prompt):
        result = await coordinator.process_task(PROJECT, "Do it", task_type)

        assert list(factory.sessions) == [prompt]
        assert result == "reply for 0"
        factory.sessions[prompt].chat.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_options_reach_agents(self, coordinator, factory, repository):
        aria = repository.create_character(CharacterProfile(name="Aria", project_id=PROJECT))

        await coordinator.process_task(
            PROJECT, "deepen", "character_development", TaskOptions(character_id=aria.id)
        )
        await coordinator.process_task(
            PROJECT, "tighten", "editing", TaskOptions(selected_text="Aria ran.")
        )

        character_msg = factory.sessions[CHARACTER_DEVELOPER_PROMPT].chat.call_args.args[0]
        edit_msg = factory.sessions[EDITOR_PROMPT].chat.call_args.args[0]
        assert "CURRENT CHARACTER:\nName: Aria" in character_msg
        assert '"""\nAria ran.\n"""' in edit_msg
        assert "USER INSTRUCTION: tighten" in edit_msg

    @pytest.mark.asyncio
    async def test_planning_returns_content(self, coordinator, factory):
        result = await coordinator.process_task(PROJECT, "Hi", "planning")

        planner_session = factory.sessions[STORY_PLANNING_PROMPT]
        assert planner_session.complete.await_count == 2
        assert result == "false"

    @pytest.mark.asyncio
    async def test_unknown_task_type(self, coordinator, factory):
        with pytest.raises(ValueError, match="Unknown task type: poetry"):
            await coordinator.process_task(PROJECT, "x", "poetry")
        assert factory.sessions == {}

    @pytest.mark.asyncio
    async def test_provider_errors_propagate_and_are_logged(self, repository, factory, tmp_path):
        event_logger = JSONLLogger(log_dir=tmp_path)
        coordinator = AgentCoordinator(repository, factory, event_logger=event_logger)
        coordinator.world_builder.provider.chat.side_effect = ProviderError("Rate limit exceeded.")

        with pytest.raises(ProviderError):
            await coordinator.process_task(PROJECT, "x", "world_building")

        entries = [json.loads(line) for line in event_logger.log_path.read_text().splitlines()]
        task_entry = entries[-1]
        assert task_entry["event"] == "task"
        assert task_entry["task_type"] == "world_building"
        assert task_entry["error"] == "Rate limit exceeded."
        assert task_entry["extra"]["success"] is False


class TestAgents:
    def test_agents_are_created_lazily_and_reused(self, coordinator, factory):
        assert factory.sessions == {}

        first = coordinator.editor
        second = coordinator.editor

        assert first is second
        assert list(factory.sessions) == [EDITOR_PROMPT]

    def test_each_agent_has_its_own_session(self, coordinator):
        assert coordinator.world_builder.provider is not coordinator.story_planner.provider

    def test_clear_all_history(self, coordinator, factory):
        coordinator.world_builder
        coordinator.planner

        coordinator.clear_all_history()

        for session in factory.sessions.values():
            session.clear_history.assert_called_once()

    def test_default_factory_uses_config(self, repository):
        config = InkwellConfig(provider="groq", api_key="key", model="llama-test")
        coordinator = AgentCoordinator(repository, config=config)

        provider = coordinator.world_builder.provider

        assert isinstance(provider, GroqProvider)
        assert provider.model == "llama-test"
        assert provider.system_prompt == WORLD_BUILDER_PROMPT


class TestFullProject:
    """Tests for coordinate_full_project."""

    @pytest.mark.asyncio
    async def test_runs_three_stages(self, coordinator, factory):
        result = await coordinator.process_task(PROJECT, "a pirate saga", "full_project")

        assert set(result) == {"world_building", "characters", "story_outline"}
        assert all(value is not None for value in result.values())
        assert list(factory.sessions) == [
            WORLD_BUILDER_PROMPT,
            CHARACTER_DEVELOPER_PROMPT,
            STORY_PLANNER_PROMPT,
        ]
        world_msg = factory.sessions[WORLD_BUILDER_PROMPT].chat.call_args.args[0]
        assert "Create a comprehensive world for: a pirate saga" in world_msg

    @pytest.mark.asyncio
    async def test_failed_stage_is_none(self, coordinator):
        coordinator.character_developer.provider.chat.side_effect = ProviderError("offline")

        result = await coordinator.coordinate_full_project(PROJECT, "a pirate saga")

        assert result["characters"] is None
        assert result["world_building"] is not None
        assert result["story_outline"] is not None
