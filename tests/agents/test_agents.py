"""Tests for the task agents."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from inkwell.agents import (
    CharacterDeveloper,
    Editor,
    StoryPlanner,
    TaskAgent,
    WorldBuilder,
    apply_entities,
)
from inkwell.agents.character import CHARACTER_NOT_FOUND, NO_CHARACTERS
from inkwell.agents.editor import CONDENSE_TEXT, IMPROVE_DIALOGUE
from inkwell.context import ContextBundle, TaskType
from inkwell.extraction import DetectedEntity, detect_entities
from inkwell.logging import JSONLLogger
from inkwell.store import CharacterProfile, Fact, RepositoryError, SQLiteRepository

PROJECT = "p1"


def make_provider(reply: str = "Done.") -> MagicMock:
    """Create a mock provider session."""
    provider = MagicMock()
    provider.chat = AsyncMock(return_value=reply)
    return provider


def sent_message(provider: MagicMock) -> str:
    return provider.chat.call_args.args[0]


def add_fact(repo, key: str, value: str = "", **kwargs) -> Fact:
    return repo.create_fact(Fact(key=key, value=value or f"About {key}", project_id=PROJECT, **kwargs))


def add_character(repo, name: str, **kwargs) -> CharacterProfile:
    return repo.create_character(CharacterProfile(name=name, project_id=PROJECT, **kwargs))


class TestTaskAgent:
    """Tests for the shared chat entry point."""

    @pytest.mark.asyncio
    async def test_plain_message(self, repository):
        provider = make_provider("Hi")
        agent = TaskAgent(provider, repository)

        assert await agent.chat("Hello") == "Hi"
        assert sent_message(provider) == "Hello"

    @pytest.mark.asyncio
    async def test_context_is_prefixed_as_json(self, repository):
        provider = make_provider()
        agent = TaskAgent(provider, repository)

        await agent.chat("Name the city", {"genre": "fantasy"})

        assert sent_message(provider) == (
            'Context:\n{\n  "genre": "fantasy"\n}\n\nTask: Name the city'
        )

    @pytest.mark.asyncio
    async def test_bundle_context(self, repository):
        provider = make_provider()
        bundle = ContextBundle(task=TaskType.WORLD_BUILDING, keywords=["city"])

        await TaskAgent(provider, repository).chat("Go", bundle)

        message = sent_message(provider)
        payload = message.split("\n\nTask: ")[0].removeprefix("Context:\n")
        assert json.loads(payload) == {"task": "world_building", "keywords": ["city"]}

    def test_clear_history_delegates(self, repository):
        provider = make_provider()
        TaskAgent(provider, repository).clear_history()
        provider.clear_history.assert_called_once()


class TestWorldBuilder:
    @pytest.mark.asyncio
    async def test_build_world_includes_lore_and_marks_usage(self, repository):
        add_fact(repository, "Crystal City", "A floating metropolis", category="Locations", priority=5)
        provider = make_provider('```json\n{"type": "lorebook", "data": []}\n```')
        agent = WorldBuilder(provider, repository)

        await agent.build_world(PROJECT, "expand the crystal city")

        message = sent_message(provider)
        assert "User Request: expand the crystal city" in message
        assert "Existing world elements: Locations" in message
        assert "- [Locations] Crystal City: A floating metropolis" in message
        assert "Provide 2-5 new lorebook entries" in message
        assert repository.get_facts(PROJECT)[0].use_count == 1

    @pytest.mark.asyncio
    async def test_build_world_empty_project(self, repository):
        provider = make_provider()

        await WorldBuilder(provider, repository).build_world(PROJECT, "a desert", category="Magic")

        message = sent_message(provider)
        assert "No existing world elements" in message
        assert "Focus Category: Magic" in message
        assert "Relevant Existing Lore (0 entries)" in message

    @pytest.mark.asyncio
    async def test_expand_lore_depth(self, repository):
        provider = make_provider()
        agent = WorldBuilder(provider, repository)

        await agent.expand_lore(PROJECT, "rune magic", depth="brief")

        message = sent_message(provider)
        assert 'Expand on the topic: "rune magic"' in message
        assert "focused, essential" in message
        assert "No existing lore found for this topic" in message

    @pytest.mark.asyncio
    async def test_logs_context_size(self, repository, tmp_path):
        event_logger = JSONLLogger(log_dir=tmp_path)
        add_fact(repository, "Harbor")
        agent = WorldBuilder(make_provider(), repository, event_logger=event_logger)

        await agent.build_world(PROJECT, "harbor")

        entry = json.loads(event_logger.log_path.read_text().splitlines()[0])
        assert entry["event"] == "context"
        assert entry["task_type"] == "world_building"
        assert entry["extra"] == {"facts": 1, "characters": 0}


class TestCharacterDeveloper:
    @pytest.mark.asyncio
    async def test_new_character_lists_existing_cast(self, repository):
        add_character(repository, "Aria", role="Hero", age="25")
        provider = make_provider()

        await CharacterDeveloper(provider, repository).develop_character(PROJECT, "a rival")

        message = sent_message(provider)
        assert message.startswith("Create a NEW character")
        assert "- Aria (Hero, Age: 25)" in message
        assert "character json block" in message

    @pytest.mark.asyncio
    async def test_existing_character_is_expanded(self, repository):
        aria = add_character(
            repository, "Aria", role="Hero", traits=("brave", "stubborn"), relationships={"Bren": "brother"}
        )
        provider = make_provider()

        await CharacterDeveloper(provider, repository).develop_character(
            PROJECT, "deepen her past", aria.id
        )

        message = sent_message(provider)
        assert message.startswith("Develop and expand the existing character")
        assert "Name: Aria" in message
        assert "Traits: brave, stubborn" in message
        assert '"Bren": "brother"' in message
        assert "Age: Not defined" in message

    @pytest.mark.asyncio
    async def test_unknown_id_creates_new(self, repository):
        provider = make_provider()

        await CharacterDeveloper(provider, repository).develop_character(
            PROJECT, "someone", "char_missing"
        )

        assert sent_message(provider).startswith("Create a NEW character")

    @pytest.mark.asyncio
    async def test_dynamics_without_characters_skips_model(self, repository):
        provider = make_provider()

        reply = await CharacterDeveloper(provider, repository).analyze_character_dynamics(PROJECT)

        assert reply == NO_CHARACTERS
        provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_dynamics_filters_by_id(self, repository):
        aria = add_character(repository, "Aria", background="b" * 500)
        add_character(repository, "Bren")
        provider = make_provider()

        await CharacterDeveloper(provider, repository).analyze_character_dynamics(
            PROJECT, [aria.id]
        )

        message = sent_message(provider)
        assert "Name: Aria" in message
        assert "Name: Bren" not in message
        assert "b" * 200 in message
        assert "b" * 201 not in message

    @pytest.mark.asyncio
    async def test_dynamics_survives_repository_failure(self):
        repo = MagicMock()
        repo.get_characters.side_effect = RepositoryError("locked")
        provider = make_provider()

        reply = await CharacterDeveloper(provider, repo).analyze_character_dynamics(PROJECT)

        assert reply == NO_CHARACTERS

    @pytest.mark.asyncio
    async def test_relationships_for_unknown_character(self, repository):
        provider = make_provider()

        reply = await CharacterDeveloper(provider, repository).suggest_relationships(
            PROJECT, "char_missing"
        )

        assert reply == CHARACTER_NOT_FOUND
        provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_relationships_exclude_target(self, repository):
        aria = add_character(repository, "Aria", role="Hero")
        add_character(repository, "Bren", role="Rival", traits=("sly",))
        provider = make_provider()

        await CharacterDeveloper(provider, repository).suggest_relationships(PROJECT, aria.id)

        message = sent_message(provider)
        assert "- Bren (Rival): sly" in message
        assert "- Aria" not in message
        assert '"relationshipType": "type"' in message


class TestStoryPlanner:
    @pytest.mark.asyncio
    async def test_three_act_outline(self, repository):
        add_character(repository, "Aria", role="Hero", goals="Escape")
        provider = make_provider()

        await StoryPlanner(provider, repository).create_outline(PROJECT, "a heist")

        message = sent_message(provider)
        assert "using three-act structure" in message
        assert "ACT 1 (Setup - 25%)" in message
        assert "- Aria (Hero): Goals - Escape" in message

    @pytest.mark.asyncio
    async def test_other_structure_has_no_guidelines(self, repository):
        provider = make_provider()

        await StoryPlanner(provider, repository).create_outline(
            PROJECT, "a heist", structure="hero's journey"
        )

        message = sent_message(provider)
        assert "hero's journey" in message
        assert "ACT 1" not in message

    @pytest.mark.asyncio
    async def test_plot_point_caps_lore(self, repository):
        for i in range(7):
            add_fact(repository, f"place {i}", category=f"cat{i}", priority=i)
        provider = make_provider()

        await StoryPlanner(provider, repository).develop_plot_point(PROJECT, "the betrayal", "end")

        message = sent_message(provider)
        assert "POSITION IN STORY: end" in message
        assert sum(1 for line in message.splitlines() if line.startswith("- [cat")) == 5

    @pytest.mark.asyncio
    async def test_pacing_sends_outline_only(self, repository):
        add_fact(repository, "Harbor")
        provider = make_provider()

        await StoryPlanner(provider, repository).analyze_pacing(PROJECT, "Act 1: ...")

        assert "OUTLINE:\nAct 1: ..." in sent_message(provider)
        assert repository.get_facts(PROJECT)[0].use_count == 0

    @pytest.mark.asyncio
    async def test_suggest_scenes_asks_for_scene_blocks(self, repository):
        provider = make_provider()

        await StoryPlanner(provider, repository).suggest_scenes(PROJECT, "the chase")

        message = sent_message(provider)
        assert "CHAPTER/SECTION DESCRIPTION: the chase" in message
        assert "scene json block" in message


class TestEditor:
    @pytest.mark.asyncio
    async def test_edit_includes_mentioned_characters(self, repository):
        add_character(repository, "Marcus", role="Soldier", description="Scarred veteran")
        add_character(repository, "Marc", role="Baker")
        provider = make_provider("Marcus stormed in.")

        reply = await Editor(provider, repository).edit_paragraph(
            PROJECT, "Marcus walked in.", "make it angrier"
        )

        message = sent_message(provider)
        assert reply == "Marcus stormed in."
        assert '"""\nMarcus walked in.\n"""' in message
        assert "CHARACTERS IN THIS SCENE:\n- Marcus (Soldier)" in message
        assert "Marc (Baker)" not in message
        assert message.endswith("REVISED TEXT:")

    @pytest.mark.asyncio
    async def test_triggered_lore_becomes_world_information(self, repository):
        add_fact(repository, "Harbor", "Busy docks", category="Locations", keywords=("port",))
        add_fact(repository, "Runes", "Carved power", trigger_mode="manual")
        provider = make_provider()

        await Editor(provider, repository).edit_paragraph(
            PROJECT, "Ships crowd the port. Runes glow.", "darker"
        )

        message = sent_message(provider)
        assert "# World Information\n\n[Harbor] (Locations)\nBusy docks" in message
        assert "RELEVANT WORLD ELEMENTS:\n- [General] Runes: Carved power" in message
        assert "] Harbor:" not in message
        assert [f.use_count for f in repository.get_facts(PROJECT)] == [1, 1]

    @pytest.mark.asyncio
    async def test_no_background_sections_when_nothing_matches(self, repository):
        provider = make_provider()

        await Editor(provider, repository).edit_paragraph(PROJECT, "It rained.", "shorter")

        message = sent_message(provider)
        assert "CHARACTERS IN THIS SCENE" not in message
        assert "RELEVANT WORLD ELEMENTS" not in message

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,instruction",
        [("improve_dialogue", IMPROVE_DIALOGUE), ("condense_text", CONDENSE_TEXT)],
    )
    async def test_presets(self, repository, method, instruction):
        provider = make_provider()

        await getattr(Editor(provider, repository), method)(PROJECT, "Text.")

        assert f"USER INSTRUCTION: {instruction}" in sent_message(provider)


class TestApplyEntities:
    """Tests for apply_entities."""

    def test_persists_characters_and_lore(self, repository):
        text = (
            '```json\n{"type": "character", "data": {"name": "Aria", "traits": "brave, kind"}}\n```\n'
            '```json\n{"type": "lorebook", "data": [{"key": "Harbor", "value": "Docks", '
            '"keys": ["port"], "priority": 15}]}\n```\n'
            '```json\n{"type": "scene", "data": [{"sceneTitle": "Ambush"}]}\n```'
        )

        applied = apply_entities(PROJECT, detect_entities(text), repository)

        assert [c.name for c in applied.characters] == ["Aria"]
        assert applied.characters[0].traits == ("brave", "kind")
        assert applied.facts[0].keywords == ("port",)
        assert applied.facts[0].priority == 10
        assert applied.scenes == [{"sceneTitle": "Ambush"}]
        assert repository.get_characters(PROJECT)[0].id.startswith("char_")
        assert repository.get_facts(PROJECT)[0].id.startswith("lore_")

    def test_malformed_payloads_are_skipped(self, repository):
        entities = [
            DetectedEntity(type="character", data=[{"role": "nameless"}, {"name": "Bren"}]),
            DetectedEntity(type="lorebook", data={"key": "no value"}),
        ]

        applied = apply_entities(PROJECT, entities, repository)

        assert [c.name for c in applied.characters] == ["Bren"]
        assert applied.facts == []
        assert applied.skipped == 2

    def test_non_string_fields_saved_to_sqlite(self, tmp_path):
        store = SQLiteRepository(tmp_path / "inkwell.db")
        store.init_db()
        text = (
            '```json\n{"type": "character", "data": [{"name": "Aria"}, '
            '{"name": "Bren", "goals": ["escape", "find sister"], "role": {"title": "smith"}}]}\n```'
        )

        applied = apply_entities(PROJECT, detect_entities(text), store)

        assert applied.failed == 0
        saved = {c.name: c for c in store.get_characters(PROJECT)}
        assert set(saved) == {"Aria", "Bren"}
        assert saved["Bren"].goals == "escape, find sister"
        assert saved["Bren"].role == '{"title": "smith"}'
        store.close()

    def test_malformed_item_does_not_stop_batch(self, repository):
        entities = [DetectedEntity(type="character", data=[{"name": "Aria"}, {}, {"name": "Bren"}])]

        applied = apply_entities(PROJECT, entities, repository)

        assert [c.name for c in repository.get_characters(PROJECT)] == ["Aria", "Bren"]
        assert applied.skipped == 1

    def test_store_rejections_are_counted(self, caplog):
        repo = MagicMock()
        repo.create_character.side_effect = RepositoryError("disk full")
        repo.create_fact.side_effect = lambda fact: fact
        entities = [
            DetectedEntity(type="character", data={"name": "Aria"}),
            DetectedEntity(type="lorebook", data={"key": "Harbor", "value": "Docks"}),
        ]

        with caplog.at_level(logging.ERROR, logger="inkwell.agents.base"):
            applied = apply_entities(PROJECT, entities, repo)

        assert applied.failed == 1
        assert applied.characters == []
        assert [f.key for f in applied.facts] == ["Harbor"]
        assert "disk full" in caplog.text
