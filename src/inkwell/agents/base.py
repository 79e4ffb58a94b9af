"""Shared machinery for the task agents."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from ..context.builder import ContextBuilder
from ..context.lore import TriggeredFact
from ..context.models import ContextBundle
from ..extraction.extractor import DetectedEntity
from ..logging import JSONLLogger, get_logger
from ..providers.base import ProviderClient
from ..store.models import CharacterProfile, Fact
from ..store.repository import Repository, RepositoryError

logger = logging.getLogger(__name__)


class TaskAgent:
    """A role-specific agent that owns one provider session.

    Subclasses set `role` and `system_prompt`; the coordinator builds the
    provider from the system prompt before constructing the agent.
    """

    role: str = "agent"
    system_prompt: str = ""

    def __init__(
        self,
        provider: ProviderClient,
        repository: Repository,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.provider = provider
        self.repository = repository
        self._event_logger = event_logger

    @property
    def event_logger(self) -> JSONLLogger:
        return self._event_logger or get_logger()

    def _builder(self, project_id: str) -> ContextBuilder:
        return ContextBuilder(self.repository, project_id)

    async def chat(self, message: str, context: ContextBundle | dict[str, Any] | None = None) -> str:
        """Send a message in this agent's session.

        When context is given it is serialized ahead of the task so the
        model sees it as structured background.
        """
        if context:
            data = context.to_dict() if isinstance(context, ContextBundle) else context
            message = f"Context:\n{json.dumps(data, indent=2, ensure_ascii=False)}\n\nTask: {message}"
        return await self.provider.chat(message)

    async def _chat_with_context(
        self,
        builder: ContextBuilder,
        bundle: ContextBundle,
        prompt: str,
        triggered: Sequence[TriggeredFact] = (),
    ) -> str:
        """Send a prompt built from a bundle, then mark its facts as used."""
        self.event_logger.log_context(
            bundle.task.value,
            project_id=builder.project_id,
            facts=len(bundle.facts) + len(triggered),
            characters=len(bundle.characters),
        )
        response = await self.chat(prompt)
        builder.record_usage(bundle, triggered)
        return response

    def clear_history(self) -> None:
        self.provider.clear_history()


@dataclass
class AppliedEntities:
    """What apply_entities persisted, plus what it handed back."""

    characters: list[CharacterProfile]
    facts: list[Fact]
    scenes: list[dict[str, Any]]
    skipped: int = 0
    failed: int = 0


def apply_entities(
    project_id: str,
    entities: Iterable[DetectedEntity],
    repository: Repository,
) -> AppliedEntities:
    """Persist detected characters and lore entries.

    Every payload is converted before anything is written, so a malformed
    item never leaves the batch half saved. Payloads missing required
    fields are counted in `skipped`; records the store rejects are logged
    and counted in `failed` while the rest of the batch is still written.
    Scenes are not stored; they are returned for the caller to place.
    """
    applied = AppliedEntities(characters=[], facts=[], scenes=[])
    records: list[CharacterProfile | Fact] = []
    for entity in entities:
        for item in entity.items:
            if entity.type == "scene":
                applied.scenes.append(item)
                continue
            try:
                if entity.type == "character":
                    records.append(CharacterProfile.from_payload(project_id, item))
                else:
                    records.append(Fact.from_payload(project_id, item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed %s payload: %s", entity.type, e)
                applied.skipped += 1

    for record in records:
        try:
            if isinstance(record, CharacterProfile):
                applied.characters.append(repository.create_character(record))
            else:
                applied.facts.append(repository.create_fact(record))
        except RepositoryError as e:
            logger.error("Could not save %s: %s", type(record).__name__, e)
            applied.failed += 1
    return applied
