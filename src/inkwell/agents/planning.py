"""Multi-phase story planning.

A request is first classified. Simple questions get a single reply;
analysis requests run three sequential phases (Analysis, Issue
Identification, Recommendations) where every phase sees the output of
the phases before it. The combined report is saved as a project fact so
later runs can build on it.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..context.builder import ContextBuilder
from ..logging import JSONLLogger, get_logger
from ..providers.base import ConversationTurn, ProviderClient, ProviderError
from ..store.models import Fact
from ..store.repository import Repository
from .prompts import (
    ANALYSIS_PHASE_PROMPT,
    CLASSIFIER_PROMPT,
    ISSUE_PHASE_PROMPT,
    RECOMMENDATIONS_PHASE_PROMPT,
    STORY_PLANNING_PROMPT,
    format_conversation,
)

logger = logging.getLogger(__name__)

ANALYSIS_CATEGORY = "plot-analysis"
ANALYSIS_PRIORITY = 8
PREVIOUS_ANALYSES = 10
ANALYSIS_PREVIEW_CHARS = 200
PHASE_SEPARATOR = "\n\n---\n\n"
REPLY_TEMPERATURE = 0.7


class PlanningState(Enum):
    """Where a planning run currently is."""

    IDLE = "idle"
    CLASSIFYING = "classifying"
    SIMPLE_REPLY = "simple_reply"
    ANALYSIS = "analysis"
    ISSUE_IDENTIFICATION = "issue_identification"
    RECOMMENDATIONS = "recommendations"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PlanningPhase:
    name: str
    state: PlanningState
    prompt: str


PHASES: tuple[PlanningPhase, ...] = (
    PlanningPhase("Analysis", PlanningState.ANALYSIS, ANALYSIS_PHASE_PROMPT),
    PlanningPhase(
        "Issue Identification", PlanningState.ISSUE_IDENTIFICATION, ISSUE_PHASE_PROMPT
    ),
    PlanningPhase("Recommendations", PlanningState.RECOMMENDATIONS, RECOMMENDATIONS_PHASE_PROMPT),
)


@dataclass
class PlanningPhaseResult:
    """Output of one planning phase."""

    phase_name: str
    text: str


@dataclass
class PlanningResult:
    """Final answer of a planning run.

    Attributes:
        content: Text to show the author.
        planned: True when the three-phase path ran.
        phases: Per-phase outputs, empty for a simple reply.
        saved: The persisted report fact, if saving succeeded.
    """

    content: str
    planned: bool
    phases: list[PlanningPhaseResult] = field(default_factory=list)
    saved: Fact | None = None


def combine_phases(phases: Sequence[PlanningPhaseResult]) -> str:
    """Join phase outputs into the report body."""
    return PHASE_SEPARATOR.join(f"## {p.phase_name}\n\n{p.text}" for p in phases)


class PlanningOrchestrator:
    """Runs classification and the phase pipeline over one provider.

    Model calls go through ProviderClient.complete, so the provider's
    own session history is never touched. Not safe for concurrent runs.
    """

    def __init__(
        self,
        provider: ProviderClient,
        repository: Repository,
        event_logger: JSONLLogger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.provider = provider
        self.repository = repository
        self._event_logger = event_logger
        self._clock = clock
        self.state = PlanningState.IDLE
        self.transitions: list[PlanningState] = []

    @property
    def event_logger(self) -> JSONLLogger:
        return self._event_logger or get_logger()

    def _enter(self, state: PlanningState) -> None:
        self.state = state
        self.transitions.append(state)

    async def classify(self, message: str) -> bool:
        """Return True only when the classifier answers exactly 'true'."""
        reply = await self.provider.complete(message, system=CLASSIFIER_PROMPT, temperature=0)
        return reply.strip().lower() == "true"

    async def run(
        self,
        project_id: str | None,
        message: str,
        history: Sequence[ConversationTurn] = (),
    ) -> PlanningResult:
        """Answer a planning request.

        Args:
            project_id: Project to analyze; None runs without project
                context and saves nothing.
            message: The author's request.
            history: Prior conversation turns.

        Raises:
            ProviderError: If any model call fails. Nothing is saved.
        """
        self.transitions = []
        self._enter(PlanningState.CLASSIFYING)
        try:
            if not await self.classify(message):
                return await self._simple_reply(message, history)
            return await self._multi_phase(project_id, message, history)
        except ProviderError:
            self._enter(PlanningState.FAILED)
            raise

    async def _simple_reply(
        self, message: str, history: Sequence[ConversationTurn]
    ) -> PlanningResult:
        self._enter(PlanningState.SIMPLE_REPLY)
        text = await self.provider.complete(
            message,
            system=STORY_PLANNING_PROMPT,
            temperature=REPLY_TEMPERATURE,
            history=history,
        )
        self._enter(PlanningState.DONE)
        return PlanningResult(content=text, planned=False)

    async def _multi_phase(
        self,
        project_id: str | None,
        message: str,
        history: Sequence[ConversationTurn],
    ) -> PlanningResult:
        project_context = self._project_context(project_id) if project_id else None
        results: list[PlanningPhaseResult] = []
        cumulative = ""

        for phase in PHASES:
            self._enter(phase.state)
            if phase.state == PlanningState.ANALYSIS:
                prompt = phase.prompt.format(
                    message=message,
                    project_context=(
                        f"Project Context:\n{project_context}"
                        if project_context
                        else "No project context available."
                    ),
                    conversation=format_conversation(history),
                )
            else:
                prompt = phase.prompt

            system = (
                f"{STORY_PLANNING_PROMPT}\n\n"
                f"You are executing a multi-phase analysis. Current phase: {phase.name}\n\n"
                f"{cumulative}"
            )

            started = time.time()
            try:
                text = await self.provider.complete(
                    prompt, system=system, temperature=REPLY_TEMPERATURE
                )
            except ProviderError as e:
                self.event_logger.log_phase(
                    phase.name,
                    project_id=project_id,
                    duration_ms=(time.time() - started) * 1000,
                    error=str(e),
                )
                raise
            self.event_logger.log_phase(
                phase.name, project_id=project_id, duration_ms=(time.time() - started) * 1000
            )

            results.append(PlanningPhaseResult(phase_name=phase.name, text=text))
            cumulative += f"\n\n### Results from {phase.name} phase:\n{text}"

        report = combine_phases(results)
        saved = self._persist(project_id, report) if project_id else None
        note = (
            "This analysis has been saved to your project memory for future reference."
            if saved is not None
            else "This analysis could not be saved to your project memory."
        )
        content = (
            f"I've completed a comprehensive {len(PHASES)}-phase analysis of your story:"
            f"\n\n{report}\n\n**Note:** {note}"
        )
        self._enter(PlanningState.DONE)
        return PlanningResult(content=content, planned=True, phases=results, saved=saved)

    def _project_context(self, project_id: str) -> str | None:
        """JSON summary of cast, world and previous analyses, or None if empty."""
        bundle = ContextBuilder(self.repository, project_id).build_story_context("")
        context: dict[str, Any] = {}

        if bundle.characters:
            context["characters"] = [
                {k: v for k, v in vars(c).items() if v and k != "id"} for c in bundle.characters
            ]
        world = [
            {"category": f.category, "key": f.key, "summary": f.text}
            for f in bundle.facts
            if f.category != ANALYSIS_CATEGORY
        ]
        if world:
            context["world"] = world

        try:
            analyses = self.repository.get_facts(project_id, ANALYSIS_CATEGORY)
        except Exception as e:
            logger.warning("Could not load previous analyses for %s: %s", project_id, e)
            analyses = []
        if analyses:
            context["previous_analyses"] = [
                {"key": a.key, "summary": a.value[:ANALYSIS_PREVIEW_CHARS] + "..."}
                for a in analyses[:PREVIOUS_ANALYSES]
            ]

        if not context:
            return None
        return json.dumps(context, indent=2, ensure_ascii=False)

    def _persist(self, project_id: str, report: str) -> Fact | None:
        fact = Fact(
            key=f"analysis-{int(self._clock() * 1000)}",
            value=report,
            project_id=project_id,
            category=ANALYSIS_CATEGORY,
            priority=ANALYSIS_PRIORITY,
        )
        try:
            return self.repository.create_fact(fact)
        except Exception as e:
            logger.warning("Failed to save planning report for %s: %s", project_id, e)
            return None
