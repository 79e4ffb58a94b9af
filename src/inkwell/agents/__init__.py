"""Task agents, planning orchestration and coordination."""

from .base import AppliedEntities, TaskAgent, apply_entities
from .character import CharacterDeveloper
from .coordinator import AgentCoordinator, TaskOptions, provider_factory_from_config
from .editor import Editor
from .planning import (
    PHASES,
    PlanningOrchestrator,
    PlanningPhaseResult,
    PlanningResult,
    PlanningState,
)
from .story import StoryPlanner
from .world import WorldBuilder

__all__ = [
    "PHASES",
    "AgentCoordinator",
    "AppliedEntities",
    "CharacterDeveloper",
    "Editor",
    "PlanningOrchestrator",
    "PlanningPhaseResult",
    "PlanningResult",
    "PlanningState",
    "StoryPlanner",
    "TaskAgent",
    "TaskOptions",
    "WorldBuilder",
    "apply_entities",
    "provider_factory_from_config",
]
