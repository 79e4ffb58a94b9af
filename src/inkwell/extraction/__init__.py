"""Structured entity extraction from model output."""

from .extractor import (
    ENTITY_TYPES,
    DetectedEntity,
    EntityExtractor,
    detect_entities,
    iter_json_objects,
)

__all__ = [
    "ENTITY_TYPES",
    "DetectedEntity",
    "EntityExtractor",
    "detect_entities",
    "iter_json_objects",
]
