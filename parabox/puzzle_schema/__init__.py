"""Puzzle definition schema - the static input the engine is built from."""

from .definition import (
    PuzzleDefinition,
    BoardDefinition,
    EntityDefinition,
    GoalDefinition,
    RulesDefinition,
    GoalKind,
    EntityKindName,
    InteractionName,
)
from .validation import validate_definition, ValidationResult, PuzzleValidationError
from .builder import build_world, build_rules

__all__ = [
    "PuzzleDefinition",
    "BoardDefinition",
    "EntityDefinition",
    "GoalDefinition",
    "RulesDefinition",
    "GoalKind",
    "EntityKindName",
    "InteractionName",
    "validate_definition",
    "ValidationResult",
    "PuzzleValidationError",
    "build_world",
    "build_rules",
]
