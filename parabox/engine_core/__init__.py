"""
Engine Core - Recursive world model and move resolution.

The engine is the runtime that:
1. Holds the World (boards, entities, clone groups)
2. Resolves moves into atomic displacement plans
3. Records history for undo/restart
4. Evaluates goals after each move
"""

from .state import (
    World,
    Board,
    Entity,
    EntityKind,
    Terrain,
    Direction,
    Pos,
    Location,
    Goal,
    PathStep,
    Displacement,
    RuleSet,
    Interaction,
)
from .errors import ParaboxError, IllegalMove, OccupiedCellError, InvalidCommand
from .resolver import MoveResolver, MovePlan
from .history import History, MoveRecord, RestartRecord
from .win import WinEvaluator, WinReport
from .action import Command, CommandType, CommandResult, Outcome
from .reducer import Reducer, apply_command

__all__ = [
    "World",
    "Board",
    "Entity",
    "EntityKind",
    "Terrain",
    "Direction",
    "Pos",
    "Location",
    "Goal",
    "PathStep",
    "Displacement",
    "RuleSet",
    "Interaction",
    "ParaboxError",
    "IllegalMove",
    "OccupiedCellError",
    "InvalidCommand",
    "MoveResolver",
    "MovePlan",
    "History",
    "MoveRecord",
    "RestartRecord",
    "WinEvaluator",
    "WinReport",
    "Command",
    "CommandType",
    "CommandResult",
    "Outcome",
    "Reducer",
    "apply_command",
]
