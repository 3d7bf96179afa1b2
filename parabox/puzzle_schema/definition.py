"""
Puzzle Definition - The static, fully-resolved description of a puzzle.

An external parser (text level format, editor, etc.) fills these models
in; the engine builds a World from them with build_world(). All models are
pydantic so definitions can also be loaded from JSON.
"""

from __future__ import annotations
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class GoalKind(str, Enum):
    """Goal floor types."""
    PLAYER = "player"
    BLOCK = "block"


class EntityKindName(str, Enum):
    """Entity variants as written in a definition."""
    PLAYER = "player"
    BLOCK = "block"
    BOX = "box"
    INFINITE_EXIT = "infinite_exit"


class InteractionName(str, Enum):
    """Interactions for the attempt order."""
    PUSH = "push"
    ENTER = "enter"
    EAT = "eat"
    POSSESS = "possess"


class GoalDefinition(BaseModel):
    """A goal floor on a board."""
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    kind: GoalKind
    color: Optional[str] = Field(None, description="Block goals only; omit to accept any block")


class BoardDefinition(BaseModel):
    """A board with its static terrain."""
    id: str = Field(..., min_length=1)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    walls: list[tuple[int, int]] = Field(default_factory=list)
    goals: list[GoalDefinition] = Field(default_factory=list)


class EntityDefinition(BaseModel):
    """An entity and where it starts."""
    id: str = Field(..., min_length=1)
    kind: EntityKindName
    board: str
    x: int
    y: int
    color: Optional[str] = None
    flipped: bool = False
    interior: Optional[str] = Field(
        None,
        description="Box: the board it owns. Infinite exit: the board it loops back to.",
    )
    clone_group: Optional[str] = None
    possessable: bool = Field(False, description="The player takes control of it by walking into it")


class RulesDefinition(BaseModel):
    """Per-puzzle resolution rules."""
    attempt_order: list[InteractionName] = Field(
        default_factory=lambda: [
            InteractionName.PUSH,
            InteractionName.ENTER,
            InteractionName.EAT,
            InteractionName.POSSESS,
        ],
        min_length=1,
    )
    shed: bool = False
    inner_push: bool = False


class PuzzleDefinition(BaseModel):
    """
    A complete puzzle.

    Example (JSON):
        {
            "name": "first push",
            "root": "main",
            "boards": [{"id": "main", "width": 3, "height": 1,
                        "goals": [{"x": 2, "y": 0, "kind": "block"}]}],
            "entities": [
                {"id": "p", "kind": "player", "board": "main", "x": 0, "y": 0},
                {"id": "b", "kind": "block", "board": "main", "x": 1, "y": 0}
            ]
        }
    """
    name: str = "untitled"
    root: str
    boards: list[BoardDefinition] = Field(..., min_length=1)
    entities: list[EntityDefinition] = Field(default_factory=list)
    rules: RulesDefinition = Field(default_factory=RulesDefinition)

    @classmethod
    def from_json_file(cls, path: str | Path) -> PuzzleDefinition:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def board_by_id(self, board_id: str) -> BoardDefinition | None:
        for board in self.boards:
            if board.id == board_id:
                return board
        return None
