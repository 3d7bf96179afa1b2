"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between clients and the engine.
The request body for creating a session is the PuzzleDefinition itself.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has ended
- INVALID_PUZZLE: Puzzle definition failed validation
- INVALID_COMMAND: Command word could not be parsed
- SESSION_LIMIT: Too many sessions are open
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    ACTIVE = "active"
    WON = "won"
    ENDED = "ended"


class CommandOutcome(str, Enum):
    """What a command did to the world."""
    APPLIED = "applied"
    ILLEGAL = "illegal"
    WON = "won"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVALID_PUZZLE = "INVALID_PUZZLE"
    INVALID_COMMAND = "INVALID_COMMAND"
    SESSION_LIMIT = "SESSION_LIMIT"


# =============================================================================
# Nested Models
# =============================================================================

class GoalInfo(BaseModel):
    """A goal cell on a board."""
    x: int
    y: int
    kind: str = Field(..., description="player_goal or block_goal")
    color: Optional[str] = None


class BoardInfo(BaseModel):
    """A board with its static terrain."""
    board_id: str
    width: int
    height: int
    owner_id: Optional[str] = Field(None, description="Box owning this board; null for the root")
    walls: list[tuple[int, int]] = Field(default_factory=list)
    goals: list[GoalInfo] = Field(default_factory=list)


class EntityInfo(BaseModel):
    """An entity and where it currently is."""
    entity_id: str
    kind: str
    board_id: str
    x: int
    y: int
    color: Optional[str] = None
    flipped: bool = False
    interior: Optional[str] = None
    clone_group: Optional[str] = None
    possessable: bool = False


class WorldSnapshot(BaseModel):
    """Read-only view of the world for rendering."""
    root_id: str
    player_id: Optional[str] = None
    boards: list[BoardInfo] = Field(default_factory=list)
    entities: list[EntityInfo] = Field(default_factory=list)
    clone_groups: dict[str, list[str]] = Field(default_factory=dict)


class DisplacementInfo(BaseModel):
    """One entity relocation caused by a move."""
    entity_id: str
    from_board: str
    from_x: int
    from_y: int
    to_board: str
    to_x: int
    to_y: int
    flipped: bool = Field(False, description="Flipped state after the move")


# =============================================================================
# Requests
# =============================================================================

class CommandRequest(BaseModel):
    """A single command word."""
    command: str = Field(
        ...,
        min_length=1,
        description="up/down/left/right, U/D/L/R, undo/z, restart/r or debug/p",
    )


# =============================================================================
# Responses
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class SessionResponse(BaseModel):
    """Session status with a world snapshot."""
    session_id: str
    name: str
    status: SessionStatus
    move_count: int = 0
    won: bool = False
    goals_satisfied: int = 0
    goals_total: int = 0
    world: WorldSnapshot
    warnings: list[str] = Field(default_factory=list)
    api_version: str = "v1"


class CommandResponse(BaseModel):
    """Result of one command."""
    session_id: str
    command: Optional[str] = Field(None, description="Normalized command, when it parsed")
    outcome: CommandOutcome
    status: SessionStatus
    displacements: list[DisplacementInfo] = Field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = Field(
        None, description="ILLEGAL_MOVE, INVALID_COMMAND or NOTHING_TO_UNDO"
    )
    clone_groups: list[str] = Field(default_factory=list)
    possessed: Optional[str] = Field(None, description="Entity that became the player on this move")
    move_count: int = 0
    world: WorldSnapshot
    api_version: str = "v1"


class DebugResponse(BaseModel):
    """Text dump of every board and entity."""
    session_id: str
    dump: str


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    environment: str
    active_sessions: int = 0
