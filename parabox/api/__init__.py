"""
API Module - HTTP interface over puzzle sessions.

Clients:
1. Create a session from a puzzle definition
2. Submit commands one at a time
3. Read world snapshots and debug dumps
4. End the session

All state is session-scoped and in memory.
"""

from .schemas import (
    # Requests
    CommandRequest,
    # Responses
    SessionResponse,
    CommandResponse,
    DebugResponse,
    SessionListResponse,
    EndSessionResponse,
    HealthResponse,
    ErrorResponse,
    # Shared
    WorldSnapshot,
    BoardInfo,
    EntityInfo,
    GoalInfo,
    DisplacementInfo,
    # Enums
    ErrorCode,
    SessionStatus,
    CommandOutcome,
)
from .service import APIService, world_snapshot
from .app import create_app

__all__ = [
    # Requests
    "CommandRequest",
    # Responses
    "SessionResponse",
    "CommandResponse",
    "DebugResponse",
    "SessionListResponse",
    "EndSessionResponse",
    "HealthResponse",
    "ErrorResponse",
    # Shared
    "WorldSnapshot",
    "BoardInfo",
    "EntityInfo",
    "GoalInfo",
    "DisplacementInfo",
    # Enums
    "ErrorCode",
    "SessionStatus",
    "CommandOutcome",
    # Service
    "APIService",
    "world_snapshot",
    "create_app",
]
