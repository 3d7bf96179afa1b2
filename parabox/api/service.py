"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to session/engine calls
2. Manages sessions
3. Formats worlds and command results as response models

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
Every method returns a response model or an ErrorResponse; nothing raises
for user-caused failures.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from ..engine_core import CommandResult, Displacement, World
from ..puzzle_schema import PuzzleDefinition, PuzzleValidationError, validate_definition
from ..session import PuzzleSession, SessionLimitError, SessionManager
from .schemas import (
    CommandOutcome,
    CommandResponse,
    DebugResponse,
    DisplacementInfo,
    ErrorCode,
    ErrorResponse,
    SessionResponse,
    SessionStatus,
    WorldSnapshot,
)

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()
        response = service.create_session(definition)
        result = service.submit_command(response.session_id, "left")
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    def create_session(self, definition: PuzzleDefinition) -> SessionResponse | ErrorResponse:
        """Validate a definition and open a session for it."""
        try:
            session = self.session_manager.create_session(definition)
        except PuzzleValidationError as e:
            return ErrorResponse(
                error=str(e),
                error_code=ErrorCode.INVALID_PUZZLE,
                details={"errors": e.errors},
            )
        except SessionLimitError as e:
            return ErrorResponse(
                error=str(e),
                error_code=ErrorCode.SESSION_LIMIT,
                details=e.context,
            )

        warnings = validate_definition(definition).warnings
        return self._session_to_response(session, warnings=warnings)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if session is None:
            return self._not_found(session_id)
        return self._session_to_response(session)

    def submit_command(self, session_id: str, command: str) -> CommandResponse | ErrorResponse:
        """
        Apply one command word to a session.

        Illegal moves are not errors: they come back as a CommandResponse
        with outcome "illegal". Only unparseable commands become an
        INVALID_COMMAND error.
        """
        session = self.session_manager.get_session(session_id)
        if session is None:
            return self._not_found(session_id)

        result = session.submit(command)
        if result.error_code == "INVALID_COMMAND":
            return ErrorResponse(
                error=result.error or f"Invalid command: {command!r}",
                error_code=ErrorCode.INVALID_COMMAND,
                details={"command": command},
            )
        return self._result_to_response(session, result)

    def debug_dump(self, session_id: str) -> DebugResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if session is None:
            return self._not_found(session_id)
        return DebugResponse(session_id=session_id, dump=session.world.debug_dump())

    def end_session(self, session_id: str) -> bool:
        return self.session_manager.end_session(session_id)

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # Conversion helpers
    # =========================================================================

    def _not_found(self, session_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Session not found: {session_id}",
            error_code=ErrorCode.SESSION_NOT_FOUND,
            details={"session_id": session_id},
        )

    def _session_to_response(self, session: PuzzleSession, warnings: list[str] | None = None) -> SessionResponse:
        report = session.reducer.evaluator.evaluate(session.world)
        return SessionResponse(
            session_id=session.session_id,
            name=session.name,
            status=SessionStatus(session.status.value),
            move_count=session.move_count,
            won=report.won,
            goals_satisfied=len(report.satisfied),
            goals_total=report.total,
            world=world_snapshot(session.world),
            warnings=warnings or [],
        )

    def _result_to_response(self, session: PuzzleSession, result: CommandResult) -> CommandResponse:
        return CommandResponse(
            session_id=session.session_id,
            command=str(result.command) if result.command else None,
            outcome=CommandOutcome(result.outcome.value),
            status=SessionStatus(session.status.value),
            displacements=[_displacement_info(d) for d in result.displacements],
            error=result.error,
            error_code=result.error_code,
            clone_groups=result.details.get("clone_groups", []),
            possessed=result.details.get("possessed"),
            move_count=session.move_count,
            world=world_snapshot(session.world),
        )


def world_snapshot(world: World) -> WorldSnapshot:
    return WorldSnapshot.model_validate(world.to_dict())


def _displacement_info(d: Displacement) -> DisplacementInfo:
    return DisplacementInfo(
        entity_id=d.entity_id,
        from_board=d.source.board_id,
        from_x=d.source.pos.x,
        from_y=d.source.pos.y,
        to_board=d.target.board_id,
        to_x=d.target.pos.x,
        to_y=d.target.pos.y,
        flipped=d.flipped_after,
    )
