"""
Session Manager - Creates and manages puzzle sessions.

LIFECYCLE:
1. Client submits a puzzle definition -> validated and built into a World
2. Session is created in memory with its own History and Reducer
3. Commands are submitted one at a time, each applied to completion
4. Session ends (explicitly, or when the manager drops it) -> state deleted

PERSISTENCE RULES:
- No database; sessions live in memory only
- Sessions are independent: no World is ever shared between two sessions
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import logging
import time
import uuid

from ..engine_core import Command, CommandResult, History, Reducer, World
from ..engine_core.errors import ParaboxError
from ..puzzle_schema import PuzzleDefinition, build_world

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    """State of a puzzle session."""
    ACTIVE = "active"
    WON = "won"  # every goal satisfied; undo/restart may reactivate
    ENDED = "ended"


class SessionLimitError(ParaboxError):
    """Raised when the manager is already holding max_sessions sessions."""


@dataclass
class PuzzleSession:
    """
    One play-through of one puzzle.

    Owns its World explicitly; the reducer never holds world state of its
    own beyond the undo history.
    """
    session_id: str
    world: World
    history: History
    reducer: Reducer
    name: str = "untitled"
    status: SessionStatus = SessionStatus.ACTIVE
    created_at: float = field(default_factory=time.time)

    def is_active(self) -> bool:
        return self.status != SessionStatus.ENDED

    @property
    def move_count(self) -> int:
        return self.history.move_count

    def submit(self, command: Command | str) -> CommandResult:
        """Apply one command (or command word) and update the status."""
        if self.status == SessionStatus.ENDED:
            raise ParaboxError(f"Session {self.session_id} has ended")

        if isinstance(command, str):
            result = self.reducer.apply_text(self.world, command)
        else:
            result = self.reducer.apply(self.world, command)

        if result.applied:
            self.status = SessionStatus.WON if result.won else SessionStatus.ACTIVE
        return result


class SessionManager:
    """
    Manages puzzle sessions.

    Responsibilities:
    - Create sessions from puzzle definitions
    - Track active sessions, capped by max_sessions
    - Remove ended sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(self, max_sessions: int = 100):
        self.max_sessions = max_sessions
        self._sessions: dict[str, PuzzleSession] = {}

    def __len__(self):
        return len(self._sessions)

    def create_session(self, definition: PuzzleDefinition) -> PuzzleSession:
        """
        Create a new session from a definition.

        Raises:
            PuzzleValidationError: the definition is malformed
            SessionLimitError: max_sessions is reached
        """
        if len(self._sessions) >= self.max_sessions:
            logger.warning("Session limit of %d reached", self.max_sessions)
            raise SessionLimitError(
                f"Session limit of {self.max_sessions} reached",
                context={"max_sessions": self.max_sessions},
            )

        world = build_world(definition)
        history = History.start(world)
        session = PuzzleSession(
            session_id=str(uuid.uuid4()),
            world=world,
            history=history,
            reducer=Reducer(history=history),
            name=definition.name,
        )
        # A definition may start out solved
        if session.reducer.evaluator.is_won(world):
            session.status = SessionStatus.WON

        self._sessions[session.session_id] = session
        logger.info("Created session %s for puzzle '%s'", session.session_id, definition.name)
        return session

    def get_session(self, session_id: str) -> PuzzleSession | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def end_session(self, session_id: str) -> bool:
        """
        End a session and drop it from memory.

        Returns False if the session did not exist.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.status = SessionStatus.ENDED
        logger.info("Ended session %s after %d move(s)", session_id, session.move_count)
        return True

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """End sessions older than max_age. Returns how many were removed."""
        now = time.time()
        stale = [
            sid for sid, session in self._sessions.items()
            if now - session.created_at > max_age_seconds
        ]
        for session_id in stale:
            self.end_session(session_id)
        return len(stale)
