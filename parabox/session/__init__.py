"""
Session Module - Manages in-memory puzzle sessions.

A session represents one play-through of a puzzle:
- Created from a validated puzzle definition
- Holds its own World, History and Reducer
- Destroyed when ended

Sessions are EPHEMERAL: nothing is persisted.
"""

from .manager import SessionManager, PuzzleSession, SessionStatus, SessionLimitError

__all__ = [
    "SessionManager",
    "PuzzleSession",
    "SessionStatus",
    "SessionLimitError",
]
