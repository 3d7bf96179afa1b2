"""
Engine errors.

IllegalMove and InvalidCommand are recoverable: the command is rejected and
the world is left untouched. OccupiedCellError signals a resolver bug and is
never converted into a user-facing result.
"""

from __future__ import annotations
from typing import Any


class ParaboxError(Exception):
    """Base error carrying optional structured context."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class IllegalMove(ParaboxError):
    """A push chain is blocked by a wall, an edge, or an occupant."""

    def __init__(self, message: str, entity_id: str | None = None, **kwargs):
        context = kwargs.pop("context", {})
        if entity_id:
            context["entity_id"] = entity_id
        super().__init__(message, context=context)


class OccupiedCellError(ParaboxError):
    """A primitive write would put two occupants in one cell."""

    def __init__(self, message: str, location: Any = None, **kwargs):
        context = kwargs.pop("context", {})
        if location is not None:
            context["location"] = str(location)
        super().__init__(message, context=context)


class InvalidCommand(ParaboxError):
    """Unsupported command or direction from the boundary."""
