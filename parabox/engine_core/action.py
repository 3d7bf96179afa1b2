"""
Command System - Commands accepted by the engine and their results.

Commands:
1. Move the player in a direction
2. Undo the last move (or restart)
3. Restart from the initial state
4. Debug dump (read-only)

All world changes flow through commands.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import InvalidCommand
from .state import Direction, Displacement


class CommandType(Enum):
    """Types of commands in the system."""
    MOVE = "move"
    UNDO = "undo"
    RESTART = "restart"
    DEBUG = "debug"


class Outcome(Enum):
    """What happened to the world."""
    APPLIED = "applied"
    ILLEGAL = "illegal"  # no state change
    WON = "won"  # applied, and every goal is satisfied


_ALIASES = {
    "undo": CommandType.UNDO,
    "z": CommandType.UNDO,
    "restart": CommandType.RESTART,
    "r": CommandType.RESTART,
    "debug": CommandType.DEBUG,
    "p": CommandType.DEBUG,
}

_LETTER_DIRECTIONS = {
    "U": Direction.UP,
    "D": Direction.DOWN,
    "L": Direction.LEFT,
    "R": Direction.RIGHT,
}


@dataclass(frozen=True)
class Command:
    """A single command from the boundary."""
    command_type: CommandType
    direction: Direction | None = None

    @classmethod
    def move(cls, direction: Direction | str) -> Command:
        """Factory for move command."""
        if isinstance(direction, str):
            direction = Direction.parse(direction)
        return cls(command_type=CommandType.MOVE, direction=direction)

    @classmethod
    def undo(cls) -> Command:
        return cls(command_type=CommandType.UNDO)

    @classmethod
    def restart(cls) -> Command:
        return cls(command_type=CommandType.RESTART)

    @classmethod
    def debug(cls) -> Command:
        return cls(command_type=CommandType.DEBUG)

    @classmethod
    def parse(cls, text: str) -> Command:
        """
        Parse a command word.

        Accepts directions (up/down/left/right or U/D/L/R), undo/z,
        restart/r and debug/p. Single letters are case-sensitive so that
        "R" (right) and "r" (restart) stay distinct. Raises InvalidCommand
        otherwise.
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidCommand(f"Empty command: {text!r}")
        word = text.strip()
        if len(word) == 1:
            if word in _LETTER_DIRECTIONS:
                return cls.move(_LETTER_DIRECTIONS[word])
            if word in _ALIASES:
                return cls(command_type=_ALIASES[word])
            raise InvalidCommand(f"Unknown command: {text!r}")
        key = word.lower()
        if key in _ALIASES:
            return cls(command_type=_ALIASES[key])
        if not _is_direction_word(key):
            raise InvalidCommand(f"Unknown command: {text!r}")
        return cls.move(Direction.parse(key))

    @classmethod
    def parse_sequence(cls, text: str) -> list[Command]:
        """
        Parse a sequence such as "RRUL z" or "right,right,undo".

        Whitespace and commas separate words; a run of single letters
        is read one command per letter.
        """
        commands = []
        for word in text.replace(",", " ").split():
            if len(word) > 1 and word.lower() not in _ALIASES and not _is_direction_word(word):
                commands.extend(cls.parse(letter) for letter in word)
            else:
                commands.append(cls.parse(word))
        return commands

    def __str__(self):
        if self.command_type == CommandType.MOVE:
            if self.direction is None:
                return "move"
            return f"move {self.direction.value}"
        return self.command_type.value


def _is_direction_word(word: str) -> bool:
    return word.lower() in {d.value for d in Direction}


@dataclass
class CommandResult:
    """
    Result of applying a command.

    Contains:
    - The outcome (applied / illegal / won)
    - The displacements actually applied (empty when illegal)
    - Errors, with a machine-readable code
    """
    outcome: Outcome
    command: Command | None = None
    displacements: list[Displacement] = field(default_factory=list)
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def applied(self) -> bool:
        return self.outcome in (Outcome.APPLIED, Outcome.WON)

    @property
    def won(self) -> bool:
        return self.outcome == Outcome.WON

    @classmethod
    def illegal(cls, command: Command | None, error: str, error_code: str) -> CommandResult:
        """Create a rejection result."""
        return cls(
            outcome=Outcome.ILLEGAL,
            command=command,
            error=error,
            error_code=error_code,
        )

    @classmethod
    def applied_with(
        cls,
        command: Command,
        won: bool,
        displacements: list[Displacement] | None = None,
        details: dict[str, Any] | None = None,
    ) -> CommandResult:
        """Create a success result."""
        return cls(
            outcome=Outcome.WON if won else Outcome.APPLIED,
            command=command,
            displacements=displacements or [],
            details=details or {},
        )
