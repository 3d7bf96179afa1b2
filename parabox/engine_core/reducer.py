"""
Reducer - Applies commands to the world.

The reducer is the single entry point for world changes.
All commands go through apply().

Design principles:
- Validate before applying: moves are fully resolved read-only first
- Returns CommandResult with outcome and errors
- IllegalMove / InvalidCommand become ILLEGAL results, never partial moves
- OccupiedCellError is a resolver bug and propagates
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field

from .action import Command, CommandResult, CommandType
from .errors import IllegalMove, InvalidCommand
from .history import History
from .resolver import MoveResolver
from .state import World
from .win import WinEvaluator

logger = logging.getLogger(__name__)


@dataclass
class Reducer:
    """
    Reducer applies commands to a world.

    Holds the history for that world; the world itself is passed in
    explicitly on each call.
    """
    history: History
    evaluator: WinEvaluator = field(default_factory=WinEvaluator)

    def apply(self, world: World, command: Command) -> CommandResult:
        """
        Apply a command to the world.

        Returns CommandResult with outcome or error.
        """
        handler = self._get_handler(command.command_type)
        if not handler:
            return CommandResult.illegal(
                command,
                f"No handler for command type: {command.command_type}",
                error_code="INVALID_COMMAND",
            )

        try:
            result = handler(world, command)
        except IllegalMove as e:
            logger.debug("Rejected %s: %s", command, e)
            return CommandResult.illegal(command, str(e), error_code="ILLEGAL_MOVE")
        except InvalidCommand as e:
            logger.warning("Invalid command %s: %s", command, e)
            return CommandResult.illegal(command, str(e), error_code="INVALID_COMMAND")

        if result.applied:
            logger.info("Applied %s -> %s", command, result.outcome.value)
        return result

    def apply_text(self, world: World, text: str) -> CommandResult:
        """Parse and apply a command word (see Command.parse)."""
        try:
            command = Command.parse(text)
        except InvalidCommand as e:
            logger.warning("Invalid command %r: %s", text, e)
            return CommandResult.illegal(None, str(e), error_code="INVALID_COMMAND")
        return self.apply(world, command)

    def _get_handler(self, command_type: CommandType):
        """Get the handler function for a command type."""
        handlers = {
            CommandType.MOVE: self._handle_move,
            CommandType.UNDO: self._handle_undo,
            CommandType.RESTART: self._handle_restart,
            CommandType.DEBUG: self._handle_debug,
        }
        return handlers.get(command_type)

    def _handle_move(self, world: World, command: Command) -> CommandResult:
        if command.direction is None:
            raise InvalidCommand("Move command without a direction")

        plan = MoveResolver(world).resolve_player(command.direction)
        previous_player = world.player_id
        world.apply_batch(plan.displacements)
        if plan.possessed is not None:
            world.player_id = plan.possessed
            logger.info("Control passes from %s to %s", previous_player, plan.possessed)
        self.history.record_move(plan, previous_player=previous_player)

        return CommandResult.applied_with(
            command,
            won=self.evaluator.is_won(world),
            displacements=plan.displacements,
            details={"clone_groups": plan.clone_groups, "possessed": plan.possessed},
        )

    def _handle_undo(self, world: World, command: Command) -> CommandResult:
        if not self.history.undo(world):
            return CommandResult.illegal(command, "Nothing to undo", error_code="NOTHING_TO_UNDO")
        return CommandResult.applied_with(command, won=self.evaluator.is_won(world))

    def _handle_restart(self, world: World, command: Command) -> CommandResult:
        self.history.restart(world)
        return CommandResult.applied_with(command, won=self.evaluator.is_won(world))

    def _handle_debug(self, world: World, command: Command) -> CommandResult:
        """Read-only: reports the dump without changing the world."""
        return CommandResult.applied_with(
            command,
            won=self.evaluator.is_won(world),
            details={"dump": world.debug_dump()},
        )


def apply_command(world: World, history: History, command: Command) -> CommandResult:
    """
    Convenience function to apply a command.

    Creates a Reducer over the given history and applies the command.
    """
    reducer = Reducer(history=history)
    return reducer.apply(world, command)
