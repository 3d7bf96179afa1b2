"""
State History - Undo and restart.

Applied moves are stored as diffs (the plan's displacements); undoing
applies the inverse batch atomically, so a move with clone replicas is
reverted as one unit, and undoing a possession hands control back to
the previous player. Restarts are stored as full snapshots, which makes
a restart itself undoable.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field

from .resolver import MovePlan
from .state import Direction, Displacement, World

logger = logging.getLogger(__name__)


@dataclass
class MoveRecord:
    """One applied move."""
    mover_id: str
    direction: Direction
    displacements: list[Displacement] = field(default_factory=list)
    possessed: str | None = None
    previous_player: str | None = None

    def inverse(self) -> list[Displacement]:
        return [d.inverted() for d in reversed(self.displacements)]


@dataclass
class RestartRecord:
    """A restart, with the world as it was before it."""
    snapshot: World


@dataclass
class History:
    """
    Unbounded undo history anchored at the initial world.

    Usage:
        history = History.start(world)
        world.apply_batch(plan.displacements)
        history.record_move(plan)
        history.undo(world)  # world is back to the pre-move state
    """
    initial: World
    entries: list[MoveRecord | RestartRecord] = field(default_factory=list)

    @classmethod
    def start(cls, world: World) -> History:
        return cls(initial=world.clone())

    def __len__(self):
        return len(self.entries)

    @property
    def can_undo(self) -> bool:
        return bool(self.entries)

    @property
    def move_count(self) -> int:
        return sum(1 for entry in self.entries if isinstance(entry, MoveRecord))

    def record_move(self, plan: MovePlan, previous_player: str | None = None) -> MoveRecord:
        record = MoveRecord(
            mover_id=plan.mover_id,
            direction=plan.direction,
            displacements=list(plan.displacements),
            possessed=plan.possessed,
            previous_player=previous_player,
        )
        self.entries.append(record)
        return record

    def record_restart(self, world: World) -> RestartRecord:
        record = RestartRecord(snapshot=world.clone())
        self.entries.append(record)
        return record

    def undo(self, world: World) -> bool:
        """Revert the latest entry in place. False if there is nothing to undo."""
        if not self.entries:
            return False
        entry = self.entries.pop()
        if isinstance(entry, MoveRecord):
            world.apply_batch(entry.inverse())
            if entry.possessed is not None:
                world.player_id = entry.previous_player
            logger.debug("Undid %s %s", entry.mover_id, entry.direction.value)
        else:
            _restore(world, entry.snapshot)
            logger.debug("Undid restart")
        return True

    def restart(self, world: World) -> None:
        """Reset the world to the initial snapshot (recorded, so undoable)."""
        self.record_restart(world)
        _restore(world, self.initial)


def _restore(world: World, snapshot: World) -> None:
    """Overwrite `world` in place with a copy of `snapshot`."""
    fresh = snapshot.clone()
    world.root_id = fresh.root_id
    world.boards = fresh.boards
    world.entities = fresh.entities
    world.clone_groups = fresh.clone_groups
    world.player_id = fresh.player_id
    world.rules = fresh.rules
