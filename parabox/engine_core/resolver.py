"""
Move Resolver - Computes every displacement caused by a move.

The resolver is read-only: it inspects the World and returns a MovePlan,
or raises IllegalMove. Nothing is written until the caller applies the
plan through World.apply_batch().

Resolution works on a move stack. Each entry is an entity that wants to
move; its tentative destination is updated as the chain is explored:
1. Step one cell inside the current board
2. Off the edge: exit through the owning box and step again outside
3. Wall: blocked (or push the container, with the inner_push rule)
4. Occupied: try the rule set's interactions in order (push/enter/eat/possess)
5. Clone members of anything that moved get their own chains

Positions along an edge are tracked as exact fractions so that entering
and exiting boards of different sizes lands on the corresponding cell.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from fractions import Fraction

from .errors import IllegalMove
from .state import (
    Direction,
    Displacement,
    Entity,
    EntityKind,
    Interaction,
    Location,
    Pos,
    Terrain,
    World,
    Board,
)

logger = logging.getLogger(__name__)

# Every move starts from the middle of its cell
MIDDLE_POINT = Fraction(1, 2)
ONE_POINT = Fraction(1)


@dataclass
class MovePlan:
    """
    The outcome of resolving a legal move.

    Displacements are ordered tail-to-head for each push chain; clone
    replicas follow the chain that triggered them.
    """
    mover_id: str
    direction: Direction
    displacements: list[Displacement] = field(default_factory=list)
    clone_groups: list[str] = field(default_factory=list)
    # entity that takes over as the player, if the move was a possession
    possessed: str | None = None

    @property
    def entity_ids(self) -> list[str]:
        return [d.entity_id for d in self.displacements]

    def displacement_for(self, entity_id: str) -> Displacement | None:
        for d in self.displacements:
            if d.entity_id == entity_id:
                return d
        return None


@dataclass(frozen=True)
class _Probe:
    """Tentative position of a mover while its chain is explored."""
    location: Location
    direction: Direction
    flipped: bool


@dataclass
class _MoveState:
    """An entity on the move stack."""
    entity_id: str
    direction: Direction
    origin: Location
    flipped_before: bool
    location: Location
    flipped: bool
    # (board, direction, point) entries on the current descent path
    entered: set = field(default_factory=set)

    @classmethod
    def start(cls, entity: Entity, direction: Direction) -> _MoveState:
        return cls(
            entity_id=entity.entity_id,
            direction=direction,
            origin=entity.location,
            flipped_before=entity.flipped,
            location=entity.location,
            flipped=entity.flipped,
        )

    def commit(self, probe: _Probe) -> None:
        self.location = probe.location
        self.flipped = probe.flipped

    @property
    def changed(self) -> bool:
        return self.location != self.origin or self.flipped != self.flipped_before

    def to_displacement(self) -> Displacement:
        return Displacement(
            entity_id=self.entity_id,
            source=self.origin,
            target=self.location,
            flipped_before=self.flipped_before,
            flipped_after=self.flipped,
        )


def _entry_cell(board: Board, direction: Direction, point: Fraction) -> tuple[Pos, Fraction]:
    """
    Edge cell reached when entering `board` travelling in `direction`.

    Returns the cell and the remaining fractional point within it.
    """
    def take(size: int) -> int:
        nonlocal point
        scaled = point * size
        coord = min(scaled.numerator // scaled.denominator, size - 1)
        point = scaled - coord
        return coord

    if direction == Direction.DOWN:
        pos = Pos(take(board.width), 0)
    elif direction == Direction.UP:
        pos = Pos(take(board.width), board.height - 1)
    elif direction == Direction.RIGHT:
        pos = Pos(0, take(board.height))
    else:
        pos = Pos(board.width - 1, take(board.height))
    return pos, point


class _Chain:
    """A single push chain resolved against the unchanged world."""

    def __init__(self, world: World):
        self.world = world
        self.rules = world.rules
        self.stack: list[_MoveState] = []
        # entries from move_index onwards are the ones that actually move
        self.move_index = 0
        self.possessed: str | None = None

    @property
    def moving(self) -> list[_MoveState]:
        return self.stack[self.move_index:]

    def _index_of(self, entity_id: str) -> int | None:
        for i, state in enumerate(self.stack):
            if state.entity_id == entity_id:
                return i
        return None

    def try_move(self, entity_id: str, direction: Direction) -> bool:
        """Attempt to move an entity one step. True if the chain resolves."""
        i = self._index_of(entity_id)
        if i is not None:
            # Reached an entity already on the stack: a loop
            if i >= self.move_index and self.stack[i].direction == direction:
                logger.debug("Loop closed at %s (stack depth %d)", entity_id, i)
                self.move_index = i
                return True
            return False

        entity = self.world.entity(entity_id)
        state = _MoveState.start(entity, direction)
        self.stack.append(state)
        probe = _Probe(entity.location, direction, entity.flipped)
        if self._try_advance(state, probe, MIDDLE_POINT):
            return True
        self.stack.pop()
        return False

    def _try_advance(self, state: _MoveState, probe: _Probe, point: Fraction) -> bool:
        """Step from the probe's cell, exiting boards as needed."""
        board = self.world.board(probe.location.board_id)
        pos = probe.location.pos.step(probe.direction)
        if board.in_bounds(pos):
            return self._try_occupy(
                state, replace(probe, location=Location(board.board_id, pos)), point
            )

        owner = self.world.container_of(board.board_id)
        if owner is None:
            logger.debug("%s blocked by the edge of root board %s", state.entity_id, board.board_id)
            return False

        if probe.direction.is_horizontal:
            point = (point + pos.y) / board.height
        else:
            point = (point + pos.x) / board.width

        direction = probe.direction
        flipped = probe.flipped
        if owner.flipped:
            if direction.is_horizontal:
                direction = direction.opposite
            else:
                point = ONE_POINT - point
            flipped = not flipped

        outside = _Probe(owner.location, direction, flipped)
        if self._try_advance(state, outside, point):
            return True

        if self.rules.shed:
            # The mover stays where the box was; the box slides off it
            state.commit(outside)
            if self.try_move(owner.entity_id, direction.opposite):
                return True

        return False

    def _try_occupy(self, state: _MoveState, probe: _Probe, point: Fraction) -> bool:
        """Take the probe's cell, interacting with whatever is there."""
        if self.world.terrain_at(probe.location) == Terrain.WALL:
            return self._try_push_wall(state, probe)

        occupant = self.world.occupant_at(probe.location)
        if occupant is None:
            state.commit(probe)
            return True
        return self._try_interact(state, probe, occupant, point)

    def _try_interact(self, state: _MoveState, probe: _Probe, occupant: Entity, point: Fraction) -> bool:
        for interaction in self.rules.attempt_order:
            if interaction == Interaction.PUSH:
                if self._try_push(state, probe, occupant):
                    return True
            elif interaction == Interaction.ENTER:
                if any(s.entity_id == occupant.entity_id for s in self.moving):
                    # Entering something that is itself moving is not allowed
                    continue
                if self._try_enter(state, probe, occupant, point):
                    return True
            elif interaction == Interaction.EAT:
                if self._try_eat(state, probe, occupant):
                    return True
            elif interaction == Interaction.POSSESS:
                if self._try_possess(state, occupant):
                    return True
        return False

    def _try_push(self, state: _MoveState, probe: _Probe, occupant: Entity) -> bool:
        state.commit(probe)
        return self.try_move(occupant.entity_id, probe.direction)

    def _try_push_wall(self, state: _MoveState, probe: _Probe) -> bool:
        """Walls never move; with inner_push the enclosing box moves instead."""
        if not self.rules.inner_push:
            return False
        owner = self.world.container_of(probe.location.board_id)
        if owner is None:
            return False

        direction = probe.direction.mirrored() if owner.flipped else probe.direction
        # Even if the container moves, nothing pushed so far does
        saved_index = self.move_index
        self.move_index = len(self.stack)
        if self.try_move(owner.entity_id, direction):
            logger.debug("%s inner-pushed container %s", state.entity_id, owner.entity_id)
            return True
        self.move_index = saved_index
        return False

    def _try_enter(self, state: _MoveState, probe: _Probe, container: Entity, point: Fraction) -> bool:
        """
        Enter a container through the edge facing the mover.

        An InfiniteExitBlock's interior is its declared back-reference, so
        entering it lands directly on that board's edge: a constant-time
        handle lookup, never a descent through nested copies.
        """
        if not container.is_container or container.interior is None:
            return False
        board_id = container.interior
        if self.world.is_nested_in(board_id, state.entity_id):
            # A box can never end up inside itself
            return False
        board = self.world.board(board_id)

        direction = probe.direction
        flipped = probe.flipped
        if container.flipped:
            if direction.is_horizontal:
                direction = direction.opposite
            else:
                point = ONE_POINT - point
            flipped = not flipped

        key = (board_id, direction, point)
        if key in state.entered:
            logger.debug(
                "%s would descend into %s forever; treating as blocked",
                state.entity_id, board_id,
            )
            return False

        state.entered.add(key)
        try:
            pos, point = _entry_cell(board, direction, point)
            inside = _Probe(Location(board_id, pos), direction, flipped)
            if container.kind == EntityKind.INFINITE_EXIT:
                logger.debug("%s enters infinite exit %s -> %s", state.entity_id, container.entity_id, board_id)
            return self._try_occupy(state, inside, point)
        finally:
            state.entered.discard(key)

    def _try_eat(self, state: _MoveState, probe: _Probe, occupant: Entity) -> bool:
        """
        The mover (a box) takes the occupant's cell while the occupant
        enters the mover from the opposite side.
        """
        eater = self.world.entity(state.entity_id)
        if eater.kind != EntityKind.BOX:
            return False
        if self._index_of(occupant.entity_id) is not None:
            return False

        state.commit(probe)

        direction = probe.direction.opposite
        flipped = occupant.flipped
        if probe.flipped != eater.flipped:
            # The eater gets mirrored on its way here, so the eaten one does too
            direction = direction.mirrored()
            flipped = not flipped

        eaten = _MoveState.start(occupant, direction)
        self.stack.append(eaten)
        if self._try_enter(eaten, _Probe(occupant.location, direction, flipped), eater, MIDDLE_POINT):
            return True
        self.stack.pop()
        return False

    def _try_possess(self, state: _MoveState, occupant: Entity) -> bool:
        """Only the current player can possess; nothing moves."""
        if state.entity_id != self.world.player_id:
            return False
        if not occupant.possessable or occupant.entity_id == self.world.player_id:
            return False
        self.possessed = occupant.entity_id
        self.move_index = len(self.stack)
        logger.debug("%s possesses %s", state.entity_id, occupant.entity_id)
        return True


class MoveResolver:
    """
    Resolves a move into a MovePlan without touching the world.

    Usage:
        resolver = MoveResolver(world)
        plan = resolver.resolve_player(Direction.LEFT)  # raises IllegalMove
        world.apply_batch(plan.displacements)
    """

    def __init__(self, world: World):
        self.world = world

    def resolve_player(self, direction: Direction) -> MovePlan:
        player = self.world.player
        if player is None:
            raise IllegalMove("There is no player to move")
        return self.resolve(player.entity_id, direction)

    def resolve(self, entity_id: str, direction: Direction) -> MovePlan:
        """Compute the full plan for moving `entity_id` in `direction`."""
        if entity_id not in self.world.entities:
            raise IllegalMove(f"Unknown entity: {entity_id}", entity_id=entity_id)

        chain = _Chain(self.world)
        if not chain.try_move(entity_id, direction):
            raise IllegalMove(
                f"{entity_id} cannot move {direction.value}",
                entity_id=entity_id,
            )

        planned: dict[str, _MoveState] = {}
        order: list[_MoveState] = []
        self._merge(chain, planned, order)
        groups = self._replicate_clones(planned, order)
        displacements = self._validate(planned, order)
        if not displacements and chain.possessed is None:
            # e.g. walking through an infinite exit straight back onto the same cell
            raise IllegalMove(
                f"Moving {entity_id} {direction.value} would not change anything",
                entity_id=entity_id,
            )

        logger.debug(
            "Resolved %s %s: %d displacement(s), clone groups %s",
            entity_id, direction.value, len(displacements), groups,
        )
        return MovePlan(
            mover_id=entity_id,
            direction=direction,
            displacements=displacements,
            clone_groups=groups,
            possessed=chain.possessed,
        )

    def _merge(self, chain: _Chain, planned: dict[str, _MoveState], order: list[_MoveState]) -> None:
        """Add a chain's moving entries (tail first) to the plan."""
        for state in reversed(chain.moving):
            existing = planned.get(state.entity_id)
            if existing is not None:
                if existing.location != state.location or existing.flipped != state.flipped:
                    raise IllegalMove(
                        f"{state.entity_id} would be moved to two places at once",
                        entity_id=state.entity_id,
                    )
                continue
            planned[state.entity_id] = state
            order.append(state)

    def _replicate_clones(self, planned: dict[str, _MoveState], order: list[_MoveState]) -> list[str]:
        """
        Give every clone of a moved entity its own chain in the same
        direction. Runs until no new clone group is touched.
        """
        groups: list[str] = []
        i = 0
        while i < len(order):
            state = order[i]
            i += 1
            group = self.world.entity(state.entity_id).clone_group
            if group is None or group in groups:
                continue
            groups.append(group)

            for member_id in self.world.clone_groups.get(group, []):
                if member_id in planned:
                    continue
                chain = _Chain(self.world)
                if not chain.try_move(member_id, state.direction):
                    raise IllegalMove(
                        f"Clone {member_id} cannot follow {state.entity_id} {state.direction.value}",
                        entity_id=member_id,
                        context={"clone_group": group},
                    )
                self._merge(chain, planned, order)
        return groups

    def _validate(self, planned: dict[str, _MoveState], order: list[_MoveState]) -> list[Displacement]:
        """Check the merged plan as a whole before anything is written."""
        targets: dict[Location, str] = {}
        for state in order:
            other = targets.get(state.location)
            if other is not None:
                raise IllegalMove(
                    f"{state.entity_id} and {other} would both end at {state.location}",
                    entity_id=state.entity_id,
                )
            targets[state.location] = state.entity_id

            occupant = self.world.occupant_at(state.location)
            if occupant is not None and occupant.entity_id not in planned:
                raise IllegalMove(
                    f"{state.location} stays occupied by {occupant.entity_id}",
                    entity_id=state.entity_id,
                )

        return [state.to_displacement() for state in order if state.changed]
