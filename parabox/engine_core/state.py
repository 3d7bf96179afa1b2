"""
World State - The recursive spatial model.

Design principles:
- Arena storage: boards and entities are keyed by string handles
- Cells store entity ids; boxes store the handle of their interior board
- A board records the box that owns it (None for the root board)
- Containment is a tree; only InfiniteExitBlocks point back up the tree
- Mutation happens only through apply_batch(), which validates first
"""

from __future__ import annotations
import logging
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from .errors import InvalidCommand, OccupiedCellError

logger = logging.getLogger(__name__)


class Direction(Enum):
    """Cardinal move directions. y grows downwards."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def delta(self) -> tuple[int, int]:
        return _DELTAS[self]

    @property
    def opposite(self) -> Direction:
        return _OPPOSITES[self]

    @property
    def is_horizontal(self) -> bool:
        return self in (Direction.LEFT, Direction.RIGHT)

    def mirrored(self) -> Direction:
        """Swap left and right; vertical directions are unchanged."""
        return self.opposite if self.is_horizontal else self

    @classmethod
    def parse(cls, value: str) -> Direction:
        """Parse a direction name or its one-letter form (U/D/L/R)."""
        key = value.strip().lower()
        for direction in cls:
            if key == direction.value or key == direction.value[0]:
                return direction
        raise InvalidCommand(f"Unknown direction: {value!r}")


_DELTAS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}

_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}


class Terrain(Enum):
    """Static cell terrain. Goal tags are independent of occupancy."""
    EMPTY = "empty"
    WALL = "wall"
    PLAYER_GOAL = "player_goal"
    BLOCK_GOAL = "block_goal"

    @property
    def is_goal(self) -> bool:
        return self in (Terrain.PLAYER_GOAL, Terrain.BLOCK_GOAL)


class EntityKind(Enum):
    """Entity variants."""
    PLAYER = "player"
    BLOCK = "block"
    BOX = "box"
    INFINITE_EXIT = "infinite_exit"


class Interaction(Enum):
    """Ways a mover can deal with an occupied target cell."""
    PUSH = "push"
    ENTER = "enter"
    EAT = "eat"
    POSSESS = "possess"


@dataclass(frozen=True)
class RuleSet:
    """Per-puzzle rules governing move resolution."""
    attempt_order: tuple[Interaction, ...] = (
        Interaction.PUSH,
        Interaction.ENTER,
        Interaction.EAT,
        Interaction.POSSESS,
    )
    shed: bool = False  # blocked exit: the container slides back instead
    inner_push: bool = False  # pushing an inner wall pushes the container


@dataclass(frozen=True)
class Pos:
    """Cell coordinates within a board."""
    x: int
    y: int

    def step(self, direction: Direction) -> Pos:
        dx, dy = direction.delta
        return Pos(self.x + dx, self.y + dy)

    def __str__(self):
        return f"({self.x}, {self.y})"


@dataclass(frozen=True)
class Location:
    """A cell address: (board-id, x, y)."""
    board_id: str
    pos: Pos

    def __str__(self):
        return f"{self.board_id}{self.pos}"


@dataclass
class Entity:
    """
    A positioned entity.

    For BOX, `interior` is the handle of the board it owns.
    For INFINITE_EXIT, `interior` is the declared back-reference to the
    board containing it (or one of that board's ancestors).
    A possessable entity can take over as the controlled one when the
    current player walks into it.
    """
    entity_id: str
    kind: EntityKind
    location: Location
    color: str | None = None
    flipped: bool = False
    interior: str | None = None
    clone_group: str | None = None
    possessable: bool = False

    @property
    def is_player(self) -> bool:
        return self.kind == EntityKind.PLAYER

    @property
    def is_container(self) -> bool:
        return self.kind in (EntityKind.BOX, EntityKind.INFINITE_EXIT)

    @property
    def is_infinite_exit(self) -> bool:
        return self.kind == EntityKind.INFINITE_EXIT


@dataclass(frozen=True)
class Goal:
    """A goal cell somewhere in the world."""
    location: Location
    terrain: Terrain
    color: str | None = None  # BlockGoal only; None accepts any block


@dataclass(frozen=True)
class PathStep:
    """One board-entry step: through `box_id` into `board_id`."""
    box_id: str
    board_id: str


@dataclass(frozen=True)
class Displacement:
    """One entity's relocation within a move."""
    entity_id: str
    source: Location
    target: Location
    flipped_before: bool = False
    flipped_after: bool = False

    def inverted(self) -> Displacement:
        return Displacement(
            entity_id=self.entity_id,
            source=self.target,
            target=self.source,
            flipped_before=self.flipped_after,
            flipped_after=self.flipped_before,
        )


@dataclass
class Board:
    """A rectangular grid of cells. Missing terrain entries are EMPTY."""
    board_id: str
    width: int
    height: int
    owner_id: str | None = None
    terrain: dict[Pos, Terrain] = field(default_factory=dict)
    goal_colors: dict[Pos, str] = field(default_factory=dict)
    occupants: dict[Pos, str] = field(default_factory=dict)

    def in_bounds(self, pos: Pos) -> bool:
        return 0 <= pos.x < self.width and 0 <= pos.y < self.height

    def terrain_at(self, pos: Pos) -> Terrain:
        return self.terrain.get(pos, Terrain.EMPTY)

    def occupant_at(self, pos: Pos) -> str | None:
        return self.occupants.get(pos)

    def goals(self) -> Iterator[Goal]:
        """Yield goal cells in row-major order."""
        for pos in sorted(self.terrain, key=lambda p: (p.y, p.x)):
            terrain = self.terrain[pos]
            if terrain.is_goal:
                yield Goal(
                    location=Location(self.board_id, pos),
                    terrain=terrain,
                    color=self.goal_colors.get(pos),
                )


@dataclass
class World:
    """
    The complete puzzle state.

    The root board plus every board reachable through box interiors,
    the entities positioned on them, and the clone-group index.
    Structural equality (==) compares all boards and entities.
    """
    root_id: str
    boards: dict[str, Board] = field(default_factory=dict)
    entities: dict[str, Entity] = field(default_factory=dict)
    clone_groups: dict[str, list[str]] = field(default_factory=dict)
    player_id: str | None = None
    rules: RuleSet = field(default_factory=RuleSet)

    # ------------------------------------------------------------------
    # Read queries
    # ------------------------------------------------------------------

    def board(self, board_id: str) -> Board:
        return self.boards[board_id]

    def entity(self, entity_id: str) -> Entity:
        return self.entities[entity_id]

    @property
    def player(self) -> Entity | None:
        if self.player_id is None:
            return None
        return self.entities.get(self.player_id)

    def occupant_at(self, location: Location) -> Entity | None:
        entity_id = self.board(location.board_id).occupant_at(location.pos)
        return self.entities[entity_id] if entity_id is not None else None

    def terrain_at(self, location: Location) -> Terrain:
        return self.board(location.board_id).terrain_at(location.pos)

    def container_of(self, board_id: str) -> Entity | None:
        """The box that owns a board, or None for the root board."""
        owner_id = self.board(board_id).owner_id
        return self.entities[owner_id] if owner_id is not None else None

    def ancestors(self, board_id: str) -> list[str]:
        """Board ids from `board_id` up to the root, inclusive."""
        chain = [board_id]
        owner = self.container_of(board_id)
        while owner is not None:
            parent_id = owner.location.board_id
            if parent_id in chain:
                raise ValueError(f"Containment cycle through board {parent_id}")
            chain.append(parent_id)
            owner = self.container_of(parent_id)
        return chain

    def path_of(self, entity_id: str) -> list[PathStep]:
        """
        Resolve the board-entry path from the root down to the board
        containing the entity. An entity on the root board has an empty path.
        Presentation query: the resolver never calls it.
        """
        chain = self.ancestors(self.entity(entity_id).location.board_id)
        steps = []
        for board_id in chain[:-1]:
            steps.append(PathStep(box_id=self.board(board_id).owner_id, board_id=board_id))
        steps.reverse()
        return steps

    def is_nested_in(self, board_id: str, entity_id: str) -> bool:
        """Whether `board_id` lies inside the interior of box `entity_id`."""
        entity = self.entity(entity_id)
        if entity.kind != EntityKind.BOX or entity.interior is None:
            return False
        return entity.interior in self.ancestors(board_id)

    def neighbor(self, location: Location, direction: Direction) -> tuple[Location, Direction] | None:
        """
        The cell adjacent to `location` in `direction`.

        Stepping off a board edge climbs to the owning box's board and
        steps from the box's cell; a flipped owner mirrors left/right.
        Returns the neighbor and the direction of travel on arrival, or
        None when the step leaves the root board.

        Presentation query for renderers and tooling. MoveResolver does its
        own climb because it also carries the edge point, the mover's flip
        state and the shed fallback at every level.
        """
        board = self.board(location.board_id)
        pos = location.pos.step(direction)
        while not board.in_bounds(pos):
            owner = self.container_of(board.board_id)
            if owner is None:
                return None
            if owner.flipped:
                direction = direction.mirrored()
            board = self.board(owner.location.board_id)
            pos = owner.location.pos.step(direction)
        return Location(board.board_id, pos), direction

    def goal_cells(self) -> list[Goal]:
        goals = []
        for board in self.boards.values():
            goals.extend(board.goals())
        return goals

    def clone_members(self, entity_id: str) -> list[str]:
        group = self.entity(entity_id).clone_group
        if group is None:
            return []
        return list(self.clone_groups.get(group, []))

    # ------------------------------------------------------------------
    # Mutation primitives
    # ------------------------------------------------------------------

    def move_occupant(self, entity_id: str, target: Location) -> None:
        """Move a single entity. Raises OccupiedCellError on conflicts."""
        entity = self.entity(entity_id)
        self.apply_batch([
            Displacement(
                entity_id=entity_id,
                source=entity.location,
                target=target,
                flipped_before=entity.flipped,
                flipped_after=entity.flipped,
            )
        ])

    def apply_batch(self, displacements: list[Displacement]) -> None:
        """
        Apply displacements atomically.

        The whole batch is checked before any write: each target must be
        an in-bounds non-wall cell that is empty or vacated by this batch,
        and no two targets may coincide. All sources are vacated before
        any target is filled.
        """
        moving = {d.entity_id for d in displacements}
        if len(moving) != len(displacements):
            raise OccupiedCellError("Entity displaced twice in one batch")

        targets: set[Location] = set()
        for d in displacements:
            entity = self.entity(d.entity_id)
            if entity.location != d.source:
                raise OccupiedCellError(
                    f"{d.entity_id} is at {entity.location}, not {d.source}",
                    location=d.source,
                )
            board = self.board(d.target.board_id)
            if not board.in_bounds(d.target.pos):
                raise OccupiedCellError(f"{d.target} is out of bounds", location=d.target)
            if board.terrain_at(d.target.pos) == Terrain.WALL:
                raise OccupiedCellError(f"{d.target} is a wall", location=d.target)
            if d.target in targets:
                raise OccupiedCellError(f"Two entities target {d.target}", location=d.target)
            targets.add(d.target)
            occupant = board.occupant_at(d.target.pos)
            if occupant is not None and occupant not in moving:
                raise OccupiedCellError(
                    f"{d.target} is occupied by {occupant}",
                    location=d.target,
                )

        for d in displacements:
            del self.board(d.source.board_id).occupants[d.source.pos]
        for d in displacements:
            entity = self.entity(d.entity_id)
            self.board(d.target.board_id).occupants[d.target.pos] = d.entity_id
            entity.location = d.target
            entity.flipped = d.flipped_after

        logger.debug("Applied batch of %d displacement(s)", len(displacements))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def clone(self) -> World:
        """Deep copy the world."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Read-only snapshot for presentation layers."""
        boards = []
        for board in self.boards.values():
            boards.append({
                "board_id": board.board_id,
                "width": board.width,
                "height": board.height,
                "owner_id": board.owner_id,
                "walls": [
                    [pos.x, pos.y]
                    for pos, terrain in sorted(board.terrain.items(), key=lambda kv: (kv[0].y, kv[0].x))
                    if terrain == Terrain.WALL
                ],
                "goals": [
                    {
                        "x": goal.location.pos.x,
                        "y": goal.location.pos.y,
                        "kind": goal.terrain.value,
                        "color": goal.color,
                    }
                    for goal in board.goals()
                ],
            })
        entities = []
        for entity in self.entities.values():
            entities.append({
                "entity_id": entity.entity_id,
                "kind": entity.kind.value,
                "board_id": entity.location.board_id,
                "x": entity.location.pos.x,
                "y": entity.location.pos.y,
                "color": entity.color,
                "flipped": entity.flipped,
                "interior": entity.interior,
                "clone_group": entity.clone_group,
                "possessable": entity.possessable,
            })
        return {
            "root_id": self.root_id,
            "player_id": self.player_id,
            "boards": boards,
            "entities": entities,
            "clone_groups": {k: list(v) for k, v in self.clone_groups.items()},
        }

    def debug_dump(self) -> str:
        """Multi-line dump of every board and entity."""
        lines = [f"root={self.root_id} player={self.player_id} rules={self.rules}"]
        player = self.player
        if player is not None:
            path = " > ".join(f"{step.box_id}:{step.board_id}" for step in self.path_of(player.entity_id))
            lines.append(f"player {player.entity_id} at {player.location} via {path or self.root_id}")
        for board in self.boards.values():
            lines.append(
                f"Board {board.board_id} {board.width}x{board.height} owner={board.owner_id}"
            )
            for y in range(board.height):
                row = []
                for x in range(board.width):
                    pos = Pos(x, y)
                    occupant = board.occupant_at(pos)
                    if occupant is not None:
                        row.append(_entity_glyph(self.entities[occupant]))
                    else:
                        row.append(_TERRAIN_GLYPHS[board.terrain_at(pos)])
                lines.append("  " + "".join(row))
        for entity in self.entities.values():
            lines.append(f"  {entity!r}")
        for group, members in self.clone_groups.items():
            lines.append(f"  clone group {group}: {', '.join(members)}")
        return "\n".join(lines)


_TERRAIN_GLYPHS = {
    Terrain.EMPTY: ".",
    Terrain.WALL: "#",
    Terrain.PLAYER_GOAL: "=",
    Terrain.BLOCK_GOAL: "_",
}


def _entity_glyph(entity: Entity) -> str:
    if entity.is_player:
        return "p"
    if entity.kind == EntityKind.INFINITE_EXIT:
        return "@"
    if entity.kind == EntityKind.BOX:
        return "B"
    return "b"
