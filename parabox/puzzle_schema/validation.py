"""
Definition Validation - Structural checks before a World is built.

Validates that:
1. Ids are unique and references resolve (boards, interiors)
2. Positions are in bounds and cells hold at most one entity
3. Containment forms a tree rooted at the root board
4. Infinite exits loop back to their own board or an ancestor
5. Clone groups and the player obey their invariants
"""

from __future__ import annotations
from dataclasses import dataclass

from ..engine_core.errors import ParaboxError
from .definition import EntityDefinition, EntityKindName, PuzzleDefinition


class PuzzleValidationError(ParaboxError):
    """Raised when a puzzle definition is malformed."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            f"Puzzle validation failed with {len(errors)} error(s)",
            context={"errors": errors},
        )


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def validate_definition(definition: PuzzleDefinition) -> ValidationResult:
    """Validate a complete puzzle definition."""
    errors: list[str] = []
    warnings: list[str] = []

    boards = {}
    for board in definition.boards:
        if board.id in boards:
            errors.append(f"Duplicate board id '{board.id}'")
        boards[board.id] = board

    if definition.root not in boards:
        errors.append(f"Root board '{definition.root}' is not defined")

    walls: dict[str, set[tuple[int, int]]] = {}
    for board in definition.boards:
        walls[board.id] = set()
        for x, y in board.walls:
            if not (0 <= x < board.width and 0 <= y < board.height):
                errors.append(f"Board '{board.id}': wall ({x}, {y}) is out of bounds")
            walls[board.id].add((x, y))
        seen_goals = set()
        for goal in board.goals:
            cell = (goal.x, goal.y)
            if not (goal.x < board.width and goal.y < board.height):
                errors.append(f"Board '{board.id}': goal {cell} is out of bounds")
            if cell in walls[board.id]:
                errors.append(f"Board '{board.id}': goal {cell} is on a wall")
            if cell in seen_goals:
                errors.append(f"Board '{board.id}': two goals at {cell}")
            seen_goals.add(cell)

    entity_errors, owners = _validate_entities(definition, boards, walls)
    errors.extend(entity_errors)

    for board_id in boards:
        if board_id != definition.root and board_id not in owners:
            errors.append(f"Board '{board_id}' is not the interior of any box")
    if definition.root in owners:
        errors.append(f"Root board '{definition.root}' cannot be the interior of a box")

    # Only check the tree once references are sound
    if not errors:
        errors.extend(_validate_containment(definition, owners))

    if not any(board.goals for board in definition.boards):
        warnings.append("No goals defined - puzzle can never be won")
    if not any(e.kind == EntityKindName.PLAYER for e in definition.entities):
        warnings.append("No player defined - every move will be illegal")

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_entities(definition, boards, walls) -> tuple[list[str], dict[str, EntityDefinition]]:
    """Check entities; returns errors and the owning box of each board."""
    errors: list[str] = []
    owners: dict[str, EntityDefinition] = {}
    entity_ids = set()
    occupied: dict[tuple[str, int, int], str] = {}
    players = []
    clone_groups: dict[str, list[str]] = {}

    for entity in definition.entities:
        if entity.id in entity_ids:
            errors.append(f"Duplicate entity id '{entity.id}'")
        entity_ids.add(entity.id)

        board = boards.get(entity.board)
        if board is None:
            errors.append(f"Entity '{entity.id}' is on unknown board '{entity.board}'")
            continue
        if not (0 <= entity.x < board.width and 0 <= entity.y < board.height):
            errors.append(f"Entity '{entity.id}' at ({entity.x}, {entity.y}) is out of bounds")
        if (entity.x, entity.y) in walls[entity.board]:
            errors.append(f"Entity '{entity.id}' is on a wall")
        cell = (entity.board, entity.x, entity.y)
        if cell in occupied:
            errors.append(f"Entities '{occupied[cell]}' and '{entity.id}' share a cell")
        occupied[cell] = entity.id

        if entity.kind == EntityKindName.PLAYER:
            players.append(entity.id)
            if entity.clone_group is not None:
                errors.append(f"Player '{entity.id}' cannot be a clone")

        if entity.kind in (EntityKindName.BOX, EntityKindName.INFINITE_EXIT):
            if entity.interior is None:
                errors.append(f"{entity.kind.value} '{entity.id}' has no interior board")
            elif entity.interior not in boards:
                errors.append(f"{entity.kind.value} '{entity.id}' refers to unknown board '{entity.interior}'")
            elif entity.kind == EntityKindName.BOX:
                if entity.interior in owners:
                    errors.append(
                        f"Board '{entity.interior}' is owned by both "
                        f"'{owners[entity.interior].id}' and '{entity.id}'"
                    )
                else:
                    owners[entity.interior] = entity
        elif entity.interior is not None:
            errors.append(f"{entity.kind.value} '{entity.id}' cannot have an interior")

        if entity.clone_group is not None:
            clone_groups.setdefault(entity.clone_group, []).append(entity.id)

    if len(players) > 1:
        errors.append(f"At most one player is allowed, found {len(players)}")

    for group, members in clone_groups.items():
        if len(members) < 2:
            errors.append(f"Clone group '{group}' needs at least 2 members, has {len(members)}")

    return errors, owners


def _validate_containment(definition: PuzzleDefinition, owners: dict[str, EntityDefinition]) -> list[str]:
    """Containment must be a tree; infinite exits must point up it."""
    errors = []
    ancestry: dict[str, list[str]] = {}

    for board in definition.boards:
        chain = [board.id]
        current = board.id
        while current in owners:
            parent = owners[current].board
            if parent in chain:
                errors.append(f"Board '{board.id}' is nested inside itself")
                break
            chain.append(parent)
            current = parent
        ancestry[board.id] = chain

    for entity in definition.entities:
        if entity.kind != EntityKindName.INFINITE_EXIT or entity.interior is None:
            continue
        if entity.interior not in ancestry.get(entity.board, []):
            errors.append(
                f"Infinite exit '{entity.id}' must loop back to its own board "
                f"'{entity.board}' or an ancestor, not '{entity.interior}'"
            )
    return errors
