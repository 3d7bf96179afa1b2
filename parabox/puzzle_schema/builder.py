"""
World Builder - Turns a validated PuzzleDefinition into a World.
"""

from __future__ import annotations
import logging

from ..engine_core.state import (
    Board,
    Entity,
    EntityKind,
    Interaction,
    Location,
    Pos,
    RuleSet,
    Terrain,
    World,
)
from .definition import GoalKind, PuzzleDefinition
from .validation import PuzzleValidationError, validate_definition

logger = logging.getLogger(__name__)


def build_rules(definition: PuzzleDefinition) -> RuleSet:
    return RuleSet(
        attempt_order=tuple(Interaction(name.value) for name in definition.rules.attempt_order),
        shed=definition.rules.shed,
        inner_push=definition.rules.inner_push,
    )


def build_world(definition: PuzzleDefinition) -> World:
    """
    Validate a definition and construct the initial World.

    Raises PuzzleValidationError listing every problem found.
    """
    result = validate_definition(definition)
    if not result.valid:
        logger.warning("Puzzle '%s' rejected: %s", definition.name, "; ".join(result.errors))
        raise PuzzleValidationError(result.errors)
    for warning in result.warnings:
        logger.warning("Puzzle '%s': %s", definition.name, warning)

    world = World(root_id=definition.root, rules=build_rules(definition))

    for board_def in definition.boards:
        board = Board(
            board_id=board_def.id,
            width=board_def.width,
            height=board_def.height,
        )
        for x, y in board_def.walls:
            board.terrain[Pos(x, y)] = Terrain.WALL
        for goal in board_def.goals:
            pos = Pos(goal.x, goal.y)
            if goal.kind == GoalKind.PLAYER:
                board.terrain[pos] = Terrain.PLAYER_GOAL
            else:
                board.terrain[pos] = Terrain.BLOCK_GOAL
                if goal.color is not None:
                    board.goal_colors[pos] = goal.color
        world.boards[board.board_id] = board

    for entity_def in definition.entities:
        entity = Entity(
            entity_id=entity_def.id,
            kind=EntityKind(entity_def.kind.value),
            location=Location(entity_def.board, Pos(entity_def.x, entity_def.y)),
            color=entity_def.color,
            flipped=entity_def.flipped,
            interior=entity_def.interior,
            clone_group=entity_def.clone_group,
            possessable=entity_def.possessable,
        )
        world.entities[entity.entity_id] = entity
        world.board(entity_def.board).occupants[entity.location.pos] = entity.entity_id

        if entity.kind == EntityKind.BOX:
            world.board(entity.interior).owner_id = entity.entity_id
        if entity.is_player:
            world.player_id = entity.entity_id
        if entity.clone_group is not None:
            world.clone_groups.setdefault(entity.clone_group, []).append(entity.entity_id)

    logger.info(
        "Built puzzle '%s': %d board(s), %d entit(ies)",
        definition.name, len(world.boards), len(world.entities),
    )
    return world
