"""
Pytest fixtures for Parabox tests.
"""

import pytest

from ..engine_core import History, Reducer, World
from ..puzzle_schema import PuzzleDefinition, build_world
from . import puzzles


@pytest.fixture
def make_world():
    """Factory: build a World from boards/entities dicts."""
    def _make(boards, entities, root="main", rules=None) -> World:
        return build_world(puzzles.definition(boards, entities, root=root, rules=rules))
    return _make


@pytest.fixture
def push_column_definition() -> PuzzleDefinition:
    return puzzles.push_column()


@pytest.fixture
def push_column_world(push_column_definition: PuzzleDefinition) -> World:
    """Player at (1,1), block at (1,2), wall at (1,3)."""
    return build_world(push_column_definition)


@pytest.fixture
def open_column_definition() -> PuzzleDefinition:
    return puzzles.push_column(with_wall=False)


@pytest.fixture
def open_column_world(open_column_definition: PuzzleDefinition) -> World:
    """Same as push_column_world without the wall."""
    return build_world(open_column_definition)


@pytest.fixture
def box_goal_definition() -> PuzzleDefinition:
    return puzzles.block_into_box()


@pytest.fixture
def box_goal_world(box_goal_definition: PuzzleDefinition) -> World:
    return build_world(box_goal_definition)


@pytest.fixture
def nested_world() -> World:
    """Player inside box B's 3x3 interior, B in the middle of the root."""
    return build_world(puzzles.player_in_box())


@pytest.fixture
def reducer_for():
    """Factory: a Reducer with fresh history anchored at the given world."""
    def _make(world: World) -> Reducer:
        return Reducer(history=History.start(world))
    return _make


@pytest.fixture
def possess_world() -> World:
    """Player at (0,1) next to a possessable block on a player goal."""
    return build_world(puzzles.possessable_block())
