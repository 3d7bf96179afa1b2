"""
Tests for undo and restart.
"""

from ..engine_core.action import Command, Outcome
from ..engine_core.history import History, MoveRecord, RestartRecord
from ..engine_core.reducer import Reducer
from ..engine_core.resolver import MoveResolver
from ..engine_core.state import Direction, Location, Pos, Terrain
from .puzzles import board, entity


def play(world, history, direction):
    plan = MoveResolver(world).resolve_player(direction)
    world.apply_batch(plan.displacements)
    history.record_move(plan)
    return plan


class TestUndo:
    """Tests for undoing moves."""

    def test_undo_is_exact_inverse(self, open_column_world):
        world = open_column_world
        history = History.start(world)
        before = world.clone()

        play(world, history, Direction.DOWN)
        assert world != before
        assert history.undo(world)
        assert world == before

    def test_undo_nested_moves(self, box_goal_world):
        world = box_goal_world
        history = History.start(world)
        before = world.clone()

        play(world, history, Direction.RIGHT)
        assert world.entity("k").location == Location("inner", Pos(0, 0))
        history.undo(world)
        assert world == before

    def test_undo_flip(self, make_world):
        world = make_world(
            [board("main", 4, 3, walls=[(2, 1)]), board("inner", 3, 3)],
            [
                entity("p", "player", 0, 1),
                entity("B", "box", 1, 1, interior="inner", flipped=True),
            ],
        )
        history = History.start(world)
        play(world, history, Direction.RIGHT)
        assert world.entity("p").flipped
        history.undo(world)
        assert not world.entity("p").flipped
        assert world.entity("p").location == Location("main", Pos(0, 1))

    def test_undo_empty_history(self, push_column_world):
        world = push_column_world
        history = History.start(world)
        before = world.clone()
        assert not history.undo(world)
        assert world == before

    def test_records(self, open_column_world):
        history = History.start(open_column_world)
        play(open_column_world, history, Direction.DOWN)
        assert len(history) == 1
        assert isinstance(history.entries[0], MoveRecord)
        assert history.move_count == 1


class TestRestart:
    """Tests for restart."""

    def test_restart_returns_to_initial(self, open_column_world):
        world = open_column_world
        history = History.start(world)
        initial = world.clone()

        play(world, history, Direction.RIGHT)
        play(world, history, Direction.DOWN)
        history.restart(world)
        assert world == initial

    def test_restart_is_idempotent(self, open_column_world):
        world = open_column_world
        history = History.start(world)
        play(world, history, Direction.RIGHT)

        history.restart(world)
        once = world.clone()
        history.restart(world)
        assert world == once

    def test_restart_can_be_undone(self, open_column_world):
        world = open_column_world
        history = History.start(world)
        play(world, history, Direction.RIGHT)
        moved = world.clone()

        history.restart(world)
        assert isinstance(history.entries[-1], RestartRecord)
        assert history.undo(world)
        assert world == moved

        # and the move before it is still undoable
        assert history.undo(world)
        assert world.entity("p").location == Location("main", Pos(1, 1))

    def test_initial_snapshot_is_isolated(self, open_column_world):
        world = open_column_world
        history = History.start(world)
        play(world, history, Direction.RIGHT)
        assert history.initial.entity("p").location == Location("main", Pos(1, 1))


def assert_occupancy(world):
    """Every entity sits in exactly one cell, that cell points back at it, and no wall is occupied."""
    seen = set()
    for board_id, b in world.boards.items():
        for pos, entity_id in b.occupants.items():
            assert entity_id not in seen
            seen.add(entity_id)
            assert world.entity(entity_id).location == Location(board_id, pos)
            assert b.in_bounds(pos)
            assert b.terrain_at(pos) != Terrain.WALL
    assert seen == set(world.entities)


class TestUndoUnits:
    """Tests for undoing moves that touch more than the mover."""

    def test_clone_replicas_undone_together(self, make_world):
        world = make_world(
            [board("main", 4, 3)],
            [
                entity("p", "player", 0, 0),
                entity("a", "block", 1, 0, clone_group="g"),
                entity("c", "block", 1, 2, clone_group="g"),
            ],
        )
        history = History.start(world)
        before = world.clone()

        plan = play(world, history, Direction.RIGHT)
        assert sorted(plan.entity_ids) == ["a", "c", "p"]
        assert world.entity("c").location == Location("main", Pos(2, 2))

        assert history.undo(world)
        assert world == before
        assert not history.can_undo

    def test_undo_possession(self, possess_world):
        world = possess_world
        history = History.start(world)
        reducer = Reducer(history=history)
        before = world.clone()

        result = reducer.apply(world, Command.move(Direction.RIGHT))
        assert result.applied
        assert world.player_id == "g"
        assert isinstance(history.entries[-1], MoveRecord)
        assert history.entries[-1].previous_player == "p"

        reducer.apply(world, Command.move(Direction.UP))
        assert world.entity("g").location == Location("main", Pos(1, 0))

        assert history.undo(world)
        assert world.player_id == "g"
        assert world.entity("g").location == Location("main", Pos(1, 1))
        assert history.undo(world)
        assert world == before
        assert world.player_id == "p"


class TestSequences:
    """Occupancy and undo over longer command sequences."""

    def sequence_world(self, make_world):
        return make_world(
            [board("main", 5, 4), board("inner", 3, 3)],
            [
                entity("B", "box", 1, 1, interior="inner"),
                entity("k", "block", 3, 1, color="red"),
                entity("p", "player", 1, 1, board="inner"),
            ],
        )

    def test_occupancy_holds_and_undo_unwinds_everything(self, make_world):
        world = self.sequence_world(make_world)
        initial = world.clone()
        history = History.start(world)
        reducer = Reducer(history=history)

        for command in Command.parse_sequence("RRRDLLUURz"):
            result = reducer.apply(world, command)
            assert result.applied, f"{command}: {result.error}"
            assert_occupancy(world)
        assert world.entity("p").location == Location("inner", Pos(1, 2))
        assert world.entity("k").location == Location("main", Pos(4, 1))
        assert world.entity("B").location == Location("main", Pos(1, 0))

        reducer.apply(world, Command.restart())
        assert world == initial
        for command in Command.parse_sequence("LDUU"):
            reducer.apply(world, command)
            assert_occupancy(world)

        undone = 0
        while reducer.apply(world, Command.undo()).outcome != Outcome.ILLEGAL:
            undone += 1
            assert_occupancy(world)
        # eight surviving moves, the restart, then four more
        assert undone == 13
        assert world == initial
        assert len(history) == 0

    def test_rejected_moves_in_sequence_change_nothing(self, push_column_world, reducer_for):
        world = push_column_world
        reducer = reducer_for(world)
        for command in Command.parse_sequence("DDD"):
            before = world.clone()
            result = reducer.apply(world, command)
            assert result.outcome == Outcome.ILLEGAL
            assert world == before
            assert_occupancy(world)
        assert len(reducer.history) == 0
