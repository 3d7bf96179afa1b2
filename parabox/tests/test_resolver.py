"""
Tests for the move resolver.

Tests:
- Push chains and blocking
- Entering and exiting boxes, with edge position mapping
- Flipped containers
- Infinite exits
- Eat, shed and inner push rules
- Clone propagation
- Loops and possession
"""

import pytest

from ..engine_core.errors import IllegalMove
from ..engine_core.resolver import MoveResolver, _Chain, _MoveState
from ..engine_core.state import Direction, Location, Pos
from ..puzzle_schema import build_world
from . import puzzles
from .puzzles import board, entity


def loc(board_id, x, y):
    return Location(board_id, Pos(x, y))


class TestPushChain:
    """Tests for plain pushing."""

    def test_wall_blocks_chain(self, push_column_world):
        with pytest.raises(IllegalMove):
            MoveResolver(push_column_world).resolve_player(Direction.DOWN)

    def test_push_without_wall(self, open_column_world):
        plan = MoveResolver(open_column_world).resolve_player(Direction.DOWN)
        assert plan.entity_ids == ["b", "p"]  # tail first
        assert plan.displacement_for("b").target == loc("main", 1, 3)
        assert plan.displacement_for("p").target == loc("main", 1, 2)

    def test_resolve_does_not_mutate(self, open_column_world):
        before = open_column_world.clone()
        MoveResolver(open_column_world).resolve_player(Direction.DOWN)
        assert open_column_world == before

    def test_root_edge_blocks(self, push_column_world):
        world = push_column_world
        world.move_occupant("p", loc("main", 0, 1))
        with pytest.raises(IllegalMove):
            MoveResolver(world).resolve_player(Direction.LEFT)

    def test_simple_step(self, push_column_world):
        plan = MoveResolver(push_column_world).resolve_player(Direction.RIGHT)
        assert len(plan.displacements) == 1
        assert plan.displacements[0].source == loc("main", 1, 1)
        assert plan.displacements[0].target == loc("main", 2, 1)

    def test_no_player(self, make_world):
        world = make_world([board("main", 2, 1)], [entity("b", "block", 0, 0)])
        with pytest.raises(IllegalMove):
            MoveResolver(world).resolve_player(Direction.RIGHT)

    def test_unknown_entity(self, push_column_world):
        with pytest.raises(IllegalMove):
            MoveResolver(push_column_world).resolve("ghost", Direction.UP)


class TestEnterExit:
    """Tests for crossing board boundaries."""

    def test_block_enters_box_blocked_at_edge(self, box_goal_world):
        plan = MoveResolver(box_goal_world).resolve_player(Direction.RIGHT)
        assert plan.displacement_for("k").target == loc("inner", 0, 0)
        assert plan.displacement_for("p").target == loc("main", 1, 2)
        assert plan.displacement_for("B") is None

    def test_exit_to_parent(self, nested_world):
        world = nested_world
        world.move_occupant("p", loc("inner", 2, 1))
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.displacement_for("p").target == loc("main", 2, 1)

    def test_exit_then_push(self, make_world):
        world = make_world(
            [board("main", 4, 3), board("inner", 3, 3)],
            [
                entity("B", "box", 1, 1, interior="inner"),
                entity("p", "player", 2, 1, board="inner"),
                entity("b", "block", 2, 1),
            ],
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.entity_ids == ["b", "p"]
        assert plan.displacement_for("b").target == loc("main", 3, 1)
        assert plan.displacement_for("p").target == loc("main", 2, 1)

    def test_player_enters_blocked_box(self, make_world):
        world = make_world(
            [board("main", 4, 3, walls=[(2, 1)]), board("inner", 3, 3)],
            [
                entity("p", "player", 0, 1),
                entity("B", "box", 1, 1, interior="inner"),
            ],
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.entity_ids == ["p"]
        assert plan.displacement_for("p").target == loc("inner", 0, 1)

    def test_free_box_is_pushed_not_entered(self, make_world):
        world = make_world(
            [board("main", 4, 3), board("inner", 3, 3)],
            [
                entity("p", "player", 0, 1),
                entity("B", "box", 1, 1, interior="inner"),
            ],
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.displacement_for("B").target == loc("main", 2, 1)
        assert plan.displacement_for("p").target == loc("main", 1, 1)

    @pytest.mark.parametrize("start_y,expected_y", [(2, 1), (0, 0)])
    def test_edge_position_scales_between_sizes(self, make_world, start_y, expected_y):
        """Leaving a 3-high board into a 2-high one keeps the relative row."""
        world = make_world(
            [
                board("main", 4, 3, walls=[(3, 1)]),
                board("big", 3, 3),
                board("small", 2, 2),
            ],
            [
                entity("B1", "box", 1, 1, interior="big"),
                entity("B2", "box", 2, 1, interior="small"),
                entity("p", "player", 2, start_y, board="big"),
            ],
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.displacement_for("p").target == loc("small", 0, expected_y)

    def test_flipped_box_entry_is_mirrored(self, make_world):
        world = make_world(
            [board("main", 4, 3, walls=[(2, 1)]), board("inner", 3, 3)],
            [
                entity("p", "player", 0, 1),
                entity("B", "box", 1, 1, interior="inner", flipped=True),
            ],
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        d = plan.displacement_for("p")
        assert d.target == loc("inner", 2, 1)
        assert d.flipped_before is False
        assert d.flipped_after is True


class TestInfiniteExit:
    """Tests for boards that loop back through an infinite exit."""

    def test_same_depth_entry(self, make_world):
        world = make_world(
            [board("main", 5, 3, walls=[(3, 1)])],
            [
                entity("p", "player", 1, 1),
                entity("x", "infinite_exit", 2, 1, interior="main"),
            ],
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.displacement_for("p").target == loc("main", 0, 1)
        assert plan.displacement_for("x") is None

    def test_repeated_descent_is_illegal(self, make_world):
        world = make_world(
            [board("main", 3, 3)],
            [
                entity("y", "infinite_exit", 0, 1, interior="main"),
                entity("p", "player", 1, 1),
                entity("x", "infinite_exit", 2, 1, interior="main"),
            ],
            rules={"attempt_order": ["enter"]},
        )
        with pytest.raises(IllegalMove):
            MoveResolver(world).resolve_player(Direction.RIGHT)

    def test_ancestor_board_exit(self, make_world):
        """An exit inside a box that loops back to the root lands on the root's edge."""
        world = make_world(
            [board("main", 5, 3), board("inner", 3, 3, walls=[(2, 1)])],
            [
                entity("B", "box", 2, 1, interior="inner"),
                entity("p", "player", 0, 1, board="inner"),
                entity("x", "infinite_exit", 1, 1, board="inner", interior="main"),
            ],
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.entity_ids == ["p"]
        assert plan.displacement_for("p").target == loc("main", 0, 1)
        assert plan.displacement_for("x") is None

    def test_move_back_onto_own_cell_is_illegal(self, make_world):
        world = make_world(
            [board("main", 2, 1)],
            [
                entity("p", "player", 0, 0),
                entity("x", "infinite_exit", 1, 0, interior="main"),
            ],
        )
        with pytest.raises(IllegalMove, match="would not change anything"):
            MoveResolver(world).resolve_player(Direction.RIGHT)


class TestRules:
    """Tests for eat, shed and inner push."""

    def eat_world(self, make_world, attempt_order):
        return make_world(
            [board("main", 4, 3, walls=[(3, 1)]), board("inner", 3, 3)],
            [
                entity("p", "player", 0, 1),
                entity("B", "box", 1, 1, interior="inner"),
                entity("k", "block", 2, 1),
            ],
            rules={"attempt_order": attempt_order},
        )

    def test_box_eats_blocked_block(self, make_world):
        world = self.eat_world(make_world, ["push", "enter", "eat"])
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.entity_ids == ["k", "B", "p"]
        assert plan.displacement_for("k").target == loc("inner", 2, 1)
        assert plan.displacement_for("B").target == loc("main", 2, 1)
        assert plan.displacement_for("p").target == loc("main", 1, 1)

    def test_without_eat_player_enters(self, make_world):
        world = self.eat_world(make_world, ["push", "enter"])
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.entity_ids == ["p"]
        assert plan.displacement_for("p").target == loc("inner", 0, 1)

    def test_shed(self):
        world = build_world(puzzles.player_in_box(rules={"shed": True}))
        world.move_occupant("B", loc("main", 0, 1))
        world.move_occupant("p", loc("inner", 0, 1))
        plan = MoveResolver(world).resolve_player(Direction.LEFT)
        assert plan.displacement_for("p").target == loc("main", 0, 1)
        assert plan.displacement_for("B").target == loc("main", 1, 1)

    def test_blocked_exit_without_shed(self, nested_world):
        world = nested_world
        world.move_occupant("B", loc("main", 0, 1))
        world.move_occupant("p", loc("inner", 0, 1))
        with pytest.raises(IllegalMove):
            MoveResolver(world).resolve_player(Direction.LEFT)

    def test_inner_push_moves_container(self, make_world):
        world = make_world(
            [board("main", 4, 3), board("inner", 3, 3, walls=[(2, 1)])],
            [
                entity("B", "box", 1, 1, interior="inner"),
                entity("p", "player", 1, 1, board="inner"),
            ],
            rules={"inner_push": True},
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.entity_ids == ["B"]
        assert plan.displacement_for("B").target == loc("main", 2, 1)

    def test_inner_wall_blocks_by_default(self, make_world):
        world = make_world(
            [board("main", 4, 3), board("inner", 3, 3, walls=[(2, 1)])],
            [
                entity("B", "box", 1, 1, interior="inner"),
                entity("p", "player", 1, 1, board="inner"),
            ],
        )
        with pytest.raises(IllegalMove):
            MoveResolver(world).resolve_player(Direction.RIGHT)


class TestClones:
    """Tests for clone group propagation."""

    def clone_world(self, make_world, walls=()):
        return make_world(
            [board("main", 4, 3, walls=walls)],
            [
                entity("p", "player", 0, 0),
                entity("a", "block", 1, 0, clone_group="g"),
                entity("c", "block", 1, 2, clone_group="g"),
            ],
        )

    def test_clone_follows(self, make_world):
        plan = MoveResolver(self.clone_world(make_world)).resolve_player(Direction.RIGHT)
        assert plan.displacement_for("a").target == loc("main", 2, 0)
        assert plan.displacement_for("c").target == loc("main", 2, 2)
        assert plan.clone_groups == ["g"]

    def test_blocked_clone_blocks_everything(self, make_world):
        world = self.clone_world(make_world, walls=[(2, 2)])
        before = world.clone()
        with pytest.raises(IllegalMove):
            MoveResolver(world).resolve_player(Direction.RIGHT)
        assert world == before

    def test_unmoved_clone_group_untouched(self, make_world):
        plan = MoveResolver(self.clone_world(make_world)).resolve_player(Direction.DOWN)
        assert plan.entity_ids == ["p"]
        assert plan.clone_groups == []


class TestLoops:
    """Tests for chains that reach an entity already on the move stack."""

    def test_loop_through_infinite_exit_moves_together(self, make_world):
        world = make_world(
            [board("main", 4, 3, walls=[(3, 1)])],
            [
                entity("b", "block", 0, 1),
                entity("p", "player", 1, 1),
                entity("x", "infinite_exit", 2, 1, interior="main"),
            ],
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert sorted(plan.entity_ids) == ["b", "p"]
        assert plan.displacement_for("p").target == loc("main", 0, 1)
        assert plan.displacement_for("b").target == loc("main", 1, 1)
        assert plan.displacement_for("x") is None

    def test_same_direction_closes_loop(self, push_column_world):
        chain = _Chain(push_column_world)
        chain.stack.append(_MoveState.start(push_column_world.entity("p"), Direction.UP))
        chain.stack.append(_MoveState.start(push_column_world.entity("b"), Direction.UP))
        assert chain.try_move("b", Direction.UP)
        assert chain.move_index == 1
        assert [s.entity_id for s in chain.moving] == ["b"]

    def test_different_direction_is_blocked(self, push_column_world):
        chain = _Chain(push_column_world)
        chain.stack.append(_MoveState.start(push_column_world.entity("p"), Direction.UP))
        assert not chain.try_move("p", Direction.LEFT)
        assert chain.move_index == 0

    def test_entry_before_loop_start_is_blocked(self, push_column_world):
        chain = _Chain(push_column_world)
        chain.stack.append(_MoveState.start(push_column_world.entity("p"), Direction.UP))
        chain.stack.append(_MoveState.start(push_column_world.entity("b"), Direction.UP))
        chain.move_index = 1
        assert not chain.try_move("p", Direction.UP)


class TestPossess:
    """Tests for taking control of a possessable entity."""

    def test_blocked_possessable_is_possessed(self, possess_world):
        plan = MoveResolver(possess_world).resolve_player(Direction.RIGHT)
        assert plan.possessed == "g"
        assert plan.displacements == []

    def test_push_comes_first(self, make_world):
        world = make_world(
            [board("main", 4, 1)],
            [entity("p", "player", 0, 0), entity("g", "block", 1, 0, possessable=True)],
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.possessed is None
        assert plan.displacement_for("g").target == loc("main", 2, 0)

    def test_possess_before_push(self, make_world):
        world = make_world(
            [board("main", 4, 1)],
            [entity("p", "player", 0, 0), entity("g", "block", 1, 0, possessable=True)],
            rules={"attempt_order": ["possess", "push"]},
        )
        plan = MoveResolver(world).resolve_player(Direction.RIGHT)
        assert plan.possessed == "g"
        assert plan.displacements == []

    def test_not_possessable(self, push_column_world):
        with pytest.raises(IllegalMove):
            MoveResolver(push_column_world).resolve_player(Direction.DOWN)

    def test_possess_missing_from_attempt_order(self):
        world = build_world(puzzles.possessable_block(rules={"attempt_order": ["push", "enter", "eat"]}))
        with pytest.raises(IllegalMove):
            MoveResolver(world).resolve_player(Direction.RIGHT)

    def test_only_the_player_possesses(self, make_world):
        """A pushed block running into a possessable one does not take it over."""
        world = make_world(
            [board("main", 4, 1, walls=[(3, 0)])],
            [
                entity("p", "player", 0, 0),
                entity("k", "block", 1, 0),
                entity("g", "block", 2, 0, possessable=True),
            ],
        )
        with pytest.raises(IllegalMove):
            MoveResolver(world).resolve_player(Direction.RIGHT)
