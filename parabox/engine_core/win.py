"""
Win Evaluator - Goal satisfaction checks.

A PlayerGoal is satisfied when the controlled entity (world.player_id)
stands on it; a BlockGoal when any other entity of matching color stands
on it. After a possession the former player counts as a block. A puzzle
with no goals is never won.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .state import Goal, Terrain, World


@dataclass
class WinReport:
    """Result of evaluating every goal in the world."""
    satisfied: list[Goal] = field(default_factory=list)
    unsatisfied: list[Goal] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.satisfied) + len(self.unsatisfied)

    @property
    def won(self) -> bool:
        return self.total > 0 and not self.unsatisfied


class WinEvaluator:
    """Stateless; never mutates the world."""

    def evaluate(self, world: World) -> WinReport:
        report = WinReport()
        for goal in world.goal_cells():
            if self.is_satisfied(world, goal):
                report.satisfied.append(goal)
            else:
                report.unsatisfied.append(goal)
        return report

    def is_satisfied(self, world: World, goal: Goal) -> bool:
        occupant = world.occupant_at(goal.location)
        if occupant is None:
            return False
        controlled = occupant.entity_id == world.player_id
        if goal.terrain == Terrain.PLAYER_GOAL:
            return controlled
        if controlled:
            return False
        return goal.color is None or goal.color == occupant.color

    def is_won(self, world: World) -> bool:
        return self.evaluate(world).won
