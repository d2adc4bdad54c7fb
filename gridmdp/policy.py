from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional
import math

from gridmdp.gridworld import ACTIONS, Action, GridWorld, Position
from gridmdp.transitions import DEFAULT_MOVEMENT, MovementModel, expected_utility
from gridmdp.value_iteration import UtilityTable


@dataclass(frozen=True)
class Policy:
    actions: Mapping[Position, Action] = field(default_factory=lambda: MappingProxyType({}))
    is_optimal: bool = False

    def action_for(self, position) -> Optional[Action]:
        return self.actions.get(Position(*position))

    def __len__(self):
        return len(self.actions)


def initial_policy() -> Policy:
    return Policy()


def extract_policy(
    table: UtilityTable,
    grid: GridWorld,
    movement: MovementModel = DEFAULT_MOVEMENT,
    discount_factor: float = 1.0,
) -> Policy:
    """
    Greedy policy w.r.t. the current utilities. The first action in
    UP, RIGHT, DOWN, LEFT order wins ties.

    `discount_factor` scales every action's expected utility by the same
    amount and so cannot change the argmax; it is accepted so callers can
    pass the same settings they gave value iteration.
    """
    pi: Dict[Position, Action] = {}
    for cell in grid.cells:
        if not cell.accessible or cell.is_wall or cell.is_terminal:
            continue
        best_a, best_q = None, -math.inf
        for a in ACTIONS:
            q = expected_utility(grid, cell, a, table.values, movement)
            if q > best_q:
                best_q, best_a = q, a
        if best_a is not None:
            pi[cell.position] = best_a
    return Policy(actions=MappingProxyType(pi), is_optimal=table.has_converged)
