"""
Stochastic movement model for the grid world.

Each action has three outcomes: the intended direction, a slip to the left
and a slip to the right, plus staying in place when `p_stay` is non-zero. A move that would leave the grid or enter a wall
keeps the agent where it is, so every action is defined in every cell.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Mapping, Tuple
import math

from gridmdp.errors import InvalidProbabilityError
from gridmdp.gridworld import Action, Cell, GridWorld, Position

PROBABILITY_TOLERANCE = 1e-9


@dataclass(frozen=True)
class MovementModel:
    p_intended: float = 0.8
    p_left_turn: float = 0.1
    p_right_turn: float = 0.1
    p_stay: float = 0.0

    def __post_init__(self):
        probs = (self.p_intended, self.p_left_turn, self.p_right_turn, self.p_stay)
        if any(not math.isfinite(p) or p < 0 for p in probs):
            raise InvalidProbabilityError(f"Movement probabilities must be non-negative, got {probs}")
        total = sum(probs)
        if abs(total - 1.0) > PROBABILITY_TOLERANCE:
            raise InvalidProbabilityError(f"Movement probabilities must sum to 1, got {total}")

    @classmethod
    def from_dict(cls, d: Mapping[str, float]) -> "MovementModel":
        return cls(
            p_intended=float(d.get("intended", cls.p_intended)),
            p_left_turn=float(d.get("left_turn", cls.p_left_turn)),
            p_right_turn=float(d.get("right_turn", cls.p_right_turn)),
            p_stay=float(d.get("stay", cls.p_stay)),
        )


DEFAULT_MOVEMENT = MovementModel()


def next_state_for(grid: GridWorld, from_cell: Cell, action: Action) -> Position:
    """Destination of `action` from `from_cell`; blocked moves stay put."""
    r, c = from_cell.position
    dr, dc = action.delta
    dest = Position(r + dr, c + dc)
    if not grid.is_accessible(dest):
        return from_cell.position
    return dest


def outcomes(
    grid: GridWorld,
    from_cell: Cell,
    action: Action,
    movement: MovementModel = DEFAULT_MOVEMENT,
) -> List[Tuple[float, Position]]:
    """
    (probability, destination) for the intended, left-turn and right-turn
    outcomes, plus a stay-in-place entry when `p_stay` is non-zero.
    Destinations that collapse onto the same cell are left as separate
    entries; summing over them gives the combined probability.
    """
    outs = [
        (movement.p_intended, next_state_for(grid, from_cell, action)),
        (movement.p_left_turn, next_state_for(grid, from_cell, action.left_turn)),
        (movement.p_right_turn, next_state_for(grid, from_cell, action.right_turn)),
    ]
    if movement.p_stay > 0:
        outs.append((movement.p_stay, from_cell.position))
    return outs


def expected_utility(
    grid: GridWorld,
    cell: Cell,
    action: Action,
    values: Mapping[Position, float],
    movement: MovementModel = DEFAULT_MOVEMENT,
) -> float:
    total = 0.0
    for p, dest in outcomes(grid, cell, action, movement):
        total += p * values.get(dest, 0.0)
    return total
