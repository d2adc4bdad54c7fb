from __future__ import annotations
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional
import math
from tqdm import tqdm

from gridmdp.gridworld import ACTIONS, Action, Cell, GridWorld, Position
from gridmdp.transitions import DEFAULT_MOVEMENT, MovementModel, expected_utility

DEFAULT_THRESHOLD = 1e-3


def _frozen(values: Mapping[Position, float]) -> Mapping[Position, float]:
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class UtilityTable:
    """
    Snapshot of the utility estimate after `iteration_count` Bellman sweeps.
    `previous_values` is the table the last sweep read from.
    """
    values: Mapping[Position, float] = field(default_factory=lambda: _frozen({}))
    previous_values: Mapping[Position, float] = field(default_factory=lambda: _frozen({}))
    iteration_count: int = 0
    has_converged: bool = False
    convergence_threshold: float = DEFAULT_THRESHOLD
    delta_max: float = math.inf

    def value(self, position) -> float:
        return self.values.get(Position(*position), 0.0)


def initial_utility_table(grid: GridWorld, convergence_threshold: float = DEFAULT_THRESHOLD) -> UtilityTable:
    # terminals start at their reward, everything else at 0
    values = {cell.position: (cell.reward if cell.is_terminal else 0.0) for cell in grid.cells}
    return UtilityTable(
        values=_frozen(values),
        previous_values=_frozen({}),
        convergence_threshold=convergence_threshold,
    )


def _check_discount(discount_factor: float):
    if not 0.0 <= discount_factor <= 1.0:
        raise ValueError(f"Discount factor must be in [0, 1], got {discount_factor}")


def q_values(
    grid: GridWorld,
    cell: Cell,
    values: Mapping[Position, float],
    discount_factor: float,
    movement: MovementModel = DEFAULT_MOVEMENT,
) -> Dict[Action, float]:
    """Q(s, a) = R(s) + gamma * sum_s' P(s'|s,a) U(s') for every action."""
    return {
        a: cell.reward + discount_factor * expected_utility(grid, cell, a, values, movement)
        for a in ACTIONS
    }


def value_iteration_step(
    table: UtilityTable,
    grid: GridWorld,
    discount_factor: float,
    movement: MovementModel = DEFAULT_MOVEMENT,
) -> UtilityTable:
    """
    One synchronous Bellman optimality sweep:
        U'(s) = R(s) + gamma * max_a sum_s' P(s'|s,a) U(s')
    All reads go against `table.values`; walls are pinned to 0 and terminals
    to their reward.
    """
    _check_discount(discount_factor)
    old = table.values
    new_values: Dict[Position, float] = {}
    delta = 0.0
    for cell in grid.cells:
        s = cell.position
        if cell.is_wall:
            new_values[s] = 0.0
            continue
        if cell.is_terminal:
            new_values[s] = cell.reward
            continue
        best = -math.inf
        for a in ACTIONS:
            q = expected_utility(grid, cell, a, old, movement)
            if q > best:
                best = q
        v_new = cell.reward + discount_factor * best
        new_values[s] = v_new
        delta = max(delta, abs(v_new - old.get(s, 0.0)))

    return replace(
        table,
        values=_frozen(new_values),
        previous_values=table.values,
        iteration_count=table.iteration_count + 1,
        has_converged=delta < table.convergence_threshold,
        delta_max=delta,
    )


def run_value_iteration(
    grid: GridWorld,
    discount_factor: float = 1.0,
    movement: MovementModel = DEFAULT_MOVEMENT,
    convergence_threshold: float = DEFAULT_THRESHOLD,
    max_iterations: int = 1000,
    table: Optional[UtilityTable] = None,
    progress: bool = False,
) -> UtilityTable:
    """Sweep until converged or `max_iterations` sweeps have run."""
    if table is None:
        table = initial_utility_table(grid, convergence_threshold)
    pbar = tqdm(range(max_iterations), desc="Value iteration", disable=not progress)
    for _ in pbar:
        table = value_iteration_step(table, grid, discount_factor, movement)
        pbar.set_postfix({'delta': f"{table.delta_max:.6f}", 'iter': table.iteration_count})
        if table.has_converged:
            break
    pbar.close()
    return table
