"""
Unit tests for the value iteration engine
"""
import math
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gridmdp.gridworld import Action, GridWorld, default_grid_world
from gridmdp.transitions import MovementModel
from gridmdp.value_iteration import (
    UtilityTable,
    initial_utility_table,
    q_values,
    run_value_iteration,
    value_iteration_step,
)


@pytest.fixture
def grid():
    return default_grid_world(step_reward=-0.04)


def iterate(table, grid, n, discount=1.0):
    tables = [table]
    for _ in range(n):
        table = value_iteration_step(table, grid, discount)
        tables.append(table)
    return tables


class TestInitialTable:
    """Test the fresh utility table"""

    def test_non_terminal_zero(self, grid):
        """Test every non-terminal starts at 0"""
        table = initial_utility_table(grid)
        for s in grid.nonterminal_states():
            assert table.value(s) == 0.0
        assert table.value((2, 2)) == 0.0

    def test_terminals_seeded(self, grid):
        """Test terminals start at their reward"""
        table = initial_utility_table(grid)
        assert table.value((3, 4)) == 1.0
        assert table.value((2, 4)) == -1.0

    def test_counters(self, grid):
        """Test iteration state starts cleared"""
        table = initial_utility_table(grid, convergence_threshold=0.01)
        assert table.iteration_count == 0
        assert not table.has_converged
        assert table.convergence_threshold == 0.01


class TestStep:
    """Test a single Bellman sweep"""

    def test_first_sweep_values(self, grid):
        """Test the cell next to +1 gains value first"""
        table = value_iteration_step(initial_utility_table(grid), grid, 1.0)

        assert table.value((3, 3)) == pytest.approx(0.76)
        assert table.value((1, 1)) == pytest.approx(-0.04)
        assert table.value((3, 3)) > table.value((1, 1))

    def test_iteration_count_and_previous(self, grid):
        """Test the counter increments and previous values are kept"""
        t0 = initial_utility_table(grid)
        t1 = value_iteration_step(t0, grid, 1.0)
        t2 = value_iteration_step(t1, grid, 1.0)

        assert t1.iteration_count == 1
        assert t2.iteration_count == 2
        assert dict(t2.previous_values) == dict(t1.values)

    def test_does_not_mutate_input(self, grid):
        """Test the input table is left untouched"""
        t0 = initial_utility_table(grid)
        before = dict(t0.values)
        value_iteration_step(t0, grid, 1.0)
        assert dict(t0.values) == before
        assert t0.iteration_count == 0

    def test_values_are_read_only(self, grid):
        """Test published values cannot be mutated"""
        table = value_iteration_step(initial_utility_table(grid), grid, 1.0)
        with pytest.raises(TypeError):
            table.values[(1, 1)] = 5.0

    def test_synchronous_update(self, grid):
        """Test all reads use the previous sweep"""
        t1 = value_iteration_step(initial_utility_table(grid), grid, 1.0)
        # (3, 2) only sees (3, 3) from the previous table, where it was 0
        assert t1.value((3, 2)) == pytest.approx(-0.04)

    def test_delta_max(self, grid):
        """Test delta_max is the largest change"""
        t0 = initial_utility_table(grid)
        t1 = value_iteration_step(t0, grid, 1.0)
        expected = max(abs(t1.value(s) - t0.value(s)) for s in grid.nonterminal_states())
        assert t1.delta_max == pytest.approx(expected)
        assert t1.delta_max == pytest.approx(0.76)

    def test_invalid_discount(self, grid):
        """Test out of range discount factors are rejected"""
        with pytest.raises(ValueError):
            value_iteration_step(initial_utility_table(grid), grid, 1.5)

    def test_zero_discount(self, grid):
        """Test gamma=0 leaves just the immediate reward"""
        table = value_iteration_step(initial_utility_table(grid), grid, 0.0)
        assert table.value((3, 3)) == pytest.approx(-0.04)


class TestInvariants:
    """Test properties that hold for every sweep"""

    def test_terminals_and_walls_pinned(self, grid):
        """Test terminal and wall utilities never change"""
        for table in iterate(initial_utility_table(grid), grid, 30):
            assert table.value((3, 4)) == 1.0
            assert table.value((2, 4)) == -1.0
            assert table.value((2, 2)) == 0.0

    def test_values_finite(self, grid):
        """Test no NaN or infinity appears"""
        for table in iterate(initial_utility_table(grid), grid, 50):
            for s in grid.nonterminal_states():
                assert math.isfinite(table.value(s))

    def test_convergence_flag(self, grid):
        """Test has_converged follows delta_max and the threshold"""
        for table in iterate(initial_utility_table(grid), grid, 40)[1:]:
            assert table.has_converged == (table.delta_max < table.convergence_threshold)


class TestRun:
    """Test running to convergence"""

    def test_converges_within_bound(self, grid):
        """Test the 4x3 world converges with gamma=1"""
        table = run_value_iteration(grid, discount_factor=1.0, convergence_threshold=0.001)
        assert table.has_converged
        assert table.iteration_count <= 1000

    def test_known_utilities(self, grid):
        """Test converged utilities match the textbook values"""
        table = run_value_iteration(grid, discount_factor=1.0, convergence_threshold=1e-6)
        assert table.value((3, 3)) == pytest.approx(0.918, abs=2e-3)
        assert table.value((1, 1)) == pytest.approx(0.705, abs=2e-3)
        assert table.value((2, 3)) == pytest.approx(0.660, abs=2e-3)

    def test_discounted_converges(self, grid):
        """Test a discounted run converges too"""
        table = run_value_iteration(grid, discount_factor=0.9)
        assert table.has_converged

    def test_iteration_cap(self, grid):
        """Test the cap stops an unconverged run"""
        table = run_value_iteration(grid, max_iterations=2, convergence_threshold=1e-9)
        assert table.iteration_count == 2
        assert not table.has_converged

    def test_resume_from_table(self, grid):
        """Test a run can continue from an existing table"""
        t = iterate(initial_utility_table(grid), grid, 3)[-1]
        table = run_value_iteration(grid, table=t, max_iterations=1)
        assert table.iteration_count == 4

    def test_stay_mass_is_kept(self):
        """Test p_stay mass stays in the Bellman backup instead of leaking away"""
        grid = default_grid_world(step_reward=0.0)
        movement = MovementModel(0.5, 0.1, 0.1, 0.3)
        table = run_value_iteration(
            grid, discount_factor=1.0, movement=movement,
            convergence_threshold=1e-6, max_iterations=10000,
        )
        # nothing is lost per step, so the best cell next to +1 is worth almost 1
        assert table.value((3, 3)) > 0.95
        assert table.value((3, 3)) <= 1.0 + 1e-9


class TestQValues:
    """Test per-action values"""

    def test_q_values(self, grid):
        """Test Q values include reward and discount"""
        table = initial_utility_table(grid)
        qs = q_values(grid, grid.cell_at((3, 3)), table.values, 1.0)

        assert set(qs) == set(Action)
        assert qs[Action.RIGHT] == pytest.approx(-0.04 + 0.8)
        assert qs[Action.UP] == pytest.approx(-0.04 + 0.1)

    def test_deterministic_movement(self):
        """Test a slip-free model on a 1x3 corridor"""
        grid = GridWorld.build(3, 1, [], [((1, 3), 1.0)], (1, 1), 0.0)
        table = initial_utility_table(grid)
        qs = q_values(grid, grid.cell_at((1, 2)), table.values, 0.5, MovementModel(1.0, 0.0, 0.0, 0.0))
        assert qs[Action.RIGHT] == pytest.approx(0.5)
        assert qs[Action.LEFT] == pytest.approx(0.0)
