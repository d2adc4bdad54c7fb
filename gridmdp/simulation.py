"""
Run loop for the value iteration simulator.

A Simulation owns the grid, the movement model and the current snapshot
(utilities, policy, agent). Every step builds new values and then swaps the
published snapshot, so a display layer can keep reading the old one while
the next is computed.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Mapping, Optional, Tuple, Union
import time
import numpy as np
from tqdm import tqdm

from gridmdp.agent import Agent, initial_agent, step_agent
from gridmdp.config import SimulationConfig
from gridmdp.gridworld import GridWorld, Position
from gridmdp.policy import Policy, extract_policy, initial_policy
from gridmdp.transitions import DEFAULT_MOVEMENT, MovementModel
from gridmdp.utils import set_seed
from gridmdp.value_iteration import (
    DEFAULT_THRESHOLD,
    UtilityTable,
    initial_utility_table,
    value_iteration_step,
)


@dataclass(frozen=True)
class Snapshot:
    grid: GridWorld
    utilities: UtilityTable
    policy: Policy
    agent: Agent

    @property
    def has_converged(self) -> bool:
        return self.utilities.has_converged

    @property
    def iteration_count(self) -> int:
        return self.utilities.iteration_count


def reset(
    grid: GridWorld,
    movement: MovementModel = DEFAULT_MOVEMENT,
    convergence_threshold: float = DEFAULT_THRESHOLD,
) -> Tuple[UtilityTable, Policy, Agent]:
    """Fresh utilities, empty policy and an agent at the start cell"""
    return (
        initial_utility_table(grid, convergence_threshold),
        initial_policy(),
        initial_agent(grid, movement),
    )


class Simulation:
    """Owns and advances the simulator state"""

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.config = config if config is not None else SimulationConfig()
        self.grid = self.config.grid_world()
        self.rng = set_seed(self.config.seed) if self.config.seed is not None else np.random.default_rng()
        self.log_file = Path(self.config.log_file) if self.config.log_file else None
        self.history: List[Tuple[int, float]] = []
        self.snapshot = Snapshot(self.grid, *reset(self.grid, self.movement, self.convergence_threshold))

    @property
    def movement(self) -> MovementModel:
        return self.config.movement

    @property
    def discount_factor(self) -> float:
        return self.config.discount_factor

    @property
    def convergence_threshold(self) -> float:
        return self.config.convergence_threshold

    def log(self, message: str):
        """Log message to console and, if configured, to file"""
        timestamp = time.strftime('%Y-%m-%d %H:%M:%S')
        log_message = f"[{timestamp}] {message}"
        if self.config.verbose:
            print(log_message)
        if self.log_file is not None:
            with open(self.log_file, 'a') as f:
                f.write(log_message + '\n')

    # ---------- stepping ----------

    def _publish(self, snapshot: Snapshot) -> Snapshot:
        self.snapshot = snapshot
        return snapshot

    def _sweep(self) -> Tuple[UtilityTable, Policy]:
        utilities = value_iteration_step(
            self.snapshot.utilities, self.grid, self.discount_factor, self.movement
        )
        policy = extract_policy(utilities, self.grid, self.movement, self.discount_factor)
        self.history.append((utilities.iteration_count, utilities.delta_max))
        if utilities.has_converged and not self.snapshot.has_converged:
            self.log(
                f"Converged after {utilities.iteration_count} iterations "
                f"(delta={utilities.delta_max:.6f})"
            )
        return utilities, policy

    def iterate(self) -> Snapshot:
        """One value iteration sweep plus policy extraction; agent untouched"""
        utilities, policy = self._sweep()
        return self._publish(replace(self.snapshot, utilities=utilities, policy=policy))

    def move_agent(self, sample: Optional[float] = None) -> Snapshot:
        """Advance the agent one step under the current policy"""
        agent = step_agent(self.snapshot.agent, self.snapshot.policy, self.grid, rng=self.rng, sample=sample)
        if agent.at_terminal and not self.snapshot.agent.at_terminal:
            self.log(f"Agent reached terminal {tuple(agent.position)} after {agent.step_count} steps")
        return self._publish(replace(self.snapshot, agent=agent))

    def step(self, sample: Optional[float] = None) -> Snapshot:
        """
        Value iteration, then policy extraction, then one agent move.
        Does nothing once the agent is on a terminal; use `iterate` or
        `run` to keep solving.
        """
        if self.snapshot.agent.at_terminal:
            return self.snapshot
        utilities, policy = self._sweep()
        agent = step_agent(self.snapshot.agent, policy, self.grid, rng=self.rng, sample=sample)
        if agent.at_terminal and not self.snapshot.agent.at_terminal:
            self.log(f"Agent reached terminal {tuple(agent.position)} after {agent.step_count} steps")
        return self._publish(Snapshot(self.grid, utilities, policy, agent))

    def run(self, max_iterations: Optional[int] = None, progress: bool = True) -> Snapshot:
        """Sweep until converged or the iteration cap is hit"""
        max_iterations = max_iterations if max_iterations is not None else self.config.max_iterations
        pbar = tqdm(range(max_iterations), desc="Value iteration", disable=not progress)
        for _ in pbar:
            if self.snapshot.has_converged:
                break
            snap = self.iterate()
            pbar.set_postfix({
                'delta': f"{snap.utilities.delta_max:.6f}",
                'iter': snap.iteration_count,
            })
        pbar.close()
        if not self.snapshot.has_converged:
            self.log(f"Stopped after {max_iterations} iterations without converging")
        return self.snapshot

    def run_episode(self, max_steps: int = 100) -> List[Position]:
        """Move the agent until it reaches a terminal or `max_steps` moves"""
        path = [self.snapshot.agent.position]
        for _ in range(max_steps):
            if self.snapshot.agent.at_terminal:
                break
            path.append(self.move_agent().agent.position)
        return path

    # ---------- configuration ----------

    def configure(
        self,
        step_reward: Optional[float] = None,
        discount_factor: Optional[float] = None,
        convergence_threshold: Optional[float] = None,
        movement: Optional[Union[MovementModel, Mapping[str, float]]] = None,
    ) -> Snapshot:
        """
        Change settings between steps. Everything is validated before any
        state is replaced; on error the current snapshot is left as it was.
        Utilities are kept, but the convergence flag is cleared. A new
        movement model also applies to the current agent.
        """
        config = replace(
            self.config,
            step_reward=self.config.step_reward if step_reward is None else step_reward,
            discount_factor=self.discount_factor if discount_factor is None else discount_factor,
            convergence_threshold=(
                self.convergence_threshold if convergence_threshold is None else convergence_threshold
            ),
            movement=self.movement if movement is None else movement,
        )
        grid = config.grid_world() if config.step_reward != self.config.step_reward else self.grid

        self.config = config
        self.grid = grid
        utilities = replace(
            self.snapshot.utilities,
            has_converged=False,
            convergence_threshold=config.convergence_threshold,
        )
        self.log(
            f"Configured step_reward={config.step_reward}, "
            f"discount_factor={config.discount_factor}, "
            f"convergence_threshold={config.convergence_threshold}, "
            f"movement={config.movement}"
        )
        agent = replace(self.snapshot.agent, movement=config.movement)
        return self._publish(replace(self.snapshot, grid=grid, utilities=utilities, agent=agent))

    def reset(self) -> Snapshot:
        """Back to iteration 0 with the agent at the start; grid is kept"""
        self.history = []
        self.snapshot = Snapshot(self.grid, *reset(self.grid, self.movement, self.convergence_threshold))
        self.log("Simulation reset")
        return self.snapshot
