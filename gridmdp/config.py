"""
Configuration for the value iteration simulator.

Defaults reproduce the classic 4x3 world: wall at (2,2), +1 terminal at
(3,4), -1 terminal at (2,4), start at (1,1), step reward -0.04, no
discounting and the 0.8 / 0.1 / 0.1 slip model.

The YAML layout mirrors the sections below:

    grid:
      width: 4
      height: 3
      start: [1, 1]
      walls: [[2, 2]]
      terminals:
        - {position: [3, 4], reward: 1.0}
        - {position: [2, 4], reward: -1.0}
    rewards:
      step: -0.04
    solver:
      discount_factor: 1.0
      convergence_threshold: 0.001
      max_iterations: 1000
    movement: {intended: 0.8, left_turn: 0.1, right_turn: 0.1, stay: 0.0}
    logging: {verbose: true, log_file: null}
    seed: 42
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from gridmdp.errors import ConfigurationError
from gridmdp.gridworld import GridWorld
from gridmdp.transitions import DEFAULT_MOVEMENT, MovementModel
from gridmdp.utils import load_config as _load_yaml


@dataclass
class SimulationConfig:
    """
    Attributes
    ----------
    width, height : int
        Grid extent in columns and rows
    walls : list of (row, col)
        Impassable cells
    terminals : list of ((row, col), reward)
        Absorbing cells and their rewards
    start : (row, col)
        Agent start cell
    step_reward : float
        Reward of every non-terminal, non-wall cell
    discount_factor : float
        Gamma in [0, 1]
    convergence_threshold : float
        Value iteration stops once the largest change is below this
    max_iterations : int
        Cap on sweeps for a full run
    movement : MovementModel
        Slip probabilities
    seed : int, optional
        Seed for the agent's random generator
    verbose : bool
        Print run-loop messages
    log_file : str, optional
        Also append run-loop messages to this file

    Raises
    ------
    ConfigurationError
        If any value is out of range or the grid layout is inconsistent
    """
    width: int = 4
    height: int = 3
    walls: List[Tuple[int, int]] = field(default_factory=lambda: [(2, 2)])
    terminals: List[Tuple[Tuple[int, int], float]] = field(
        default_factory=lambda: [((3, 4), 1.0), ((2, 4), -1.0)]
    )
    start: Optional[Tuple[int, int]] = (1, 1)
    step_reward: float = -0.04
    discount_factor: float = 1.0
    convergence_threshold: float = 1e-3
    max_iterations: int = 1000
    movement: MovementModel = DEFAULT_MOVEMENT
    seed: Optional[int] = 42
    verbose: bool = True
    log_file: Optional[str] = None

    def __post_init__(self):
        if not 0.0 <= self.discount_factor <= 1.0:
            raise ConfigurationError(f"discount_factor must be in [0, 1], got {self.discount_factor}")
        if self.convergence_threshold <= 0:
            raise ConfigurationError(f"convergence_threshold must be positive, got {self.convergence_threshold}")
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if not isinstance(self.movement, MovementModel):
            self.movement = MovementModel.from_dict(self.movement)
        # surfaces layout errors now rather than on first use
        self.grid_world()

    def grid_world(self) -> GridWorld:
        return GridWorld.build(
            self.width,
            self.height,
            self.walls,
            self.terminals,
            self.start,
            self.step_reward,
        )

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SimulationConfig":
        grid = config.get('grid', {})
        rewards = config.get('rewards', {})
        solver = config.get('solver', {})
        logging_cfg = config.get('logging', {})
        kwargs: Dict[str, Any] = {}

        if 'width' in grid:
            kwargs['width'] = int(grid['width'])
        if 'height' in grid:
            kwargs['height'] = int(grid['height'])
        if 'walls' in grid:
            kwargs['walls'] = [tuple(w) for w in grid['walls'] or []]
        if 'terminals' in grid:
            try:
                kwargs['terminals'] = [
                    (tuple(t['position']), float(t['reward'])) for t in grid['terminals'] or []
                ]
            except (KeyError, TypeError) as e:
                raise ConfigurationError(f"Malformed terminal entry: {e}") from e
        if 'start' in grid:
            kwargs['start'] = tuple(grid['start']) if grid['start'] is not None else None
        if 'step' in rewards:
            kwargs['step_reward'] = float(rewards['step'])
        if 'discount_factor' in solver:
            kwargs['discount_factor'] = float(solver['discount_factor'])
        if 'convergence_threshold' in solver:
            kwargs['convergence_threshold'] = float(solver['convergence_threshold'])
        if 'max_iterations' in solver:
            kwargs['max_iterations'] = int(solver['max_iterations'])
        if 'movement' in config:
            kwargs['movement'] = MovementModel.from_dict(config['movement'] or {})
        if 'seed' in config:
            kwargs['seed'] = config['seed']
        if 'verbose' in logging_cfg:
            kwargs['verbose'] = bool(logging_cfg['verbose'])
        if 'log_file' in logging_cfg:
            kwargs['log_file'] = logging_cfg['log_file']
        return cls(**kwargs)


def load_config(config_path: str) -> SimulationConfig:
    """Load a SimulationConfig from a YAML file"""
    return SimulationConfig.from_dict(_load_yaml(config_path))
