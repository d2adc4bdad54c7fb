"""
gridmdp: value iteration on a small stochastic grid world
"""
from gridmdp.errors import (
    ConfigurationError,
    GridMDPError,
    InvalidProbabilityError,
    OutOfBoundsError,
)
from gridmdp.gridworld import (
    ACTIONS,
    Action,
    Cell,
    CellKind,
    GridWorld,
    Position,
    TerminalState,
    default_grid_world,
)
from gridmdp.transitions import (
    DEFAULT_MOVEMENT,
    MovementModel,
    expected_utility,
    next_state_for,
    outcomes,
)
from gridmdp.value_iteration import (
    UtilityTable,
    initial_utility_table,
    q_values,
    run_value_iteration,
    value_iteration_step,
)
from gridmdp.policy import Policy, extract_policy, initial_policy
from gridmdp.agent import Agent, choose_direction, initial_agent, step_agent
from gridmdp.config import SimulationConfig, load_config
from gridmdp.simulation import Simulation, Snapshot, reset

__version__ = "0.1.0"
