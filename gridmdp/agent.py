from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional
import numpy as np

from gridmdp.gridworld import Action, GridWorld, Position
from gridmdp.policy import Policy
from gridmdp.transitions import DEFAULT_MOVEMENT, MovementModel, next_state_for


@dataclass(frozen=True)
class Agent:
    position: Position
    movement: MovementModel = DEFAULT_MOVEMENT
    at_terminal: bool = False
    step_count: int = 0
    last_action: Optional[Action] = None


def initial_agent(grid: GridWorld, movement: MovementModel = DEFAULT_MOVEMENT) -> Agent:
    return Agent(position=grid.start_position, movement=movement)


def choose_direction(action: Action, movement: MovementModel, r: float) -> Optional[Action]:
    """
    Map a uniform sample r in [0, 1) to intended / left-turn / right-turn,
    or None for the stay band [1 - p_stay, 1).
    """
    if r < movement.p_intended:
        return action
    if r < movement.p_intended + movement.p_left_turn:
        return action.left_turn
    if movement.p_stay <= 0 or r < movement.p_intended + movement.p_left_turn + movement.p_right_turn:
        return action.right_turn
    return None


def step_agent(
    agent: Agent,
    policy: Policy,
    grid: GridWorld,
    rng: Optional[np.random.Generator] = None,
    sample: Optional[float] = None,
) -> Agent:
    """
    Move the agent one step following `policy`, with slips drawn from its
    movement model. An agent already on a terminal is returned unchanged.
    """
    if agent.at_terminal:
        return agent
    action = policy.action_for(agent.position)
    if action is None:
        return agent

    if sample is None:
        if rng is None:
            rng = np.random.default_rng()
        sample = float(rng.random())
    direction = choose_direction(action, agent.movement, sample)
    cell = grid.cell_at(agent.position)
    dest = cell.position if direction is None else next_state_for(grid, cell, direction)
    return replace(
        agent,
        position=dest,
        at_terminal=grid.cell_at(dest).is_terminal,
        step_count=agent.step_count + 1,
        last_action=direction,
    )
