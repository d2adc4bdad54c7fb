"""
Utility functions for gridmdp
"""
import yaml
import random
import numpy as np
from typing import Dict, Any

ARROWS = {'UP': '↑', 'RIGHT': '→', 'DOWN': '↓', 'LEFT': '←'}


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file"""
    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)
    return config or {}


def set_seed(seed: int = 42) -> np.random.Generator:
    """Set random seed for reproducibility and return a seeded generator"""
    random.seed(seed)
    np.random.seed(seed)
    return np.random.default_rng(seed)


def format_grid(rows) -> str:
    return '\n'.join(' '.join(f'{x:>6}' for x in row) for row in rows)


def policy_grid(grid, policy, agent_position=None):
    """Rows of display symbols, top row first"""
    out = []
    for r in range(grid.height, 0, -1):
        row = []
        for c in range(1, grid.width + 1):
            cell = grid.cell_at((r, c))
            if agent_position is not None and tuple(agent_position) == (r, c):
                row.append('A')
            elif cell.is_wall:
                row.append('#')
            elif cell.is_terminal:
                row.append(f'{cell.reward:+g}')
            else:
                a = policy.action_for((r, c))
                row.append(ARROWS[a.name] if a is not None else '.')
        out.append(row)
    return out
