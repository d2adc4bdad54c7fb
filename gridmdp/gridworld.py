from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple, Union
import math
import numpy as np

from gridmdp.errors import ConfigurationError, OutOfBoundsError


class Position(NamedTuple):
    """1-based (row, col). Row 1 is the bottom row."""
    row: int
    col: int


class Action(Enum):
    # (d_row, d_col), declared in clockwise order
    UP = (1, 0)
    RIGHT = (0, 1)
    DOWN = (-1, 0)
    LEFT = (0, -1)

    @property
    def delta(self) -> Tuple[int, int]:
        return self.value

    @property
    def left_turn(self) -> "Action":
        return ACTIONS[(ACTIONS.index(self) - 1) % len(ACTIONS)]

    @property
    def right_turn(self) -> "Action":
        return ACTIONS[(ACTIONS.index(self) + 1) % len(ACTIONS)]


ACTIONS: Tuple[Action, ...] = tuple(Action)


class CellKind(Enum):
    NORMAL = "normal"
    WALL = "wall"
    TERMINAL = "terminal"
    START = "start"


@dataclass(frozen=True)
class Cell:
    position: Position
    kind: CellKind
    accessible: bool
    reward: float

    @property
    def is_wall(self) -> bool:
        return self.kind is CellKind.WALL

    @property
    def is_terminal(self) -> bool:
        return self.kind is CellKind.TERMINAL


@dataclass(frozen=True)
class TerminalState:
    position: Position
    reward: float
    sign: str = ""

    def __post_init__(self):
        object.__setattr__(self, "position", Position(*self.position))
        if not self.sign:
            object.__setattr__(self, "sign", "positive" if self.reward >= 0 else "negative")


TerminalLike = Union[TerminalState, Tuple[Tuple[int, int], float]]


@dataclass(frozen=True)
class GridWorld:
    """
    Immutable grid of cells for the value iteration simulator.
    Walls are impassable and worth 0, terminals are absorbing and worth their
    reward, every other cell pays `step_reward`.
    """
    width: int
    height: int
    cells: Tuple[Cell, ...]
    start_position: Position
    terminal_states: Tuple[TerminalState, ...]
    step_reward: float

    @classmethod
    def build(
        cls,
        width: int,
        height: int,
        wall_positions: Iterable[Tuple[int, int]],
        terminal_states: Iterable[TerminalLike],
        start_position: Optional[Tuple[int, int]],
        step_reward: float,
    ) -> "GridWorld":
        if width < 1 or height < 1:
            raise ConfigurationError(f"Grid must be at least 1x1, got {width}x{height}")
        if start_position is None:
            raise ConfigurationError("A start position is required")
        if not math.isfinite(step_reward):
            raise ConfigurationError(f"Step reward must be finite, got {step_reward}")

        def check_bounds(p: Position, what: str):
            if not (1 <= p.row <= height and 1 <= p.col <= width):
                raise ConfigurationError(f"{what} {tuple(p)} is outside the {width}x{height} grid")

        start = Position(*start_position)
        check_bounds(start, "Start position")

        walls: List[Position] = [Position(*p) for p in wall_positions]
        terminals: List[TerminalState] = [_as_terminal(t) for t in terminal_states]

        taken: Dict[Position, str] = {start: "start"}
        for what, p in [("Wall", w) for w in walls] + [("Terminal", t.position) for t in terminals]:
            check_bounds(p, what)
            if p in taken:
                raise ConfigurationError(f"{what} at {tuple(p)} overlaps {taken[p]} position")
            taken[p] = what.lower()
        for t in terminals:
            if not math.isfinite(t.reward):
                raise ConfigurationError(f"Terminal reward at {tuple(t.position)} must be finite")

        wall_set = set(walls)
        terminal_map = {t.position: t for t in terminals}
        cells = []
        for r in range(1, height + 1):
            for c in range(1, width + 1):
                p = Position(r, c)
                if p in wall_set:
                    cells.append(Cell(p, CellKind.WALL, False, 0.0))
                elif p in terminal_map:
                    cells.append(Cell(p, CellKind.TERMINAL, True, float(terminal_map[p].reward)))
                elif p == start:
                    cells.append(Cell(p, CellKind.START, True, float(step_reward)))
                else:
                    cells.append(Cell(p, CellKind.NORMAL, True, float(step_reward)))
        return cls(width, height, tuple(cells), start, tuple(terminals), float(step_reward))

    def in_bounds(self, position: Tuple[int, int]) -> bool:
        r, c = position
        return 1 <= r <= self.height and 1 <= c <= self.width

    def cell_at(self, position: Tuple[int, int]) -> Cell:
        if not self.in_bounds(position):
            raise OutOfBoundsError(position, self.width, self.height)
        r, c = position
        return self.cells[(r - 1) * self.width + (c - 1)]

    def is_accessible(self, position: Tuple[int, int]) -> bool:
        return self.in_bounds(position) and self.cell_at(position).accessible

    def is_terminal(self, position: Tuple[int, int]) -> bool:
        return self.in_bounds(position) and self.cell_at(position).is_terminal

    def positions(self) -> List[Position]:
        return [cell.position for cell in self.cells]

    def nonterminal_states(self) -> List[Position]:
        return [cell.position for cell in self.cells if cell.accessible and not cell.is_terminal]

    def with_step_reward(self, step_reward: float) -> "GridWorld":
        return GridWorld.build(
            self.width,
            self.height,
            [cell.position for cell in self.cells if cell.is_wall],
            self.terminal_states,
            self.start_position,
            step_reward,
        )

    def to_value_grid(self, values: Dict[Tuple[int, int], float]) -> np.ndarray:
        # top row first so the array prints the way the grid looks
        arr = np.zeros((self.height, self.width), dtype=float)
        for cell in self.cells:
            r, c = cell.position
            i = self.height - r
            if cell.is_wall:
                arr[i, c - 1] = np.nan
            else:
                arr[i, c - 1] = values.get(cell.position, 0.0)
        return arr


def _as_terminal(t: TerminalLike) -> TerminalState:
    if isinstance(t, TerminalState):
        return t
    position, reward = t
    return TerminalState(Position(*position), float(reward))


def default_grid_world(step_reward: float = -0.04) -> GridWorld:
    # Classic 4x3 world: wall in the middle, +1 top-right, -1 just below it
    return GridWorld.build(
        width=4,
        height=3,
        wall_positions=[(2, 2)],
        terminal_states=[((3, 4), 1.0), ((2, 4), -1.0)],
        start_position=(1, 1),
        step_reward=step_reward,
    )
