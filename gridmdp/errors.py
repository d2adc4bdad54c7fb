"""
Exceptions raised by the grid MDP engine
"""


class GridMDPError(Exception):
    """Base class for all engine errors"""


class ConfigurationError(GridMDPError, ValueError):
    """Invalid grid, terminal, start or simulation settings"""


class OutOfBoundsError(GridMDPError, IndexError):
    """Position lookup outside the grid"""

    def __init__(self, position, width: int, height: int):
        self.position = position
        super().__init__(
            f"Position {tuple(position)} is outside the {width}x{height} grid"
        )


class InvalidProbabilityError(ConfigurationError):
    """Movement probabilities are negative or do not sum to 1"""
