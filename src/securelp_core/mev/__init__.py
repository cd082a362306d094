"""MEV modelling: sandwich attack search."""

from securelp_core.mev.sandwich import (
    MIN_PROFIT_THRESHOLD,
    SandwichCalculator,
    SandwichParams,
)

__all__ = [
    "MIN_PROFIT_THRESHOLD",
    "SandwichCalculator",
    "SandwichParams",
]
