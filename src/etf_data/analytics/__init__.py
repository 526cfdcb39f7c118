"""Return and dividend-yield calculations."""

from .returns import (
    TotalReturns,
    TrailingReturns,
    annual_dividend,
    calculate_average_dividend,
    calculate_return,
    calculate_week_return,
    forward_yield,
    total_returns,
    trailing_returns,
)

__all__ = [
    "calculate_return",
    "calculate_week_return",
    "calculate_average_dividend",
    "annual_dividend",
    "forward_yield",
    "trailing_returns",
    "total_returns",
    "TrailingReturns",
    "TotalReturns",
]
