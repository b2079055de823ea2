"""
annuity_valuation/financials.py - Financial Mathematics Helpers

Time-value-of-money and rounding helpers shared by the valuation engine.

Mathematical Framework:
- Discount factors: v^t = (1+i)^{-t}
- Growth factors: (1+g)^{t}
- Growth-adjusted rate: i' = (i - g) / (1 + g)

Rounding follows the calculator's display convention: half-up
(floor(x + 0.5)), not Python's round-half-even.

Author: Annuity Valuation Project
License: MIT
"""

import math
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


def round_half_up(value: float, decimals: int = 0) -> float:
    """
    Round half-up to a number of decimals.

    Args:
        value: Number to round
        decimals: Decimal places to keep

    Returns:
        Rounded value (2.5 -> 3.0, -2.5 -> -2.0)
    """
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def round_currency(value: float) -> int:
    """Round to whole currency units."""
    return int(math.floor(value + 0.5))


def _power(base: float, exponent: float) -> float:
    if base <= 0:
        logger.warning(f"Non-positive accumulation base {base}; factor set to 0")
        return 0.0
    return base ** exponent


@dataclass(frozen=True)
class FinancialEngine:
    """
    Discounting for one valuation.

    Attributes:
        interest_rate: Annual technical interest rate in percent (2.5 = 2.5%)
        growth_rate: Annual payment growth rate in percent
    """

    interest_rate: float = 0.0
    growth_rate: float = 0.0

    def __post_init__(self):
        if not 0 <= self.interest_rate <= 10:
            logger.warning(f"Unusual technical interest rate: {self.interest_rate}%")

    @property
    def discount_rate(self) -> float:
        """Annual discount rate as a decimal."""
        return self.interest_rate / 100

    @property
    def growth(self) -> float:
        return self.growth_rate / 100

    @property
    def growth_adjusted_rate(self) -> float:
        """
        Discount rate net of payment growth.

        Formula: i' = (i - g) / (1 + g)
        """
        if 1 + self.growth == 0:
            logger.warning("Growth rate of -100%; growth-adjusted rate falls back to the discount rate")
            return self.discount_rate
        return (self.discount_rate - self.growth) / (1 + self.growth)

    def get_discount_factor(self, years: float) -> float:
        """
        Present value of 1 paid in `years` years.

        Formula: v^t = (1+i)^{-t}
        """
        return _power(1 + self.discount_rate, -years)

    def get_growth_adjusted_discount_factor(self, years: float) -> float:
        """Discount factor at the growth-adjusted rate: (1+i')^{-t}."""
        return _power(1 + self.growth_adjusted_rate, -years)

    def get_growth_factor(self, years: float) -> float:
        """
        Cumulative payment growth after `years` years.

        Formula: (1+g)^t
        """
        return (1 + self.growth) ** years
