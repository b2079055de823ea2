"""
annuity_valuation/mortality.py - Mortality Model

Synthetic mortality curves for the life annuity calculator and the survival
statistics derived from them.

Mathematical Framework:
- Curves: q(x) = min(a + b·x, cap) for x = 0..99 (capped linear ramp)
- Survival: tPx = ∏_{i=0}^{t-1} (1 - q(x+i))
- Curtate life expectancy: e(x) = Σ tPx, truncated once tPx < 0.01

Tables:
- TGH05 / TGF05: generational tables (male and female curves)
- TV88-90: unisex period table
- TH00-02 / TF00-02: period tables 2000-2002

The curves are deliberately simplified. They are held in a process-wide,
read-only registry that is built once on first use.

Author: Annuity Valuation Project
License: MIT
"""

import numpy as np
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum
import threading
import logging

logger = logging.getLogger(__name__)


class MortalityTable(Enum):
    """Available mortality table identifiers."""
    TGH05 = "TGH05"
    TGF05 = "TGF05"
    TV88_90 = "TV88-90"
    TH00_02 = "TH00-02"
    TF00_02 = "TF00-02"


DEFAULT_TABLE = MortalityTable.TGH05
DEFAULT_SEX = "male"
CURVE_LENGTH = 100

# Truncation rules for life expectancy
LIFE_EXPECTANCY_HORIZON = 50
SURVIVAL_THRESHOLD = 0.01


# =============================================================================
# CURVE DEFINITIONS
# (intercept, slope, cap) per table and sex
# =============================================================================

_RAMP_PARAMETERS: Dict[MortalityTable, Dict[str, Tuple[float, float, float]]] = {
    MortalityTable.TGH05: {
        "male": (0.001, 0.002, 0.30),
        "female": (0.0008, 0.0018, 0.25),
    },
    MortalityTable.TGF05: {
        "male": (0.001, 0.002, 0.30),
        "female": (0.0008, 0.0018, 0.25),
    },
    MortalityTable.TV88_90: {
        "male": (0.0009, 0.0019, 0.28),
        "female": (0.0009, 0.0019, 0.28),
    },
    MortalityTable.TH00_02: {
        "male": (0.0012, 0.0022, 0.32),
        "female": (0.001, 0.002, 0.27),
    },
    MortalityTable.TF00_02: {
        "male": (0.0012, 0.0022, 0.32),
        "female": (0.001, 0.002, 0.27),
    },
}


def _build_ramp(intercept: float, slope: float, cap: float,
                length: int = CURVE_LENGTH) -> np.ndarray:
    """
    Build a capped linear mortality ramp.

    Args:
        intercept: Rate at age 0
        slope: Annual increase of the rate
        cap: Maximum rate

    Returns:
        Read-only array of one-year death probabilities
    """
    ages = np.arange(length, dtype=np.float64)
    rates = np.minimum(intercept + ages * slope, cap)
    rates.setflags(write=False)
    return rates


@dataclass(frozen=True, eq=False)
class SurvivalCurve:
    """
    Immutable one-year death probabilities for a (table, sex) pair.

    Index i holds q(i), the probability of death between age i and i+1.
    """
    table_id: str
    sex: str
    rates: np.ndarray

    def __len__(self) -> int:
        return len(self.rates)

    @property
    def max_age(self) -> int:
        """Last age with a defined rate."""
        return len(self.rates) - 1

    def covers(self, age: int) -> bool:
        return 0 <= age < len(self.rates)

    def get_qx(self, age: int) -> float:
        return float(self.rates[age])


_SEXES = ("male", "female")


def _lookup_sex(sex: str) -> Optional[str]:
    """Exact sex key ('male' or 'female'); anything else is unknown."""
    if isinstance(sex, Enum):
        sex = sex.value
    return sex if sex in _SEXES else None


def _lookup_table(table_id: str) -> Optional[MortalityTable]:
    """Exact table id (e.g. 'TGH05'); anything else is unknown."""
    if isinstance(table_id, MortalityTable):
        return table_id
    for table in MortalityTable:
        if table.value == table_id:
            return table
    return None


# =============================================================================
# CURVE REGISTRY (built once, read-only)
# =============================================================================

_REGISTRY: Optional[Dict[Tuple[MortalityTable, str], SurvivalCurve]] = None
_REGISTRY_LOCK = threading.Lock()


def _load_registry() -> Dict[Tuple[MortalityTable, str], SurvivalCurve]:
    global _REGISTRY
    if _REGISTRY is None:
        with _REGISTRY_LOCK:
            if _REGISTRY is None:
                curves = {}
                for table, by_sex in _RAMP_PARAMETERS.items():
                    for sex, (intercept, slope, cap) in by_sex.items():
                        curves[(table, sex)] = SurvivalCurve(
                            table_id=table.value,
                            sex=sex,
                            rates=_build_ramp(intercept, slope, cap),
                        )
                _REGISTRY = curves
                logger.info(f"Mortality registry loaded: {len(curves)} curves")
    return _REGISTRY


def list_tables() -> List[str]:
    """List available mortality table identifiers."""
    return [table.value for table in MortalityTable]


class MortalityCalculator:
    """
    Survival statistics over the synthetic mortality curves.

    Lookups never fail: an unknown (table, sex) pair resolves to the
    default curve (TGH05 male by default). Table ids and sexes are matched
    exactly ('TGH05', 'male'); 'tgh05' or 'M' are unknown. Lookups are pure:
    the calculator holds no mutable state, and callers that want to report
    a fallback check has_curve() first.

    Known simplification: once age + i runs past the last age of a curve,
    no further mortality is applied (the survival factor is 1). This keeps
    long-horizon survival artificially flat for very old annuitants.

    Attributes:
        default_table: Table used when a lookup cannot be resolved
    """

    def __init__(self, default_table: MortalityTable = DEFAULT_TABLE):
        self.default_table = default_table
        self._curves = _load_registry()
        logger.info(f"MortalityCalculator initialized: default={default_table.value}")

    def has_curve(self, table_id: str, sex: str) -> bool:
        """True when (table_id, sex) names a curve without falling back."""
        return _lookup_table(table_id) is not None and _lookup_sex(sex) is not None

    def resolve_curve(self, table_id: str, sex: str) -> SurvivalCurve:
        """
        Resolve the mortality curve for a table and sex.

        Args:
            table_id: Table identifier (e.g. 'TGH05'), any string accepted
            sex: 'male' or 'female', any string accepted

        Returns:
            The matching curve, or the default table's male curve
        """
        table = _lookup_table(table_id)
        sex_key = _lookup_sex(sex)
        if table is not None and sex_key is not None:
            return self._curves[(table, sex_key)]
        return self._curves[(self.default_table, DEFAULT_SEX)]

    def survival_probability(self, age: int, sex: str, table_id: str,
                             years: int) -> float:
        """
        Probability of surviving `years` years from `age`.

        Formula: tPx = ∏_{i=0}^{t-1} (1 - q(x+i))

        Args:
            age: Attained age (integer)
            sex: 'male' or 'female'
            table_id: Mortality table identifier
            years: Number of years

        Returns:
            Survival probability [0, 1]
        """
        curve = self.resolve_curve(table_id, sex)
        start = self._clamp_age(age)

        probability = 1.0
        for i in range(int(years)):
            current_age = start + i
            if not curve.covers(current_age):
                break
            probability *= (1 - curve.get_qx(current_age))

        return probability

    def survival_vector(self, age: int, sex: str, table_id: str,
                        years: int) -> np.ndarray:
        """
        Survival probabilities for t = 1..years as an array.

        Element t-1 equals survival_probability(age, sex, table_id, t).
        """
        curve = self.resolve_curve(table_id, sex)
        start = self._clamp_age(age)
        years = max(0, int(years))

        factors = np.ones(years, dtype=np.float64)
        covered = min(years, max(0, len(curve) - start))
        if covered > 0:
            factors[:covered] = 1 - curve.rates[start:start + covered]
        return np.cumprod(factors)

    def life_expectancy(self, age: int, sex: str, table_id: str,
                        horizon: int = LIFE_EXPECTANCY_HORIZON,
                        threshold: float = SURVIVAL_THRESHOLD) -> float:
        """
        Curtate life expectancy e(x), rounded to one decimal.

        Formula: e(x) = Σ tPx for t = 1..horizon, stopping once the curve
        ends or tPx drops below the threshold.

        Args:
            age: Attained age
            sex: 'male' or 'female'
            table_id: Mortality table identifier
            horizon: Maximum number of years accumulated
            threshold: Survival level below which accumulation stops

        Returns:
            Expected complete future years of life
        """
        curve = self.resolve_curve(table_id, sex)
        start = self._clamp_age(age)

        expectancy = 0.0
        probability = 1.0
        for i in range(horizon):
            current_age = start + i
            if not curve.covers(current_age):
                break
            probability *= (1 - curve.get_qx(current_age))
            expectancy += probability
            if probability < threshold:
                break

        return float(np.floor(expectancy * 10 + 0.5)) / 10

    @staticmethod
    def _clamp_age(age: int) -> int:
        age = int(age)
        if age < 0:
            logger.warning(f"Negative age {age} clamped to 0")
            return 0
        return age


_SHARED_CALCULATOR: Optional[MortalityCalculator] = None
_CALCULATOR_LOCK = threading.Lock()


def get_mortality_calculator() -> MortalityCalculator:
    """Shared calculator over the default table (created on first use)."""
    global _SHARED_CALCULATOR
    if _SHARED_CALCULATOR is None:
        with _CALCULATOR_LOCK:
            if _SHARED_CALCULATOR is None:
                _SHARED_CALCULATOR = MortalityCalculator()
    return _SHARED_CALCULATOR


def create_mortality_calculator(default_table: str = DEFAULT_TABLE.value) -> MortalityCalculator:
    """
    Factory function to create a mortality calculator.

    Args:
        default_table: Fallback table identifier; unknown ids use TGH05

    Returns:
        Configured MortalityCalculator instance
    """
    table = _lookup_table(default_table)
    if table is None:
        logger.warning(f"Unknown default table {default_table!r}; using {DEFAULT_TABLE.value}")
        table = DEFAULT_TABLE
    return MortalityCalculator(default_table=table)


if __name__ == "__main__":
    calc = create_mortality_calculator()

    print("Life expectancy at 65")
    for table in list_tables():
        for sex in ("male", "female"):
            ex = calc.life_expectancy(65, sex, table)
            print(f"  {table:8s} {sex:6s}: e(65) = {ex:.1f}")
