"""
annuity_valuation/engine.py - Annuity Valuation Engine

Turns an AnnuityParameters record into present value, life expectancy,
monthly payment, expected total payments and a year-by-year projection.

Present value formulas (t = 1, 2, ...; S(t) = survival to year t):
- simple:     Σ A·S(t)·(1+i)^{-t}                     t = 1..50
- temporary:  Σ A·S(t)·(1+i)^{-t}                     t = 1..n (no early exit)
- deferred:   Σ A·S(t)·(1+i)^{-t}                     t = d+1..50
- growing:    Σ A·(1+g)^{t-1}·S(t)·(1+i')^{-t}        t = 1..50, i' = (i-g)/(1+g)
- reversible: simple(primary) + 0.6 × simple(spouse, opposite sex, A × reversal%)

Infinite-horizon sums stop after the first year whose survival drops
below 0.01. The engine never raises for business reasons: unknown tables
fall back to the default curve and every annuity type has a strategy.

Author: Annuity Valuation Project
License: MIT
"""

import math
import pandas as pd
from typing import Any, Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from functools import lru_cache
import logging

from .mortality import MortalityCalculator, create_mortality_calculator
from .financials import FinancialEngine, round_currency, round_half_up
from .parameters import (
    AnnuityParameters,
    AnnuityType,
    DeferredTerms,
    GrowingTerms,
    ReversibleTerms,
    TemporaryTerms,
    build_parameters,
)

logger = logging.getLogger(__name__)


# Joint-life approximation: the spouse's reversion is valued as a single-life
# annuity scaled by this factor instead of P(exactly one life survives).
JOINT_LIFE_ADJUSTMENT = 0.6


@dataclass(frozen=True)
class EngineConfig:
    """Horizons and truncation rules of the valuation."""
    max_horizon: int = 50
    projection_horizon: int = 30
    survival_threshold: float = 0.01
    life_expectancy_horizon: int = 50
    default_table: str = "TGH05"

    @classmethod
    def from_dict(cls, config: Dict) -> "EngineConfig":
        return cls(
            max_horizon=int(config.get('max_horizon', 50)),
            projection_horizon=int(config.get('projection_horizon', 30)),
            survival_threshold=float(config.get('survival_threshold', 0.01)),
            life_expectancy_horizon=int(config.get('life_expectancy_horizon', 50)),
            default_table=str(config.get('default_table', 'TGH05')),
        )


@dataclass(frozen=True)
class ProjectionPoint:
    """Expected cash flow of one projection year."""
    year: int
    payment: int
    cumulative_payment: int
    probability: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'year': self.year,
            'payment': self.payment,
            'cumulativePayment': self.cumulative_payment,
            'probability': self.probability,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectionPoint":
        return cls(
            year=int(data['year']),
            payment=int(data['payment']),
            cumulative_payment=int(data['cumulativePayment']),
            probability=float(data['probability']),
        )


@dataclass(frozen=True)
class AnnuityResult:
    """Complete valuation result for one parameter record."""
    present_value: int
    monthly_payment: int
    total_payments: int
    life_expectancy: float
    projections: Tuple[ProjectionPoint, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe form using the calculator's camelCase keys."""
        return {
            'presentValue': self.present_value,
            'monthlyPayment': self.monthly_payment,
            'totalPayments': self.total_payments,
            'lifeExpectancy': self.life_expectancy,
            'projections': [point.to_dict() for point in self.projections],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnnuityResult":
        return cls(
            present_value=int(data['presentValue']),
            monthly_payment=int(data['monthlyPayment']),
            total_payments=int(data['totalPayments']),
            life_expectancy=float(data['lifeExpectancy']),
            projections=tuple(ProjectionPoint.from_dict(p) for p in data.get('projections', [])),
        )


class LifeAnnuityValuator:
    """Present value strategies, one per annuity type."""

    def __init__(self, mortality: MortalityCalculator, config: EngineConfig):
        self.mortality = mortality
        self.config = config
        self._strategies: Dict[AnnuityType, Callable[[AnnuityParameters], float]] = {
            AnnuityType.SIMPLE: self._value_simple,
            AnnuityType.REVERSIBLE: self._value_reversible,
            AnnuityType.TEMPORARY: self._value_temporary,
            AnnuityType.DEFERRED: self._value_deferred,
            AnnuityType.GROWING: self._value_growing,
        }
        missing = set(AnnuityType) - set(self._strategies)
        if missing:
            raise RuntimeError(f"No present value strategy for {sorted(t.value for t in missing)}")

    def present_value(self, params: AnnuityParameters) -> float:
        return self._strategies[params.annuity_type](params)

    def _discounted_sum(self, age: int, sex: str, table: str,
                        first_year: int, last_year: int,
                        cash_flow: Callable[[int], float],
                        discount: Callable[[int], float],
                        early_exit: bool = True) -> float:
        """
        Σ cash_flow(t) × S(t) × discount(t) for t = first_year..last_year.

        With early_exit, accumulation stops after the first year whose
        survival probability is below the threshold.
        """
        survival = self.mortality.survival_vector(age, sex, table, last_year)
        pv = 0.0
        for t in range(first_year, last_year + 1):
            # Years before the first anniversary (negative deferral) are certain
            s = float(survival[t - 1]) if t >= 1 else 1.0
            pv += cash_flow(t) * s * discount(t)
            if early_exit and s < self.config.survival_threshold:
                break
        return pv

    def simple_annuity(self, age: int, sex: str, table: str,
                       amount: float, financial: FinancialEngine) -> float:
        """Whole-life annuity-immediate of `amount` per year."""
        return self._discounted_sum(
            age, sex, table, 1, self.config.max_horizon,
            lambda t: amount, financial.get_discount_factor
        )

    def temporary_annuity(self, age: int, sex: str, table: str, amount: float,
                          financial: FinancialEngine, duration: int) -> float:
        """Life annuity paid for at most `duration` years."""
        return self._discounted_sum(
            age, sex, table, 1, duration,
            lambda t: amount, financial.get_discount_factor, early_exit=False
        )

    def deferred_annuity(self, age: int, sex: str, table: str, amount: float,
                         financial: FinancialEngine, deferral_period: int) -> float:
        """Life annuity whose first payment falls in year deferral_period + 1."""
        return self._discounted_sum(
            age, sex, table, deferral_period + 1, self.config.max_horizon,
            lambda t: amount, financial.get_discount_factor
        )

    def growing_annuity(self, age: int, sex: str, table: str, amount: float,
                        financial: FinancialEngine) -> float:
        """
        Life annuity growing at g per year.

        Payments A·(1+g)^{t-1} are discounted at the growth-adjusted rate
        i' = (i-g)/(1+g).
        """
        return self._discounted_sum(
            age, sex, table, 1, self.config.max_horizon,
            lambda t: amount * financial.get_growth_factor(t - 1),
            financial.get_growth_adjusted_discount_factor
        )

    def reversible_annuity(self, age: int, sex: str, spouse_age: int, spouse_sex: str,
                           table: str, amount: float, financial: FinancialEngine,
                           reversal_rate: float) -> float:
        """
        Primary life annuity plus an adjusted reversion to the spouse.

        PV = simple(primary) + 0.6 × simple(spouse, A × reversal%).
        The 0.6 factor stands in for a joint-survival calculation.
        """
        primary = self.simple_annuity(age, sex, table, amount, financial)
        reversion_amount = amount * (reversal_rate / 100)
        spouse = self.simple_annuity(spouse_age, spouse_sex, table, reversion_amount, financial)
        return primary + spouse * JOINT_LIFE_ADJUSTMENT

    def _value_simple(self, params: AnnuityParameters) -> float:
        return self.simple_annuity(
            params.age, params.sex.value, params.mortality_table,
            params.annual_amount, FinancialEngine(params.interest_rate)
        )

    def _value_reversible(self, params: AnnuityParameters) -> float:
        terms: ReversibleTerms = params.terms
        return self.reversible_annuity(
            params.age, params.sex.value, terms.resolve_spouse_age(params.age),
            params.sex.opposite.value, params.mortality_table, params.annual_amount,
            FinancialEngine(params.interest_rate), terms.reversal_rate
        )

    def _value_temporary(self, params: AnnuityParameters) -> float:
        terms: TemporaryTerms = params.terms
        return self.temporary_annuity(
            params.age, params.sex.value, params.mortality_table,
            params.annual_amount, FinancialEngine(params.interest_rate), terms.duration
        )

    def _value_deferred(self, params: AnnuityParameters) -> float:
        terms: DeferredTerms = params.terms
        return self.deferred_annuity(
            params.age, params.sex.value, params.mortality_table,
            params.annual_amount, FinancialEngine(params.interest_rate), terms.deferral_period
        )

    def _value_growing(self, params: AnnuityParameters) -> float:
        terms: GrowingTerms = params.terms
        return self.growing_annuity(
            params.age, params.sex.value, params.mortality_table, params.annual_amount,
            FinancialEngine(params.interest_rate, growth_rate=terms.growth_rate)
        )


class ProjectionBuilder:
    """Year-by-year expected payments over the projection window."""

    def __init__(self, mortality: MortalityCalculator, config: EngineConfig):
        self.mortality = mortality
        self.config = config

    def projection_years(self, life_expectancy: float) -> int:
        return min(self.config.projection_horizon, math.ceil(life_expectancy))

    def payment_for_year(self, params: AnnuityParameters, year: int) -> float:
        """Unrounded payment due in `year`, zero outside the active window."""
        terms = params.terms
        payment = params.annual_amount
        if isinstance(terms, GrowingTerms):
            payment = params.annual_amount * FinancialEngine(
                params.interest_rate, growth_rate=terms.growth_rate
            ).get_growth_factor(year - 1)
        if isinstance(terms, TemporaryTerms) and year > terms.duration:
            payment = 0.0
        if isinstance(terms, DeferredTerms) and year <= terms.deferral_period:
            payment = 0.0
        return payment

    def build(self, params: AnnuityParameters,
              life_expectancy: float) -> Tuple[Tuple[ProjectionPoint, ...], float]:
        """
        Build projection points and the survival-weighted payment total.

        The running total is accumulated from unrounded payments; only the
        emitted points are rounded.

        Returns:
            (projection points, unrounded total expected payments)
        """
        points: List[ProjectionPoint] = []
        total = 0.0
        years = self.projection_years(life_expectancy)
        survival_by_year = self.mortality.survival_vector(
            params.age, params.sex.value, params.mortality_table, years
        )
        for year in range(1, years + 1):
            survival = float(survival_by_year[year - 1])
            payment = self.payment_for_year(params, year)
            total += payment * survival
            points.append(ProjectionPoint(
                year=year,
                payment=round_currency(payment),
                cumulative_payment=round_currency(total),
                probability=round_half_up(survival, 2),
            ))
        return tuple(points), total


class AnnuityValuationEngine:
    """Life annuity valuation engine."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.mortality = create_mortality_calculator(self.config.default_table)
        self.valuator = LifeAnnuityValuator(self.mortality, self.config)
        self.projector = ProjectionBuilder(self.mortality, self.config)

        logger.info(
            f"AnnuityValuationEngine initialized: horizon={self.config.max_horizon}, "
            f"projection={self.config.projection_horizon}, "
            f"threshold={self.config.survival_threshold}"
        )

    def life_expectancy(self, params: AnnuityParameters) -> float:
        return self.mortality.life_expectancy(
            params.age, params.sex.value, params.mortality_table,
            horizon=self.config.life_expectancy_horizon,
            threshold=self.config.survival_threshold,
        )

    def present_value(self, params: AnnuityParameters) -> float:
        """Unrounded present value of the annuity."""
        return self.valuator.present_value(params)

    def evaluate(self, params: AnnuityParameters) -> AnnuityResult:
        """
        Value one annuity.

        Args:
            params: Parameter record (defaults already applied)

        Returns:
            Fully populated, immutable AnnuityResult
        """
        if not self.mortality.has_curve(params.mortality_table, params.sex.value):
            logger.warning(
                f"Unknown mortality table {params.mortality_table!r}; valuing with "
                f"{self.mortality.default_table.value} male"
            )

        life_expectancy = self.life_expectancy(params)
        pv = self.present_value(params)
        projections, total = self.projector.build(params, life_expectancy)

        result = AnnuityResult(
            present_value=round_currency(pv),
            monthly_payment=round_currency(params.annual_amount / 12),
            total_payments=round_currency(total),
            life_expectancy=life_expectancy,
            projections=projections,
        )
        logger.debug(
            f"Valued {params.annuity_type.value} annuity: age={params.age}, "
            f"PV={result.present_value:,}, e(x)={life_expectancy}"
        )
        return result

    def evaluate_many(self, records: pd.DataFrame,
                      progress_callback: Optional[Callable] = None) -> pd.DataFrame:
        """
        Value every row of a DataFrame of flat parameter records.

        Args:
            records: One row per calculation (calculator form columns)
            progress_callback: Called as callback(processed, total)

        Returns:
            DataFrame with one summary row per record
        """
        rows = []
        total = len(records)
        logger.info(f"Starting bulk valuation: {total} records")

        for processed, (_, row) in enumerate(records.iterrows(), start=1):
            params = build_parameters(row.to_dict())
            result = self.evaluate(params)
            rows.append({
                'AnnuityType': params.annuity_type.value,
                'Age': params.age,
                'Sex': params.sex.value,
                'MortalityTable': params.mortality_table,
                'InterestRate': params.interest_rate,
                'AnnualAmount': params.annual_amount,
                'PresentValue': result.present_value,
                'MonthlyPayment': result.monthly_payment,
                'TotalPayments': result.total_payments,
                'LifeExpectancy': result.life_expectancy,
                'ProjectionYears': len(result.projections),
            })
            if progress_callback:
                progress_callback(processed, total)

        results_df = pd.DataFrame(rows, columns=[
            'AnnuityType', 'Age', 'Sex', 'MortalityTable', 'InterestRate', 'AnnualAmount',
            'PresentValue', 'MonthlyPayment', 'TotalPayments', 'LifeExpectancy', 'ProjectionYears',
        ])
        if total:
            logger.info(f"Bulk valuation complete: total PV={results_df['PresentValue'].sum():,.0f}")
        return results_df


def create_engine(config: Optional[Dict] = None) -> AnnuityValuationEngine:
    return AnnuityValuationEngine(EngineConfig.from_dict(config or {}))


@lru_cache(maxsize=None)
def _default_engine() -> AnnuityValuationEngine:
    return AnnuityValuationEngine()


def evaluate(params: AnnuityParameters) -> AnnuityResult:
    """Value one annuity with the default engine configuration."""
    return _default_engine().evaluate(params)
