"""
annuity_valuation/parameters.py - Annuity Parameter Records

DESIGN PRINCIPLE: one closed set of annuity types.
Each annuity type carries only the optional terms it uses; the engine
dispatches on the type and never inspects fields that do not belong to it.

TAGGED VARIANTS (discriminated on `kind`):
- SimpleTerms: lifetime annuity, no extra terms
- ReversibleTerms: reversal rate and spouse age
- TemporaryTerms: payment duration
- DeferredTerms: deferral period
- GrowingTerms: annual growth rate

Two entry points build parameters:
- build_parameters(): lenient builder for flat records, applies defaults
- AnnuityRequest: form-layer validation with the calculator's input ranges

Author: Annuity Valuation Project
License: MIT
"""

from typing import Any, Dict, Literal, Mapping, Optional, Union
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class AnnuityType(str, Enum):
    """Supported annuity types."""
    SIMPLE = "simple"
    REVERSIBLE = "reversible"
    TEMPORARY = "temporary"
    DEFERRED = "deferred"
    GROWING = "growing"


class Sex(str, Enum):
    """Sex of an annuitant."""
    MALE = "male"
    FEMALE = "female"

    @property
    def opposite(self) -> "Sex":
        return Sex.FEMALE if self is Sex.MALE else Sex.MALE


# Documented defaults for the type-specific terms
DEFAULT_DURATION = 30
DEFAULT_DEFERRAL_PERIOD = 0
DEFAULT_GROWTH_RATE = 0.0
DEFAULT_REVERSAL_RATE = 60.0
DEFAULT_SPOUSE_AGE_GAP = 3
DEFAULT_MORTALITY_TABLE = "TGH05"


# =============================================================================
# TYPE-SPECIFIC TERMS
# =============================================================================

class SimpleTerms(BaseModel):
    """Lifetime annuity paid while the annuitant is alive."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["simple"] = "simple"


class ReversibleTerms(BaseModel):
    """Lifetime annuity with a reduced reversion to a surviving spouse."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["reversible"] = "reversible"
    reversal_rate: float = Field(
        default=DEFAULT_REVERSAL_RATE,
        description="Share of the payment continued to the spouse, in percent"
    )
    spouse_age: Optional[int] = Field(
        default=None,
        description="Spouse age; None means primary age minus 3"
    )

    def resolve_spouse_age(self, primary_age: int) -> int:
        if self.spouse_age is None:
            return primary_age - DEFAULT_SPOUSE_AGE_GAP
        return self.spouse_age


class TemporaryTerms(BaseModel):
    """Annuity paid for a fixed number of years at most."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["temporary"] = "temporary"
    duration: int = Field(default=DEFAULT_DURATION, description="Payment period in years")


class DeferredTerms(BaseModel):
    """Lifetime annuity starting after a waiting period."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["deferred"] = "deferred"
    deferral_period: int = Field(default=DEFAULT_DEFERRAL_PERIOD, description="Waiting period in years")


class GrowingTerms(BaseModel):
    """Lifetime annuity increasing by a fixed percentage every year."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["growing"] = "growing"
    growth_rate: float = Field(default=DEFAULT_GROWTH_RATE, description="Annual increase in percent")


AnnuityTerms = Union[SimpleTerms, ReversibleTerms, TemporaryTerms, DeferredTerms, GrowingTerms]


# =============================================================================
# PARAMETER RECORD
# =============================================================================

class AnnuityParameters(BaseModel):
    """
    Input record of one valuation.

    No range checks are applied here: the engine accepts any syntactically
    valid record. Range validation belongs to AnnuityRequest.
    """
    model_config = ConfigDict(frozen=True)

    age: int = Field(..., description="Age of the primary annuitant")
    sex: Sex = Field(..., description="Sex of the primary annuitant")
    interest_rate: float = Field(..., description="Annual technical interest rate in percent")
    annual_amount: float = Field(..., description="Annual payment amount")
    mortality_table: str = Field(default=DEFAULT_MORTALITY_TABLE)
    terms: AnnuityTerms = Field(default_factory=SimpleTerms, discriminator="kind")

    @property
    def annuity_type(self) -> AnnuityType:
        return AnnuityType(self.terms.kind)

    def to_record(self) -> Dict[str, Any]:
        """
        Flat record in the calculator's form shape (camelCase keys).

        Only the terms of the parameter's own type are included.
        """
        record = {
            'annuityType': self.annuity_type.value,
            'age': self.age,
            'gender': self.sex.value,
            'interestRate': self.interest_rate,
            'annualAmount': self.annual_amount,
            'mortalityTable': self.mortality_table,
        }
        terms = self.terms
        if isinstance(terms, ReversibleTerms):
            record['reversalRate'] = terms.reversal_rate
            record['spouseAge'] = terms.resolve_spouse_age(self.age)
        elif isinstance(terms, TemporaryTerms):
            record['duration'] = terms.duration
        elif isinstance(terms, DeferredTerms):
            record['deferralPeriod'] = terms.deferral_period
        elif isinstance(terms, GrowingTerms):
            record['growthRate'] = terms.growth_rate
        return record


# =============================================================================
# BUILDER FOR FLAT RECORDS
# =============================================================================

_FIELD_ALIASES = {
    'annuityType': 'annuity_type',
    'type': 'annuity_type',
    'gender': 'sex',
    'interestRate': 'interest_rate',
    'annualAmount': 'annual_amount',
    'mortalityTable': 'mortality_table',
    'deferralPeriod': 'deferral_period',
    'growthRate': 'growth_rate',
    'reversalRate': 'reversal_rate',
    'spouseAge': 'spouse_age',
}


def _normalize_keys(record: Mapping[str, Any]) -> Dict[str, Any]:
    normalized = {}
    for key, value in record.items():
        normalized[_FIELD_ALIASES.get(key, key)] = value
    return normalized


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and value != value:
        return False
    return True


def _pick(record: Dict[str, Any], key: str, default: Any) -> Any:
    value = record.get(key)
    return value if _present(value) else default


def parse_annuity_type(value: Any) -> AnnuityType:
    """Parse an annuity type; unknown or missing values mean simple."""
    if isinstance(value, AnnuityType):
        return value
    try:
        return AnnuityType(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown annuity type {value!r}; valuing as simple")
        return AnnuityType.SIMPLE


def parse_sex(value: Any) -> Sex:
    """Parse a sex code ('male', 'female', 'M', 'F'); unknown values mean male."""
    if isinstance(value, Sex):
        return value
    key = str(value).strip().upper()
    if key in ('F', 'FEMALE'):
        return Sex.FEMALE
    if key not in ('M', 'MALE'):
        logger.warning(f"Unknown sex {value!r}; using male")
    return Sex.MALE


def build_terms(annuity_type: AnnuityType, record: Dict[str, Any], age: int) -> AnnuityTerms:
    """
    Build the terms variant for an annuity type from a normalized record.

    Absent optional fields take the documented defaults.
    """
    if annuity_type is AnnuityType.REVERSIBLE:
        return ReversibleTerms(
            reversal_rate=float(_pick(record, 'reversal_rate', DEFAULT_REVERSAL_RATE)),
            spouse_age=int(_pick(record, 'spouse_age', age - DEFAULT_SPOUSE_AGE_GAP)),
        )
    if annuity_type is AnnuityType.TEMPORARY:
        return TemporaryTerms(duration=int(_pick(record, 'duration', DEFAULT_DURATION)))
    if annuity_type is AnnuityType.DEFERRED:
        return DeferredTerms(
            deferral_period=int(_pick(record, 'deferral_period', DEFAULT_DEFERRAL_PERIOD))
        )
    if annuity_type is AnnuityType.GROWING:
        return GrowingTerms(growth_rate=float(_pick(record, 'growth_rate', DEFAULT_GROWTH_RATE)))
    return SimpleTerms()


def build_parameters(record: Mapping[str, Any]) -> AnnuityParameters:
    """
    Build AnnuityParameters from a flat record.

    Accepts the calculator's camelCase form keys (annuityType, gender,
    interestRate, ...) or their snake_case names. Missing optional fields
    get the documented defaults: duration=30, deferral_period=0,
    growth_rate=0, reversal_rate=60, spouse_age=age-3.

    Args:
        record: Mapping with at least age, sex/gender, interest rate and
                annual amount

    Returns:
        Immutable AnnuityParameters
    """
    data = _normalize_keys(record)
    age = int(data['age'])
    annuity_type = parse_annuity_type(data.get('annuity_type'))

    return AnnuityParameters(
        age=age,
        sex=parse_sex(data.get('sex')),
        interest_rate=float(data['interest_rate']),
        annual_amount=float(data['annual_amount']),
        mortality_table=str(_pick(data, 'mortality_table', DEFAULT_MORTALITY_TABLE)),
        terms=build_terms(annuity_type, data, age),
    )


# =============================================================================
# FORM-LAYER VALIDATION
# =============================================================================

class AnnuityRequest(BaseModel):
    """
    Calculator form input, validated with the form's ranges.

    Invalid input raises pydantic.ValidationError before any valuation runs.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    annuity_type: AnnuityType = Field(default=AnnuityType.SIMPLE, alias='annuityType')
    age: int = Field(..., ge=18, le=100)
    sex: Sex = Field(..., alias='gender')
    interest_rate: float = Field(..., ge=0, le=10, alias='interestRate')
    annual_amount: float = Field(..., ge=1, alias='annualAmount')
    mortality_table: Literal["TGH05", "TGF05", "TV88-90", "TH00-02", "TF00-02"] = Field(
        default="TGH05", alias='mortalityTable'
    )
    duration: Optional[int] = Field(default=None, ge=1, le=50)
    deferral_period: Optional[int] = Field(default=None, ge=0, le=30, alias='deferralPeriod')
    growth_rate: Optional[float] = Field(default=None, ge=0, le=10, alias='growthRate')
    reversal_rate: Optional[float] = Field(default=None, ge=0, le=100, alias='reversalRate')
    spouse_age: Optional[int] = Field(default=None, ge=18, le=100, alias='spouseAge')

    def to_parameters(self) -> AnnuityParameters:
        """Convert validated form input to engine parameters."""
        return build_parameters(self.model_dump())
