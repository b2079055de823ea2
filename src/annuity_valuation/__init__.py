"""
Annuity Valuation Engine

Life annuity valuation: present value of simple, reversible, temporary,
deferred and growing annuities, life expectancy from the regulatory
mortality tables (TGH05, TGF05, TV88-90, TH00-02, TF00-02) and a
year-by-year projection of expected payments.

Version: 1.0.0

Author: Annuity Valuation Project
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Annuity Valuation Project"

from .mortality import (
    MortalityCalculator,
    MortalityTable,
    SurvivalCurve,
    create_mortality_calculator,
    get_mortality_calculator,
    list_tables,
)

from .financials import (
    FinancialEngine,
    round_currency,
    round_half_up,
)

from .parameters import (
    AnnuityParameters,
    AnnuityRequest,
    AnnuityType,
    Sex,
    SimpleTerms,
    ReversibleTerms,
    TemporaryTerms,
    DeferredTerms,
    GrowingTerms,
    build_parameters,
)

from .engine import (
    AnnuityValuationEngine,
    AnnuityResult,
    EngineConfig,
    LifeAnnuityValuator,
    ProjectionBuilder,
    ProjectionPoint,
    create_engine,
    evaluate,
)

from .history import (
    CalculationHistory,
    HistoryRecord,
    JsonRecordStore,
)

from .reporting import (
    build_bulk_export_payload,
    build_export_payload,
    export_csv,
    export_filename,
    export_json,
    history_to_dataframe,
    projections_to_dataframe,
    type_label,
)

__all__ = [
    # Main engine
    "AnnuityValuationEngine",
    "create_engine",
    "evaluate",
    "EngineConfig",

    # Parameters and results
    "AnnuityParameters",
    "AnnuityRequest",
    "AnnuityType",
    "Sex",
    "SimpleTerms",
    "ReversibleTerms",
    "TemporaryTerms",
    "DeferredTerms",
    "GrowingTerms",
    "build_parameters",
    "AnnuityResult",
    "ProjectionPoint",

    # Sub-components
    "LifeAnnuityValuator",
    "ProjectionBuilder",

    # Mortality
    "MortalityCalculator",
    "MortalityTable",
    "SurvivalCurve",
    "create_mortality_calculator",
    "get_mortality_calculator",
    "list_tables",

    # Financials
    "FinancialEngine",
    "round_currency",
    "round_half_up",

    # History
    "CalculationHistory",
    "HistoryRecord",
    "JsonRecordStore",

    # Exports
    "build_export_payload",
    "build_bulk_export_payload",
    "export_json",
    "export_csv",
    "export_filename",
    "history_to_dataframe",
    "projections_to_dataframe",
    "type_label",
]
