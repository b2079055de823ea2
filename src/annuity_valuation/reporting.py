"""
annuity_valuation/reporting.py - Data Interchange Exports

Turns valuation results and history records into tables and JSON payloads:
1. Projection table for one result (pandas DataFrame)
2. Summary table for a set of history records
3. JSON export envelope {exportInfo, data} for single and bulk exports
4. CSV / JSON writers and export file naming

Exports only read their inputs; parameters and results are never modified.

Author: Annuity Valuation Project
License: MIT
"""

import json
import pandas as pd
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union
import logging

from . import __version__
from .engine import AnnuityResult
from .history import HistoryRecord
from .parameters import AnnuityParameters, AnnuityType

logger = logging.getLogger(__name__)


APPLICATION_NAME = "annuity-valuation"
BULK_EXPORT_TYPE = "bulk_export"

TYPE_LABELS = {
    AnnuityType.SIMPLE: "Simple life annuity",
    AnnuityType.REVERSIBLE: "Reversible life annuity",
    AnnuityType.TEMPORARY: "Temporary annuity",
    AnnuityType.DEFERRED: "Deferred annuity",
    AnnuityType.GROWING: "Growing annuity",
}

PROJECTION_COLUMNS = ['Year', 'Payment', 'CumulativePayment', 'Probability']
SUMMARY_COLUMNS = [
    'Id', 'AnnuityType', 'Age', 'Sex', 'InterestRate', 'AnnualAmount',
    'PresentValue', 'MonthlyPayment', 'LifeExpectancy', 'Timestamp',
]


def type_label(annuity_type: Union[AnnuityType, str]) -> str:
    """Human-readable label; unknown types are returned unchanged."""
    try:
        return TYPE_LABELS[AnnuityType(annuity_type)]
    except ValueError:
        return str(annuity_type)


def projections_to_dataframe(result: AnnuityResult) -> pd.DataFrame:
    """One row per projection year."""
    return pd.DataFrame(
        [
            {
                'Year': p.year,
                'Payment': p.payment,
                'CumulativePayment': p.cumulative_payment,
                'Probability': p.probability,
            }
            for p in result.projections
        ],
        columns=PROJECTION_COLUMNS,
    )


def history_to_dataframe(records: Iterable[HistoryRecord]) -> pd.DataFrame:
    """Summary table of stored calculations, in the order given."""
    return pd.DataFrame(
        [
            {
                'Id': r.id,
                'AnnuityType': type_label(r.annuity_type),
                'Age': r.parameters.age,
                'Sex': r.parameters.sex.value,
                'InterestRate': r.parameters.interest_rate,
                'AnnualAmount': r.parameters.annual_amount,
                'PresentValue': r.result.present_value,
                'MonthlyPayment': r.result.monthly_payment,
                'LifeExpectancy': r.result.life_expectancy,
                'Timestamp': r.timestamp.isoformat(),
            }
            for r in records
        ],
        columns=SUMMARY_COLUMNS,
    )


def _export_info(export_type: str, timestamp: datetime) -> Dict[str, Any]:
    return {
        'application': APPLICATION_NAME,
        'version': __version__,
        'exportDate': timestamp.isoformat(),
        'type': export_type,
    }


def build_export_payload(params: AnnuityParameters, result: AnnuityResult,
                         timestamp: Optional[datetime] = None) -> Dict[str, Any]:
    """
    JSON envelope for a single calculation.

    Returns:
        {'exportInfo': {...}, 'data': {'form': ..., 'result': ...}}
    """
    timestamp = timestamp or datetime.now(timezone.utc)
    return {
        'exportInfo': _export_info(params.annuity_type.value, timestamp),
        'data': {
            'form': params.to_record(),
            'result': result.to_dict(),
        },
    }


def build_bulk_export_payload(records: Iterable[HistoryRecord],
                              timestamp: Optional[datetime] = None) -> Dict[str, Any]:
    """JSON envelope for a selection of history records."""
    timestamp = timestamp or datetime.now(timezone.utc)
    return {
        'exportInfo': _export_info(BULK_EXPORT_TYPE, timestamp),
        'data': [record.to_dict() for record in records],
    }


def export_filename(annuity_type: Union[AnnuityType, str], fmt: str,
                    day: Optional[date] = None) -> str:
    """
    Export file name, e.g. 'annuity-simple-2025-01-31.json'.

    Bulk exports are named 'annuity-history-<date>.<fmt>'.
    """
    day = day or date.today()
    kind = getattr(annuity_type, 'value', annuity_type)
    if kind == BULK_EXPORT_TYPE:
        kind = 'history'
    return f"annuity-{kind}-{day.isoformat()}.{fmt}"


def export_json(payload: Dict[str, Any], output_path: Union[str, Path]) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open('w', encoding='utf-8') as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
    logger.info(f"JSON export saved: {output_path}")
    return output_path


def export_csv(frame: pd.DataFrame, output_path: Union[str, Path]) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(output_path, index=False)
    logger.info(f"CSV export saved: {output_path} ({len(frame)} rows)")
    return output_path
