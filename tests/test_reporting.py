"""
tests/test_reporting.py - Export Tests

Covers the projection and history tables, the JSON export envelope, the
CSV/JSON writers and export file naming.

Author: Annuity Valuation Project
License: MIT
"""

import json
from datetime import date, datetime, timezone

import pandas as pd
import pytest

from annuity_valuation import __version__
from annuity_valuation.engine import create_engine
from annuity_valuation.history import CalculationHistory
from annuity_valuation.parameters import AnnuityType, build_parameters
from annuity_valuation.reporting import (
    APPLICATION_NAME,
    PROJECTION_COLUMNS,
    SUMMARY_COLUMNS,
    build_bulk_export_payload,
    build_export_payload,
    export_csv,
    export_filename,
    export_json,
    history_to_dataframe,
    projections_to_dataframe,
    type_label,
)


EXPORTED_AT = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(scope="module")
def engine():
    return create_engine()


@pytest.fixture
def params():
    return build_parameters({
        'annuityType': 'deferred', 'age': 65, 'gender': 'male', 'interestRate': 2.5,
        'annualAmount': 12000, 'mortalityTable': 'TGH05', 'deferralPeriod': 5,
    })


@pytest.fixture
def history(engine, params):
    history = CalculationHistory()
    history.record(params, engine, EXPORTED_AT)
    history.record(build_parameters({
        'annuityType': 'simple', 'age': 70, 'gender': 'female',
        'interestRate': 1.0, 'annualAmount': 6000,
    }), engine, EXPORTED_AT)
    return history


class TestTables:
    """DataFrame views."""

    def test_projection_table(self, engine, params):
        result = engine.evaluate(params)
        frame = projections_to_dataframe(result)
        assert list(frame.columns) == PROJECTION_COLUMNS
        assert len(frame) == 6
        assert list(frame['Payment']) == [0, 0, 0, 0, 0, 12000]
        assert frame['CumulativePayment'].iloc[-1] == result.total_payments

    def test_empty_projection_table(self, engine):
        result = engine.evaluate(build_parameters({
            'age': 100, 'gender': 'male', 'interestRate': 2.5, 'annualAmount': 1000,
        }))
        frame = projections_to_dataframe(result)
        assert frame.empty
        assert list(frame.columns) == PROJECTION_COLUMNS

    def test_history_table(self, history):
        frame = history_to_dataframe(history)
        assert list(frame.columns) == SUMMARY_COLUMNS
        assert list(frame['AnnuityType']) == ['Simple life annuity', 'Deferred annuity']
        assert frame['PresentValue'].iloc[1] == 24690


class TestExportPayload:
    """{exportInfo, data} envelope."""

    def test_single_export(self, engine, params):
        result = engine.evaluate(params)
        payload = build_export_payload(params, result, EXPORTED_AT)
        assert payload['exportInfo'] == {
            'application': APPLICATION_NAME,
            'version': __version__,
            'exportDate': '2025-03-01T09:30:00+00:00',
            'type': 'deferred',
        }
        assert payload['data']['form']['deferralPeriod'] == 5
        assert payload['data']['result']['presentValue'] == 24690
        json.dumps(payload)

    def test_export_does_not_touch_inputs(self, engine, params):
        result = engine.evaluate(params)
        before = (params.model_dump(), result.to_dict())
        payload = build_export_payload(params, result, EXPORTED_AT)
        payload['data']['form']['age'] = 0
        payload['data']['result']['projections'].clear()
        assert (params.model_dump(), result.to_dict()) == before

    def test_bulk_export(self, history):
        payload = build_bulk_export_payload(history.records, EXPORTED_AT)
        assert payload['exportInfo']['type'] == 'bulk_export'
        assert [item['type'] for item in payload['data']] == ['simple', 'deferred']
        json.dumps(payload)

    def test_default_timestamp(self, engine, params):
        payload = build_export_payload(params, engine.evaluate(params))
        assert datetime.fromisoformat(payload['exportInfo']['exportDate']).tzinfo is not None


class TestFileExports:
    """Writers and file naming."""

    def test_export_json(self, engine, params, tmp_path):
        payload = build_export_payload(params, engine.evaluate(params), EXPORTED_AT)
        path = export_json(payload, tmp_path / 'out' / 'export.json')
        with path.open(encoding='utf-8') as handle:
            assert json.load(handle) == payload

    def test_export_csv(self, engine, params, tmp_path):
        frame = projections_to_dataframe(engine.evaluate(params))
        path = export_csv(frame, tmp_path / 'projections.csv')
        loaded = pd.read_csv(path)
        pd.testing.assert_frame_equal(loaded, frame, check_dtype=False)

    @pytest.mark.parametrize("annuity_type,fmt,expected", [
        (AnnuityType.SIMPLE, 'json', 'annuity-simple-2025-03-01.json'),
        ('growing', 'csv', 'annuity-growing-2025-03-01.csv'),
        ('bulk_export', 'json', 'annuity-history-2025-03-01.json'),
    ])
    def test_export_filename(self, annuity_type, fmt, expected):
        assert export_filename(annuity_type, fmt, date(2025, 3, 1)) == expected

    def test_type_labels(self):
        assert type_label(AnnuityType.REVERSIBLE) == 'Reversible life annuity'
        assert type_label('temporary') == 'Temporary annuity'
        assert type_label('unknown') == 'unknown'
