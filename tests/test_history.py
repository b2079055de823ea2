"""
tests/test_history.py - Calculation History Tests

Covers capacity and ordering, search and filtering, deletion, and the
JSON record store.

Author: Annuity Valuation Project
License: MIT
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from annuity_valuation.engine import create_engine
from annuity_valuation.history import (
    HISTORY_CAPACITY,
    HISTORY_KEY,
    CalculationHistory,
    HistoryRecord,
    JsonRecordStore,
)
from annuity_valuation.parameters import AnnuityType, build_parameters


START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def form(annuity_type='simple', amount=12000, **extra):
    record = {
        'annuityType': annuity_type, 'age': 65, 'gender': 'male',
        'interestRate': 2.5, 'annualAmount': amount, 'mortalityTable': 'TGH05',
    }
    record.update(extra)
    return build_parameters(record)


@pytest.fixture(scope="module")
def engine():
    return create_engine()


@pytest.fixture
def history(engine):
    history = CalculationHistory()
    history.record(form('simple', 12000), engine, START)
    history.record(form('temporary', 8000, duration=5), engine, START + timedelta(minutes=1))
    history.record(form('growing', 15000, growthRate=2), engine, START + timedelta(minutes=2))
    history.record(form('simple', 9000), engine, START + timedelta(minutes=3))
    return history


class TestCapacityAndOrdering:
    """At most 50 records, most recent first."""

    def test_most_recent_first(self, history):
        timestamps = [r.timestamp for r in history]
        assert timestamps == sorted(timestamps, reverse=True)
        assert history.records[0].parameters.annual_amount == 9000

    def test_capacity(self, engine):
        history = CalculationHistory()
        params = form()
        for i in range(HISTORY_CAPACITY + 5):
            history.record(params, engine, START + timedelta(seconds=i))
        assert len(history) == HISTORY_CAPACITY
        assert history.records[0].timestamp == START + timedelta(seconds=HISTORY_CAPACITY + 4)
        assert history.records[-1].timestamp == START + timedelta(seconds=5)

    def test_custom_capacity(self, engine):
        history = CalculationHistory(capacity=2)
        for amount in (1000, 2000, 3000):
            history.record(form(amount=amount), engine)
        assert [r.parameters.annual_amount for r in history] == [3000, 2000]

    def test_record_ids_unique(self, history):
        ids = [r.id for r in history]
        assert len(set(ids)) == len(ids)

    def test_record_carries_result(self, history, engine):
        record = history.records[-1]
        assert record.annuity_type is AnnuityType.SIMPLE
        assert record.result == engine.evaluate(record.parameters)
        assert record.result.present_value == 61982

    def test_records_is_a_copy(self, history):
        history.records.clear()
        assert len(history) == 4


class TestFilterAndSearch:
    """Filtering by type and searching by type name or amount."""

    def test_no_criteria(self, history):
        assert len(history.filter()) == 4
        assert len(history.filter('all')) == 4

    def test_filter_by_type(self, history):
        selected = history.filter(AnnuityType.SIMPLE)
        assert [r.parameters.annual_amount for r in selected] == [9000, 12000]
        assert len(history.filter('temporary')) == 1

    def test_search_type_name(self, history):
        assert len(history.filter(search='GROW')) == 1

    def test_search_amount(self, history):
        selected = history.filter(search='8000')
        assert len(selected) == 1
        assert selected[0].annuity_type is AnnuityType.TEMPORARY

    def test_search_amount_substring(self, history):
        """'000' appears in every amount."""
        assert len(history.filter(search='000')) == 4

    def test_search_and_type_combined(self, history):
        assert len(history.filter('simple', search='12')) == 1
        assert history.filter('growing', search='9000') == []

    def test_unknown_type_matches_nothing(self, history):
        assert history.filter('bogus') == []
        assert history.filter('bogus', search='12000') == []
        assert len(history) == 4

    def test_filter_keeps_order(self, history):
        selected = history.filter(search='0')
        assert selected == history.records


class TestDeletion:
    """Single and bulk deletion."""

    def test_delete(self, history):
        target = history.records[1]
        assert history.delete(target.id) is True
        assert history.get(target.id) is None
        assert len(history) == 3

    def test_delete_unknown(self, history):
        assert history.delete('missing') is False
        assert len(history) == 4

    def test_delete_many(self, history):
        ids = [r.id for r in history.records[:2]] + ['missing']
        assert history.delete_many(ids) == 2
        assert len(history) == 2

    def test_clear(self, history):
        history.clear()
        assert len(history) == 0


class TestRecordSerialization:
    """Records survive a JSON round trip."""

    def test_to_dict_shape(self, history):
        data = history.records[0].to_dict()
        assert set(data) == {'id', 'type', 'parameters', 'result', 'timestamp'}
        assert data['type'] == 'simple'
        assert data['timestamp'] == '2025-01-01T12:03:00+00:00'
        json.dumps(data)

    def test_from_dict(self, history):
        for record in history:
            assert HistoryRecord.from_dict(json.loads(json.dumps(record.to_dict()))) == record


class TestJsonRecordStore:
    """Durable key-value store on a JSON file."""

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonRecordStore(tmp_path / 'history.json')
        assert store.get(HISTORY_KEY) is None
        assert len(CalculationHistory.load(store)) == 0

    def test_set_get(self, tmp_path):
        store = JsonRecordStore(tmp_path / 'nested' / 'store.json')
        store.set('a', [1, 2])
        store.set('b', {'x': 1})
        assert store.get('a') == [1, 2]
        assert JsonRecordStore(store.path).get('b') == {'x': 1}

    def test_delete_key(self, tmp_path):
        store = JsonRecordStore(tmp_path / 'store.json')
        store.set('a', 1)
        store.delete('a')
        store.delete('never-set')
        assert store.get('a', 'gone') == 'gone'

    def test_save_and_load(self, history, tmp_path):
        store = JsonRecordStore(tmp_path / 'history.json')
        history.save(store)
        loaded = CalculationHistory.load(store)
        assert loaded.records == history.records

    def test_file_layout(self, history, tmp_path):
        path = tmp_path / 'history.json'
        history.save(JsonRecordStore(path))
        with path.open() as handle:
            data = json.load(handle)
        assert list(data) == [HISTORY_KEY]
        assert len(data[HISTORY_KEY]) == 4

    def test_load_truncates_to_capacity(self, history, tmp_path):
        store = JsonRecordStore(tmp_path / 'history.json')
        history.save(store)
        assert len(CalculationHistory.load(store, capacity=2)) == 2
