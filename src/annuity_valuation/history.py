"""
annuity_valuation/history.py - Calculation History Store

Keeps the most recent calculations, newest first, and persists them in a
durable key-value record store (a JSON file).

HISTORY RULES:
- Capacity: 50 records; adding to a full history evicts the oldest
- Ordering: most recent first
- Records are {id, type, parameters, result, timestamp} and serialise
  to JSON without loss

Author: Annuity Valuation Project
License: MIT
"""

import json
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union
from dataclasses import dataclass
import logging

from .engine import AnnuityResult, AnnuityValuationEngine
from .parameters import AnnuityParameters, AnnuityType, parse_annuity_type

logger = logging.getLogger(__name__)


HISTORY_CAPACITY = 50
HISTORY_KEY = "calculation-history"


@dataclass(frozen=True)
class HistoryRecord:
    """One stored calculation."""
    id: str
    annuity_type: AnnuityType
    parameters: AnnuityParameters
    result: AnnuityResult
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.annuity_type.value,
            'parameters': self.parameters.model_dump(mode='json'),
            'result': self.result.to_dict(),
            'timestamp': self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryRecord":
        return cls(
            id=str(data['id']),
            annuity_type=parse_annuity_type(data['type']),
            parameters=AnnuityParameters.model_validate(data['parameters']),
            result=AnnuityResult.from_dict(data['result']),
            timestamp=datetime.fromisoformat(data['timestamp']),
        )


def new_record_id() -> str:
    return secrets.token_hex(8)


class JsonRecordStore:
    """
    Durable key-value store backed by a single JSON file.

    Each key maps to a JSON-serialisable value. The file is rewritten on
    every set().
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with self.path.open('r', encoding='utf-8') as handle:
            return json.load(handle)

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with tmp_path.open('w', encoding='utf-8') as handle:
            json.dump(data, handle, indent=2)
        tmp_path.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class CalculationHistory:
    """
    Bounded, most-recent-first list of calculations.

    Attributes:
        capacity: Maximum number of records kept
    """

    def __init__(self, records: Optional[Iterable[HistoryRecord]] = None,
                 capacity: int = HISTORY_CAPACITY):
        self.capacity = capacity
        self._records: List[HistoryRecord] = list(records or [])[:capacity]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[HistoryRecord]:
        return iter(self._records)

    @property
    def records(self) -> List[HistoryRecord]:
        return list(self._records)

    def add(self, record: HistoryRecord) -> HistoryRecord:
        """Insert a record at the front, evicting the oldest beyond capacity."""
        self._records.insert(0, record)
        if len(self._records) > self.capacity:
            evicted = self._records[self.capacity:]
            del self._records[self.capacity:]
            logger.debug(f"History full: evicted {len(evicted)} record(s)")
        return record

    def record(self, params: AnnuityParameters, engine: AnnuityValuationEngine,
               timestamp: Optional[datetime] = None) -> HistoryRecord:
        """
        Value the parameters and store the calculation.

        Args:
            params: Parameter record
            engine: Engine used for the valuation
            timestamp: Calculation time (defaults to now, UTC)

        Returns:
            The stored record
        """
        result = engine.evaluate(params)
        return self.add(HistoryRecord(
            id=new_record_id(),
            annuity_type=params.annuity_type,
            parameters=params,
            result=result,
            timestamp=timestamp or datetime.now(timezone.utc),
        ))

    def get(self, record_id: str) -> Optional[HistoryRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def delete(self, record_id: str) -> bool:
        """Delete one record. Returns False when the id is unknown."""
        before = len(self._records)
        self._records = [r for r in self._records if r.id != record_id]
        return len(self._records) < before

    def delete_many(self, record_ids: Iterable[str]) -> int:
        """Delete several records; returns how many were removed."""
        ids = set(record_ids)
        before = len(self._records)
        self._records = [r for r in self._records if r.id not in ids]
        return before - len(self._records)

    def clear(self) -> None:
        self._records = []

    def filter(self, annuity_type: Optional[Union[AnnuityType, str]] = None,
               search: Optional[str] = None) -> List[HistoryRecord]:
        """
        Records matching a type and/or a search term.

        The search term matches the annuity type name (case-insensitive)
        or the digits of the annual amount.
        """
        selected = self._records
        if search:
            term = search.lower()
            selected = [
                r for r in selected
                if term in r.annuity_type.value
                or term in _amount_text(r.parameters.annual_amount)
            ]
        if annuity_type is not None and annuity_type != 'all':
            try:
                wanted = AnnuityType(annuity_type)
            except ValueError:
                logger.debug(f"Unknown annuity type filter {annuity_type!r}; no records match")
                return []
            selected = [r for r in selected if r.annuity_type is wanted]
        return list(selected)

    def to_list(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self._records]

    @classmethod
    def from_list(cls, data: Iterable[Dict[str, Any]],
                  capacity: int = HISTORY_CAPACITY) -> "CalculationHistory":
        return cls([HistoryRecord.from_dict(item) for item in data], capacity=capacity)

    def save(self, store: JsonRecordStore, key: str = HISTORY_KEY) -> None:
        store.set(key, self.to_list())
        logger.info(f"Saved {len(self)} history record(s) to {store.path}")

    @classmethod
    def load(cls, store: JsonRecordStore, key: str = HISTORY_KEY,
             capacity: int = HISTORY_CAPACITY) -> "CalculationHistory":
        history = cls.from_list(store.get(key, []), capacity=capacity)
        logger.info(f"Loaded {len(history)} history record(s) from {store.path}")
        return history


def _amount_text(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)
