"""
Local, quota-bounded store of consultation records.

Records live in a single JSON blob owned by a `StorageBackend`. The store is a
convenience cache rather than a system of record: when a write hits the quota it
drops the oldest records and tries once more instead of failing every later save.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import threading
import time
from typing import Callable, List, Optional

from consultation_state import AnalysisResult, ConsultationRecord, DisputeForm

from .errors import (
    CorruptedState,
    StorageBackendError,
    StorageFull,
    StorageUnavailable,
    StorageWriteFailed,
)
from .storage_backend import StorageBackend, WriteStatus

logger = logging.getLogger(__name__)

MIN_EVICTION_BATCH = 5
EVICTION_FRACTION = 0.2


def eviction_batch_size(record_count: int) -> int:
    """At least 5 records or 20% of the store, whichever is larger."""
    return max(MIN_EVICTION_BATCH, math.ceil(EVICTION_FRACTION * record_count))


def prune_oldest(records: List[ConsultationRecord], count: int) -> List[ConsultationRecord]:
    ordered = sorted(records, key=lambda record: record.timestamp)
    return ordered[count:]


def _now_millis() -> int:
    return int(time.time() * 1000)


class LocalRecordStore:
    """Append-only keyed store with oldest-first eviction under quota pressure."""

    def __init__(self, backend: StorageBackend, *, clock: Callable[[], int] = _now_millis) -> None:
        self._backend = backend
        self._clock = clock
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def save(self, form_data: DisputeForm, result: AnalysisResult) -> str:
        """Persist a new record and return its id."""
        return await asyncio.to_thread(self._save_blocking, form_data, result)

    def list(self) -> List[ConsultationRecord]:
        try:
            return self._load()
        except CorruptedState:
            logger.warning("Corrupted consultation history found; treating it as empty.")
            return []
        except OSError as exc:
            logger.warning("Unable to read consultation history: %s", exc)
            return []

    def history(self, search: Optional[str] = None) -> List[ConsultationRecord]:
        """Newest first, optionally filtered on symptoms, issue type, role and core issue."""
        records = sorted(self.list(), key=lambda record: record.timestamp, reverse=True)
        if not search or not search.strip():
            return records
        needle = search.strip().lower()
        return [
            record
            for record in records
            if needle in record.form_data.symptoms.lower()
            or needle in record.form_data.issue_type.lower()
            or needle in record.form_data.role.lower()
            or needle in record.result.coreIssue.lower()
        ]

    def get(self, record_id: str) -> Optional[ConsultationRecord]:
        for record in self.list():
            if record.id == record_id:
                return record
        return None

    def delete(self, record_id: str) -> None:
        with self._lock:
            records = self.list()
            remaining = [record for record in records if record.id != record_id]
            if len(remaining) == len(records):
                logger.debug("Record %s not present; nothing to delete.", record_id)
                return
            status = self._write(remaining)
            if status is not WriteStatus.OK:
                raise StorageWriteFailed("Deleting the consultation record failed.")
            logger.info("Deleted consultation record %s", record_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _save_blocking(self, form_data: DisputeForm, result: AnalysisResult) -> str:
        with self._lock:
            if not self._backend.probe():
                raise StorageUnavailable()

            existing = self.list()
            newest = max((record.timestamp for record in existing), default=0)
            record = ConsultationRecord(
                timestamp=max(self._clock(), newest),
                form_data=form_data,
                result=result,
            )

            status = self._write(existing + [record])
            if status is WriteStatus.OK:
                logger.info("Record saved to local store: %s", record.id)
                return record.id

            if not existing:
                logger.error("Quota exceeded on an empty store; nothing to evict.")
                raise StorageWriteFailed()

            batch = eviction_batch_size(len(existing))
            logger.warning(
                "Storage quota exceeded. Evicting %d of %d records before retrying.",
                batch,
                len(existing),
            )
            survivors = prune_oldest(existing, batch)
            status = self._write(survivors + [record])
            if status is not WriteStatus.OK:
                logger.error("Eviction did not free enough space for record %s.", record.id)
                raise StorageFull()
            logger.info("Record %s saved after evicting %d records.", record.id, batch)
            return record.id

    def _load(self) -> List[ConsultationRecord]:
        raw = self._backend.read_all()
        if not raw:
            return []
        try:
            data = json.loads(raw.decode("utf-8"))
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [ConsultationRecord.from_dict(item) for item in data]
        except (ValueError, KeyError, TypeError, AttributeError, RecursionError) as exc:
            raise CorruptedState() from exc

    def _write(self, records: List[ConsultationRecord]) -> WriteStatus:
        payload = json.dumps([record.to_dict() for record in records], ensure_ascii=False).encode("utf-8")
        try:
            return self._backend.write_all(payload)
        except StorageBackendError as exc:
            logger.error("Storage backend write failed: %s", exc)
            raise StorageWriteFailed() from exc
