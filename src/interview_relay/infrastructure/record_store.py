from __future__ import annotations

from datetime import UTC, datetime
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Protocol
import logging
import uuid

from ..config import Settings
from ..domain.relay_models import StoreRecord


LOG = logging.getLogger("relay.store")


class RecordStore(Protocol):
    def select(self, table: str, match: Mapping[str, str], max_records: Optional[int] = None) -> List[StoreRecord]: ...

    def create(self, table: str, fields: Mapping[str, Any]) -> StoreRecord: ...


class InMemoryRecordStore:
    """Process-local tables with Airtable-shaped records.

    Used for local development and tests; records keep insertion order, which
    stands in for the external store's default query order.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, List[StoreRecord]] = {}
        self._lock = RLock()

    def _now_iso(self) -> str:
        return datetime.now(UTC).isoformat().replace("+00:00", "Z")

    def _new_id(self) -> str:
        return "rec" + uuid.uuid4().hex[:14]

    def select(
        self,
        table: str,
        match: Mapping[str, str],
        max_records: Optional[int] = None,
    ) -> List[StoreRecord]:
        with self._lock:
            out: List[StoreRecord] = []
            for rec in self._tables.get(table, []):
                if all(rec.fields.get(k) == v for k, v in match.items()):
                    out.append(rec.model_copy(deep=True))
                    if max_records is not None and len(out) >= max_records:
                        break
            return out

    def create(self, table: str, fields: Mapping[str, Any]) -> StoreRecord:
        with self._lock:
            rec = StoreRecord(id=self._new_id(), fields=dict(fields), created_time=self._now_iso())
            self._tables.setdefault(table, []).append(rec)
            return rec.model_copy(deep=True)

    def records(self, table: str) -> List[StoreRecord]:
        with self._lock:
            return [rec.model_copy(deep=True) for rec in self._tables.get(table, [])]


def build_record_store(settings: Settings) -> RecordStore:
    impl = settings.resolved_store_impl()
    if impl == "airtable":
        from .record_store_airtable import AirtableRecordStore

        LOG.info("record_store_selected", extra={"impl": "airtable", "base_id": settings.airtable_base_id})
        return AirtableRecordStore(
            token=settings.airtable_token or "",
            base_id=settings.airtable_base_id or "",
            api_url=settings.airtable_api_url,
            timeout=settings.timeout,
        )
    if impl != "memory":
        raise ValueError(f"Unknown record store implementation: {impl}")
    LOG.warning("record_store_selected", extra={"impl": "memory"})
    return InMemoryRecordStore()
