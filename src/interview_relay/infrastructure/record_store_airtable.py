from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote
import logging

import requests

from ..config import DEFAULT_AIRTABLE_API_URL
from ..domain.relay_models import StoreRecord
from ..errors import UpstreamError
from .http_session import build_http_session, error_detail


LOG = logging.getLogger("relay.store")


def _quote_formula_value(value: str) -> str:
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_match_formula(match: Mapping[str, str]) -> str:
    """Render exact-match conditions as an Airtable ``filterByFormula``.

    ``{"Stakeholder": "s1", "ProjectID": "p1"}`` becomes
    ``AND({Stakeholder} = "s1", {ProjectID} = "p1")``.
    """
    clauses = [f"{{{field}}} = {_quote_formula_value(value)}" for field, value in match.items()]
    if not clauses:
        return ""
    if len(clauses) == 1:
        return clauses[0]
    return "AND(" + ", ".join(clauses) + ")"


class AirtableRecordStore:
    def __init__(
        self,
        token: str,
        base_id: str,
        api_url: str = DEFAULT_AIRTABLE_API_URL,
        timeout: Tuple[float, float] = (5.0, 120.0),
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = f"{api_url.rstrip('/')}/{base_id}"
        self._timeout = timeout
        self._session = session or build_http_session()
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def _table_url(self, table: str) -> str:
        return f"{self._base_url}/{quote(table, safe='')}"

    def _request(self, method: str, table: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            resp = self._session.request(
                method,
                self._table_url(table),
                headers=self._headers,
                timeout=self._timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as exc:
            LOG.error("airtable_transport_failed", extra={"table": table, "method": method, "err": str(exc)})
            raise UpstreamError("record_store", f"Record store unreachable: {exc}") from exc
        if resp.status_code >= 400:
            detail = error_detail(resp)
            LOG.error(
                "airtable_request_failed",
                extra={"table": table, "method": method, "status": resp.status_code, "detail": detail},
            )
            raise UpstreamError("record_store", f"Record store error: {detail}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError("record_store", "Record store returned invalid JSON") from exc

    @staticmethod
    def _to_record(data: Mapping[str, Any]) -> StoreRecord:
        return StoreRecord(
            id=str(data.get("id")),
            fields=dict(data.get("fields") or {}),
            created_time=data.get("createdTime"),
        )

    def select(
        self,
        table: str,
        match: Mapping[str, str],
        max_records: Optional[int] = None,
    ) -> List[StoreRecord]:
        params: Dict[str, Any] = {}
        formula = build_match_formula(match)
        if formula:
            params["filterByFormula"] = formula
        if max_records is not None:
            params["maxRecords"] = max_records
        # First page only, like the vendor SDK's firstPage().
        data = self._request("GET", table, params=params)
        return [self._to_record(item) for item in data.get("records") or []]

    def create(self, table: str, fields: Mapping[str, Any]) -> StoreRecord:
        data = self._request("POST", table, json={"fields": dict(fields)})
        record = self._to_record(data)
        LOG.debug("airtable_record_created", extra={"table": table, "record_id": record.id})
        return record
