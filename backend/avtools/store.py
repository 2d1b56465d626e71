"""
avtools/store.py
Thin client for the Airtable-style record store.

Public API:
    RecordStoreClient.list_records(table, params) -> list[{"id", "fields"}]
    RecordStoreClient.create_record(table, fields) -> {"id", "fields", ...}
    get_store() -> RecordStoreClient      (FastAPI dependency)

One page of results only; no retries, no caching. Every request asks
intermediaries not to cache so moderation changes show up immediately.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .config import AIRTABLE_API_URL, Settings, get_settings
from .errors import StoreRequestFailed
from .timing import timed_block

Record = Dict[str, Any]


class RecordStoreClient:
    def __init__(
        self,
        base_id: str,
        api_key: str,
        api_url: str = AIRTABLE_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_id = base_id
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        # Tests pass httpx.MockTransport here
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "RecordStoreClient":
        return cls(
            settings.base_id,
            settings.api_key,
            api_url=settings.api_url,
            timeout=settings.timeout_seconds,
            **kwargs,
        )

    def _url(self, table: str) -> str:
        return f"{self.api_url}/{self.base_id}/{quote(table, safe='')}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Cache-Control": "no-store",
        }

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    @staticmethod
    def _check(table: str, resp: httpx.Response) -> None:
        if not resp.is_success:
            raise StoreRequestFailed(table, resp.status_code, resp.text[:500])

    def list_records(self, table: str, params: Optional[Dict[str, str]] = None) -> List[Record]:
        """
        GET one page of records. `params` may carry filterByFormula / maxRecords.
        """
        with timed_block("list", table=table), self._client() as client:
            resp = client.get(self._url(table), headers=self._headers(), params=params or {})
        self._check(table, resp)
        return list(resp.json().get("records") or [])

    def create_record(self, table: str, fields: Dict[str, Any]) -> Record:
        with timed_block("create", table=table), self._client() as client:
            resp = client.post(self._url(table), headers=self._headers(), json={"fields": fields})
        self._check(table, resp)
        return resp.json()


def get_store() -> RecordStoreClient:
    """FastAPI dependency; overridden in tests with an in-memory store."""
    return RecordStoreClient.from_settings(get_settings())
