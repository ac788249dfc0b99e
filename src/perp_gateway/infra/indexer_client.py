"""
Minimal async GraphQL client for the subgraph indexer.

The indexer is best-effort: `query` raises classified errors for callers that
need the data, `try_query` returns an IndexerResult for callers that can do
without it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from perp_gateway.core.errors import IndexerQueryError, IndexerUnavailableError
from perp_gateway.core.types import IndexedAccountRecord
from perp_gateway.infra.logging_cfg import log_event

log = logging.getLogger("perp_gateway")

INDEXER_TIMEOUT_SEC = 30.0

MARGIN_ACCOUNT_QUERY = """
query ($userAddr: ID!, $perpID: ID!) {
  marginAccounts(where: { user: $userAddr, perpetual: $perpID }) {
    id
    user { id }
    position
    entryValue
    entryFunding
  }
}
"""


@dataclass
class IndexerResult:
    """Outcome of a best-effort indexer read."""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.success and self.data is not None


class IndexerClient:
    def __init__(
        self,
        url: Optional[str],
        timeout: float = INDEXER_TIMEOUT_SEC,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        # If a shared client is passed in, we won't close it in close(); otherwise we own the client.
        if client is not None:
            self.client = client
            self._owns_client = False
        else:
            self.client = httpx.AsyncClient(timeout=timeout, http2=True)
            self._owns_client = True
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def query(self, document: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.url:
            raise IndexerUnavailableError(detail="subgraph url is not configured")
        try:
            resp = await self.client.post(
                self.url,
                json={"query": document, "variables": variables or {}},
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as exc:
            raise IndexerUnavailableError(detail=str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise IndexerUnavailableError(detail=f"invalid JSON response: {exc}") from exc

        if not isinstance(body, dict):
            raise IndexerUnavailableError(detail="response is not an object")
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            message = first.get("message") if isinstance(first, dict) else str(first)
            if message:
                raise IndexerQueryError(detail=str(message))
        data = body.get("data")
        if not isinstance(data, dict):
            raise IndexerUnavailableError(detail="response carries no data")
        return data

    async def try_query(self, document: str, variables: Optional[Dict[str, Any]] = None) -> IndexerResult:
        try:
            return IndexerResult(success=True, data=await self.query(document, variables))
        except IndexerUnavailableError as exc:
            log_event(log, "indexer_unavailable", level=logging.WARNING, err=exc.detail or exc.reason)
            return IndexerResult(success=False, error=exc.detail or exc.reason)

    async def margin_account(self, trader: str, pool_address: str, perpetual_index: int) -> IndexerResult:
        """
        Fetch the indexed margin account of `trader` in one perpetual.

        Success with data=None means the indexer has no record for this account.
        """
        result = await self.try_query(
            MARGIN_ACCOUNT_QUERY,
            {
                "userAddr": trader.lower(),
                "perpID": f"{pool_address.lower()}-{perpetual_index}",
            },
        )
        if not result.success:
            return result
        accounts = result.data.get("marginAccounts")
        if not isinstance(accounts, list):
            return IndexerResult(success=False, error="marginAccounts missing from response")
        if not accounts:
            return IndexerResult(success=True, data=None)
        try:
            record = _parse_margin_account(accounts[0])
        except (KeyError, TypeError, InvalidOperation) as exc:
            log_event(log, "indexer_malformed_record", level=logging.WARNING, err=str(exc))
            return IndexerResult(success=False, error=f"malformed margin account: {exc}")
        return IndexerResult(success=True, data=record)


def _parse_margin_account(raw: Dict[str, Any]) -> IndexedAccountRecord:
    return IndexedAccountRecord(
        position=Decimal(str(raw["position"])),
        entry_value=Decimal(str(raw["entryValue"])),
        entry_funding=Decimal(str(raw["entryFunding"])),
    )
