"""HTTP client for the remote record store."""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from app.schemas import BlockRecord
from models.records import Reading

logger = logging.getLogger(__name__)

PROBE_BATCH_ID = "test"

_records_adapter = TypeAdapter(List[BlockRecord])


class FetchFailure(str, Enum):
    unreachable = "unreachable"
    server_rejected = "server_rejected"
    malformed_response = "malformed_response"


class FetchError(Exception):
    """Raised when a batch could not be fetched from the store."""

    def __init__(
        self,
        reason: FetchFailure,
        status_code: Optional[int] = None,
        detail: str = "",
    ) -> None:
        self.reason = reason
        self.status_code = status_code
        self.detail = detail
        message = reason.value
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidBatchId(ValueError):
    """Raised for a batch identifier that must never be sent to the store."""


def normalize_batch_id(batch_id: Optional[str]) -> str:
    candidate = (batch_id or "").strip()
    if not candidate:
        raise InvalidBatchId("Batch identifier must not be empty.")
    return candidate


class RecordStoreClient:
    """Async client for ``GET /blocks/{batch_id}`` and the connectivity probe."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_batch(self, batch_id: str) -> List[Reading]:
        """Return every reading currently stored for ``batch_id``.

        A successful response with no records yields an empty list. Any
        failure raises :class:`FetchError`.
        """
        batch_id = normalize_batch_id(batch_id)
        try:
            response = await self._client.get(f"/blocks/{quote(batch_id, safe='')}")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                FetchFailure.server_rejected,
                status_code=exc.response.status_code,
                detail=self._error_detail(exc.response),
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(FetchFailure.unreachable, detail=str(exc)) from exc

        try:
            records = _records_adapter.validate_json(response.content)
        except ValidationError as exc:
            raise FetchError(
                FetchFailure.malformed_response,
                detail=f"{exc.error_count()} validation error(s)",
            ) from exc
        return [record.to_reading(batch_id) for record in records]

    async def ping(self) -> bool:
        """Report whether the store is reachable. Never raises."""
        try:
            response = await self._client.get(f"/blocks/{PROBE_BATCH_ID}")
        except httpx.HTTPError as exc:
            logger.debug("Connectivity probe failed: %s", exc, extra={"reason": "unreachable"})
            return False
        return response.is_success

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text.strip()
        if isinstance(data, dict):
            detail = data.get("detail") or data.get("message") or data.get("error")
            if detail:
                return str(detail)
        return response.text.strip()
