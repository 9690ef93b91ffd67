"""HTTP route definitions for the record store."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from app.schemas import BlockRecord
from datastore.ledger import BlockLedger, build_default_ledger

router = APIRouter()


def get_ledger() -> BlockLedger:
    return build_default_ledger()


@router.get(
    "/blocks/{batch_id:path}",
    response_model=List[BlockRecord],
    summary="List every block recorded for a batch, ordered by index.",
)
async def get_blocks(
    batch_id: str,
    ledger: BlockLedger = Depends(get_ledger),
) -> List[BlockRecord]:
    return ledger.blocks_for(batch_id)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
