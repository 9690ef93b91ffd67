"""Synthetic hash-chained readings for the reference record store."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import random
from datetime import datetime, timezone
from typing import Callable, Optional

from app.schemas import BlockRecord
from datastore.ledger import BlockLedger, DuplicateBlockError
from services.classifier import MAX_SAFE, MIN_SAFE, SYNTHESIS_HEADROOM, classify, is_alert

logger = logging.getLogger(__name__)

GENESIS_HASH = "0"
DEFAULT_PAYLOAD = {
    "vaccine_name": "Covishield",
    "manufacture_name": "Serum Institute",
    "shipment_name": "BlueDart",
    "current_location": "Mumbai",
}


def compute_hash(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def chain_hash(index: int, payload_hash: str, prev_hash: str) -> str:
    return compute_hash(f"{index}|{payload_hash}|{prev_hash}")


class BlockGenerator:
    """Appends one reading per step to a single batch in the ledger.

    Resumes after the last block already stored for the batch, so the hash
    chain stays continuous across restarts.
    """

    def __init__(
        self,
        ledger: BlockLedger,
        batch_id: str,
        container_id: str,
        seed: int = 42,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.ledger = ledger
        self.batch_id = batch_id
        self.container_id = container_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        last = ledger.last_block(batch_id)
        if last is None:
            self._index = 1
            self._prev_hash = GENESIS_HASH
        else:
            self._index = last.index_num + 1
            self._prev_hash = last.hash
        self._rng = random.Random(seed + self._index)

    def step(self) -> Optional[BlockRecord]:
        """Generate, chain and store the next block.

        Returns ``None`` when the ledger already holds that index; the chain
        then continues from the stored block.
        """
        temperature = round(self._rng.uniform(0.0, MAX_SAFE + SYNTHESIS_HEADROOM), 2)
        timestamp = self._clock().isoformat()
        payload = {
            **DEFAULT_PAYLOAD,
            "temperature": temperature,
            "container_no": self.container_id,
            "batch_no": self.batch_id,
            "timestamp": timestamp,
        }
        payload_hash = compute_hash(json.dumps(payload, sort_keys=True))
        index = self._index
        block = BlockRecord(
            id=self.ledger.next_record_id(),
            index_num=index,
            batch_no=self.batch_id,
            container_no=self.container_id,
            created_at=timestamp,
            temperature=temperature,
            alert=is_alert(classify(temperature)),
            payload_hash=payload_hash,
            prev_hash=self._prev_hash,
            hash=chain_hash(index, payload_hash, self._prev_hash),
            payload_data=payload,
            **DEFAULT_PAYLOAD,
        )

        self._index += 1
        try:
            self.ledger.append(block)
        except DuplicateBlockError:
            stored = self.ledger.block_at(self.batch_id, index)
            self._prev_hash = stored.hash if stored is not None else block.hash
            logger.warning(
                "Block already exists, skipping insertion",
                extra={"batch_id": self.batch_id, "sequence_index": index},
            )
            return None

        self._prev_hash = block.hash
        logger.info(
            "Inserted block %s | Temp: %.1f°C | Alert: %s",
            index,
            temperature,
            block.alert,
            extra={"batch_id": self.batch_id, "sequence_index": index},
        )
        return block

    async def run(self, interval: float) -> None:
        """Generate a block every ``interval`` seconds until cancelled."""
        logger.info(
            "Starting temperature generator (safe band %.1f-%.1f°C)",
            MIN_SAFE,
            MAX_SAFE,
            extra={"batch_id": self.batch_id},
        )
        while True:
            await asyncio.to_thread(self.step)
            await asyncio.sleep(interval)
