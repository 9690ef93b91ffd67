from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.schemas import BlockRecord
from settings import get_settings


class DuplicateBlockError(ValueError):
    """Raised when a batch already holds a block with the same index."""


class BlockLedger:

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._batches: Dict[str, Dict[int, BlockRecord]] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def append(self, block: BlockRecord) -> None:
        batch_id = block.batch_no or ""
        with self._lock:
            blocks = self._batches.setdefault(batch_id, {})
            if block.index_num in blocks:
                raise DuplicateBlockError(
                    f"Batch {batch_id!r} already has block #{block.index_num}."
                )
            blocks[block.index_num] = block.model_copy(deep=True)
            self._persist()

    def blocks_for(self, batch_id: str) -> list[BlockRecord]:
        """Return deep copies of a batch's blocks ordered by index."""

        with self._lock:
            blocks = self._batches.get(batch_id, {})
            return [blocks[index].model_copy(deep=True) for index in sorted(blocks)]

    def block_at(self, batch_id: str, index: int) -> Optional[BlockRecord]:
        with self._lock:
            block = self._batches.get(batch_id, {}).get(index)
            return None if block is None else block.model_copy(deep=True)

    def last_block(self, batch_id: str) -> Optional[BlockRecord]:
        with self._lock:
            blocks = self._batches.get(batch_id)
            if not blocks:
                return None
            return blocks[max(blocks)].model_copy(deep=True)

    def next_record_id(self) -> int:
        with self._lock:
            return 1 + sum(len(blocks) for blocks in self._batches.values())

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            batch_id: [blocks[index].model_dump(mode="json") for index in sorted(blocks)]
            for batch_id, blocks in self._batches.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for batch_id, items in data.items():
            blocks = self._batches.setdefault(batch_id, {})
            for payload in items:
                block = BlockRecord.model_validate(payload)
                # Keep the first copy of any index written twice.
                blocks.setdefault(block.index_num, block)


@lru_cache
def build_default_ledger(path: Optional[str] = None) -> BlockLedger:
    settings = get_settings()
    ledger_path = settings.ledger_path if path is None else path
    persistence = Path(ledger_path) if ledger_path else None
    return BlockLedger(persistence_path=persistence)
