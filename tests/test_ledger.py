"""Unit tests for the block ledger backing the reference record store."""

from __future__ import annotations

import json

import pytest

from app.schemas import BlockRecord
from datastore.ledger import BlockLedger, DuplicateBlockError


def _block(index: int, batch: str = "VAC-1", temperature: float = 5.0) -> BlockRecord:
    return BlockRecord(
        id=index,
        index_num=index,
        batch_no=batch,
        container_no="CONT-1",
        created_at="2024-01-01T00:00:00+00:00",
        temperature=temperature,
        alert=False,
        payload_hash=f"p{index}",
        prev_hash=f"h{index - 1}",
        hash=f"h{index}",
        payload_data={"temperature": temperature},
    )


def test_blocks_are_returned_in_index_order_as_copies() -> None:
    ledger = BlockLedger()
    ledger.append(_block(2))
    ledger.append(_block(1))

    blocks = ledger.blocks_for("VAC-1")

    assert [block.index_num for block in blocks] == [1, 2]
    blocks[0].payload_data["temperature"] = 99.0
    assert ledger.blocks_for("VAC-1")[0].payload_data["temperature"] == 5.0


def test_unknown_batch_is_empty() -> None:
    ledger = BlockLedger()
    ledger.append(_block(1))

    assert ledger.blocks_for("other") == []
    assert ledger.last_block("other") is None


def test_duplicate_index_is_rejected() -> None:
    ledger = BlockLedger()
    ledger.append(_block(1))

    with pytest.raises(DuplicateBlockError):
        ledger.append(_block(1, temperature=7.0))

    assert ledger.blocks_for("VAC-1")[0].temperature == 5.0


def test_same_index_in_different_batches_is_allowed() -> None:
    ledger = BlockLedger()
    ledger.append(_block(1, batch="A"))
    ledger.append(_block(1, batch="B"))

    assert ledger.next_record_id() == 3


def test_last_block_is_highest_index() -> None:
    ledger = BlockLedger()
    for index in (1, 3, 2):
        ledger.append(_block(index))

    last = ledger.last_block("VAC-1")

    assert last is not None
    assert last.index_num == 3


def test_append_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "ledger.json"
    ledger = BlockLedger(persistence_path=path)
    ledger.append(_block(1))
    ledger.append(_block(2))

    payload = json.loads(path.read_text())
    assert [item["index_num"] for item in payload["VAC-1"]] == [1, 2]

    reloaded = BlockLedger(persistence_path=path)
    assert reloaded.blocks_for("VAC-1") == ledger.blocks_for("VAC-1")


def test_corrupt_file_starts_empty(tmp_path) -> None:
    path = tmp_path / "ledger.json"
    path.write_text("{not json")

    ledger = BlockLedger(persistence_path=path)

    assert ledger.blocks_for("VAC-1") == []


def test_block_at_returns_a_copy_of_one_index() -> None:
    ledger = BlockLedger()
    ledger.append(_block(1))
    ledger.append(_block(2))

    block = ledger.block_at("VAC-1", 2)

    assert block is not None
    assert block.hash == "h2"
    assert ledger.block_at("VAC-1", 3) is None
    assert ledger.block_at("other", 1) is None
