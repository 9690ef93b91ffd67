"""Pydantic schemas for the record store HTTP API."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.records import IntegrityFields, Reading, ReadingMetadata


class BlockRecord(BaseModel):
    """One hash-chained reading as exchanged over ``GET /blocks/{batch_id}``."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    id: Union[int, str]
    index_num: int
    batch_no: Optional[str] = None
    container_no: Optional[str] = None
    created_at: Optional[Union[str, float]] = None
    temperature: Optional[float] = None
    alert: Optional[bool] = None
    vaccine_name: Optional[str] = None
    manufacture_name: Optional[str] = None
    shipment_name: Optional[str] = None
    current_location: Optional[str] = None
    payload_hash: str = ""
    prev_hash: str = ""
    hash: str = ""
    payload_data: Dict[str, Any] = Field(default_factory=dict)

    def to_reading(self, batch_id: str) -> Reading:
        """Translate the wire shape into the client-side domain model."""
        captured_at = "" if self.created_at is None else str(self.created_at)
        return Reading(
            id=str(self.id),
            sequence_index=self.index_num,
            batch_id=self.batch_no or batch_id,
            captured_at=captured_at,
            temperature_c=self.temperature,
            alert_flag=self.alert,
            metadata=ReadingMetadata(
                product_name=self.vaccine_name,
                manufacturer=self.manufacture_name,
                carrier=self.shipment_name,
                location=self.current_location,
                container_id=self.container_no,
                batch_label=self.batch_no,
            ),
            integrity=IntegrityFields(
                self_hash=self.hash,
                previous_hash=self.prev_hash,
                payload_hash=self.payload_hash,
            ),
            payload=dict(self.payload_data),
        )
