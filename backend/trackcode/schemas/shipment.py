"""
TrackCode Backend — Shipment Schemas
======================================

The tracking code is never part of a request: it is issued by the server
when the shipment is created.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ShipmentCreate(BaseModel):
    client_id: int = Field(gt=0, description="Client the shipment belongs to")
    origin: str = Field(min_length=1, max_length=255)
    destination: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None)


class ShipmentResponse(BaseModel):
    id: int
    client_id: int
    tracking_code: str = Field(description="Immutable tracking code, e.g. ITP-00001")
    origin: str
    destination: str
    description: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
