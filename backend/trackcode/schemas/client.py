"""
TrackCode Backend — Client & Prefix Schemas
=============================================

What:  Request/response models for client creation, prefix edits and the
       prefix helper endpoints used by the client form.

Prefix format rules are NOT enforced here. A manual prefix arrives as a
plain string and goes through validate_prefix_format in the service, so the
user gets the specific rule message with a 400 instead of a generic 422.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class ClientCreate(BaseModel):
    """
    Body of POST /api/clients.

    Omit `prefix` (or send null) for auto mode: the service derives one
    from the name and resolves collisions. Send a value for manual mode.
    """
    name: str = Field(min_length=1, max_length=255, description="Company name")
    prefix: Optional[str] = Field(
        default=None,
        description="Manual tracking prefix (2-10 chars, A-Z and 0-9)",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped


class PrefixChange(BaseModel):
    """Body of PUT /api/clients/{id}/prefix."""
    prefix: str = Field(description="New tracking prefix")


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class ClientResponse(BaseModel):
    id: int = Field(description="Client identifier")
    name: str = Field(description="Company name")
    prefix: Optional[str] = Field(default=None, description="Tracking prefix")
    last_sequence: int = Field(description="Last issued tracking sequence number")
    created_at: datetime = Field(description="Creation timestamp (UTC)")

    model_config = {"from_attributes": True}


class PrefixSuggestion(BaseModel):
    """
    Returned by GET /api/prefixes/suggest.

    `suggested` was free when computed; the unique constraint still decides
    when the client is actually saved.
    """
    name: str
    base_prefix: str = Field(description="Prefix derived from the name alone")
    suggested: str = Field(description="First free candidate")
    base_available: bool


class PrefixCheckResponse(BaseModel):
    """Returned by GET /api/prefixes/check."""
    prefix: str = Field(description="Normalized prefix (trimmed, upper-case)")
    valid: bool = Field(description="Passes the format rules")
    available: bool = Field(description="Not held by another client")
    error: Optional[str] = Field(default=None, description="Format rule that failed")


class PrefixAssignment(BaseModel):
    client_id: int
    name: str
    prefix: str


class BackfillResponse(BaseModel):
    assigned: List[PrefixAssignment]
    count: int
