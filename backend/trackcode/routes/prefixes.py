"""
TrackCode Backend — Prefix Helper Routes
==========================================

What:  Form helpers for the client editor plus the legacy-data backfill.
       GET  /api/prefixes/suggest?name=...
       GET  /api/prefixes/check?prefix=...&exclude_client_id=...
       POST /api/prefixes/backfill

Suggest and check are hints only: the answer can be stale by the time the
client is saved, and the save itself is what the unique constraint judges.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from trackcode.database import get_db_session
from trackcode.schemas.client import BackfillResponse, PrefixCheckResponse, PrefixSuggestion
from trackcode.schemas.common import ErrorResponse
from trackcode.services.client_service import client_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/prefixes", tags=["Prefixes"])


@router.get(
    "/suggest",
    response_model=PrefixSuggestion,
    responses={409: {"description": "Every candidate is taken", "model": ErrorResponse}},
    summary="Suggest a prefix for a company name",
)
async def suggest_prefix(
    name: str = Query(default="", max_length=255, description="Company name"),
    db: AsyncSession = Depends(get_db_session),
) -> PrefixSuggestion:
    return await client_service.suggest_prefix(db=db, name=name)


@router.get(
    "/check",
    response_model=PrefixCheckResponse,
    summary="Validate a manual prefix and check availability",
)
async def check_prefix(
    prefix: str = Query(default="", description="Candidate prefix"),
    exclude_client_id: Optional[int] = Query(
        default=None,
        description="Client being edited; its own current prefix counts as available",
    ),
    db: AsyncSession = Depends(get_db_session),
) -> PrefixCheckResponse:
    return await client_service.check_prefix(
        db=db,
        prefix=prefix,
        exclude_client_id=exclude_client_id,
    )


@router.post(
    "/backfill",
    response_model=BackfillResponse,
    summary="Assign prefixes to clients that have none",
)
async def backfill_prefixes(
    db: AsyncSession = Depends(get_db_session),
) -> BackfillResponse:
    result = await client_service.backfill_prefixes(db=db)
    logger.info("Prefix backfill assigned %d prefixes", result.count)
    return result
