"""
TrackCode Backend — Client Route Handlers
===========================================

What:  POST /api/clients, GET /api/clients/{id}, PUT /api/clients/{id}/prefix.
How:   Thin handlers; prefix rules and conflict handling live in ClientService.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trackcode.database import get_db_session
from trackcode.schemas.client import ClientCreate, ClientResponse, PrefixChange
from trackcode.schemas.common import ErrorResponse
from trackcode.services.client_service import client_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clients", tags=["Clients"])


@router.post(
    "",
    status_code=201,
    response_model=ClientResponse,
    responses={
        400: {"description": "Manual prefix breaks the format rules", "model": ErrorResponse},
        409: {"description": "Prefix already in use", "model": ErrorResponse},
    },
    summary="Create a client",
    description=(
        "Creates a client. Without a prefix the service derives one from the "
        "company name (IT Piezas Industriales → IPI) and resolves collisions "
        "with numeric then alphabetic suffixes."
    ),
)
async def create_client(
    body: ClientCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ClientResponse:
    return await client_service.create_client(db=db, name=body.name, prefix=body.prefix)


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    responses={404: {"description": "Client not found", "model": ErrorResponse}},
    summary="Get a client",
)
async def get_client(
    client_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> ClientResponse:
    return await client_service.get_client(db=db, client_id=client_id)


@router.put(
    "/{client_id}/prefix",
    response_model=ClientResponse,
    responses={
        400: {"description": "Prefix breaks the format rules", "model": ErrorResponse},
        404: {"description": "Client not found", "model": ErrorResponse},
        409: {"description": "Prefix already in use", "model": ErrorResponse},
    },
    summary="Change a client's tracking prefix",
    description=(
        "Codes already issued keep their old prefix; the sequence counter "
        "continues from its current value."
    ),
)
async def change_prefix(
    client_id: int,
    body: PrefixChange,
    db: AsyncSession = Depends(get_db_session),
) -> ClientResponse:
    return await client_service.change_prefix(db=db, client_id=client_id, new_prefix=body.prefix)
