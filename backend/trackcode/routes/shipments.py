"""
TrackCode Backend — Shipment Route Handlers
=============================================

What:  POST /api/shipments (issues the tracking code) and GET /api/shipments/{id}.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trackcode.database import get_db_session
from trackcode.schemas.common import ErrorResponse
from trackcode.schemas.shipment import ShipmentCreate, ShipmentResponse
from trackcode.services.shipment_service import shipment_service

router = APIRouter(prefix="/api/shipments", tags=["Shipments"])


@router.post(
    "",
    status_code=201,
    response_model=ShipmentResponse,
    responses={
        404: {"description": "Client not found", "model": ErrorResponse},
        409: {"description": "Client has no tracking prefix, or the code is already stored", "model": ErrorResponse},
    },
    summary="Create a shipment",
    description="Creates a shipment and assigns the client's next tracking code (e.g. ITP-00001).",
)
async def create_shipment(
    body: ShipmentCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ShipmentResponse:
    return await shipment_service.create_shipment(
        db=db,
        client_id=body.client_id,
        origin=body.origin,
        destination=body.destination,
        description=body.description,
    )


@router.get(
    "/{shipment_id}",
    response_model=ShipmentResponse,
    responses={404: {"description": "Shipment not found", "model": ErrorResponse}},
    summary="Get a shipment",
)
async def get_shipment(
    shipment_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> ShipmentResponse:
    return await shipment_service.get_shipment(db=db, shipment_id=shipment_id)
