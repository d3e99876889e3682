"""
TrackCode Backend — Shipment Service
======================================

What:  Shipment creation, the consumer of issued tracking codes.
How:   Issues the code first, then inserts the shipment in the same session.

Ordering matters:
    1. next_tracking_code(client_id)  → raises before anything is written
       when the client is unknown
    2. INSERT shipment                → flushes inside the same transaction
    3. get_db_session commits         → counter and shipment persist together

If step 2 or the commit fails, the rollback also undoes the counter bump,
so no sequence number is consumed by a shipment that does not exist.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trackcode.exceptions import DatabaseError, NotFoundError, TrackingCodeConflictError
from trackcode.models.shipment import Shipment
from trackcode.schemas.shipment import ShipmentResponse
from trackcode.services.allocator import TrackingCodeAllocator
from trackcode.services.store import ClientStore

logger = logging.getLogger(__name__)


class ShipmentService:

    async def create_shipment(
        self,
        db: AsyncSession,
        client_id: int,
        origin: str,
        destination: str,
        description: Optional[str] = None,
    ) -> ShipmentResponse:
        """
        Create a shipment carrying the client's next tracking code.

        Raises:
            ClientNotFoundError: unknown client; nothing is written
            PrefixNotAssignedError: client has no prefix yet
            TrackingCodeConflictError: the code is already on another shipment;
                the caller's rollback also undoes the counter bump
        """
        allocator = TrackingCodeAllocator(ClientStore(db))
        tracking_code = await allocator.next_tracking_code(client_id)

        shipment = Shipment(
            client_id=client_id,
            tracking_code=tracking_code,
            origin=origin,
            destination=destination,
            description=description,
        )
        try:
            async with db.begin_nested():
                db.add(shipment)
                await db.flush()
        except IntegrityError as e:
            logger.error(
                "Tracking code %s for client %s already stored on another shipment",
                tracking_code,
                client_id,
            )
            raise TrackingCodeConflictError(tracking_code, client_id) from e
        logger.info("Shipment %s created with tracking code %s", shipment.id, tracking_code)

        return ShipmentResponse.model_validate(shipment)

    async def get_shipment(self, db: AsyncSession, shipment_id: int) -> ShipmentResponse:
        try:
            result = await db.execute(select(Shipment).where(Shipment.id == shipment_id))
            shipment = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching shipment %s: %s", shipment_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the shipment. Please try again.",
                context={"shipment_id": shipment_id},
            ) from e

        if shipment is None:
            raise NotFoundError(resource="shipment", resource_id=str(shipment_id))
        return ShipmentResponse.model_validate(shipment)


shipment_service = ShipmentService()
