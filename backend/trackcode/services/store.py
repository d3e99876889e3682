"""
TrackCode Backend — Client Store (Repository)
===============================================

What:  The store operations the allocator and the client flows need.
How:   Thin wrapper around the caller's AsyncSession. Every method is one
       statement; nothing here commits. The session owner (get_db_session,
       or a test) decides when the transaction ends.

Operations:
    get(id)                        point read by id
    count_by_prefix(prefix, excl)  count-by-prefix read
    has_issued_codes(prefix, excl) any shipment code already under prefix
    increment_sequence(id)         atomic increment-and-return
    set_prefix(id, prefix)         conditional on the unique constraint
    add(client)                    insert, unique constraint enforced
    list_without_prefix()          legacy rows awaiting a prefix

Unique violations on `prefix` come back from the driver as IntegrityError.
They are turned into PrefixUnavailableError here, inside a SAVEPOINT, so the
rest of the caller's transaction survives and the caller can retry.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trackcode.exceptions import PrefixUnavailableError
from trackcode.models.client import Client
from trackcode.models.shipment import Shipment

logger = logging.getLogger(__name__)


class ClientStore:
    """Relational access to client prefix and counter columns."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, client_id: int) -> Optional[Client]:
        result = await self.session.execute(select(Client).where(Client.id == client_id))
        return result.scalar_one_or_none()

    async def count_by_prefix(
        self,
        prefix: str,
        exclude_client_id: Optional[int] = None,
    ) -> int:
        """Number of clients holding `prefix` (already normalized by the caller)."""
        query = select(func.count()).select_from(Client).where(Client.prefix == prefix)
        if exclude_client_id is not None:
            query = query.where(Client.id != exclude_client_id)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def has_issued_codes(
        self,
        prefix: str,
        exclude_client_id: Optional[int] = None,
    ) -> bool:
        """
        True if some shipment already carries a "{prefix}-..." code.

        A prefix given up by one client keeps its issued codes, so it stays
        off limits for everyone else. Shipments of `exclude_client_id` are
        ignored: a client's own counter never goes back, so returning to an
        old prefix cannot repeat a code.
        """
        query = (
            select(Shipment.id)
            .where(Shipment.tracking_code.like(f"{prefix}-%"))
            .limit(1)
        )
        if exclude_client_id is not None:
            query = query.where(Shipment.client_id != exclude_client_id)
        result = await self.session.execute(query)
        return result.first() is not None

    async def increment_sequence(self, client_id: int) -> Optional[Tuple[str, int]]:
        """
        Bump last_sequence by one and return (prefix, new_sequence).

        Single statement:
            UPDATE clients SET last_sequence = last_sequence + 1
            WHERE id = :id AND prefix IS NOT NULL
            RETURNING prefix, last_sequence

        The database applies the increment under the row lock, so concurrent
        callers for the same client serialize on it and each sees a distinct
        value. Returns None when no row matched (unknown client, or a client
        without a prefix). Client instances already loaded in the session
        keep their old last_sequence.
        """
        stmt = (
            update(Client)
            .where(Client.id == client_id, Client.prefix.is_not(None))
            .values(last_sequence=Client.last_sequence + 1)
            .returning(Client.prefix, Client.last_sequence)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row[0], row[1]

    async def set_prefix(self, client_id: int, prefix: str) -> bool:
        """
        Assign a prefix to an existing client.

        Returns False if the client does not exist.

        Raises:
            PrefixUnavailableError: the unique constraint rejected the value
        """
        stmt = (
            update(Client)
            .where(Client.id == client_id)
            .values(prefix=prefix)
            .execution_options(synchronize_session="evaluate")
        )
        try:
            async with self.session.begin_nested():
                result = await self.session.execute(stmt)
        except IntegrityError as e:
            logger.warning("Prefix %s rejected by unique constraint (client %s)", prefix, client_id)
            raise PrefixUnavailableError(prefix, context={"client_id": client_id}) from e
        return result.rowcount > 0

    async def add(self, client: Client) -> Client:
        """
        Insert a new client and flush so it gets its id.

        Raises:
            PrefixUnavailableError: the unique constraint rejected the prefix
        """
        try:
            async with self.session.begin_nested():
                self.session.add(client)
                await self.session.flush()
        except IntegrityError as e:
            logger.warning("Prefix %s rejected by unique constraint on insert", client.prefix)
            raise PrefixUnavailableError(client.prefix or "") from e
        return client

    async def list_without_prefix(self) -> List[Client]:
        result = await self.session.execute(
            select(Client).where(Client.prefix.is_(None)).order_by(Client.id)
        )
        return list(result.scalars().all())
