"""
TrackCode Backend — Client Service (Prefix Assignment Flows)
==============================================================

What:  Client creation, prefix edits, prefix helper queries and backfill.
How:   Builds a ClientStore + TrackingCodeAllocator on the caller's session
       for every call; the service itself is stateless.
Who:   Called by the clients and prefixes routers.

Flows:
    Auto mode      allocate_unique_prefix → insert. A unique-constraint
                   rejection means another request claimed the same
                   candidate first; allocation re-runs under tenacity.
    Manual mode    validate_prefix_format → availability check → insert.
                   A rejection here is the user's problem: 409, no retry.
    Edit           same as manual, excluding the client's own row, skipped
                   entirely when the normalized prefix is unchanged.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from trackcode.config import settings
from trackcode.exceptions import (
    ClientNotFoundError,
    DatabaseError,
    InvalidPrefixError,
    PrefixUnavailableError,
)
from trackcode.models.client import Client
from trackcode.schemas.client import (
    BackfillResponse,
    ClientResponse,
    PrefixAssignment,
    PrefixCheckResponse,
    PrefixSuggestion,
)
from trackcode.services.allocator import TrackingCodeAllocator
from trackcode.services.prefix import (
    derive_base_prefix,
    normalize_prefix,
    validate_prefix_format,
)
from trackcode.services.store import ClientStore

logger = logging.getLogger(__name__)

# Retry policy for claiming an auto-allocated prefix. Only a lost race
# (PrefixUnavailableError from the unique constraint) is retried; store
# errors propagate on the first failure.
_claim_retry = retry(
    retry=retry_if_exception_type(PrefixUnavailableError),
    stop=stop_after_attempt(settings.prefix_claim_max_attempts),
    wait=wait_exponential_jitter(
        initial=settings.prefix_retry_min_wait,
        max=settings.prefix_retry_max_wait,
        jitter=settings.prefix_retry_min_wait,
    ),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


class ClientService:
    """Business logic for client prefixes."""

    @staticmethod
    def _allocator(db: AsyncSession) -> TrackingCodeAllocator:
        return TrackingCodeAllocator(ClientStore(db))

    # ── Creation ──────────────────────────────────────────────────────────

    async def create_client(
        self,
        db: AsyncSession,
        name: str,
        prefix: Optional[str] = None,
    ) -> ClientResponse:
        """
        Create a client with an auto-derived or manual prefix.

        Args:
            db: Async database session
            name: Company name
            prefix: Manual prefix, or None for auto mode

        Raises:
            InvalidPrefixError: manual prefix breaks the format rules
            PrefixUnavailableError: manual prefix taken, or auto allocation
                lost the race on every attempt
            AllocationExhaustedError: auto mode, "error" exhaustion policy
        """
        if prefix is None:
            client = await self._insert_with_auto_prefix(db, name)
        else:
            client = await self._insert_with_manual_prefix(db, name, prefix)

        logger.info("Client %s created with prefix %s", client.id, client.prefix)
        return ClientResponse.model_validate(client)

    @_claim_retry
    async def _insert_with_auto_prefix(self, db: AsyncSession, name: str) -> Client:
        allocator = self._allocator(db)
        prefix = await allocator.allocate_unique_prefix(name)
        return await allocator.store.add(Client(name=name, prefix=prefix, last_sequence=0))

    async def _insert_with_manual_prefix(
        self,
        db: AsyncSession,
        name: str,
        prefix: str,
    ) -> Client:
        allocator = self._allocator(db)
        normalized = self._require_valid_format(prefix)

        if not await allocator.is_prefix_available(normalized):
            raise PrefixUnavailableError(normalized)

        return await allocator.store.add(Client(name=name, prefix=normalized, last_sequence=0))

    # ── Edit ──────────────────────────────────────────────────────────────

    async def change_prefix(
        self,
        db: AsyncSession,
        client_id: int,
        new_prefix: str,
    ) -> ClientResponse:
        """
        Replace a client's prefix.

        Codes issued under the old prefix are left as they are and the
        sequence counter carries on from its current value.

        Raises:
            ClientNotFoundError: unknown client id
            InvalidPrefixError: new prefix breaks the format rules
            PrefixUnavailableError: another client holds the new prefix
        """
        allocator = self._allocator(db)
        client = await allocator.store.get(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)

        if isinstance(new_prefix, str) and normalize_prefix(new_prefix) == client.prefix:
            return ClientResponse.model_validate(client)

        normalized = self._require_valid_format(new_prefix)
        if not await allocator.is_prefix_available(normalized, exclude_client_id=client_id):
            raise PrefixUnavailableError(normalized, context={"client_id": client_id})

        old_prefix = client.prefix
        await allocator.store.set_prefix(client_id, normalized)
        logger.info("Client %s prefix changed %s -> %s", client_id, old_prefix, normalized)
        return ClientResponse.model_validate(client)

    # ── Backfill ──────────────────────────────────────────────────────────

    async def backfill_prefixes(self, db: AsyncSession) -> BackfillResponse:
        """
        Assign auto-allocated prefixes to every client that has none.

        Clients are processed in id order within the caller's transaction,
        so each allocation already sees the prefixes assigned before it.
        """
        store = ClientStore(db)
        pending = await store.list_without_prefix()
        assigned: List[PrefixAssignment] = []

        for client in pending:
            prefix = await self._assign_auto_prefix(db, client)
            assigned.append(PrefixAssignment(client_id=client.id, name=client.name, prefix=prefix))

        if assigned:
            logger.info("Backfilled prefixes for %d clients", len(assigned))
        return BackfillResponse(assigned=assigned, count=len(assigned))

    @_claim_retry
    async def _assign_auto_prefix(self, db: AsyncSession, client: Client) -> str:
        allocator = self._allocator(db)
        prefix = await allocator.allocate_unique_prefix(client.name)
        await allocator.store.set_prefix(client.id, prefix)
        return prefix

    # ── Read helpers ──────────────────────────────────────────────────────

    async def get_client(self, db: AsyncSession, client_id: int) -> ClientResponse:
        try:
            client = await ClientStore(db).get(client_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching client %s: %s", client_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the client. Please try again.",
                context={"client_id": client_id},
            ) from e

        if client is None:
            raise ClientNotFoundError(client_id)
        return ClientResponse.model_validate(client)

    async def suggest_prefix(self, db: AsyncSession, name: str) -> PrefixSuggestion:
        """Preview what auto mode would assign for `name` right now."""
        base = derive_base_prefix(name)
        # The allocator returns the base itself only when the base is free
        suggested = await self._allocator(db).allocate_unique_prefix(name)
        return PrefixSuggestion(
            name=name,
            base_prefix=base,
            suggested=suggested,
            base_available=suggested == base,
        )

    async def check_prefix(
        self,
        db: AsyncSession,
        prefix: str,
        exclude_client_id: Optional[int] = None,
    ) -> PrefixCheckResponse:
        """Format and availability verdict for a manual prefix."""
        validation = validate_prefix_format(prefix)
        if not validation.valid:
            return PrefixCheckResponse(
                prefix=normalize_prefix(prefix) if isinstance(prefix, str) else "",
                valid=False,
                available=False,
                error=validation.error,
            )

        available = await self._allocator(db).is_prefix_available(
            validation.normalized,
            exclude_client_id=exclude_client_id,
        )
        return PrefixCheckResponse(
            prefix=validation.normalized,
            valid=True,
            available=available,
        )

    @staticmethod
    def _require_valid_format(prefix: str) -> str:
        validation = validate_prefix_format(prefix)
        if not validation.valid:
            raise InvalidPrefixError(validation.error, prefix=prefix)
        return validation.normalized


# ── Singleton Instance ────────────────────────────────────────────────────
client_service = ClientService()
