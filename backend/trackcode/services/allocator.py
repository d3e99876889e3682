"""
TrackCode Backend — Tracking Code Allocator
=============================================

What:  Prefix allocation and per-client sequence issuance.
How:   Combines the pure rules in services.prefix with a ClientStore bound to
       the caller's session.
Who:   ClientService (prefixes) and ShipmentService (tracking codes).

Guarantees:
    next_tracking_code
        One UPDATE ... RETURNING per call. No read-then-write from Python, so
        concurrent calls for one client can never issue the same number.
    allocate_unique_prefix
        Optimistic. The availability checks are a hint; the unique
        constraint on clients.prefix decides at write time, and the caller
        handles PrefixUnavailableError (see ClientService).

Candidate order for a taken base "ITP":
    ITP2 .. ITP9, ITPA .. ITPZ, then the exhaustion policy.
"""

import logging
import time
from typing import Optional

from trackcode.config import settings
from trackcode.exceptions import (
    AllocationExhaustedError,
    ClientNotFoundError,
    PrefixNotAssignedError,
)
from trackcode.services.prefix import (
    candidate_prefixes,
    derive_base_prefix,
    format_tracking_code,
    normalize_prefix,
)
from trackcode.services.store import ClientStore

logger = logging.getLogger(__name__)


class TrackingCodeAllocator:
    """
    Allocates prefixes and tracking codes against a ClientStore.

    Holds no state besides the store; build one per session.
    """

    def __init__(self, store: ClientStore):
        self.store = store

    async def is_prefix_available(
        self,
        prefix: str,
        exclude_client_id: Optional[int] = None,
    ) -> bool:
        """
        True iff no client (other than `exclude_client_id`) holds `prefix`
        and no other client's shipment was issued a code under it.

        A prefix released by a prefix edit is therefore never handed to a
        new owner whose counter would restart at 1 and repeat old codes.

        Comparison is case-insensitive: the value is upper-cased before the
        query, and stored prefixes are always upper-case.
        """
        normalized = normalize_prefix(prefix)
        count = await self.store.count_by_prefix(normalized, exclude_client_id=exclude_client_id)
        if count:
            return False
        return not await self.store.has_issued_codes(
            normalized,
            exclude_client_id=exclude_client_id,
        )

    async def allocate_unique_prefix(self, company_name: Optional[str]) -> str:
        """
        Derive a prefix for `company_name` that no client currently holds.

        Tries the base prefix, then base2..base9, then baseA..baseZ, issuing
        one availability query per candidate.

        Raises:
            AllocationExhaustedError: all 34 candidates are taken and the
                exhaustion policy is "error"
        """
        base = derive_base_prefix(company_name)
        if await self.is_prefix_available(base):
            logger.debug("Base prefix %s is free", base)
            return base

        candidates = candidate_prefixes(base)
        for candidate in candidates:
            if await self.is_prefix_available(candidate):
                logger.info("Base prefix %s taken, allocated %s", base, candidate)
                return candidate

        if settings.prefix_exhaustion_policy == "error":
            logger.error(
                "Prefix allocation exhausted for base %s after %d candidates",
                base,
                len(candidates) + 1,
            )
            raise AllocationExhaustedError(base, candidates_tried=len(candidates) + 1)

        # Not checked for availability; the unique constraint still guards the write
        fallback = f"{base}{str(int(time.time() * 1000))[-3:]}"
        logger.warning(
            "AllocationExhausted: every candidate for %s is taken, "
            "falling back to unchecked prefix %s",
            base,
            fallback,
        )
        return fallback

    async def next_tracking_code(self, client_id: int) -> str:
        """
        Issue the next tracking code for a client: "{prefix}-{00001}".

        The increment is applied by the store in one statement and stays
        locked until the caller's transaction ends.

        Raises:
            ClientNotFoundError: no client with this id
            PrefixNotAssignedError: the client exists but has no prefix
        """
        issued = await self.store.increment_sequence(client_id)
        if issued is None:
            # Distinguish the two reasons the UPDATE matched nothing
            client = await self.store.get(client_id)
            if client is None:
                raise ClientNotFoundError(client_id)
            raise PrefixNotAssignedError(client_id)

        prefix, sequence = issued
        code = format_tracking_code(prefix, sequence)
        logger.info("Issued tracking code %s for client %s", code, client_id)
        return code
