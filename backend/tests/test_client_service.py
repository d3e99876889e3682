"""
TrackCode Backend — Client Service Tests
==========================================

What we test:
    ✅ Auto mode derives and de-duplicates prefixes
    ✅ Auto mode retries after losing a prefix race
    ✅ Manual mode: format errors, conflicts, normalization
    ✅ Prefix edits: self-exclusion, no-op, conflicts, counter continuity
    ✅ Released prefixes with issued codes are never handed to another client
    ✅ Backfill of legacy clients without prefix
    ✅ Suggest / check helpers
"""

from unittest.mock import AsyncMock, patch

import pytest

from trackcode.exceptions import (
    ClientNotFoundError,
    DatabaseError,
    InvalidPrefixError,
    PrefixUnavailableError,
)
from trackcode.services.allocator import TrackingCodeAllocator
from trackcode.services.client_service import ClientService
from trackcode.services.shipment_service import ShipmentService
from trackcode.services.store import ClientStore


class TestCreateClientAuto:

    def setup_method(self):
        self.service = ClientService()

    @pytest.mark.asyncio
    async def test_derives_prefix_from_name(self, db_session):
        client = await self.service.create_client(db_session, name="IT Piezas Industriales")

        assert client.prefix == "IPI"
        assert client.last_sequence == 0
        assert client.id is not None

    @pytest.mark.asyncio
    async def test_second_client_with_same_base_gets_suffix(self, db_session):
        first = await self.service.create_client(db_session, name="IT Piezas")
        second = await self.service.create_client(db_session, name="IT Piezas")
        third = await self.service.create_client(db_session, name="itp")

        assert [first.prefix, second.prefix, third.prefix] == ["ITP", "ITP2", "ITP3"]

    @pytest.mark.asyncio
    async def test_retries_after_losing_race(self, db_session, make_client):
        # Another request committed ITP between our check and our insert
        await make_client("IT Piezas", "ITP")

        with patch.object(
            TrackingCodeAllocator,
            "allocate_unique_prefix",
            AsyncMock(side_effect=["ITP", "ITP2"]),
        ) as allocate:
            client = await self.service.create_client(db_session, name="IT Piezas")

        assert client.prefix == "ITP2"
        assert allocate.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, db_session, make_client):
        await make_client("IT Piezas", "ITP")

        with patch.object(
            TrackingCodeAllocator,
            "allocate_unique_prefix",
            AsyncMock(return_value="ITP"),
        ) as allocate:
            with pytest.raises(PrefixUnavailableError):
                await self.service.create_client(db_session, name="IT Piezas")

        assert allocate.await_count == 3


class TestCreateClientManual:

    def setup_method(self):
        self.service = ClientService()

    @pytest.mark.asyncio
    async def test_manual_prefix_is_normalized(self, db_session):
        client = await self.service.create_client(db_session, name="Whatever", prefix=" itp9 ")
        assert client.prefix == "ITP9"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "prefix, message",
        [
            ("", "required"),
            ("I", "at least 2 characters"),
            ("ABCDEFGHIJK", "at most 10 characters"),
            ("ABC-123", "only uppercase letters and numbers"),
        ],
    )
    async def test_invalid_format(self, db_session, prefix, message):
        with pytest.raises(InvalidPrefixError) as exc_info:
            await self.service.create_client(db_session, name="Acme", prefix=prefix)
        assert message in exc_info.value.message

    @pytest.mark.asyncio
    async def test_taken_prefix_is_unavailable(self, db_session, make_client):
        await make_client("IT Piezas", "ITP")

        with pytest.raises(PrefixUnavailableError):
            await self.service.create_client(db_session, name="Acme", prefix="itp")

    @pytest.mark.asyncio
    async def test_constraint_rejection_surfaces_as_unavailable(self, db_session, make_client):
        await make_client("IT Piezas", "ITP")

        # Pre-check lies (stale read); the unique constraint has the last word
        with patch.object(
            TrackingCodeAllocator, "is_prefix_available", AsyncMock(return_value=True)
        ):
            with pytest.raises(PrefixUnavailableError):
                await self.service.create_client(db_session, name="Acme", prefix="ITP")


class TestChangePrefix:

    def setup_method(self):
        self.service = ClientService()

    @pytest.mark.asyncio
    async def test_change_to_free_prefix(self, db_session, make_client):
        client = await make_client("IT Piezas", "ITP")

        updated = await self.service.change_prefix(db_session, client.id, "itpx")

        assert updated.prefix == "ITPX"

    @pytest.mark.asyncio
    async def test_same_prefix_is_a_noop(self, db_session, make_client):
        client = await make_client("IT Piezas", "ITP")

        with patch.object(ClientStore, "set_prefix", AsyncMock()) as set_prefix:
            updated = await self.service.change_prefix(db_session, client.id, "itp")

        assert updated.prefix == "ITP"
        set_prefix.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_prefix_of_another_client_is_unavailable(self, db_session, make_client):
        await make_client("IT Piezas", "ITP")
        other = await make_client("Acme", "ACM")

        with pytest.raises(PrefixUnavailableError):
            await self.service.change_prefix(db_session, other.id, "ITP")

    @pytest.mark.asyncio
    async def test_invalid_prefix(self, db_session, make_client):
        client = await make_client("IT Piezas", "ITP")

        with pytest.raises(InvalidPrefixError):
            await self.service.change_prefix(db_session, client.id, "IT-P")

    @pytest.mark.asyncio
    async def test_unknown_client(self, db_session):
        with pytest.raises(ClientNotFoundError):
            await self.service.change_prefix(db_session, 4242, "ABC")

    @pytest.mark.asyncio
    async def test_counter_continues_under_new_prefix(self, db_session, make_client):
        client = await make_client("IT Piezas", "ITP")
        allocator = TrackingCodeAllocator(ClientStore(db_session))

        before = await allocator.next_tracking_code(client.id)
        await self.service.change_prefix(db_session, client.id, "NEW")
        after = await allocator.next_tracking_code(client.id)

        assert before == "ITP-00001"
        assert after == "NEW-00002"


class TestReleasedPrefix:
    """A prefix given up after issuing codes must never start a second series."""

    def setup_method(self):
        self.service = ClientService()
        self.shipments = ShipmentService()

    async def _issue_and_move(self, db_session, make_client):
        former = await make_client("Acme Bolt Co", "ABC")
        shipment = await self.shipments.create_shipment(
            db_session, former.id, origin="A", destination="B"
        )
        assert shipment.tracking_code == "ABC-00001"
        await self.service.change_prefix(db_session, former.id, "NEWA")
        return former

    @pytest.mark.asyncio
    async def test_manual_claim_of_released_prefix_is_unavailable(self, db_session, make_client):
        await self._issue_and_move(db_session, make_client)

        with pytest.raises(PrefixUnavailableError):
            await self.service.create_client(db_session, name="Other", prefix="ABC")

    @pytest.mark.asyncio
    async def test_auto_mode_skips_released_prefix(self, db_session, make_client):
        await self._issue_and_move(db_session, make_client)

        newcomer = await self.service.create_client(db_session, name="Acme Bolt Co")
        code = (
            await self.shipments.create_shipment(db_session, newcomer.id, origin="A", destination="B")
        ).tracking_code

        assert newcomer.prefix == "ABC2"
        assert code == "ABC2-00001"

    @pytest.mark.asyncio
    async def test_other_client_cannot_switch_to_released_prefix(self, db_session, make_client):
        await self._issue_and_move(db_session, make_client)
        other = await self.service.create_client(db_session, name="Other", prefix="OTH")

        with pytest.raises(PrefixUnavailableError):
            await self.service.change_prefix(db_session, other.id, "ABC")

    @pytest.mark.asyncio
    async def test_former_owner_can_return_and_keeps_counting(self, db_session, make_client):
        former = await self._issue_and_move(db_session, make_client)

        await self.service.change_prefix(db_session, former.id, "ABC")
        code = (
            await self.shipments.create_shipment(db_session, former.id, origin="A", destination="B")
        ).tracking_code

        assert code == "ABC-00002"

    @pytest.mark.asyncio
    async def test_prefix_released_before_any_code_is_free_again(self, db_session, make_client):
        unused = await make_client("Acme Bolt Co", "ABC")
        await self.service.change_prefix(db_session, unused.id, "NEWA")

        claimed = await self.service.create_client(db_session, name="Other", prefix="ABC")

        assert claimed.prefix == "ABC"


class TestBackfill:

    def setup_method(self):
        self.service = ClientService()

    @pytest.mark.asyncio
    async def test_assigns_unique_prefixes_in_id_order(self, db_session, make_client):
        await make_client("IT Piezas", "ITP")
        first = await make_client("IT Piezas Norte", None)
        second = await make_client("it piezas", None)
        await make_client("Already Set Co", "ASC")

        result = await self.service.backfill_prefixes(db_session)

        assert result.count == 2
        assert [(a.client_id, a.prefix) for a in result.assigned] == [
            (first.id, "IPN"),
            (second.id, "ITP2"),
        ]

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, db_session, make_client):
        await make_client("IT Piezas", "ITP")

        result = await self.service.backfill_prefixes(db_session)

        assert result.count == 0
        assert result.assigned == []


class TestHelpers:

    def setup_method(self):
        self.service = ClientService()

    @pytest.mark.asyncio
    async def test_suggest_free_base(self, db_session):
        suggestion = await self.service.suggest_prefix(db_session, "IT Piezas")

        assert suggestion.base_prefix == "ITP"
        assert suggestion.suggested == "ITP"
        assert suggestion.base_available is True

    @pytest.mark.asyncio
    async def test_suggest_taken_base(self, db_session, make_client):
        await make_client("IT Piezas", "ITP")

        suggestion = await self.service.suggest_prefix(db_session, "IT Piezas")

        assert suggestion.suggested == "ITP2"
        assert suggestion.base_available is False

    @pytest.mark.asyncio
    async def test_suggest_checks_the_base_once(self, mock_db_session):
        with patch.object(ClientStore, "count_by_prefix", AsyncMock(return_value=0)) as count, \
                patch.object(ClientStore, "has_issued_codes", AsyncMock(return_value=False)):
            suggestion = await self.service.suggest_prefix(mock_db_session, "IT Piezas")

        assert suggestion.suggested == "ITP"
        count.assert_awaited_once_with("ITP", exclude_client_id=None)

    @pytest.mark.asyncio
    async def test_check_valid_and_available(self, db_session):
        result = await self.service.check_prefix(db_session, "abc")

        assert result.prefix == "ABC"
        assert result.valid is True
        assert result.available is True
        assert result.error is None

    @pytest.mark.asyncio
    async def test_check_own_prefix_when_editing(self, db_session, make_client):
        owner = await make_client("IT Piezas", "ITP")

        taken = await self.service.check_prefix(db_session, "ITP")
        own = await self.service.check_prefix(db_session, "ITP", exclude_client_id=owner.id)

        assert taken.available is False
        assert own.available is True

    @pytest.mark.asyncio
    async def test_check_invalid_format(self, db_session):
        result = await self.service.check_prefix(db_session, "A B")

        assert result.valid is False
        assert result.available is False
        assert "only uppercase letters and numbers" in result.error

    @pytest.mark.asyncio
    async def test_get_client_not_found(self, db_session):
        with pytest.raises(ClientNotFoundError):
            await self.service.get_client(db_session, 31337)

    @pytest.mark.asyncio
    async def test_get_client_wraps_store_errors(self, mock_db_session):
        from sqlalchemy.exc import OperationalError

        mock_db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection lost"))
        )

        with pytest.raises(DatabaseError):
            await self.service.get_client(mock_db_session, 1)
