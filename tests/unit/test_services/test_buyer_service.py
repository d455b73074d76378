"""Tests for buyer service error handling with a mocked session."""

import uuid
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from lead_intake.lib.importer import RecordValidationError
from lead_intake.services.buyer_service import (
    BuyerNotFoundError,
    ConcurrencyConflictError,
    PersistenceError,
    as_utc,
    create_buyer,
    list_buyers,
    unit_of_work,
    update_buyer,
)


def _mock_session(scalar_result: object = None) -> AsyncMock:
    session = AsyncMock()
    session.add = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar_result
    session.execute.return_value = result
    return session


def _stored_buyer(owner_id: uuid.UUID, updated_at: datetime) -> MagicMock:
    buyer = MagicMock()
    buyer.id = uuid.uuid4()
    buyer.owner_id = owner_id
    buyer.updated_at = updated_at
    buyer.full_name = "Asha Verma"
    buyer.email = None
    buyer.phone = "9876543210"
    buyer.city = "Mohali"
    buyer.property_type = "Plot"
    buyer.bhk = None
    buyer.purpose = "Buy"
    buyer.budget_min = None
    buyer.budget_max = None
    buyer.timeline = "0-3m"
    buyer.source = "Website"
    buyer.status = "New"
    buyer.notes = None
    buyer.tags = []
    return buyer


class TestAsUtc:
    """Tests for concurrency token normalization."""

    def test_naive_treated_as_utc(self) -> None:
        assert as_utc(datetime(2026, 1, 1, 12, 0)) == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def test_offset_converted(self) -> None:
        ist = timezone(timedelta(hours=5, minutes=30))
        value = datetime(2026, 1, 1, 17, 30, tzinfo=ist)
        assert as_utc(value) == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        assert as_utc(value).tzinfo == UTC


class TestUnitOfWork:
    """Tests for the commit/rollback wrapper."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self) -> None:
        session = _mock_session()
        async with unit_of_work(session, "do things"):
            pass
        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_storage_error_wrapped(self) -> None:
        session = _mock_session()
        with pytest.raises(PersistenceError, match="Failed to do things"):
            async with unit_of_work(session, "do things"):
                raise OperationalError("INSERT", {}, Exception("disk full"))
        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_failure_wrapped(self) -> None:
        session = _mock_session()
        session.commit.side_effect = OperationalError("COMMIT", {}, Exception("gone"))
        with pytest.raises(PersistenceError):
            async with unit_of_work(session, "do things"):
                pass
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_domain_error_propagates_unchanged(self) -> None:
        session = _mock_session()
        with pytest.raises(BuyerNotFoundError):
            async with unit_of_work(session, "do things"):
                raise BuyerNotFoundError(uuid.uuid4())
        session.rollback.assert_awaited_once()


class TestCreateBuyer:
    """Tests for create_buyer validation short-circuit."""

    @pytest.mark.asyncio
    async def test_invalid_payload_never_touches_session(self, valid_payload: dict) -> None:
        session = _mock_session()
        del valid_payload["bhk"]
        with pytest.raises(RecordValidationError) as exc_info:
            await create_buyer(session, uuid.uuid4(), valid_payload)
        assert [e.field for e in exc_info.value.errors] == ["bhk"]
        session.add.assert_not_called()
        session.commit.assert_not_awaited()


class TestUpdateBuyer:
    """Tests for update_buyer check ordering."""

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        session = _mock_session(None)
        with pytest.raises(BuyerNotFoundError, match="Buyer not found or access denied"):
            await update_buyer(session, uuid.uuid4(), uuid.uuid4(), datetime.now(UTC), {"status": "Contacted"})
        session.commit.assert_not_awaited()
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stale_token_checked_before_validation(self) -> None:
        owner = uuid.uuid4()
        stored_at = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        buyer = _stored_buyer(owner, stored_at)
        session = _mock_session(buyer)
        with pytest.raises(ConcurrencyConflictError, match="Record changed, please refresh"):
            # The payload is invalid too; the conflict must win
            await update_buyer(session, buyer.id, owner, stored_at - timedelta(seconds=1), {"phone": "1"})
        session.add.assert_not_called()
        assert buyer.status == "New"

    @pytest.mark.asyncio
    async def test_naive_token_matches_aware_storage(self) -> None:
        owner = uuid.uuid4()
        stored_at = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        buyer = _stored_buyer(owner, stored_at)
        session = _mock_session(buyer)
        _, changes = await update_buyer(session, buyer.id, owner, stored_at.replace(tzinfo=None), {"status": "Visited"})
        assert changes == {"status": {"old": "New", "new": "Visited"}}
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_validation_failure_leaves_record_untouched(self) -> None:
        owner = uuid.uuid4()
        stored_at = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        buyer = _stored_buyer(owner, stored_at)
        session = _mock_session(buyer)
        with pytest.raises(RecordValidationError):
            await update_buyer(session, buyer.id, owner, stored_at, {"phone": "1"})
        assert buyer.phone == "9876543210"
        assert buyer.updated_at == stored_at
        session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_write_during_flush_is_conflict(self) -> None:
        owner = uuid.uuid4()
        stored_at = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        buyer = _stored_buyer(owner, stored_at)
        session = _mock_session(buyer)
        session.flush.side_effect = StaleDataError("0 rows matched")
        with pytest.raises(ConcurrencyConflictError):
            await update_buyer(session, buyer.id, owner, stored_at, {"status": "Visited"})
        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()


class TestListBuyers:
    """Tests for list_buyers argument checks."""

    @pytest.mark.asyncio
    async def test_unknown_sort_column(self) -> None:
        with pytest.raises(ValueError, match="Cannot sort by"):
            await list_buyers(_mock_session(), sort_by="owner_id")

    @pytest.mark.asyncio
    async def test_unknown_sort_order(self) -> None:
        with pytest.raises(ValueError, match="Invalid sort order"):
            await list_buyers(_mock_session(), sort_order="sideways")
