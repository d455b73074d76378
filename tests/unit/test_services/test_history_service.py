"""Tests for the buyer history service module."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from lead_intake.services.history_service import (
    CREATED_VIA_FORM,
    CREATED_VIA_IMPORT,
    creation_diff,
    list_history,
    recent_history,
    record_history,
)


class TestCreationDiff:
    """Tests for creation_diff."""

    def test_form_sentinel(self) -> None:
        assert creation_diff(CREATED_VIA_FORM) == {"created": {"old": None, "new": "New buyer created"}}

    def test_import_sentinel(self) -> None:
        assert creation_diff(CREATED_VIA_IMPORT) == {"created": {"old": None, "new": "Imported from CSV"}}


class TestRecordHistory:
    """Tests for record_history."""

    def test_stages_entry_without_committing(self) -> None:
        session = MagicMock()
        buyer_id = uuid.uuid4()
        user_id = uuid.uuid4()
        diff = {"status": {"old": "New", "new": "Contacted"}}

        entry = record_history(session, buyer_id=buyer_id, changed_by=user_id, diff=diff)

        session.add.assert_called_once_with(entry)
        session.commit.assert_not_called()
        assert entry.buyer_id == buyer_id
        assert entry.changed_by == user_id
        assert entry.diff == diff
        assert entry.changed_at.tzinfo is not None


class TestListHistory:
    """Tests for list_history."""

    @pytest.mark.asyncio
    async def test_returns_entries_and_count(self) -> None:
        session = AsyncMock()
        entry = MagicMock()

        count_result = MagicMock()
        count_result.scalar_one.return_value = 1
        select_result = MagicMock()
        select_result.scalars.return_value.all.return_value = [entry]
        session.execute.side_effect = [count_result, select_result]

        items, total = await list_history(session, uuid.uuid4(), page=1, page_size=20)

        assert total == 1
        assert items == [entry]
        assert session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_recent_history(self) -> None:
        session = AsyncMock()
        entries = [MagicMock(), MagicMock()]
        result = MagicMock()
        result.scalars.return_value.all.return_value = entries
        session.execute.return_value = result

        assert await recent_history(session, uuid.uuid4()) == entries
