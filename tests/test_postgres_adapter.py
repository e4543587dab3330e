"""
Tests for PostgresContentStore error mapping and NoteStore row conversion.

The synchronous NoteStore is replaced with a MagicMock so no database is needed.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import psycopg2
import pytest

from domains.core import ConflictError, TransientStoreError, ValidationError
from domains.note_hub.core import (
    ContentStoreAdapter,
    InsertResult,
    Note,
    NoteStore,
    NoteVersion,
    PostgresContentStore,
)


@pytest.fixture
def sync_store():
    return MagicMock(spec=NoteStore)


@pytest.fixture
def adapter(sync_store):
    return PostgresContentStore(sync_store)


class TestPostgresContentStore:

    def test_satisfies_the_adapter_protocol(self, adapter):
        assert isinstance(adapter, ContentStoreAdapter)

    @pytest.mark.asyncio
    async def test_insert_if_absent_maps_to_insert_result(self, adapter, sync_store):
        sync_store.insert_if_absent.return_value = True
        assert await adapter.insert_if_absent(Note(id="n")) == InsertResult.CREATED

        sync_store.insert_if_absent.return_value = False
        assert await adapter.insert_if_absent(Note(id="n")) == InsertResult.ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_upsert_returns_commit_time(self, adapter, sync_store):
        committed = datetime(2024, 1, 1, tzinfo=timezone.utc)
        sync_store.upsert_content.return_value = committed

        assert await adapter.upsert("n", "body") == committed
        sync_store.upsert_content.assert_called_once_with("n", "body")

    @pytest.mark.asyncio
    async def test_driver_errors_become_transient_store_errors(self, adapter, sync_store):
        cause = psycopg2.OperationalError("server closed the connection unexpectedly")
        sync_store.upsert_content.side_effect = cause

        with pytest.raises(TransientStoreError) as exc_info:
            await adapter.upsert("n", "body")

        error = exc_info.value
        assert error.operation == "upsert"
        assert error.cause is cause
        assert error.http_status_code == 502
        assert "server closed" in error.message

    @pytest.mark.asyncio
    async def test_nul_content_is_rejected_before_the_driver(self, adapter, sync_store):
        with pytest.raises(ValidationError) as exc_info:
            await adapter.upsert("n", "a\x00b")
        assert exc_info.value.details["field"] == "content"

        with pytest.raises(ValidationError):
            await adapter.insert_version(NoteVersion(note_id="n", version_number=2, content="\x00"))

        sync_store.upsert_content.assert_not_called()
        sync_store.insert_version.assert_not_called()

    @pytest.mark.asyncio
    async def test_values_refused_by_the_driver_become_validation_errors(self, adapter, sync_store):
        sync_store.update_metadata.side_effect = ValueError(
            "A string literal cannot contain NUL (0x00) characters."
        )

        with pytest.raises(ValidationError) as exc_info:
            await adapter.update_metadata("n", "work\x00", "")

        assert exc_info.value.http_status_code == 400
        assert "NUL" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_conflicts_pass_through(self, adapter, sync_store):
        sync_store.insert_version.side_effect = ConflictError("版本", "version_number", 2)

        with pytest.raises(ConflictError):
            await adapter.insert_version(MagicMock())


class TestNoteStoreRows:

    def test_row_to_entity_ignores_unknown_columns(self):
        store = NoteStore.__new__(NoteStore)
        note = store._row_to_entity({
            "id": "n",
            "content": "body",
            "version": 3,
            "password_hash": None,
            "is_protected": False,
            "collection": None,
            "tags": None,
            "extra_column": "ignored",
        })

        assert note == Note(id="n", content="body", version=3, tags="")
