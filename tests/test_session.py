"""
Tests for NoteSession: open/create, debounced auto-save, save-status and locking.
"""

import asyncio

import pytest

from conftest import FAST_DEBOUNCE, TEST_ROUNDS, RecordingContentStore
from domains.core import AccessDeniedError, SessionNotReadyError, ValidationError
from domains.note_hub.core import EMPTY_FINGERPRINT, OpenState, SaveStatus
from domains.note_hub.services import AccessGuard, NoteSession

SETTLE = FAST_DEBOUNCE * 4


class TestOpen:

    @pytest.mark.asyncio
    async def test_open_without_id_redirects_without_touching_storage(self, session, store):
        result = await session.open()

        assert result.state == OpenState.REDIRECT
        assert len(result.note_id) == 26
        assert result.content is None
        assert store.note_count() == 0

    @pytest.mark.asyncio
    async def test_open_unknown_id_creates_empty_note_with_version_one(self, session, store):
        result = await session.open("fresh-note")

        assert result.state == OpenState.READY
        assert result.created is True
        assert result.content == ""
        assert result.version == 1
        assert store.version_numbers("fresh-note") == [1]

        initial = await store.get_version("fresh-note", 1)
        assert initial.content == ""
        assert initial.content_hash == EMPTY_FINGERPRINT

    @pytest.mark.asyncio
    async def test_open_existing_note_returns_content(self, make_session, store):
        writer = make_session()
        await writer.open("shared")
        await store.upsert("shared", "hello")

        reader = make_session()
        result = await reader.open("shared")

        assert result.state == OpenState.READY
        assert result.created is False
        assert result.content == "hello"
        assert reader.content == "hello"
        assert store.version_numbers("shared") == [1]

    @pytest.mark.asyncio
    async def test_concurrent_first_open_creates_exactly_one_note(self, make_session, store):
        sessions = [make_session() for _ in range(5)]

        results = await asyncio.gather(*(s.open("race") for s in sessions))

        assert store.note_count() == 1
        assert store.version_numbers("race") == [1]
        assert sum(1 for r in results if r.created) == 1
        assert all(r.state == OpenState.READY and r.content == "" for r in results)

    @pytest.mark.asyncio
    async def test_invalid_id_is_rejected_before_storage(self, session, store):
        with pytest.raises(ValidationError):
            await session.open("not a valid id")
        assert store.note_count() == 0

    @pytest.mark.asyncio
    async def test_failed_initial_version_does_not_block_open(self, session, store):
        store.fail_version_inserts = True

        result = await session.open("no-history")

        assert result.state == OpenState.READY
        assert result.created is True
        assert store.version_numbers("no-history") == []

    @pytest.mark.asyncio
    async def test_reopen_with_pending_edit_keeps_store_and_session_in_step(self, session, store):
        await session.open("reopen")
        session.record_edit("unsaved")

        result = await session.open("reopen")
        await asyncio.sleep(SETTLE)

        assert result.content == "unsaved"
        assert session.content == "unsaved"
        assert (await store.get("reopen")).content == "unsaved"
        assert store.contents_saved("reopen") == ["unsaved"]
        assert session.has_pending_save is False

    @pytest.mark.asyncio
    async def test_edit_before_open_is_rejected(self, session):
        with pytest.raises(SessionNotReadyError):
            session.record_edit("too early")


class TestAutosave:

    @pytest.mark.asyncio
    async def test_rapid_edits_are_coalesced_into_one_save(self, session, store):
        await session.open("typing")

        for text in ["H", "He", "Hel", "Hell", "Hello"]:
            session.record_edit(text)
            await asyncio.sleep(FAST_DEBOUNCE / 5)
        assert store.contents_saved("typing") == []

        await asyncio.sleep(SETTLE)

        assert store.contents_saved("typing") == ["Hello"]
        assert session.status == SaveStatus.SAVED
        assert session.save_state.saved_at is not None
        assert (await store.get("typing")).content == "Hello"

    @pytest.mark.asyncio
    async def test_edit_updates_working_content_immediately(self, session):
        await session.open("local")
        session.record_edit("draft")
        assert session.content == "draft"
        assert session.has_pending_save

    @pytest.mark.asyncio
    async def test_autosave_never_creates_versions(self, session, store):
        await session.open("no-versions")
        session.record_edit("first")
        await session.flush()
        session.record_edit("second")
        await session.flush()

        assert store.version_numbers("no-versions") == [1]

    @pytest.mark.asyncio
    async def test_observers_see_saving_then_saved(self, session):
        await session.open("observed")
        seen = []
        session.subscribe(lambda state: seen.append(state.status))

        session.record_edit("text")
        await asyncio.sleep(SETTLE)

        assert seen == [SaveStatus.SAVING, SaveStatus.SAVED]

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_notifications(self, session):
        await session.open("quiet")
        seen = []
        unsubscribe = session.subscribe(lambda state: seen.append(state.status))
        unsubscribe()

        session.record_edit("text")
        await session.flush()

        assert seen == []

    @pytest.mark.asyncio
    async def test_failed_save_reports_error_and_is_not_retried(self, session, store):
        await session.open("flaky")
        store.fail_upserts = True

        session.record_edit("lost?")
        await asyncio.sleep(SETTLE)

        assert session.status == SaveStatus.ERROR
        assert "connection reset" in session.save_state.error
        assert store.upsert_attempts == 1

        await asyncio.sleep(SETTLE)
        assert store.upsert_attempts == 1
        assert session.content == "lost?"

    @pytest.mark.asyncio
    async def test_next_edit_after_error_saves_normally(self, session, store):
        await session.open("recovers")
        store.fail_upserts = True
        session.record_edit("one")
        await session.flush()
        assert session.status == SaveStatus.ERROR

        store.fail_upserts = False
        session.record_edit("one two")
        await session.flush()

        assert session.status == SaveStatus.SAVED
        assert session.save_state.error is None
        assert (await store.get("recovers")).content == "one two"

    @pytest.mark.asyncio
    async def test_saves_from_one_session_land_in_order(self):
        store = RecordingContentStore(latency=FAST_DEBOUNCE)
        session = NoteSession(
            store,
            access_guard=AccessGuard(store, rounds=TEST_ROUNDS),
            debounce_seconds=0.001,
        )
        try:
            await session.open("ordered")
            session.record_edit("older")
            await asyncio.sleep(0.01)
            session.record_edit("newer")
            await session.flush()
        finally:
            session.close()

        assert store.contents_saved("ordered") == ["older", "newer"]
        assert (await store.get("ordered")).content == "newer"

    @pytest.mark.asyncio
    async def test_flush_without_pending_edit_is_a_no_op(self, session, store):
        await session.open("idle")
        state = await session.flush()
        assert state.status == SaveStatus.IDLE
        assert store.upsert_attempts == 0


class TestClose:

    @pytest.mark.asyncio
    async def test_close_cancels_pending_save(self, session, store):
        await session.open("abandoned")
        session.record_edit("never saved")
        session.close()

        await asyncio.sleep(SETTLE)

        assert store.upsert_attempts == 0
        assert not session.has_pending_save

    @pytest.mark.asyncio
    async def test_in_flight_save_after_close_does_not_change_state(self):
        store = RecordingContentStore(latency=FAST_DEBOUNCE)
        session = NoteSession(
            store,
            access_guard=AccessGuard(store, rounds=TEST_ROUNDS),
            debounce_seconds=0.001,
        )
        await session.open("closing")
        seen = []
        session.subscribe(lambda state: seen.append(state.status))

        session.record_edit("last words")
        await asyncio.sleep(0.01)
        assert session.status == SaveStatus.SAVING

        session.close()
        await asyncio.sleep(FAST_DEBOUNCE * 3)

        assert session.status == SaveStatus.SAVING
        assert seen == [SaveStatus.SAVING]
        assert (await store.get("closing")).content == "last words"

    @pytest.mark.asyncio
    async def test_closed_session_rejects_operations(self, session):
        await session.open("done")
        session.close()

        with pytest.raises(SessionNotReadyError):
            session.record_edit("x")
        with pytest.raises(SessionNotReadyError):
            await session.open("done")


class TestLocking:

    @pytest.mark.asyncio
    async def test_protected_note_opens_locked_without_content(self, make_session, access_guard, store):
        owner = make_session()
        await owner.open("secret")
        owner.record_edit("classified")
        await owner.flush()
        await access_guard.set_password("secret", "hunter22")

        visitor = make_session()
        result = await visitor.open("secret")

        assert result.state == OpenState.LOCKED
        assert result.content is None
        assert result.version is None
        assert visitor.content == ""
        with pytest.raises(SessionNotReadyError):
            visitor.record_edit("vandalism")

    @pytest.mark.asyncio
    async def test_unlock_with_wrong_password_stays_locked(self, make_session, access_guard):
        await make_session().open("secret")
        await access_guard.set_password("secret", "hunter22")

        visitor = make_session()
        await visitor.open("secret")
        with pytest.raises(AccessDeniedError):
            await visitor.unlock("wrong-password")

        assert visitor.open_state == OpenState.LOCKED
        assert not visitor.is_ready

    @pytest.mark.asyncio
    async def test_unlock_with_correct_password_loads_content(self, make_session, access_guard, store):
        await make_session().open("secret")
        await store.upsert("secret", "classified")
        await access_guard.set_password("secret", "hunter22")

        visitor = make_session()
        await visitor.open("secret")
        result = await visitor.unlock("hunter22")

        assert result.state == OpenState.READY
        assert result.content == "classified"
        visitor.record_edit("declassified")
        await visitor.flush()
        assert (await store.get("secret")).content == "declassified"

    @pytest.mark.asyncio
    async def test_owner_stays_unlocked_after_setting_password(self, session):
        await session.open("mine")
        await session.set_password("hunter22", "hunter22")

        result = await session.open("mine")
        assert result.state == OpenState.READY

    @pytest.mark.asyncio
    async def test_removed_password_opens_without_lock(self, make_session):
        owner = make_session()
        await owner.open("was-secret")
        await owner.set_password("hunter22")
        await owner.remove_password()

        result = await make_session().open("was-secret")
        assert result.state == OpenState.READY


class TestVersionsThroughSession:

    @pytest.mark.asyncio
    async def test_save_version_flushes_then_snapshots(self, session, store):
        await session.open("versioned")
        session.record_edit("draft one")

        number = await session.save_version()

        assert number == 2
        assert session.version == 2
        assert (await store.get("versioned")).content == "draft one"
        assert (await store.get_version("versioned", 2)).content == "draft one"

    @pytest.mark.asyncio
    async def test_restore_applies_version_as_new_edit(self, session, store):
        await session.open("rewind")
        session.record_edit("kept")
        await session.save_version()
        session.record_edit("mistake")
        await session.flush()

        content = await session.restore_version(2)

        assert content == "kept"
        assert session.content == "kept"
        assert session.has_pending_save
        await session.flush()
        assert (await store.get("rewind")).content == "kept"
        assert store.version_numbers("rewind") == [1, 2]

    @pytest.mark.asyncio
    async def test_switching_notes_cancels_pending_save(self, session, store):
        await session.open("first")
        session.record_edit("for first")
        await session.open("second")

        await asyncio.sleep(SETTLE)

        assert store.contents_saved("first") == []
        assert session.content == ""
