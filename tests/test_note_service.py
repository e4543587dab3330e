"""
Tests for NoteService: stateless request handling, access checks, metadata and collections.
"""

import pytest

from domains.core import AccessDeniedError, ConflictError, NoteNotFoundError, ValidationError
from domains.note_hub.core import OpenState


@pytest.fixture
async def protected_note(note_service):
    await note_service.open_note("vault")
    await note_service.save_content("vault", "gold")
    await note_service.set_password("vault", "opensesame", "opensesame")
    return "vault"


class TestOpenAndSave:

    @pytest.mark.asyncio
    async def test_open_creates_then_loads(self, note_service, store):
        created = await note_service.open_note("page")
        await note_service.save_content("page", "body")
        loaded = await note_service.open_note("page")

        assert created.created is True
        assert loaded.created is False
        assert loaded.content == "body"
        assert store.version_numbers("page") == [1]

    @pytest.mark.asyncio
    async def test_save_to_unknown_note_is_rejected(self, note_service, store):
        with pytest.raises(NoteNotFoundError):
            await note_service.save_content("never-opened", "text")
        assert store.note_count() == 0

    def test_new_note_id_does_not_touch_storage(self, note_service, store):
        assert len(note_service.new_note_id()) == 26
        assert store.note_count() == 0


class TestProtectedNotes:

    @pytest.mark.asyncio
    async def test_open_without_password_is_locked(self, note_service, protected_note):
        result = await note_service.open_note(protected_note)
        assert result.state == OpenState.LOCKED
        assert result.content is None

    @pytest.mark.asyncio
    async def test_open_with_wrong_password_is_still_locked(self, note_service, protected_note):
        result = await note_service.open_note(protected_note, password="nope-nope")
        assert result.state == OpenState.LOCKED

    @pytest.mark.asyncio
    async def test_open_with_password_returns_content(self, note_service, protected_note):
        result = await note_service.open_note(protected_note, password="opensesame")
        assert result.state == OpenState.READY
        assert result.content == "gold"

    @pytest.mark.asyncio
    async def test_unlock_with_wrong_password_raises(self, note_service, protected_note):
        with pytest.raises(AccessDeniedError):
            await note_service.unlock_note(protected_note, "nope-nope")

    @pytest.mark.asyncio
    async def test_unlock_unknown_note_raises_not_found(self, note_service, store):
        with pytest.raises(NoteNotFoundError):
            await note_service.unlock_note("ghost", "whatever")
        assert store.note_count() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", [None, "nope-nope"])
    async def test_mutations_require_the_password(self, note_service, protected_note, password):
        with pytest.raises(AccessDeniedError):
            await note_service.save_content(protected_note, "stolen", password=password)
        with pytest.raises(AccessDeniedError):
            await note_service.create_version(protected_note, password=password)
        with pytest.raises(AccessDeniedError):
            await note_service.list_versions(protected_note, password=password)
        with pytest.raises(AccessDeniedError):
            await note_service.remove_password(protected_note, password=password)
        with pytest.raises(AccessDeniedError):
            await note_service.set_password(protected_note, "takeover1", current_password=password)

    @pytest.mark.asyncio
    async def test_mutations_with_password_succeed(self, note_service, protected_note, store):
        await note_service.save_content(protected_note, "more gold", password="opensesame")
        number = await note_service.create_version(protected_note, password="opensesame")

        assert number == 2
        assert (await store.get_version(protected_note, 2)).content == "more gold"

    @pytest.mark.asyncio
    async def test_change_password_with_current_password(self, note_service, protected_note):
        await note_service.set_password(
            protected_note, "newsecret", "newsecret", current_password="opensesame"
        )

        locked = await note_service.open_note(protected_note, password="opensesame")
        unlocked = await note_service.open_note(protected_note, password="newsecret")
        assert locked.state == OpenState.LOCKED
        assert unlocked.state == OpenState.READY

    @pytest.mark.asyncio
    async def test_invalid_new_password_fails_validation_first(self, note_service, protected_note):
        with pytest.raises(ValidationError):
            await note_service.set_password(protected_note, "short")


class TestVersions:

    @pytest.mark.asyncio
    async def test_snapshot_defaults_to_saved_content(self, note_service, store):
        await note_service.open_note("doc")
        await note_service.save_content("doc", "saved body")

        number = await note_service.create_version("doc")

        assert number == 2
        assert (await note_service.get_version("doc", 2)).content == "saved body"

    @pytest.mark.asyncio
    async def test_restore_rewrites_content_without_new_version(self, note_service, store):
        await note_service.open_note("doc")
        await note_service.create_version("doc", content="v2 text")
        await note_service.save_content("doc", "later text")

        content = await note_service.restore_version("doc", 2)

        assert content == "v2 text"
        assert (await store.get("doc")).content == "v2 text"
        assert store.version_numbers("doc") == [1, 2]

    @pytest.mark.asyncio
    async def test_list_versions_newest_first(self, note_service):
        await note_service.open_note("doc")
        for text in ["a", "b", "c"]:
            await note_service.create_version("doc", content=text)

        versions = await note_service.list_versions("doc")
        assert [v.version_number for v in versions] == [4, 3, 2, 1]


class TestMetadataAndCollections:

    @pytest.mark.asyncio
    async def test_update_metadata_normalises_tags(self, note_service, store):
        await note_service.open_note("tagged")

        note = await note_service.update_metadata(
            "tagged", collection="  Work ", tags=["plan", " plan", "", "q3"]
        )

        assert note.collection == "Work"
        assert note.tags_list == ["plan", "q3"]
        stored = await store.get("tagged")
        assert stored.collection == "Work"
        assert stored.tags == "plan,q3"

    @pytest.mark.asyncio
    async def test_blank_collection_clears_membership(self, note_service, store):
        await note_service.open_note("tagged")
        await note_service.update_metadata("tagged", collection="Work")
        await note_service.update_metadata("tagged", collection="   ")

        assert (await store.get("tagged")).collection is None

    @pytest.mark.asyncio
    async def test_collections_are_unique_and_sorted(self, note_service):
        await note_service.create_collection("zeta")
        await note_service.create_collection(" alpha ", "first")

        with pytest.raises(ConflictError):
            await note_service.create_collection("zeta")

        names = [c.name for c in await note_service.list_collections()]
        assert names == ["alpha", "zeta"]

    @pytest.mark.asyncio
    async def test_blank_collection_name_is_rejected(self, note_service):
        with pytest.raises(ValidationError):
            await note_service.create_collection("   ")
