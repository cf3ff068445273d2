import json

import pytest

from auracli.domain.interfaces.document_store import SERVER_TIMESTAMP, Increment
from auracli.domain.models.errors import DocumentNotFoundError
from auracli.infrastructure.store.local_store import InMemoryDocumentStore, JsonFileDocumentStore

LEADS = "artifacts/app-1/public/data/leads"


def fixed_clock():
    return 1_700_000_000.0


@pytest.fixture
def store():
    return InMemoryDocumentStore(clock=fixed_clock)


@pytest.mark.asyncio
async def test_create_assigns_id_and_resolves_server_timestamp(store):
    doc_id = await store.create(LEADS, {"name": "Ava", "createdAt": SERVER_TIMESTAMP})

    snapshot = await store.get_all(LEADS)

    assert snapshot == [(doc_id, {"name": "Ava", "createdAt": 1_700_000_000.0})]


@pytest.mark.asyncio
async def test_created_ids_are_unique(store):
    first = await store.create(LEADS, {"n": 1})
    second = await store.create(LEADS, {"n": 2})
    assert first != second


@pytest.mark.asyncio
async def test_stored_documents_are_isolated_from_caller_objects(store):
    data = {"roadmap": [{"name": "Peel"}]}
    doc_id = await store.create(LEADS, data)
    data["roadmap"].append({"name": "Filler"})

    snapshot = await store.get_all(LEADS)
    snapshot[0][1]["roadmap"].clear()

    assert (await store.get_all(LEADS)) == [(doc_id, {"roadmap": [{"name": "Peel"}]})]


@pytest.mark.asyncio
async def test_update_merges_fields_and_applies_increment(store):
    doc_id = await store.create(LEADS, {"status": "new", "touches": 0, "name": "Ava"})

    await store.update(LEADS, doc_id, {"status": "contacted", "touches": Increment(1)})
    await store.update(LEADS, doc_id, {"touches": Increment(2)})

    [(_, data)] = await store.get_all(LEADS)
    assert data == {"status": "contacted", "touches": 3, "name": "Ava"}


@pytest.mark.asyncio
async def test_increment_on_missing_field_starts_from_zero(store):
    doc_id = await store.create(LEADS, {"name": "Ava"})

    await store.update(LEADS, doc_id, {"touches": Increment()})

    [(_, data)] = await store.get_all(LEADS)
    assert data["touches"] == 1


@pytest.mark.asyncio
async def test_update_of_unknown_document_raises(store):
    with pytest.raises(DocumentNotFoundError):
        await store.update(LEADS, "missing", {"status": "booked"})


@pytest.mark.asyncio
async def test_get_all_of_unknown_collection_is_empty(store):
    assert await store.get_all("artifacts/other/public/data/leads") == []


@pytest.mark.asyncio
async def test_subscribe_delivers_now_and_after_each_change(store):
    snapshots = []

    unsubscribe = store.subscribe(LEADS, snapshots.append)
    doc_id = await store.create(LEADS, {"name": "Ava"})
    await store.update(LEADS, doc_id, {"status": "booked"})
    unsubscribe()
    await store.create(LEADS, {"name": "Bo"})

    assert len(snapshots) == 3
    assert snapshots[0] == []
    assert snapshots[1] == [(doc_id, {"name": "Ava"})]
    assert snapshots[2] == [(doc_id, {"name": "Ava", "status": "booked"})]


@pytest.mark.asyncio
async def test_subscribers_only_see_their_collection(store):
    snapshots = []
    store.subscribe(LEADS, snapshots.append)

    await store.create("artifacts/other/public/data/leads", {"name": "Elsewhere"})

    assert snapshots == [[]]


@pytest.mark.asyncio
async def test_listener_failure_is_routed_to_error_callback(store):
    errors = []

    def explode(snapshot):
        if snapshot:
            raise RuntimeError("listener broke")

    store.subscribe(LEADS, explode, errors.append)
    await store.create(LEADS, {"name": "Ava"})

    assert len(errors) == 1
    assert isinstance(errors[0], RuntimeError)


@pytest.mark.asyncio
async def test_listener_failure_without_error_callback_does_not_break_writes(store):
    def explode(snapshot):
        raise RuntimeError("listener broke")

    store.subscribe(LEADS, explode)
    doc_id = await store.create(LEADS, {"name": "Ava"})

    assert [d for d, _ in await store.get_all(LEADS)] == [doc_id]


def test_unsubscribe_twice_is_harmless(store):
    unsubscribe = store.subscribe(LEADS, lambda snapshot: None)
    unsubscribe()
    unsubscribe()


@pytest.mark.asyncio
async def test_json_file_store_persists_and_reloads(tmp_path):
    path = tmp_path / "nested" / "store.json"
    store = await JsonFileDocumentStore(path, clock=fixed_clock).open()

    doc_id = await store.create(LEADS, {"name": "Ava", "createdAt": SERVER_TIMESTAMP, "touches": 0})
    await store.update(LEADS, doc_id, {"touches": Increment(1)})

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk[LEADS][doc_id] == {"name": "Ava", "createdAt": 1_700_000_000.0, "touches": 1}

    reloaded = await JsonFileDocumentStore(path).open()
    assert await reloaded.get_all(LEADS) == [(doc_id, {"name": "Ava", "createdAt": 1_700_000_000.0, "touches": 1})]


@pytest.mark.asyncio
async def test_json_file_store_open_is_idempotent(tmp_path):
    path = tmp_path / "store.json"
    store = JsonFileDocumentStore(path)
    await store.open()
    await store.create(LEADS, {"name": "Ava"})

    # a second open must not reload and discard in-memory state
    await store.open()

    assert len(await store.get_all(LEADS)) == 1


@pytest.mark.asyncio
async def test_json_file_store_rejects_non_object_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(ValueError):
        await JsonFileDocumentStore(path).open()


@pytest.mark.asyncio
async def test_json_file_store_treats_blank_file_as_empty(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("  \n", encoding="utf-8")

    store = await JsonFileDocumentStore(path).open()

    assert await store.get_all(LEADS) == []


async def open_saved_store(tmp_path):
    """A file store holding one lead, plus the bytes it wrote."""
    path = tmp_path / "store.json"
    store = await JsonFileDocumentStore(path, clock=fixed_clock).open()
    doc_id = await store.create(LEADS, {"name": "Ava", "status": "new"})
    return store, path, doc_id, path.read_bytes()


@pytest.mark.asyncio
async def test_unserializable_create_leaves_file_and_memory_unchanged(tmp_path):
    store, path, doc_id, before = await open_saved_store(tmp_path)

    with pytest.raises(TypeError):
        await store.create(LEADS, {"name": "Bo", "blob": object()})

    assert path.read_bytes() == before
    assert [d for d, _ in await store.get_all(LEADS)] == [doc_id]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["store.json"]


@pytest.mark.asyncio
async def test_unserializable_update_is_rolled_back(tmp_path):
    store, path, doc_id, before = await open_saved_store(tmp_path)

    with pytest.raises(TypeError):
        await store.update(LEADS, doc_id, {"status": "booked", "note": {1, 2}})

    assert path.read_bytes() == before
    assert await store.get_all(LEADS) == [(doc_id, {"name": "Ava", "status": "new"})]


@pytest.mark.asyncio
async def test_failed_file_replace_keeps_previous_file_and_removes_temp(tmp_path, mocker):
    store, path, doc_id, before = await open_saved_store(tmp_path)
    mocker.patch("auracli.infrastructure.store.local_store.os.replace", side_effect=OSError("disk full"))
    snapshots = []
    store.subscribe(LEADS, snapshots.append)

    with pytest.raises(OSError):
        await store.update(LEADS, doc_id, {"status": "booked"})

    assert path.read_bytes() == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["store.json"]
    assert await store.get_all(LEADS) == [(doc_id, {"name": "Ava", "status": "new"})]
    # listeners only hear about changes that reached the disk
    assert len(snapshots) == 1


@pytest.mark.asyncio
async def test_failed_open_can_be_retried_and_never_overwrites_the_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{broken", encoding="utf-8")
    store = JsonFileDocumentStore(path)

    with pytest.raises(ValueError):
        await store.open()
    with pytest.raises(ValueError):
        await store.open()

    assert path.read_text(encoding="utf-8") == "{broken"

    path.write_text(json.dumps({LEADS: {"lead-1": {"name": "Ava"}}}), encoding="utf-8")
    await store.open()
    assert await store.get_all(LEADS) == [("lead-1", {"name": "Ava"})]


@pytest.mark.asyncio
async def test_refresh_picks_up_changes_from_another_writer(tmp_path):
    path = tmp_path / "store.json"
    reader = await JsonFileDocumentStore(path).open()
    writer = await JsonFileDocumentStore(path).open()
    snapshots = []
    reader.subscribe(LEADS, snapshots.append)

    doc_id = await writer.create(LEADS, {"name": "Ava"})

    assert await reader.refresh() is True
    assert snapshots == [[], [(doc_id, {"name": "Ava"})]]
    assert await reader.refresh() is False


@pytest.mark.asyncio
async def test_refresh_ignores_own_writes_and_missing_file(tmp_path):
    store = await JsonFileDocumentStore(tmp_path / "store.json").open()
    assert await store.refresh() is False

    await store.create(LEADS, {"name": "Ava"})

    assert await store.refresh() is False


@pytest.mark.asyncio
async def test_in_memory_store_has_nothing_to_refresh(store):
    assert await store.refresh() is False
