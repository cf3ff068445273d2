import pytest

from auracli.core.services.lead_service import LeadService
from auracli.domain.models.diagnostics import AnalysisResult, RoadmapItem
from auracli.domain.models.errors import (
    DocumentNotFoundError, LeadValidationError, StoreUnavailableError,
)
from auracli.infrastructure.identity.session import Identity
from auracli.infrastructure.store.local_store import InMemoryDocumentStore, JsonFileDocumentStore

IDENTITY = Identity(uid="user-123", is_anonymous=True)


class TickingClock:
    def __init__(self):
        self.now = 1_000.0

    def __call__(self):
        self.now += 1
        return self.now


@pytest.fixture
def store():
    return InMemoryDocumentStore(clock=TickingClock())


@pytest.fixture
def service(store):
    return LeadService(store=store, app_id="aura-test")


@pytest.fixture
def analysis():
    return AnalysisResult(
        aura_score=742,
        face_type="Oval",
        clinical_roadmap=[
            RoadmapItem("Microneedling", "Texture", "Fine lines", "$3,200"),
            RoadmapItem("Laser Genesis", "Tone", "Redness", "$1,800"),
        ],
    )


def test_collection_path_is_scoped_by_app_id(service):
    assert service.collection == "artifacts/aura-test/public/data/leads"


def test_build_lead_derives_value_and_roadmap(service, analysis):
    lead = service.build_lead("  Ava  ", "ava@example.com", analysis, IDENTITY)

    assert lead.name == "Ava"
    assert lead.aura_score == 742
    assert lead.est_value == "$5,000"
    assert lead.full_roadmap[0] == {
        "name": "Microneedling", "benefit": "Texture", "rationale": "Fine lines", "estimatedValue": "$3,200",
    }
    assert lead.user_id == "user-123"
    assert lead.status == "new"
    assert lead.touches == 0


@pytest.mark.parametrize("name, email", [("", "ava@example.com"), ("Ava", "not-an-email"), ("Ava", "")])
def test_build_lead_validates_input(service, analysis, name, email):
    with pytest.raises(LeadValidationError):
        service.build_lead(name, email, analysis, IDENTITY)


@pytest.mark.asyncio
async def test_save_lead_writes_document_with_server_timestamp(service, store, analysis):
    lead = await service.save_lead("Ava", "ava@example.com", analysis, IDENTITY)

    [(doc_id, data)] = await store.get_all(service.collection)
    assert doc_id == lead.id
    assert data["estValue"] == "$5,000"
    assert data["status"] == "new"
    assert data["userId"] == "user-123"
    assert isinstance(data["createdAt"], float)


@pytest.mark.asyncio
async def test_save_lead_store_failure_becomes_sync_failed(service, store, analysis, mocker):
    mocker.patch.object(store, "create", side_effect=OSError("disk full"))

    with pytest.raises(StoreUnavailableError, match="Database sync failed."):
        await service.save_lead("Ava", "ava@example.com", analysis, IDENTITY)


@pytest.mark.asyncio
async def test_list_leads_is_newest_first(service, analysis):
    first = await service.save_lead("Ava", "ava@example.com", analysis, IDENTITY)
    second = await service.save_lead("Bo", "bo@example.com", analysis, IDENTITY)

    leads = await service.list_leads()

    assert [lead.id for lead in leads] == [second.id, first.id]


@pytest.mark.asyncio
async def test_watch_leads_receives_sorted_updates(service, analysis):
    updates = []
    unsubscribe = service.watch_leads(updates.append)

    await service.save_lead("Ava", "ava@example.com", analysis, IDENTITY)
    await service.save_lead("Bo", "bo@example.com", analysis, IDENTITY)
    unsubscribe()

    assert updates[0] == []
    assert [lead.name for lead in updates[-1]] == ["Bo", "Ava"]


@pytest.mark.asyncio
async def test_update_status_normalizes_and_counts_touches(service, analysis):
    lead = await service.save_lead("Ava", "ava@example.com", analysis, IDENTITY)

    await service.update_status(lead.id, " Contacted ")
    await service.update_status(lead.id, "booked")

    [updated] = await service.list_leads()
    assert updated.status == "booked"
    assert updated.touches == 2


@pytest.mark.asyncio
async def test_update_status_requires_a_value(service):
    with pytest.raises(LeadValidationError):
        await service.update_status("any", "   ")


@pytest.mark.asyncio
async def test_update_status_of_unknown_lead_raises(service):
    with pytest.raises(DocumentNotFoundError):
        await service.update_status("missing", "booked")


@pytest.mark.asyncio
async def test_connect_failure_becomes_sync_failed(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{broken", encoding="utf-8")
    service = LeadService(store=JsonFileDocumentStore(path), app_id="aura-test")

    with pytest.raises(StoreUnavailableError, match="Database sync failed."):
        await service.connect()


@pytest.mark.asyncio
async def test_update_status_store_failure_becomes_sync_failed(service, store, analysis, mocker):
    lead = await service.save_lead("Ava", "ava@example.com", analysis, IDENTITY)
    mocker.patch.object(store, "update", side_effect=OSError("read-only file system"))

    with pytest.raises(StoreUnavailableError, match="Database sync failed."):
        await service.update_status(lead.id, "booked")


@pytest.mark.asyncio
async def test_update_status_failed_write_keeps_stored_lead(tmp_path, analysis, mocker):
    path = tmp_path / "store.json"
    service = LeadService(store=JsonFileDocumentStore(path), app_id="aura-test")
    await service.connect()
    lead = await service.save_lead("Ava", "ava@example.com", analysis, IDENTITY)
    before = path.read_bytes()
    mocker.patch("auracli.infrastructure.store.local_store.os.replace", side_effect=OSError("disk full"))

    with pytest.raises(StoreUnavailableError):
        await service.update_status(lead.id, "booked")

    assert path.read_bytes() == before
    [stored] = await service.list_leads()
    assert stored.status == "new"
    assert stored.touches == 0


@pytest.mark.asyncio
async def test_refresh_notifies_watchers_of_external_changes(tmp_path, analysis):
    path = tmp_path / "store.json"
    watcher = LeadService(store=JsonFileDocumentStore(path), app_id="aura-test")
    writer = LeadService(store=JsonFileDocumentStore(path), app_id="aura-test")
    await watcher.connect()
    await writer.connect()
    updates = []
    watcher.watch_leads(updates.append)

    await writer.save_lead("Ava", "ava@example.com", analysis, IDENTITY)

    assert await watcher.refresh() is True
    assert [lead.name for lead in updates[-1]] == ["Ava"]


@pytest.mark.asyncio
async def test_refresh_of_corrupted_store_becomes_sync_failed(tmp_path):
    path = tmp_path / "store.json"
    service = LeadService(store=JsonFileDocumentStore(path), app_id="aura-test")
    await service.connect()
    path.write_text("{broken", encoding="utf-8")

    with pytest.raises(StoreUnavailableError, match="Database sync failed."):
        await service.refresh()
