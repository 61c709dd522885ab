import pytest
from httpx import AsyncClient, ASGITransport

from sitecheck.database import async_session
from sitecheck.main import app
from sitecheck.schemas.checklist import ChecklistRecord
from sitecheck.services.drafts import delete_draft, list_drafts, load_draft, save_draft
from sitecheck.utils.exceptions import NotFoundError


@pytest.mark.asyncio
async def test_save_is_keyed_by_record_id(complete_record):
    async with async_session() as session:
        await save_draft(session, complete_record)
        await save_draft(session, complete_record.model_copy(update={"notes": "segunda versão"}))
        drafts = [d for d in await list_drafts(session) if d.id == complete_record.id]
        loaded = await load_draft(session, complete_record.id)

    assert len(drafts) == 1
    assert drafts[0].site_code == "AMBEL"
    assert drafts[0].uf == "AM"
    assert loaded.notes == "segunda versão"
    assert loaded.cabinets == complete_record.cabinets


@pytest.mark.asyncio
async def test_missing_draft():
    async with async_session() as session:
        with pytest.raises(NotFoundError):
            await load_draft(session, "missing")
        with pytest.raises(NotFoundError):
            await delete_draft(session, "missing")


@pytest.mark.asyncio
async def test_draft_endpoints():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        created = (await client.post("/api/v1/checklists", json={"site_code": "pacre"})).json()["data"]
        record_id = created["record"]["id"]

        saved = await client.post(f"/api/v1/checklists/{created['id']}/draft")
        assert saved.status_code == 200
        assert saved.json()["data"]["id"] == record_id
        assert saved.json()["message"] == "Rascunho salvo"

        listing = await client.get("/api/v1/drafts")
        assert record_id in [d["id"] for d in listing.json()["data"]]

        opened = await client.post(f"/api/v1/drafts/{record_id}/load")
        assert opened.status_code == 201
        session = opened.json()["data"]
        assert session["id"] != created["id"]
        assert session["record"]["id"] == record_id
        assert session["record"]["site_code"] == "PACRE"

        deleted = await client.delete(f"/api/v1/drafts/{record_id}")
        assert deleted.status_code == 200
        again = await client.delete(f"/api/v1/drafts/{record_id}")
        assert again.status_code == 404
        assert again.json()["message"] == "Rascunho não encontrado"


def test_record_survives_json_roundtrip(complete_record):
    assert ChecklistRecord.model_validate_json(complete_record.model_dump_json()) == complete_record
