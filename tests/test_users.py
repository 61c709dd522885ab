import pytest
from httpx import AsyncClient, ASGITransport

from sitecheck.main import app
from sitecheck.seed import SEED_SUPERVISOR_ID, SEED_TECHNICIAN_ID
from sitecheck.services.users import bearer_token, hash_password, verify_password


def test_password_hashing():
    hashed = hash_password("segredo")
    assert hashed != "segredo"
    assert verify_password("segredo", hashed)
    assert not verify_password("outro", hashed)


@pytest.mark.parametrize(
    "header,expected",
    [("Bearer abc", "abc"), ("bearer  abc ", "abc"), ("Basic abc", None), ("Bearer ", None), ("", None), (None, None)],
)
def test_bearer_token(header, expected):
    assert bearer_token(header) == expected


@pytest.mark.asyncio
async def test_email_lookup(auth_headers):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        headers = await auth_headers(client, "admin", "admin123")
        response = await client.post(
            "/api/v1/users/emails",
            json={"user_ids": [SEED_TECHNICIAN_ID, SEED_SUPERVISOR_ID, "missing"]},
            headers=headers,
        )

    assert response.status_code == 200
    assert response.json()["data"]["emails"] == {
        SEED_TECHNICIAN_ID: "tecnico@example.com",
        SEED_SUPERVISOR_ID: "supervisor@example.com",
    }


@pytest.mark.asyncio
async def test_email_lookup_empty_list(auth_headers):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        headers = await auth_headers(client, "supervisor", "supervisor123")
        response = await client.post("/api/v1/users/emails", json={"user_ids": []}, headers=headers)

    assert response.status_code == 200
    assert response.json()["data"] == {"emails": {}}


@pytest.mark.asyncio
async def test_email_lookup_access(auth_headers):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        anonymous = await client.post("/api/v1/users/emails", json={"user_ids": []})
        tecnico = await auth_headers(client, "tecnico", "tecnico123")
        pendente = await auth_headers(client, "pendente", "pendente123")
        as_technician = await client.post("/api/v1/users/emails", json={"user_ids": []}, headers=tecnico)
        as_unapproved = await client.post("/api/v1/users/emails", json={"user_ids": []}, headers=pendente)

    assert anonymous.status_code == 401
    assert as_technician.status_code == 403
    assert as_unapproved.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"user_ids": "abc"}, {"user_ids": [1, 2]}, {}, ["abc"]])
async def test_email_lookup_bad_payload(auth_headers, body):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        headers = await auth_headers(client, "supervisor", "supervisor123")
        response = await client.post("/api/v1/users/emails", json=body, headers=headers)

    assert response.status_code == 400
    assert response.json()["status"] == "error"


@pytest.mark.asyncio
async def test_technician_listing(auth_headers):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        supervisor = await auth_headers(client, "supervisor", "supervisor123")
        tecnico = await auth_headers(client, "tecnico", "tecnico123")
        listed = await client.get("/api/v1/users/technicians", headers=supervisor)
        as_technician = await client.get("/api/v1/users/technicians", headers=tecnico)
        anonymous = await client.get("/api/v1/users/technicians")

    assert listed.status_code == 200
    technicians = {t["id"]: t for t in listed.json()["data"]}
    assert technicians[SEED_TECHNICIAN_ID] == {
        "id": SEED_TECHNICIAN_ID,
        "username": "tecnico",
        "email": "tecnico@example.com",
        "approved": True,
    }
    assert SEED_SUPERVISOR_ID not in technicians
    assert as_technician.status_code == 403
    assert anonymous.status_code == 401
