from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from httpx import AsyncClient, ASGITransport

from sitecheck.main import app
from sitecheck.seed import SEED_SITES, SEED_SUPERVISOR_ID, SEED_TECHNICIAN_ID
from sitecheck.services.assignments import (
    AssignmentStatus,
    SqlAssignmentRepository,
    check_transition,
    is_overdue,
)
from sitecheck.utils.exceptions import InvalidTransitionError, NotFoundError

PACRE_ID = SEED_SITES[0]["id"]


@pytest.mark.parametrize(
    "current,target",
    [("pending", "in_progress"), ("pending", "done"), ("in_progress", "done")],
)
def test_allowed_transitions(current, target):
    assert check_transition(current, target) is AssignmentStatus(target)


@pytest.mark.parametrize(
    "current,target",
    [("done", "pending"), ("done", "in_progress"), ("in_progress", "pending"), ("pending", "pending")],
)
def test_rejected_transitions(current, target):
    with pytest.raises(InvalidTransitionError) as exc:
        check_transition(current, target)
    assert exc.value.status_code == 409
    assert exc.value.message == f"Transição inválida: {current} para {target}"


def test_overdue():
    now = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)

    def a(deadline, status="pending"):
        return SimpleNamespace(deadline=deadline, status=status)

    assert is_overdue(a("2026-03-13"), now)
    # the whole deadline day is still on time
    assert not is_overdue(a("2026-03-14"), now)
    assert is_overdue(a("2026-03-14T08:00:00+00:00"), now)
    assert not is_overdue(a("2026-03-13", status="done"), now)


@pytest.mark.asyncio
async def test_repository_lifecycle():
    repo = SqlAssignmentRepository()
    assignment = await repo.create(PACRE_ID, SEED_TECHNICIAN_ID, SEED_SUPERVISOR_ID, "2026-04-01")
    assert assignment.status == "pending"

    started = await repo.start(assignment.id)
    assert started.status == "in_progress"
    # starting twice is harmless
    assert (await repo.start(assignment.id)).status == "in_progress"

    await repo.update_status(assignment.id, AssignmentStatus.DONE, completed_at="2026-03-14T09:30:00+00:00", report_id="r-1")
    [done] = [a for a in await repo.list_assignments(SEED_TECHNICIAN_ID) if a.id == assignment.id]
    assert done.status == "done"
    assert done.report_id == "r-1"
    assert done.completed_at == "2026-03-14T09:30:00+00:00"

    with pytest.raises(InvalidTransitionError):
        await repo.start(assignment.id)
    with pytest.raises(InvalidTransitionError):
        await repo.update_status(assignment.id, AssignmentStatus.IN_PROGRESS)


@pytest.mark.asyncio
async def test_repository_unknown_assignment():
    repo = SqlAssignmentRepository()
    with pytest.raises(NotFoundError):
        await repo.start("missing")
    with pytest.raises(NotFoundError):
        await repo.update_status("missing", AssignmentStatus.DONE)


@pytest.mark.asyncio
async def test_assignment_endpoints(auth_headers):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        supervisor = await auth_headers(client, "supervisor", "supervisor123")
        tecnico = await auth_headers(client, "tecnico", "tecnico123")

        created = await client.post(
            "/api/v1/assignments",
            json={"site_id": PACRE_ID, "technician_id": SEED_TECHNICIAN_ID, "deadline": "2020-01-01"},
            headers=supervisor,
        )
        assert created.status_code == 201
        data = created.json()["data"]
        assert data["status"] == "pending"
        assert data["assigned_by"] == SEED_SUPERVISOR_ID
        assert data["overdue"] is True

        mine = await client.get("/api/v1/assignments", headers=tecnico)
        assert data["id"] in [a["id"] for a in mine.json()["data"]]
        assert {a["technician_id"] for a in mine.json()["data"]} == {SEED_TECHNICIAN_ID}

        started = await client.post(f"/api/v1/assignments/{data['id']}/start", headers=tecnico)
        assert started.status_code == 200
        assert started.json()["data"]["status"] == "in_progress"


@pytest.mark.asyncio
async def test_assignment_creation_rules(auth_headers):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        supervisor = await auth_headers(client, "supervisor", "supervisor123")
        tecnico = await auth_headers(client, "tecnico", "tecnico123")
        payload = {"site_id": PACRE_ID, "technician_id": SEED_TECHNICIAN_ID, "deadline": "2026-05-01"}

        by_technician = await client.post("/api/v1/assignments", json=payload, headers=tecnico)
        unknown_site = await client.post(
            "/api/v1/assignments", json={**payload, "site_id": "missing"}, headers=supervisor
        )
        not_a_technician = await client.post(
            "/api/v1/assignments", json={**payload, "technician_id": SEED_SUPERVISOR_ID}, headers=supervisor
        )
        start_missing = await client.post("/api/v1/assignments/missing/start", headers=tecnico)

    assert by_technician.status_code == 403
    assert unknown_site.status_code == 404
    assert unknown_site.json()["message"] == "Site não encontrado"
    assert not_a_technician.status_code == 404
    assert not_a_technician.json()["message"] == "Técnico não encontrado"
    assert start_missing.status_code == 404
