import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sitecheck.database import Base
from sitecheck.models import AuthToken, ChecklistDraft, Report, Site, SiteAssignment, User


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
    await engine.dispose()


@pytest.mark.asyncio
async def test_create_user_and_token(db_session):
    db_session.add(User(id="u-001", username="tecnico", email="t@example.com", password_hash="hashed"))
    db_session.add(AuthToken(token="tok", user_id="u-001", created_at="2026-03-01T10:00:00Z"))
    await db_session.commit()

    user = await db_session.get(User, "u-001")
    assert user.role == "technician"
    assert user.approved == 0
    token = await db_session.get(AuthToken, "tok")
    assert token.user_id == "u-001"


@pytest.mark.asyncio
async def test_site_code_is_unique(db_session):
    db_session.add(Site(id="s-1", site_code="AMBEL", uf="AM", tipo="Outdoor", created_at="2026-03-01"))
    await db_session.commit()

    db_session.add(Site(id="s-2", site_code="AMBEL", uf="AM", tipo="Indoor", created_at="2026-03-01"))
    with pytest.raises(IntegrityError):
        await db_session.commit()


@pytest.mark.asyncio
async def test_create_assignment(db_session):
    assignment = SiteAssignment(
        id="a-001", site_id="s-1", technician_id="u-001", assigned_by="u-002",
        deadline="2026-03-10", created_at="2026-03-01", updated_at="2026-03-01",
    )
    db_session.add(assignment)
    await db_session.commit()

    result = await db_session.get(SiteAssignment, "a-001")
    assert result.status == "pending"
    assert result.completed_at is None
    assert result.report_id is None


@pytest.mark.asyncio
async def test_create_report(db_session):
    report = Report(
        id="r-001", created_at="2026-03-01T10:00:00Z", created_date="01/03/2026", created_time="10:00",
        site_code="AMBEL", state_uf="AM", row="{}", payload="{}", pdf_file_path="Checklist_AMBEL_AM_01032026.pdf",
    )
    db_session.add(report)
    await db_session.commit()

    result = await db_session.get(Report, "r-001")
    assert result.total_cabinets == 1
    assert result.excel_file_path is None


@pytest.mark.asyncio
async def test_create_draft(db_session):
    db_session.add(ChecklistDraft(id="d-001", payload="{}", updated_at="2026-03-01T10:00:00Z"))
    await db_session.commit()

    result = await db_session.get(ChecklistDraft, "d-001")
    assert result.synchronized == 0
    assert result.site_code is None
