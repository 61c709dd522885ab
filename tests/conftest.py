import os
import tempfile
from io import BytesIO

import pytest

# must be set before sitecheck.config is imported
_TMP_DIR = tempfile.mkdtemp(prefix="sitecheck-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/test.sqlite3")
os.environ.setdefault("DATA_DIR", _TMP_DIR)
os.environ.setdefault("SUBMISSION_RESET_DELAY_SECONDS", "0")


@pytest.fixture(autouse=True, scope="session")
def setup_test_db():
    import asyncio

    # Disable API key auth for tests
    from sitecheck.config import settings
    settings.api_key = ""

    from sitecheck.database import create_tables, async_session, engine
    from sitecheck.seed import seed_data

    async def _setup():
        await create_tables()
        async with async_session() as session:
            await seed_data(session)
        await engine.dispose()

    asyncio.run(_setup())


@pytest.fixture
def make_jpeg():
    from PIL import Image

    def _make(size=(64, 48), color=(200, 30, 30), fmt="JPEG") -> bytes:
        buf = BytesIO()
        Image.new("RGB", size, color).save(buf, format=fmt)
        return buf.getvalue()

    return _make


@pytest.fixture
def local_photo(make_jpeg):
    from sitecheck.services.image_compression import encode_data_url

    return encode_data_url(make_jpeg(), "image/jpeg")


@pytest.fixture
def complete_record(local_photo):
    """A record where every scored field is filled."""
    from sitecheck.schemas.checklist import (
        AccessTechnology,
        BatteryBank,
        BatteryManufacturer,
        BatterySection,
        BatteryType,
        CabinetRecord,
        ChecklistRecord,
        PowerConverter,
        PowerSection,
        TransportTechnology,
    )

    cabinet = CabinetRecord(
        access_technologies=frozenset({AccessTechnology.G4}),
        transport_technologies=frozenset({TransportTechnology.GPON}),
        panoramic_photo=local_photo,
        power_converter=PowerConverter(dc_load=1200, panoramic_photo=local_photo, panel_photo=local_photo),
        batteries=BatterySection(
            bank_count=1,
            banks=(BatteryBank(type=BatteryType.LITHIUM, manufacturer=BatteryManufacturer.MOURA, capacity_ah=200),),
            bank_photo=local_photo,
        ),
    )
    return ChecklistRecord(
        site_code="AMBEL",
        uf="AM",
        panoramic_photo=local_photo,
        cabinets=(cabinet,),
        power=PowerSection(main_panel_photo=local_photo),
        technician="João Silva",
        signature=local_photo,
    )


async def login(client, username: str, password: str) -> dict:
    response = await client.post("/api/v1/auth/login", json={"username": username, "password": password})
    token = response.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return login
