import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitecheck.models.site import Site
from sitecheck.models.user import User
from sitecheck.services.users import Role, hash_password


def _id(name: str) -> str:
    return str(uuid.uuid5(uuid.NAMESPACE_DNS, name))


SEED_USERS = [
    {"id": _id("user-tecnico"), "username": "tecnico", "email": "tecnico@example.com",
     "password": "tecnico123", "role": Role.TECHNICIAN.value, "approved": 1},
    {"id": _id("user-supervisor"), "username": "supervisor", "email": "supervisor@example.com",
     "password": "supervisor123", "role": Role.SUPERVISOR.value, "approved": 1},
    {"id": _id("user-admin"), "username": "admin", "email": "admin@example.com",
     "password": "admin123", "role": Role.ADMIN.value, "approved": 1},
    {"id": _id("user-pendente"), "username": "pendente", "email": "pendente@example.com",
     "password": "pendente123", "role": Role.SUPERVISOR.value, "approved": 0},
]

SEED_SITES = [
    {"id": _id("site-pacre"), "site_code": "PACRE", "uf": "PA", "tipo": "Indoor"},
    {"id": _id("site-ambel"), "site_code": "AMBEL", "uf": "AM", "tipo": "Outdoor"},
    {"id": _id("site-mapro"), "site_code": "MAPRO", "uf": "MA", "tipo": "Rooftop"},
]

SEED_TECHNICIAN_ID = SEED_USERS[0]["id"]
SEED_SUPERVISOR_ID = SEED_USERS[1]["id"]


async def seed_data(session: AsyncSession) -> None:
    result = await session.execute(select(User).limit(1))
    if result.scalars().first() is not None:
        return

    for u in SEED_USERS:
        data = dict(u)
        password = data.pop("password")
        session.add(User(password_hash=hash_password(password), **data))
    # sites reference their creator
    await session.flush()

    now = datetime.now(timezone.utc).isoformat()
    for s in SEED_SITES:
        session.add(Site(created_at=now, created_by=SEED_SUPERVISOR_ID, **s))

    await session.commit()
