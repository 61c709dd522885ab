"""Users, bearer tokens and the privileged email lookup."""
import logging
import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import bcrypt
from sqlalchemy import select

from sitecheck.models.user import AuthToken, User
from sitecheck.utils.exceptions import AppException, AuthorizationError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    TECHNICIAN = "technician"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"


PRIVILEGED_ROLES = frozenset({Role.SUPERVISOR.value, Role.ADMIN.value})


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode(), password_hash.encode())


def is_privileged(user: User) -> bool:
    return bool(user.approved) and user.role in PRIVILEGED_ROLES


def require_privileged(user: User) -> User:
    if not is_privileged(user):
        raise AuthorizationError("Acesso restrito a supervisores e administradores", status_code=403)
    return user


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def authenticate(session, username: str, password: str) -> User:
    result = await session.execute(select(User).where(User.username == username))
    user = result.scalars().first()
    if user is None or not verify_password(password, user.password_hash):
        raise AppException("Credenciais inválidas", status_code=400)
    return user


async def issue_token(session, user: User) -> str:
    token = secrets.token_urlsafe(32)
    session.add(AuthToken(token=token, user_id=user.id, created_at=datetime.now(timezone.utc).isoformat()))
    await session.commit()
    return token


async def user_for_token(session, token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    row = await session.get(AuthToken, token)
    if row is None:
        return None
    return await session.get(User, row.user_id)


def parse_user_ids(value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(i, str) and i for i in value):
        raise AppException("user_ids deve ser uma lista de identificadores", status_code=400)
    return value


async def lookup_emails(session, user_ids: list[str]) -> dict[str, str]:
    if not user_ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(user_ids)))
    emails = {u.id: u.email for u in result.scalars().all() if u.email}
    logger.info("Email lookup for %d ids returned %d addresses", len(user_ids), len(emails))
    return emails


async def list_technicians(session) -> list[User]:
    result = await session.execute(
        select(User).where(User.role == Role.TECHNICIAN.value).order_by(User.username)
    )
    return list(result.scalars().all())
