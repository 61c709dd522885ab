from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from sitecheck.config import settings
from sitecheck.database import async_session
from sitecheck.models.user import User
from sitecheck.services.checklist_sessions import ChecklistSessions
from sitecheck.services.assignments import SqlAssignmentRepository
from sitecheck.services.documents import DocumentService, default_document_service
from sitecheck.services.photo_pipeline import PhotoPipeline
from sitecheck.services.reports import SqlReportRepository
from sitecheck.services.storage import build_storage
from sitecheck.services.users import bearer_token, require_privileged, user_for_token
from sitecheck.utils.exceptions import AuthorizationError

checklist_sessions = ChecklistSessions()


async def verify_api_key(x_api_key: str = Header(default="")) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid or missing API key")


def get_checklist_sessions() -> ChecklistSessions:
    return checklist_sessions


@lru_cache
def get_photo_pipeline() -> PhotoPipeline:
    return PhotoPipeline(
        build_storage(settings),
        target_kb=settings.photo_target_kb,
        fallback_kb=settings.photo_fallback_kb,
        max_input_bytes=settings.max_photo_size_bytes,
    )


@lru_cache
def get_document_service() -> DocumentService:
    return default_document_service(settings.data_dir)


async def get_current_user(authorization: str = Header(default="")) -> User:
    token = bearer_token(authorization)
    if token is None:
        raise AuthorizationError("Não autenticado")
    async with async_session() as session:
        user = await user_for_token(session, token)
    if user is None:
        raise AuthorizationError("Sessão inválida ou expirada")
    return user


async def get_privileged_user(user: User = Depends(get_current_user)) -> User:
    return require_privileged(user)


def get_report_repository() -> SqlReportRepository:
    return SqlReportRepository()


def get_assignment_repository() -> SqlAssignmentRepository:
    return SqlAssignmentRepository()
