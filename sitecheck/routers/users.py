from typing import Any

from fastapi import APIRouter, Body, Depends

from sitecheck.database import async_session
from sitecheck.dependencies import get_privileged_user
from sitecheck.models.user import User
from sitecheck.schemas.auth import TechnicianResponse
from sitecheck.services.users import list_technicians, lookup_emails, parse_user_ids
from sitecheck.utils.exceptions import AppException
from sitecheck.utils.response import success_response

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/emails")
async def get_user_emails(payload: Any = Body(default=None), user: User = Depends(get_privileged_user)):
    if not isinstance(payload, dict):
        raise AppException("Corpo da requisição inválido", status_code=400)
    user_ids = parse_user_ids(payload.get("user_ids"))
    async with async_session() as db:
        emails = await lookup_emails(db, user_ids)
    return success_response(data={"emails": emails})


@router.get("/technicians")
async def get_technicians(user: User = Depends(get_privileged_user)):
    async with async_session() as db:
        technicians = await list_technicians(db)
        data = [TechnicianResponse.model_validate(t).model_dump() for t in technicians]
    return success_response(data=data)
