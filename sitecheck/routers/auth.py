from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sitecheck.database import get_db
from sitecheck.schemas.auth import LoginRequest, LoginResponse
from sitecheck.services.users import authenticate, issue_token
from sitecheck.utils.response import success_response

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await authenticate(db, request.username, request.password)
    token = await issue_token(db, user)

    return success_response(
        data=LoginResponse(
            user_id=user.id, username=user.username, role=user.role, access_token=token,
        ).model_dump()
    )
