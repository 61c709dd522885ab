from fastapi import APIRouter, Depends

from sitecheck.database import async_session
from sitecheck.dependencies import get_current_user, get_privileged_user
from sitecheck.models.user import User
from sitecheck.schemas.site import SiteImportRequest, SiteResponse
from sitecheck.services.sites import list_sites, parse_site_rows, upsert_sites
from sitecheck.utils.response import success_response

router = APIRouter(prefix="/sites", tags=["sites"])


@router.get("")
async def get_sites(uf: str | None = None, user: User = Depends(get_current_user)):
    async with async_session() as db:
        sites = await list_sites(db, uf)
        data = [SiteResponse.model_validate(s).model_dump() for s in sites]
    return success_response(data=data)


@router.post("/import")
async def import_sites(payload: SiteImportRequest, user: User = Depends(get_privileged_user)):
    parsed = parse_site_rows(payload.rows)
    async with async_session() as db:
        inserted = await upsert_sites(db, parsed.sites, created_by=user.id)

    data = {
        "accepted": [s.site_code for s in parsed.sites],
        "inserted": inserted,
        "errors": parsed.errors,
    }
    message = f"{len(parsed.sites)} sites aceitos, {len(parsed.errors)} linhas com erro"
    return success_response(data=data, message=message)
