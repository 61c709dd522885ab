from fastapi import APIRouter, Depends
from sqlalchemy import select

from sitecheck.database import async_session
from sitecheck.dependencies import get_privileged_user
from sitecheck.models.assignment import SiteAssignment
from sitecheck.models.report import Report
from sitecheck.models.site import Site
from sitecheck.models.user import User
from sitecheck.services.dashboard import aggregate_regions
from sitecheck.utils.response import success_response

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/regions")
async def region_summary(user: User = Depends(get_privileged_user)):
    async with async_session() as db:
        sites = (await db.execute(select(Site))).scalars().all()
        assignments = (await db.execute(select(SiteAssignment))).scalars().all()
        reports = (await db.execute(select(Report.site_code))).all()

    summaries = aggregate_regions(sites, assignments, reports)
    return success_response(data=[s.as_dict() for s in summaries])
