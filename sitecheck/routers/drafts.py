from fastapi import APIRouter, Depends

from sitecheck.database import async_session
from sitecheck.dependencies import get_checklist_sessions
from sitecheck.routers.checklists import session_view
from sitecheck.services.checklist_sessions import ChecklistSessions
from sitecheck.services.drafts import delete_draft, list_drafts, load_draft
from sitecheck.utils.response import success_response

router = APIRouter(prefix="/drafts", tags=["drafts"])


@router.get("")
async def get_drafts():
    async with async_session() as db:
        drafts = await list_drafts(db)
        data = [
            {
                "id": d.id,
                "site_code": d.site_code,
                "uf": d.uf,
                "synchronized": bool(d.synchronized),
                "updated_at": d.updated_at,
            }
            for d in drafts
        ]
    return success_response(data=data)


@router.post("/{draft_id}/load", status_code=201)
async def open_draft(draft_id: str, sessions: ChecklistSessions = Depends(get_checklist_sessions)):
    async with async_session() as db:
        record = await load_draft(db, draft_id)
    chk = sessions.create(record)
    return success_response(data=session_view(chk))


@router.delete("/{draft_id}")
async def remove_draft(draft_id: str):
    async with async_session() as db:
        await delete_draft(db, draft_id)
    return success_response(message="Rascunho excluído")
