"""Local draft history: store snapshots kept by record id until submitted or deleted."""
import logging
from datetime import datetime, timezone

from sqlalchemy import select

from sitecheck.models.draft import ChecklistDraft
from sitecheck.schemas.checklist import ChecklistRecord
from sitecheck.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


async def save_draft(session, record: ChecklistRecord) -> ChecklistDraft:
    draft = await session.get(ChecklistDraft, record.id)
    if draft is None:
        draft = ChecklistDraft(id=record.id)
        session.add(draft)
    draft.site_code = record.site_code or None
    draft.uf = record.uf.value if record.uf else None
    draft.payload = record.model_dump_json()
    draft.synchronized = 1 if record.synchronized else 0
    draft.updated_at = datetime.now(timezone.utc).isoformat()
    await session.commit()
    await session.refresh(draft)
    logger.info("Draft %s saved", record.id)
    return draft


async def list_drafts(session) -> list[ChecklistDraft]:
    result = await session.execute(select(ChecklistDraft).order_by(ChecklistDraft.updated_at.desc()))
    return list(result.scalars().all())


async def load_draft(session, draft_id: str) -> ChecklistRecord:
    draft = await session.get(ChecklistDraft, draft_id)
    if draft is None:
        raise NotFoundError("Rascunho não encontrado")
    return ChecklistRecord.model_validate_json(draft.payload)


async def delete_draft(session, draft_id: str) -> None:
    draft = await session.get(ChecklistDraft, draft_id)
    if draft is None:
        raise NotFoundError("Rascunho não encontrado")
    await session.delete(draft)
    await session.commit()
