from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse

from sitecheck.config import settings
from sitecheck.database import async_session
from sitecheck.dependencies import (
    get_assignment_repository,
    get_checklist_sessions,
    get_document_service,
    get_photo_pipeline,
    get_report_repository,
)
from sitecheck.models.assignment import SiteAssignment
from sitecheck.models.site import Site
from sitecheck.schemas.checklist import ChecklistRecord, is_photo_path, photo_category
from sitecheck.schemas.session import (
    BatteryBankCreate,
    CabinetUpdate,
    ChecklistSessionCreate,
    ChecklistSessionResponse,
    CursorUpdate,
    FieldsUpdate,
)
from sitecheck.services.checklist_sessions import ChecklistSession, ChecklistSessions
from sitecheck.services.drafts import save_draft
from sitecheck.services.photo_pipeline import PhotoPipeline, upload_site_code
from sitecheck.services.submission import SubmissionOrchestrator, SubmissionStage
from sitecheck.services.validation import completion_score, readiness, validate_step
from sitecheck.utils.exceptions import InvalidPathError, NotFoundError
from sitecheck.utils.response import envelope, success_response

router = APIRouter(prefix="/checklists", tags=["checklists"])


def session_view(chk: ChecklistSession) -> dict:
    store = chk.store
    record = store.snapshot()
    score = completion_score(record)
    return ChecklistSessionResponse(
        id=chk.id,
        assignment_id=chk.assignment_id,
        current_step=store.current_step,
        current_cabinet=store.current_cabinet,
        score=score,
        readiness=readiness(score).value,
        step_validation=validate_step(record, store.current_step, store.current_cabinet).as_dict(),
        record=record.model_dump(mode="json"),
    ).model_dump()


@router.post("", status_code=201)
async def create_checklist(
    payload: ChecklistSessionCreate | None = None,
    sessions: ChecklistSessions = Depends(get_checklist_sessions),
    assignments=Depends(get_assignment_repository),
):
    payload = payload or ChecklistSessionCreate()
    fields = {}
    if payload.site_code:
        fields["site_code"] = payload.site_code.strip().upper()
    if payload.technician:
        fields["technician"] = payload.technician

    if payload.assignment_id:
        async with async_session() as db:
            assignment = await db.get(SiteAssignment, payload.assignment_id)
            if assignment is None:
                raise NotFoundError("Atribuição não encontrada")
            site = await db.get(Site, assignment.site_id)
        if site is not None:
            fields.update(site_code=site.site_code, uf=site.uf)
        await assignments.start(payload.assignment_id)

    record = ChecklistRecord.model_validate(fields)
    chk = sessions.create(record, assignment_id=payload.assignment_id)
    return success_response(data=session_view(chk))


@router.get("/{session_id}")
async def get_checklist(session_id: str, sessions: ChecklistSessions = Depends(get_checklist_sessions)):
    return success_response(data=session_view(sessions.get(session_id)))


@router.delete("/{session_id}")
async def close_checklist(session_id: str, sessions: ChecklistSessions = Depends(get_checklist_sessions)):
    sessions.get(session_id)
    sessions.close(session_id)
    return success_response(message="Checklist encerrado")


@router.patch("/{session_id}/fields")
async def update_fields(
    session_id: str,
    payload: FieldsUpdate,
    sessions: ChecklistSessions = Depends(get_checklist_sessions),
):
    chk = sessions.get(session_id)
    for path, value in payload.fields.items():
        chk.store.update(path, value)
    return success_response(data=session_view(chk))


@router.patch("/{session_id}/cabinets/{index}")
async def update_cabinet(
    session_id: str,
    index: int,
    payload: CabinetUpdate,
    sessions: ChecklistSessions = Depends(get_checklist_sessions),
):
    chk = sessions.get(session_id)
    chk.store.update_cabinet(index, payload.fields)
    return success_response(data=session_view(chk))


@router.post("/{session_id}/cabinets", status_code=201)
async def add_cabinet(session_id: str, sessions: ChecklistSessions = Depends(get_checklist_sessions)):
    chk = sessions.get(session_id)
    chk.store.add_cabinet()
    return success_response(data=session_view(chk))


@router.delete("/{session_id}/cabinets/{index}")
async def remove_cabinet(
    session_id: str, index: int, sessions: ChecklistSessions = Depends(get_checklist_sessions)
):
    chk = sessions.get(session_id)
    chk.store.remove_cabinet(index)
    return success_response(data=session_view(chk))


@router.post("/{session_id}/cabinets/{index}/batteries", status_code=201)
async def add_battery_bank(
    session_id: str,
    index: int,
    payload: BatteryBankCreate | None = None,
    sessions: ChecklistSessions = Depends(get_checklist_sessions),
):
    chk = sessions.get(session_id)
    chk.store.add_battery_bank(index, payload.bank if payload else None)
    return success_response(data=session_view(chk))


@router.delete("/{session_id}/cabinets/{index}/batteries/{bank}")
async def remove_battery_bank(
    session_id: str,
    index: int,
    bank: int,
    sessions: ChecklistSessions = Depends(get_checklist_sessions),
):
    chk = sessions.get(session_id)
    chk.store.remove_battery_bank(index, bank)
    return success_response(data=session_view(chk))


@router.put("/{session_id}/cursor")
async def move_cursor(
    session_id: str,
    payload: CursorUpdate,
    sessions: ChecklistSessions = Depends(get_checklist_sessions),
):
    chk = sessions.get(session_id)
    chk.store.set_cursor(payload.step, payload.cabinet)
    return success_response(data=session_view(chk))


@router.post("/{session_id}/photos", status_code=201)
async def upload_photo(
    session_id: str,
    path: str = Form(...),
    file: UploadFile = File(...),
    category: str | None = Form(default=None),
    sessions: ChecklistSessions = Depends(get_checklist_sessions),
    pipeline: PhotoPipeline = Depends(get_photo_pipeline),
):
    chk = sessions.get(session_id)
    store = chk.store
    if not is_photo_path(path):
        raise InvalidPathError(path)
    current = store.get(path)

    # one byte past the limit is enough for capture to reject it
    value = pipeline.capture(await file.read(pipeline.max_input_bytes + 1), file.content_type)
    if isinstance(current, tuple):
        slot = f"{path}.{len(current)}"
        store.update(path, current + (value,))
    else:
        slot = path
        store.update(slot, value)

    progress: list[int] = []
    result = await pipeline.resolve(
        value,
        upload_site_code(store.snapshot().site_code),
        category or photo_category(slot),
        on_progress=progress.append,
    )

    try:
        still_there = store.get(slot) == value
    except InvalidPathError:
        still_there = False
    if still_there and result.value != value:
        store.update(slot, result.value)

    return success_response(data={
        "path": slot,
        "status": result.status.value,
        "value": result.value,
        "progress": progress,
        "error": result.error,
        "score": completion_score(store.snapshot()),
    })


@router.delete("/{session_id}/photos")
async def delete_photo(
    session_id: str,
    path: str = Query(...),
    sessions: ChecklistSessions = Depends(get_checklist_sessions),
    pipeline: PhotoPipeline = Depends(get_photo_pipeline),
):
    chk = sessions.get(session_id)
    store = chk.store
    current = store.get(path)
    if not is_photo_path(path) or isinstance(current, tuple):
        raise InvalidPathError(path)

    await pipeline.remove(current)

    parent, _, last = path.rpartition(".")
    if last.isdigit():
        items = store.get(parent)
        i = int(last)
        store.update(parent, items[:i] + items[i + 1:])
    else:
        store.update(path, None)
    return success_response(data=session_view(chk))


@router.post("/{session_id}/submit")
async def submit_checklist(
    session_id: str,
    sessions: ChecklistSessions = Depends(get_checklist_sessions),
    pipeline: PhotoPipeline = Depends(get_photo_pipeline),
    documents=Depends(get_document_service),
    reports=Depends(get_report_repository),
    assignments=Depends(get_assignment_repository),
):
    chk = sessions.get(session_id)
    orchestrator = SubmissionOrchestrator(
        chk.store,
        pipeline,
        reports,
        assignments,
        documents,
        reset_delay=settings.submission_reset_delay_seconds,
    )
    outcome = await orchestrator.submit(chk.assignment_id)

    if outcome.success:
        chk.assignment_id = None
        status_code = 200
    elif outcome.stage is SubmissionStage.PREFLIGHT:
        status_code = 422
    else:
        status_code = 503
    return JSONResponse(
        status_code=status_code,
        content=envelope(outcome.success, outcome.as_dict(), outcome.message),
    )


@router.post("/{session_id}/reset")
async def reset_checklist(session_id: str, sessions: ChecklistSessions = Depends(get_checklist_sessions)):
    chk = sessions.get(session_id)
    chk.store.reset()
    chk.assignment_id = None
    return success_response(data=session_view(chk))


@router.post("/{session_id}/draft")
async def save_checklist_draft(
    session_id: str, sessions: ChecklistSessions = Depends(get_checklist_sessions)
):
    chk = sessions.get(session_id)
    async with async_session() as db:
        draft = await save_draft(db, chk.store.snapshot())
    return success_response(data={"id": draft.id, "updated_at": draft.updated_at}, message="Rascunho salvo")
