from datetime import datetime

from fastapi import APIRouter, Depends

from sitecheck.database import async_session
from sitecheck.dependencies import get_current_user, get_document_service
from sitecheck.models.user import User
from sitecheck.schemas.report import ReportDetailResponse, ReportResponse
from sitecheck.services.documents import DocumentService
from sitecheck.services.reports import get_report, list_reports, report_record
from sitecheck.utils.response import success_response

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("")
async def get_reports(
    site_code: str | None = None,
    uf: str | None = None,
    user: User = Depends(get_current_user),
):
    async with async_session() as db:
        reports = await list_reports(db, site_code=site_code, uf=uf)
        data = [ReportResponse.model_validate(r).model_dump() for r in reports]
    return success_response(data=data)


@router.get("/{report_id}")
async def get_report_detail(report_id: str, user: User = Depends(get_current_user)):
    async with async_session() as db:
        report = await get_report(db, report_id)
        summary = ReportResponse.model_validate(report).model_dump()
        record = report_record(report)
    detail = ReportDetailResponse(**summary, record=record.model_dump(mode="json"))
    return success_response(data=detail.model_dump())


@router.post("/{report_id}/documents")
async def regenerate_documents(
    report_id: str,
    user: User = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
):
    async with async_session() as db:
        report = await get_report(db, report_id)
        record = report_record(report)
        # same timestamp, so the file names match the first render
        batch = await documents.generate(record, datetime.fromisoformat(report.created_at))
        if batch.documents:
            report.pdf_file_path = batch.filename("pdf") or report.pdf_file_path
            report.excel_file_path = batch.filename("xlsx") or report.excel_file_path
            await db.commit()
    return success_response(
        data={"documents": batch.documents, "warnings": batch.warnings},
        message="Documentos gerados",
    )
