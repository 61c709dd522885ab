import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from sitecheck.database import async_session
from sitecheck.models.report import Report
from sitecheck.schemas.checklist import ChecklistRecord
from sitecheck.services.documents import build_report_row
from sitecheck.utils.exceptions import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class ReportRepository(Protocol):
    async def save(
        self, record: ChecklistRecord, pdf_name: Optional[str], xlsx_name: Optional[str]
    ) -> str: ...


class SqlReportRepository:
    def __init__(self, session_factory=async_session):
        self._session_factory = session_factory

    async def save(
        self, record: ChecklistRecord, pdf_name: Optional[str], xlsx_name: Optional[str]
    ) -> str:
        """Insert the resolved record as a new report and return its id."""
        now = datetime.now(timezone.utc)
        row = build_report_row(record, now)
        report = Report(
            id=str(uuid.uuid4()),
            created_at=now.isoformat(),
            created_date=row["created_date"],
            created_time=row["created_time"],
            technician_name=row["technician_name"],
            site_code=row["site_code"],
            state_uf=row["state_uf"],
            total_cabinets=row["total_cabinets"],
            panoramic_photo_url=record.panoramic_photo,
            row=json.dumps(row, ensure_ascii=False),
            payload=record.model_dump_json(),
            pdf_file_path=pdf_name,
            excel_file_path=xlsx_name,
        )
        try:
            async with self._session_factory() as session:
                session.add(report)
                await session.commit()
        except SQLAlchemyError as e:
            logger.exception("Failed to persist report for site %s", record.site_code)
            raise PersistenceError("Falha ao salvar relatório. Tente novamente.") from e

        logger.info("Report %s saved for site %s", report.id, report.site_code)
        return report.id


async def list_reports(
    session,
    site_code: Optional[str] = None,
    uf: Optional[str] = None,
) -> list[Report]:
    query = select(Report).order_by(Report.created_at.desc())
    if site_code:
        query = query.where(Report.site_code.ilike(f"%{site_code}%"))
    if uf:
        query = query.where(Report.state_uf == uf)
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_report(session, report_id: str) -> Report:
    report = await session.get(Report, report_id)
    if report is None:
        raise NotFoundError("Relatório não encontrado")
    return report


def report_record(report: Report) -> ChecklistRecord:
    return ChecklistRecord.model_validate_json(report.payload)
