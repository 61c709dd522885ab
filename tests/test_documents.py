from datetime import datetime, timezone
from io import BytesIO

import pytest
from openpyxl import load_workbook

from sitecheck.schemas.checklist import ChecklistRecord
from sitecheck.services.documents import (
    EMBEDDED_PHOTO,
    DocumentService,
    FilesystemDocumentSink,
    PdfReportGenerator,
    SpreadsheetReportGenerator,
    build_report_row,
    document_filename,
    photo_cell,
)

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


def test_photo_cell(local_photo):
    assert photo_cell(None) is None
    assert photo_cell(local_photo) == EMBEDDED_PHOTO
    assert photo_cell("https://cdn.example.com/a.jpg") == "https://cdn.example.com/a.jpg"


def test_document_filename():
    assert document_filename(ChecklistRecord(site_code="AMBEL", uf="AM"), "pdf", NOW) == "Checklist_AMBEL_AM_14032026.pdf"
    assert document_filename(ChecklistRecord(), "xlsx", NOW) == "Checklist_NOVO_PA_14032026.xlsx"


def test_report_row_columns(complete_record):
    row = build_report_row(complete_record, NOW)

    assert row["id_relatorio"] == complete_record.id
    assert row["created_date"] == "14/03/2026"
    assert row["created_time"] == "09:30"
    assert row["technician_name"] == "João Silva"
    assert row["site_code"] == "AMBEL"
    assert row["state_uf"] == "AM"
    assert row["total_cabinets"] == 1
    assert row["gab1_tecnologias_acesso"] == "4G"
    assert row["gab1_bat1_tipo"] == "LÍTIO"
    assert row["gab1_bat1_capacidade"] == 200
    assert row["gab1_fcc_consumo"] == 1200
    assert row["gmg_existe"] == "NÃO"
    # local payloads never end up in the row
    assert row["panoramic_photo_url"] == EMBEDDED_PHOTO
    assert row["assinatura_digital"] == EMBEDDED_PHOTO
    assert "gab2_tipo" not in row


class MemorySink:
    def __init__(self):
        self.documents = []

    async def deliver(self, document):
        self.documents.append(document)
        return document.filename


@pytest.mark.asyncio
async def test_generates_pdf_and_spreadsheet(complete_record):
    sink = MemorySink()
    batch = await DocumentService([PdfReportGenerator(), SpreadsheetReportGenerator()], sink).generate(
        complete_record, NOW
    )

    assert batch.warnings == []
    assert batch.filename("pdf") == "Checklist_AMBEL_AM_14032026.pdf"
    assert batch.filename("xlsx") == "Checklist_AMBEL_AM_14032026.xlsx"

    pdf, xlsx = sink.documents
    assert pdf.content.startswith(b"%PDF")
    assert pdf.media_type == "application/pdf"

    sheet = load_workbook(BytesIO(xlsx.content)).active
    header = [c.value for c in sheet[1]]
    values = [c.value for c in sheet[2]]
    assert header[0] == "id_relatorio"
    assert values[header.index("site_code")] == "AMBEL"
    assert sheet["A1"].font.bold


@pytest.mark.asyncio
async def test_one_failing_generator_does_not_stop_the_other(complete_record):
    class BrokenPdf(PdfReportGenerator):
        def render(self, record, row):
            raise RuntimeError("fonte ausente")

    sink = MemorySink()
    batch = await DocumentService([BrokenPdf(), SpreadsheetReportGenerator()], sink).generate(complete_record, NOW)

    assert batch.filename("pdf") is None
    assert batch.filename("xlsx") == "Checklist_AMBEL_AM_14032026.xlsx"
    assert batch.warnings == ["Falha ao gerar PDF: fonte ausente"]
    assert len(sink.documents) == 1


@pytest.mark.asyncio
async def test_filesystem_sink_writes_files(tmp_path, complete_record):
    sink = FilesystemDocumentSink(str(tmp_path / "documents"))
    batch = await DocumentService([SpreadsheetReportGenerator()], sink).generate(complete_record, NOW)

    assert (tmp_path / "documents" / batch.filename("xlsx")).exists()
