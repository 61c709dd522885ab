"""Report documents generated from a photo-resolved checklist.

``build_report_row`` flattens a record into the column layout shared by the
``reports`` table and the spreadsheet export. The PDF is a paginated
summary of the same row.
"""
import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from io import BytesIO
from typing import Any, Optional, Protocol

from openpyxl import Workbook
from openpyxl.styles import Font
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from sitecheck.schemas.checklist import (
    MAX_AIR_CONDITIONERS,
    MAX_BATTERY_BANKS,
    MAX_CABINETS,
    ChecklistRecord,
)
from sitecheck.schemas.photo import PhotoState, photo_state

logger = logging.getLogger(__name__)

EMBEDDED_PHOTO = "[FOTO INCORPORADA]"


def _v(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _yes_no(flag: bool) -> str:
    return "SIM" if flag else "NÃO"


def _ok_nok(flag: bool) -> str:
    return "OK" if flag else "NOK"


def photo_cell(value: Optional[str]) -> Optional[str]:
    """URLs are kept as links; local payloads are only flagged, never inlined."""
    if not value:
        return None
    if photo_state(value) is PhotoState.LOCAL:
        return EMBEDDED_PHOTO
    return value


def _joined(values) -> Optional[str]:
    return ", ".join(sorted(_v(v) for v in values)) or None


def document_filename(record: ChecklistRecord, extension: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    site = record.site_code or "NOVO"
    uf = _v(record.uf) or "NA"
    return f"Checklist_{site}_{uf}_{now.strftime('%d%m%Y')}.{extension}"


def build_report_row(record: ChecklistRecord, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    row: dict[str, Any] = {
        "id_relatorio": record.id,
        "created_date": now.strftime("%d/%m/%Y"),
        "created_time": now.strftime("%H:%M"),
        "technician_name": record.technician or None,
        "site_code": record.site_code or "NOVO",
        "state_uf": _v(record.uf),
        "total_cabinets": record.cabinet_count,
        "panoramic_photo_url": photo_cell(record.panoramic_photo),
    }

    for i, cab in enumerate(record.cabinets[:MAX_CABINETS]):
        p = f"gab{i + 1}"
        fcc = cab.power_converter
        row[f"{p}_tipo"] = _v(cab.type)
        row[f"{p}_protecao"] = _yes_no(cab.protected)
        row[f"{p}_tecnologias_acesso"] = _joined(cab.access_technologies)
        row[f"{p}_tecnologias_transporte"] = _joined(cab.transport_technologies)

        row[f"{p}_fcc_fabricante"] = fcc.manufacturer_other or _v(fcc.manufacturer)
        row[f"{p}_fcc_tensao"] = _v(fcc.dc_voltage)
        row[f"{p}_fcc_gerenciado"] = _yes_no(fcc.managed)
        row[f"{p}_fcc_gerenciavel"] = _yes_no(fcc.manageable)
        row[f"{p}_fcc_consumo"] = fcc.dc_load
        row[f"{p}_fcc_qtd_ur"] = fcc.supported_units
        row[f"{p}_fcc_foto_panoramica"] = photo_cell(fcc.panoramic_photo)
        row[f"{p}_fcc_foto_painel"] = photo_cell(fcc.panel_photo)

        for j, bank in enumerate(cab.batteries.banks[:MAX_BATTERY_BANKS]):
            b = f"{p}_bat{j + 1}"
            row[f"{b}_tipo"] = _v(bank.type)
            row[f"{b}_fabricante"] = bank.manufacturer_other or _v(bank.manufacturer)
            row[f"{b}_capacidade"] = bank.capacity_ah
            row[f"{b}_data_fabricacao"] = bank.manufactured_on or None
            row[f"{b}_estado"] = _v(bank.condition)
        row[f"{p}_bancos_interligados"] = _yes_no(cab.batteries.interconnected)
        row[f"{p}_bat_foto"] = photo_cell(cab.batteries.bank_photo)

        clima = cab.climate
        row[f"{p}_climatizacao_tipo"] = _v(clima.type)
        row[f"{p}_ventiladores_status"] = _ok_nok(clima.fan_ok)
        for j, ac in enumerate(clima.air_conditioners[:MAX_AIR_CONDITIONERS]):
            row[f"{p}_ac{j + 1}_modelo"] = _v(ac.model)
            row[f"{p}_ac{j + 1}_status"] = _v(ac.status)
        row[f"{p}_plc_status"] = _v(clima.plc_lead_lag)
        row[f"{p}_alarme_status"] = clima.alarm or None
        for n in range(1, MAX_AIR_CONDITIONERS + 1):
            row[f"{p}_clima_foto_ar{n}"] = photo_cell(getattr(clima, f"ac{n}_photo"))
        row[f"{p}_clima_foto_condensador"] = photo_cell(clima.condenser_photo)
        row[f"{p}_clima_foto_evaporador"] = photo_cell(clima.evaporator_photo)
        row[f"{p}_clima_foto_controlador"] = photo_cell(clima.controller_photo)

        row[f"{p}_foto_panoramica"] = photo_cell(cab.panoramic_photo)
        row[f"{p}_foto_transmissao"] = photo_cell(cab.transmission_photo)
        row[f"{p}_foto_acesso"] = photo_cell(cab.access_photo)

    fiber = record.fiber
    row["fibra_abordagens"] = len(fiber.approaches)
    row["fibra_convergencia"] = _v(fiber.convergence)
    row["fibra_foto_geral"] = photo_cell(fiber.overview_photo)
    row["fibra_qtd_dgos"] = len(fiber.dgos)

    power = record.power
    row["energia_tipo_quadro"] = _v(power.panel_type)
    row["energia_fabricante"] = power.manufacturer_other or _v(power.manufacturer)
    row["energia_potencia_kva"] = power.power_kva
    row["energia_tensao_entrada"] = _v(power.input_voltage)
    row["energia_transformador"] = _ok_nok(power.transformer_ok)
    row["energia_placa_status"] = _v(power.plate_status)
    row["energia_foto_transformador"] = photo_cell(power.transformer_photo)
    row["energia_foto_quadro_geral"] = photo_cell(power.main_panel_photo)
    row["energia_foto_placa"] = photo_cell(power.plate_photo)
    row["energia_foto_cabos"] = photo_cell(power.cables.photo)

    gen = record.generator
    row["gmg_existe"] = _yes_no(gen.present)
    row["gmg_fabricante"] = _v(gen.manufacturer)
    row["gmg_potencia"] = gen.power_kva
    row["gmg_autonomia"] = gen.autonomy_hours
    row["gmg_status"] = _v(gen.status)

    tower = record.tower
    row["torre_ninhos"] = _yes_no(tower.nests)
    row["torre_protecao_fibra"] = _yes_no(tower.fiber_protected)
    row["torre_aterramento"] = _v(tower.grounding)
    row["torre_housekeeping"] = _v(tower.housekeeping)
    row["torre_foto_ninhos"] = photo_cell(tower.nest_photo)

    row["observacoes"] = record.notes or None
    row["observacao_fotos"] = " | ".join(
        photo_cell(p) for p in record.observation_photos if p
    ) or None
    row["assinatura_digital"] = photo_cell(record.signature)
    return row


@dataclass(frozen=True)
class Document:
    filename: str
    content: bytes
    media_type: str


class DocumentGenerator(Protocol):
    extension: str
    media_type: str

    def render(self, record: ChecklistRecord, row: dict[str, Any]) -> bytes: ...


class PdfReportGenerator:
    extension = "pdf"
    media_type = "application/pdf"

    margin = 40
    line_height = 13

    def render(self, record: ChecklistRecord, row: dict[str, Any]) -> bytes:
        buffer = BytesIO()
        width, height = A4
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(f"Checklist {row['site_code']}")

        pdf.setFont("Helvetica-Bold", 14)
        pdf.drawString(self.margin, height - self.margin, f"Checklist de Site {row['site_code']} / {row['state_uf'] or '-'}")
        pdf.setFont("Helvetica", 9)
        y = height - self.margin - 2 * self.line_height

        for key, value in row.items():
            if value is None or value == "":
                continue
            if y < self.margin:
                pdf.showPage()
                pdf.setFont("Helvetica", 9)
                y = height - self.margin
            text = f"{key}: {value}"
            if len(text) > 110:
                text = text[:107] + "..."
            pdf.drawString(self.margin, y, text)
            y -= self.line_height

        pdf.save()
        return buffer.getvalue()


class SpreadsheetReportGenerator:
    extension = "xlsx"
    media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    def render(self, record: ChecklistRecord, row: dict[str, Any]) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = "Checklist"
        ws.append(list(row.keys()))
        ws.append(list(row.values()))
        for cell in ws[1]:
            cell.font = Font(bold=True)
        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()


class DocumentSink(Protocol):
    async def deliver(self, document: Document) -> str: ...


class FilesystemDocumentSink:
    def __init__(self, directory: str):
        self.directory = directory

    def _write(self, document: Document) -> str:
        os.makedirs(self.directory, exist_ok=True)
        target = os.path.join(self.directory, document.filename)
        with open(target, "wb") as f:
            f.write(document.content)
        return target

    async def deliver(self, document: Document) -> str:
        return await asyncio.to_thread(self._write, document)


@dataclass
class DocumentBatch:
    documents: dict[str, str]
    warnings: list[str]

    def filename(self, extension: str) -> Optional[str]:
        return self.documents.get(extension)


class DocumentService:
    """Renders every generator independently; one failing never stops the others."""

    def __init__(self, generators: list[DocumentGenerator], sink: DocumentSink):
        self.generators = generators
        self.sink = sink

    async def generate(self, record: ChecklistRecord, now: Optional[datetime] = None) -> DocumentBatch:
        now = now or datetime.now(timezone.utc)
        row = build_report_row(record, now)
        batch = DocumentBatch(documents={}, warnings=[])

        for generator in self.generators:
            filename = document_filename(record, generator.extension, now)
            try:
                content = await asyncio.to_thread(generator.render, record, row)
                await self.sink.deliver(Document(filename, content, generator.media_type))
            except Exception as e:
                logger.warning("Document %s failed: %s", filename, e)
                batch.warnings.append(f"Falha ao gerar {generator.extension.upper()}: {e}")
                continue
            batch.documents[generator.extension] = filename
            logger.info("Generated %s", filename)

        return batch


def default_document_service(data_dir: str) -> DocumentService:
    return DocumentService(
        [PdfReportGenerator(), SpreadsheetReportGenerator()],
        FilesystemDocumentSink(os.path.join(data_dir, "documents")),
    )
