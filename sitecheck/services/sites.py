"""Site registry and tabulated spreadsheet import."""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select

from sitecheck.models.site import Site
from sitecheck.schemas.checklist import Region

logger = logging.getLogger(__name__)

VALID_UFS = tuple(r.value for r in Region)

# accepted header spellings per column
_COLUMNS = {
    "site": ("SITE", "SIGLA", "SITE_CODE"),
    "uf": ("UF", "ESTADO"),
    "tipo": ("TIPO", "TYPE"),
}


@dataclass(frozen=True)
class SiteRow:
    site_code: str
    uf: str
    tipo: str


@dataclass
class SiteImportResult:
    sites: list[SiteRow] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _cell(row: dict[str, Any], column: str) -> str:
    normalized = {str(k).strip().upper(): v for k, v in row.items()}
    for name in _COLUMNS[column]:
        value = normalized.get(name)
        if value is not None:
            return str(value).strip()
    return ""


def parse_site_rows(rows: list[dict[str, Any]]) -> SiteImportResult:
    """Validate each row on its own; a bad row is reported and skipped.

    Rows are numbered from 1 by their position in ``rows``.
    """
    result = SiteImportResult()
    for number, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            result.errors.append(f"Linha {number}: formato inválido")
            continue
        site_code = _cell(row, "site").upper()
        uf = _cell(row, "uf").upper()
        tipo = _cell(row, "tipo")

        if not site_code:
            result.errors.append(f"Linha {number}: SITE vazio")
        elif len(site_code) != 5:
            result.errors.append(f'Linha {number}: SITE "{site_code}" deve ter 5 caracteres')
        elif uf not in VALID_UFS:
            result.errors.append(f'Linha {number}: UF "{uf}" inválida. Use: {", ".join(VALID_UFS)}')
        elif not tipo:
            result.errors.append(f"Linha {number}: TIPO vazio")
        else:
            result.sites.append(SiteRow(site_code, uf, tipo))
    return result


async def upsert_sites(session, rows: list[SiteRow], created_by: Optional[str] = None) -> int:
    """Insert rows whose site code is new; existing codes are left untouched."""
    if not rows:
        return 0
    codes = {r.site_code for r in rows}
    result = await session.execute(select(Site.site_code).where(Site.site_code.in_(codes)))
    existing = set(result.scalars().all())

    now = datetime.now(timezone.utc).isoformat()
    inserted = 0
    for row in rows:
        if row.site_code in existing:
            continue
        session.add(Site(
            id=str(uuid.uuid4()),
            site_code=row.site_code,
            uf=row.uf,
            tipo=row.tipo,
            created_at=now,
            created_by=created_by,
        ))
        existing.add(row.site_code)
        inserted += 1
    await session.commit()
    logger.info("Imported %d new sites (%d duplicates ignored)", inserted, len(rows) - inserted)
    return inserted


async def list_sites(session, uf: Optional[str] = None) -> list[Site]:
    query = select(Site).order_by(Site.site_code)
    if uf:
        query = query.where(Site.uf == uf)
    result = await session.execute(query)
    return list(result.scalars().all())
