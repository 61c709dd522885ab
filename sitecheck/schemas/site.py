from typing import Any

from pydantic import BaseModel


class SiteImportRequest(BaseModel):
    rows: list[Any]


class SiteResponse(BaseModel):
    id: str
    site_code: str
    uf: str
    tipo: str
    created_at: str

    model_config = {"from_attributes": True}
