from typing import Any

from pydantic import BaseModel

from sitecheck.schemas.checklist import BatteryBank


class ChecklistSessionCreate(BaseModel):
    assignment_id: str | None = None
    site_code: str | None = None
    technician: str | None = None


class FieldsUpdate(BaseModel):
    # dotted path -> new value, applied in order
    fields: dict[str, Any]


class CabinetUpdate(BaseModel):
    fields: dict[str, Any]


class BatteryBankCreate(BaseModel):
    bank: BatteryBank | None = None


class CursorUpdate(BaseModel):
    step: int | None = None
    cabinet: int | None = None


class ChecklistSessionResponse(BaseModel):
    id: str
    assignment_id: str | None = None
    current_step: int
    current_cabinet: int
    score: int
    readiness: str
    step_validation: dict
    record: dict
