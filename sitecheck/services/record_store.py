"""Single-writer store that owns the checklist being edited.

One store per editing session; it is handed explicitly to whoever needs to
read or mutate the record. Every mutation replaces exactly the targeted
field (or sub-object) and shares the rest of the tree with the previous
record. No mutation performs I/O.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ValidationError

from sitecheck.schemas.checklist import (
    MAX_BATTERY_BANKS,
    MAX_CABINETS,
    BatteryBank,
    BatterySection,
    CabinetRecord,
    ChecklistRecord,
)
from sitecheck.utils.exceptions import ChecklistValidationError, InvalidPathError

logger = logging.getLogger(__name__)

STEP_COUNT = 9
CABINET_STEPS = range(1, 5)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _rebuild(model: BaseModel, changes: dict[str, Any]) -> BaseModel:
    data = dict(model)
    data.update(changes)
    try:
        return type(model).model_validate(data)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ChecklistValidationError("Valor inválido", errors=errors) from e


def _index(token: str, size: int, path: str) -> int:
    if not token.isdigit() or int(token) >= size:
        raise InvalidPathError(path)
    return int(token)


def _count(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ChecklistValidationError(
            "Valor inválido", errors=[{"field": field, "message": "Informe um número inteiro"}]
        ) from e


def _resize_cabinets(record: ChecklistRecord, count: Any) -> dict[str, Any]:
    count = max(1, min(MAX_CABINETS, _count(count, "cabinet_count")))
    cabinets = record.cabinets[:count] + tuple(
        CabinetRecord() for _ in range(count - len(record.cabinets))
    )
    return {"cabinet_count": count, "cabinets": cabinets}


def _resize_banks(section: BatterySection, count: Any) -> dict[str, Any]:
    count = max(0, min(MAX_BATTERY_BANKS, _count(count, "bank_count")))
    banks = section.banks[:count] + tuple(BatteryBank() for _ in range(count - len(section.banks)))
    return {"bank_count": count, "banks": banks}


def set_path(node: Any, parts: list[str], value: Any, path: str) -> Any:
    """Return a copy of ``node`` with the leaf at ``parts`` replaced by ``value``."""
    head, rest = parts[0], parts[1:]

    if isinstance(node, tuple):
        i = _index(head, len(node), path)
        items = list(node)
        items[i] = set_path(node[i], rest, value, path) if rest else value
        return tuple(items)

    if not isinstance(node, BaseModel) or head not in type(node).model_fields:
        raise InvalidPathError(path)

    if not rest:
        # count fields drive their sequences; both change in one rebuild
        if isinstance(node, ChecklistRecord) and head == "cabinet_count":
            return _rebuild(node, _resize_cabinets(node, value))
        if isinstance(node, BatterySection) and head == "bank_count":
            return _rebuild(node, _resize_banks(node, value))
        return _rebuild(node, {head: value})

    child = set_path(getattr(node, head), rest, value, path)
    return _rebuild(node, {head: child})


def get_path(record: ChecklistRecord, path: str) -> Any:
    node: Any = record
    for part in path.split("."):
        if isinstance(node, tuple):
            node = node[_index(part, len(node), path)]
        elif isinstance(node, BaseModel) and part in type(node).model_fields:
            node = getattr(node, part)
        else:
            raise InvalidPathError(path)
    return node


class ChecklistStore:
    """Owns one ``ChecklistRecord`` plus the wizard cursor (step, cabinet)."""

    def __init__(self, record: ChecklistRecord | None = None):
        self._record = record or ChecklistRecord()
        self.current_step = 0
        self.current_cabinet = 0

    @property
    def record(self) -> ChecklistRecord:
        return self._record

    def snapshot(self) -> ChecklistRecord:
        return self._record

    def _commit(self, record: ChecklistRecord) -> ChecklistRecord:
        self._record = _rebuild(record, {"updated_at": _now()})
        self._clamp_cursor()
        return self._record

    def _clamp_cursor(self) -> None:
        self.current_cabinet = max(0, min(self.current_cabinet, len(self._record.cabinets) - 1))

    def _cabinet(self, index: int) -> CabinetRecord:
        if not 0 <= index < len(self._record.cabinets):
            raise InvalidPathError(f"cabinets.{index}")
        return self._record.cabinets[index]

    def _put_cabinet(self, index: int, cabinet: CabinetRecord) -> ChecklistRecord:
        cabinets = list(self._record.cabinets)
        cabinets[index] = cabinet
        return self._commit(_rebuild(self._record, {"cabinets": tuple(cabinets)}))

    def replace(self, record: ChecklistRecord) -> ChecklistRecord:
        self._record = record
        self.current_step = 0
        self.current_cabinet = 0
        return record

    def update(self, path: str, value: Any) -> ChecklistRecord:
        if not path:
            raise InvalidPathError(path)
        record = set_path(self._record, path.split("."), value, path)
        return self._commit(record)

    def get(self, path: str) -> Any:
        return get_path(self._record, path)

    def update_cabinet(self, index: int, fields: dict[str, Any]) -> ChecklistRecord:
        cabinet = self._cabinet(index)
        unknown = set(fields) - set(CabinetRecord.model_fields)
        if unknown:
            raise InvalidPathError(f"cabinets.{index}.{sorted(unknown)[0]}")
        return self._put_cabinet(index, _rebuild(cabinet, fields))

    def add_cabinet(self) -> ChecklistRecord:
        if len(self._record.cabinets) >= MAX_CABINETS:
            return self._record
        cabinets = self._record.cabinets + (CabinetRecord(),)
        return self._commit(
            _rebuild(self._record, {"cabinets": cabinets, "cabinet_count": len(cabinets)})
        )

    def remove_cabinet(self, index: int) -> ChecklistRecord:
        self._cabinet(index)
        cabinets = tuple(c for i, c in enumerate(self._record.cabinets) if i != index)
        if not cabinets:
            cabinets = (CabinetRecord(),)
        return self._commit(
            _rebuild(self._record, {"cabinets": cabinets, "cabinet_count": len(cabinets)})
        )

    def add_battery_bank(self, cabinet_index: int, bank: BatteryBank | None = None) -> ChecklistRecord:
        cabinet = self._cabinet(cabinet_index)
        section = cabinet.batteries
        if len(section.banks) >= MAX_BATTERY_BANKS:
            logger.debug("Cabinet %d already holds %d banks", cabinet_index, MAX_BATTERY_BANKS)
            return self._record
        banks = section.banks + (bank or BatteryBank(),)
        section = _rebuild(section, {"banks": banks, "bank_count": len(banks)})
        return self._put_cabinet(cabinet_index, _rebuild(cabinet, {"batteries": section}))

    def remove_battery_bank(self, cabinet_index: int, bank_index: int) -> ChecklistRecord:
        cabinet = self._cabinet(cabinet_index)
        section = cabinet.batteries
        if not 0 <= bank_index < len(section.banks):
            raise InvalidPathError(f"cabinets.{cabinet_index}.batteries.banks.{bank_index}")
        banks = tuple(b for i, b in enumerate(section.banks) if i != bank_index)
        section = _rebuild(section, {"banks": banks, "bank_count": len(banks)})
        return self._put_cabinet(cabinet_index, _rebuild(cabinet, {"batteries": section}))

    def set_cursor(self, step: int | None = None, cabinet: int | None = None) -> None:
        if step is not None:
            self.current_step = max(0, min(STEP_COUNT - 1, step))
        if cabinet is not None:
            self.current_cabinet = cabinet
        self._clamp_cursor()

    def reset(self) -> ChecklistRecord:
        self._record = ChecklistRecord()
        self.current_step = 0
        self.current_cabinet = 0
        logger.info("Checklist reset, new record %s", self._record.id)
        return self._record
