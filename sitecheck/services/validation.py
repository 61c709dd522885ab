"""Per-step validation and the global completion score.

Both are pure functions of an immutable record and are memoized on their
arguments, so recomputing on an unchanged record is free and always yields
the same answer.
"""
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from sitecheck.schemas.checklist import (
    ACModel,
    BatteryType,
    CabinetRecord,
    ChecklistRecord,
    ClimateType,
    PlateStatus,
)

STEP_SITE = 0
STEP_CABINET = 1
STEP_CONVERTER = 2
STEP_BATTERIES = 3
STEP_CLIMATE = 4
STEP_FIBER = 5
STEP_POWER = 6
STEP_TOWER = 7
STEP_FINALIZE = 8

STEP_LABELS = ("Site", "Gabinete", "FCC", "Baterias", "Clima", "Fibra", "Energia", "GMG/Torre", "Finalizar")

SUBMIT_MIN_SCORE = 50
READY_MIN_SCORE = 80

# section weights, summing to 100; cabinet sections are split between cabinets
WEIGHTS = {
    "site": 10,
    "cabinet": 8,
    "converter": 12,
    "batteries": 12,
    "climate": 8,
    "power": 20,
    "tower": 15,
    "finalize": 15,
}


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class StepValidation:
    valid: bool
    errors: tuple[FieldError, ...] = ()

    def as_dict(self) -> dict:
        return {"valid": self.valid, "errors": [e.__dict__ for e in self.errors]}


class Readiness(str, Enum):
    BLOCKED = "blocked"
    WARNING = "warning"
    READY = "ready"


def field_error(errors, name: str) -> str | None:
    return next((e.message for e in errors if e.field == name), None)


def _site_errors(record: ChecklistRecord) -> list[FieldError]:
    errors = []
    if len(record.site_code) != 5:
        errors.append(FieldError("site_code", "Sigla deve ter exatamente 5 caracteres"))
    if not record.uf:
        errors.append(FieldError("uf", "Selecione a UF"))
    if not record.panoramic_photo:
        errors.append(FieldError("panoramic_photo", "Foto panorâmica é obrigatória"))
    return errors


def _cabinet_errors(cabinet: CabinetRecord) -> list[FieldError]:
    errors = []
    if not cabinet.type:
        errors.append(FieldError("type", "Selecione o tipo do gabinete"))
    if not cabinet.access_technologies:
        errors.append(FieldError("access_technologies", "Selecione pelo menos uma tecnologia de acesso"))
    return errors


def _converter_errors(cabinet: CabinetRecord) -> list[FieldError]:
    fcc = cabinet.power_converter
    errors = []
    if not fcc.manufacturer:
        errors.append(FieldError("power_converter.manufacturer", "Informe o fabricante da FCC"))
    if not fcc.dc_voltage:
        errors.append(FieldError("power_converter.dc_voltage", "Selecione a tensão DC"))
    if not fcc.panoramic_photo:
        errors.append(FieldError("power_converter.panoramic_photo", "Foto panorâmica da FCC é obrigatória"))
    return errors


def _battery_errors(cabinet: CabinetRecord) -> list[FieldError]:
    errors = []
    if cabinet.batteries.bank_count < 1:
        errors.append(FieldError("batteries.bank_count", "Informe o número de bancos"))
    if not cabinet.batteries.bank_photo:
        errors.append(FieldError("batteries.bank_photo", "Foto do banco de baterias é obrigatória"))
    return errors


def _climate_errors(cabinet: CabinetRecord) -> list[FieldError]:
    if not cabinet.climate.type:
        return [FieldError("climate.type", "Selecione o tipo de climatização")]
    return []


def _power_errors(record: ChecklistRecord) -> list[FieldError]:
    power = record.power
    errors = []
    if not power.main_panel_photo:
        errors.append(FieldError("power.main_panel_photo", "Foto do quadro geral é obrigatória"))
    if not power.transformer_ok and not power.transformer_photo:
        errors.append(FieldError("power.transformer_photo", "Foto do transformador é obrigatória quando NOK"))
    cables = power.cables
    if not (cables.terminals_tight and cables.insulation_ok) and not cables.photo:
        errors.append(FieldError("power.cables.photo", "Foto dos cabos é obrigatória quando NOK"))
    if power.plate_status is not PlateStatus.OK and not power.plate_photo:
        errors.append(FieldError("power.plate_photo", "Foto da placa é obrigatória quando NOK/Ausente"))
    return errors


def _tower_errors(record: ChecklistRecord) -> list[FieldError]:
    if record.tower.nests and not record.tower.nest_photo:
        return [FieldError("tower.nest_photo", "Foto de ninhos é obrigatória quando há ninhos")]
    return []


def _finalize_errors(record: ChecklistRecord) -> list[FieldError]:
    if not record.technician.strip():
        return [FieldError("technician", "Nome do técnico é obrigatório")]
    return []


_CABINET_RULES = {
    STEP_CABINET: _cabinet_errors,
    STEP_CONVERTER: _converter_errors,
    STEP_BATTERIES: _battery_errors,
    STEP_CLIMATE: _climate_errors,
}

_RECORD_RULES = {
    STEP_SITE: _site_errors,
    STEP_POWER: _power_errors,
    STEP_TOWER: _tower_errors,
    STEP_FINALIZE: _finalize_errors,
}


@lru_cache(maxsize=256)
def validate_step(record: ChecklistRecord, step: int, cabinet_index: int = 0) -> StepValidation:
    """Evaluate only the rules of ``step``; fields outside it never produce errors."""
    if step in _CABINET_RULES:
        if not 0 <= cabinet_index < len(record.cabinets):
            return StepValidation(valid=True)
        errors = _CABINET_RULES[step](record.cabinets[cabinet_index])
    elif step in _RECORD_RULES:
        errors = _RECORD_RULES[step](record)
    else:
        errors = []
    return StepValidation(valid=not errors, errors=tuple(errors))


def _ratio(checks: list[bool]) -> float:
    return sum(1 for c in checks if c) / len(checks)


def _cabinet_progress(cab: CabinetRecord) -> dict[str, float]:
    fcc = cab.power_converter
    bat = cab.batteries
    clima = cab.climate

    if bat.bank_count > 0:
        banks = bat.banks
        batteries = _ratio([
            True,
            bool(bat.bank_photo),
            all(b.type is not BatteryType.NA for b in banks),
            all(b.manufacturer for b in banks),
            all(b.condition for b in banks),
        ])
    else:
        batteries = 0.0

    if clima.type is ClimateType.AIR_CONDITIONING:
        climate = _ratio([
            True,
            any(ac.model is not ACModel.NA for ac in clima.air_conditioners),
            bool(clima.ac1_photo),
        ])
    elif clima.type in (ClimateType.NA, ClimateType.FAN):
        climate = 1.0
    else:
        climate = 0.0

    return {
        "cabinet": _ratio([
            bool(cab.type),
            bool(cab.access_technologies),
            bool(cab.transport_technologies),
            bool(cab.panoramic_photo),
        ]),
        "converter": _ratio([
            bool(fcc.manufacturer),
            bool(fcc.dc_voltage),
            fcc.dc_load > 0,
            fcc.supported_units is not None,
            bool(fcc.panoramic_photo),
            bool(fcc.panel_photo),
        ]),
        "batteries": batteries,
        "climate": climate,
    }


@lru_cache(maxsize=256)
def completion_score(record: ChecklistRecord) -> int:
    """Weighted share (0-100) of required-for-submission fields that are filled.

    Conditional requirements (NOK transformer, nests present, ...) count as
    satisfied while their condition does not hold, so filling a field can
    only add to the score.
    """
    power = record.power
    tower = record.tower
    gen = record.generator

    score = WEIGHTS["site"] * _ratio([
        len(record.site_code) == 5,
        bool(record.uf),
        record.cabinet_count > 0,
        bool(record.panoramic_photo),
    ])

    share = 1 / max(1, len(record.cabinets))
    for cab in record.cabinets:
        for section, ratio in _cabinet_progress(cab).items():
            score += WEIGHTS[section] * ratio * share

    score += WEIGHTS["power"] * _ratio([
        bool(power.panel_type),
        bool(power.manufacturer),
        power.power_kva > 0,
        bool(power.input_voltage),
        bool(power.main_panel_photo),
        power.transformer_ok or bool(power.transformer_photo),
        (power.cables.terminals_tight and power.cables.insulation_ok) or bool(power.cables.photo),
        power.plate_status is PlateStatus.OK or bool(power.plate_photo),
    ])

    score += WEIGHTS["tower"] * _ratio([
        not gen.present or (bool(gen.manufacturer) and (gen.power_kva or 0) > 0),
        bool(tower.grounding),
        bool(tower.housekeeping),
        not tower.nests or bool(tower.nest_photo),
    ])

    score += WEIGHTS["finalize"] * _ratio([
        bool(record.technician.strip()),
        bool(record.signature),
    ])

    # floor, so 100 is reached only when every check passes
    return min(100, int(round(score, 6)))


def readiness(score: int) -> Readiness:
    if score < SUBMIT_MIN_SCORE:
        return Readiness.BLOCKED
    if score < READY_MIN_SCORE:
        return Readiness.WARNING
    return Readiness.READY
