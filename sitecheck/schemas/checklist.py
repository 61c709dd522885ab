"""Hierarchical site checklist record.

Every model is frozen and sequences are tuples, so a record is an immutable,
hashable value. Mutation happens only through ``ChecklistStore``, which
rebuilds the path from the root to the replaced leaf and shares every
untouched sub-object with the previous record.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Iterator, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

from sitecheck.schemas.photo import PhotoRef, check_photo_ref

Photo = Annotated[PhotoRef, AfterValidator(check_photo_ref)]

MAX_CABINETS = 7
MAX_BATTERY_BANKS = 6
MAX_AIR_CONDITIONERS = 4
MAX_FIBER_APPROACHES = 3
BATTERY_CAPACITIES_AH = (
    100, 105, 170, 200, 300, 400, 430, 500, 600, 640, 750, 800, 1000, 1250, 1500, 2000, 2500,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Region(str, Enum):
    PA = "PA"
    AM = "AM"
    MA = "MA"
    RR = "RR"
    AP = "AP"


class ShelterType(str, Enum):
    SHARING = "SHARING"
    CABINET_1 = "GABINETE 1"
    CABINET_2 = "GABINETE 2"
    CABINET_3 = "GABINETE 3"
    CABINET_4 = "GABINETE 4"
    CABINET_5 = "GABINETE 5"
    CABINET_6 = "GABINETE 6"
    CABINET_7 = "GABINETE 7"


class CabinetType(str, Enum):
    CONTAINER = "CONTAINER"
    SHARING = "SHARING"
    HUAWEI_3012 = "HUAWEI 3012"
    HUAWEI_APM30 = "HUAWEI APM30"
    HUAWEI_APM5930 = "HUAWEI APM5930"
    HUAWEI_MTS9000A = "HUAWEI MTS9000A"
    ILLIS_194 = "ILLIS-194"
    INDOOR_MINI_SHELTER = "INDOOR MINI SHELTER 2X2"
    OUTDOOR = "OUTDOOR"
    OTHER = "OUTRO"


class AccessTechnology(str, Enum):
    G2 = "2G"
    G3 = "3G"
    G4 = "4G"
    G5 = "5G"


class TransportTechnology(str, Enum):
    DWDM = "DWDM"
    GPON = "GPON"
    HL4 = "HL4"
    HL5D = "HL5D"
    HL5G = "HL5G"
    PDH = "PDH"
    SDH = "SDH"
    GWS = "GWS"
    GWD = "GWD"
    SWA = "SWA"


class ConverterManufacturer(str, Enum):
    ALCATEL = "ALCATEL"
    ALFA = "ALFA"
    ASCOM = "ASCOM"
    DELTA = "DELTA"
    ELTEK = "ELTEK"
    EFACEC = "EFACEC"
    EMERSON = "EMERSON"
    HUAWEI = "HUAWEI"
    INTERGY = "INTERGY"
    VERTIV = "VERTIV"
    ZTE = "ZTE"
    OTHER = "OUTRA"


class DCVoltage(str, Enum):
    V24 = "24V"
    V48 = "48V"


class BatteryType(str, Enum):
    LITHIUM = "LÍTIO"
    POLYMER_100A = "POLÍMERO 100A"
    POLYMER_200A = "POLÍMERO 200A"
    MONOBLOC_2V = "MONOBLOCO 2V"
    NA = "NA"


class BatteryManufacturer(str, Enum):
    FREEDOM = "FREEDOM"
    FULGURIS = "FULGURIS"
    GETPOWER = "GETPOWER"
    HUAWEI = "HUAWEI"
    MOURA = "MOURA"
    NEWMAX = "NEWMAX"
    NORTHSTAR = "NORTHSTAR"
    UNICOBA = "UNICOBA"
    ZTE = "ZTE"
    SHOTO = "SHOTO"
    NA = "NA"
    OTHER = "OUTRA"


class BatteryCondition(str, Enum):
    OK = "OK"
    SWOLLEN = "ESTUFADA"
    LEAKING = "VAZANDO"
    CRACKED = "TRINCADA"
    NO_CHARGE = "NÃO SEGURA CARGA"
    NA = "NA"


class ClimateType(str, Enum):
    AIR_CONDITIONING = "AR CONDICIONADO"
    FAN = "FAN"
    NA = "NA"


class ACModel(str, Enum):
    SPLIT_12 = "SPLIT 12 KBTU"
    SPLIT_18 = "SPLIT 18 KBTU"
    SPLIT_24 = "SPLIT 24 KBTU"
    SPLIT_30 = "SPLIT 30 KBTU"
    SPLIT_36 = "SPLIT 36 KBTU"
    SPLIT_60 = "SPLIT 60 KBTU"
    WALL_24 = "WALL MOUNTED 24"
    WALL_36 = "WALL MOUNTED 36"
    WALL_60 = "WALL MOUNTED 60"
    WINDOW_30 = "JANELA 30"
    NA = "NA"


class OperatingStatus(str, Enum):
    OK = "OK"
    NOK = "NOK"
    NA = "NA"


class ApproachType(str, Enum):
    AERIAL = "AÉREA"
    UNDERGROUND = "SUBTERRÂNEA"


class FiberConvergence(str, Enum):
    CONVERGENT = "CONVERGENTES"
    NONE = "SEM CONVERGÊNCIA"


class DGOCapacity(str, Enum):
    FO12 = "12FO"
    FO24 = "24FO"
    FO48 = "48FO"
    FO72 = "72FO"
    FO144 = "144FO"
    FO144_PLUS = "144+FO"


class DGOFormat(str, Enum):
    SLIDE = "SLIDE"
    FRONT = "FRONTAL"
    ARTICULATED = "ARTICULADO"
    MODULE = "MÓDULO"


class PhysicalState(str, Enum):
    OK = "OK"
    NOK = "NOK"


class PanelType(str, Enum):
    QDCA = "QDCA"
    QGBT = "QGBT"
    SUBPANEL = "SUBQUADRO"


class PanelManufacturer(str, Enum):
    SIEMENS = "SIEMENS"
    SCHNEIDER = "SCHNEIDER"
    ABB = "ABB"
    WEG = "WEG"
    OTHER = "OUTRA"


class InputVoltage(str, Enum):
    V127 = "127V"
    V220 = "220V"
    V380 = "380V"
    V440 = "440V"


class PlateStatus(str, Enum):
    OK = "OK"
    NOK = "NOK"
    MISSING = "AUSENTE"


class RecordModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class PowerConverter(RecordModel):
    manufacturer: Optional[ConverterManufacturer] = ConverterManufacturer.HUAWEI
    manufacturer_other: str = ""
    dc_voltage: Optional[DCVoltage] = DCVoltage.V48
    managed: bool = False
    manageable: bool = False
    dc_load: float = 0
    supported_units: Optional[int] = 1
    panoramic_photo: Photo = None
    panel_photo: Photo = None


class BatteryBank(RecordModel):
    type: BatteryType = BatteryType.NA
    manufacturer: Optional[BatteryManufacturer] = None
    manufacturer_other: str = ""
    capacity_ah: Optional[int] = None
    manufactured_on: str = ""
    condition: BatteryCondition = BatteryCondition.OK

    @field_validator("capacity_ah")
    @classmethod
    def _known_capacity(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in BATTERY_CAPACITIES_AH:
            raise ValueError(f"capacity {value}Ah is not a catalogued value")
        return value


class BatterySection(RecordModel):
    bank_count: int = 0
    banks: tuple[BatteryBank, ...] = ()
    interconnected: bool = False
    bank_photo: Photo = None

    @model_validator(mode="after")
    def _count_matches_banks(self) -> "BatterySection":
        if len(self.banks) > MAX_BATTERY_BANKS:
            raise ValueError(f"a cabinet holds at most {MAX_BATTERY_BANKS} battery banks")
        if self.bank_count != len(self.banks):
            raise ValueError("bank_count must equal the number of banks")
        return self


class AirConditioner(RecordModel):
    model: ACModel = ACModel.NA
    status: OperatingStatus = OperatingStatus.NA


class ClimateControl(RecordModel):
    type: Optional[ClimateType] = ClimateType.NA
    fan_ok: bool = True
    air_conditioners: tuple[AirConditioner, ...] = Field(default=(), max_length=MAX_AIR_CONDITIONERS)
    plc_lead_lag: OperatingStatus = OperatingStatus.NA
    alarm: str = "SGINFRA U2020"
    ac1_photo: Photo = None
    ac2_photo: Photo = None
    ac3_photo: Photo = None
    ac4_photo: Photo = None
    condenser_photo: Photo = None
    evaporator_photo: Photo = None
    controller_photo: Photo = None


class CabinetRecord(RecordModel):
    type: Optional[CabinetType] = CabinetType.CONTAINER
    protected: bool = False
    access_technologies: frozenset[AccessTechnology] = frozenset()
    transport_technologies: frozenset[TransportTechnology] = frozenset()
    power_converter: PowerConverter = Field(default_factory=PowerConverter)
    batteries: BatterySection = Field(default_factory=BatterySection)
    climate: ClimateControl = Field(default_factory=ClimateControl)
    panoramic_photo: Photo = None
    transmission_photo: Photo = None
    access_photo: Photo = None


class FiberApproach(RecordModel):
    type: ApproachType = ApproachType.AERIAL
    underground_box_photos: tuple[Photo, ...] = ()
    lateral_riser_ok: bool = True
    lateral_riser_photos: tuple[Photo, ...] = ()


class DGO(RecordModel):
    external_photo: Photo = None
    capacity: DGOCapacity = DGOCapacity.FO12
    formats: frozenset[DGOFormat] = frozenset()
    physical_state: PhysicalState = PhysicalState.OK
    cord_organization: PhysicalState = PhysicalState.OK
    cords_photo: Photo = None


class FiberSection(RecordModel):
    approaches: tuple[FiberApproach, ...] = Field(
        default_factory=lambda: (FiberApproach(),), min_length=1, max_length=MAX_FIBER_APPROACHES,
    )
    convergence: Optional[FiberConvergence] = None
    overview_photo: Photo = None
    passage_boxes_present: bool = False
    passage_boxes_standard: bool = True
    passage_box_photos: tuple[Photo, ...] = ()
    dgos: tuple[DGO, ...] = ()
    dgo_notes: str = ""
    dgo_notes_photo: Photo = None


class Protections(RecordModel):
    residual_current_ok: bool = True
    surge_protection_ok: bool = True
    breakers_ok: bool = True
    thermomagnetic_ok: bool = True
    main_switch_ok: bool = True


class Cables(RecordModel):
    terminals_tight: bool = True
    insulation_ok: bool = True
    photo: Photo = None


class PowerSection(RecordModel):
    panel_type: Optional[PanelType] = PanelType.QDCA
    manufacturer: Optional[PanelManufacturer] = PanelManufacturer.SCHNEIDER
    manufacturer_other: str = ""
    power_kva: float = 75
    input_voltage: Optional[InputVoltage] = InputVoltage.V220
    transformer_ok: bool = True
    transformer_photo: Photo = None
    main_panel_photo: Photo = None
    protections: Protections = Field(default_factory=Protections)
    cables: Cables = Field(default_factory=Cables)
    plate_status: PlateStatus = PlateStatus.OK
    plate_photo: Photo = None


class GeneratorSection(RecordModel):
    present: bool = False
    manufacturer: Optional[ConverterManufacturer] = None
    power_kva: Optional[float] = None
    autonomy_hours: Optional[float] = None
    status: Optional[OperatingStatus] = None


class TowerSection(RecordModel):
    nests: bool = False
    nest_photo: Photo = None
    fiber_protected: bool = True
    grounding: Optional[OperatingStatus] = OperatingStatus.OK
    housekeeping: Optional[OperatingStatus] = OperatingStatus.OK


class ChecklistRecord(RecordModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    site_code: str = ""
    uf: Optional[Region] = Region.PA
    cabinet_count: int = 1
    shelter: ShelterType = ShelterType.CABINET_1
    panoramic_photo: Photo = None
    cabinets: tuple[CabinetRecord, ...] = Field(default_factory=lambda: (CabinetRecord(),))
    fiber: FiberSection = Field(default_factory=FiberSection)
    power: PowerSection = Field(default_factory=PowerSection)
    generator: GeneratorSection = Field(default_factory=GeneratorSection)
    tower: TowerSection = Field(default_factory=TowerSection)
    notes: str = ""
    observation_photos: tuple[Photo, ...] = ()
    signature: Photo = None
    technician: str = ""
    submitted_at: Optional[str] = None
    synchronized: bool = False
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)

    @model_validator(mode="after")
    def _count_matches_cabinets(self) -> "ChecklistRecord":
        if not 1 <= len(self.cabinets) <= MAX_CABINETS:
            raise ValueError(f"a site holds between 1 and {MAX_CABINETS} cabinets")
        if self.cabinet_count != len(self.cabinets):
            raise ValueError("cabinet_count must equal the number of cabinets")
        return self

    def photo_slots(self) -> Iterator[tuple[str, PhotoRef]]:
        """Yield ``(path, value)`` for every photo slot in the tree, filled or not."""
        yield from _walk_photos(self, "")


def is_photo_field(name: str) -> bool:
    return name.endswith("photo") or name.endswith("photos") or name == "signature"


def is_photo_path(path: str) -> bool:
    """True for a photo slot or an item of a photo list, e.g. ``observation_photos.0``."""
    names = [p for p in path.split(".") if not p.isdigit()]
    return bool(names) and is_photo_field(names[-1])


def _walk_photos(node: BaseModel, prefix: str) -> Iterator[tuple[str, PhotoRef]]:
    for name in type(node).model_fields:
        value = getattr(node, name)
        path = f"{prefix}{name}"
        if is_photo_field(name):
            if isinstance(value, tuple):
                for i, item in enumerate(value):
                    yield f"{path}.{i}", item
            else:
                yield path, value
        elif isinstance(value, BaseModel):
            yield from _walk_photos(value, f"{path}.")
        elif isinstance(value, tuple):
            for i, item in enumerate(value):
                if isinstance(item, BaseModel):
                    yield from _walk_photos(item, f"{path}.{i}.")


_SINGULAR = {"cabinets": "cabinet", "dgos": "dgo", "approaches": "approach"}


def photo_category(path: str) -> str:
    """Storage filename stem for a slot path.

    ``cabinets.0.power_converter.panel_photo`` -> ``cabinet1_power_converter_panel_photo``
    """
    out: list[str] = []
    for part in path.split("."):
        if part.isdigit():
            # numbered from 1 in file names
            if out:
                out[-1] = f"{out[-1]}{int(part) + 1}"
            else:
                out.append(str(int(part) + 1))
        else:
            out.append(_SINGULAR.get(part, part))
    return "_".join(out)
