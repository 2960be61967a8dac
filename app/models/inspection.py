from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    # Los documentos se guardan con claves camelCase (inspectorEmail, vehicleInfo...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_default=True)


class InspectionStatus(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"


class ChecklistStatus(str, Enum):
    OK = "OK"
    C = "C"
    A = "A"
    R = "R"
    RP = "RP"
    N = "N"
    # Códigos antiguos que todavía se aceptan
    PASS = "pass"
    FAIL = "fail"
    NA = "na"


CHECKLIST_STATUSES = {status.value for status in ChecklistStatus}


class BarcodeType(str, Enum):
    VIN = "VIN"
    COMPLIANCE = "COMPLIANCE"
    OTHER = "OTHER"


class VehicleInfo(CamelModel):
    model_config = ConfigDict(extra="allow")

    dealer: Optional[str] = None
    dealer_stock_no: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[str] = None
    vin: Optional[str] = None
    engine: Optional[str] = None
    odometer: Optional[str] = None
    compliance_date: Optional[str] = None
    build_date: Optional[str] = None
    license_plate: Optional[str] = None
    booking_number: Optional[str] = None


class GeoPoint(CamelModel):
    latitude: float
    longitude: float
    address: Optional[str] = None
    timestamp: Optional[datetime] = None


class RoutePoint(CamelModel):
    latitude: float
    longitude: float
    timestamp: datetime


class RoadTest(CamelModel):
    distance: Optional[float] = None  # kilómetros
    duration: Optional[float] = None  # minutos
    route: List[RoutePoint] = Field(default_factory=list)


class Location(CamelModel):
    start: Optional[GeoPoint] = None
    end: Optional[GeoPoint] = None
    current: Optional[GeoPoint] = None
    road_test: Optional[RoadTest] = None

    def has_fix(self) -> bool:
        return any(point is not None for point in (self.current, self.start, self.end))


class PhotoMetadata(CamelModel):
    model_config = ConfigDict(extra="allow")

    width: Optional[int] = None
    height: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    date_time: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Photo(CamelModel):
    file_name: str
    url: Optional[str] = None
    metadata: Optional[PhotoMetadata] = None


class ChecklistItem(CamelModel):
    item: str = ""
    # Se guarda como texto: el validador del paso 4 comprueba que pertenezca a ChecklistStatus
    status: Optional[str] = None
    notes: Optional[str] = None
    photos: List[Photo] = Field(default_factory=list)


class ChecklistCategory(CamelModel):
    category: str = ""
    items: List[ChecklistItem] = Field(default_factory=list)


class Signatures(CamelModel):
    technician: Optional[str] = None
    manager: Optional[str] = None


class InspectionForm(CamelModel):
    """Estado del formulario de inspección en curso.

    Todos los campos son opcionales o tienen valor por defecto porque el
    formulario se va completando paso a paso; las reglas de negocio viven en
    app.services.validation.
    """
    inspector_name: str = ""
    inspector_email: str = ""
    inspection_date: Optional[datetime] = None
    vehicle_info: VehicleInfo = Field(default_factory=VehicleInfo)
    location: Location = Field(default_factory=Location)
    barcode: Optional[str] = None
    barcode_type: BarcodeType = BarcodeType.OTHER
    photos: List[Photo] = Field(default_factory=list)
    checklist: List[ChecklistCategory] = Field(default_factory=list)
    signatures: Signatures = Field(default_factory=Signatures)
    privacy_consent: bool = False
    data_retention_days: Optional[int] = None

    @field_validator("inspection_date", mode="before")
    @classmethod
    def empty_date_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("vehicle_info", "location", "signatures", mode="before")
    @classmethod
    def null_section_is_empty(cls, value):
        return {} if value is None else value

    @field_validator("photos", "checklist", mode="before")
    @classmethod
    def null_list_is_empty(cls, value):
        return [] if value is None else value

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class InspectionOut(InspectionForm):
    id: str
    inspection_number: str
    status: InspectionStatus = InspectionStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


DEFAULT_CHECKLIST = {
    "Exterior": ["Paint condition", "Body panels", "Windows and glass", "Lights and signals", "Tires and wheels"],
    "Interior": ["Seats and upholstery", "Dashboard and controls", "Air conditioning", "Audio system", "Safety equipment"],
    "Mechanical": ["Engine", "Transmission", "Brakes", "Suspension", "Fluid levels"],
    "Documentation": ["Registration documents", "Service history", "Warranty information", "Owner manual"],
}


def default_checklist() -> List[ChecklistCategory]:
    return [
        ChecklistCategory(
            category=category,
            items=[ChecklistItem(item=item, status=ChecklistStatus.OK.value) for item in items],
        )
        for category, items in DEFAULT_CHECKLIST.items()
    ]
