from datetime import date, datetime
from typing import Optional, Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from models import Role
from transitions import BatchStatus, EventStatus, EventType


# ---------- Participants ----------
class CreateUser(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=2)
    organization: str
    role: Role
    phone: Optional[str] = None
    address: Optional[str] = None  # blockchain address


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    email: str
    name: str
    organization: str
    role: Role
    is_active: bool


class CreateZone(BaseModel):
    zone_name: str
    region: str
    state: str
    country: str = "India"
    coordinates: Optional[Dict[str, Any]] = None  # GeoJSON Polygon/MultiPolygon
    soil_type: Optional[str] = None

    @model_validator(mode="after")
    def _geometry(self):
        if self.coordinates is not None and self.coordinates.get("type") not in ("Polygon", "MultiPolygon"):
            raise ValueError("coordinates must be a GeoJSON Polygon or MultiPolygon")
        return self


# ---------- Event payloads ----------
class Location(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)
    zone: Optional[str] = None
    address: Optional[str] = None


class CollectionData(BaseModel):
    herb_species: str = Field(..., min_length=2)
    weight_grams: float = Field(..., gt=0)
    quality_grade: Literal["Premium", "Grade A", "Grade B", "Standard"]
    price_per_unit: Optional[float] = Field(None, ge=0)
    currency: str = Field("INR", min_length=3, max_length=3)
    harvest_date: date
    collector_group: str
    weather_data: Optional[Dict[str, Any]] = None
    soil_conditions: Optional[str] = None
    visual_quality_score: Optional[int] = Field(None, ge=1, le=10)
    aroma_score: Optional[int] = Field(None, ge=1, le=10)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _harvest_not_in_future(self):
        if self.harvest_date > date.today():
            raise ValueError("harvest_date cannot be in the future")
        return self

    @property
    def total_price(self) -> Optional[float]:
        if self.price_per_unit is None:
            return None
        return round(self.weight_grams * self.price_per_unit, 2)


class QualityTestData(BaseModel):
    test_date: date
    tester_name: str
    lab_name: str
    test_method: str
    moisture_content: Optional[float] = Field(None, ge=0, le=100)
    purity: Optional[float] = Field(None, ge=0, le=100)
    pesticide_level: Optional[float] = Field(None, ge=0)
    ash_content: Optional[float] = Field(None, ge=0, le=100)
    total_bacterial_count: Optional[int] = Field(None, ge=0)
    yeast_mold_count: Optional[int] = Field(None, ge=0)
    pathogenic_bacteria: bool = False
    lead_content: Optional[float] = Field(None, ge=0)
    mercury_content: Optional[float] = Field(None, ge=0)
    arsenic_content: Optional[float] = Field(None, ge=0)
    cadmium_content: Optional[float] = Field(None, ge=0)
    overall_result: Optional[Literal["PASS", "FAIL", "CONDITIONAL"]] = None
    pass_percentage: Optional[float] = Field(None, ge=0, le=100)
    custom_parameters: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None


class ProcessingData(BaseModel):
    processor_name: str
    processing_facility: str
    method: str
    input_weight_grams: float = Field(..., gt=0)
    output_weight_grams: float = Field(..., ge=0)
    temperature_celsius: Optional[float] = None
    pressure_bar: Optional[float] = Field(None, ge=0)
    duration_minutes: Optional[int] = Field(None, ge=0)
    ph_level: Optional[float] = Field(None, ge=0, le=14)
    start_date: date
    end_date: date
    equipment_used: List[str] = []
    processing_conditions: Optional[Dict[str, Any]] = None
    final_quality_assessment: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def yield_percentage(self) -> float:
        return round(self.output_weight_grams / self.input_weight_grams * 100, 2)


class ManufacturingData(BaseModel):
    manufacturer_name: str
    manufacturing_facility: str
    product_name: str
    product_type: str
    product_category: Optional[str] = None
    brand_name: Optional[str] = None
    quantity: float = Field(..., gt=0)
    unit: str
    batch_size: Optional[int] = Field(None, gt=0)
    packaging_type: Optional[str] = None
    manufacturing_date: date
    expiry_date: Optional[date] = None
    shelf_life_months: Optional[int] = Field(None, gt=0)
    license_number: Optional[str] = None
    certification_id: Optional[str] = None
    gmp_certified: bool = False
    organic_certified: bool = False
    active_ingredient_percentage: Optional[float] = Field(None, ge=0, le=100)
    barcode: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _expiry(self):
        if self.expiry_date is not None and self.expiry_date <= self.manufacturing_date:
            raise ValueError("expiry_date must be after manufacturing_date")
        return self


PAYLOAD_SCHEMAS = {
    EventType.COLLECTION: CollectionData,
    EventType.QUALITY_TEST: QualityTestData,
    EventType.PROCESSING: ProcessingData,
    EventType.MANUFACTURING: ManufacturingData,
}


# ---------- Read shapes ----------
class BatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    batch_id: str
    herb_species: str
    creator_name: str
    creator_organization: Optional[str] = None
    current_status: BatchStatus
    lifecycle_status: BatchStatus
    is_completed: bool
    total_events: int
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    event_id: str
    event_type: EventType
    batch_identifier: str
    participant_name: str
    organization: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    zone: Optional[str] = None
    transaction_id: Optional[str] = None
    status: EventStatus
    ipfs_hash: Optional[str] = None
    qr_code_hash: Optional[str] = None
    event_data: Dict[str, Any]
    hash: str
    created_at: datetime


class TimelineEntryOut(BaseModel):
    sequence_number: int
    event: EventOut
    previous_event_time: Optional[datetime] = None
    seconds_since_previous: Optional[float] = None
    hours_since_previous: Optional[float] = None


class BatchSnapshotOut(BaseModel):
    batch: BatchOut
    latest_event: Optional[EventOut] = None
    collection: Dict[str, Any] = {}
    quality_test: Dict[str, Any] = {}
    processing: Dict[str, Any] = {}
    manufacturing: Dict[str, Any] = {}


class QRInfo(BaseModel):
    qr_hash: str
    tracking_url: str


class EventReceipt(BaseModel):
    batch_id: str
    event_id: str
    event_type: EventType
    status: EventStatus
    transaction_id: Optional[str] = None
    ipfs_hash: Optional[str] = None
    batch_status: BatchStatus
    total_events: int
    is_completed: bool
    qr: QRInfo
    zone_validation: Optional[Dict[str, Any]] = None
    warnings: List[str] = []


class ConfirmEvent(BaseModel):
    transaction_id: str


class BatchBrief(BaseModel):
    batch_id: str
    herb_species: str
    creator_name: str
    current_status: BatchStatus
    lifecycle_status: BatchStatus
    is_completed: bool
    total_events: int


class BatchList(BaseModel):
    items: List[BatchBrief]
    total: int
    page: int
    page_size: int


class ParticipantActivity(BaseModel):
    user_id: str
    name: str
    organization: str
    role: Role
    collections_created: int
    quality_tests_performed: int
    processing_operations: int
    manufacturing_operations: int
    total_events: int
    unique_batches: int
    first_activity: Optional[datetime] = None
    last_activity: Optional[datetime] = None


class TrackStage(BaseModel):
    sequence_number: int
    event_type: EventType
    participant: str
    organization: str
    zone: Optional[str] = None
    date: datetime
    transaction_id: Optional[str] = None
    document_url: Optional[str] = None


class TrackView(BaseModel):
    batch_id: str
    herb_species: str
    status: BatchStatus
    is_completed: bool
    verified: bool
    product_name: Optional[str] = None
    stages: List[TrackStage]


class CreateRating(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = None
    batch_id: Optional[str] = None
    feature_rated: Optional[str] = None


class FailEvent(BaseModel):
    reason: Optional[str] = None
