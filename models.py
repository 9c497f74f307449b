import enum
import uuid
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    JSON, BigInteger, Boolean, Date, DateTime, Enum, Float, ForeignKey, ForeignKeyConstraint,
    Index, Integer, String, Text, UniqueConstraint,
)
from database import Base
from transitions import BatchStatus, EventStatus, EventType
from utils import utcnow


def _uuid() -> str:
    return str(uuid.uuid4())


class Role(str, enum.Enum):
    COLLECTOR = "COLLECTOR"
    TESTER = "TESTER"
    PROCESSOR = "PROCESSOR"
    MANUFACTURER = "MANUFACTURER"
    ADMIN = "ADMIN"
    CONSUMER = "CONSUMER"


# ---------- Participants & reference data ----------
class User(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    organization: Mapped[str] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    role: Mapped[Role] = mapped_column(Enum(Role, native_enum=False, length=20), index=True)
    address: Mapped[Optional[str]] = mapped_column(String(255))  # blockchain address
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class AyurvedicHerb(Base):
    __tablename__ = "ayurvedic_herbs"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True)
    scientific_name: Mapped[str] = mapped_column(String(255))
    harvest_seasons: Mapped[list] = mapped_column(JSON, default=list)
    approved_zones: Mapped[list] = mapped_column(JSON, default=list)


class ApprovedZone(Base):
    __tablename__ = "approved_zones"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    zone_name: Mapped[str] = mapped_column(String(255), unique=True)
    region: Mapped[str] = mapped_column(String(255))
    state: Mapped[str] = mapped_column(String(255))
    country: Mapped[str] = mapped_column(String(255), default="India")
    # GeoJSON Polygon geometry, [lon, lat] positions
    coordinates: Mapped[Optional[dict]] = mapped_column(JSON(none_as_null=True))
    soil_type: Mapped[Optional[str]] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class ProcessingMethod(Base):
    __tablename__ = "processing_methods"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    method_name: Mapped[str] = mapped_column(String(255), unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    typical_temperature_range: Mapped[Optional[dict]] = mapped_column(JSON)
    typical_duration_range: Mapped[Optional[dict]] = mapped_column(JSON)


# ---------- Ledger ----------
class Batch(Base):
    __tablename__ = "batches"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    batch_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    herb_species: Mapped[str] = mapped_column(String(255), index=True)
    creator_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    creator_name: Mapped[str] = mapped_column(String(255))
    creator_organization: Mapped[Optional[str]] = mapped_column(String(255))
    current_status: Mapped[BatchStatus] = mapped_column(
        Enum(BatchStatus, native_enum=False, length=20), index=True
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    total_events: Mapped[int] = mapped_column(Integer, default=0)
    blockchain_hash: Mapped[Optional[str]] = mapped_column(String(255))
    ipfs_hash: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    events: Mapped[list["Event"]] = relationship(
        "Event", back_populates="batch", order_by="Event.created_at",
        foreign_keys="Event.batch_pk",
    )

    @property
    def lifecycle_status(self) -> BatchStatus:
        return BatchStatus.COMPLETED if self.is_completed else self.current_status


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        UniqueConstraint("id", "batch_pk", name="uq_events_id_batch"),
        Index("idx_events_batch_created", "batch_pk", "created_at"),
        Index("idx_events_location", "latitude", "longitude"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    event_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    event_type: Mapped[EventType] = mapped_column(
        Enum(EventType, native_enum=False, length=20), index=True
    )
    batch_pk: Mapped[str] = mapped_column(String(36), ForeignKey("batches.id"))
    batch_identifier: Mapped[str] = mapped_column(String(64), index=True)
    parent_event_pk: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("events.id"))
    participant_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    participant_name: Mapped[str] = mapped_column(String(255))
    organization: Mapped[str] = mapped_column(String(255))

    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    location_accuracy: Mapped[Optional[float]] = mapped_column(Float)
    zone: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(Text)

    transaction_id: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus, native_enum=False, length=20), default=EventStatus.PENDING
    )
    ipfs_hash: Mapped[Optional[str]] = mapped_column(String(255))
    qr_code_hash: Mapped[Optional[str]] = mapped_column(String(255))
    event_data: Mapped[dict] = mapped_column(JSON)
    prev_hash: Mapped[str] = mapped_column(String(128))
    hash: Mapped[str] = mapped_column(String(128))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    batch: Mapped[Batch] = relationship("Batch", back_populates="events", foreign_keys=[batch_pk])
    parent: Mapped[Optional["Event"]] = relationship("Event", remote_side=[id])


class _SatelliteMixin:
    """Detail row owned by exactly one event of the same batch."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    event_pk: Mapped[str] = mapped_column(String(36), unique=True)
    batch_pk: Mapped[str] = mapped_column(String(36), index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    images: Mapped[list] = mapped_column(JSON, default=list)  # content hashes
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


def _satellite_args(table: str):
    # composite FK: the satellite's batch must be its event's batch
    return (
        ForeignKeyConstraint(
            ["event_pk", "batch_pk"], ["events.id", "events.batch_pk"],
            name=f"fk_{table}_event_batch",
        ),
        ForeignKeyConstraint(["batch_pk"], ["batches.id"], name=f"fk_{table}_batch"),
    )


class Collection(_SatelliteMixin, Base):
    __tablename__ = "collections"
    __table_args__ = _satellite_args("collections")
    herb_species: Mapped[str] = mapped_column(String(255))
    weight_grams: Mapped[float] = mapped_column(Float)
    quality_grade: Mapped[str] = mapped_column(String(50))
    price_per_unit: Mapped[Optional[float]] = mapped_column(Float)
    total_price: Mapped[Optional[float]] = mapped_column(Float)
    currency: Mapped[str] = mapped_column(String(3), default="INR")
    harvest_date: Mapped[date] = mapped_column(Date)
    collector_group: Mapped[str] = mapped_column(String(255))
    weather_data: Mapped[Optional[dict]] = mapped_column(JSON)
    soil_conditions: Mapped[Optional[str]] = mapped_column(Text)
    visual_quality_score: Mapped[Optional[int]] = mapped_column(Integer)
    aroma_score: Mapped[Optional[int]] = mapped_column(Integer)


class QualityTest(_SatelliteMixin, Base):
    __tablename__ = "quality_tests"
    __table_args__ = _satellite_args("quality_tests")
    test_date: Mapped[date] = mapped_column(Date)
    tester_name: Mapped[str] = mapped_column(String(255))
    lab_name: Mapped[str] = mapped_column(String(255))
    test_method: Mapped[str] = mapped_column(String(255))
    moisture_content: Mapped[Optional[float]] = mapped_column(Float)
    purity: Mapped[Optional[float]] = mapped_column(Float)
    pesticide_level: Mapped[Optional[float]] = mapped_column(Float)
    ash_content: Mapped[Optional[float]] = mapped_column(Float)
    total_bacterial_count: Mapped[Optional[int]] = mapped_column(Integer)
    yeast_mold_count: Mapped[Optional[int]] = mapped_column(Integer)
    pathogenic_bacteria: Mapped[bool] = mapped_column(Boolean, default=False)
    lead_content: Mapped[Optional[float]] = mapped_column(Float)
    mercury_content: Mapped[Optional[float]] = mapped_column(Float)
    arsenic_content: Mapped[Optional[float]] = mapped_column(Float)
    cadmium_content: Mapped[Optional[float]] = mapped_column(Float)
    overall_result: Mapped[Optional[str]] = mapped_column(String(20))
    pass_percentage: Mapped[Optional[float]] = mapped_column(Float)
    custom_parameters: Mapped[Optional[dict]] = mapped_column(JSON)


class ProcessingOperation(_SatelliteMixin, Base):
    __tablename__ = "processing_operations"
    __table_args__ = _satellite_args("processing_operations")
    processor_name: Mapped[str] = mapped_column(String(255))
    processing_facility: Mapped[str] = mapped_column(String(255))
    method: Mapped[str] = mapped_column(String(255))
    input_weight_grams: Mapped[float] = mapped_column(Float)
    output_weight_grams: Mapped[float] = mapped_column(Float)
    yield_percentage: Mapped[float] = mapped_column(Float)
    temperature_celsius: Mapped[Optional[float]] = mapped_column(Float)
    pressure_bar: Mapped[Optional[float]] = mapped_column(Float)
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    ph_level: Mapped[Optional[float]] = mapped_column(Float)
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    equipment_used: Mapped[list] = mapped_column(JSON, default=list)
    processing_conditions: Mapped[Optional[dict]] = mapped_column(JSON)
    final_quality_assessment: Mapped[Optional[str]] = mapped_column(Text)


class ManufacturingOperation(_SatelliteMixin, Base):
    __tablename__ = "manufacturing_operations"
    __table_args__ = _satellite_args("manufacturing_operations")
    manufacturer_name: Mapped[str] = mapped_column(String(255))
    manufacturing_facility: Mapped[str] = mapped_column(String(255))
    product_name: Mapped[str] = mapped_column(String(255))
    product_type: Mapped[str] = mapped_column(String(100))
    product_category: Mapped[Optional[str]] = mapped_column(String(100))
    brand_name: Mapped[Optional[str]] = mapped_column(String(255))
    quantity: Mapped[float] = mapped_column(Float)
    unit: Mapped[str] = mapped_column(String(50))
    batch_size: Mapped[Optional[int]] = mapped_column(Integer)
    packaging_type: Mapped[Optional[str]] = mapped_column(String(100))
    manufacturing_date: Mapped[date] = mapped_column(Date)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date)
    shelf_life_months: Mapped[Optional[int]] = mapped_column(Integer)
    license_number: Mapped[Optional[str]] = mapped_column(String(255))
    certification_id: Mapped[Optional[str]] = mapped_column(String(255))
    gmp_certified: Mapped[bool] = mapped_column(Boolean, default=False)
    organic_certified: Mapped[bool] = mapped_column(Boolean, default=False)
    active_ingredient_percentage: Mapped[Optional[float]] = mapped_column(Float)
    barcode: Mapped[Optional[str]] = mapped_column(String(255))


SATELLITE_FOR_EVENT = {
    EventType.COLLECTION: Collection,
    EventType.QUALITY_TEST: QualityTest,
    EventType.PROCESSING: ProcessingOperation,
    EventType.MANUFACTURING: ManufacturingOperation,
}


# ---------- QR codes & side-channel logs ----------
class QRCode(Base):
    __tablename__ = "qr_codes"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    qr_hash: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    qr_data: Mapped[str] = mapped_column(Text)
    batch_pk: Mapped[str] = mapped_column(String(36), ForeignKey("batches.id"), index=True)
    event_pk: Mapped[str] = mapped_column(String(36), ForeignKey("events.id"), index=True)
    qr_type: Mapped[str] = mapped_column(String(50), index=True)
    tracking_url: Mapped[str] = mapped_column(Text)
    scan_count: Mapped[int] = mapped_column(Integer, default=0)
    generated_by: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"))
    generated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


# ---------- Anchoring & content store ----------
class BlockchainTransaction(Base):
    __tablename__ = "blockchain_transactions"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    transaction_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    block_number: Mapped[Optional[int]] = mapped_column(BigInteger, index=True)
    transaction_type: Mapped[str] = mapped_column(String(50))
    function_name: Mapped[str] = mapped_column(String(100))
    from_address: Mapped[Optional[str]] = mapped_column(String(255))
    batch_pk: Mapped[str] = mapped_column(String(36), ForeignKey("batches.id"), index=True)
    event_pk: Mapped[str] = mapped_column(String(36), ForeignKey("events.id"), index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"))
    channel_name: Mapped[str] = mapped_column(String(100), default="herbionyx-channel")
    chaincode_name: Mapped[str] = mapped_column(String(100), default="herbionyx-chaincode")
    status: Mapped[str] = mapped_column(String(20), default="confirmed")
    transaction_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class IPFSContent(Base):
    __tablename__ = "ipfs_content"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    # identical bytes hash the same, so one hash may back several events
    ipfs_hash: Mapped[str] = mapped_column(String(255), index=True)
    content_type: Mapped[str] = mapped_column(String(50), index=True)
    file_name: Mapped[Optional[str]] = mapped_column(String(255))
    file_size: Mapped[Optional[int]] = mapped_column(BigInteger)
    mime_type: Mapped[Optional[str]] = mapped_column(String(100))
    batch_pk: Mapped[str] = mapped_column(String(36), ForeignKey("batches.id"), index=True)
    event_pk: Mapped[str] = mapped_column(String(36), ForeignKey("events.id"), index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"))
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    pin_status: Mapped[str] = mapped_column(String(20), default="pinned")
    gateway_url: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class QRScan(Base):
    __tablename__ = "qr_scans"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    qr_code_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("qr_codes.id"))
    batch_pk: Mapped[str] = mapped_column(String(36), ForeignKey("batches.id"), index=True)
    scanned_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    scanner_ip: Mapped[Optional[str]] = mapped_column(String(64))
    scanner_user_agent: Mapped[Optional[str]] = mapped_column(Text)
    scan_source: Mapped[Optional[str]] = mapped_column(String(100))
    scan_result: Mapped[str] = mapped_column(String(50), default="success")


class Notification(Base):
    __tablename__ = "system_notifications"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    notification_type: Mapped[str] = mapped_column(String(50))
    batch_pk: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("batches.id"))
    event_pk: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("events.id"))
    priority: Mapped[str] = mapped_column(String(20), default="normal")
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class PlatformRating(Base):
    __tablename__ = "platform_ratings"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    rating: Mapped[int] = mapped_column(Integer)
    feedback: Mapped[Optional[str]] = mapped_column(Text)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"))
    user_email: Mapped[Optional[str]] = mapped_column(String(255))
    batch_pk: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("batches.id"))
    feature_rated: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class AuditLog(Base):
    __tablename__ = "audit_logs"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    user_role: Mapped[Optional[str]] = mapped_column(String(20))
    action: Mapped[str] = mapped_column(String(100), index=True)
    resource_type: Mapped[str] = mapped_column(String(100))
    resource_id: Mapped[Optional[str]] = mapped_column(String(255))
    old_values: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    new_values: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(String(20), default="success")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)


class ErrorLog(Base):
    __tablename__ = "error_logs"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    error_type: Mapped[str] = mapped_column(String(100))
    error_message: Mapped[str] = mapped_column(Text)
    user_id: Mapped[Optional[str]] = mapped_column(String(36))
    batch_identifier: Mapped[Optional[str]] = mapped_column(String(64))
    request_url: Mapped[Optional[str]] = mapped_column(Text)
    request_method: Mapped[Optional[str]] = mapped_column(String(10))
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
