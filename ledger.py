"""Event ledger for herb batches.

Events are append-only. A batch's ``current_status`` / ``total_events`` are a
projection of its events, folded by ``transitions.project`` and written with a
compare-and-swap in the same transaction as the event row, so two appends that
raced on a stale read can never both land.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterator, Optional, Sequence

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import config
from blockchain_client import BlockchainClient
from errors import (
    AuthorizationError, BatchNotFoundError, ConflictError, DuplicateEventError,
    EventNotFoundError, ExternalServiceError, NotFoundError, ValidationError,
)
from ipfs_client import ContentStoreClient
from models import (
    ApprovedZone, AyurvedicHerb, Batch, Collection, Event, ManufacturingOperation,
    ProcessingMethod, ProcessingOperation, QRCode, QualityTest, SATELLITE_FOR_EVENT, User,
)
from records import notify, record_anchor, record_audit, record_upload
from schemas import PAYLOAD_SCHEMAS, Location
from transitions import BatchProjection, EventStatus, EventType, check_event_status_change, project
from utils import (
    GENESIS, canonical_json, compute_hash, generate_batch_id, generate_event_id,
    generate_qr_hash, tracking_url, utcnow, verify_chain,
)
from zones import ZoneValidation, validate_location

logger = logging.getLogger(__name__)

TICK = timedelta(microseconds=1)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class AppendResult:
    event: Event
    batch: Batch
    qr: QRCode
    warnings: list[str] = field(default_factory=list)
    zone_validation: Optional[ZoneValidation] = None


# ---------- Lookups ----------
def get_batch(db: Session, batch_ref: str) -> Batch:
    batch = db.scalar(select(Batch).where(Batch.batch_id == batch_ref))
    if batch is None:
        raise BatchNotFoundError(f"batch {batch_ref} not found", batch_id=batch_ref)
    return batch


def get_event(db: Session, event_ref: str) -> Event:
    event = db.scalar(select(Event).where(Event.event_id == event_ref))
    if event is None:
        raise EventNotFoundError(f"event {event_ref} not found", event_id=event_ref)
    return event


def last_event(db: Session, batch: Batch) -> Optional[Event]:
    return db.scalar(
        select(Event).where(Event.batch_pk == batch.id)
        .order_by(Event.created_at.desc(), Event.id.desc()).limit(1)
    )


def as_dict(row) -> dict[str, Any]:
    if row is None:
        return {}
    return {c.key: getattr(row, c.key) for c in row.__table__.columns}


# ---------- Input checks ----------
def _pydantic_errors(exc: PydanticValidationError) -> list[dict]:
    return [{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in exc.errors()]


def _coerce_event_type(event_type) -> EventType:
    try:
        return EventType(event_type)
    except ValueError:
        raise ValidationError(f"unknown event type: {event_type}") from None


def _validate_payload(event_type: EventType, payload) -> BaseModel:
    schema = PAYLOAD_SCHEMAS[event_type]
    if isinstance(payload, schema):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    try:
        return schema.model_validate(payload or {})
    except PydanticValidationError as e:
        raise ValidationError(
            f"invalid {event_type.value} payload", errors=_pydantic_errors(e), event_type=event_type
        ) from None


def _validate_location(location) -> Location:
    if location is None:
        return Location()
    if isinstance(location, Location):
        return location
    try:
        return Location.model_validate(location)
    except PydanticValidationError as e:
        raise ValidationError("invalid location", errors=_pydantic_errors(e)) from None


def _event_data(event_type: EventType, data: BaseModel) -> dict[str, Any]:
    body = data.model_dump(mode="json")
    if event_type == EventType.COLLECTION:
        body["total_price"] = data.total_price
    elif event_type == EventType.PROCESSING:
        body["yield_percentage"] = data.yield_percentage
    return body


def _satellite(event_type: EventType, data: BaseModel, event: Event, images: list[str]):
    fields = data.model_dump()
    if event_type == EventType.COLLECTION:
        fields["total_price"] = data.total_price
    elif event_type == EventType.PROCESSING:
        fields["yield_percentage"] = data.yield_percentage
    cls = SATELLITE_FOR_EVENT[event_type]
    # batch is always taken from the owning event
    return cls(event_pk=event.id, batch_pk=event.batch_pk, images=images, **fields)


def chain_payload(event: Event) -> dict[str, Any]:
    """The part of an event covered by the batch hash chain."""
    return {
        "event_id": event.event_id,
        "event_type": EventType(event.event_type).value,
        "batch_id": event.batch_identifier,
        "participant_id": event.participant_id,
        "data": event.event_data,
    }


# ---------- Content store ----------
def _upload_content(content_store: Optional[ContentStoreClient], attachments: Sequence[Attachment],
                    metadata: dict, warnings: list[str]) -> tuple[list[str], Optional[str], list[dict]]:
    """Push attachments and the event metadata to the content store.

    Returns the attachment hashes, the metadata hash and one ``ipfs_content``
    row description per successful upload; the rows are only written once the
    event exists.
    """
    if content_store is None:
        return [], None, []

    images, stored = [], []
    for item in attachments:
        res = content_store.upload_file(item.content, filename=item.filename, content_type=item.content_type)
        if res.get("success"):
            images.append(res["contentHash"])
            stored.append({
                "ipfs_hash": res["contentHash"],
                "content_type": "image" if item.content_type.startswith("image/") else "attachment",
                "file_name": item.filename,
                "file_size": len(item.content),
                "mime_type": item.content_type,
                "gateway_url": res.get("url"),
            })
        else:
            warnings.append(f"Attachment {item.filename} was not stored: {res.get('error')}")

    res = content_store.upload_json({**metadata, "images": images})
    if not res.get("success"):
        warnings.append(f"Event metadata was not stored: {res.get('error')}")
        return images, None, stored
    stored.append({
        "ipfs_hash": res["contentHash"],
        "content_type": "metadata",
        "file_name": "metadata.json",
        "mime_type": "application/json",
        "gateway_url": res.get("url"),
    })
    return images, res["contentHash"], stored


# ---------- Projection ----------
def projection_of(batch: Batch) -> BatchProjection:
    return BatchProjection(
        status=batch.current_status,
        event_count=batch.total_events,
        is_completed=batch.is_completed,
        completed_at=batch.completed_at,
    )


def apply_projection(db: Session, batch: Batch, expected: BatchProjection, new: BatchProjection,
                     at: datetime) -> None:
    """Write ``new`` onto the batch only if it still holds ``expected``."""
    result = db.execute(
        update(Batch)
        .where(
            Batch.id == batch.id,
            Batch.current_status == expected.status,
            Batch.total_events == expected.event_count,
        )
        .values(
            current_status=new.status,
            total_events=new.event_count,
            is_completed=new.is_completed,
            completed_at=new.completed_at,
            updated_at=at,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(
            f"batch {batch.batch_id} was modified concurrently", batch_id=batch.batch_id
        )
    db.refresh(batch)


# ---------- AppendEvent ----------
def append_event(
    db: Session,
    batch_ref: Optional[str],
    event_type,
    participant: User,
    payload,
    location=None,
    attachments: Sequence[Attachment] = (),
    blockchain: Optional[BlockchainClient] = None,
    content_store: Optional[ContentStoreClient] = None,
    base_url: str = config.BASE_URL,
) -> AppendResult:
    """Record one lifecycle event against a batch.

    COLLECTION creates the batch (a fresh id is generated when ``batch_ref`` is
    empty); every other type needs the batch to exist and to sit in the status
    that type follows. Everything written here commits or rolls back together.
    Content store failures only produce warnings; a blockchain failure aborts.
    """
    event_type = _coerce_event_type(event_type)
    data = _validate_payload(event_type, payload)
    loc = _validate_location(location)
    if not participant.is_active:
        raise AuthorizationError(f"participant {participant.id} is deactivated", user_id=participant.id)

    warnings: list[str] = []
    zone_check = None

    try:
        existing = None
        if batch_ref:
            existing = db.scalar(select(Batch).where(Batch.batch_id == batch_ref))
        if event_type == EventType.COLLECTION:
            if existing is not None:
                raise ConflictError(f"batch {batch_ref} already exists", batch_id=batch_ref)
            batch_id = batch_ref or (blockchain.generate_batch_id() if blockchain else generate_batch_id())
        else:
            if not batch_ref:
                raise ValidationError(f"{event_type.value} needs a batch id")
            if existing is None:
                raise BatchNotFoundError(f"batch {batch_ref} not found", batch_id=batch_ref)
            batch_id = existing.batch_id
            # cheap reject before any upload; re-checked under the lock below
            project(projection_of(existing), event_type, utcnow())

        event_id = blockchain.generate_event_id(event_type) if blockchain else generate_event_id(event_type)
        event_data = _event_data(event_type, data)

        images, metadata_hash, uploads = _upload_content(content_store, attachments, {
            "batchId": batch_id,
            "eventId": event_id,
            "eventType": event_type.value,
            "participant": {"id": participant.id, "name": participant.name,
                            "organization": participant.organization},
            "data": event_data,
        }, warnings)
        if images:
            event_data["images"] = images
        if metadata_hash:
            event_data["ipfs_hash"] = metadata_hash

        if loc.latitude is not None and loc.longitude is not None and event_type == EventType.COLLECTION:
            zone_check = validate_location(db, loc.latitude, loc.longitude, loc.zone)
            if not zone_check.is_valid:
                warnings.append(zone_check.message)

        # ---- write transaction ----
        now = utcnow()
        if event_type == EventType.COLLECTION:
            previous = None
            created_at = now
            before = BatchProjection()
            after = project(before, event_type, created_at)
            batch = Batch(
                batch_id=batch_id,
                herb_species=data.herb_species,
                creator_id=participant.id,
                creator_name=participant.name,
                creator_organization=participant.organization,
                current_status=after.status,
                total_events=after.event_count,
                is_completed=after.is_completed,
                ipfs_hash=metadata_hash,
                created_at=created_at,
                updated_at=created_at,
            )
            db.add(batch)
            db.flush()
        else:
            batch = db.scalar(
                select(Batch).where(Batch.batch_id == batch_id)
                .with_for_update().execution_options(populate_existing=True)
            )
            if batch is None:
                raise BatchNotFoundError(f"batch {batch_id} not found", batch_id=batch_id)
            previous = last_event(db, batch)
            created_at = max(now, previous.created_at + TICK) if previous else now
            before = projection_of(batch)
            after = project(before, event_type, created_at)

        qr_hash = generate_qr_hash()
        event = Event(
            event_id=event_id,
            event_type=event_type,
            batch_pk=batch.id,
            batch_identifier=batch.batch_id,
            parent_event_pk=previous.id if previous else None,
            participant_id=participant.id,
            participant_name=participant.name,
            organization=participant.organization,
            latitude=loc.latitude,
            longitude=loc.longitude,
            location_accuracy=loc.accuracy,
            zone=loc.zone or (zone_check.zone_name if zone_check else None),
            address=loc.address,
            status=EventStatus.PENDING,
            ipfs_hash=metadata_hash,
            qr_code_hash=qr_hash,
            event_data=event_data,
            created_at=created_at,
            updated_at=created_at,
        )
        event.prev_hash = previous.hash if previous else GENESIS
        event.hash = compute_hash(event.prev_hash, chain_payload(event), created_at.isoformat())
        db.add(event)
        db.flush()

        db.add(_satellite(event_type, data, event, images))
        for stored in uploads:
            record_upload(db, event, participant, **stored)
        if event_type != EventType.COLLECTION:
            apply_projection(db, batch, before, after, created_at)

        url = tracking_url(base_url, batch.batch_id, event.event_id)
        qr = QRCode(
            qr_hash=qr_hash,
            qr_data=canonical_json({
                "batch_id": batch.batch_id,
                "event_id": event.event_id,
                "type": event_type.value.lower(),
                "url": url,
            }),
            batch_pk=batch.id,
            event_pk=event.id,
            qr_type=event_type.value.lower(),
            tracking_url=url,
            generated_by=participant.id,
        )
        db.add(qr)
        record_audit(
            db, participant, f"CREATE_{event_type.value}", "event", event.event_id,
            old_values={"status": before.status.value if before.status else None,
                        "total_events": before.event_count},
            new_values={"status": after.status.value, "total_events": after.event_count,
                        "is_completed": after.is_completed},
        )
        if event_type != EventType.COLLECTION and batch.creator_id != participant.id:
            notify(
                db, batch.creator_id,
                title=f"{event_type.value.replace('_', ' ').title()} recorded",
                message=f"{participant.name} ({participant.organization}) recorded "
                        f"{event_type.value} for batch {batch.batch_id}",
                notification_type=event_type.value.lower(),
                batch_pk=batch.id,
                event_pk=event.id,
            )
        db.flush()

        if blockchain is not None:
            _anchor(db, blockchain, event_type, participant, batch, event)
        else:
            logger.info("Blockchain anchoring disabled, event %s left pending", event.event_id)

        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_unique_violation(e):
            raise DuplicateEventError(
                f"identifier collision while recording {event_type.value} for {batch_ref or 'new batch'}",
                batch_id=batch_ref,
            ) from e
        logger.warning("Integrity error recording %s for %s: %s", event_type.value, batch_ref, e.orig)
        raise ValidationError(
            f"{event_type.value} references a record that does not exist", batch_id=batch_ref
        ) from e
    except Exception:
        db.rollback()
        raise

    db.refresh(batch)
    db.refresh(event)
    db.refresh(qr)
    logger.info(
        "Recorded %s %s on batch %s (status=%s, events=%s, warnings=%d)",
        event_type.value, event.event_id, batch.batch_id,
        batch.current_status.value, batch.total_events, len(warnings),
    )
    return AppendResult(event=event, batch=batch, qr=qr, warnings=warnings, zone_validation=zone_check)


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    # psycopg2 exposes pgcode, psycopg 3 sqlstate; sqlite only has the message
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code == "23505"
    return "unique" in str(orig).lower()


def _anchor(db: Session, blockchain: BlockchainClient, event_type: EventType, participant: User,
            batch: Batch, event: Event) -> None:
    body = {
        "batchId": batch.batch_id,
        "eventId": event.event_id,
        "participantId": participant.id,
        "hash": event.hash,
        "ipfsHash": event.ipfs_hash,
        "data": event.event_data,
    }
    if event_type == EventType.COLLECTION:
        function_name = "createBatch"
        res = blockchain.create_batch(participant.address or participant.id, body)
    else:
        function_name = "submitEvent"
        res = blockchain.submit_event(event_type, body)
    if not res.get("success"):
        raise ExternalServiceError(
            f"blockchain anchoring failed: {res.get('error')}",
            service="blockchain",
            fatal=True,
            batch_id=batch.batch_id,
        )
    event.transaction_id = res["transactionId"]
    event.status = EventStatus.CONFIRMED
    if event_type == EventType.COLLECTION:
        batch.blockchain_hash = res["transactionId"]
    record_anchor(
        db, event, participant, event_type.value, res["transactionId"], res.get("blockNumber"),
        function_name, transaction_data=body, from_address=participant.address,
    )


# ---------- Event status ----------
def _change_event_status(db: Session, event_ref: str, target: EventStatus, user: Optional[User],
                         transaction_id: Optional[str] = None, reason: Optional[str] = None) -> Event:
    event = get_event(db, event_ref)
    check_event_status_change(event.status, target)
    old = {"status": event.status.value, "transaction_id": event.transaction_id}
    event.status = target
    if transaction_id:
        event.transaction_id = transaction_id
    event.updated_at = utcnow()
    new = {"status": target.value, "transaction_id": event.transaction_id}
    if reason:
        new["reason"] = reason
    record_audit(db, user, f"{target.value.upper()}_EVENT", "event", event.event_id, old, new)
    db.commit()
    db.refresh(event)
    logger.info("Event %s marked %s", event.event_id, target.value)
    return event


def confirm_event(db: Session, event_ref: str, transaction_id: str, user: Optional[User] = None) -> Event:
    if not transaction_id:
        raise ValidationError("transaction_id is required to confirm an event")
    return _change_event_status(db, event_ref, EventStatus.CONFIRMED, user, transaction_id=transaction_id)


def fail_event(db: Session, event_ref: str, reason: Optional[str] = None, user: Optional[User] = None) -> Event:
    return _change_event_status(db, event_ref, EventStatus.FAILED, user, reason=reason)


# ---------- Timeline ----------
@dataclass(frozen=True)
class TimelineEntry:
    sequence_number: int
    event: Event
    previous_event_time: Optional[datetime] = None
    elapsed: Optional[timedelta] = None


class BatchTimeline:
    """Ordered events of one batch. Each iteration runs a fresh query."""

    def __init__(self, db: Session, batch: Batch):
        self._db = db
        self.batch = batch

    def __iter__(self) -> Iterator[TimelineEntry]:
        stmt = (
            select(Event).where(Event.batch_pk == self.batch.id)
            .order_by(Event.created_at.asc(), Event.id.asc())
        )
        previous = None
        for seq, event in enumerate(self._db.scalars(stmt), start=1):
            yield TimelineEntry(
                sequence_number=seq,
                event=event,
                previous_event_time=previous,
                elapsed=event.created_at - previous if previous is not None else None,
            )
            previous = event.created_at


def get_batch_timeline(db: Session, batch_ref: str) -> BatchTimeline:
    return BatchTimeline(db, get_batch(db, batch_ref))


# ---------- Snapshot ----------
@dataclass
class BatchSnapshot:
    batch: Batch
    latest_event: Optional[Event] = None
    collection: Optional[Collection] = None
    quality_test: Optional[QualityTest] = None
    processing: Optional[ProcessingOperation] = None
    manufacturing: Optional[ManufacturingOperation] = None

    def sections(self) -> dict[str, dict]:
        return {
            "collection": as_dict(self.collection),
            "quality_test": as_dict(self.quality_test),
            "processing": as_dict(self.processing),
            "manufacturing": as_dict(self.manufacturing),
        }


def _latest(db: Session, cls, batch: Batch):
    return db.scalar(
        select(cls).where(cls.batch_pk == batch.id).order_by(cls.created_at.desc()).limit(1)
    )


def get_batch_snapshot(db: Session, batch_ref: str) -> BatchSnapshot:
    batch = get_batch(db, batch_ref)
    return BatchSnapshot(
        batch=batch,
        latest_event=last_event(db, batch),
        collection=_latest(db, Collection, batch),
        quality_test=_latest(db, QualityTest, batch),
        processing=_latest(db, ProcessingOperation, batch),
        manufacturing=_latest(db, ManufacturingOperation, batch),
    )


def batch_participants(db: Session, batch: Batch) -> set[str]:
    return set(db.scalars(select(Event.participant_id).where(Event.batch_pk == batch.id)))


# ---------- Integrity ----------
def verify_batch_chain(db: Session, batch_ref: str) -> dict[str, Any]:
    batch = get_batch(db, batch_ref)
    chain = [{
        "payload": chain_payload(entry.event),
        "timestamp": entry.event.created_at.isoformat(),
        "prev_hash": entry.event.prev_hash,
        "hash": entry.event.hash,
    } for entry in BatchTimeline(db, batch)]
    verified = verify_chain(chain)
    consistent = len(chain) == batch.total_events
    if not (verified and consistent):
        logger.warning("Batch %s failed verification (chain=%s, count=%s)", batch.batch_id, verified, consistent)
    return {
        "batch_id": batch.batch_id,
        "verified": verified and consistent,
        "events": len(chain),
        "total_events": batch.total_events,
    }


# ---------- Participants ----------
def participant_activity(db: Session, user_id: str) -> dict[str, Any]:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"user {user_id} not found", user_id=user_id)

    counts = dict(db.execute(
        select(Event.event_type, func.count(Event.id))
        .where(Event.participant_id == user.id)
        .group_by(Event.event_type)
    ).all())
    first, last, unique_batches = db.execute(
        select(func.min(Event.created_at), func.max(Event.created_at), func.count(func.distinct(Event.batch_pk)))
        .where(Event.participant_id == user.id)
    ).one()
    return {
        "user_id": user.id,
        "name": user.name,
        "organization": user.organization,
        "role": user.role,
        "collections_created": counts.get(EventType.COLLECTION, 0),
        "quality_tests_performed": counts.get(EventType.QUALITY_TEST, 0),
        "processing_operations": counts.get(EventType.PROCESSING, 0),
        "manufacturing_operations": counts.get(EventType.MANUFACTURING, 0),
        "total_events": sum(counts.values()),
        "unique_batches": unique_batches or 0,
        "first_activity": first,
        "last_activity": last,
    }


# ---------- Listing & search ----------
def list_batches(db: Session, q: Optional[str] = None, page: int = 1, page_size: int = 10,
                 viewer: Optional[User] = None, restricted: bool = False) -> tuple[list[Batch], int]:
    """Page through batches, newest first.

    With ``restricted`` only completed batches are listed, plus the in-progress
    ones ``viewer`` created or recorded an event on.
    """
    base = select(Batch)
    if restricted:
        visible = Batch.is_completed.is_(True)
        if viewer is not None:
            visible = or_(
                visible,
                Batch.creator_id == viewer.id,
                Batch.id.in_(select(Event.batch_pk).where(Event.participant_id == viewer.id)),
            )
        base = base.where(visible)
    if q:
        like = f"%{q}%"
        base = base.where(
            (Batch.batch_id.ilike(like)) |
            (Batch.herb_species.ilike(like)) |
            (Batch.creator_name.ilike(like))
        )
    total = db.scalar(select(func.count()).select_from(base.subquery()))
    rows = db.scalars(
        base.order_by(Batch.created_at.desc(), Batch.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
    ).all()
    return list(rows), total or 0


# ---------- Reference data ----------
HERBS = [
    ("Ashwagandha", "Withania somnifera (Linn.) Dunal",
     ["October", "November", "December", "January"],
     ["Rajasthan Desert Region", "Central India - Madhya Pradesh"]),
    ("Tulsi", "Ocimum sanctum Linn.", ["October", "November", "December"],
     ["Central India - Madhya Pradesh", "Eastern Ghats - Tamil Nadu"]),
    ("Neem", "Azadirachta indica A. Juss", ["April", "May", "June"],
     ["Rajasthan Desert Region", "Central India - Madhya Pradesh", "Eastern Ghats - Tamil Nadu"]),
    ("Brahmi", "Bacopa monnieri (L.) Pennell", ["March", "April", "May", "September", "October"],
     ["Western Ghats - Kerala", "Eastern Ghats - Tamil Nadu"]),
    ("Shatavari", "Asparagus racemosus Willd.", ["September", "October", "November"],
     ["Himalayan Region - Uttarakhand", "Western Ghats - Kerala"]),
]

ZONES = [
    ("Himalayan Region - Uttarakhand", "Northern India", "Uttarakhand"),
    ("Western Ghats - Kerala", "Southern India", "Kerala"),
    ("Eastern Ghats - Tamil Nadu", "Southern India", "Tamil Nadu"),
    ("Central India - Madhya Pradesh", "Central India", "Madhya Pradesh"),
    ("Northeast - Assam", "Northeast India", "Assam"),
    ("Rajasthan Desert Region", "Western India", "Rajasthan"),
    ("Nilgiri Hills - Tamil Nadu", "Southern India", "Tamil Nadu"),
    ("Aravalli Range - Rajasthan", "Western India", "Rajasthan"),
    ("Sahyadri Range - Maharashtra", "Western India", "Maharashtra"),
    ("Vindhya Range - Madhya Pradesh", "Central India", "Madhya Pradesh"),
]

PROCESSING_METHODS = [
    ("Steam Distillation", "Extraction using steam", (100, 120), (60, 240)),
    ("Solvent Extraction", "Extraction using organic solvents", (20, 80), (120, 480)),
    ("Cold Pressing", "Mechanical extraction without heat", (15, 25), (30, 120)),
    ("Supercritical CO2 Extraction", "Extraction using supercritical CO2", (31, 80), (60, 180)),
    ("Traditional Drying", "Sun or shade drying", (25, 60), (480, 2880)),
    ("Freeze Drying", "Lyophilization process", (-80, -40), (720, 2880)),
]


def seed_reference_data(db: Session) -> dict[str, int]:
    """Insert herbs, zones and processing methods that are not there yet."""
    created = {"herbs": 0, "zones": 0, "processing_methods": 0}

    have = set(db.scalars(select(AyurvedicHerb.name)))
    for name, scientific, seasons, zones in HERBS:
        if name not in have:
            db.add(AyurvedicHerb(name=name, scientific_name=scientific,
                                 harvest_seasons=seasons, approved_zones=zones))
            created["herbs"] += 1

    have = set(db.scalars(select(ApprovedZone.zone_name)))
    for zone_name, region, state in ZONES:
        if zone_name not in have:
            db.add(ApprovedZone(zone_name=zone_name, region=region, state=state))
            created["zones"] += 1

    have = set(db.scalars(select(ProcessingMethod.method_name)))
    for method, description, temp, duration in PROCESSING_METHODS:
        if method not in have:
            db.add(ProcessingMethod(
                method_name=method, description=description,
                typical_temperature_range={"min": temp[0], "max": temp[1]},
                typical_duration_range={"min": duration[0], "max": duration[1]},
            ))
            created["processing_methods"] += 1

    db.commit()
    return created
