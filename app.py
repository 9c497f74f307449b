import json
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, Header, Query, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sqlalchemy import select
from sqlalchemy.orm import Session

import config
import ledger
import schemas
from blockchain_client import BlockchainClient
from database import Base, SessionLocal, engine, get_db
from errors import (
    AuthorizationError, ConflictError, ExternalServiceError, InvalidTransitionError, LedgerError, ValidationError,
)
from ipfs_client import ContentStoreClient, get_public_url
from models import ApprovedZone, Batch, Role, User
from records import record_audit, record_error, record_rating, record_scan
from transitions import EventType
from utils import qr_png, tracking_url

logger = logging.getLogger(__name__)

app = FastAPI(title="Herb TraceChain", version="0.2.0")
app.state.session_factory = SessionLocal

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # restrict to known origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    config.configure_logging()
    Base.metadata.create_all(bind=engine)


# ---------- Errors ----------
@app.exception_handler(LedgerError)
def ledger_error_handler(request: Request, exc: LedgerError):
    if isinstance(exc, (ConflictError, InvalidTransitionError, ExternalServiceError)):
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        record_error(
            request.app.state.session_factory, exc,
            user_id=request.headers.get("x-user-id"),
            batch_identifier=request.path_params.get("batch_id") or exc.context.get("batch_id"),
            request_url=str(request.url),
            request_method=request.method,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ---------- Dependencies ----------
def get_blockchain() -> Optional[BlockchainClient]:
    return BlockchainClient() if config.BLOCKCHAIN_ENABLED else None


def get_content_store() -> Optional[ContentStoreClient]:
    return ContentStoreClient() if config.IPFS_UPLOAD_URL else None


def optional_user(x_user_id: Optional[str] = Header(None), db: Session = Depends(get_db)) -> Optional[User]:
    if not x_user_id:
        return None
    user = db.get(User, x_user_id)
    if user is None or not user.is_active:
        raise AuthorizationError("unknown or inactive participant", user_id=x_user_id)
    return user


def current_user(user: Optional[User] = Depends(optional_user)) -> User:
    if user is None:
        raise AuthorizationError("X-User-Id header is required")
    return user


def require_admin(user: User = Depends(current_user)) -> User:
    if user.role != Role.ADMIN:
        raise AuthorizationError("admin role required", user_id=user.id)
    return user


# ---------- Authorization ----------
ROLE_EVENTS = {
    Role.COLLECTOR: {EventType.COLLECTION},
    Role.TESTER: {EventType.QUALITY_TEST},
    Role.PROCESSOR: {EventType.PROCESSING},
    Role.MANUFACTURER: {EventType.MANUFACTURING},
    Role.ADMIN: set(EventType),
}


def authorize_event(user: User, event_type: EventType) -> None:
    if event_type not in ROLE_EVENTS.get(user.role, set()):
        raise AuthorizationError(
            f"role {user.role.value} may not record {event_type.value} events", user_id=user.id
        )


def authorize_view(db: Session, user: Optional[User], batch: Batch) -> None:
    if batch.is_completed:
        return
    if user is None:
        raise AuthorizationError("X-User-Id header is required for batches in progress")
    if user.role == Role.ADMIN or user.id == batch.creator_id:
        return
    if user.id not in ledger.batch_participants(db, batch):
        raise AuthorizationError(f"not a participant of batch {batch.batch_id}", user_id=user.id)


# ---------- Helpers ----------
def _json_field(name: str, raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"{name} is not valid JSON",
                              errors=[{"loc": [name], "msg": str(e), "type": "json_invalid"}])
    if not isinstance(value, dict):
        raise ValidationError(f"{name} must be a JSON object")
    return value


def _attachments(files: Optional[List[UploadFile]]) -> list[ledger.Attachment]:
    return [
        ledger.Attachment(
            filename=f.filename or "file",
            content=f.file.read(),
            content_type=f.content_type or "application/octet-stream",
        )
        for f in files or []
    ]


def _receipt(result: ledger.AppendResult) -> schemas.EventReceipt:
    ev, batch = result.event, result.batch
    return schemas.EventReceipt(
        batch_id=batch.batch_id,
        event_id=ev.event_id,
        event_type=ev.event_type,
        status=ev.status,
        transaction_id=ev.transaction_id,
        ipfs_hash=ev.ipfs_hash,
        batch_status=batch.current_status,
        total_events=batch.total_events,
        is_completed=batch.is_completed,
        qr=schemas.QRInfo(qr_hash=result.qr.qr_hash, tracking_url=result.qr.tracking_url),
        zone_validation=result.zone_validation.to_dict() if result.zone_validation else None,
        warnings=result.warnings,
    )


def _record_event(db, batch_ref, event_type, user, data, location, files, blockchain, content_store):
    authorize_event(user, event_type)
    result = ledger.append_event(
        db, batch_ref, event_type, user,
        payload=_json_field("data", data) or {},
        location=_json_field("location", location),
        attachments=_attachments(files),
        blockchain=blockchain,
        content_store=content_store,
    )
    return _receipt(result)


# ---------- Participants ----------
@app.post("/api/users", response_model=schemas.UserOut, status_code=201)
def create_user(body: schemas.CreateUser, caller: Optional[User] = Depends(optional_user),
                db: Session = Depends(get_db)):
    if db.scalar(select(User).where(User.email == body.email)):
        raise ConflictError(f"email {body.email} is already registered")
    # first admin bootstraps itself, later ones need an admin
    if body.role == Role.ADMIN and db.scalar(select(User).where(User.role == Role.ADMIN).limit(1)):
        if caller is None or caller.role != Role.ADMIN:
            raise AuthorizationError("only an admin may register another admin")
    user = User(**body.model_dump())
    db.add(user)
    db.flush()
    record_audit(db, caller, "CREATE_USER", "user", user.id, new_values={"email": user.email, "role": user.role.value})
    db.commit(); db.refresh(user)
    return user


@app.get("/api/users/{user_id}/activity", response_model=schemas.ParticipantActivity)
def user_activity(user_id: str, user: User = Depends(current_user), db: Session = Depends(get_db)):
    if user.id != user_id and user.role != Role.ADMIN:
        raise AuthorizationError("activity is visible to the participant and admins only", user_id=user.id)
    return ledger.participant_activity(db, user_id)


@app.post("/api/zones", status_code=201)
def create_zone(body: schemas.CreateZone, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if db.scalar(select(ApprovedZone).where(ApprovedZone.zone_name == body.zone_name)):
        raise ConflictError(f"zone {body.zone_name} already exists")
    zone = ApprovedZone(**body.model_dump())
    db.add(zone)
    record_audit(db, admin, "CREATE_ZONE", "approved_zone", body.zone_name)
    db.commit(); db.refresh(zone)
    return {"id": zone.id, "zone_name": zone.zone_name, "has_boundary": zone.coordinates is not None}


# ---------- Lifecycle events ----------
@app.post("/api/collections", response_model=schemas.EventReceipt, status_code=201)
def create_collection(
    data: str = Form(...),
    batch_id: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    files: List[UploadFile] = File(None),
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    blockchain: Optional[BlockchainClient] = Depends(get_blockchain),
    content_store: Optional[ContentStoreClient] = Depends(get_content_store),
):
    return _record_event(db, batch_id, EventType.COLLECTION, user, data, location, files, blockchain, content_store)


@app.post("/api/batches/{batch_id}/quality-tests", response_model=schemas.EventReceipt, status_code=201)
def add_quality_test(
    batch_id: str,
    data: str = Form(...),
    location: Optional[str] = Form(None),
    files: List[UploadFile] = File(None),
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    blockchain: Optional[BlockchainClient] = Depends(get_blockchain),
    content_store: Optional[ContentStoreClient] = Depends(get_content_store),
):
    return _record_event(db, batch_id, EventType.QUALITY_TEST, user, data, location, files, blockchain, content_store)


@app.post("/api/batches/{batch_id}/processing", response_model=schemas.EventReceipt, status_code=201)
def add_processing(
    batch_id: str,
    data: str = Form(...),
    location: Optional[str] = Form(None),
    files: List[UploadFile] = File(None),
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    blockchain: Optional[BlockchainClient] = Depends(get_blockchain),
    content_store: Optional[ContentStoreClient] = Depends(get_content_store),
):
    return _record_event(db, batch_id, EventType.PROCESSING, user, data, location, files, blockchain, content_store)


@app.post("/api/batches/{batch_id}/manufacturing", response_model=schemas.EventReceipt, status_code=201)
def add_manufacturing(
    batch_id: str,
    data: str = Form(...),
    location: Optional[str] = Form(None),
    files: List[UploadFile] = File(None),
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    blockchain: Optional[BlockchainClient] = Depends(get_blockchain),
    content_store: Optional[ContentStoreClient] = Depends(get_content_store),
):
    return _record_event(db, batch_id, EventType.MANUFACTURING, user, data, location, files, blockchain, content_store)


@app.post("/api/events/{event_id}/confirm", response_model=schemas.EventOut)
def confirm_event(event_id: str, body: schemas.ConfirmEvent, admin: User = Depends(require_admin),
                  db: Session = Depends(get_db)):
    return ledger.confirm_event(db, event_id, body.transaction_id, user=admin)


@app.post("/api/events/{event_id}/fail", response_model=schemas.EventOut)
def fail_event(event_id: str, body: schemas.FailEvent, admin: User = Depends(require_admin),
               db: Session = Depends(get_db)):
    return ledger.fail_event(db, event_id, reason=body.reason, user=admin)


# ---------- Batches: listing & search ----------
@app.get("/api/batches", response_model=schemas.BatchList)
def list_batches(
    q: Optional[str] = Query(None, description="search batch_id / herb_species / creator_name"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    user: Optional[User] = Depends(optional_user),
    db: Session = Depends(get_db),
):
    # in-progress batches follow the same visibility as authorize_view
    restricted = user is None or user.role != Role.ADMIN
    rows, total = ledger.list_batches(db, q, page, page_size, viewer=user, restricted=restricted)
    items = [schemas.BatchBrief(
        batch_id=b.batch_id,
        herb_species=b.herb_species,
        creator_name=b.creator_name,
        current_status=b.current_status,
        lifecycle_status=b.lifecycle_status,
        is_completed=b.is_completed,
        total_events=b.total_events,
    ) for b in rows]
    return schemas.BatchList(items=items, total=total, page=page, page_size=page_size)


# ---------- One batch ----------
@app.get("/api/batches/{batch_id}", response_model=schemas.BatchSnapshotOut)
def batch_snapshot(batch_id: str, user: Optional[User] = Depends(optional_user), db: Session = Depends(get_db)):
    snap = ledger.get_batch_snapshot(db, batch_id)
    authorize_view(db, user, snap.batch)
    return schemas.BatchSnapshotOut(
        batch=schemas.BatchOut.model_validate(snap.batch),
        latest_event=schemas.EventOut.model_validate(snap.latest_event) if snap.latest_event else None,
        **snap.sections(),
    )


@app.get("/api/batches/{batch_id}/timeline", response_model=List[schemas.TimelineEntryOut])
def batch_timeline(batch_id: str, user: Optional[User] = Depends(optional_user), db: Session = Depends(get_db)):
    timeline = ledger.get_batch_timeline(db, batch_id)
    authorize_view(db, user, timeline.batch)
    out = []
    for entry in timeline:
        seconds = entry.elapsed.total_seconds() if entry.elapsed is not None else None
        out.append(schemas.TimelineEntryOut(
            sequence_number=entry.sequence_number,
            event=schemas.EventOut.model_validate(entry.event),
            previous_event_time=entry.previous_event_time,
            seconds_since_previous=seconds,
            hours_since_previous=round(seconds / 3600, 2) if seconds is not None else None,
        ))
    return out


@app.get("/api/batches/{batch_id}/verify")
def verify_batch(batch_id: str, user: Optional[User] = Depends(optional_user), db: Session = Depends(get_db)):
    authorize_view(db, user, ledger.get_batch(db, batch_id))
    return ledger.verify_batch_chain(db, batch_id)


@app.get("/api/batches/{batch_id}/qrcode")
def batch_qrcode(batch_id: str, db: Session = Depends(get_db)):
    batch = ledger.get_batch(db, batch_id)
    return Response(content=qr_png(tracking_url(config.BASE_URL, batch.batch_id)), media_type="image/png")


# ---------- Consumer tracking ----------
@app.get("/api/track/{batch_id}", response_model=schemas.TrackView)
def track_batch(batch_id: str, request: Request, qr: Optional[str] = Query(None),
                user: Optional[User] = Depends(optional_user), db: Session = Depends(get_db)):
    timeline = ledger.get_batch_timeline(db, batch_id)
    batch = timeline.batch
    authorize_view(db, user, batch)
    stages = [schemas.TrackStage(
        sequence_number=entry.sequence_number,
        event_type=entry.event.event_type,
        participant=entry.event.participant_name,
        organization=entry.event.organization,
        zone=entry.event.zone,
        date=entry.event.created_at,
        transaction_id=entry.event.transaction_id,
        document_url=get_public_url(entry.event.ipfs_hash) if entry.event.ipfs_hash else None,
    ) for entry in timeline]
    snap = ledger.get_batch_snapshot(db, batch_id)
    verified = ledger.verify_batch_chain(db, batch_id)["verified"]

    record_scan(
        db, batch, qr_hash=qr,
        scanner_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return schemas.TrackView(
        batch_id=batch.batch_id,
        herb_species=batch.herb_species,
        status=batch.lifecycle_status,
        is_completed=batch.is_completed,
        verified=verified,
        product_name=snap.manufacturing.product_name if snap.manufacturing else None,
        stages=stages,
    )


@app.post("/api/ratings", status_code=201)
def rate_platform(body: schemas.CreateRating, user: Optional[User] = Depends(optional_user),
                  db: Session = Depends(get_db)):
    batch = ledger.get_batch(db, body.batch_id) if body.batch_id else None
    row = record_rating(db, body.rating, body.feedback, user=user, batch=batch, feature_rated=body.feature_rated)
    return {"id": row.id, "rating": row.rating}


# ---------- Reference data ----------
@app.get("/api/seed")
def seed(db: Session = Depends(get_db)):
    created = ledger.seed_reference_data(db)
    return {"status": "seeded" if any(created.values()) else "exists", "created": created}


@app.get("/api/health")
def health():
    return {"status": "ok", "blockchain_enabled": config.BLOCKCHAIN_ENABLED,
            "content_store": bool(config.IPFS_UPLOAD_URL)}
