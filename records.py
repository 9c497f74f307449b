# Append-only side-channel records: audit trail, notifications, anchors, uploads, errors, scans, ratings.
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from models import (
    AuditLog, Batch, BlockchainTransaction, ErrorLog, Event, IPFSContent, Notification, PlatformRating,
    QRCode, QRScan, User,
)

logger = logging.getLogger(__name__)


def record_audit(db: Session, user: Optional[User], action: str, resource_type: str,
                 resource_id: str, old_values: dict | None = None, new_values: dict | None = None) -> AuditLog:
    row = AuditLog(
        user_id=user.id if user else None,
        user_role=user.role.value if user else None,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        old_values=old_values,
        new_values=new_values,
    )
    db.add(row)
    return row


def notify(db: Session, user_id: str, title: str, message: str, notification_type: str,
           batch_pk: str | None = None, event_pk: str | None = None, priority: str = "normal") -> Notification:
    row = Notification(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        batch_pk=batch_pk,
        event_pk=event_pk,
        priority=priority,
    )
    db.add(row)
    return row


def record_anchor(db: Session, event: Event, user: Optional[User], transaction_type: str, transaction_id: str,
                  block_number: int | None, function_name: str, transaction_data: dict | None = None,
                  from_address: str | None = None) -> BlockchainTransaction:
    row = BlockchainTransaction(
        transaction_id=transaction_id,
        block_number=block_number,
        transaction_type=transaction_type,
        function_name=function_name,
        from_address=from_address,
        batch_pk=event.batch_pk,
        event_pk=event.id,
        user_id=user.id if user else None,
        transaction_data=transaction_data,
    )
    db.add(row)
    return row


def record_upload(db: Session, event: Event, user: Optional[User], ipfs_hash: str, content_type: str,
                  file_name: str | None = None, file_size: int | None = None, mime_type: str | None = None,
                  gateway_url: str | None = None) -> IPFSContent:
    row = IPFSContent(
        ipfs_hash=ipfs_hash,
        content_type=content_type,
        file_name=file_name,
        file_size=file_size,
        mime_type=mime_type,
        batch_pk=event.batch_pk,
        event_pk=event.id,
        user_id=user.id if user else None,
        gateway_url=gateway_url,
    )
    db.add(row)
    return row


def record_error(session_factory: sessionmaker, error: Exception, *, user_id: str | None = None,
                 batch_identifier: str | None = None, request_url: str | None = None,
                 request_method: str | None = None) -> None:
    """Write an error row in its own session so a rolled back request still leaves a trace."""
    db = session_factory()
    try:
        db.add(ErrorLog(
            error_type=type(error).__name__,
            error_message=str(error),
            user_id=user_id,
            batch_identifier=batch_identifier,
            request_url=request_url,
            request_method=request_method,
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("could not persist error log for %s", type(error).__name__)
    finally:
        db.close()


def record_scan(db: Session, batch: Batch, qr_hash: str | None = None, scanner_ip: str | None = None,
                user_agent: str | None = None, source: str = "web") -> QRScan:
    qr = None
    if qr_hash:
        qr = db.scalar(select(QRCode).where(QRCode.qr_hash == qr_hash, QRCode.batch_pk == batch.id))
    if qr is None:
        qr = db.scalar(
            select(QRCode).where(QRCode.batch_pk == batch.id).order_by(QRCode.generated_at.desc()).limit(1)
        )
    if qr is not None:
        db.execute(update(QRCode).where(QRCode.id == qr.id).values(scan_count=QRCode.scan_count + 1))
    scan = QRScan(
        qr_code_id=qr.id if qr else None,
        batch_pk=batch.id,
        scanner_ip=scanner_ip,
        scanner_user_agent=user_agent,
        scan_source=source,
        scan_result="success" if qr else "no_qr_code",
    )
    db.add(scan)
    db.commit()
    return scan


def record_rating(db: Session, rating: int, feedback: str | None = None, user: Optional[User] = None,
                  batch: Optional[Batch] = None, feature_rated: str | None = None) -> PlatformRating:
    row = PlatformRating(
        rating=rating,
        feedback=feedback,
        user_id=user.id if user else None,
        user_email=user.email if user else None,
        batch_pk=batch.id if batch else None,
        feature_rated=feature_rated,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
