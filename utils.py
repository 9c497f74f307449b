import hashlib
import io
import json
import secrets
import time
from datetime import date, datetime, timezone
from typing import List, Dict, Any

import qrcode

GENESIS = "GENESIS"


def utcnow() -> datetime:
    # naive UTC, SQLite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


def json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def canonical_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, default=json_default)


def compute_hash(prev_hash: str, payload: dict, timestamp: str) -> str:
    block = canonical_json({
        "prev_hash": prev_hash,
        "payload": payload,
        "timestamp": timestamp
    })
    return hashlib.sha256(block.encode("utf-8")).hexdigest()


def verify_chain(events: List[Dict[str, Any]]) -> bool:
    prev = GENESIS
    for ev in events:
        expected = compute_hash(prev, ev["payload"], ev["timestamp"])
        if ev["hash"] != expected or ev["prev_hash"] != prev:
            return False
        prev = ev["hash"]
    return True


# ---------- Identifiers ----------
def _suffix() -> str:
    return secrets.token_hex(4).upper()


def generate_batch_id() -> str:
    return f"HERB-{int(time.time())}-{_suffix()}"


def generate_event_id(event_type: str) -> str:
    return f"{getattr(event_type, 'value', event_type).upper()}-{int(time.time())}-{_suffix()}"


def generate_qr_hash() -> str:
    return f"qr_{int(time.time())}_{secrets.token_hex(6)}"


# ---------- QR ----------
def tracking_url(base_url: str, batch_id: str, event_id: str | None = None) -> str:
    url = f"{base_url.rstrip('/')}/track/{batch_id}"
    return f"{url}/{event_id}" if event_id else url


def qr_png(data: str) -> bytes:
    img = qrcode.make(data)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
