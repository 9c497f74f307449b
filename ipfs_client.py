# Content-addressed store client (IPFS add API or a pinning service with the same shape).
import json
import logging
from typing import Any, Optional

import httpx

import config
from utils import json_default

logger = logging.getLogger(__name__)


def get_public_url(cid: str, gateway: str = config.IPFS_GATEWAY_PUBLIC) -> str:
    """Resolve a content hash (CID) to a gateway URL."""
    if not cid:
        return ""
    return f"{gateway.rstrip('/')}/{cid}"


class ContentStoreClient:
    def __init__(
        self,
        upload_url: str = config.IPFS_UPLOAD_URL,
        timeout: float = config.IPFS_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.upload_url = upload_url
        self.timeout = timeout
        self.transport = transport

    def upload_file(self, data: bytes, filename: str = "file", content_type: str = "application/octet-stream") -> dict:
        if not self.upload_url:
            return {"success": False, "error": "IPFS_UPLOAD_URL is not configured"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(self.upload_url, files={"file": (filename, data, content_type)})
            resp.raise_for_status()
            cid = resp.json().get("Hash")
        except httpx.HTTPStatusError as e:
            logger.warning("IPFS upload failed with status %s: %s", e.response.status_code, e.response.text)
            return {"success": False, "error": f"upload returned {e.response.status_code}"}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("IPFS upload failed: %s", e)
            return {"success": False, "error": str(e)}

        if not cid:
            return {"success": False, "error": "upload response carried no hash"}
        return {"success": True, "contentHash": cid, "url": get_public_url(cid)}

    def upload_json(self, obj: Any, name: str = "metadata.json") -> dict:
        body = json.dumps(obj, sort_keys=True, default=json_default).encode("utf-8")
        return self.upload_file(body, filename=name, content_type="application/json")
