# Thin client for the Hyperledger Fabric bridge that anchors batch/event hashes.
import logging
from typing import Any, Optional

import httpx

import config
from utils import generate_batch_id, generate_event_id

logger = logging.getLogger(__name__)


class BlockchainClient:
    """Calls never raise: failures come back as ``{"success": False, "error": ...}``."""

    def __init__(
        self,
        base_url: str = config.FABRIC_BRIDGE_URL,
        timeout: float = config.BLOCKCHAIN_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _post(self, path: str, body: dict) -> dict:
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(path, json=body)
            resp.raise_for_status()
            result = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("Fabric bridge %s failed with status %s: %s", path, e.response.status_code, e.response.text)
            return {"success": False, "error": f"bridge returned {e.response.status_code}"}
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Fabric bridge %s unreachable: %s", path, e)
            return {"success": False, "error": f"bridge unreachable: {e}"}

        tx_id = result.get("transactionId") or result.get("txHash")
        if not tx_id:
            return {"success": False, "error": result.get("error") or "bridge did not return a transaction id"}
        return {"success": True, "transactionId": tx_id, "blockNumber": result.get("blockNumber")}

    def create_batch(self, actor_address: str, data: dict[str, Any]) -> dict:
        return self._post("/batches", {"actor": actor_address, **data})

    def submit_event(self, event_type: str, data: dict[str, Any]) -> dict:
        return self._post("/events", {"eventType": getattr(event_type, "value", event_type), **data})

    def generate_batch_id(self) -> str:
        return generate_batch_id()

    def generate_event_id(self, event_type: str) -> str:
        return generate_event_id(event_type)
