import os
import logging

# ---------- Service ----------
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ---------- Blockchain bridge ----------
FABRIC_BRIDGE_URL = os.getenv("FABRIC_BRIDGE_URL", "http://localhost:3000")
BLOCKCHAIN_ENABLED = os.getenv("BLOCKCHAIN_ENABLED", "true").lower() in ("1", "true", "yes")
BLOCKCHAIN_TIMEOUT = float(os.getenv("BLOCKCHAIN_TIMEOUT", "15"))

# ---------- Content store (IPFS) ----------
# e.g. http://127.0.0.1:5001/api/v0/add or a pinning service upload URL
IPFS_UPLOAD_URL = os.getenv("IPFS_UPLOAD_URL", "")
IPFS_GATEWAY_PUBLIC = os.getenv("IPFS_GATEWAY_PUBLIC", "https://ipfs.io/ipfs/")
IPFS_TIMEOUT = float(os.getenv("IPFS_TIMEOUT", "30"))


def configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
