"""Shared fixtures: in-memory database, stubbed bridge / content store, API client."""
import json
import os
from datetime import date, timedelta

# module-level engine and flags are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["BLOCKCHAIN_ENABLED"] = "false"
os.environ["IPFS_UPLOAD_URL"] = ""

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import app, get_blockchain, get_content_store
from blockchain_client import BlockchainClient
from database import Base, SessionLocal, get_db
from ipfs_client import ContentStoreClient
from models import Role, User
from transitions import EventType


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(role: Role, name: str | None = None, address: str | None = None) -> User:
        name = name or f"{role.value.title()} One"
        user = User(
            email=f"{name.lower().replace(' ', '.')}@example.org",
            name=name,
            organization=f"{role.value.title()} Org",
            role=role,
            address=address,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def collector(make_user):
    return make_user(Role.COLLECTOR, "Ravi Kumar", address="0xcollector")


@pytest.fixture
def tester(make_user):
    return make_user(Role.TESTER, "Meera Nair")


@pytest.fixture
def processor(make_user):
    return make_user(Role.PROCESSOR, "Suresh Pillai")


@pytest.fixture
def manufacturer(make_user):
    return make_user(Role.MANUFACTURER, "Anita Rao")


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, "Root Admin")


# ---------- Payloads ----------
@pytest.fixture
def payloads():
    today = date.today()
    return {
        EventType.COLLECTION: {
            "herb_species": "Ashwagandha",
            "weight_grams": 5000,
            "quality_grade": "Premium",
            "price_per_unit": 0.5,
            "harvest_date": str(today - timedelta(days=1)),
            "collector_group": "Kerala Herb Collective",
        },
        EventType.QUALITY_TEST: {
            "test_date": str(today),
            "tester_name": "Meera Nair",
            "lab_name": "AyurLab",
            "test_method": "HPTLC",
            "moisture_content": 8.5,
            "purity": 97.2,
            "overall_result": "PASS",
        },
        EventType.PROCESSING: {
            "processor_name": "Suresh Pillai",
            "processing_facility": "Unit 2",
            "method": "Traditional Drying",
            "input_weight_grams": 5000,
            "output_weight_grams": 1250,
            "start_date": str(today),
            "end_date": str(today),
        },
        EventType.MANUFACTURING: {
            "manufacturer_name": "Anita Rao",
            "manufacturing_facility": "Plant 1",
            "product_name": "Ashwagandha Capsules",
            "product_type": "capsule",
            "quantity": 400,
            "unit": "bottles",
            "manufacturing_date": str(today),
            "expiry_date": str(today + timedelta(days=730)),
        },
    }


# ---------- External services ----------
class BridgeStub:
    """Fabric bridge double; records request bodies and can be switched to fail."""

    def __init__(self):
        self.calls = []
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.url.path, json.loads(request.content)))
        if self.fail:
            return httpx.Response(500, json={"error": "peer unavailable"})
        n = len(self.calls)
        return httpx.Response(200, json={"transactionId": f"tx-{n:04d}", "blockNumber": n})


class ContentStoreStub:
    def __init__(self):
        self.uploads = 0
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            return httpx.Response(503, text="gateway down")
        self.uploads += 1
        return httpx.Response(200, json={"Name": "file", "Hash": f"QmHash{self.uploads:03d}", "Size": "10"})


@pytest.fixture
def bridge():
    return BridgeStub()


@pytest.fixture
def blockchain(bridge):
    return BlockchainClient(base_url="http://bridge.test", transport=httpx.MockTransport(bridge))


@pytest.fixture
def ipfs():
    return ContentStoreStub()


@pytest.fixture
def content_store(ipfs):
    return ContentStoreClient(upload_url="http://ipfs.test/api/v0/add", transport=httpx.MockTransport(ipfs))


# ---------- API ----------
@pytest.fixture
def services():
    # routes read the clients from here so a test can swap them
    return {"blockchain": None, "content_store": None}


@pytest.fixture
def client(session_factory, services):
    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_blockchain] = lambda: services["blockchain"]
    app.dependency_overrides[get_content_store] = lambda: services["content_store"]
    app.state.session_factory = session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.session_factory = SessionLocal
