import os

# Settings are read at import time, so point them at test values first
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")
os.environ.setdefault("SYNC_ON_STARTUP", "false")
os.environ.setdefault("SYNC_INTERVAL", "0")

import pytest
from fastapi.testclient import TestClient

from access_server.core.device_manager import DeviceManager
from access_server.core.device_registry import DeviceRegistry
from access_server.core.ipam import IPAMService
from access_server.database.session import create_db_engine, create_session_factory, init_db
from access_server.main import create_app

from tests.mocks import FakePeerGateway, InMemoryRegistry

ADMIN_TOKEN = "test-admin-secret"


@pytest.fixture()
def engine():
    engine = create_db_engine("sqlite+pysqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture()
def registry(session_factory):
    return DeviceRegistry(session_factory)


@pytest.fixture()
def memory_registry():
    return InMemoryRegistry()


@pytest.fixture()
def gateway():
    return FakePeerGateway()


@pytest.fixture()
def ipam():
    return IPAMService("10.0.0.0/24", gateway="10.0.0.1")


@pytest.fixture()
def manager(registry, gateway, ipam):
    return DeviceManager(registry=registry, gateway=gateway, ipam=ipam)


@pytest.fixture()
def client(manager):
    app = create_app(device_manager=manager)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def authed_client(client):
    response = client.post("/api/v1/session", headers={"X-Admin-Token": ADMIN_TOKEN})
    assert response.status_code == 200
    return client
