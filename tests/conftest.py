"""Shared fixtures: an isolated in-memory registry per test, no network."""

import os

from cryptography.fernet import Fernet

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_ADDRESS"] = "0xAdmin"
os.environ.setdefault("IDENTITY_SIGNING_KEY", Fernet.generate_key().decode())

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import medledger.models.ledger  # noqa: E402,F401  (registers tables on Base)
from medledger.api.routes import get_identity_service, get_registry  # noqa: E402
from medledger.main import app  # noqa: E402
from medledger.models.database import Base, build_engine, build_session_factory  # noqa: E402
from medledger.services.identity import IdentityService  # noqa: E402
from medledger.services.registry import Registry  # noqa: E402

from helpers import ADMIN, PATIENT, PROVIDER, FakeClock  # noqa: E402


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    reg = Registry(build_session_factory(engine), clock=clock)
    reg.initialize(ADMIN)
    yield reg
    engine.dispose()


@pytest.fixture
def consented(registry):
    """Admin registers PROVIDER, PATIENT registers and grants PROVIDER access."""
    registry.register_provider(ADMIN, PROVIDER)
    registry.register_patient(PATIENT)
    registry.authorize_provider(PATIENT, PROVIDER)
    return registry


@pytest.fixture
def identity():
    return IdentityService(key=Fernet.generate_key(), ttl=0)


@pytest.fixture
def auth(identity):
    def headers(address: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {identity.issue_token(address)}"}

    return headers


@pytest.fixture
def client(registry, identity):
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_identity_service] = lambda: identity
    yield TestClient(app)
    app.dependency_overrides.clear()
