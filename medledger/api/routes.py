"""
FastAPI routes – the ledger's HTTP surface.

The caller identity always comes from the bearer token, never from the path
or body. Registry errors propagate to the handlers installed in main.py.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medledger.config import settings
from medledger.models.database import SessionLocal, get_db
from medledger.schemas.api import (
    AdminResponse,
    ConsentResponse,
    ErrorResponse,
    EventResponse,
    HealthResponse,
    PatientStatus,
    ProviderRequest,
    ProviderStatus,
    RecordCountResponse,
    RecordCreate,
    RecordCreated,
    RecordResponse,
)
from medledger.services.identity import IdentityError, IdentityService
from medledger.services.registry import Registry

logger = logging.getLogger(__name__)

router = APIRouter(
    responses={
        403: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "NotFound or OutOfRange"},
        409: {"model": ErrorResponse, "description": "AlreadyExists"},
        422: {"model": ErrorResponse, "description": "InvalidArgument"},
    }
)

security = HTTPBearer(auto_error=False)


@lru_cache(maxsize=None)
def get_registry() -> Registry:
    return Registry(SessionLocal)


@lru_cache(maxsize=None)
def get_identity_service() -> IdentityService:
    return IdentityService()


def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    identity: IdentityService = Depends(get_identity_service),
) -> str:
    """Resolve the bearer token to the caller's address."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        return identity.resolve(credentials.credentials)
    except IdentityError as exc:
        logger.warning("Rejected identity token: %s", exc)
        raise HTTPException(status_code=401, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Health check and public reads
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """Basic health endpoint – verifies DB connectivity."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "disconnected"
    return HealthResponse(
        status="healthy",
        environment=settings.ENVIRONMENT,
        database=db_status,
    )


@router.get("/admin", response_model=AdminResponse)
def get_admin(registry: Registry = Depends(get_registry)):
    return AdminResponse(admin=registry.admin())


@router.get("/providers/{address}", response_model=ProviderStatus)
def get_provider(address: str, registry: Registry = Depends(get_registry)):
    return ProviderStatus(address=address, is_provider=registry.is_provider(address))


@router.get("/patients/{address}", response_model=PatientStatus)
def get_patient(address: str, registry: Registry = Depends(get_registry)):
    return PatientStatus(address=address, registered=registry.is_patient(address))


@router.get("/events", response_model=list[EventResponse])
def get_events(
    name: str | None = None,
    after: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    registry: Registry = Depends(get_registry),
):
    """Committed notifications in commit order."""
    return [
        EventResponse(
            sequence=event.sequence,
            name=event.name,
            payload=event.payload,
            timestamp=event.timestamp,
        )
        for event in registry.list_events(name=name, after=after, limit=limit)
    ]


# ---------------------------------------------------------------------------
# Provider administration (admin only)
# ---------------------------------------------------------------------------

@router.post("/providers", response_model=ProviderStatus, status_code=201)
def register_provider(
    request: ProviderRequest,
    caller: str = Depends(get_caller),
    registry: Registry = Depends(get_registry),
):
    registry.register_provider(caller, request.address)
    return ProviderStatus(address=request.address, is_provider=True)


@router.delete("/providers/{address}", response_model=ProviderStatus)
def revoke_provider(
    address: str,
    caller: str = Depends(get_caller),
    registry: Registry = Depends(get_registry),
):
    registry.revoke_provider(caller, address)
    return ProviderStatus(address=address, is_provider=False)


# ---------------------------------------------------------------------------
# Patient self-registration and consent
# ---------------------------------------------------------------------------

@router.post("/patients", response_model=PatientStatus, status_code=201)
def register_patient(
    caller: str = Depends(get_caller),
    registry: Registry = Depends(get_registry),
):
    registry.register_patient(caller)
    return PatientStatus(address=caller, registered=True)


@router.put("/patients/me/authorizations/{provider}", response_model=ConsentResponse)
def authorize_provider(
    provider: str,
    caller: str = Depends(get_caller),
    registry: Registry = Depends(get_registry),
):
    registry.authorize_provider(caller, provider)
    return ConsentResponse(patient=caller, provider=provider, authorized=True)


@router.delete("/patients/me/authorizations/{provider}", response_model=ConsentResponse)
def revoke_provider_access(
    provider: str,
    caller: str = Depends(get_caller),
    registry: Registry = Depends(get_registry),
):
    registry.revoke_provider_access(caller, provider)
    return ConsentResponse(patient=caller, provider=provider, authorized=False)


# ---------------------------------------------------------------------------
# Record ledger (authorization-gated)
# ---------------------------------------------------------------------------

@router.post("/patients/{address}/records", response_model=RecordCreated, status_code=201)
def add_record(
    address: str,
    request: RecordCreate,
    caller: str = Depends(get_caller),
    registry: Registry = Depends(get_registry),
):
    index = registry.add_record(caller, address, request.content_hash)
    return RecordCreated(patient=address, index=index, content_hash=request.content_hash)


@router.get("/patients/{address}/records/count", response_model=RecordCountResponse)
def get_record_count(
    address: str,
    caller: str = Depends(get_caller),
    registry: Registry = Depends(get_registry),
):
    return RecordCountResponse(patient=address, count=registry.get_record_count(caller, address))


@router.get("/patients/{address}/records/{index}", response_model=RecordResponse)
def get_record(
    address: str,
    index: int,
    caller: str = Depends(get_caller),
    registry: Registry = Depends(get_registry),
):
    record = registry.get_record(caller, address, index)
    return RecordResponse(
        patient=address,
        index=index,
        content_hash=record.content_hash,
        added_by=record.added_by,
        timestamp=record.timestamp,
    )
