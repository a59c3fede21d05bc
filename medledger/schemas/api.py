"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from medledger.models.ledger import ADDRESS_LENGTH


# ---------------------------------------------------------------------------
# Identity administration
# ---------------------------------------------------------------------------

class ProviderRequest(BaseModel):
    address: str = Field(..., min_length=1, max_length=ADDRESS_LENGTH)


class ProviderStatus(BaseModel):
    address: str
    is_provider: bool


class AdminResponse(BaseModel):
    admin: str


# ---------------------------------------------------------------------------
# Patients and consent
# ---------------------------------------------------------------------------

class PatientStatus(BaseModel):
    address: str
    registered: bool


class ConsentResponse(BaseModel):
    patient: str
    provider: str
    authorized: bool


# ---------------------------------------------------------------------------
# Record ledger
# ---------------------------------------------------------------------------

class RecordCreate(BaseModel):
    """Content hashes are opaque: no format or uniqueness check."""
    content_hash: str


class RecordCreated(BaseModel):
    patient: str
    index: int
    content_hash: str


class RecordCountResponse(BaseModel):
    patient: str
    count: int


class RecordResponse(BaseModel):
    patient: str
    index: int
    content_hash: str
    added_by: str
    timestamp: int


# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------

class EventResponse(BaseModel):
    sequence: int
    name: str
    payload: dict[str, Any]
    timestamp: int


# ---------------------------------------------------------------------------
# Health check / errors
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    database: str = "connected"


class ErrorResponse(BaseModel):
    error: str
    detail: str
