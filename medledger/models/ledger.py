"""
Persisted state of the record ledger.

Layout:
- a single admin identity, bound once
- a provider flag table (revocation clears the flag, rows are never deleted)
- a patient table with its consent table and append-only record list
- a durable event log of every committed state change
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from medledger.models.database import Base

ADDRESS_LENGTH = 128


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Registry configuration – holds the admin identity
# ---------------------------------------------------------------------------
class RegistryConfig(Base):
    __tablename__ = "registry_config"

    id = Column(Integer, primary_key=True, default=1)
    admin = Column(String(ADDRESS_LENGTH), nullable=False, comment="Immutable admin identity")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Provider – admin-controlled active flag
# ---------------------------------------------------------------------------
class Provider(Base):
    __tablename__ = "providers"

    address = Column(String(ADDRESS_LENGTH), primary_key=True)
    active = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


# ---------------------------------------------------------------------------
# Patient – self-registered identity owning a consent set and a ledger
# ---------------------------------------------------------------------------
class Patient(Base):
    __tablename__ = "patients"

    address = Column(String(ADDRESS_LENGTH), primary_key=True)
    registered = Column(Boolean, default=False, nullable=False)
    registered_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Consent – one flag per (patient, provider) pair, patient-controlled
# ---------------------------------------------------------------------------
class ProviderAuthorization(Base):
    __tablename__ = "provider_authorizations"

    patient = Column(String(ADDRESS_LENGTH), ForeignKey("patients.address"), primary_key=True)
    provider = Column(String(ADDRESS_LENGTH), primary_key=True)
    authorized = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


# ---------------------------------------------------------------------------
# Ledger record – immutable once appended
# ---------------------------------------------------------------------------
class LedgerRecord(Base):
    __tablename__ = "ledger_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    patient = Column(String(ADDRESS_LENGTH), ForeignKey("patients.address"), nullable=False)
    position = Column(Integer, nullable=False, comment="Zero-based index within the patient ledger")
    content_hash = Column(Text, nullable=False, comment="Opaque content reference, e.g. an IPFS CID")
    added_by = Column(String(ADDRESS_LENGTH), nullable=False)
    timestamp = Column(BigInteger, nullable=False, comment="Epoch seconds at append")

    __table_args__ = (
        UniqueConstraint("patient", "position", name="uq_ledger_patient_position"),
        Index("ix_ledger_patient", "patient"),
    )


# ---------------------------------------------------------------------------
# Event log – durable notification of each committed state change
# ---------------------------------------------------------------------------
class EventLog(Base):
    __tablename__ = "event_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False)
    payload = Column(JSON, nullable=False)
    timestamp = Column(BigInteger, nullable=False)

    __table_args__ = (Index("ix_event_log_name", "name"),)
