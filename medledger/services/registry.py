"""
Registry – the access-control and record-append state machine.

Three sub-protocols share one data model:
- identity management: the admin registers and revokes providers
- consent management: each patient grants and withdraws provider access
- record ledger: active, authorized providers append content hashes

Every public method is one atomic call. It runs under a registry-wide lock
inside a single transaction and either commits its changes together with
its notification, or raises a RegistryError and leaves no trace. Writes also
lock the admin config row (BEGIN IMMEDIATE on SQLite files), so workers in
separate processes sharing one database are serialized too. Subscribers are
notified before the lock is released, in commit order.

A caller is authorized for a patient when it is the patient itself or holds
the patient's grant. Reads only need that; appending additionally requires
the caller to be an active provider, so a revoked provider with a standing
grant can still read but can no longer write.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from medledger.errors import (
    AlreadyExists,
    InvalidArgument,
    NotFound,
    OutOfRange,
    RegistryError,
    Unauthorized,
)
from medledger.models.ledger import (
    ADDRESS_LENGTH,
    EventLog,
    LedgerRecord,
    Patient,
    Provider,
    ProviderAuthorization,
    RegistryConfig,
)
from medledger.services.events import Event, EventBus, list_events

logger = logging.getLogger(__name__)

_CONFIG_ID = 1


@dataclass(frozen=True)
class RecordEntry:
    """An appended record: what was attested, by whom, and when."""

    content_hash: str
    added_by: str
    timestamp: int


class _Transaction:
    """Session and pending notifications for a single registry call."""

    def __init__(self, db: Session, bus: EventBus, clock: Callable[[], float]):
        self.db = db
        self.events: list[Event] = []
        self._bus = bus
        self._clock = clock
        self._now: int | None = None

    def now(self) -> int:
        # never earlier than anything already logged
        if self._now is None:
            latest = self.db.scalar(select(func.max(EventLog.timestamp))) or 0
            self._now = max(int(self._clock()), latest)
        return self._now

    def emit(self, name: str, **payload: str) -> None:
        self.events.append(self._bus.record(self.db, name, payload, self.now()))


def _require_address(value: str, label: str) -> None:
    if not value:
        raise InvalidArgument(f"{label} address is required")
    if len(value) > ADDRESS_LENGTH:
        raise InvalidArgument(f"{label} address exceeds {ADDRESS_LENGTH} characters")


class Registry:
    """
    Single owner of ledger state.

    Usage:
        registry = Registry(SessionLocal)
        registry.initialize(admin)
        registry.register_provider(admin, provider)
        registry.register_patient(patient)
        registry.authorize_provider(patient, provider)
        registry.add_record(provider, patient, "bafy...")
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        events: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._clock = clock
        self.events = events or EventBus()

    @contextmanager
    def _transaction(self, operation: str, *, write: bool = False) -> Iterator[_Transaction]:
        with self._lock:
            db = self._session_factory()
            tx = _Transaction(db, self.events, self._clock)
            try:
                if write:
                    # row lock on the admin config orders writers across processes
                    db.get(RegistryConfig, _CONFIG_ID, with_for_update=True)
                yield tx
                db.commit()
            except RegistryError as exc:
                db.rollback()
                logger.warning("%s rejected: %s – %s", operation, exc.code, exc.reason)
                raise
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()
            self.events.publish(tx.events)

    # ------------------------------------------------------------------
    # Shared checks
    # ------------------------------------------------------------------

    @staticmethod
    def _admin(db: Session) -> str | None:
        config = db.get(RegistryConfig, _CONFIG_ID)
        return config.admin if config else None

    def _require_admin(self, db: Session, caller: str, action: str) -> None:
        admin = self._admin(db)
        if admin is None or caller != admin:
            raise Unauthorized(f"Only admin can {action}")

    @staticmethod
    def _is_active_provider(db: Session, address: str) -> bool:
        provider = db.get(Provider, address)
        return bool(provider and provider.active)

    @staticmethod
    def _registered_patient(db: Session, address: str) -> Patient | None:
        patient = db.get(Patient, address)
        return patient if patient and patient.registered else None

    @staticmethod
    def _is_authorized(db: Session, caller: str, patient: str) -> bool:
        if caller == patient:
            return True
        grant = db.get(ProviderAuthorization, (patient, caller))
        return bool(grant and grant.authorized)

    def _require_read_access(self, db: Session, caller: str, patient: str) -> None:
        if not self._is_authorized(db, caller, patient):
            raise Unauthorized(f"Caller is not authorized for patient {patient}")

    @staticmethod
    def _record_count(db: Session, patient: str) -> int:
        return db.scalar(
            select(func.count()).select_from(LedgerRecord).where(LedgerRecord.patient == patient)
        ) or 0

    # ------------------------------------------------------------------
    # Setup and public reads
    # ------------------------------------------------------------------

    def initialize(self, admin: str) -> None:
        """Bind the admin identity. Repeating with the same admin is a no-op."""
        _require_address(admin, "Admin")
        with self._transaction("initialize", write=True) as tx:
            current = self._admin(tx.db)
            if current is None:
                tx.db.add(RegistryConfig(id=_CONFIG_ID, admin=admin))
                logger.info("Registry initialized with admin %s", admin)
            elif current != admin:
                raise AlreadyExists(f"Admin is already bound to {current}")

    def admin(self) -> str:
        with self._transaction("admin") as tx:
            admin = self._admin(tx.db)
        if admin is None:
            raise NotFound("Registry has not been initialized")
        return admin

    def is_provider(self, address: str) -> bool:
        with self._transaction("is_provider") as tx:
            return self._is_active_provider(tx.db, address)

    def is_patient(self, address: str) -> bool:
        with self._transaction("is_patient") as tx:
            return self._registered_patient(tx.db, address) is not None

    def list_events(self, *, name: str | None = None, after: int = 0, limit: int = 100) -> list[Event]:
        with self._transaction("list_events") as tx:
            return list_events(tx.db, name=name, after=after, limit=limit)

    # ------------------------------------------------------------------
    # Identity management (admin)
    # ------------------------------------------------------------------

    def register_provider(self, caller: str, provider: str) -> None:
        with self._transaction("register_provider", write=True) as tx:
            self._require_admin(tx.db, caller, "register providers")
            _require_address(provider, "Provider")
            row = tx.db.get(Provider, provider)
            if row is not None and row.active:
                raise AlreadyExists(f"Provider {provider} is already registered")
            if row is None:
                row = Provider(address=provider)
                tx.db.add(row)
            row.active = True
            tx.emit("ProviderRegistered", provider=provider)

    def revoke_provider(self, caller: str, provider: str) -> None:
        with self._transaction("revoke_provider", write=True) as tx:
            self._require_admin(tx.db, caller, "revoke providers")
            row = tx.db.get(Provider, provider)
            if row is None or not row.active:
                raise NotFound(f"Provider {provider} is not registered")
            row.active = False
            tx.emit("ProviderRevoked", provider=provider)

    # ------------------------------------------------------------------
    # Patient registration and consent
    # ------------------------------------------------------------------

    def register_patient(self, caller: str) -> None:
        _require_address(caller, "Patient")
        with self._transaction("register_patient", write=True) as tx:
            row = tx.db.get(Patient, caller)
            if row is not None and row.registered:
                raise AlreadyExists(f"Patient {caller} is already registered")
            if row is None:
                row = Patient(address=caller)
                tx.db.add(row)
            row.registered = True
            tx.emit("PatientRegistered", patient=caller)

    def _set_grant(self, db: Session, patient: str, provider: str, authorized: bool) -> None:
        grant = db.get(ProviderAuthorization, (patient, provider))
        if grant is None:
            grant = ProviderAuthorization(patient=patient, provider=provider)
            db.add(grant)
        grant.authorized = authorized

    def authorize_provider(self, caller: str, provider: str) -> None:
        with self._transaction("authorize_provider", write=True) as tx:
            if self._registered_patient(tx.db, caller) is None:
                raise NotFound("Caller is not a registered patient")
            if not self._is_active_provider(tx.db, provider):
                raise InvalidArgument(f"{provider} is not an active provider")
            self._set_grant(tx.db, caller, provider, True)
            tx.emit("ProviderAuthorized", patient=caller, provider=provider)

    def revoke_provider_access(self, caller: str, provider: str) -> None:
        _require_address(provider, "Provider")
        with self._transaction("revoke_provider_access", write=True) as tx:
            if self._registered_patient(tx.db, caller) is None:
                raise NotFound("Caller is not a registered patient")
            self._set_grant(tx.db, caller, provider, False)
            tx.emit("ProviderAccessRevoked", patient=caller, provider=provider)

    # ------------------------------------------------------------------
    # Record ledger
    # ------------------------------------------------------------------

    def add_record(self, caller: str, patient: str, content_hash: str) -> int:
        """Append a record to the patient's ledger and return its index."""
        with self._transaction("add_record", write=True) as tx:
            if not self._is_active_provider(tx.db, caller):
                raise Unauthorized("Only active providers can add records")
            if self._registered_patient(tx.db, patient) is None:
                raise NotFound(f"Patient {patient} is not registered")
            if not self._is_authorized(tx.db, caller, patient):
                raise Unauthorized(f"Provider is not authorized for patient {patient}")
            position = self._record_count(tx.db, patient)
            tx.db.add(
                LedgerRecord(
                    patient=patient,
                    position=position,
                    content_hash=content_hash,
                    added_by=caller,
                    timestamp=tx.now(),
                )
            )
            tx.emit("RecordAdded", patient=patient, provider=caller, content_hash=content_hash)
        return position

    def get_record_count(self, caller: str, patient: str) -> int:
        with self._transaction("get_record_count") as tx:
            self._require_read_access(tx.db, caller, patient)
            return self._record_count(tx.db, patient)

    def get_record(self, caller: str, patient: str, index: int) -> RecordEntry:
        with self._transaction("get_record") as tx:
            self._require_read_access(tx.db, caller, patient)
            count = self._record_count(tx.db, patient)
            if index < 0 or index >= count:
                raise OutOfRange(f"Record index {index} out of range (count={count})")
            record = tx.db.scalars(
                select(LedgerRecord).where(
                    LedgerRecord.patient == patient, LedgerRecord.position == index
                )
            ).one()
            return RecordEntry(record.content_hash, record.added_by, record.timestamp)
