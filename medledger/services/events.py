"""Notification log and in-process subscribers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from medledger.models.ledger import EventLog
from medledger.services.validation import validate_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    sequence: int
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0


Subscriber = Callable[[Event], None]


def _to_event(entry: EventLog) -> Event:
    return Event(
        sequence=entry.id,
        name=entry.name,
        payload=dict(entry.payload),
        timestamp=entry.timestamp,
    )


class EventBus:
    """
    Writes events to the durable log inside the caller's transaction and
    fans them out to subscribers once that transaction has committed.

    Delivery is fire-and-forget: a failing subscriber is logged and skipped.
    The registry publishes before releasing its lock, so subscribers see
    events in commit order.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def record(self, db: Session, name: str, payload: dict[str, Any], timestamp: int) -> Event:
        errors = validate_event(name, payload)
        if errors:
            raise ValueError(f"Invalid {name} payload: {'; '.join(errors)}")
        entry = EventLog(name=name, payload=payload, timestamp=timestamp)
        db.add(entry)
        db.flush()
        return _to_event(entry)

    def publish(self, events: list[Event]) -> None:
        for event in events:
            logger.info("EVENT #%d: %s %s", event.sequence, event.name, event.payload)
            for callback in list(self._subscribers):
                try:
                    callback(event)
                except Exception:
                    logger.exception("Subscriber %r failed on %s", callback, event.name)


def list_events(
    db: Session,
    *,
    name: str | None = None,
    after: int = 0,
    limit: int = 100,
) -> list[Event]:
    """Committed events in commit order, optionally filtered by name."""
    query = select(EventLog).where(EventLog.id > after)
    if name:
        query = query.where(EventLog.name == name)
    query = query.order_by(EventLog.id).limit(limit)
    return [_to_event(entry) for entry in db.scalars(query)]
