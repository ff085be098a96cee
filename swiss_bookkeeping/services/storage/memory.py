"""In-memory audit storage, used for single runs and in tests."""

from uuid import UUID

from swiss_bookkeeping.models.audit import AuditEvent
from swiss_bookkeeping.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)


class InMemoryAuditStorage(AuditStorageInterface):
    """
    Keeps audit events in a list.

    Events are only ever appended; readers get copies.
    """

    def __init__(self, max_events: int = 10000):
        self._events: list[AuditEvent] = []
        self._max_events = max_events

    async def append_event(self, event: AuditEvent) -> bool:
        if len(self._events) >= self._max_events:
            raise StorageError(
                f"Audit log is full ({self._max_events} events)"
            )
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]

    @property
    def size(self) -> int:
        return len(self._events)
