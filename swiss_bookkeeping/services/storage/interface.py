"""
Abstract Storage Interface

DESIGN DECISION: Audit events go through an abstract interface.
This allows us to:
1. Keep events in memory for a single run (default)
2. Use the same interface in tests
3. Swap in a database or log shipper later without touching the pipeline

The interface is intentionally simple - audit logs are append-only.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from swiss_bookkeeping.models.audit import AuditEvent


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully

        Raises:
            StorageError: If the event could not be written
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one processing run).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass
