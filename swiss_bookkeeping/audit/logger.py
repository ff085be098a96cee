"""
Audit Logger

DESIGN DECISION: Every stage of a run (chart, documents, classification,
compliance, export) emits an event tagged with the run's correlation ID,
so an auditor can replay how each ledger line was produced.

CRITICAL: A failing audit sink is logged and swallowed. Bookkeeping output
must never be lost because the audit store is down.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from swiss_bookkeeping.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from swiss_bookkeeping.services.storage import AuditStorageInterface


# JSON lines, one per event
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Writes each audit event twice: once as a structlog line, once into
    the audit storage backend that holds the run's record.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Where audit events are appended. Without one,
                    events only reach the structured log.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Emit the event to structlog, then append it to storage if configured.

        Returns False only when the storage append failed.
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_run_started(
        self,
        document_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.run_started(
            document_count=document_count,
            correlation_id=correlation_id,
        ))

    async def log_run_completed(
        self,
        transaction_count: int,
        compliance_rate: float,
        processing_time_ms: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.run_completed(
            transaction_count=transaction_count,
            compliance_rate=compliance_rate,
            processing_time_ms=processing_time_ms,
            correlation_id=correlation_id,
        ))

    async def log_run_failed(
        self,
        message: str,
        detail: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.run_failed(
            message=message,
            detail=detail,
            correlation_id=correlation_id,
        ))

    async def log_chart_loaded(
        self,
        file_name: str,
        account_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log chart of accounts load."""
        await self.log(AuditEventBuilder.chart_loaded(
            file_name=file_name,
            account_count=account_count,
            correlation_id=correlation_id,
        ))

    async def log_chart_rejected(
        self,
        file_name: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.chart_rejected(
            file_name=file_name,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_document_processed(
        self,
        file_name: str,
        document_type: str,
        transaction_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.document_processed(
            file_name=file_name,
            document_type=document_type,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    async def log_document_rejected(
        self,
        file_name: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log unsupported document rejection."""
        await self.log(AuditEventBuilder.document_rejected(
            file_name=file_name,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_extraction_failed(
        self,
        file_name: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_failed(
            file_name=file_name,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_classification_failed(
        self,
        transaction_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a classifier failure that fell back to the default rule."""
        await self.log(AuditEventBuilder.classification_failed(
            transaction_id=transaction_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_transactions_categorized(
        self,
        total: int,
        fallback_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transactions_categorized(
            total=total,
            fallback_count=fallback_count,
            correlation_id=correlation_id,
        ))

    async def log_compliance_validated(
        self,
        is_compliant: bool,
        violation_count: int,
        warning_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.compliance_validated(
            is_compliant=is_compliant,
            violation_count=violation_count,
            warning_count=warning_count,
            correlation_id=correlation_id,
        ))

    async def log_export_written(
        self,
        export_name: str,
        path: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.export_written(
            export_name=export_name,
            path=path,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """One per processing run; every event of the run carries it."""
    return uuid4()
