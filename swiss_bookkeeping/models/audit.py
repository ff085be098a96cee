"""
Audit Models for Swiss Bookkeeping

Two kinds of audit data live here:
1. AuditEvent - operational events emitted while a run executes
   (chart loaded, classifier failed, export written, ...)
2. AuditTrail - the per-transaction processing narrative that is exported
   alongside the ledger for reviewers and auditors

DESIGN DECISION: Audit data is append-only. We never delete or modify it.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from swiss_bookkeeping.models.transaction import (
    CategorizedTransaction,
    ExtractedTransaction,
)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the bookkeeping pipeline has its own event type.
    """
    # Run lifecycle
    RUN_STARTED = "run_started"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"

    # Inputs
    CHART_LOADED = "chart_loaded"
    CHART_REJECTED = "chart_rejected"
    DOCUMENT_PROCESSED = "document_processed"
    DOCUMENT_REJECTED = "document_rejected"
    EXTRACTION_FAILED = "extraction_failed"

    # Categorization
    CLASSIFICATION_FAILED = "classification_failed"
    TRANSACTIONS_CATEGORIZED = "transactions_categorized"

    # Compliance and export
    COMPLIANCE_VALIDATED = "compliance_validated"
    EXPORT_WRITTEN = "export_written"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


MAX_DESCRIPTION_LENGTH = 500


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action in a run creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about? (document name, transaction id, ...)
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None

    # Ties together all events of one processing run
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=MAX_DESCRIPTION_LENGTH)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    @field_validator('description', mode='before')
    @classmethod
    def truncate_description(cls, v):
        # Descriptions embed file names; an event must never fail to build
        if isinstance(v, str) and len(v) > MAX_DESCRIPTION_LENGTH:
            return v[:MAX_DESCRIPTION_LENGTH - 3] + "..."
        return v

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.chart_loaded("chart.csv", 42, correlation_id)
        event = AuditEventBuilder.classification_failed(txn_id, reason, correlation_id)
    """

    @staticmethod
    def run_started(
        document_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RUN_STARTED,
            entity_type="run",
            correlation_id=correlation_id,
            description=f"Processing started for {document_count} documents",
            details={"document_count": document_count},
        )

    @staticmethod
    def run_completed(
        transaction_count: int,
        compliance_rate: float,
        processing_time_ms: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RUN_COMPLETED,
            entity_type="run",
            correlation_id=correlation_id,
            description=(
                f"Processing completed: {transaction_count} transactions, "
                f"{compliance_rate:.1%} compliant"
            ),
            details={
                "transaction_count": transaction_count,
                "compliance_rate": compliance_rate,
                "processing_time_ms": processing_time_ms,
            },
        )

    @staticmethod
    def run_failed(
        message: str,
        detail: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RUN_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="run",
            correlation_id=correlation_id,
            description=f"Processing failed: {message}",
            error_message=detail,
        )

    @staticmethod
    def chart_loaded(
        file_name: str,
        account_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHART_LOADED,
            entity_type="chart",
            entity_id=file_name,
            correlation_id=correlation_id,
            description=f"Chart of accounts loaded with {account_count} accounts",
            details={"account_count": account_count},
        )

    @staticmethod
    def chart_rejected(
        file_name: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHART_REJECTED,
            severity=AuditSeverity.ERROR,
            entity_type="chart",
            entity_id=file_name,
            correlation_id=correlation_id,
            description="Chart of accounts could not be parsed",
            error_message=reason,
        )

    @staticmethod
    def document_processed(
        file_name: str,
        document_type: str,
        transaction_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_PROCESSED,
            entity_type="document",
            entity_id=file_name,
            correlation_id=correlation_id,
            description=f"Extracted {transaction_count} transactions from {document_type}",
            details={
                "document_type": document_type,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def document_rejected(
        file_name: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_REJECTED,
            severity=AuditSeverity.ERROR,
            entity_type="document",
            entity_id=file_name,
            correlation_id=correlation_id,
            description="Document format not supported",
            error_message=reason,
        )

    @staticmethod
    def extraction_failed(
        file_name: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            entity_id=file_name,
            correlation_id=correlation_id,
            description="Transaction extraction failed, document skipped",
            error_message=reason,
        )

    @staticmethod
    def classification_failed(
        transaction_id: str,
        reason: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLASSIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Classifier failed, default categorization applied",
            error_message=reason,
        )

    @staticmethod
    def transactions_categorized(
        total: int,
        fallback_count: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_CATEGORIZED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"Categorized {total} transactions ({fallback_count} by default rule)",
            details={
                "total": total,
                "fallback_count": fallback_count,
            },
        )

    @staticmethod
    def compliance_validated(
        is_compliant: bool,
        violation_count: int,
        warning_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMPLIANCE_VALIDATED,
            severity=AuditSeverity.INFO if is_compliant else AuditSeverity.WARNING,
            entity_type="batch",
            correlation_id=correlation_id,
            description=(
                "Swiss compliance check passed" if is_compliant
                else f"Swiss compliance check failed with {violation_count} violations"
            ),
            details={
                "violation_count": violation_count,
                "warning_count": warning_count,
            },
        )

    @staticmethod
    def export_written(
        export_name: str,
        path: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_WRITTEN,
            entity_type="export",
            entity_id=export_name,
            correlation_id=correlation_id,
            description=f"Exported {export_name}",
            details={"path": path},
        )



# =============================================================================
# AUDIT TRAIL (exported with the ledger)
# =============================================================================

class ProcessingStep(BaseModel):
    """One step in a transaction's processing narrative."""
    model_config = ConfigDict(frozen=True)

    step: str
    timestamp: datetime
    description: str
    result: str


class AuditTransactionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_transaction: ExtractedTransaction
    categorized_transaction: CategorizedTransaction
    processing_steps: list[ProcessingStep] = Field(default_factory=list)
    ai_decision_rationale: str


class SystemInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str
    processor: str
    ai_model: str


class AuditTrail(BaseModel):
    """Traceability record for every transaction of one run."""
    model_config = ConfigDict(frozen=True)

    processing_id: str
    timestamp: datetime
    transactions: list[AuditTransactionEntry] = Field(default_factory=list)
    system_info: SystemInfo
