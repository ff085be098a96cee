"""
Data Models Package

This package contains all Pydantic models used in the Swiss Bookkeeping
pipeline. All data flowing between stages must conform to these schemas.
"""

from swiss_bookkeeping.models.transaction import (
    Account,
    AccountingStandard,
    AccountType,
    CategorizedTransaction,
    ChartCategory,
    ChartMetadata,
    ChartOfAccounts,
    ClassificationFailure,
    ClassificationOutcome,
    ClassificationResult,
    DocumentMetadata,
    DocumentType,
    ExtractedTransaction,
    ProcessedDocument,
)
from swiss_bookkeeping.models.compliance import (
    ComplianceReport,
    ComplianceSummary,
    ComplianceViolation,
    ComplianceWarning,
    Severity,
    ViolationType,
    WarningType,
)
from swiss_bookkeeping.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    AuditTrail,
    AuditTransactionEntry,
    ProcessingStep,
    SystemInfo,
)

__all__ = [
    # Transaction models
    "Account",
    "AccountingStandard",
    "AccountType",
    "CategorizedTransaction",
    "ChartCategory",
    "ChartMetadata",
    "ChartOfAccounts",
    "ClassificationFailure",
    "ClassificationOutcome",
    "ClassificationResult",
    "DocumentMetadata",
    "DocumentType",
    "ExtractedTransaction",
    "ProcessedDocument",
    # Compliance models
    "ComplianceReport",
    "ComplianceSummary",
    "ComplianceViolation",
    "ComplianceWarning",
    "Severity",
    "ViolationType",
    "WarningType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    "AuditTrail",
    "AuditTransactionEntry",
    "ProcessingStep",
    "SystemInfo",
]
