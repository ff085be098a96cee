"""Audit logging and audit trail package."""

from swiss_bookkeeping.audit.logger import AuditLogger, create_correlation_id
from swiss_bookkeeping.audit.trail import AuditTrailBuilder, build_rationale

__all__ = [
    "AuditLogger",
    "AuditTrailBuilder",
    "build_rationale",
    "create_correlation_id",
]
