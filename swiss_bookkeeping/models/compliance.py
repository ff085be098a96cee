"""
Compliance Models

The compliance report is derived purely from a list of categorized
transactions. Violations are hard rule breaches; warnings are things a
human should look at but that do not make the ledger non-compliant.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ViolationType(str, Enum):
    MISSING_VAT = "MISSING_VAT"
    INVALID_ACCOUNT = "INVALID_ACCOUNT"
    CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
    DATE_FORMAT = "DATE_FORMAT"
    AMOUNT_VALIDATION = "AMOUNT_VALIDATION"


class WarningType(str, Enum):
    UNUSUAL_AMOUNT = "UNUSUAL_AMOUNT"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    CATEGORIZATION_UNCERTAINTY = "CATEGORIZATION_UNCERTAINTY"


class Severity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ComplianceViolation(BaseModel):
    """A rule breach found on one transaction."""
    model_config = ConfigDict(frozen=True)

    transaction_id: str
    type: ViolationType
    description: str
    severity: Severity
    suggestion: str


class ComplianceWarning(BaseModel):
    """A soft finding that needs human review."""
    model_config = ConfigDict(frozen=True)

    transaction_id: str
    type: WarningType
    description: str
    suggestion: str


class ComplianceSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_transactions: int = Field(ge=0)
    compliant_transactions: int = Field(ge=0)
    compliance_rate: float = Field(
        ge=0.0,
        le=1.0,
        description="compliant / total; 1.0 for an empty batch"
    )


class ComplianceReport(BaseModel):
    """Result of validating a batch of categorized transactions."""
    model_config = ConfigDict(frozen=True)

    is_compliant: bool
    violations: list[ComplianceViolation] = Field(default_factory=list)
    warnings: list[ComplianceWarning] = Field(default_factory=list)
    summary: ComplianceSummary

    @property
    def high_severity_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == Severity.HIGH)
