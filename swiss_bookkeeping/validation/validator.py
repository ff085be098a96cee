"""
Swiss Compliance Validation

DESIGN DECISION: Validation is a pure function of the categorized
transactions. No storage, no clock, no external calls.

Each transaction is checked independently:
- INVALID_ACCOUNT (HIGH): account number is not an integer in 1000-9999
- DATE_FORMAT (MEDIUM): date does not have the YYYY-MM-DD shape
- CATEGORIZATION_UNCERTAINTY (warning): confidence below the threshold

COMPLIANT COUNT:
With GLOBAL accumulation (the default) a transaction is counted as
compliant only if the batch-wide violation list is still empty after it
was checked. The first violation therefore stops the count for every
later transaction, however clean. PER_TRANSACTION looks only at the
transaction's own violations. Which one runs is a setting.

IMPORTANT: Validation NEVER fixes anything. It reports for human review.
"""

import re
from typing import Optional, Sequence

from swiss_bookkeeping.config import ComplianceAccumulation, get_settings
from swiss_bookkeeping.models.compliance import (
    ComplianceReport,
    ComplianceSummary,
    ComplianceViolation,
    ComplianceWarning,
    Severity,
    ViolationType,
    WarningType,
)
from swiss_bookkeeping.models.transaction import CategorizedTransaction

MIN_ACCOUNT_NUMBER = 1000
MAX_ACCOUNT_NUMBER = 9999

ISO_DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
ACCOUNT_NUMBER_PATTERN = re.compile(r"[0-9]+")


def is_valid_swiss_account_number(account_number: Optional[str]) -> bool:
    """True iff the account number is plain ASCII digits in 1000-9999."""
    if account_number is None:
        return False
    value = str(account_number).strip()
    # int() alone would also take "+1000", "1_000" and non-ASCII digits
    if ACCOUNT_NUMBER_PATTERN.fullmatch(value) is None:
        return False
    return MIN_ACCOUNT_NUMBER <= int(value) <= MAX_ACCOUNT_NUMBER


def is_valid_date_format(value: Optional[str]) -> bool:
    """Shape check only; 2024-13-45 passes."""
    return bool(value) and ISO_DATE_PATTERN.match(value) is not None


class ComplianceValidator:
    """
    Validates categorized transactions against Swiss bookkeeping rules.
    """

    def __init__(
        self,
        min_confidence: Optional[float] = None,
        accumulation: Optional[ComplianceAccumulation] = None,
    ):
        """
        Initialize validator.

        Args:
            min_confidence: Confidence below which a warning is raised.
                            Defaults to the configured threshold.
            accumulation: How compliant transactions are counted.
                          Defaults to the configured mode.
        """
        if min_confidence is None or accumulation is None:
            app_settings = get_settings().app
            if min_confidence is None:
                min_confidence = app_settings.min_categorization_confidence
            if accumulation is None:
                accumulation = app_settings.compliance_accumulation
        self._min_confidence = min_confidence
        self._accumulation = accumulation

    @property
    def accumulation(self) -> ComplianceAccumulation:
        return self._accumulation

    def _check_transaction(
        self,
        transaction: CategorizedTransaction,
    ) -> tuple[list[ComplianceViolation], list[ComplianceWarning]]:
        transaction_id = transaction.transaction_id
        violations = []
        warnings = []

        if not is_valid_swiss_account_number(transaction.account_number):
            violations.append(ComplianceViolation(
                transaction_id=transaction_id,
                type=ViolationType.INVALID_ACCOUNT,
                description=(
                    f"Account number {transaction.account_number} "
                    f"is not valid Swiss format"
                ),
                severity=Severity.HIGH,
                suggestion="Use Swiss standard account numbering (1000-9999)",
            ))

        if not is_valid_date_format(transaction.date):
            violations.append(ComplianceViolation(
                transaction_id=transaction_id,
                type=ViolationType.DATE_FORMAT,
                description="Date format is not ISO 8601 compliant",
                severity=Severity.MEDIUM,
                suggestion="Use YYYY-MM-DD format",
            ))

        if transaction.confidence < self._min_confidence:
            warnings.append(ComplianceWarning(
                transaction_id=transaction_id,
                type=WarningType.CATEGORIZATION_UNCERTAINTY,
                description=f"Low confidence categorization ({transaction.confidence})",
                suggestion="Manual review recommended",
            ))

        return violations, warnings

    def validate(
        self,
        transactions: Sequence[CategorizedTransaction],
    ) -> ComplianceReport:
        """
        Validate a batch of categorized transactions.

        An empty batch is vacuously compliant with a rate of 1.0.
        """
        violations: list[ComplianceViolation] = []
        warnings: list[ComplianceWarning] = []
        compliant_count = 0

        for transaction in transactions:
            own_violations, own_warnings = self._check_transaction(transaction)
            violations.extend(own_violations)
            warnings.extend(own_warnings)

            if self._accumulation == ComplianceAccumulation.PER_TRANSACTION:
                if not own_violations:
                    compliant_count += 1
            elif not violations:
                compliant_count += 1

        total = len(transactions)
        compliance_rate = compliant_count / total if total else 1.0

        return ComplianceReport(
            is_compliant=not violations,
            violations=violations,
            warnings=warnings,
            summary=ComplianceSummary(
                total_transactions=total,
                compliant_transactions=compliant_count,
                compliance_rate=compliance_rate,
            ),
        )

    def get_user_friendly_summary(self, report: ComplianceReport) -> str:
        """
        Short human-readable summary of a compliance report.
        """
        summary = report.summary
        if report.is_compliant and not report.warnings:
            return f"All {summary.total_transactions} transactions passed Swiss compliance checks."

        lines = [
            f"{summary.compliant_transactions} of {summary.total_transactions} "
            f"transactions compliant ({summary.compliance_rate:.0%})."
        ]
        if report.violations:
            lines.append(
                f"{len(report.violations)} violations "
                f"({report.high_severity_count} high severity):"
            )
            for violation in report.violations:
                lines.append(f"  - [{violation.severity.value}] {violation.description}")
        if report.warnings:
            lines.append(f"{len(report.warnings)} transactions need manual review.")
        return "\n".join(lines)
