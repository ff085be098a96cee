"""
CSV Export

Renders a processing run as four CSV documents:
1. General ledger (one booking line per transaction)
2. VAT / tax report
3. Compliance report (summary, violations, warnings)
4. Audit trail (run metadata plus per-transaction narrative)

DESIGN DECISION: Every row goes through csv.writer. Fields containing a
comma, a quote or a newline are quoted with internal quotes doubled, so
any value round-trips through csv.reader unchanged.

Files are written UTF-8 with a byte-order mark so spreadsheet tools show
umlauts and accents correctly.

VAT is computed on the VAT-inclusive gross amount:
    vat = amount * rate / (100 + rate)
"""

import csv
import io
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict

from swiss_bookkeeping.models.audit import AuditTrail
from swiss_bookkeeping.models.compliance import ComplianceReport
from swiss_bookkeeping.models.transaction import CategorizedTransaction

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")

GENERAL_LEDGER_HEADERS = [
    "Date",
    "Account Number",
    "Account Name",
    "Description",
    "Payee",
    "Reference",
    "Debit Amount",
    "Credit Amount",
    "Currency",
    "VAT Code",
    "VAT Rate",
    "VAT Amount",
    "Swiss GAAP Code",
    "Document Type",
    "Confidence",
    "Processing Notes",
]

TAX_REPORT_HEADERS = [
    "Period",
    "Transaction Date",
    "VAT Code",
    "VAT Rate (%)",
    "Net Amount",
    "VAT Amount",
    "Gross Amount",
    "Supplier/Customer",
    "Description",
    "Document Reference",
    "Account Number",
    "Deductible",
    "Tax Period",
]

AUDIT_DETAIL_HEADERS = [
    "Transaction Date",
    "Original Description",
    "Final Category",
    "Account Number",
    "Amount",
    "Confidence",
    "Processing Steps",
    "AI Rationale",
]


class AccountingExport(BaseModel):
    """Paths of the four files written for one run."""
    model_config = ConfigDict(frozen=True)

    general_ledger: str
    tax_report: str
    compliance_report: str
    audit_trail: str


# =============================================================================
# DERIVED VALUES
# =============================================================================

def calculate_vat_amount(amount: Decimal, vat_rate: Optional[Decimal]) -> Decimal:
    """VAT contained in a VAT-inclusive amount. Not rounded."""
    rate = Decimal(vat_rate or 0)
    return amount * rate / (Decimal(100) + rate)


def format_money(value: Decimal) -> str:
    return str(Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))


def tax_period(date: str) -> str:
    """
    Quarter a transaction belongs to, e.g. "2024-Q2".

    Returns "" when the date cannot be read.
    """
    try:
        parsed = datetime.strptime(date, "%Y-%m-%d")
    except (TypeError, ValueError):
        return ""
    quarter = (parsed.month + 2) // 3
    return f"{parsed.year}-Q{quarter}"


def is_vat_deductible(transaction: CategorizedTransaction) -> bool:
    """Input VAT on expenses with a positive rate can be reclaimed."""
    return not transaction.is_income and bool(transaction.vat_rate and transaction.vat_rate > 0)


def document_type_for_reference(reference: Optional[str]) -> str:
    reference = reference or ""
    if "INV" in reference:
        return "Invoice"
    if "REC" in reference:
        return "Receipt"
    if "BANK" in reference:
        return "Bank Statement"
    return "Unknown"


def _rate_text(vat_rate: Optional[Decimal], default: str) -> str:
    return str(vat_rate) if vat_rate is not None else default


class CsvFormatter:
    """
    Formats categorized transactions, compliance reports and audit trails.

    Formatting methods are pure and return the CSV text; only the export
    methods touch the filesystem.
    """

    def __init__(
        self,
        currency: str = "CHF",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._currency = currency
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def _render(rows: Iterable[list]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerows(rows)
        return buffer.getvalue()

    def format_general_ledger(self, transactions: list[CategorizedTransaction]) -> str:
        """One booking line per transaction; expenses are debits."""
        logger.debug("formatting_general_ledger", transaction_count=len(transactions))

        rows = [GENERAL_LEDGER_HEADERS]
        for t in transactions:
            amount = format_money(t.amount)
            is_debit = not t.is_income
            rows.append([
                t.date,
                t.account_number,
                t.suggested_category,
                t.description,
                t.payee or "",
                t.reference or "",
                amount if is_debit else "0.00",
                "0.00" if is_debit else amount,
                self._currency,
                t.vat_code or "",
                _rate_text(t.vat_rate, "0"),
                format_money(calculate_vat_amount(t.amount, t.vat_rate)),
                t.swiss_gaap_code or "",
                document_type_for_reference(t.reference),
                f"{t.confidence:.2f}",
                t.notes,
            ])
        return self._render(rows)

    def format_tax_report(self, transactions: list[CategorizedTransaction]) -> str:
        """
        VAT report.

        A missing VAT code or rate is shown as Standard / 7.7, while the
        VAT amount is computed on the rate actually recorded.
        """
        logger.debug("formatting_tax_report", transaction_count=len(transactions))

        rows = [TAX_REPORT_HEADERS]
        for t in transactions:
            vat_amount = calculate_vat_amount(t.amount, t.vat_rate)
            period = tax_period(t.date)
            rows.append([
                period,
                t.date,
                t.vat_code or "Standard",
                _rate_text(t.vat_rate, "7.7"),
                format_money(t.amount - vat_amount),
                format_money(vat_amount),
                format_money(t.amount),
                t.payee or "",
                t.description,
                t.reference or "",
                t.account_number,
                "Yes" if is_vat_deductible(t) else "No",
                period,
            ])
        return self._render(rows)

    def format_compliance_report(self, report: ComplianceReport) -> str:
        summary = report.summary
        rows = [
            ["Swiss Accounting Compliance Report"],
            [],
            ["Summary"],
            ["Metric", "Value"],
            ["Total Transactions", str(summary.total_transactions)],
            ["Compliant Transactions", str(summary.compliant_transactions)],
            ["Compliance Rate", f"{summary.compliance_rate * 100:.2f}%"],
            ["Overall Compliance", "PASSED" if report.is_compliant else "FAILED"],
            [],
        ]

        if report.violations:
            rows.append(["Violations"])
            rows.append(["Transaction ID", "Type", "Severity", "Description", "Suggestion"])
            for v in report.violations:
                rows.append([
                    v.transaction_id,
                    v.type.value,
                    v.severity.value,
                    v.description,
                    v.suggestion,
                ])
            rows.append([])

        if report.warnings:
            rows.append(["Warnings"])
            rows.append(["Transaction ID", "Type", "Description", "Suggestion"])
            for w in report.warnings:
                rows.append([w.transaction_id, w.type.value, w.description, w.suggestion])

        return self._render(rows)

    def format_audit_trail(self, trail: AuditTrail) -> str:
        rows = [
            ["Swiss Accounting Audit Trail"],
            [],
            ["Processing Information"],
            ["Field", "Value"],
            ["Processing ID", trail.processing_id],
            ["Timestamp", trail.timestamp.isoformat()],
            ["System Version", trail.system_info.version],
            ["Processor", trail.system_info.processor],
            ["AI Model", trail.system_info.ai_model],
            [],
            ["Transaction Processing Details"],
            AUDIT_DETAIL_HEADERS,
        ]

        for entry in trail.transactions:
            original = entry.original_transaction
            categorized = entry.categorized_transaction
            steps = " | ".join(
                f"{step.step}: {step.result}" for step in entry.processing_steps
            )
            rows.append([
                original.date,
                original.description,
                categorized.suggested_category,
                categorized.account_number,
                format_money(original.amount),
                f"{categorized.confidence:.2f}",
                steps,
                entry.ai_decision_rationale,
            ])

        return self._render(rows)

    # =========================================================================
    # FILE EXPORT
    # =========================================================================

    def export_to_file(
        self,
        content: str,
        file_name: str,
        output_dir: Union[str, Path],
    ) -> str:
        """Write `content` with a leading BOM and return the file path."""
        directory = Path(output_dir)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / file_name
        with open(path, "w", encoding="utf-8-sig", newline="") as f:
            f.write(content)
        logger.info("csv_exported", path=str(path))
        return str(path)

    def export_accounting_package(
        self,
        transactions: list[CategorizedTransaction],
        report: ComplianceReport,
        trail: AuditTrail,
        output_dir: Union[str, Path],
    ) -> AccountingExport:
        """Write all four documents with a shared timestamp in the file names."""
        stamp = self._clock().strftime("%Y-%m-%dT%H-%M-%S")

        return AccountingExport(
            general_ledger=self.export_to_file(
                self.format_general_ledger(transactions),
                f"general-ledger-{stamp}.csv",
                output_dir,
            ),
            tax_report=self.export_to_file(
                self.format_tax_report(transactions),
                f"tax-report-{stamp}.csv",
                output_dir,
            ),
            compliance_report=self.export_to_file(
                self.format_compliance_report(report),
                f"compliance-report-{stamp}.csv",
                output_dir,
            ),
            audit_trail=self.export_to_file(
                self.format_audit_trail(trail),
                f"audit-trail-{stamp}.csv",
                output_dir,
            ),
        )
