"""
Audit Trail Builder

Reconstructs, for every categorized transaction, the steps it went through
and a plain-language rationale for the categorization. The trail is
exported next to the ledger so a reviewer can see why each booking was made.

The builder is pure apart from the clock, which is injectable for tests.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from swiss_bookkeeping import __version__
from swiss_bookkeeping.models.audit import (
    AuditTrail,
    AuditTransactionEntry,
    ProcessingStep,
    SystemInfo,
)
from swiss_bookkeeping.models.transaction import CategorizedTransaction

PROCESSOR_NAME = "Swiss Accounting Intelligence"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_rationale(transaction: CategorizedTransaction) -> str:
    """Explain in one sentence how a transaction ended up where it is."""
    rules = ", ".join(transaction.processing_rules)
    vat_rate = transaction.vat_rate if transaction.vat_rate is not None else "n/a"
    return (
        f"Transaction categorized as {transaction.suggested_category} "
        f"based on {rules}. VAT rate: {vat_rate}%. "
        f"Confidence: {transaction.confidence}"
    )


class AuditTrailBuilder:
    """Builds the exported audit trail for one processing run."""

    def __init__(
        self,
        ai_model: str = "unknown",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._ai_model = ai_model
        self._clock = clock or _utc_now

    def _steps_for(self, transaction: CategorizedTransaction) -> list[ProcessingStep]:
        now = self._clock()
        return [
            ProcessingStep(
                step="Document Processing",
                timestamp=now,
                description="Transaction extracted from document",
                result="Success",
            ),
            ProcessingStep(
                step="AI Categorization",
                timestamp=now,
                description="AI-powered categorization applied",
                result=f"Category: {transaction.suggested_category}",
            ),
            ProcessingStep(
                step="Swiss Compliance Check",
                timestamp=now,
                description="Swiss accounting rules validated",
                result=f"Confidence: {transaction.confidence}",
            ),
        ]

    def build_trail(
        self,
        transactions: list[CategorizedTransaction],
    ) -> AuditTrail:
        """
        Build the audit trail.

        One entry per transaction, in input order. The processing id is
        derived from the clock in milliseconds, so two trails built within
        the same millisecond share an id.
        """
        timestamp = self._clock()
        entries = [
            AuditTransactionEntry(
                original_transaction=transaction.to_extracted(),
                categorized_transaction=transaction,
                processing_steps=self._steps_for(transaction),
                ai_decision_rationale=build_rationale(transaction),
            )
            for transaction in transactions
        ]

        return AuditTrail(
            processing_id=f"audit-{int(timestamp.timestamp() * 1000)}",
            timestamp=timestamp,
            transactions=entries,
            system_info=SystemInfo(
                version=__version__,
                processor=PROCESSOR_NAME,
                ai_model=self._ai_model,
            ),
        )
