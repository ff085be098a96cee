"""
Transaction Categorization Stage

For each extracted transaction:
1. Build a prompt with the transaction and the chart of accounts
2. Ask the classifier for an account suggestion
3. Run the Swiss rule pipeline over the suggestion

CRITICAL: `categorize` NEVER raises for a single bad transaction.
Whatever goes wrong with one classifier call, that transaction gets the
default categorization (flagged for manual review) and the batch goes on.
Output has the same length and order as the input.

Classifier calls are awaited one at a time, in input order.
"""

from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

import structlog

from swiss_bookkeeping.agents.classifier import ClassifierPort
from swiss_bookkeeping.audit.logger import AuditLogger
from swiss_bookkeeping.categorization.rules import (
    SWISS_RULES,
    Rule,
    RuleOutcome,
    apply_rules,
)
from swiss_bookkeeping.models.transaction import (
    CategorizedTransaction,
    ChartOfAccounts,
    ClassificationFailure,
    ClassificationResult,
    ExtractedTransaction,
)

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORY = "Miscellaneous"
DEFAULT_INCOME_ACCOUNT = "4000"
DEFAULT_EXPENSE_ACCOUNT = "6000"
DEFAULT_CONFIDENCE = 0.1
DEFAULT_NOTES = "Default categorization - manual review required"
DEFAULT_RULE = "Default Rule"


class CategorizationError(Exception):
    """The classifier did not produce a usable categorization."""
    pass


def format_chart_of_accounts(chart: ChartOfAccounts) -> str:
    """Render the chart one line per account for the prompt."""
    lines = ["Accounts:"]
    for account in chart.accounts:
        lines.append(
            f"- {account.account_number}: {account.account_name} "
            f"({account.account_type.value})"
        )
    return "\n".join(lines)


def build_categorization_prompt(
    transaction: ExtractedTransaction,
    chart: ChartOfAccounts,
) -> str:
    """Build the classifier prompt for one transaction."""
    return f"""You are a Swiss accounting expert specializing in Swiss GAAP FER and tax regulations.
Categorize this transaction according to Swiss accounting standards.

Transaction Details:
- Date: {transaction.date}
- Amount: {transaction.amount} CHF
- Description: {transaction.description}
- Payee: {transaction.payee or 'Unknown'}
- Type: {'Income' if transaction.is_income else 'Expense'}
- Reference: {transaction.reference or 'None'}

Available Chart of Accounts:
{format_chart_of_accounts(chart)}

Swiss Accounting Rules to Consider:
1. VAT rates: Standard 7.7%, Reduced 2.5%, Special 3.7%
2. Account numbering: 1000-1999 Assets, 2000-2999 Liabilities, 3000-3999 Equity, 4000-4999 Revenue, 5000-9999 Expenses
3. Currency: CHF (Swiss Francs)
4. Fiscal year considerations
5. KMU (SME) accounting standards if applicable

Analyze the transaction and provide:
1. Best matching account from the chart
2. Confidence level (0-1)
3. VAT implications
4. Swiss GAAP category
5. Any compliance notes

Respond with ONLY a JSON object in this exact format:
{{
  "category": "Account Name",
  "accountNumber": "1000",
  "confidence": 0.95,
  "vatCode": "Standard",
  "vatRate": 7.7,
  "swissGaapCode": "Current Assets",
  "notes": "Explanation of categorization",
  "appliedRules": ["Rule 1", "Rule 2"]
}}

Consider Swiss-specific scenarios:
- Meals and entertainment (50% deductible)
- Vehicle expenses (private use adjustments)
- Insurance premiums (AHV/ALV/UVG)
- Depreciation schedules
- Cross-border transactions with EU
- Withholding tax implications"""


def default_categorization(transaction: ExtractedTransaction) -> CategorizedTransaction:
    """Categorization used when the classifier could not help."""
    return CategorizedTransaction(
        **transaction.to_extracted().model_dump(),
        suggested_category=DEFAULT_CATEGORY,
        account_number=(
            DEFAULT_INCOME_ACCOUNT if transaction.is_income else DEFAULT_EXPENSE_ACCOUNT
        ),
        confidence=DEFAULT_CONFIDENCE,
        swiss_gaap_code="Other",
        vat_code="Standard",
        vat_rate=Decimal("7.7"),
        notes=DEFAULT_NOTES,
        processing_rules=[DEFAULT_RULE],
    )


class TransactionCategorizer:
    """
    Categorizes transactions via the classifier port plus Swiss rules.

    BOUNDARIES:
    - Reads its inputs, never modifies them
    - The classifier call is the only external call
    - Malformed classifier answers never reach a CategorizedTransaction
    """

    def __init__(
        self,
        classifier: ClassifierPort,
        audit_logger: Optional[AuditLogger] = None,
        rules: Sequence[Rule] = SWISS_RULES,
    ):
        self._classifier = classifier
        self._audit_logger = audit_logger
        self._rules = tuple(rules)

    async def categorize(
        self,
        transactions: Sequence[ExtractedTransaction],
        chart: ChartOfAccounts,
        correlation_id: Optional[UUID] = None,
    ) -> list[CategorizedTransaction]:
        """
        Categorize a batch of transactions.

        Returns a new list, same length and order as `transactions`.
        """
        logger.info(
            "categorization_started",
            transaction_count=len(transactions),
            account_count=len(chart.accounts),
        )

        categorized: list[CategorizedTransaction] = []
        fallback_count = 0

        for transaction in transactions:
            try:
                result = await self.categorize_transaction(transaction, chart)
            except Exception as e:
                fallback_count += 1
                logger.warning(
                    "categorization_fallback",
                    transaction_id=transaction.transaction_id,
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_classification_failed(
                        transaction_id=transaction.transaction_id,
                        reason=str(e),
                        correlation_id=correlation_id,
                    )
                result = default_categorization(transaction)
            categorized.append(result)

        if self._audit_logger:
            await self._audit_logger.log_transactions_categorized(
                total=len(categorized),
                fallback_count=fallback_count,
                correlation_id=correlation_id,
            )

        return categorized

    async def categorize_transaction(
        self,
        transaction: ExtractedTransaction,
        chart: ChartOfAccounts,
    ) -> CategorizedTransaction:
        """
        Categorize a single transaction.

        Raises:
            CategorizationError: If the classifier failed or answered
                with something that is not a ClassificationResult
        """
        prompt = build_categorization_prompt(transaction, chart)
        outcome = await self._classifier.ask(prompt)

        if isinstance(outcome, ClassificationFailure):
            raise CategorizationError(outcome.reason)
        if not isinstance(outcome, ClassificationResult):
            raise CategorizationError(
                f"Classifier returned {type(outcome).__name__}, expected ClassificationResult"
            )

        ruled = apply_rules(
            transaction,
            RuleOutcome(
                swiss_gaap_code=outcome.swiss_gaap_code,
                vat_code=outcome.vat_code,
                vat_rate=outcome.vat_rate,
                notes=outcome.notes,
            ),
            self._rules,
        )

        return CategorizedTransaction(
            **transaction.to_extracted().model_dump(),
            suggested_category=outcome.category,
            account_number=outcome.account_number,
            confidence=outcome.confidence,
            swiss_gaap_code=ruled.swiss_gaap_code,
            vat_code=ruled.vat_code,
            vat_rate=ruled.vat_rate,
            notes=ruled.notes,
            processing_rules=list(ruled.applied_rules),
            depreciation_required=ruled.depreciation_required,
            withholding_tax_review=ruled.withholding_tax_review,
        )
