"""Tests for the transaction categorization stage."""

from decimal import Decimal

import pytest

from swiss_bookkeeping.categorization import (
    CategorizationError,
    TransactionCategorizer,
    build_categorization_prompt,
    default_categorization,
    format_chart_of_accounts,
)
from swiss_bookkeeping.models.audit import AuditEventType
from swiss_bookkeeping.models.transaction import ClassificationFailure

from conftest import FakeClassifier, make_result, make_transaction


class TestPrompt:

    def test_prompt_contains_transaction_and_chart(self, chart):
        transaction = make_transaction(payee=None, reference=None)
        prompt = build_categorization_prompt(transaction, chart)

        assert "Amount: 107.70 CHF" in prompt
        assert "Payee: Unknown" in prompt
        assert "Reference: None" in prompt
        assert "Type: Expense" in prompt
        assert "- 6500: Büromaterial (Expenses)" in prompt
        assert '"accountNumber": "1000"' in prompt

    def test_chart_listing(self, chart):
        listing = format_chart_of_accounts(chart)
        assert listing.splitlines()[0] == "Accounts:"
        assert len(listing.splitlines()) == len(chart.accounts) + 1


class TestDefaultCategorization:

    def test_expense_fallback(self):
        result = default_categorization(make_transaction(is_income=False))

        assert result.suggested_category == "Miscellaneous"
        assert result.account_number == "6000"
        assert result.confidence == 0.1
        assert result.vat_rate == Decimal("7.7")
        assert result.notes == "Default categorization - manual review required"
        assert result.processing_rules == ["Default Rule"]

    def test_income_fallback(self):
        assert default_categorization(make_transaction(is_income=True)).account_number == "4000"


class TestTransactionCategorizer:

    @pytest.mark.asyncio
    async def test_successful_categorization_applies_rules(self, chart):
        classifier = FakeClassifier([make_result(vat_rate=Decimal("0"), applied_rules=["Ignored"])])
        categorizer = TransactionCategorizer(classifier)

        [result] = await categorizer.categorize([make_transaction(description="Hotel Lugano")], chart)

        assert result.suggested_category == "Office Supplies"
        assert result.account_number == "6500"
        assert result.vat_rate == Decimal("3.7")
        assert result.vat_code == "Special"
        assert result.processing_rules == ["Swiss VAT Applied"]
        assert result.description == "Hotel Lugano"
        assert len(classifier.prompts) == 1

    @pytest.mark.asyncio
    async def test_output_keeps_length_and_order(self, chart):
        transactions = [
            make_transaction(description=f"Item {i}", reference=f"INV-{i}")
            for i in range(5)
        ]
        classifier = FakeClassifier(default=make_result())
        results = await TransactionCategorizer(classifier).categorize(transactions, chart)

        assert [r.reference for r in results] == [t.reference for t in transactions]

    @pytest.mark.asyncio
    async def test_failure_variant_gets_fallback(self, chart):
        classifier = FakeClassifier([ClassificationFailure(reason="garbage")])
        transaction = make_transaction(is_income=True)

        [result] = await TransactionCategorizer(classifier).categorize([transaction], chart)

        assert result == default_categorization(transaction)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", [
        {"category": "Rent", "accountNumber": "6000"},
        "Rent, 6000",
        42,
    ])
    async def test_malformed_answer_gets_fallback(self, chart, answer):
        """Test that an answer of the wrong type never reaches the ledger."""
        transaction = make_transaction()

        [result] = await TransactionCategorizer(FakeClassifier([answer])).categorize(
            [transaction], chart,
        )

        assert result == default_categorization(transaction)

    @pytest.mark.asyncio
    async def test_malformed_answer_raises_for_single_transaction(self, chart):
        categorizer = TransactionCategorizer(FakeClassifier([{"category": "Rent"}]))

        with pytest.raises(CategorizationError, match="dict"):
            await categorizer.categorize_transaction(make_transaction(), chart)

    @pytest.mark.asyncio
    async def test_exception_is_isolated_to_one_transaction(self, chart):
        classifier = FakeClassifier([
            make_result(),
            RuntimeError("connection reset"),
            make_result(category="Rent", account_number="6000"),
        ])
        transactions = [
            make_transaction(reference="A"),
            make_transaction(reference="B"),
            make_transaction(reference="C"),
        ]

        results = await TransactionCategorizer(classifier).categorize(transactions, chart)

        assert [r.suggested_category for r in results] == ["Office Supplies", "Miscellaneous", "Rent"]
        assert results[1].confidence == 0.1

    @pytest.mark.asyncio
    async def test_empty_batch(self, chart):
        classifier = FakeClassifier()
        assert await TransactionCategorizer(classifier).categorize([], chart) == []
        assert classifier.prompts == []

    @pytest.mark.asyncio
    async def test_inputs_are_not_modified(self, chart):
        transaction = make_transaction()
        before = transaction.model_dump()
        await TransactionCategorizer(FakeClassifier([make_result()])).categorize([transaction], chart)
        assert transaction.model_dump() == before

    @pytest.mark.asyncio
    async def test_fallbacks_are_audited(self, chart, audit_logger, audit_storage):
        classifier = FakeClassifier([RuntimeError("timeout"), make_result()])
        categorizer = TransactionCategorizer(classifier, audit_logger=audit_logger)

        await categorizer.categorize(
            [make_transaction(reference="A"), make_transaction(reference="B")], chart,
        )

        events = await audit_storage.get_recent_events()
        types = [e.event_type for e in reversed(events)]
        assert types == [
            AuditEventType.CLASSIFICATION_FAILED,
            AuditEventType.TRANSACTIONS_CATEGORIZED,
        ]
        assert events[0].details == {"total": 2, "fallback_count": 1}
