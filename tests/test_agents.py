"""Tests for the Gemini-backed agents, using an injected fake model."""

import json
from decimal import Decimal

import pytest

from swiss_bookkeeping.agents import (
    ExtractionFailedError,
    GeminiClassifier,
    GeminiTransactionExtractor,
    parse_classification_response,
)
from swiss_bookkeeping.agents.extractor import build_extraction_prompt, parse_extraction_response
from swiss_bookkeeping.agents.gemini import extract_json_object
from swiss_bookkeeping.models.transaction import (
    ClassificationFailure,
    ClassificationResult,
    DocumentType,
)

from conftest import FakeGeminiModel

CLASSIFIER_JSON = json.dumps({
    "category": "Raumaufwand",
    "accountNumber": "6000",
    "confidence": 0.92,
    "vatCode": "Standard",
    "vatRate": 7.7,
    "swissGaapCode": "Operating Expenses",
    "notes": "Office rent",
    "appliedRules": ["Rent"],
})


class TestJsonExtraction:

    def test_finds_object_inside_prose(self):
        text = "Sure! Here you go:\n```json\n{\"a\": 1}\n```"
        assert extract_json_object(text) == {"a": 1}

    def test_returns_none_without_object(self):
        assert extract_json_object("no json here") is None
        assert extract_json_object("") is None

    def test_returns_none_for_broken_json(self):
        assert extract_json_object("{not: valid}") is None


class TestClassificationParsing:

    def test_valid_response(self):
        outcome = parse_classification_response(CLASSIFIER_JSON)
        assert isinstance(outcome, ClassificationResult)
        assert outcome.vat_rate == Decimal("7.7")

    def test_prose_only_is_failure(self):
        outcome = parse_classification_response("I think this is rent.")
        assert isinstance(outcome, ClassificationFailure)
        assert outcome.raw_response == "I think this is rent."

    def test_schema_mismatch_is_failure(self):
        outcome = parse_classification_response('{"category": "Rent"}')
        assert isinstance(outcome, ClassificationFailure)
        assert "schema" in outcome.reason


class TestGeminiClassifier:

    @pytest.mark.asyncio
    async def test_ask_returns_result(self):
        model = FakeGeminiModel(f"```json\n{CLASSIFIER_JSON}\n```")
        classifier = GeminiClassifier(model=model)

        outcome = await classifier.ask("classify this")

        assert isinstance(outcome, ClassificationResult)
        assert outcome.account_number == "6000"
        assert model.prompts == ["classify this"]
        assert classifier.model_name == "fake-gemini"

    @pytest.mark.asyncio
    async def test_garbage_answer_is_failure(self):
        classifier = GeminiClassifier(model=FakeGeminiModel("sorry, cannot help"))
        assert isinstance(await classifier.ask("classify this"), ClassificationFailure)


class TestExtraction:

    def test_prompt_per_document_type(self):
        invoice = build_extraction_prompt("Rechnung 42", DocumentType.INVOICE)
        receipt = build_extraction_prompt("Migros", DocumentType.RECEIPT)

        assert "Rechnung 42" in invoice
        assert "invoice" in invoice
        assert "receipt" in receipt
        assert '"is_income": false' in invoice

    def test_parse_valid_payload(self):
        result = parse_extraction_response(json.dumps({
            "transactions": [{
                "date": "2024-01-15",
                "amount": 1200.50,
                "description": "Consulting services",
                "payee": "ABC AG",
                "reference": "INV-2024-001",
                "is_income": False,
            }],
            "confidence": 0.95,
            "language": "de",
            "currency": "CHF",
        }))
        assert len(result.transactions) == 1
        assert result.transactions[0].amount == Decimal("1200.5")
        assert result.confidence == 0.95

    def test_parse_rejects_prose(self):
        with pytest.raises(ExtractionFailedError):
            parse_extraction_response("The invoice is for consulting.")

    def test_parse_rejects_invalid_transactions(self):
        with pytest.raises(ExtractionFailedError):
            parse_extraction_response('{"transactions": [{"date": "2024-01-15", "amount": -3}]}')

    @pytest.mark.asyncio
    async def test_gemini_extractor(self):
        model = FakeGeminiModel(
            '{"transactions": [{"date": "2024-02-01", "amount": 45.80, '
            '"description": "Groceries", "payee": "Migros", "is_income": false}], '
            '"confidence": 0.8}'
        )
        extractor = GeminiTransactionExtractor(model=model)

        result = await extractor.extract("Migros Total 45.80", DocumentType.RECEIPT)

        assert result.transactions[0].payee == "Migros"
        assert "Migros Total 45.80" in model.prompts[0]
