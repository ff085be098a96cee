"""
Shared fixtures and test doubles.

No test talks to Gemini: the classifier and extractor ports are replaced by
the scripted fakes below.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from swiss_bookkeeping.agents import ClassifierPort, ExtractionFailedError, TransactionExtractor
from swiss_bookkeeping.agents.extractor import ExtractionResult
from swiss_bookkeeping.audit import AuditLogger
from swiss_bookkeeping.config import AppSettings
from swiss_bookkeeping.models.transaction import (
    Account,
    AccountType,
    CategorizedTransaction,
    ChartMetadata,
    ChartOfAccounts,
    ClassificationFailure,
    ClassificationResult,
    DocumentType,
    ExtractedTransaction,
)
from swiss_bookkeeping.services.storage import InMemoryAuditStorage

FIXED_NOW = datetime(2024, 3, 15, 10, 30, 0, tzinfo=timezone.utc)


class FakeClassifier(ClassifierPort):
    """Returns queued outcomes in order; raises queued exceptions."""

    def __init__(self, outcomes=None, default=None):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.prompts: list[str] = []

    @property
    def model_name(self) -> str:
        return "fake-classifier"

    async def ask(self, prompt: str):
        self.prompts.append(prompt)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return ClassificationFailure(reason="no scripted answer")
        return outcome


class FakeExtractor(TransactionExtractor):
    """Extractor keyed by a marker string in the document text."""

    def __init__(self, transactions=None, fail_on: Optional[str] = None):
        self.transactions = list(transactions or [])
        self.fail_on = fail_on
        self.calls: list[tuple[str, DocumentType]] = []

    async def extract(self, document_text: str, document_type: DocumentType) -> ExtractionResult:
        self.calls.append((document_text, document_type))
        if self.fail_on and self.fail_on in document_text:
            raise ExtractionFailedError("unreadable document")
        return ExtractionResult(transactions=self.transactions, confidence=0.9)


class FakeGeminiResponse:
    def __init__(self, text: str):
        self.text = text


class FakeGeminiModel:
    """Stands in for genai.GenerativeModel."""

    model_name = "fake-gemini"

    def __init__(self, text: str):
        self.text = text
        self.prompts: list[str] = []

    async def generate_content_async(self, prompt: str):
        self.prompts.append(prompt)
        return FakeGeminiResponse(self.text)


def make_result(**overrides) -> ClassificationResult:
    data = {
        "category": "Office Supplies",
        "account_number": "6500",
        "confidence": 0.9,
        "vat_code": "Standard",
        "vat_rate": Decimal("7.7"),
        "swiss_gaap_code": "Operating Expenses",
        "notes": "Office material",
        "applied_rules": ["Classifier Rule"],
    }
    data.update(overrides)
    return ClassificationResult(**data)


def make_transaction(**overrides) -> ExtractedTransaction:
    data = {
        "date": "2024-03-01",
        "amount": Decimal("107.70"),
        "description": "Printer paper",
        "payee": "Office World",
        "reference": "INV-001",
        "is_income": False,
    }
    data.update(overrides)
    return ExtractedTransaction(**data)


def make_categorized(**overrides) -> CategorizedTransaction:
    data = {
        "date": "2024-03-01",
        "amount": Decimal("107.70"),
        "description": "Printer paper",
        "payee": "Office World",
        "reference": "INV-001",
        "is_income": False,
        "suggested_category": "Office Supplies",
        "account_number": "6500",
        "confidence": 0.9,
        "swiss_gaap_code": "Operating Expenses",
        "vat_code": "Standard",
        "vat_rate": Decimal("7.7"),
        "notes": "Office material",
        "processing_rules": ["Swiss VAT Applied"],
    }
    data.update(overrides)
    return CategorizedTransaction(**data)


@pytest.fixture
def chart() -> ChartOfAccounts:
    return ChartOfAccounts(
        accounts=[
            Account(account_number="1000", account_name="Kasse", account_type=AccountType.ASSETS),
            Account(account_number="3200", account_name="Warenertrag", account_type=AccountType.REVENUE),
            Account(account_number="4000", account_name="Dienstleistungsertrag", account_type=AccountType.REVENUE),
            Account(account_number="6000", account_name="Raumaufwand", account_type=AccountType.EXPENSES),
            Account(account_number="6500", account_name="Büromaterial", account_type=AccountType.EXPENSES),
        ],
        metadata=ChartMetadata(year=2024, company="Muster AG"),
    )


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        supported_document_formats="csv,txt",
        currency="CHF",
        chart_standard="Swiss GAAP",
        company_name="Muster AG",
        fiscal_year=2024,
        min_categorization_confidence=0.7,
    )


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


CHART_CSV = (
    "Account Number,Account Name,Account Type,Parent Account\n"
    "1000,Kasse,Assets,\n"
    "1500,Maschinen,Assets,\n"
    "4000,Dienstleistungsertrag,Revenue,\n"
    "6000,Raumaufwand,Expenses,\n"
    "6500,Büromaterial,Expenses,6000\n"
)

BANK_STATEMENT_CSV = (
    "Date,Description,Amount,Reference\n"
    "2024-03-01,Customer payment,1500.00,BANK-001\n"
    "2024-03-02,Office rent,-2'400.00,BANK-002\n"
    "2024-03-03,Zero fee,0.00,BANK-003\n"
    "2024-03-04,Broken row,abc,BANK-004\n"
)
