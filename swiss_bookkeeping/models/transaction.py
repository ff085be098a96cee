"""
Core Data Models for Swiss Bookkeeping

These models define the strict schemas for all data flowing through the
pipeline. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be immutable once created (every stage returns new records)
4. Support the audit trail

DESIGN DECISION: Money is Decimal, never float. Floats coming from JSON or
an LLM are converted through their string form so 7.7 stays 7.7.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


def _to_decimal(value):
    """Convert floats through str() so binary noise never reaches the ledger."""
    if isinstance(value, float):
        return Decimal(str(value))
    return value


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Swiss chart of accounts top-level account classes."""
    ASSETS = "Assets"
    LIABILITIES = "Liabilities"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSES = "Expenses"


class AccountingStandard(str, Enum):
    """Accounting framework a chart of accounts follows."""
    SWISS_GAAP = "Swiss GAAP"
    KMU = "KMU"
    CUSTOM = "Custom"


class DocumentType(str, Enum):
    """
    Document types we accept.

    The type decides which extraction prompt is used.
    """
    INVOICE = "invoice"
    RECEIPT = "receipt"
    BANK_STATEMENT = "bank_statement"


# =============================================================================
# EXTRACTION MODELS
# =============================================================================

class ExtractedTransaction(BaseModel):
    """
    A single transaction pulled out of a document.

    CRITICAL: This is PROPOSED data, not yet categorized or checked.
    The date is kept as the raw string the document contained so the
    compliance check can report malformed dates instead of crashing on them.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    date: str = Field(
        ...,
        description="Transaction date, expected as YYYY-MM-DD"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Gross amount in CHF (always positive)"
    )
    description: str = Field(
        ...,
        description="Description of the transaction"
    )
    payee: Optional[str] = None
    account: Optional[str] = None
    reference: Optional[str] = Field(
        default=None,
        description="Invoice / receipt / bank reference"
    )
    category: Optional[str] = None
    is_income: bool = Field(
        default=False,
        description="True for income, False for expenses"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v):
        return _to_decimal(v)

    @property
    def transaction_id(self) -> str:
        """
        Composite key used in compliance reports.

        Not unique: two transactions sharing date, amount and reference
        collide. The amount is normalized, so 100 and 100.00 give the same id.
        """
        amount = format(self.amount.normalize(), "f")
        return f"{self.date}-{amount}-{self.reference or ''}"

    def to_extracted(self) -> "ExtractedTransaction":
        """Return only the extraction fields (drops categorization data)."""
        return ExtractedTransaction.model_validate(
            self.model_dump(include=set(ExtractedTransaction.model_fields))
        )


class DocumentMetadata(BaseModel):
    """Metadata recorded for every processed document."""
    model_config = ConfigDict(frozen=True)

    file_name: str
    processed_at: datetime = Field(default_factory=datetime.utcnow)
    confidence: float = Field(ge=0.0, le=1.0)
    document_language: str = "de"
    currency: str = "CHF"


class ProcessedDocument(BaseModel):
    """Result of running one document through extraction."""
    model_config = ConfigDict(frozen=True)

    document_type: DocumentType
    transactions: list[ExtractedTransaction] = Field(default_factory=list)
    metadata: DocumentMetadata


# =============================================================================
# CHART OF ACCOUNTS
# =============================================================================

class Account(BaseModel):
    """One account from the chart of accounts."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    account_number: str = Field(
        ...,
        pattern=r"^[0-9]{4}$",
        description="Swiss 4-digit account number (1000-9999)"
    )
    account_name: str = Field(..., min_length=1)
    account_type: AccountType
    parent_account: Optional[str] = None
    is_active: bool = True


class ChartCategory(BaseModel):
    """A bookkeeping category backed by an account."""
    model_config = ConfigDict(frozen=True)

    category_id: str
    category_name: str
    account_number: str
    description: str = ""
    swiss_gaap_mapping: Optional[str] = None


class ChartMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    standard: AccountingStandard = AccountingStandard.SWISS_GAAP
    year: int
    company: str


class ChartOfAccounts(BaseModel):
    """
    The chart of accounts for one processing run.

    Read-only input to categorization; never persisted.
    """
    model_config = ConfigDict(frozen=True)

    accounts: list[Account] = Field(default_factory=list)
    categories: list[ChartCategory] = Field(default_factory=list)
    metadata: ChartMetadata

    def find_account(self, account_number: str) -> Optional[Account]:
        for account in self.accounts:
            if account.account_number == account_number:
                return account
        return None


# =============================================================================
# CLASSIFICATION
# =============================================================================

class ClassificationResult(BaseModel):
    """
    Structured answer from the classifier.

    Field names follow the camelCase JSON the model is asked to return
    (accountNumber, vatRate, ...). Anything that does not validate against
    this schema is treated as a failed classification.
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    category: str = Field(..., min_length=1)
    account_number: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    vat_code: Optional[str] = None
    vat_rate: Optional[Decimal] = Field(default=None, ge=0)
    swiss_gaap_code: Optional[str] = None
    notes: str = ""
    applied_rules: list[str] = Field(default_factory=list)

    @field_validator('account_number', mode='before')
    @classmethod
    def coerce_account_number(cls, v):
        # Models like to answer 6000 instead of "6000"
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('vat_rate', mode='before')
    @classmethod
    def coerce_vat_rate(cls, v):
        return _to_decimal(v)

    @field_validator('notes', mode='before')
    @classmethod
    def none_notes_to_empty(cls, v):
        return v or ""


class ClassificationFailure(BaseModel):
    """Explicit failure variant returned by a classifier."""
    model_config = ConfigDict(frozen=True)

    reason: str
    raw_response: Optional[str] = None


ClassificationOutcome = Union[ClassificationResult, ClassificationFailure]


# =============================================================================
# CATEGORIZED TRANSACTION
# =============================================================================

class CategorizedTransaction(ExtractedTransaction):
    """
    An extracted transaction enriched with accounting metadata.

    Created by the categorization stage and never mutated afterwards.
    The account number is deliberately NOT validated here: a bad account
    number is a compliance violation, not a schema error.
    """

    suggested_category: str
    account_number: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    swiss_gaap_code: Optional[str] = None
    vat_code: Optional[str] = None
    vat_rate: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="VAT rate in percent (7.7 means 7.7%)"
    )
    notes: str = ""
    processing_rules: list[str] = Field(default_factory=list)
    depreciation_required: bool = False
    withholding_tax_review: bool = False

    @field_validator('vat_rate', mode='before')
    @classmethod
    def coerce_vat_rate(cls, v):
        return _to_decimal(v)
