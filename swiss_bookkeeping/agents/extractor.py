"""
Transaction Extraction Agent

Reads the text of an invoice, receipt or bank statement and asks the model
to list the transactions in it. Used for text documents that cannot be
parsed deterministically (CSV bank statements are parsed without the LLM).

BOUNDARIES:
- The LLM only READS what is in the document text
- A response that does not parse is an ExtractionFailedError,
  never an empty "success"
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from swiss_bookkeeping.agents.gemini import GeminiAgent, extract_json_object
from swiss_bookkeeping.models.transaction import DocumentType, ExtractedTransaction


class ExtractionFailedError(Exception):
    """Failed to extract transactions from a document."""
    pass


class ExtractionResult(BaseModel):
    """Transactions found in one document plus document-level metadata."""

    transactions: list[ExtractedTransaction] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    language: str = "de"
    currency: str = "CHF"


class TransactionExtractor(ABC):
    """Port for pulling transactions out of document text."""

    @abstractmethod
    async def extract(
        self,
        document_text: str,
        document_type: DocumentType,
    ) -> ExtractionResult:
        """
        Extract transactions from document text.

        Raises:
            ExtractionFailedError: If nothing usable came back
        """
        pass


_INVOICE_PROMPT = """You are a Swiss accounting expert. Extract transaction data from this invoice text in JSON format.

Document text:
{document_text}

Extract the following information:
1. Date (YYYY-MM-DD format)
2. Amount (positive number)
3. Description/Service
4. Payee/Vendor name
5. Invoice number
6. Currency (default CHF)

Return JSON with this structure:
{{
  "transactions": [{{
    "date": "2024-01-15",
    "amount": 1200.50,
    "description": "Consulting services",
    "payee": "ABC Company",
    "reference": "INV-2024-001",
    "is_income": false
  }}],
  "confidence": 0.95,
  "language": "de",
  "currency": "CHF"
}}

Be precise with Swiss date formats and currency."""

_BANK_STATEMENT_PROMPT = """You are a Swiss banking expert. Extract all transactions from this bank statement text in JSON format.

Document text:
{document_text}

Extract each transaction with:
1. Date (YYYY-MM-DD format)
2. Amount (positive number)
3. Description
4. Reference number
5. Whether it is income (money in) or an expense (money out)

Return JSON with this structure:
{{
  "transactions": [{{
    "date": "2024-01-15",
    "amount": 1200.50,
    "description": "Salary payment",
    "reference": "BANK-REF123456",
    "is_income": true
  }}],
  "confidence": 0.95,
  "language": "de",
  "currency": "CHF"
}}

Handle Swiss banking formats and multiple currencies if present."""

_RECEIPT_PROMPT = """You are a Swiss retail expert. Extract transaction data from this receipt text in JSON format.

Document text:
{document_text}

Extract:
1. Date (YYYY-MM-DD format)
2. Total amount
3. Store/merchant name
4. Short description of what was bought

Return JSON with this structure:
{{
  "transactions": [{{
    "date": "2024-01-15",
    "amount": 45.80,
    "description": "Grocery shopping",
    "payee": "Migros",
    "reference": "REC-001",
    "is_income": false
  }}],
  "confidence": 0.95,
  "language": "de",
  "currency": "CHF"
}}

Handle Swiss retail formats and VAT calculations."""

EXTRACTION_PROMPTS = {
    DocumentType.INVOICE: _INVOICE_PROMPT,
    DocumentType.BANK_STATEMENT: _BANK_STATEMENT_PROMPT,
    DocumentType.RECEIPT: _RECEIPT_PROMPT,
}


def build_extraction_prompt(document_text: str, document_type: DocumentType) -> str:
    return EXTRACTION_PROMPTS[document_type].format(document_text=document_text)


def parse_extraction_response(text: str) -> ExtractionResult:
    """
    Parse the model's JSON answer.

    Raises:
        ExtractionFailedError: If the answer is not a valid extraction payload
    """
    data: Optional[dict] = extract_json_object(text)
    if data is None:
        raise ExtractionFailedError("Response did not contain a JSON object")
    try:
        return ExtractionResult.model_validate(data)
    except ValidationError as e:
        raise ExtractionFailedError(
            f"Response did not match extraction schema: {e.error_count()} errors"
        ) from e


class GeminiTransactionExtractor(GeminiAgent, TransactionExtractor):
    """Transaction extractor backed by Google Gemini."""

    max_output_tokens = 2048

    async def extract(
        self,
        document_text: str,
        document_type: DocumentType,
    ) -> ExtractionResult:
        prompt = build_extraction_prompt(document_text, document_type)
        try:
            text = await self._generate(prompt)
        except Exception as e:
            raise ExtractionFailedError(f"Gemini request failed: {e}") from e
        return parse_extraction_response(text)
