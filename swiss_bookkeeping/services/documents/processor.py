"""
Document Processing Service

Turns uploaded documents into ProcessedDocuments.

DESIGN DECISION: Two extraction paths:
1. CSV bank statements are parsed directly (date, description, amount,
   reference). No LLM, deterministic, confidence 0.95.
2. Every other text document goes through a TransactionExtractor
   (the Gemini implementation in production).

CRITICAL: We REJECT formats we cannot read. PDFs and images would need
OCR, which is not implemented. We never guess at binary content.
"""

import csv
import io
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from swiss_bookkeeping.agents.extractor import TransactionExtractor
from swiss_bookkeeping.config import AppSettings, get_settings
from swiss_bookkeeping.models.transaction import (
    DocumentMetadata,
    DocumentType,
    ExtractedTransaction,
    ProcessedDocument,
)

logger = structlog.get_logger(__name__)

CSV_STATEMENT_CONFIDENCE = 0.95


class DocumentProcessingError(Exception):
    """Base exception for document processing errors."""
    pass


class UnsupportedDocumentError(DocumentProcessingError):
    """Document format cannot be processed."""

    def __init__(self, file_name: str, extension: str, message: str):
        self.file_name = file_name
        self.extension = extension
        super().__init__(message)


def detect_document_type(file_name: str) -> DocumentType:
    """
    Infer the document type from the file name.

    Anything that is neither an invoice nor a bank statement is handled
    as a receipt.
    """
    name = file_name.lower()
    if "invoice" in name:
        return DocumentType.INVOICE
    if "receipt" in name:
        return DocumentType.RECEIPT
    if "bank" in name or "statement" in name:
        return DocumentType.BANK_STATEMENT
    return DocumentType.RECEIPT


def _parse_amount(value: str) -> Optional[Decimal]:
    """Parse a statement amount; Swiss thousands separators are dropped."""
    cleaned = value.strip().replace("'", "").replace("\u2019", "")
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_bank_statement_csv(content: str) -> list[ExtractedTransaction]:
    """
    Parse a CSV bank statement.

    Columns: date, description, amount, reference. The first row is a
    header. Negative amounts are expenses, positive amounts income; the
    stored amount is always the absolute value. Rows that cannot be read
    (missing columns, bad amount, zero amount) are skipped.
    """
    reader = csv.reader(io.StringIO(content.lstrip("\ufeff")))
    next(reader, None)

    transactions = []
    for line_number, row in enumerate(reader, start=2):
        if len(row) < 4:
            continue

        date = row[0].strip()
        description = row[1].strip()
        amount = _parse_amount(row[2])
        reference = row[3].strip() or None

        if not date or not description or amount is None or amount == 0:
            logger.debug("statement_row_skipped", line=line_number)
            continue

        try:
            transactions.append(ExtractedTransaction(
                date=date,
                description=description,
                amount=abs(amount),
                reference=reference,
                is_income=amount > 0,
                payee=description,
            ))
        except ValidationError as e:
            logger.warning(
                "statement_row_invalid",
                line=line_number,
                errors=e.error_count(),
            )

    return transactions


class DocumentProcessor:
    """
    Reads documents and extracts their transactions.

    IMPORTANT BOUNDARIES:
    1. This service ONLY extracts data, it does not categorize
    2. Unsupported formats are rejected loudly
    3. Extraction failures from the extractor propagate unchanged
    """

    def __init__(
        self,
        extractor: Optional[TransactionExtractor] = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize processor.

        Args:
            extractor: LLM extractor for non-CSV documents. If None, only
                       CSV bank statements can be processed.
            settings: Application settings (defaults to get_settings().app)
        """
        self._extractor = extractor
        self._settings = settings or get_settings().app

    def _check_format(self, file_name: str) -> str:
        extension = Path(file_name).suffix.lower().lstrip(".")
        if extension not in self._settings.supported_formats_list:
            raise UnsupportedDocumentError(
                file_name=file_name,
                extension=extension,
                message=(
                    f"Cannot process '{file_name}': OCR is not implemented, "
                    f"supported formats are {', '.join(self._settings.supported_formats_list)}"
                ),
            )
        return extension

    async def process_document(
        self,
        path: Union[str, Path],
        document_type: Optional[DocumentType] = None,
    ) -> ProcessedDocument:
        """
        Process a document from disk.

        Raises:
            UnsupportedDocumentError: Format cannot be read
            ExtractionFailedError: The extractor could not read the document
        """
        path = Path(path)
        self._check_format(path.name)
        return await self.process_content(path.read_bytes(), path.name, document_type)

    async def process_content(
        self,
        content: bytes,
        file_name: str,
        document_type: Optional[DocumentType] = None,
    ) -> ProcessedDocument:
        """
        Process an in-memory document.

        Raises:
            UnsupportedDocumentError: Format cannot be read, or a non-CSV
                document arrived and no extractor is configured
            ExtractionFailedError: The extractor could not read the document
        """
        extension = self._check_format(file_name)
        document_type = document_type or detect_document_type(file_name)
        text = content.decode("utf-8-sig", errors="replace")

        logger.info(
            "document_processing_started",
            file_name=file_name,
            document_type=document_type.value,
        )

        if document_type == DocumentType.BANK_STATEMENT and extension == "csv":
            return ProcessedDocument(
                document_type=document_type,
                transactions=parse_bank_statement_csv(text),
                metadata=DocumentMetadata(
                    file_name=file_name,
                    confidence=CSV_STATEMENT_CONFIDENCE,
                    currency=self._settings.currency,
                ),
            )

        if self._extractor is None:
            raise UnsupportedDocumentError(
                file_name=file_name,
                extension=extension,
                message=f"No transaction extractor configured for '{file_name}'",
            )

        result = await self._extractor.extract(text, document_type)
        return ProcessedDocument(
            document_type=document_type,
            transactions=result.transactions,
            metadata=DocumentMetadata(
                file_name=file_name,
                confidence=result.confidence,
                document_language=result.language,
                currency=result.currency,
            ),
        )
