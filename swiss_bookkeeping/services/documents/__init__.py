"""Document processing services package."""

from swiss_bookkeeping.services.documents.chart import (
    ChartOfAccountsError,
    parse_chart_of_accounts,
    parse_chart_of_accounts_text,
)
from swiss_bookkeeping.services.documents.processor import (
    DocumentProcessingError,
    DocumentProcessor,
    UnsupportedDocumentError,
    detect_document_type,
    parse_bank_statement_csv,
)

__all__ = [
    "ChartOfAccountsError",
    "DocumentProcessingError",
    "DocumentProcessor",
    "UnsupportedDocumentError",
    "detect_document_type",
    "parse_bank_statement_csv",
    "parse_chart_of_accounts",
    "parse_chart_of_accounts_text",
]
