"""Services package."""

from swiss_bookkeeping.services.cache import ResultsCache
from swiss_bookkeeping.services.documents import (
    ChartOfAccountsError,
    DocumentProcessingError,
    DocumentProcessor,
    UnsupportedDocumentError,
    parse_chart_of_accounts,
)
from swiss_bookkeeping.services.export import AccountingExport, CsvFormatter
from swiss_bookkeeping.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    StorageError,
)

__all__ = [
    # Cache
    "ResultsCache",
    # Documents
    "ChartOfAccountsError",
    "DocumentProcessingError",
    "DocumentProcessor",
    "UnsupportedDocumentError",
    "parse_chart_of_accounts",
    # Export
    "AccountingExport",
    "CsvFormatter",
    # Storage
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "StorageError",
]
