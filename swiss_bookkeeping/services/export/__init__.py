"""CSV export services package."""

from swiss_bookkeeping.services.export.csv_formatter import (
    AccountingExport,
    CsvFormatter,
    calculate_vat_amount,
    document_type_for_reference,
    is_vat_deductible,
    tax_period,
)

__all__ = [
    "AccountingExport",
    "CsvFormatter",
    "calculate_vat_amount",
    "document_type_for_reference",
    "is_vat_deductible",
    "tax_period",
]
