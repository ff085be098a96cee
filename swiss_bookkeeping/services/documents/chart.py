"""
Chart of Accounts Parsing

Reads the chart of accounts CSV:

    Account Number, Account Name, Account Type, Parent Account (optional)

The delimiter is sniffed (Swiss exports often use ';') and a leading BOM
is tolerated. Account types are accepted in English or German.

CRITICAL: A chart that cannot be read is fatal. Categorizing against a
half-parsed chart would produce a ledger nobody can trust.
"""

import csv
import io
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from swiss_bookkeeping.config import get_settings
from swiss_bookkeeping.models.transaction import (
    Account,
    AccountingStandard,
    AccountType,
    ChartCategory,
    ChartMetadata,
    ChartOfAccounts,
)
from swiss_bookkeeping.services.documents.processor import DocumentProcessingError

logger = structlog.get_logger(__name__)

REQUIRED_COLUMNS = ("account number", "account name", "account type")
PARENT_COLUMN = "parent account"

ACCOUNT_TYPE_ALIASES = {
    "assets": AccountType.ASSETS,
    "aktiven": AccountType.ASSETS,
    "liabilities": AccountType.LIABILITIES,
    "passiven": AccountType.LIABILITIES,
    "equity": AccountType.EQUITY,
    "eigenkapital": AccountType.EQUITY,
    "revenue": AccountType.REVENUE,
    "ertrag": AccountType.REVENUE,
    "expenses": AccountType.EXPENSES,
    "aufwand": AccountType.EXPENSES,
}


class ChartOfAccountsError(DocumentProcessingError):
    """Chart of accounts is missing or cannot be parsed."""
    pass


def swiss_gaap_mapping(account_number: str, account_type: AccountType) -> str:
    """Swiss GAAP FER balance sheet / income statement group for an account."""
    number = int(account_number)
    if account_type == AccountType.ASSETS:
        return "Current Assets" if number < 1400 else "Fixed Assets"
    if account_type == AccountType.LIABILITIES:
        return "Short-term Liabilities" if number < 2400 else "Long-term Liabilities"
    if account_type == AccountType.EQUITY:
        return "Equity"
    if account_type == AccountType.REVENUE:
        return "Operating Revenue"
    return "Operating Expenses"


def _parse_account_type(value: str, line_number: int) -> AccountType:
    account_type = ACCOUNT_TYPE_ALIASES.get(value.strip().lower())
    if account_type is None:
        raise ChartOfAccountsError(
            f"Line {line_number}: unknown account type '{value.strip()}'"
        )
    return account_type


def _sniff_dialect(text: str):
    try:
        return csv.Sniffer().sniff(text[:2048], delimiters=",;")
    except csv.Error:
        return csv.excel


def parse_chart_of_accounts_text(
    text: str,
    company: Optional[str] = None,
    year: Optional[int] = None,
    standard: Optional[AccountingStandard] = None,
) -> ChartOfAccounts:
    """
    Parse chart of accounts CSV text.

    Args:
        text: CSV content (a leading BOM is ignored)
        company / year / standard: Chart metadata; default to the
            configured company name, fiscal year and chart standard

    Raises:
        ChartOfAccountsError: Missing columns, bad rows, or no accounts
    """
    text = text.lstrip("\ufeff")
    if not text.strip():
        raise ChartOfAccountsError("Chart of accounts is empty")

    reader = csv.reader(io.StringIO(text), _sniff_dialect(text))
    header = next(reader, None) or []
    columns = [column.strip().lower() for column in header]

    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise ChartOfAccountsError(
            f"Chart of accounts is missing columns: {', '.join(missing)}"
        )

    number_idx = columns.index("account number")
    name_idx = columns.index("account name")
    type_idx = columns.index("account type")
    parent_idx = columns.index(PARENT_COLUMN) if PARENT_COLUMN in columns else None

    accounts = []
    categories = []
    for line_number, row in enumerate(reader, start=2):
        if not any(cell.strip() for cell in row):
            continue
        if len(row) <= max(number_idx, name_idx, type_idx):
            raise ChartOfAccountsError(f"Line {line_number}: too few columns")

        parent = None
        if parent_idx is not None and parent_idx < len(row):
            parent = row[parent_idx].strip() or None

        try:
            account = Account(
                account_number=row[number_idx],
                account_name=row[name_idx],
                account_type=_parse_account_type(row[type_idx], line_number),
                parent_account=parent,
            )
        except ValidationError as e:
            raise ChartOfAccountsError(
                f"Line {line_number}: invalid account ({e.error_count()} errors)"
            ) from e

        accounts.append(account)
        categories.append(ChartCategory(
            category_id=f"cat_{account.account_number}",
            category_name=account.account_name,
            account_number=account.account_number,
            description=account.account_name,
            swiss_gaap_mapping=swiss_gaap_mapping(
                account.account_number, account.account_type
            ),
        ))

    if not accounts:
        raise ChartOfAccountsError("Chart of accounts contains no accounts")

    app_settings = get_settings().app
    chart = ChartOfAccounts(
        accounts=accounts,
        categories=categories,
        metadata=ChartMetadata(
            standard=standard or app_settings.chart_standard,
            year=year or app_settings.fiscal_year,
            company=company or app_settings.company_name,
        ),
    )

    logger.info("chart_of_accounts_parsed", account_count=len(accounts))
    return chart


def parse_chart_of_accounts(
    source: Union[str, Path, bytes],
    company: Optional[str] = None,
    year: Optional[int] = None,
    standard: Optional[AccountingStandard] = None,
) -> ChartOfAccounts:
    """
    Parse a chart of accounts from a CSV file path or raw bytes.

    Raises:
        ChartOfAccountsError: File missing, not CSV, or unparseable
    """
    if isinstance(source, bytes):
        text = source.decode("utf-8-sig", errors="replace")
    else:
        path = Path(source)
        if path.suffix.lower() != ".csv":
            raise ChartOfAccountsError("Chart of accounts must be in CSV format")
        try:
            text = path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise ChartOfAccountsError(f"Cannot read chart of accounts: {e}") from e

    return parse_chart_of_accounts_text(text, company, year, standard)
