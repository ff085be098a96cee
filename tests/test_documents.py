"""Tests for document processing and chart of accounts parsing."""

from decimal import Decimal

import pytest

from swiss_bookkeeping.agents import ExtractionFailedError
from swiss_bookkeeping.models.transaction import AccountingStandard, AccountType, DocumentType
from swiss_bookkeeping.services.documents import (
    ChartOfAccountsError,
    DocumentProcessor,
    UnsupportedDocumentError,
    detect_document_type,
    parse_bank_statement_csv,
    parse_chart_of_accounts,
    parse_chart_of_accounts_text,
)

from conftest import BANK_STATEMENT_CSV, CHART_CSV, FakeExtractor, make_transaction


class TestDocumentTypeDetection:

    @pytest.mark.parametrize("file_name,expected", [
        ("invoice-2024-001.txt", DocumentType.INVOICE),
        ("Receipt_Migros.txt", DocumentType.RECEIPT),
        ("bank-march.csv", DocumentType.BANK_STATEMENT),
        ("UBS_Statement.csv", DocumentType.BANK_STATEMENT),
        ("notes.txt", DocumentType.RECEIPT),
    ])
    def test_detect(self, file_name, expected):
        assert detect_document_type(file_name) == expected


class TestBankStatementCsv:

    def test_parses_rows(self):
        transactions = parse_bank_statement_csv(BANK_STATEMENT_CSV)

        assert len(transactions) == 2
        income, expense = transactions
        assert income.is_income is True
        assert income.amount == Decimal("1500.00")
        assert income.payee == "Customer payment"
        assert expense.is_income is False
        assert expense.amount == Decimal("2400.00")
        assert expense.reference == "BANK-002"

    def test_skips_short_rows_and_bom(self):
        text = "\ufeffDate,Description,Amount,Reference\n2024-01-01,Only three,10\n"
        assert parse_bank_statement_csv(text) == []

    def test_quoted_description_with_comma(self):
        text = 'Date,Description,Amount,Reference\n2024-01-05,"Coop, Bern",-12.50,REC-1\n'
        [transaction] = parse_bank_statement_csv(text)
        assert transaction.description == "Coop, Bern"


class TestDocumentProcessor:

    @pytest.mark.asyncio
    async def test_csv_bank_statement_without_llm(self, app_settings, tmp_path):
        path = tmp_path / "bank-statement.csv"
        path.write_text(BANK_STATEMENT_CSV, encoding="utf-8")
        extractor = FakeExtractor()

        document = await DocumentProcessor(extractor, app_settings).process_document(path)

        assert document.document_type == DocumentType.BANK_STATEMENT
        assert len(document.transactions) == 2
        assert document.metadata.file_name == "bank-statement.csv"
        assert document.metadata.confidence == 0.95
        assert extractor.calls == []

    @pytest.mark.asyncio
    async def test_text_document_goes_through_extractor(self, app_settings):
        extractor = FakeExtractor([make_transaction()])
        processor = DocumentProcessor(extractor, app_settings)

        document = await processor.process_content(b"Rechnung INV-001", "invoice-001.txt")

        assert document.document_type == DocumentType.INVOICE
        assert document.transactions == [make_transaction()]
        assert extractor.calls == [("Rechnung INV-001", DocumentType.INVOICE)]

    @pytest.mark.asyncio
    async def test_explicit_document_type_wins(self, app_settings):
        extractor = FakeExtractor()
        await DocumentProcessor(extractor, app_settings).process_content(
            b"text", "scan.txt", DocumentType.BANK_STATEMENT,
        )
        assert extractor.calls[0][1] == DocumentType.BANK_STATEMENT

    @pytest.mark.asyncio
    @pytest.mark.parametrize("file_name", ["invoice.pdf", "receipt.jpg", "photo.png", "data.xlsx"])
    async def test_unsupported_formats_rejected(self, app_settings, file_name):
        processor = DocumentProcessor(FakeExtractor(), app_settings)
        with pytest.raises(UnsupportedDocumentError) as exc_info:
            await processor.process_content(b"\x00\x01", file_name)
        assert exc_info.value.file_name == file_name

    @pytest.mark.asyncio
    async def test_text_document_without_extractor(self, app_settings):
        with pytest.raises(UnsupportedDocumentError):
            await DocumentProcessor(None, app_settings).process_content(b"x", "receipt.txt")

    @pytest.mark.asyncio
    async def test_extraction_failure_propagates(self, app_settings):
        processor = DocumentProcessor(FakeExtractor(fail_on="BROKEN"), app_settings)
        with pytest.raises(ExtractionFailedError):
            await processor.process_content(b"BROKEN scan", "receipt.txt")


class TestChartOfAccounts:

    def test_parses_accounts_and_categories(self):
        chart = parse_chart_of_accounts_text(CHART_CSV, company="Muster AG", year=2024)

        assert [a.account_number for a in chart.accounts] == ["1000", "1500", "4000", "6000", "6500"]
        assert chart.find_account("6500").parent_account == "6000"
        assert chart.find_account("1000").parent_account is None

        categories = {c.account_number: c for c in chart.categories}
        assert categories["1000"].category_id == "cat_1000"
        assert categories["1000"].swiss_gaap_mapping == "Current Assets"
        assert categories["1500"].swiss_gaap_mapping == "Fixed Assets"
        assert categories["6000"].swiss_gaap_mapping == "Operating Expenses"

        assert chart.metadata.company == "Muster AG"
        assert chart.metadata.year == 2024
        assert chart.metadata.standard == AccountingStandard.SWISS_GAAP

    def test_semicolon_delimiter_and_german_types(self):
        text = (
            "Account Number;Account Name;Account Type\n"
            "1020;Bank;Aktiven\n"
            "3400;Dienstleistungsertrag;Ertrag\n"
        )
        chart = parse_chart_of_accounts_text(text, company="Test", year=2024)

        assert chart.find_account("1020").account_type == AccountType.ASSETS
        assert chart.find_account("3400").account_type == AccountType.REVENUE

    def test_missing_columns(self):
        with pytest.raises(ChartOfAccountsError, match="account type"):
            parse_chart_of_accounts_text("Account Number,Account Name\n1000,Kasse\n")

    def test_unknown_account_type(self):
        with pytest.raises(ChartOfAccountsError, match="unknown account type"):
            parse_chart_of_accounts_text(
                "Account Number,Account Name,Account Type\n1000,Kasse,Stuff\n"
            )

    def test_invalid_account_number(self):
        with pytest.raises(ChartOfAccountsError, match="Line 2"):
            parse_chart_of_accounts_text(
                "Account Number,Account Name,Account Type\n10,Kasse,Assets\n"
            )

    def test_empty_chart(self):
        with pytest.raises(ChartOfAccountsError):
            parse_chart_of_accounts_text("")
        with pytest.raises(ChartOfAccountsError, match="no accounts"):
            parse_chart_of_accounts_text("Account Number,Account Name,Account Type\n")

    def test_from_file_and_bytes(self, tmp_path):
        path = tmp_path / "chart.csv"
        path.write_text("\ufeff" + CHART_CSV, encoding="utf-8")

        from_file = parse_chart_of_accounts(path, company="A", year=2024)
        from_bytes = parse_chart_of_accounts(CHART_CSV.encode("utf-8"), company="A", year=2024)

        assert from_file.accounts == from_bytes.accounts

    def test_non_csv_file_rejected(self, tmp_path):
        path = tmp_path / "chart.xlsx"
        path.write_bytes(b"PK")
        with pytest.raises(ChartOfAccountsError, match="CSV"):
            parse_chart_of_accounts(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ChartOfAccountsError):
            parse_chart_of_accounts(tmp_path / "missing.csv")
