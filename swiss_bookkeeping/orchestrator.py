"""
Main Orchestrator for Swiss Bookkeeping

This module ties together all the components and defines the
end-to-end flow of one processing run:

    chart of accounts → documents → extracted transactions
        → categorization → compliance validation → audit trail → CSV export

DESIGN DECISION: The orchestrator enforces the boundaries:
- A chart that cannot be read, or a document in a format we cannot read,
  stops the run with a BookkeepingError. No partial ledger is produced.
- A document whose transactions cannot be extracted is logged and skipped.
- A transaction the classifier cannot handle gets the fallback
  categorization (inside the categorizer).
- Every step is audited under one correlation id.

Documents and transactions are processed one at a time, in input order.
"""

import asyncio
import time
from decimal import Decimal
from pathlib import Path
from typing import Callable, Optional, Sequence, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, Field

from swiss_bookkeeping.agents import (
    ClassifierPort,
    ExtractionFailedError,
    GeminiClassifier,
    GeminiTransactionExtractor,
)
from swiss_bookkeeping.audit import AuditLogger, AuditTrailBuilder, create_correlation_id
from swiss_bookkeeping.categorization import TransactionCategorizer
from swiss_bookkeeping.config import AppSettings, get_settings
from swiss_bookkeeping.models.audit import AuditTrail
from swiss_bookkeeping.models.compliance import ComplianceReport
from swiss_bookkeeping.models.transaction import (
    CategorizedTransaction,
    ChartOfAccounts,
    ExtractedTransaction,
    ProcessedDocument,
)
from swiss_bookkeeping.services.cache import ResultsCache
from swiss_bookkeeping.services.documents import (
    ChartOfAccountsError,
    DocumentProcessingError,
    DocumentProcessor,
    parse_chart_of_accounts,
)
from swiss_bookkeeping.services.export import AccountingExport, CsvFormatter
from swiss_bookkeeping.services.storage import AuditStorageInterface
from swiss_bookkeeping.validation import ComplianceValidator

logger = structlog.get_logger(__name__)


class BookkeepingError(Exception):
    """
    A processing run failed as a whole.

    `message` is safe to show to a user; `detail` carries the underlying
    error text for logs.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message if detail is None else f"{message}: {detail}")


class ProcessingSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_transactions: int = Field(ge=0)
    total_amount: Decimal
    compliance_rate: float = Field(ge=0.0, le=1.0)
    processing_time_ms: int = Field(ge=0)


class BookkeepingResult(BaseModel):
    """Everything one processing run produced."""
    model_config = ConfigDict(frozen=True)

    result_id: Optional[str] = None
    transactions: list[CategorizedTransaction] = Field(default_factory=list)
    compliance_report: ComplianceReport
    audit_trail: AuditTrail
    export_files: Optional[AccountingExport] = None
    summary: ProcessingSummary


# A document source is either a path on disk or (file name, raw bytes)
DocumentSource = Union[str, Path, tuple[str, bytes]]


class BookkeepingPipeline:
    """
    Orchestrates one bookkeeping run.

    Flow:
    1. Load chart of accounts (fatal on failure)
    2. Process each document (unsupported format is fatal,
       failed extraction skips the document)
    3. Categorize all transactions
    4. Validate Swiss compliance
    5. Build the audit trail
    6. Export the four CSV documents
    7. Store the result in the results cache, if one is configured
    """

    def __init__(
        self,
        classifier: ClassifierPort,
        document_processor: Optional[DocumentProcessor] = None,
        validator: Optional[ComplianceValidator] = None,
        formatter: Optional[CsvFormatter] = None,
        audit_logger: Optional[AuditLogger] = None,
        results_cache: Optional[ResultsCache] = None,
        settings: Optional[AppSettings] = None,
        trail_builder: Optional[AuditTrailBuilder] = None,
    ):
        self._settings = settings or get_settings().app
        self._audit_logger = audit_logger
        self._document_processor = document_processor or DocumentProcessor(
            settings=self._settings,
        )
        self._categorizer = TransactionCategorizer(classifier, audit_logger=audit_logger)
        self._validator = validator or ComplianceValidator(
            min_confidence=self._settings.min_categorization_confidence,
            accumulation=self._settings.compliance_accumulation,
        )
        self._trail_builder = trail_builder or AuditTrailBuilder(ai_model=classifier.model_name)
        self._formatter = formatter or CsvFormatter(currency=self._settings.currency)
        self._results_cache = results_cache

    @property
    def results_cache(self) -> Optional[ResultsCache]:
        return self._results_cache

    def start_results_sweeper(
        self,
        stop_event: Optional[asyncio.Event] = None,
    ) -> Optional[asyncio.Task]:
        """
        Schedule the periodic sweep of expired results on the running loop.

        Returns None when the pipeline keeps no results cache.
        """
        if self._results_cache is None:
            return None
        return asyncio.create_task(self._results_cache.run_sweeper(
            self._settings.result_sweep_interval_seconds,
            stop_event,
        ))

    async def process_documents(
        self,
        chart_path: Union[str, Path],
        document_paths: Sequence[Union[str, Path]],
        output_dir: Optional[Union[str, Path]] = None,
    ) -> BookkeepingResult:
        """
        Run the pipeline over files on disk.

        Raises:
            BookkeepingError: Chart unreadable or a document format unsupported
        """
        return await self._run(
            chart_name=Path(chart_path).name,
            load_chart=lambda: parse_chart_of_accounts(chart_path),
            documents=list(document_paths),
            output_dir=output_dir,
        )

    async def process_documents_from_buffers(
        self,
        chart_bytes: bytes,
        documents: Sequence[tuple[str, bytes]],
        output_dir: Optional[Union[str, Path]] = None,
    ) -> BookkeepingResult:
        """
        Run the pipeline over uploaded content.

        Args:
            chart_bytes: Chart of accounts CSV
            documents: (file_name, content) pairs

        Raises:
            BookkeepingError: Chart unreadable or a document format unsupported
        """
        return await self._run(
            chart_name="chart-of-accounts.csv",
            load_chart=lambda: parse_chart_of_accounts(chart_bytes),
            documents=list(documents),
            output_dir=output_dir,
        )

    async def _fail(
        self,
        message: str,
        error: Exception,
        correlation_id: UUID,
    ) -> BookkeepingError:
        logger.error("bookkeeping_run_failed", message=message, detail=str(error))
        if self._audit_logger:
            await self._audit_logger.log_run_failed(
                message=message,
                detail=str(error),
                correlation_id=correlation_id,
            )
        return BookkeepingError(message, str(error))

    async def _load_chart(
        self,
        chart_name: str,
        load_chart: Callable[[], ChartOfAccounts],
        correlation_id: UUID,
    ) -> ChartOfAccounts:
        try:
            chart = load_chart()
        except ChartOfAccountsError as e:
            if self._audit_logger:
                await self._audit_logger.log_chart_rejected(
                    file_name=chart_name,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise await self._fail("Chart of accounts could not be loaded", e, correlation_id) from e

        logger.info("chart_loaded", file_name=chart_name, account_count=len(chart.accounts))
        if self._audit_logger:
            await self._audit_logger.log_chart_loaded(
                file_name=chart_name,
                account_count=len(chart.accounts),
                correlation_id=correlation_id,
            )
        return chart

    async def _process_document(self, source: DocumentSource) -> ProcessedDocument:
        if isinstance(source, tuple):
            file_name, content = source
            return await self._document_processor.process_content(content, file_name)
        return await self._document_processor.process_document(source)

    async def _extract_transactions(
        self,
        documents: Sequence[DocumentSource],
        correlation_id: UUID,
    ) -> list[ExtractedTransaction]:
        transactions: list[ExtractedTransaction] = []

        for source in documents:
            file_name = source[0] if isinstance(source, tuple) else Path(source).name
            try:
                processed = await self._process_document(source)
            except ExtractionFailedError as e:
                # One unreadable document does not stop the run
                logger.warning("document_skipped", file_name=file_name, reason=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_extraction_failed(
                        file_name=file_name,
                        reason=str(e),
                        correlation_id=correlation_id,
                    )
                continue
            except (DocumentProcessingError, OSError) as e:
                if self._audit_logger:
                    await self._audit_logger.log_document_rejected(
                        file_name=file_name,
                        reason=str(e),
                        correlation_id=correlation_id,
                    )
                raise await self._fail(
                    f"Document '{file_name}' could not be processed", e, correlation_id
                ) from e

            if self._audit_logger:
                await self._audit_logger.log_document_processed(
                    file_name=file_name,
                    document_type=processed.document_type.value,
                    transaction_count=len(processed.transactions),
                    correlation_id=correlation_id,
                )
            transactions.extend(processed.transactions)

        return transactions

    async def _export(
        self,
        transactions: list[CategorizedTransaction],
        report: ComplianceReport,
        trail: AuditTrail,
        output_dir: Union[str, Path],
        correlation_id: UUID,
    ) -> AccountingExport:
        try:
            exports = self._formatter.export_accounting_package(
                transactions, report, trail, output_dir,
            )
        except OSError as e:
            raise await self._fail("Export files could not be written", e, correlation_id) from e

        if self._audit_logger:
            for export_name, path in exports.model_dump().items():
                await self._audit_logger.log_export_written(
                    export_name=export_name,
                    path=path,
                    correlation_id=correlation_id,
                )
        return exports

    async def _run(
        self,
        chart_name: str,
        load_chart: Callable[[], ChartOfAccounts],
        documents: list[DocumentSource],
        output_dir: Optional[Union[str, Path]],
    ) -> BookkeepingResult:
        started = time.perf_counter()
        correlation_id = create_correlation_id()

        logger.info("bookkeeping_run_started", document_count=len(documents))
        if self._audit_logger:
            await self._audit_logger.log_run_started(
                document_count=len(documents),
                correlation_id=correlation_id,
            )

        chart = await self._load_chart(chart_name, load_chart, correlation_id)
        extracted = await self._extract_transactions(documents, correlation_id)
        logger.info("transactions_extracted", transaction_count=len(extracted))

        categorized = await self._categorizer.categorize(
            extracted, chart, correlation_id=correlation_id,
        )

        report = self._validator.validate(categorized)
        if self._audit_logger:
            await self._audit_logger.log_compliance_validated(
                is_compliant=report.is_compliant,
                violation_count=len(report.violations),
                warning_count=len(report.warnings),
                correlation_id=correlation_id,
            )

        trail = self._trail_builder.build_trail(categorized)
        exports = await self._export(
            categorized,
            report,
            trail,
            output_dir or self._settings.export_dir,
            correlation_id,
        )

        processing_time_ms = int((time.perf_counter() - started) * 1000)
        total_amount = sum((t.amount for t in categorized), Decimal("0"))
        result_id = self._results_cache.new_result_id() if self._results_cache is not None else None

        result = BookkeepingResult(
            result_id=result_id,
            transactions=categorized,
            compliance_report=report,
            audit_trail=trail,
            export_files=exports,
            summary=ProcessingSummary(
                total_transactions=len(categorized),
                total_amount=total_amount,
                compliance_rate=report.summary.compliance_rate,
                processing_time_ms=processing_time_ms,
            ),
        )
        if self._results_cache is not None:
            self._results_cache.put(result, result_id=result_id)

        logger.info(
            "bookkeeping_run_completed",
            transaction_count=len(categorized),
            total_amount=str(total_amount),
            compliance_rate=report.summary.compliance_rate,
            processing_time_ms=processing_time_ms,
        )
        if self._audit_logger:
            await self._audit_logger.log_run_completed(
                transaction_count=len(categorized),
                compliance_rate=report.summary.compliance_rate,
                processing_time_ms=processing_time_ms,
                correlation_id=correlation_id,
            )

        return result


def create_pipeline(
    audit_storage: Optional[AuditStorageInterface] = None,
    with_cache: bool = True,
) -> BookkeepingPipeline:
    """
    Factory function to create a Gemini-backed pipeline.

    Args:
        audit_storage: Where audit events are kept. If None, events are
                       only logged.
        with_cache: Whether finished results are kept in a ResultsCache.
    """
    settings = get_settings()
    app_settings = settings.app
    gemini_settings = settings.gemini

    audit_logger = AuditLogger(audit_storage)
    classifier = GeminiClassifier(settings=gemini_settings)
    extractor = GeminiTransactionExtractor(settings=gemini_settings)

    results_cache = None
    if with_cache:
        results_cache = ResultsCache(ttl_seconds=app_settings.result_ttl_seconds)

    return BookkeepingPipeline(
        classifier=classifier,
        document_processor=DocumentProcessor(extractor=extractor, settings=app_settings),
        audit_logger=audit_logger,
        results_cache=results_cache,
        settings=app_settings,
    )
