"""AI Agents package."""

from swiss_bookkeeping.agents.classifier import (
    ClassifierPort,
    GeminiClassifier,
    parse_classification_response,
)
from swiss_bookkeeping.agents.extractor import (
    ExtractionFailedError,
    ExtractionResult,
    GeminiTransactionExtractor,
    TransactionExtractor,
)

__all__ = [
    "ClassifierPort",
    "ExtractionFailedError",
    "ExtractionResult",
    "GeminiClassifier",
    "GeminiTransactionExtractor",
    "TransactionExtractor",
    "parse_classification_response",
]
