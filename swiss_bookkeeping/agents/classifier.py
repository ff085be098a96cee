"""
Transaction Classifier

DESIGN DECISION: The categorization stage only knows the ClassifierPort:
one async method, prompt in, structured result out. Whatever sits behind
it (Gemini today, anything else tomorrow) is an opaque external service.

CRITICAL BOUNDARIES:
- The classifier SUGGESTS an account; Swiss rules applied afterwards decide
  VAT and review flags
- A response that does not match the ClassificationResult schema is a
  FAILURE, never a half-filled categorization
- The port never raises for a bad answer; it returns ClassificationFailure
"""

from abc import ABC, abstractmethod

from pydantic import ValidationError

from swiss_bookkeeping.agents.gemini import GeminiAgent, extract_json_object
from swiss_bookkeeping.models.transaction import (
    ClassificationFailure,
    ClassificationOutcome,
    ClassificationResult,
)


class ClassifierPort(ABC):
    """Single-method capability used by the categorization stage."""

    @property
    def model_name(self) -> str:
        """Name recorded in the audit trail."""
        return "external-classifier"

    @abstractmethod
    async def ask(self, prompt: str) -> ClassificationOutcome:
        """
        Classify the transaction described in `prompt`.

        Returns:
            ClassificationResult on success, ClassificationFailure otherwise
        """
        pass


def parse_classification_response(text: str) -> ClassificationOutcome:
    """
    Turn raw model text into a classification outcome.

    Expects a JSON object with category, accountNumber, confidence,
    vatCode, vatRate, swissGaapCode, notes and appliedRules.
    """
    data = extract_json_object(text)
    if data is None:
        return ClassificationFailure(
            reason="Response did not contain a JSON object",
            raw_response=text,
        )

    try:
        return ClassificationResult.model_validate(data)
    except ValidationError as e:
        return ClassificationFailure(
            reason=f"Response did not match classification schema: {e.error_count()} errors",
            raw_response=text,
        )


class GeminiClassifier(GeminiAgent, ClassifierPort):
    """Classifier port backed by Google Gemini."""

    max_output_tokens = 512

    async def ask(self, prompt: str) -> ClassificationOutcome:
        try:
            text = await self._generate(prompt)
        except Exception as e:
            return ClassificationFailure(reason=f"Gemini request failed: {e}")

        return parse_classification_response(text)
