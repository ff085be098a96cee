"""
Swiss Accounting Rules

Deterministic post-processing applied to every classifier answer.

DESIGN DECISION: Rules are an ordered tuple of pure functions
    (transaction, RuleOutcome) -> RuleOutcome
Each rule either returns the outcome untouched or a copy with its name
appended to `applied_rules`. Adding a Swiss rule means writing one function
and adding it to SWISS_RULES; the categorizer's control flow never changes.

The rules run in order and later rules see earlier results.
"""

from decimal import Decimal
from typing import Callable, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from swiss_bookkeeping.models.transaction import ExtractedTransaction


SWISS_VAT_RATES = {
    "Standard": Decimal("7.7"),
    "Reduced": Decimal("2.5"),
    "Special": Decimal("3.7"),
    "Zero": Decimal("0.0"),
}

REDUCED_RATE_KEYWORDS = ("food", "medicine")
SPECIAL_RATE_KEYWORDS = ("hotel", "accommodation")
DEPRECIABLE_ASSET_KEYWORDS = ("equipment", "vehicle", "furniture")
WITHHOLDING_TAX_KEYWORDS = ("dividend", "interest", "royalty")

DEPRECIATION_THRESHOLD = Decimal("1000")

VAT_RULE = "Swiss VAT Applied"
DEPRECIATION_RULE = "Depreciation Required"
WITHHOLDING_TAX_RULE = "Withholding Tax Check"


class RuleOutcome(BaseModel):
    """Partial categorization result threaded through the rule pipeline."""
    model_config = ConfigDict(frozen=True)

    swiss_gaap_code: Optional[str] = None
    vat_code: Optional[str] = None
    vat_rate: Optional[Decimal] = None
    notes: str = ""
    applied_rules: tuple[str, ...] = ()
    depreciation_required: bool = False
    withholding_tax_review: bool = False

    def with_rule(self, rule_name: str, note: Optional[str] = None, **updates) -> "RuleOutcome":
        """Copy of this outcome with `rule_name` recorded and `note` appended."""
        updates["applied_rules"] = self.applied_rules + (rule_name,)
        if note:
            updates["notes"] = f"{self.notes} | {note}"
        return self.model_copy(update=updates)


Rule = Callable[[ExtractedTransaction, RuleOutcome], RuleOutcome]


def _description(transaction: ExtractedTransaction) -> str:
    return (transaction.description or "").lower()


def _mentions(transaction: ExtractedTransaction, keywords: Sequence[str]) -> bool:
    description = _description(transaction)
    return any(keyword in description for keyword in keywords)


def is_swiss_vat_applicable(transaction: ExtractedTransaction) -> bool:
    """Expenses carry Swiss input VAT."""
    return transaction.amount > 0 and not transaction.is_income


def determine_vat_code(transaction: ExtractedTransaction) -> str:
    """Pick the VAT rate name from description keywords."""
    if _mentions(transaction, REDUCED_RATE_KEYWORDS):
        return "Reduced"
    if _mentions(transaction, SPECIAL_RATE_KEYWORDS):
        return "Special"
    return "Standard"


def determine_vat_rate(transaction: ExtractedTransaction) -> Decimal:
    return SWISS_VAT_RATES[determine_vat_code(transaction)]


def is_depreciation_required(transaction: ExtractedTransaction) -> bool:
    return (
        transaction.amount > DEPRECIATION_THRESHOLD
        and _mentions(transaction, DEPRECIABLE_ASSET_KEYWORDS)
    )


def is_withholding_tax_applicable(transaction: ExtractedTransaction) -> bool:
    return transaction.is_income and _mentions(transaction, WITHHOLDING_TAX_KEYWORDS)


# =============================================================================
# RULES
# =============================================================================

def apply_swiss_vat(transaction: ExtractedTransaction, outcome: RuleOutcome) -> RuleOutcome:
    """Override the classifier's VAT with the keyword-derived Swiss rate."""
    if not is_swiss_vat_applicable(transaction):
        return outcome
    vat_code = determine_vat_code(transaction)
    return outcome.with_rule(
        VAT_RULE,
        vat_code=vat_code,
        vat_rate=SWISS_VAT_RATES[vat_code],
    )


def flag_depreciation(transaction: ExtractedTransaction, outcome: RuleOutcome) -> RuleOutcome:
    if not is_depreciation_required(transaction):
        return outcome
    return outcome.with_rule(
        DEPRECIATION_RULE,
        note="Depreciation schedule required",
        depreciation_required=True,
    )


def flag_withholding_tax(transaction: ExtractedTransaction, outcome: RuleOutcome) -> RuleOutcome:
    if not is_withholding_tax_applicable(transaction):
        return outcome
    return outcome.with_rule(
        WITHHOLDING_TAX_RULE,
        note="Check withholding tax obligations",
        withholding_tax_review=True,
    )


SWISS_RULES: tuple[Rule, ...] = (
    apply_swiss_vat,
    flag_depreciation,
    flag_withholding_tax,
)


def apply_rules(
    transaction: ExtractedTransaction,
    outcome: RuleOutcome,
    rules: Sequence[Rule] = SWISS_RULES,
) -> RuleOutcome:
    """Run `rules` in order, feeding each the previous outcome."""
    for rule in rules:
        outcome = rule(transaction, outcome)
    return outcome
