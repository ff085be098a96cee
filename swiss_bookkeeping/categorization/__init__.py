"""Transaction categorization package."""

from swiss_bookkeeping.categorization.categorizer import (
    CategorizationError,
    TransactionCategorizer,
    build_categorization_prompt,
    default_categorization,
    format_chart_of_accounts,
)
from swiss_bookkeeping.categorization.rules import (
    SWISS_RULES,
    SWISS_VAT_RATES,
    Rule,
    RuleOutcome,
    apply_rules,
)

__all__ = [
    "CategorizationError",
    "Rule",
    "RuleOutcome",
    "SWISS_RULES",
    "SWISS_VAT_RATES",
    "TransactionCategorizer",
    "apply_rules",
    "build_categorization_prompt",
    "default_categorization",
    "format_chart_of_accounts",
]
