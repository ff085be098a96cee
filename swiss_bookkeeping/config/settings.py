"""
Configuration Management for Swiss Bookkeeping

Every tunable of the pipeline is read from the environment (or .env)
through pydantic-settings.

DESIGN DECISION: Gemini credentials and bookkeeping behaviour live in
separate settings classes. A run that never calls Gemini (tests, CSV-only
statements with a fake classifier) must not fail for a missing API key.
"""

from datetime import date
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from swiss_bookkeeping.models.transaction import AccountingStandard


class ComplianceAccumulation(str, Enum):
    """
    How compliant transactions are counted.

    GLOBAL: a transaction is compliant only while the whole batch has
    produced no violation so far (one bad transaction taints the rest).
    PER_TRANSACTION: each transaction is judged on its own violations.
    """
    GLOBAL = "global"
    PER_TRANSACTION = "per_transaction"


class GeminiSettings(BaseSettings):
    """Gemini credentials and generation parameters (GEMINI_* variables)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class AppSettings(BaseSettings):
    """Bookkeeping behaviour: documents, chart defaults, compliance, cache."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Documents
    supported_document_formats: str = Field(
        default="csv,txt",
        description="Comma-separated list of document formats we can read"
    )
    export_dir: str = Field(
        default="exports",
        description="Directory where CSV exports are written"
    )
    currency: str = Field(
        default="CHF",
        min_length=3,
        max_length=3,
        description="Bookkeeping currency"
    )

    # Chart of accounts defaults
    chart_standard: AccountingStandard = Field(
        default=AccountingStandard.SWISS_GAAP,
        description="Accounting standard recorded on parsed charts"
    )
    company_name: str = Field(
        default="Default",
        description="Company recorded on parsed charts"
    )
    fiscal_year: int = Field(
        default_factory=lambda: date.today().year,
        description="Fiscal year recorded on parsed charts"
    )

    # Compliance thresholds
    min_categorization_confidence: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Below this confidence a categorization is flagged for review"
    )
    compliance_accumulation: ComplianceAccumulation = Field(
        default=ComplianceAccumulation.GLOBAL,
        description="How compliant transactions are counted"
    )

    # Results cache
    result_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="How long processing results stay retrievable"
    )
    result_sweep_interval_seconds: int = Field(
        default=300,
        ge=1,
        description="How often expired results are swept"
    )

    @field_validator('chart_standard', mode='before')
    @classmethod
    def match_chart_standard(cls, v):
        if isinstance(v, str):
            for standard in AccountingStandard:
                if standard.value.lower() == v.strip().lower():
                    return standard
        return v

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def supported_formats_list(self) -> list[str]:
        """Lower-cased extensions from SUPPORTED_DOCUMENT_FORMATS."""
        return [fmt.strip().lower() for fmt in self.supported_document_formats.split(",")]


class Settings(BaseSettings):
    """Entry point for all settings groups."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Built on access so a missing GEMINI_API_KEY only fails callers that need it

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings. Tests reset it with get_settings.cache_clear()."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load each settings group.

    Returns {group: loaded_ok}, plus "{group}_error" entries holding the
    validation message for groups that failed.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.gemini
        results["gemini"] = True
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
