"""
Pocket Ledger settings.

Every knob the package reads from the environment (or a .env file) is
declared here as a pydantic-settings class with its own prefix:

    GEMINI_*          receipt extraction model
    GOOGLE_SHEETS_*   remote ledger and settings store
    CACHE_*           local snapshot directory and key names
    (no prefix)       paging, analytics windows, upload limits

The OCR credential is NOT configured here. It belongs to the user and
lives in the remote settings store (with a local cache), see
pocket_ledger.services.credentials.
"""

import warnings
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Model used to read receipts."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    model_name: str = Field(
        default="gemini-2.0-flash",
        description="Multimodal model that turns a receipt photo into JSON"
    )
    max_tokens: int = Field(
        default=2048,
        ge=256,
        le=8192,
        description="Upper bound on the response length"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sampling temperature; keep low for stable JSON"
    )


class GoogleSheetsSettings(BaseSettings):
    """Spreadsheet backing the remote ledger."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Key of the spreadsheet holding all worksheets"
    )

    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Manually entered expenses, one per row"
    )
    messages_sheet_name: str = Field(
        default="MessageTransactions",
        description="Rows appended by the incoming-message parser"
    )
    settings_sheet_name: str = Field(
        default="UserSettings",
        description="One row of per-user secrets"
    )

    @field_validator("credentials_path")
    @classmethod
    def warn_if_missing(cls, v: str) -> str:
        # The key file may be mounted after start-up; only warn
        if not Path(v).is_file():
            warnings.warn(f"Service account key not found at {v}")
        return v


class CacheSettings(BaseSettings):
    """Local durable key-value storage."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        extra="ignore"
    )

    cache_dir: Path = Field(
        default=Path.home() / ".pocket_ledger",
        description="Directory holding one file per key"
    )
    ledger_key: str = Field(
        default="pf_transactions_v1",
        description="Full ledger snapshot"
    )
    credential_key: str = Field(
        default="pf_gemini_api_key",
        description="Cached OCR credential"
    )
    budgets_key: str = Field(
        default="pf_budgets_v1",
        description="Persisted budgets, separate from the ledger"
    )


class AppSettings(BaseSettings):
    """Paging, analytics windows and receipt upload limits."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    page_size: int = Field(
        default=25,
        ge=1,
        le=500,
        description="Records fetched per source per page"
    )

    trend_months: int = Field(
        default=6,
        ge=1,
        le=36,
        description="Trailing months reported by monthly trends"
    )
    top_merchants: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Merchants returned by the ranking"
    )

    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Largest receipt photo accepted"
    )
    supported_image_formats: str = Field(
        default="jpeg,png,webp",
        description="Comma-separated Pillow format names"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",") if fmt.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Entry point to every settings group.

    Groups are built on access, so a missing Google Sheets configuration
    only fails the code that actually needs the spreadsheet.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def cache(self) -> CacheSettings:
        return CacheSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Shared Settings instance. get_settings.cache_clear() forces a reload."""
    return Settings()


SETTINGS_GROUPS = ("gemini", "google_sheets", "cache", "app")


def validate_all_settings() -> dict[str, bool]:
    """
    Build every settings group once and report which ones are usable.

    A failing group adds "<name>_error" with the validation message.
    """
    settings = get_settings()
    report: dict[str, bool] = {}
    for name in SETTINGS_GROUPS:
        try:
            getattr(settings, name)
        except ValueError as e:
            report[name] = False
            report[f"{name}_error"] = str(e)
        else:
            report[name] = True
    return report
