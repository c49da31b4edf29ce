"""
Application Context for Pocket Ledger

Ties together all the components for one signed-in user:
1. Ledger (cache hydration, paged loading, inserts, deletes)
2. Receipt pipeline (image -> OCR -> review -> commit)
3. Budgets and the OCR credential

DESIGN DECISION: No module-level singletons. Everything a feature needs
is built once here and handed to it explicitly, so tests can swap any
piece for an in-memory fake.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog

from pocket_ledger.analytics import merchant_ranking, monthly_trends
from pocket_ledger.audit import AuditLogger
from pocket_ledger.budget import BudgetTracker
from pocket_ledger.config import get_settings
from pocket_ledger.ledger import Ledger, LedgerLoader, LedgerService
from pocket_ledger.models.analytics import MerchantRank, MonthlyTrend
from pocket_ledger.models.receipt import ReceiptImage
from pocket_ledger.receipts import ReceiptPipeline
from pocket_ledger.services.cache import JsonFileStore, KeyValueStore, OfflineCache
from pocket_ledger.services.credentials import CredentialManager
from pocket_ledger.services.ocr import GeminiReceiptProvider, ReceiptOCRProvider, prepare_image
from pocket_ledger.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    GoogleSheetsSettingsStore,
    LedgerStoreInterface,
    SettingsStoreInterface,
)


logger = structlog.get_logger(__name__)


@dataclass
class AppContext:
    """Everything one user session needs."""

    owner_id: str
    audit_logger: AuditLogger
    cache: OfflineCache
    ledger: Ledger
    ledger_service: LedgerService
    budgets: BudgetTracker
    credentials: CredentialManager
    receipts: ReceiptPipeline
    sheets_client: Optional[GoogleSheetsClient] = None
    trend_months: int = 6
    top_merchants: int = 5

    async def start(self) -> None:
        """Hydrate from the cache, then load the key and the first page."""
        self.ledger_service.hydrate_from_cache()
        await self.credentials.load(self.owner_id)
        await self.ledger_service.load_page(reset=True)

    def trends(self, now: Optional[datetime] = None) -> list[MonthlyTrend]:
        """Trends over the configured trailing window."""
        return monthly_trends(self.ledger_service.transactions, now, months=self.trend_months)

    def top_merchant_ranking(self) -> list[MerchantRank]:
        return merchant_ranking(self.ledger_service.transactions, limit=self.top_merchants)


def create_app_context(
    owner_id: str,
    use_storage: bool = True,
    key_value_store: Optional[KeyValueStore] = None,
    ledger_store: Optional[LedgerStoreInterface] = None,
    settings_store: Optional[SettingsStoreInterface] = None,
    ocr_provider: Optional[ReceiptOCRProvider] = None,
    image_preparer: Optional[Callable[[bytes], ReceiptImage]] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> AppContext:
    """
    Factory function to create all application components.

    Args:
        owner_id: The signed-in user; scopes every remote read and write
        use_storage: Whether to initialize Google Sheets storage when no
            stores are passed in. Set to False to run local-only.

    Returns:
        AppContext with every component wired
    """
    settings = get_settings()
    cache_settings = settings.cache
    app_settings = settings.app
    audit_logger = audit_logger or AuditLogger()

    sheets_client = None
    if use_storage and ledger_store is None and settings_store is None:
        try:
            sheets_client = GoogleSheetsClient()
            ledger_store = GoogleSheetsLedgerStore(sheets_client)
            settings_store = GoogleSheetsSettingsStore(sheets_client)
        except Exception as e:
            # Storage not configured - continue local-only
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            ledger_store = None
            settings_store = None

    key_value_store = key_value_store or JsonFileStore(cache_settings.cache_dir)
    cache = OfflineCache(
        key_value_store,
        audit_logger,
        ledger_key=cache_settings.ledger_key,
        credential_key=cache_settings.credential_key,
    )

    ledger = Ledger()
    loader = LedgerLoader(
        ledger,
        cache,
        audit_logger,
        store=ledger_store,
        page_size=app_settings.page_size,
    )
    ledger_service = LedgerService(
        owner_id,
        ledger,
        loader,
        cache,
        audit_logger,
        store=ledger_store,
    )
    credentials = CredentialManager(cache, audit_logger, settings_store=settings_store)
    budgets = BudgetTracker(key_value_store, audit_logger, key=cache_settings.budgets_key)
    receipts = ReceiptPipeline(
        ledger_service,
        credentials,
        ocr_provider or GeminiReceiptProvider(settings.gemini),
        audit_logger,
        image_preparer=image_preparer or prepare_image,
    )

    return AppContext(
        owner_id=owner_id,
        audit_logger=audit_logger,
        cache=cache,
        ledger=ledger,
        ledger_service=ledger_service,
        budgets=budgets,
        credentials=credentials,
        receipts=receipts,
        sheets_client=sheets_client,
        trend_months=app_settings.trend_months,
        top_merchants=app_settings.top_merchants,
    )
