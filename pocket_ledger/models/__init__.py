"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the system must conform to these schemas.
"""

from pocket_ledger.models.analytics import (
    CategorySlice,
    MerchantRank,
    MonthComparison,
    MonthlyTrend,
    MonthSummary,
    WeekdaySlot,
)
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from pocket_ledger.models.budget import Budget, BudgetProgress
from pocket_ledger.models.category import (
    CATEGORIES,
    DEFAULT_CATEGORY_ID,
    DEFAULT_ICON,
    Category,
    all_categories,
    category_icon,
    get_category,
)
from pocket_ledger.models.receipt import (
    CommitResult,
    ExtractedItem,
    PendingItem,
    ReceiptExtraction,
    ReceiptImage,
    ReceiptStage,
    ReceiptState,
)
from pocket_ledger.models.transaction import (
    ConfirmationStatus,
    ExpenseDraft,
    LoadResult,
    ManualExpenseRecord,
    MessageTransactionRecord,
    Transaction,
    TransactionSource,
)

__all__ = [
    # Transactions
    "ConfirmationStatus",
    "ExpenseDraft",
    "LoadResult",
    "ManualExpenseRecord",
    "MessageTransactionRecord",
    "Transaction",
    "TransactionSource",
    # Categories
    "CATEGORIES",
    "DEFAULT_CATEGORY_ID",
    "DEFAULT_ICON",
    "Category",
    "all_categories",
    "category_icon",
    "get_category",
    # Budgets
    "Budget",
    "BudgetProgress",
    # Receipts
    "CommitResult",
    "ExtractedItem",
    "PendingItem",
    "ReceiptExtraction",
    "ReceiptImage",
    "ReceiptStage",
    "ReceiptState",
    # Analytics
    "CategorySlice",
    "MerchantRank",
    "MonthComparison",
    "MonthlyTrend",
    "MonthSummary",
    "WeekdaySlot",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
