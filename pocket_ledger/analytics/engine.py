"""
Analytics Engine

Pure functions over a ledger snapshot. Nothing here mutates its input,
touches storage, or reads the clock except to default `now`.

Conventions:
- Expenses are transactions with a negative amount, reported as absolute
  values. Income is the positive amounts.
- "Local time" is now.tzinfo. Timestamps are converted to it before
  bucketing by month or weekday.
- Undated transactions never fall in a time bucket.
"""

from collections import defaultdict
from datetime import datetime, timedelta, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from pocket_ledger.models.analytics import (
    CategorySlice,
    MerchantRank,
    MonthComparison,
    MonthlyTrend,
    MonthSummary,
    WeekdaySlot,
)
from pocket_ledger.models.category import category_for_icon
from pocket_ledger.models.transaction import Transaction


ZERO = Decimal("0")
_CENT = Decimal("0.01")


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now().astimezone()
    if now.tzinfo is None:
        return now.astimezone()
    return now


def _round_int(value: Decimal) -> int:
    """Half-up rounding to an int, the way a percentage is displayed."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_bounds(year: int, month: int, tz: Optional[tzinfo]) -> tuple[datetime, datetime]:
    """
    First and last instant of a calendar month in tz.

    The end is inclusive (one microsecond before the next month starts).
    """
    start = datetime(year, month, 1, tzinfo=tz)
    next_year, next_month = _shift_month(year, month, 1)
    end = datetime(next_year, next_month, 1, tzinfo=tz) - timedelta(microseconds=1)
    return start, end


def current_month_bounds(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    now = _now(now)
    return month_bounds(now.year, now.month, now.tzinfo)


def _local(t: Transaction, tz: Optional[tzinfo]) -> Optional[datetime]:
    if t.timestamp is None:
        return None
    return t.timestamp.astimezone(tz)


def _in_range(t: Transaction, start: datetime, end: datetime) -> bool:
    return t.timestamp is not None and start <= t.timestamp <= end


def _expense_total(transactions: Iterable[Transaction], start: datetime, end: datetime) -> Decimal:
    return sum(
        (abs(t.amount) for t in transactions if t.is_expense and _in_range(t, start, end)),
        ZERO,
    )


# =============================================================================
# TRENDS
# =============================================================================

def monthly_trends(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
    months: int = 6,
) -> list[MonthlyTrend]:
    """
    Expenses, income and count for the trailing `months` calendar months.

    Ordered oldest to newest; the last entry is the current month.
    """
    now = _now(now)
    tz = now.tzinfo
    # (year, month) -> [expenses, income, count], oldest first
    totals = {
        _shift_month(now.year, now.month, delta): [ZERO, ZERO, 0]
        for delta in range(-(months - 1), 1)
    }
    for t in transactions:
        local = _local(t, tz)
        if local is None:
            continue
        slot = totals.get((local.year, local.month))
        if slot is None:
            continue
        if t.is_expense:
            slot[0] += abs(t.amount)
        elif t.is_income:
            slot[1] += t.amount
        slot[2] += 1

    return [
        MonthlyTrend(year=year, month=month, expenses=exp, income=inc, count=cnt)
        for (year, month), (exp, inc, cnt) in totals.items()
    ]


def month_over_month(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> MonthComparison:
    """Expense sums of this month vs the previous one."""
    now = _now(now)
    transactions = list(transactions)
    current = _expense_total(transactions, *current_month_bounds(now))
    prev_year, prev_month = _shift_month(now.year, now.month, -1)
    previous = _expense_total(transactions, *month_bounds(prev_year, prev_month, now.tzinfo))

    change = current - previous
    change_percent = _round_int(change / previous * 100) if previous > 0 else 0
    return MonthComparison(
        current=current,
        previous=previous,
        change=change,
        change_percent=change_percent,
    )


# =============================================================================
# MERCHANTS AND PATTERNS
# =============================================================================

def merchant_ranking(
    transactions: Iterable[Transaction],
    limit: int = 5,
) -> list[MerchantRank]:
    """
    Top merchants by total spend.

    Labels are grouped by exact match after trimming; "Cafe" and "cafe"
    are different merchants.
    """
    if limit <= 0:
        return []

    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    last_seen: dict[str, Optional[datetime]] = {}

    for t in transactions:
        if not t.is_expense:
            continue
        label = t.label.strip()
        totals[label] += abs(t.amount)
        counts[label] += 1
        seen = last_seen.get(label)
        if seen is None or (t.timestamp is not None and t.timestamp > seen):
            last_seen[label] = t.timestamp

    ranked = sorted(totals, key=lambda label: totals[label], reverse=True)
    return [
        MerchantRank(
            label=label,
            total=totals[label],
            count=counts[label],
            last_seen=last_seen.get(label),
        )
        for label in ranked[:limit]
    ]


def weekday_pattern(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> list[WeekdaySlot]:
    """
    Spending by local weekday, 0 = Sunday .. 6 = Saturday.

    Always 7 slots, zero-filled. Only dated expenses count.
    """
    tz = _now(now).tzinfo
    totals = [ZERO] * 7
    counts = [0] * 7

    for t in transactions:
        if not t.is_expense:
            continue
        local = _local(t, tz)
        if local is None:
            continue
        # datetime.weekday(): Monday = 0
        slot = (local.weekday() + 1) % 7
        totals[slot] += abs(t.amount)
        counts[slot] += 1

    return [
        WeekdaySlot(
            weekday=day,
            total=totals[day],
            count=counts[day],
            average=(totals[day] / counts[day]).quantize(_CENT) if counts[day] else ZERO,
        )
        for day in range(7)
    ]


def category_breakdown(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
) -> list[CategorySlice]:
    """
    Expenses in [start, end] grouped by icon, largest first.

    Each percentage is rounded on its own, so the slices may not sum to
    exactly 100.
    """
    sums: dict[str, Decimal] = {}
    counts: dict[str, int] = defaultdict(int)
    first_labels: dict[str, str] = {}

    for t in transactions:
        if not t.is_expense or not _in_range(t, start, end):
            continue
        sums[t.icon] = sums.get(t.icon, ZERO) + abs(t.amount)
        counts[t.icon] += 1
        first_labels.setdefault(t.icon, t.label)

    total = sum(sums.values(), ZERO)
    slices = []
    for icon in sorted(sums, key=lambda i: sums[i], reverse=True):
        category = category_for_icon(icon)
        if category is not None:
            label, color = category.label, category.color
        else:
            words = first_labels[icon].split()
            label, color = (words[0] if words else icon), None
        slices.append(CategorySlice(
            icon=icon,
            label=label,
            color=color,
            amount=sums[icon],
            count=counts[icon],
            percentage=_round_int(sums[icon] / total * 100) if total > 0 else 0,
        ))
    return slices


# =============================================================================
# DASHBOARD
# =============================================================================

def month_summary(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> MonthSummary:
    """Income and expenses this month, all-time balance, trailing 7-day net."""
    now = _now(now)
    transactions = list(transactions)
    start, end = current_month_bounds(now)
    week_start = now - timedelta(days=7)

    income = ZERO
    expenses = ZERO
    balance = ZERO
    week_change = ZERO
    for t in transactions:
        balance += t.amount
        if _in_range(t, start, end):
            if t.is_income:
                income += t.amount
            elif t.is_expense:
                expenses += abs(t.amount)
        if t.timestamp is not None and week_start <= t.timestamp <= now:
            week_change += t.amount

    if income > 0:
        spending_ratio = min(_round_int(expenses / income * 100), 100)
        savings_rate = max(100 - spending_ratio, 0)
    else:
        spending_ratio = 0
        savings_rate = 0

    return MonthSummary(
        income=income,
        expenses=expenses,
        balance=balance,
        week_change=week_change,
        spending_ratio=spending_ratio,
        savings_rate=savings_rate,
    )
