"""Balance, category and time-series aggregation over transaction snapshots.

Every function here is pure: it reads the transactions it is given, never
mutates them, and returns freshly built values. Amounts come back as raw
``Decimal``; formatting belongs to whoever renders them.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Sequence, TypeVar

from models import TransactionType
from periods import ALL_TIME, month_key, parse_period_key

ZERO = Decimal("0")


class TransactionLike(Protocol):
    type: TransactionType
    amount: Decimal
    category: str
    date: date


T = TypeVar("T", bound=TransactionLike)


@dataclass(frozen=True)
class PeriodTotals:
    previous_balance: Decimal
    current_income: Decimal
    current_expense: Decimal
    current_balance: Decimal
    total_balance: Decimal


@dataclass(frozen=True)
class MonthlyPoint:
    month_key: str
    income: Decimal
    expense: Decimal
    balance: Decimal


def signed_amount(txn: TransactionLike) -> Decimal:
    amount = Decimal(txn.amount)
    return amount if txn.type == TransactionType.income else -amount


def _period_filter(period_key: Optional[str]) -> Optional[str]:
    # Relative keys like "this_month" depend on the caller's clock; resolve them first
    if not period_key or period_key == ALL_TIME:
        return None
    return parse_period_key(period_key).slug


def compute_period_totals(
    transactions: Iterable[TransactionLike], period_key: Optional[str]
) -> PeriodTotals:
    """Split history at the start of ``period_key`` and total both sides.

    Transactions in months before the period feed ``previous_balance``;
    transactions in the period month feed the income/expense totals. A
    transaction on the first day of the month is part of the period. An
    all-time key leaves ``previous_balance`` at zero and counts everything as
    current.
    """
    key = _period_filter(period_key)
    previous = ZERO
    income = ZERO
    expense = ZERO
    for txn in transactions:
        txn_key = month_key(txn.date)
        if key is not None and txn_key < key:
            previous += signed_amount(txn)
            continue
        if key is not None and txn_key != key:
            continue
        if txn.type == TransactionType.income:
            income += Decimal(txn.amount)
        else:
            expense += Decimal(txn.amount)

    current = income - expense
    return PeriodTotals(
        previous_balance=previous,
        current_income=income,
        current_expense=expense,
        current_balance=current,
        total_balance=previous + current,
    )


def compute_category_breakdown(
    transactions: Iterable[TransactionLike],
    kind: TransactionType,
    period_key: Optional[str] = None,
) -> dict[str, Decimal]:
    key = _period_filter(period_key)
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for txn in transactions:
        if txn.type != kind:
            continue
        if key is not None and month_key(txn.date) != key:
            continue
        totals[txn.category] += Decimal(txn.amount)
    return dict(totals)


def compute_monthly_series(
    transactions: Iterable[TransactionLike],
) -> list[MonthlyPoint]:
    """Income, expense and running balance per month that has activity.

    Months without transactions are skipped, so consecutive points are not
    necessarily consecutive months.
    """
    income: dict[str, Decimal] = defaultdict(lambda: ZERO)
    expense: dict[str, Decimal] = defaultdict(lambda: ZERO)
    keys: set[str] = set()
    for txn in transactions:
        key = month_key(txn.date)
        keys.add(key)
        if txn.type == TransactionType.income:
            income[key] += Decimal(txn.amount)
        else:
            expense[key] += Decimal(txn.amount)

    series: list[MonthlyPoint] = []
    running = ZERO
    for key in sorted(keys):
        running += income[key] - expense[key]
        series.append(
            MonthlyPoint(
                month_key=key,
                income=income[key],
                expense=expense[key],
                balance=running,
            )
        )
    return series


def select_recent(transactions: Sequence[T], n: int = 5) -> list[T]:
    if n <= 0:
        return []
    # sorted() is stable with reverse=True, so same-day entries keep input order
    return sorted(transactions, key=lambda txn: txn.date, reverse=True)[:n]


def filter_transactions(
    transactions: Iterable[T],
    kind: Optional[TransactionType] = None,
    period_key: Optional[str] = None,
) -> list[T]:
    key = _period_filter(period_key)
    selected: list[T] = []
    for txn in transactions:
        if kind is not None and txn.type != kind:
            continue
        if key is not None and month_key(txn.date) != key:
            continue
        selected.append(txn)
    return selected
