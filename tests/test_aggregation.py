from datetime import date
from decimal import Decimal

import pytest

from aggregation import (
    MonthlyPoint,
    compute_category_breakdown,
    compute_monthly_series,
    compute_period_totals,
    filter_transactions,
    select_recent,
)
from models import Transaction, TransactionType
from periods import InvalidDate


def make_txn(kind: TransactionType, amount: str, day: date, category: str = "Misc"):
    return Transaction(
        user_id="user-1",
        type=kind,
        amount=Decimal(amount),
        category=category,
        date=day,
    )


INCOME = TransactionType.income
EXPENSE = TransactionType.expense


@pytest.fixture()
def sample():
    return [
        make_txn(INCOME, "1000", date(2025, 1, 5), "Salary"),
        make_txn(EXPENSE, "300", date(2025, 1, 10), "Housing"),
        make_txn(INCOME, "500", date(2025, 2, 1), "Freelance"),
    ]


def test_period_totals_carry_previous_balance(sample) -> None:
    totals = compute_period_totals(sample, "2025-02")

    assert totals.previous_balance == Decimal("700")
    assert totals.current_income == Decimal("500")
    assert totals.current_expense == Decimal("0")
    assert totals.current_balance == Decimal("500")
    assert totals.total_balance == Decimal("1200")


def test_first_day_of_period_counts_as_current() -> None:
    txns = [make_txn(EXPENSE, "40", date(2025, 3, 1))]

    totals = compute_period_totals(txns, "2025-03")

    assert totals.previous_balance == 0
    assert totals.current_expense == Decimal("40")


def test_later_months_are_ignored_by_period_totals(sample) -> None:
    totals = compute_period_totals(sample, "2025-01")

    assert totals.previous_balance == 0
    assert totals.current_income == Decimal("1000")
    assert totals.current_expense == Decimal("300")
    assert totals.total_balance == Decimal("700")


@pytest.mark.parametrize("key", ["2024-12", "2025-01", "2025-02", "2025-06"])
def test_previous_plus_current_equals_total(sample, key) -> None:
    totals = compute_period_totals(sample, key)
    assert totals.previous_balance + totals.current_balance == totals.total_balance


def test_all_time_period_has_no_previous_balance(sample) -> None:
    totals = compute_period_totals(sample, None)

    assert totals.previous_balance == 0
    assert totals.current_income == Decimal("1500")
    assert totals.current_expense == Decimal("300")
    assert totals.total_balance == Decimal("1200")


def test_malformed_string_date_is_rejected() -> None:
    bad = make_txn(INCOME, "10", date(2025, 1, 1))
    bad.date = "2025/01/01"

    with pytest.raises(InvalidDate):
        compute_period_totals([bad], "2025-01")


@pytest.mark.parametrize("key", ["this_month", "2025-13", "Jan 2025"])
def test_period_key_must_be_explicit(sample, key) -> None:
    with pytest.raises(ValueError, match="Invalid period key"):
        compute_period_totals(sample, key)
    with pytest.raises(ValueError, match="Invalid period key"):
        compute_category_breakdown(sample, EXPENSE, key)


def test_category_breakdown_accumulates_duplicates(sample) -> None:
    sample.append(make_txn(EXPENSE, "25.50", date(2025, 1, 20), "Housing"))
    sample.append(make_txn(EXPENSE, "10", date(2025, 1, 21), "Food & Dining"))

    breakdown = compute_category_breakdown(sample, EXPENSE, "2025-01")

    assert breakdown == {
        "Housing": Decimal("325.50"),
        "Food & Dining": Decimal("10"),
    }


def test_category_breakdown_without_period_covers_all_time(sample) -> None:
    breakdown = compute_category_breakdown(sample, INCOME)
    assert breakdown == {"Salary": Decimal("1000"), "Freelance": Decimal("500")}


def test_category_breakdown_sums_match_period_totals(sample) -> None:
    sample.append(make_txn(INCOME, "75", date(2025, 2, 14), "Salary"))
    sample.append(make_txn(EXPENSE, "12", date(2025, 2, 15), "Needs"))
    totals = compute_period_totals(sample, "2025-02")

    income = compute_category_breakdown(sample, INCOME, "2025-02")
    expense = compute_category_breakdown(sample, EXPENSE, "2025-02")

    assert sum(income.values()) == totals.current_income
    assert sum(expense.values()) == totals.current_expense


def test_monthly_series_has_running_balance(sample) -> None:
    assert compute_monthly_series(sample) == [
        MonthlyPoint("2025-01", Decimal("1000"), Decimal("300"), Decimal("700")),
        MonthlyPoint("2025-02", Decimal("500"), Decimal("0"), Decimal("1200")),
    ]


def test_monthly_series_skips_empty_months_and_sorts() -> None:
    txns = [
        make_txn(EXPENSE, "50", date(2025, 5, 3)),
        make_txn(INCOME, "200", date(2024, 11, 30)),
        make_txn(INCOME, "20", date(2025, 5, 1)),
    ]

    series = compute_monthly_series(txns)

    assert [point.month_key for point in series] == ["2024-11", "2025-05"]
    assert series[-1].balance == Decimal("170")


def test_last_monthly_balance_matches_full_history_total(sample) -> None:
    sample.append(make_txn(EXPENSE, "999.99", date(2023, 7, 7)))
    series = compute_monthly_series(sample)

    assert series[-1].balance == compute_period_totals(sample, None).total_balance


def test_select_recent_is_date_descending_and_stable() -> None:
    first = make_txn(EXPENSE, "1", date(2025, 1, 10), "a")
    second = make_txn(EXPENSE, "2", date(2025, 1, 10), "b")
    older = make_txn(EXPENSE, "3", date(2025, 1, 2), "c")
    newest = make_txn(INCOME, "4", date(2025, 1, 28), "d")
    txns = [older, first, newest, second]

    recent = select_recent(txns, 3)

    assert recent == [newest, first, second]
    assert txns == [older, first, newest, second]


def test_select_recent_truncates_to_five_by_default() -> None:
    txns = [make_txn(INCOME, "1", date(2025, 1, day)) for day in range(1, 9)]

    recent = select_recent(txns)

    assert [txn.date.day for txn in recent] == [8, 7, 6, 5, 4]


def test_filter_transactions_by_kind_and_month(sample) -> None:
    assert filter_transactions(sample, kind=INCOME) == [sample[0], sample[2]]
    assert filter_transactions(sample, period_key="2025-01") == sample[:2]
    assert filter_transactions(sample, kind=EXPENSE, period_key="2025-02") == []


def test_aggregations_are_repeatable(sample) -> None:
    assert compute_period_totals(sample, "2025-02") == compute_period_totals(
        sample, "2025-02"
    )
    assert compute_monthly_series(sample) == compute_monthly_series(sample)
    assert compute_category_breakdown(
        sample, EXPENSE, "2025-01"
    ) == compute_category_breakdown(sample, EXPENSE, "2025-01")


def test_empty_input_yields_zeroes() -> None:
    totals = compute_period_totals([], "2025-02")

    assert totals.previous_balance == 0
    assert totals.total_balance == 0
    assert compute_category_breakdown([], EXPENSE, "2025-02") == {}
    assert compute_monthly_series([]) == []
    assert select_recent([]) == []
