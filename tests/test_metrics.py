from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from models import TransactionType
from schemas import TransactionIn
from services import DataUnavailable, MetricsService, TransactionService


def seed(session, user_id: str = "alice") -> None:
    service = TransactionService(session, user_id)
    rows = [
        (TransactionType.income, "1000", "Salary", date(2025, 1, 5)),
        (TransactionType.expense, "300", "Housing", date(2025, 1, 10)),
        (TransactionType.income, "500", "Freelance", date(2025, 2, 1)),
        (TransactionType.expense, "40", "Food & Dining", date(2025, 2, 3)),
        (TransactionType.expense, "60", "Food & Dining", date(2025, 2, 9)),
        (TransactionType.expense, "15", "Transportation", date(2025, 2, 9)),
    ]
    for kind, amount, category, day in rows:
        service.create(
            TransactionIn(type=kind, amount=amount, category=category, date=day)
        )


def test_dashboard_view_for_month(session) -> None:
    seed(session)
    seed(session, "bob")

    view = MetricsService(session, "alice").dashboard("2025-02")

    assert view.period.slug == "2025-02"
    assert view.totals.previous_balance == Decimal("700")
    assert view.totals.current_income == Decimal("500")
    assert view.totals.current_expense == Decimal("115")
    assert view.totals.total_balance == Decimal("1085")
    assert view.expense_breakdown == {
        "Food & Dining": Decimal("100"),
        "Transportation": Decimal("15"),
    }
    assert view.income_breakdown == {"Freelance": Decimal("500")}
    assert [p.month_key for p in view.monthly_series] == ["2025-01", "2025-02"]
    assert view.monthly_series[-1].balance == Decimal("1085")
    assert [t.date for t in view.recent] == [
        date(2025, 2, 9),
        date(2025, 2, 9),
        date(2025, 2, 3),
        date(2025, 2, 1),
    ]


def test_dashboard_recent_limit(session) -> None:
    seed(session)

    view = MetricsService(session, "alice").dashboard("2025-02", recent_limit=2)

    assert len(view.recent) == 2


def test_dashboard_for_empty_account(session) -> None:
    view = MetricsService(session, "nobody").dashboard("2025-02")

    assert view.totals.total_balance == 0
    assert view.expense_breakdown == {}
    assert view.income_breakdown == {}
    assert view.monthly_series == []
    assert view.recent == []


def test_ledger_filters_by_type_and_month(session) -> None:
    seed(session)
    metrics = MetricsService(session, "alice")

    expenses = metrics.ledger("2025-02", TransactionType.expense)
    assert [t.category for t in expenses.transactions] == [
        "Food & Dining",
        "Transportation",
        "Food & Dining",
    ]
    assert expenses.totals.total_balance == Decimal("1085")

    everything = metrics.ledger(None)
    assert everything.period.is_all_time
    assert len(everything.transactions) == 6
    assert everything.totals.previous_balance == 0
    assert everything.totals.total_balance == Decimal("1085")


def test_invalid_period_key_raises_value_error(session) -> None:
    with pytest.raises(ValueError):
        MetricsService(session, "alice").dashboard("2025-2")


def test_store_failure_surfaces_as_data_unavailable(session, monkeypatch) -> None:
    def broken(self):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(TransactionService, "list_all", broken)

    with pytest.raises(DataUnavailable):
        MetricsService(session, "alice").dashboard("2025-02")
