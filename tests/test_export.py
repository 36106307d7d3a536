import csv
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from csv_utils import parse_amount, sanitize_csv_value
from models import TransactionType
from schemas import NoteIn, TransactionIn
from services import ExportService, NoteService, TransactionService


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1,250", "1250.00"),
        ("1.250", "1250.00"),
        ("1,250,000", "1250000.00"),
        ("1.250,50", "1250.50"),
        ("1,250.5", "1250.50"),
        ("12,5", "12.50"),
        (" $ 12.5 ", "12.50"),
        ("Rp 15.000", "15000.00"),
        ("300", "300.00"),
    ],
)
def test_parse_amount_separators(raw, expected) -> None:
    assert parse_amount(raw) == Decimal(expected)


def test_parse_amount_rejects_bad_input() -> None:
    with pytest.raises(ValueError, match="Invalid amount"):
        parse_amount("ten")
    with pytest.raises(ValueError, match="Amount must be positive"):
        parse_amount("-3")


def test_transaction_input_accepts_localised_amounts() -> None:
    data = TransactionIn(
        type=TransactionType.expense,
        amount="1.250,50",
        category="Housing",
        date=date(2025, 1, 1),
    )
    assert data.amount == Decimal("1250.50")
    assert (
        TransactionIn(
            type=TransactionType.income,
            amount=Decimal("7"),
            category="Salary",
            date=date(2025, 1, 1),
        ).amount
        == Decimal("7")
    )


def test_sanitize_csv_value_blocks_formulas() -> None:
    assert sanitize_csv_value("=SUM(A1:A2)") == "\t=SUM(A1:A2)"
    assert sanitize_csv_value("Groceries") == "Groceries"


def test_transactions_csv_export(session) -> None:
    TransactionService(session, "alice").create(
        TransactionIn(
            type=TransactionType.expense,
            amount="9.9",
            category="Needs",
            description="=cmd|' /C calc'!A0",
            date=date(2025, 6, 2),
        )
    )

    content = ExportService(session, "alice").transactions_csv()
    rows = list(csv.reader(StringIO(content)))

    assert rows[0] == ["Type", "Date", "Category", "Amount", "Description"]
    assert rows[1][:4] == ["expense", "2025-06-02", "Needs", "9.90"]
    assert rows[1][4].startswith("\t=")


def test_json_export_bundles_every_entity(session) -> None:
    TransactionService(session, "alice").create(
        TransactionIn(
            type=TransactionType.income,
            amount="100",
            category="Salary",
            date=date(2025, 6, 1),
        )
    )
    NoteService(session, "alice").create(NoteIn(title="Hello"))
    NoteService(session, "bob").create(NoteIn(title="Not mine"))

    bundle = ExportService(session, "alice").as_json()

    assert set(bundle) == {"transactions", "events", "todos", "notes", "exported_at"}
    assert bundle["transactions"][0]["category"] == "Salary"
    assert bundle["transactions"][0]["date"] == "2025-06-01"
    assert [n["title"] for n in bundle["notes"]] == ["Hello"]
    assert bundle["events"] == []
