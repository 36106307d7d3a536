import csv
import re
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Sequence

from models import Transaction


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def _decimal_separator(text: str) -> str:
    """Pick the decimal separator of a localised amount, or "" if there is none.

    With both "," and "." present the later one is decimal. A lone separator
    followed by one or two digits is decimal; groups of three are thousands.
    """
    last_comma = text.rfind(",")
    last_dot = text.rfind(".")
    if last_comma >= 0 and last_dot >= 0:
        return "," if last_comma > last_dot else "."
    for sep in (",", "."):
        if sep in text:
            _head, _, tail = text.rpartition(sep)
            if text.count(sep) == 1 and 1 <= len(tail) <= 2 and tail.isdigit():
                return sep
            return ""
    return ""


def parse_amount(value: str) -> Decimal:
    clean = value.strip().replace("Rp", "").replace("$", "").replace(" ", "")
    decimal_sep = _decimal_separator(clean)
    if decimal_sep:
        whole, _, fraction = clean.rpartition(decimal_sep)
        whole = whole.replace(",", "").replace(".", "")
        clean = f"{whole}.{fraction}"
    else:
        clean = clean.replace(",", "").replace(".", "")
    try:
        amount = Decimal(clean)
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc
    if not amount.is_finite():
        raise ValueError("Invalid amount")
    if amount < 0:
        raise ValueError("Amount must be positive")
    return amount.quantize(Decimal("0.01"))


def format_amount(amount: Decimal) -> str:
    return f"{Decimal(amount):.2f}"


def export_transactions(transactions: Sequence[Transaction]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Type", "Date", "Category", "Amount", "Description"])
    for txn in transactions:
        writer.writerow(
            [
                txn.type.value,
                txn.date.isoformat(),
                sanitize_csv_value(txn.category),
                format_amount(txn.amount),
                sanitize_csv_value(txn.description or ""),
            ]
        )
    return output.getvalue()
