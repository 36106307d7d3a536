from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rapidfuzz.distance import Levenshtein

from aggregation import (
    MonthlyPoint,
    PeriodTotals,
    compute_category_breakdown,
    compute_monthly_series,
    compute_period_totals,
    filter_transactions,
    select_recent,
)
from config import get_settings
from csv_utils import export_transactions
from models import (
    RECOMMENDED_CATEGORIES,
    Event,
    Note,
    Todo,
    TodoPriority,
    Transaction,
    TransactionType,
)
from periods import Period, local_today, resolve_period
from schemas import (
    EventIn,
    EventOut,
    NoteIn,
    NoteOut,
    TodoIn,
    TodoOut,
    TodoStatus,
    TransactionIn,
    TransactionOut,
)


logger = logging.getLogger(__name__)


class DataUnavailable(RuntimeError):
    """The store could not be read; callers must not show partial aggregates."""


def canonical_category(kind: TransactionType, label: str) -> str:
    """Return ``label`` as typed, using the recommended spelling on an exact
    case-insensitive match. Categories are free-form and never merged."""
    raw = label.strip()
    lowered = raw.lower()
    for option in RECOMMENDED_CATEGORIES[kind]:
        if option.lower() == lowered:
            return option
    return raw


def suggest_categories(
    kind: TransactionType, label: str, *, max_distance: int = 2, limit: int = 3
) -> list[str]:
    """Recommended categories close to ``label``, nearest first.

    Only a hint for the entry form; nothing is rewritten on save.
    """
    lowered = label.strip().lower()
    if not lowered:
        return []
    scored: list[tuple[int, int, str]] = []
    for position, option in enumerate(RECOMMENDED_CATEGORIES[kind]):
        dist = int(Levenshtein.distance(lowered, option.lower()))
        if dist <= max_distance:
            scored.append((dist, position, option))
    return [option for _dist, _position, option in sorted(scored)[:limit]]


class TransactionService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == self.user_id)
            .order_by(Transaction.date.asc(), Transaction.created_at.asc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, transaction_id: str) -> Transaction:
        txn = self.session.scalar(
            select(Transaction).where(
                Transaction.user_id == self.user_id, Transaction.id == transaction_id
            )
        )
        if not txn:
            raise ValueError("Transaction not found")
        return txn

    def create(self, data: TransactionIn) -> Transaction:
        txn = Transaction(
            user_id=self.user_id,
            type=data.type,
            amount=data.amount,
            category=canonical_category(data.type, data.category),
            description=data.description,
            date=data.date,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        logger.info(
            f"transaction_created: id={txn.id} user={self.user_id} "
            f"type={txn.type.value} date={txn.date}"
        )
        return txn

    def update(self, transaction_id: str, data: TransactionIn) -> Transaction:
        txn = self.get(transaction_id)
        # Whole record is replaced; there is no version check (last write wins).
        txn.type = data.type
        txn.amount = data.amount
        txn.category = canonical_category(data.type, data.category)
        txn.description = data.description
        txn.date = data.date
        self.session.commit()
        self.session.refresh(txn)
        logger.info(f"transaction_updated: id={txn.id} user={self.user_id}")
        return txn

    def delete(self, transaction_id: str) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()
        logger.info(f"transaction_deleted: id={transaction_id} user={self.user_id}")


@dataclass(frozen=True)
class DashboardView:
    period: Period
    totals: PeriodTotals
    expense_breakdown: dict[str, Decimal]
    income_breakdown: dict[str, Decimal]
    monthly_series: list[MonthlyPoint]
    recent: list[Transaction] = field(default_factory=list)


@dataclass(frozen=True)
class LedgerView:
    period: Period
    kind: Optional[TransactionType]
    totals: PeriodTotals
    transactions: list[Transaction]


class MetricsService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def _load(self) -> list[Transaction]:
        try:
            return TransactionService(self.session, self.user_id).list_all()
        except SQLAlchemyError as exc:
            logger.exception(f"transactions_unavailable: user={self.user_id}")
            raise DataUnavailable("Transactions could not be loaded") from exc

    def dashboard(
        self, period_key: Optional[str], *, recent_limit: Optional[int] = None
    ) -> DashboardView:
        period = resolve_period(period_key or "this_month", today=local_today())
        transactions = self._load()
        current = filter_transactions(transactions, period_key=period.slug)
        limit = recent_limit if recent_limit is not None else get_settings().recent_limit
        view = DashboardView(
            period=period,
            totals=compute_period_totals(transactions, period.slug),
            expense_breakdown=compute_category_breakdown(
                transactions, TransactionType.expense, period.slug
            ),
            income_breakdown=compute_category_breakdown(
                transactions, TransactionType.income, period.slug
            ),
            monthly_series=compute_monthly_series(transactions),
            recent=select_recent(current, limit),
        )
        logger.debug(
            f"dashboard_built: user={self.user_id} period={period.slug} "
            f"transactions={len(transactions)}"
        )
        return view

    def ledger(
        self,
        period_key: Optional[str] = None,
        kind: Optional[TransactionType] = None,
    ) -> LedgerView:
        period = resolve_period(period_key, today=local_today())
        transactions = self._load()
        selected = filter_transactions(transactions, kind=kind, period_key=period.slug)
        return LedgerView(
            period=period,
            kind=kind,
            totals=compute_period_totals(transactions, period.slug),
            transactions=select_recent(selected, len(selected)),
        )

    def monthly_series(self) -> list[MonthlyPoint]:
        return compute_monthly_series(self._load())


class EventService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[Event]:
        stmt = (
            select(Event)
            .where(Event.user_id == self.user_id)
            .order_by(Event.date.asc(), Event.time.asc())
        )
        return list(self.session.scalars(stmt).all())

    def on_date(self, day: date) -> list[Event]:
        return [event for event in self.list_all() if event.date == day]

    def get(self, event_id: str) -> Event:
        event = self.session.scalar(
            select(Event).where(Event.user_id == self.user_id, Event.id == event_id)
        )
        if not event:
            raise ValueError("Event not found")
        return event

    def create(self, data: EventIn) -> Event:
        event = Event(user_id=self.user_id, **data.model_dump())
        self.session.add(event)
        self.session.commit()
        self.session.refresh(event)
        logger.info(f"event_created: id={event.id} user={self.user_id}")
        return event

    def update(self, event_id: str, data: EventIn) -> Event:
        event = self.get(event_id)
        for key, value in data.model_dump().items():
            setattr(event, key, value)
        self.session.commit()
        self.session.refresh(event)
        return event

    def delete(self, event_id: str) -> None:
        event = self.get(event_id)
        self.session.delete(event)
        self.session.commit()
        logger.info(f"event_deleted: id={event_id} user={self.user_id}")


class TodoService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def list(
        self,
        status: TodoStatus = "all",
        priority: Optional[TodoPriority] = None,
    ) -> list[Todo]:
        stmt = (
            select(Todo)
            .where(Todo.user_id == self.user_id)
            .order_by(Todo.created_at.desc())
        )
        if status == "active":
            stmt = stmt.where(Todo.completed.is_(False))
        elif status == "completed":
            stmt = stmt.where(Todo.completed.is_(True))
        if priority:
            stmt = stmt.where(Todo.priority == priority)
        return list(self.session.scalars(stmt).all())

    def counts(self) -> dict[str, int]:
        todos = self.list()
        completed = sum(1 for todo in todos if todo.completed)
        return {"active": len(todos) - completed, "completed": completed}

    def get(self, todo_id: str) -> Todo:
        todo = self.session.scalar(
            select(Todo).where(Todo.user_id == self.user_id, Todo.id == todo_id)
        )
        if not todo:
            raise ValueError("Todo not found")
        return todo

    def create(self, data: TodoIn) -> Todo:
        todo = Todo(user_id=self.user_id, **data.model_dump())
        self.session.add(todo)
        self.session.commit()
        self.session.refresh(todo)
        logger.info(f"todo_created: id={todo.id} user={self.user_id}")
        return todo

    def update(self, todo_id: str, data: TodoIn) -> Todo:
        todo = self.get(todo_id)
        for key, value in data.model_dump().items():
            setattr(todo, key, value)
        self.session.commit()
        self.session.refresh(todo)
        return todo

    def toggle(self, todo_id: str) -> Todo:
        todo = self.get(todo_id)
        todo.completed = not todo.completed
        self.session.commit()
        self.session.refresh(todo)
        return todo

    def delete(self, todo_id: str) -> None:
        todo = self.get(todo_id)
        self.session.delete(todo)
        self.session.commit()
        logger.info(f"todo_deleted: id={todo_id} user={self.user_id}")

    def due_reminders(self, today: date) -> list[Todo]:
        stmt = (
            select(Todo)
            .where(
                Todo.user_id == self.user_id,
                Todo.completed.is_(False),
                Todo.reminder_enabled.is_(True),
                Todo.due_date.is_not(None),
                Todo.due_date <= today,
            )
            .order_by(Todo.due_date.asc())
        )
        return list(self.session.scalars(stmt).all())

    @staticmethod
    def users_with_reminders(session: Session) -> list[str]:
        stmt = (
            select(Todo.user_id)
            .where(Todo.completed.is_(False), Todo.reminder_enabled.is_(True))
            .distinct()
        )
        return list(session.scalars(stmt).all())


class NoteService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def list(self, query: Optional[str] = None, tag: Optional[str] = None) -> list[Note]:
        stmt = (
            select(Note)
            .where(Note.user_id == self.user_id)
            .order_by(Note.updated_at.desc())
        )
        notes = list(self.session.scalars(stmt).all())
        needle = (query or "").strip().lower()
        selected: list[Note] = []
        for note in notes:
            if needle and needle not in note.title.lower() and needle not in (
                note.content or ""
            ).lower():
                continue
            if tag and tag not in (note.tags or []):
                continue
            selected.append(note)
        return selected

    def all_tags(self) -> list[str]:
        tags: set[str] = set()
        for note in self.list():
            tags.update(note.tags or [])
        return sorted(tags)

    def get(self, note_id: str) -> Note:
        note = self.session.scalar(
            select(Note).where(Note.user_id == self.user_id, Note.id == note_id)
        )
        if not note:
            raise ValueError("Note not found")
        return note

    def create(self, data: NoteIn) -> Note:
        note = Note(user_id=self.user_id, **data.model_dump())
        self.session.add(note)
        self.session.commit()
        self.session.refresh(note)
        logger.info(f"note_created: id={note.id} user={self.user_id}")
        return note

    def update(self, note_id: str, data: NoteIn) -> Note:
        note = self.get(note_id)
        for key, value in data.model_dump().items():
            setattr(note, key, value)
        self.session.commit()
        self.session.refresh(note)
        return note

    def delete(self, note_id: str) -> None:
        note = self.get(note_id)
        self.session.delete(note)
        self.session.commit()
        logger.info(f"note_deleted: id={note_id} user={self.user_id}")


class ExportService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def as_json(self) -> dict[str, object]:
        transactions = TransactionService(self.session, self.user_id).list_all()
        events = EventService(self.session, self.user_id).list_all()
        todos = TodoService(self.session, self.user_id).list()
        notes = NoteService(self.session, self.user_id).list()
        logger.info(
            f"export_json: user={self.user_id} transactions={len(transactions)} "
            f"events={len(events)} todos={len(todos)} notes={len(notes)}"
        )
        return {
            "transactions": [
                TransactionOut.model_validate(txn).model_dump(mode="json")
                for txn in transactions
            ],
            "events": [
                EventOut.model_validate(event).model_dump(mode="json")
                for event in events
            ],
            "todos": [
                TodoOut.model_validate(todo).model_dump(mode="json") for todo in todos
            ],
            "notes": [
                NoteOut.model_validate(note).model_dump(mode="json") for note in notes
            ],
            "exported_at": datetime.now(timezone.utc).isoformat(),
        }

    def transactions_csv(self) -> str:
        transactions = TransactionService(self.session, self.user_id).list_all()
        return export_transactions(transactions)
