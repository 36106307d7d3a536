from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    Index,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Mapped, mapped_column

from database import Base, engine


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class EventType(str, Enum):
    personal = "personal"
    work = "work"
    event = "event"


class TodoPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


EXPENSE_CATEGORIES = (
    "Food & Dining",
    "Transportation",
    "Housing",
    "Utilities",
    "To Lend",
    "Needs",
    "Entertainment",
    "Healthcare",
    "Shopping",
    "Education",
)

INCOME_CATEGORIES = (
    "Salary",
    "Freelance",
    "Investment",
    "Business",
    "Other Income",
)

RECOMMENDED_CATEGORIES: dict[TransactionType, tuple[str, ...]] = {
    TransactionType.expense: EXPENSE_CATEGORIES,
    TransactionType.income: INCOME_CATEGORIES,
}


def _new_id() -> str:
    return str(uuid4())


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2, asdecimal=True), nullable=False
    )
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "date"),
        Index("ix_transactions_user_type_date", "user_id", "type", "date"),
        CheckConstraint("amount >= 0", name="ck_transactions_amount_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"Transaction(id={self.id!r}, type={self.type}, amount={self.amount}, "
            f"category={self.category!r}, date={self.date})"
        )


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    time: Mapped[Optional[time]] = mapped_column(Time)
    type: Mapped[EventType] = mapped_column(
        SAEnum(EventType), nullable=False, default=EventType.personal
    )

    __table_args__ = (Index("ix_events_user_date", "user_id", "date"),)


class Todo(Base, TimestampMixin):
    __tablename__ = "todos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    priority: Mapped[TodoPriority] = mapped_column(
        SAEnum(TodoPriority), nullable=False, default=TodoPriority.medium
    )
    category: Mapped[Optional[str]] = mapped_column(String(100))
    due_date: Mapped[Optional[date]] = mapped_column(Date)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    reminder_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    __table_args__ = (Index("ix_todos_user_completed", "user_id", "completed"),)


class Note(Base, TimestampMixin):
    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    __table_args__ = (Index("ix_notes_user", "user_id"),)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create any missing tables; Alembic owns changes to existing ones."""
    Base.metadata.create_all(bind or engine)
