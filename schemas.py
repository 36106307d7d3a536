import datetime as dt
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from csv_utils import parse_amount
from models import EventType, TodoPriority, TransactionType


def normalize_tags(values: list[str]) -> list[str]:
    tags: list[str] = []
    for raw in values:
        tag = raw.strip().lstrip("#").strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class TransactionIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: TransactionType
    amount: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    date: dt.date

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_localised_amount(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_amount(value)
        return value

    @field_validator("category")
    @classmethod
    def _strip_category(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Category cannot be empty")
        return value

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: TransactionType
    amount: Decimal
    category: str
    description: Optional[str]
    date: dt.date
    created_at: dt.datetime
    updated_at: dt.datetime


class EventIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    date: dt.date
    time: Optional[dt.time] = None
    type: EventType = EventType.personal


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str]
    date: dt.date
    time: Optional[dt.time]
    type: EventType
    created_at: dt.datetime
    updated_at: dt.datetime


class TodoIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    priority: TodoPriority = TodoPriority.medium
    category: Optional[str] = Field(default=None, max_length=100)
    due_date: Optional[dt.date] = None
    completed: bool = False
    tags: list[str] = Field(default_factory=list)
    reminder_enabled: bool = False

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return normalize_tags(value)


class TodoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str]
    priority: TodoPriority
    category: Optional[str]
    due_date: Optional[dt.date]
    completed: bool
    tags: list[str]
    reminder_enabled: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class NoteIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return normalize_tags(value)


class NoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    tags: list[str]
    created_at: dt.datetime
    updated_at: dt.datetime


class HolidayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    name: str
    is_leave: bool


class PeriodTotalsOut(BaseModel):
    previous_balance: Decimal
    current_income: Decimal
    current_expense: Decimal
    current_balance: Decimal
    total_balance: Decimal


class MonthlyPointOut(BaseModel):
    month_key: str
    income: Decimal
    expense: Decimal
    balance: Decimal


TodoStatus = Literal["all", "active", "completed"]
