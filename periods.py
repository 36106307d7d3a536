import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config import get_settings

_PERIOD_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

ALL_TIME = "all"


class InvalidDate(ValueError):
    pass


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    @property
    def is_all_time(self) -> bool:
        return self.slug == ALL_TIME


def local_today() -> date:
    settings = get_settings()
    return datetime.now(ZoneInfo(settings.timezone)).date()


def _month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 1) - date.resolution
    return date(year, month + 1, 1) - date.resolution


def month_key(value: Union[date, str]) -> str:
    """Return the ``YYYY-MM`` key of a calendar date.

    Strings must be exact ``YYYY-MM-DD`` ISO dates; anything else raises
    ``InvalidDate`` instead of being bucketed somewhere arbitrary.
    """
    if isinstance(value, date):
        return f"{value.year:04d}-{value.month:02d}"
    if isinstance(value, str) and _ISO_DATE_RE.match(value):
        try:
            parsed = date.fromisoformat(value)
        except ValueError as exc:
            raise InvalidDate(f"Invalid date: {value!r}") from exc
        return month_key(parsed)
    raise InvalidDate(f"Invalid date: {value!r}")


def parse_period_key(key: str) -> Period:
    match = _PERIOD_KEY_RE.match(key or "")
    if not match:
        raise ValueError(f"Invalid period key: {key!r} (expected YYYY-MM)")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid period key: {key!r} (month out of range)")
    return Period(key, date(year, month, 1), _month_end(year, month))


def current_period_key(today: Optional[date] = None) -> str:
    return month_key(today or local_today())


def resolve_period(key: Optional[str], *, today: Optional[date] = None) -> Period:
    today = today or local_today()
    if not key or key == ALL_TIME:
        return Period(ALL_TIME, date(1970, 1, 1), date.max)
    if key == "this_month":
        return parse_period_key(current_period_key(today))
    return parse_period_key(key)
