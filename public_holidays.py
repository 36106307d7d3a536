from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Optional
from urllib.error import URLError
from urllib.request import Request, urlopen

from config import get_settings

logger = logging.getLogger(__name__)

DAYOFF_API_URL = "https://dayoffapi.vercel.app/api"


@dataclass(frozen=True)
class Holiday:
    date: date
    name: str
    is_leave: bool  # collective leave day rather than an official holiday


class HolidayService:
    """Public holidays shown on the events calendar."""

    def __init__(self) -> None:
        self.settings = get_settings()

    def for_year(self, year: int) -> list[Holiday]:
        if not 1970 <= year <= 9999:
            raise ValueError(f"Invalid year: {year}")
        return list(
            _fetch_holidays(
                year,
                country=self.settings.holiday_country,
                timeout=self.settings.holiday_timeout_secs,
            )
        )

    def on_date(self, day: date) -> Optional[Holiday]:
        return next((h for h in self.for_year(day.year) if h.date == day), None)


def _parse_day(value: str) -> date:
    # the provider does not always zero-pad month and day
    year, month, day = (int(part) for part in value.split("-"))
    return date(year, month, day)


@lru_cache(maxsize=64)
def _fetch_holidays(year: int, *, country: str, timeout: float) -> tuple[Holiday, ...]:
    url = f"{DAYOFF_API_URL}?year={year}&country={country}"
    req = Request(url, headers={"Accept": "application/json"})
    try:
        with urlopen(req, timeout=timeout) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
    except (URLError, TimeoutError, json.JSONDecodeError) as exc:
        raise RuntimeError(f"Failed to fetch holidays for {year}") from exc

    try:
        holidays = tuple(
            Holiday(
                date=_parse_day(item["tanggal"]),
                name=item["keterangan"],
                is_leave=bool(item.get("is_cuti", False)),
            )
            for item in payload
        )
    except Exception as exc:
        raise RuntimeError("Unexpected holiday provider response") from exc

    logger.info(f"holidays_fetched: year={year} country={country} count={len(holidays)}")
    return tuple(sorted(holidays, key=lambda h: h.date))
