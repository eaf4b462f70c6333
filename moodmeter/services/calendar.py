# moodmeter/services/calendar.py
from __future__ import annotations

import calendar as _cal
import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List

from moodmeter.errors import ApiError, ErrorCode
from moodmeter.models import DayMood, MoodEntry
from moodmeter.services import storage
from moodmeter.services.spectrum import average_colors, energy_to_level

DATE_RE = storage.DATE_RE


def validate_date_range(start: str, end: str) -> None:
    """Both ends must look like YYYY-MM-DD; checked before any query runs."""
    for name, value in (("start", start), ("end", end)):
        if not isinstance(value, str) or not DATE_RE.match(value):
            raise ApiError(ErrorCode.INVALID_INPUT, f"{name} must be YYYY-MM-DD, got {value!r}")


@dataclass(frozen=True)
class CalendarMonth:
    year: int
    month: int  # 1-12

    @property
    def start(self) -> str:
        return f"{self.year}-{self.month:02d}-01"

    @property
    def end(self) -> str:
        last_day = _cal.monthrange(self.year, self.month)[1]
        return f"{self.year}-{self.month:02d}-{last_day:02d}"

    @property
    def key(self) -> str:
        return f"{self.year}-{self.month:02d}"

    @property
    def label(self) -> str:
        return f"{_cal.month_name[self.month]} {self.year}"

    def previous(self) -> "CalendarMonth":
        if self.month == 1:
            return CalendarMonth(self.year - 1, 12)
        return CalendarMonth(self.year, self.month - 1)

    def next(self) -> "CalendarMonth":
        if self.month == 12:
            return CalendarMonth(self.year + 1, 1)
        return CalendarMonth(self.year, self.month + 1)

    def contains(self, date_str: str) -> bool:
        return date_str[:7] == self.key

    @classmethod
    def parse(cls, key: str) -> "CalendarMonth":
        m = re.match(r"^(\d{4})-(\d{2})$", key or "")
        if not m or not 1 <= int(m.group(2)) <= 12:
            raise ApiError(ErrorCode.INVALID_INPUT, f"month must be YYYY-MM, got {key!r}")
        return cls(int(m.group(1)), int(m.group(2)))


def current_month(today: date | None = None) -> CalendarMonth:
    d = today or date.today()
    return CalendarMonth(d.year, d.month)


def build_day_moods(entries: Iterable[MoodEntry]) -> Dict[str, DayMood]:
    """
    Reduce raw entries to one DayMood per date: circular-mean colour of all
    the day's entries, level of the most recently created one.
    """
    by_day: Dict[str, List[MoodEntry]] = {}
    for e in entries:
        by_day.setdefault(e.date, []).append(e)

    out: Dict[str, DayMood] = {}
    for day in sorted(by_day):
        day_entries = sorted(by_day[day], key=lambda e: (e.created_at, e.id))
        latest = day_entries[-1]
        out[day] = DayMood(
            date=day,
            dominant_color=average_colors([e.color for e in day_entries]),
            energy_level=energy_to_level(latest.energy_value),
            entry_count=len(day_entries),
            entries=day_entries,
        )
    return out


def get_day_moods(user_id: str, start: str, end: str) -> Dict[str, DayMood]:
    validate_date_range(start, end)
    return build_day_moods(storage.load_entries_in_range(user_id, start, end))


def get_month_moods(user_id: str, month: CalendarMonth) -> Dict[str, DayMood]:
    return get_day_moods(user_id, month.start, month.end)
