"""Calendar bucketing of memory records.

Pure, stateless projections of the store's list onto a month grid. The grid
is Sunday-first: a month whose 1st falls on a Wednesday gets three leading
blank cells.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from musicdiary.core.models import Language, MemoryRecord

WEEKDAY_HEADERS = {
    Language.JA: ("日", "月", "火", "水", "木", "金", "土"),
    Language.EN: ("SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"),
}


@dataclass(frozen=True)
class DayCell:
    """One day of the month and the records dated on it."""

    day: int
    records: tuple[MemoryRecord, ...] = ()
    is_today: bool = False


@dataclass(frozen=True)
class MonthGrid:
    """A month laid out for a 7-column, Sunday-first grid."""

    year: int
    month: int
    leading_blanks: int
    days: tuple[DayCell, ...] = field(default_factory=tuple)

    def rows(self) -> list[list[DayCell | None]]:
        """Split into week rows; blanks (leading and trailing) are None."""
        cells: list[DayCell | None] = [None] * self.leading_blanks + list(self.days)
        if len(cells) % 7:
            cells.extend([None] * (7 - len(cells) % 7))
        return [cells[i : i + 7] for i in range(0, len(cells), 7)]

    def record_count(self) -> int:
        return sum(len(cell.records) for cell in self.days)


def days_in_month(year: int, month: int) -> int:
    next_year, next_month = shift_month(year, month, 1)
    return (date(next_year, next_month, 1) - timedelta(days=1)).day


def first_weekday_offset(year: int, month: int) -> int:
    """Column of the 1st in a Sunday-first week (Sunday=0 ... Saturday=6)."""
    # date.weekday() is Monday=0 ... Sunday=6
    return (date(year, month, 1).weekday() + 1) % 7


def records_for_day(
    records: Iterable[MemoryRecord], year: int, month: int, day: int
) -> list[MemoryRecord]:
    """Records whose local date is exactly year/month/day, in list order."""
    matches = []
    for record in records:
        when = record.recorded_at
        if when.year == year and when.month == month and when.day == day:
            matches.append(record)
    return matches


def build_month_grid(
    records: Iterable[MemoryRecord],
    year: int,
    month: int,
    today: date | None = None,
) -> MonthGrid:
    """Partition records into the day cells of one month."""
    today = today or date.today()
    records = list(records)
    cells = tuple(
        DayCell(
            day=day,
            records=tuple(records_for_day(records, year, month, day)),
            is_today=today == date(year, month, day),
        )
        for day in range(1, days_in_month(year, month) + 1)
    )
    return MonthGrid(
        year=year,
        month=month,
        leading_blanks=first_weekday_offset(year, month),
        days=cells,
    )


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Move ``offset`` months forward (or back, if negative)."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def weekday_headers(language: Language | str) -> tuple[str, ...]:
    return WEEKDAY_HEADERS[Language(language)]
