"""
Rolling reporting windows.

`month` is always the 31 calendar days ending at and including today, and
`year` the 365 calendar days ending today. These are trailing windows, not
calendar-month or calendar-year boundaries.
"""

from collections.abc import Iterator
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict

from healthspan.domain.models import ReportingPeriod

ONE_DAY = timedelta(days=1)

WINDOW_DAYS: dict[ReportingPeriod, int] = {
    ReportingPeriod.DAY: 1,
    ReportingPeriod.MONTH: 31,
    ReportingPeriod.YEAR: 365,
}


class RollingWindow(BaseModel):
    """A run of whole calendar days, [start, end)."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    days: int

    @property
    def anchor(self) -> datetime:
        return self.start

    def day_starts(self) -> Iterator[datetime]:
        for offset in range(self.days):
            yield _shift_days(self.start, offset)


def start_of_day(ts: datetime) -> datetime:
    """Midnight of ts's calendar day, in ts's own timezone."""
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


def _shift_days(day_start: datetime, days: int) -> datetime:
    # Wall-clock arithmetic keeps midnight on DST transition days.
    return start_of_day(day_start + timedelta(days=days))


def rolling_window(period: ReportingPeriod, now: datetime) -> RollingWindow:
    days = WINDOW_DAYS[period]
    today = start_of_day(now)
    return RollingWindow(
        start=_shift_days(today, -(days - 1)),
        end=_shift_days(today, 1),
        days=days,
    )


def night_bounds(day: datetime) -> tuple[datetime, datetime]:
    """[00:00, 24:00) of the calendar day containing `day`."""
    start = start_of_day(day)
    return start, _shift_days(start, 1)
