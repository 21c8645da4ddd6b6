# -*- coding: utf-8 -*-
# SPDX-License-Identifier: FAFOL

"""Resolve time range expressions like "week", "month-1" or
"2019-01-23..month+3" into concrete, inclusive date ranges."""

import re
from dataclasses import dataclass
from datetime import date, timedelta

import arrow
from rich.console import Console, ConsoleOptions, RenderResult

from readmine_errors import InvalidMonthOffset, InvalidTimeRangeFormat, InvalidWeekOffset

RANGE_SEPARATOR = '..'
MONTH_PLACEHOLDER = 'month'
WEEK_PLACEHOLDER = 'week'
DATE_FORMAT = 'YYYY-MM-DD'

OFFSET_RE = re.compile(r'([+-])([0-9]+)')
MAX_OFFSET = 2 ** 31 - 1
ISO_DATE_RE = re.compile(r'[0-9]{4}-[0-9]{1,2}-[0-9]{1,2}')


def split_month_offset(offset: int):
    """Split a month offset into (years, months), truncating toward zero.

    -13 is (-1, -1), not (-2, 11).
    """
    years, months = divmod(abs(offset), 12)
    if offset < 0:
        return -years, -months
    return years, months


class TimePoint:
    """A parsed but unresolved point in time."""

    def lower_bound(self, today: date) -> date:
        raise NotImplementedError

    def upper_bound(self, today: date) -> date:
        raise NotImplementedError


@dataclass(frozen=True)
class DatePoint(TimePoint):
    """An absolute date, a single day in either bound."""
    value: date

    def lower_bound(self, today: date) -> date:
        return self.value

    def upper_bound(self, today: date) -> date:
        return self.value


@dataclass(frozen=True)
class WeekPoint(TimePoint):
    """The Monday to Sunday week of `today`, shifted by `offset` weeks."""
    offset: int

    def _shifted(self, today: date, days: int) -> date:
        try:
            return arrow.Arrow.fromdate(today).shift(days=days, weeks=self.offset).date()
        except (OverflowError, ValueError) as err:
            raise InvalidWeekOffset(self.offset) from err

    def lower_bound(self, today: date) -> date:
        return self._shifted(today, -today.weekday())

    def upper_bound(self, today: date) -> date:
        return self._shifted(today, 6 - today.weekday())


@dataclass(frozen=True)
class MonthPoint(TimePoint):
    """The calendar month of `today`, shifted by `offset` months."""
    offset: int

    def first_day(self, today: date) -> date:
        """First day of the shifted month.

        The month number is not wrapped into the next or previous year, so
        e.g. month+5 in August (month 13) is an error, as is month-1 in
        January (month 0). Only whole multiples of 12 move the year.

        Today's day is kept while shifting, so a day the target month lacks
        is an error too: month+1 on January 31, month-12 on February 29.
        """
        year_offset, month_offset = split_month_offset(self.offset)
        try:
            shifted = today.replace(year=today.year + year_offset)
            shifted = shifted.replace(month=shifted.month + month_offset)
        except (OverflowError, ValueError) as err:
            raise InvalidMonthOffset(self.offset) from err
        return shifted.replace(day=1)

    def lower_bound(self, today: date) -> date:
        return self.first_day(today)

    def upper_bound(self, today: date) -> date:
        first = self.first_day(today)
        if first.month < 12:
            return first.replace(month=first.month + 1) - timedelta(days=1)
        return first.replace(day=31)


def parse_offset(text: str):
    """Parse the "", "+N" or "-N" suffix of week/month, None if malformed.

    N must fit a signed 32 bit integer.
    """
    if not text:
        return 0
    match = OFFSET_RE.fullmatch(text)
    if match is None:
        return None
    sign, digits = match.groups()
    value = int(digits)
    if value > MAX_OFFSET:
        return None
    return -value if sign == '-' else value


def parse_date(text: str) -> date:
    """Parse a `YYYY-MM-DD` date, raising ValueError if it is not one."""
    if ISO_DATE_RE.fullmatch(text) is None:
        raise ValueError(f'not an ISO date: {text!r}')
    return arrow.get(text, 'YYYY-M-D').date()


def parse_time_point(text: str) -> TimePoint:
    """Parse a single time point: "month[+-N]", "week[+-N]" or "YYYY-MM-DD"."""
    for placeholder, kind in ((MONTH_PLACEHOLDER, MonthPoint), (WEEK_PLACEHOLDER, WeekPoint)):
        if text.startswith(placeholder):
            offset = parse_offset(text[len(placeholder):])
            if offset is None:
                raise InvalidTimeRangeFormat(text)
            return kind(offset)
    try:
        return DatePoint(parse_date(text))
    except ValueError as err:
        raise InvalidTimeRangeFormat(text) from err


@dataclass(frozen=True)
class TimePointRange:
    start: TimePoint
    end: TimePoint

    @classmethod
    def parse(cls, text: str) -> 'TimePointRange':
        """Parse "A" or "A..B". A single point is used for both ends."""
        head, separator, tail = text.partition(RANGE_SEPARATOR)
        try:
            start = parse_time_point(head)
            end = parse_time_point(tail) if separator else start
        except InvalidTimeRangeFormat as err:
            raise InvalidTimeRangeFormat(text) from err
        return cls(start=start, end=end)


@dataclass(frozen=True)
class TimeRange:
    """Resolved date range, both ends inclusive.

    Bounds are kept in the order given, so "month+1..month-1" yields a range
    whose start is after its end.
    """
    start: date
    end: date

    @classmethod
    def parse(cls, text: str, today: date) -> 'TimeRange':
        """Parse `text` and resolve it against `today`.

        Args:
            text (str): range expression, e.g. "week-1" or "2019-01-23..month"
            today (date): the reference date relative points are resolved against

        Raises:
            InvalidTimeRangeFormat: if `text` is not a valid expression
            InvalidMonthOffset: if a month offset leaves the valid months
            InvalidWeekOffset: if a week offset leaves the valid dates

        Returns:
            TimeRange: the resolved range
        """
        points = TimePointRange.parse(text)
        return cls(start=points.start.lower_bound(today),
                   end=points.end.upper_bound(today))

    def format(self):
        """Both bounds as `YYYY-MM-DD` strings, for request parameters."""
        return (arrow.Arrow.fromdate(self.start).format(DATE_FORMAT),
                arrow.Arrow.fromdate(self.end).format(DATE_FORMAT))

    def __str__(self) -> str:
        return f'{self.start}--{self.end}'

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        # pylint: disable=unused-argument
        yield f"[b]TimeRange:[/b] {self.start} to {self.end}"
