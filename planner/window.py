"""Three-month calendar view over a projected timeline.

``MonthWindow`` holds the month the view starts at and a single cached
grouping for it. The cache is keyed by ``MonthKey`` and is only refreshed
when the key changes or ``invalidate()`` is called, so callers must
invalidate whenever the transactions or rules behind the timeline change.
Not thread-safe.
"""
import logging
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from planner.errors import DiagnosticSink, EmptyWindowFallback, report
from planner.models import MonthKey, MonthWindowCacheEntry, TimelineEntry
from planner.recurrence import add_months, last_day_of_month
from planner.timeline import filter_range, group_by_day


logger = logging.getLogger(__name__)

WINDOW_MONTHS = 3

GroupedByDay = Dict[date, List[TimelineEntry]]


def window_range(view_month: Union[date, MonthKey]) -> Tuple[date, date]:
    if isinstance(view_month, MonthKey):
        view_month = view_month.first_day()
    start = view_month.replace(day=1)
    last_month = add_months(start, WINDOW_MONTHS - 1)
    return start, last_day_of_month(last_month.year, last_month.month)


def total_entries(grouped: GroupedByDay) -> int:
    return sum(len(entries) for entries in grouped.values())


class MonthWindow:
    def __init__(
            self,
            view_month: Optional[date] = None,
            clock: Callable[[], date] = date.today,
            sink: Optional[DiagnosticSink] = None,
    ):
        self._clock = clock
        self.sink = sink
        self.view_month = (view_month or clock()).replace(day=1)
        self.cache = MonthWindowCacheEntry(key=None)

    @property
    def key(self) -> MonthKey:
        return MonthKey.of(self.view_month)

    # ===== NAVIGATION =====
    def previous(self) -> date:
        self.view_month = add_months(self.view_month, -1)
        return self.view_month

    def next(self) -> date:
        self.view_month = add_months(self.view_month, 1)
        return self.view_month

    def jump_to(self, month: Union[date, MonthKey]) -> date:
        if isinstance(month, MonthKey):
            month = month.first_day()
        self.view_month = month.replace(day=1)
        return self.view_month

    def today(self) -> date:
        self.view_month = self._clock().replace(day=1)
        return self.view_month

    def select_month(self, month: int) -> date:
        """Move to ``month`` (1-12) of the year currently in view."""
        if not 1 <= month <= 12:
            raise ValueError(f"month must be 1-12, got {month}")
        self.view_month = self.view_month.replace(month=month)
        return self.view_month

    def window_range(self) -> Tuple[date, date]:
        return window_range(self.view_month)

    # ===== CACHE =====
    @property
    def is_cached(self) -> bool:
        """True when materialize would return the stored grouping without recomputing."""
        return self.cache.key == self.key and bool(self.cache.grouped_by_day)

    def materialize(self, timeline: Iterable[TimelineEntry]) -> GroupedByDay:
        key = self.key
        if self.is_cached:
            logger.debug("Using cached window for %s", key)
            return self.cache.grouped_by_day

        start, end = self.window_range()
        grouped = group_by_day(filter_range(timeline, start, end))

        if not grouped and self.cache.grouped_by_day:
            report(EmptyWindowFallback(key, self.cache.key), self.sink)
            return self.cache.grouped_by_day

        self.cache = MonthWindowCacheEntry(key=key, grouped_by_day=grouped)
        logger.debug(
            "Materialized window %s to %s: %d days, %d entries",
            start, end, len(grouped), total_entries(grouped),
        )
        return grouped

    def invalidate(self) -> None:
        self.cache.key = None
        logger.debug("Window cache invalidated")

    # ===== DISPLAY HELPERS =====
    def visible_months(self, grouped: GroupedByDay) -> List[Tuple[date, GroupedByDay]]:
        months = []
        for offset in range(WINDOW_MONTHS):
            month = add_months(self.view_month, offset)
            days = {
                day: entries for day, entries in grouped.items()
                if (day.year, day.month) == (month.year, month.month)
            }
            months.append((month, days))
        return months

    def range_label(self) -> str:
        start, end = self.window_range()
        if start.year == end.year:
            return f"{start:%B} {start.year} + 2 months"
        return f"{start:%B} {start.year} - {end:%B} {end.year}"
