"""Expands recurrence rules into dated occurrences over a bounded window.

Occurrence ``n`` of a rule is computed directly from the anchor date (anchor
plus ``n`` periods) rather than from occurrence ``n - 1``, so weekly dates never
drift and a month-end clamp in February does not pull March back to the 28th.
"""
import logging
from datetime import date, timedelta
from typing import Iterable, Optional, Tuple
from dateutil.relativedelta import relativedelta

from planner.errors import DiagnosticSink, HorizonOverflow, MalformedRuleError, report
from planner.models import FREQUENCIES, RecurrenceRule, Transaction
from planner.recurrence import month_distance, monthly_target, yearly_target


logger = logging.getLogger(__name__)

DAY_PERIODS = {"daily": 1, "weekly": 7, "bi-weekly": 14}
MAX_HORIZON_YEARS = 2


def occurrence_id(rule: RecurrenceRule, day: date) -> str:
    return f"recurring-{rule.id}-{day.isoformat()}"


def make_occurrence(rule: RecurrenceRule, day: date) -> Transaction:
    return Transaction(
        id=occurrence_id(rule, day),
        t_date=day,
        desc=rule.desc,
        amount=abs(rule.amount),
        t_type=rule.t_type,
        category=rule.category,
        rule_id=rule.id,
    )


def step(rule: RecurrenceRule, n: int) -> date:
    """Date of the ``n``-th period after the anchor (``n == 0`` is the anchor period)."""
    anchor = rule.anchor_date
    if rule.frequency in DAY_PERIODS:
        return anchor + timedelta(days=n * DAY_PERIODS[rule.frequency] * rule.interval)
    if rule.frequency == "monthly":
        month = anchor.replace(day=1) + relativedelta(months=n * rule.interval)
        return monthly_target(rule, month.year, month.month)
    if rule.frequency == "yearly":
        return yearly_target(rule, n * rule.interval)
    raise ValueError(f"frequency {rule.frequency!r} does not repeat")


def first_step_index(rule: RecurrenceRule, window_start: date) -> int:
    """Lowest period index whose date can still fall on or after ``window_start``."""
    anchor = rule.anchor_date
    if window_start <= anchor:
        return 0
    if rule.frequency in DAY_PERIODS:
        period = DAY_PERIODS[rule.frequency] * rule.interval
        return -(-(window_start - anchor).days // period)
    if rule.frequency == "monthly":
        return month_distance(anchor, window_start) // rule.interval
    return (window_start.year - anchor.year) // rule.interval


def check_rule(rule: RecurrenceRule, sink: Optional[DiagnosticSink] = None) -> Optional[str]:
    """Returns the frequency to expand with, or None if the rule must be skipped."""
    if rule.anchor_date is None:
        report(MalformedRuleError(rule.id, "missing anchor date"), sink)
        return None
    if rule.frequency not in FREQUENCIES:
        report(
            MalformedRuleError(
                rule.id, f"unknown frequency {rule.frequency!r}, treated as a one-off"
            ),
            sink,
        )
        return "once"
    return rule.frequency


def clamp_window_end(
        rule: RecurrenceRule,
        window_start: date,
        window_end: date,
        max_horizon_years: int = MAX_HORIZON_YEARS,
        sink: Optional[DiagnosticSink] = None,
) -> date:
    limit = window_start + relativedelta(years=max_horizon_years)
    if window_end > limit:
        report(HorizonOverflow(rule.id, window_end, limit), sink)
        return limit
    return window_end


def expand(
        rule: RecurrenceRule,
        window_start: date,
        window_end: date,
        sink: Optional[DiagnosticSink] = None,
        max_horizon_years: int = MAX_HORIZON_YEARS,
) -> Tuple[Transaction, ...]:
    """Occurrences of ``rule`` inside ``[window_start, window_end]``, ordered by date.

    The anchor date itself is never emitted; the caller already holds the
    transaction the rule was created from. Calling this again with the same
    arguments returns equal occurrences with equal ids.
    """
    frequency = check_rule(rule, sink)
    if frequency is None or frequency == "once":
        return ()

    end = clamp_window_end(rule, window_start, window_end, max_horizon_years, sink)
    if rule.end_date is not None:
        end = min(end, rule.end_date)

    occurrences = []
    seen = set()
    n = first_step_index(rule, window_start)
    while True:
        candidate = step(rule, n)
        n += 1
        if candidate > end:
            break
        if candidate < window_start or candidate <= rule.anchor_date:
            continue
        if candidate in seen:
            continue
        seen.add(candidate)
        occurrences.append(make_occurrence(rule, candidate))

    logger.debug(
        "Rule %s %r (%s): %d occurrences between %s and %s",
        rule.id, rule.desc, rule.frequency, len(occurrences), window_start, end,
    )
    return tuple(occurrences)


def anchor_occurrence(
        rule: RecurrenceRule, window_start: date, window_end: date
) -> Optional[Transaction]:
    anchor = rule.anchor_date
    if anchor is None or not window_start <= anchor <= window_end:
        return None
    if rule.end_date is not None and anchor > rule.end_date:
        return None
    return make_occurrence(rule, anchor)


def expand_rules(
        rules: Iterable[RecurrenceRule],
        window_start: date,
        window_end: date,
        include_anchor: bool = True,
        sink: Optional[DiagnosticSink] = None,
        max_horizon_years: int = MAX_HORIZON_YEARS,
) -> Tuple[Transaction, ...]:
    """Expands every rule; a rule that fails is reported and left out."""
    result = []
    for rule in rules:
        try:
            occurrences = expand(rule, window_start, window_end, sink, max_horizon_years)
            if include_anchor and rule.anchor_date is not None:
                first = anchor_occurrence(rule, window_start, window_end)
                if first is not None:
                    occurrences = (first,) + occurrences
        except (ValueError, TypeError, AttributeError) as e:
            report(MalformedRuleError(rule.id, str(e)), sink)
            continue
        result.extend(occurrences)
    return tuple(result)
