"""Single-date recurrence evaluation and projection-interval helpers."""
from calendar import monthrange
from datetime import date, timedelta
from dateutil.relativedelta import relativedelta

from planner.models import RecurrenceRule


HORIZONS = {
    "daily": relativedelta(days=30),
    "weekly": relativedelta(days=90),
    "bi-weekly": relativedelta(days=90),
    "monthly": relativedelta(years=1),
    "quarterly": relativedelta(years=1),
    "yearly": relativedelta(years=2),
}
DEFAULT_HORIZON = relativedelta(years=1)

EPOCH = date(1970, 1, 1)


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, monthrange(year, month)[1])


def last_weekday_of_month(year: int, month: int) -> date:
    day = last_day_of_month(year, month)
    # weekday(): Monday=0 ... Sunday=6
    while day.weekday() >= 5:
        day -= timedelta(days=1)
    return day


def month_distance(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def add_months(day: date, months: int) -> date:
    """Shift to the same day ``months`` later, clamped to the target month's end."""
    return day + relativedelta(months=months)


def monthly_target(rule: RecurrenceRule, year: int, month: int) -> date:
    """The date a monthly rule falls on in the given month.

    Worked out from the rule alone for every month, so a clamp in a short
    month never carries over into the next one.
    """
    if rule.last_day_of_month:
        return last_day_of_month(year, month)
    if rule.last_weekday_of_month:
        return last_weekday_of_month(year, month)
    nominal = rule.monthly_day_of_month or rule.anchor_date.day
    return date(year, month, min(nominal, monthrange(year, month)[1]))


def yearly_target(rule: RecurrenceRule, years: int) -> date:
    # Feb 29 anchors land on Feb 28 in common years
    return rule.anchor_date + relativedelta(years=years)


def occurs_on(rule: RecurrenceRule, day: date) -> bool:
    anchor = rule.anchor_date
    if anchor is None or day < anchor:
        return False
    if rule.end_date is not None and day > rule.end_date:
        return False

    interval = rule.interval or 1
    days = (day - anchor).days

    if rule.frequency == "daily":
        return days % interval == 0
    if rule.frequency == "weekly":
        return days % (7 * interval) == 0
    if rule.frequency == "bi-weekly":
        return days % (14 * interval) == 0
    if rule.frequency == "monthly":
        months = month_distance(anchor, day)
        if months % interval:
            return False
        return day == monthly_target(rule, day.year, day.month)
    if rule.frequency == "yearly":
        years = day.year - anchor.year
        if years % interval:
            return False
        return day == yearly_target(rule, years)

    # "once" and anything unrecognised: a single occurrence on the anchor
    return day == anchor


def projection_horizon_end(interval: str, today: date) -> date:
    return today + HORIZONS.get(interval, DEFAULT_HORIZON)


def should_add_projection_point(day: date, interval: str, today: date) -> bool:
    if day <= today:
        return False

    if interval == "daily":
        return True
    if interval == "weekly":
        return day.weekday() == 6
    if interval == "bi-weekly":
        return (day - EPOCH).days % 14 == 0
    if interval == "monthly":
        return day.day == 1
    if interval == "quarterly":
        return day.day == 1 and day.month in (1, 4, 7, 10)
    if interval == "yearly":
        return day.day == 1 and day.month == 1
    return False


def _short(day: date) -> str:
    return f"{day:%b} {day.day}, {day.year}"


def projection_label(day: date, interval: str) -> str:
    if interval == "daily":
        return f"{day:%A}, {_short(day)} Projection"
    if interval == "weekly":
        return f"Week of {_short(day)} Projection"
    if interval == "bi-weekly":
        return f"Bi-weekly {_short(day)} Projection"
    if interval == "monthly":
        return f"{day:%B %Y} Projection"
    if interval == "quarterly":
        return f"Q{(day.month - 1) // 3 + 1} {day.year} Projection"
    if interval == "yearly":
        return f"{day.year} Projection"
    return "Projection"
