from datetime import date, timedelta
from typing import List, Sequence

from planner.models import ProjectionSummaryPoint, TimelineEntry
from planner.recurrence import projection_label, should_add_projection_point


def short_label(day: date) -> str:
    return f"{day:%b} {day.day}"


def lowest(
        timeline: Sequence[TimelineEntry],
        opening_balance: float,
        horizon_end: date,
        today: date,
        k: int = 3,
) -> List[ProjectionSummaryPoint]:
    """The ``k`` lowest balances up to ``horizon_end``, lowest first.

    Today's opening balance competes with the timeline entries. Each date is
    represented once, by the lowest balance reached on it.
    """
    if not timeline or k <= 0:
        return []

    lowest_by_day = {today: opening_balance}
    for entry in timeline:
        if entry.t_date > horizon_end:
            continue
        current = lowest_by_day.get(entry.t_date)
        if current is None or entry.balance < current:
            lowest_by_day[entry.t_date] = entry.balance

    points = sorted(lowest_by_day.items(), key=lambda item: (item[1], item[0]))
    return [
        ProjectionSummaryPoint(date=day, balance=balance, label=short_label(day))
        for day, balance in points[:k]
    ]


def projection_points(
        timeline: Sequence[TimelineEntry],
        opening_balance: float,
        interval: str,
        today: date,
        horizon_end: date,
) -> List[ProjectionSummaryPoint]:
    """Balance checkpoints at the cadence of ``interval`` between today and the horizon.

    Each checkpoint carries the balance after every entry dated on or before it.
    """
    points = []
    balance = opening_balance
    i = 0
    day = today + timedelta(days=1)
    while day <= horizon_end:
        while i < len(timeline) and timeline[i].t_date <= day:
            balance = timeline[i].balance
            i += 1
        if should_add_projection_point(day, interval, today):
            points.append(ProjectionSummaryPoint(
                date=day,
                balance=balance,
                label=projection_label(day, interval),
                kind="projection",
            ))
        day += timedelta(days=1)
    return points
