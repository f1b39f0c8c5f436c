import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from planner.errors import DiagnosticSink, DuplicateOccurrence, report
from planner.models import TimelineEntry, Transaction


logger = logging.getLogger(__name__)


def update_bal(bal: float, t_amount: float, t_type: str) -> float:
    if t_type == "income":
        bal += t_amount
    else:
        bal -= t_amount
    return round(bal, 2)


def merge(
        *sources: Iterable[Transaction],
        sink: Optional[DiagnosticSink] = None,
) -> Tuple[Transaction, ...]:
    """Concatenates transaction sources, keeping the first transaction seen for each id."""
    seen = set()
    merged = []
    for source in sources:
        for t in source:
            if t.id in seen:
                report(DuplicateOccurrence(t.id), sink)
                continue
            seen.add(t.id)
            merged.append(t)
    return tuple(merged)


def build(transactions: Sequence[Transaction], opening_balance: float) -> List[TimelineEntry]:
    """Chronological timeline with the running balance after each transaction.

    ``sorted`` is stable, so transactions sharing a date keep the order they
    were supplied in. The input is not modified.
    """
    ordered = sorted(transactions, key=lambda t: t.t_date)
    balance = round(opening_balance, 2)
    timeline = []
    for t in ordered:
        balance = update_bal(balance, t.amount, t.t_type)
        timeline.append(TimelineEntry(transaction=t, balance=balance))
    logger.debug(
        "Built timeline of %d entries from opening balance %.2f to %.2f",
        len(timeline), opening_balance, balance,
    )
    return timeline


def filter_range(timeline: Iterable[TimelineEntry], start: date, end: date) -> List[TimelineEntry]:
    return [entry for entry in timeline if start <= entry.t_date <= end]


def group_by_day(timeline: Iterable[TimelineEntry]) -> Dict[date, List[TimelineEntry]]:
    groups: Dict[date, List[TimelineEntry]] = {}
    for entry in timeline:
        groups.setdefault(entry.t_date, []).append(entry)
    return {day: groups[day] for day in sorted(groups)}


def final_balance(timeline: Sequence[TimelineEntry], opening_balance: float) -> float:
    return timeline[-1].balance if timeline else round(opening_balance, 2)
