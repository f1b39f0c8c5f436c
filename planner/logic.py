from dataclasses import dataclass, field, replace
from datetime import date
from typing import List, Optional

from planner.generator import MAX_HORIZON_YEARS, expand_rules
from planner.errors import PlannerError
from planner.models import (
    DEFAULT_CATEGORY, Ledger, ProjectionSummaryPoint, RecurrenceRule, TimelineEntry,
    Transaction, TransactionType
)
from planner.recurrence import projection_horizon_end
from planner.summary import lowest, projection_points
from planner.timeline import build, merge


@dataclass
class Projection:
    today: date
    horizon_end: date
    timeline: List[TimelineEntry]
    lowest: List[ProjectionSummaryPoint]
    checkpoints: List[ProjectionSummaryPoint]
    diagnostics: List[PlannerError] = field(default_factory=list)


def _check_type(t_type: str) -> None:
    if t_type not in ("income", "expense"):
        raise ValueError("Type must be 'income' or 'expense'")


def _touch(ledger: Ledger) -> None:
    ledger.revision += 1


def add_transaction(
        ledger: Ledger,
        amount: float,
        t_type: TransactionType,
        t_date: date,
        category: Optional[str] = None,
        desc: str = "",
) -> Transaction:
    _check_type(t_type)
    transaction = Transaction(
        id=f"t{ledger.next_transaction_id}",
        t_date=t_date,
        desc=desc,
        amount=abs(amount),
        t_type=t_type,
        category=category or DEFAULT_CATEGORY,
    )
    ledger.next_transaction_id += 1
    ledger.transactions.append(transaction)
    _touch(ledger)
    return transaction


def delete_transaction(ledger: Ledger, transaction_id: str) -> bool:
    for i, t in enumerate(ledger.transactions):
        if t.id == transaction_id:
            ledger.transactions.pop(i)
            _touch(ledger)
            return True
    return False


def delete_transactions_by_criteria(
        ledger: Ledger,
        amount: Optional[float] = None,
        t_type: Optional[TransactionType] = None,
        date_range: Optional[tuple] = None,
        category_name: Optional[str] = None
) -> int:
    initial_count = len(ledger.transactions)
    ledger.transactions[:] = [
        t for t in ledger.transactions
        if not ((amount is None or t.amount == amount) and
                (t_type is None or t.t_type == t_type) and
                (date_range is None or (date_range[0] <= t.t_date <= date_range[1])) and
                (category_name is None or t.category == category_name))
    ]
    deleted = initial_count - len(ledger.transactions)
    if deleted:
        _touch(ledger)
    return deleted


def add_rule(
        ledger: Ledger,
        amount: float,
        anchor_date: date,
        frequency: str,
        desc: str = "",
        t_type: TransactionType = "expense",
        category: Optional[str] = None,
        interval: int = 1,
        **options,
) -> RecurrenceRule:
    """Adds a recurrence rule. ``options`` are the optional rule fields
    (``end_date``, ``monthly_day_of_month``, ``last_day_of_month``,
    ``last_weekday_of_month``)."""
    _check_type(t_type)
    rule = RecurrenceRule(
        id=f"r{ledger.next_rule_id}",
        desc=desc,
        amount=abs(amount),
        anchor_date=anchor_date,
        frequency=frequency,
        interval=interval,
        category=category or DEFAULT_CATEGORY,
        t_type=t_type,
        **options,
    )
    ledger.next_rule_id += 1
    ledger.rules.append(rule)
    _touch(ledger)
    return rule


def update_rule(ledger: Ledger, rule_id: str, **changes) -> Optional[RecurrenceRule]:
    for i, rule in enumerate(ledger.rules):
        if rule.id == rule_id:
            updated = replace(rule, **changes)
            ledger.rules[i] = updated
            _touch(ledger)
            return updated
    return None


def delete_rule(ledger: Ledger, rule_id: str) -> bool:
    count = len(ledger.rules)
    ledger.rules[:] = [r for r in ledger.rules if r.id != rule_id]
    if len(ledger.rules) == count:
        return False
    _touch(ledger)
    return True


def set_opening_balance(ledger: Ledger, amount: float) -> None:
    ledger.opening_balance = round(amount, 2)
    _touch(ledger)


def project(
        ledger: Ledger,
        interval: str = "monthly",
        today: Optional[date] = None,
        k: int = 3,
        max_horizon_years: int = MAX_HORIZON_YEARS,
) -> Projection:
    """Projects the ledger's balance from ``today`` to the interval's horizon.

    Works on a copy of the ledger's transactions and rules. Rules that cannot
    be expanded are left out and listed in ``Projection.diagnostics``.
    """
    today = today or date.today()
    horizon_end = projection_horizon_end(interval, today)
    diagnostics: List[PlannerError] = []

    transactions = tuple(t for t in ledger.transactions if today <= t.t_date <= horizon_end)
    occurrences = expand_rules(
        tuple(ledger.rules), today, horizon_end,
        sink=diagnostics.append, max_horizon_years=max_horizon_years,
    )
    timeline = build(merge(transactions, occurrences, sink=diagnostics.append), ledger.opening_balance)

    return Projection(
        today=today,
        horizon_end=horizon_end,
        timeline=timeline,
        lowest=lowest(timeline, ledger.opening_balance, horizon_end, today, k),
        checkpoints=projection_points(timeline, ledger.opening_balance, interval, today, horizon_end),
        diagnostics=diagnostics,
    )
