from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, List, Literal, Union


TransactionType = Literal["income", "expense"]
Frequency = Literal["once", "daily", "weekly", "bi-weekly", "monthly", "yearly"]
ProjectionInterval = Literal["daily", "weekly", "bi-weekly", "monthly", "quarterly", "yearly"]

FREQUENCIES = ("once", "daily", "weekly", "bi-weekly", "monthly", "yearly")
PROJECTION_INTERVALS = ("daily", "weekly", "bi-weekly", "monthly", "quarterly", "yearly")
DEFAULT_CATEGORY = "Uncategorized"


@dataclass(frozen=True)
class Transaction:
    id: str
    t_date: date
    desc: str
    amount: float
    t_type: TransactionType
    category: str = DEFAULT_CATEGORY
    rule_id: Optional[str] = None

    @property
    def signed_amount(self) -> float:
        return self.amount if self.t_type == "income" else -self.amount

    @property
    def is_generated(self) -> bool:
        return self.rule_id is not None


@dataclass(frozen=True)
class RecurrenceRule:
    id: str
    desc: str
    amount: float
    anchor_date: Optional[date]
    frequency: str = "monthly"
    interval: int = 1
    category: str = DEFAULT_CATEGORY
    t_type: TransactionType = "expense"
    end_date: Optional[date] = None
    monthly_day_of_month: Optional[int] = None
    last_day_of_month: bool = False
    last_weekday_of_month: bool = False

    def __post_init__(self):
        if self.interval is None or self.interval < 1:
            raise ValueError(f"interval must be >= 1, got {self.interval}")
        if self.last_day_of_month and self.last_weekday_of_month:
            raise ValueError("last_day_of_month and last_weekday_of_month are mutually exclusive")
        if self.monthly_day_of_month is not None and not 1 <= self.monthly_day_of_month <= 31:
            raise ValueError(f"monthly_day_of_month must be 1-31, got {self.monthly_day_of_month}")


@dataclass(frozen=True)
class TimelineEntry:
    transaction: Transaction
    balance: float
    kind: Literal["transaction"] = "transaction"

    @property
    def t_date(self) -> date:
        return self.transaction.t_date

    @property
    def id(self) -> str:
        return self.transaction.id


@dataclass(frozen=True)
class ProjectionSummaryPoint:
    date: date
    balance: float
    label: str
    kind: Literal["summary", "projection"] = "summary"


TimelineItem = Union[TimelineEntry, ProjectionSummaryPoint]


def is_transaction(item: TimelineItem) -> bool:
    return item.kind == "transaction"


def is_summary_point(item: TimelineItem) -> bool:
    return item.kind in ("summary", "projection")


@dataclass(frozen=True, order=True)
class MonthKey:
    year: int
    month: int

    @classmethod
    def of(cls, day: date) -> MonthKey:
        return cls(day.year, day.month)

    def first_day(self) -> date:
        return date(self.year, self.month, 1)


@dataclass
class MonthWindowCacheEntry:
    key: Optional[MonthKey]
    grouped_by_day: dict = field(default_factory=dict)


@dataclass
class Ledger:
    transactions: List[Transaction] = field(default_factory=list)
    rules: List[RecurrenceRule] = field(default_factory=list)
    opening_balance: float = 0.0
    next_transaction_id: int = 1
    next_rule_id: int = 1
    revision: int = 0
