"""Diagnostics raised by the projection engine.

None of these abort a projection. They are logged and handed to an optional
sink so the caller can show them; the offending rule or entry is dropped.
"""
import logging
from datetime import date
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class PlannerError(Exception):
    pass


class MalformedRuleError(PlannerError):
    def __init__(self, rule_id: str, reason: str):
        super().__init__(f"rule {rule_id}: {reason}")
        self.rule_id = rule_id
        self.reason = reason


class HorizonOverflow(PlannerError):
    def __init__(self, rule_id: Optional[str], requested_end: date, clamped_end: date):
        super().__init__(
            f"rule {rule_id}: end {requested_end.isoformat()} clamped to {clamped_end.isoformat()}"
        )
        self.rule_id = rule_id
        self.requested_end = requested_end
        self.clamped_end = clamped_end


class DuplicateOccurrence(PlannerError):
    def __init__(self, occurrence_id: str):
        super().__init__(f"duplicate occurrence {occurrence_id} dropped")
        self.occurrence_id = occurrence_id


class EmptyWindowFallback(PlannerError):
    def __init__(self, requested, retained):
        super().__init__(
            f"window {requested} recomputed empty, keeping cached window {retained}"
        )
        self.requested = requested
        self.retained = retained


DiagnosticSink = Callable[[PlannerError], None]


def report(event: PlannerError, sink: Optional[DiagnosticSink] = None) -> None:
    if isinstance(event, DuplicateOccurrence):
        logger.debug("%s", event)
    else:
        logger.warning("%s", event)
    if sink is not None:
        sink(event)
