import unittest
from datetime import date

from planner.errors import DuplicateOccurrence, MalformedRuleError
from planner.logic import (
    add_rule, add_transaction, delete_rule, delete_transaction,
    delete_transactions_by_criteria, project, set_opening_balance, update_rule
)
from planner.models import Ledger, RecurrenceRule, Transaction
from planner.window import MonthWindow


class TestLedger(unittest.TestCase):
    def setUp(self):
        self.ledger = Ledger()

    def test_add_transaction(self):
        """Test adding transactions"""
        t = add_transaction(self.ledger, 100.0, "income", date(2025, 1, 1), "Salary", desc="Monthly salary")
        self.assertEqual(t.id, "t1")
        self.assertEqual(t.category, "Salary")
        self.assertEqual(self.ledger.transactions, [t])
        self.assertEqual(self.ledger.revision, 1)

        t2 = add_transaction(self.ledger, -30.0, "expense", date(2025, 1, 2))
        self.assertEqual(t2.id, "t2")
        self.assertEqual(t2.amount, 30.0)
        self.assertEqual(t2.category, "Uncategorized")

    def test_add_transaction_rejects_unknown_type(self):
        with self.assertRaises(ValueError):
            add_transaction(self.ledger, 10.0, "refund", date(2025, 1, 1))
        self.assertEqual(self.ledger.transactions, [])

    def test_delete_transaction(self):
        t = add_transaction(self.ledger, 10.0, "expense", date(2025, 1, 1))
        self.assertTrue(delete_transaction(self.ledger, t.id))
        self.assertFalse(delete_transaction(self.ledger, t.id))
        self.assertEqual(self.ledger.transactions, [])

    def test_delete_transactions_by_criteria(self):
        add_transaction(self.ledger, 50.0, "expense", date(2025, 1, 1), "Food")
        add_transaction(self.ledger, 30.0, "expense", date(2025, 1, 5), "Transport")
        add_transaction(self.ledger, 50.0, "income", date(2025, 2, 1), "Food")

        self.assertEqual(delete_transactions_by_criteria(self.ledger, amount=50.0, t_type="expense"), 1)
        self.assertEqual(
            delete_transactions_by_criteria(self.ledger, date_range=(date(2025, 1, 1), date(2025, 1, 31))), 1
        )
        self.assertEqual(delete_transactions_by_criteria(self.ledger, category_name="Missing"), 0)
        self.assertEqual([t.id for t in self.ledger.transactions], ["t3"])

    def test_rules(self):
        rule = add_rule(self.ledger, -1200.0, date(2025, 1, 1), "monthly", desc="Rent", category="Housing")
        self.assertEqual(rule.id, "r1")
        self.assertEqual(rule.amount, 1200.0)
        self.assertEqual(rule.t_type, "expense")

        updated = update_rule(self.ledger, "r1", amount=1300.0)
        self.assertEqual(updated.amount, 1300.0)
        self.assertEqual(self.ledger.rules, [updated])
        self.assertIsNone(update_rule(self.ledger, "r9", amount=1.0))

        self.assertTrue(delete_rule(self.ledger, "r1"))
        self.assertFalse(delete_rule(self.ledger, "r1"))
        self.assertEqual(self.ledger.revision, 3)

    def test_rule_validation(self):
        with self.assertRaises(ValueError):
            add_rule(self.ledger, 10.0, date(2025, 1, 1), "weekly", interval=0)
        with self.assertRaises(ValueError):
            add_rule(self.ledger, 10.0, date(2025, 1, 1), "monthly",
                     last_day_of_month=True, last_weekday_of_month=True)
        self.assertEqual(self.ledger.rules, [])
        self.assertEqual(self.ledger.next_rule_id, 1)

    def test_set_opening_balance(self):
        set_opening_balance(self.ledger, 123.456)
        self.assertEqual(self.ledger.opening_balance, 123.46)


class TestProject(unittest.TestCase):
    def setUp(self):
        self.today = date(2025, 9, 1)  # a Monday
        self.ledger = Ledger()
        set_opening_balance(self.ledger, 500.0)
        add_transaction(self.ledger, 2000.0, "income", date(2025, 9, 1), "Income", desc="Paycheck")
        add_rule(self.ledger, 1200.0, date(2025, 9, 1), "monthly", desc="Rent", category="Housing")
        add_rule(self.ledger, 50.0, date(2025, 9, 1), "weekly", desc="Groceries", category="Food")

    def test_end_to_end(self):
        """Paycheck, monthly rent and weekly groceries over the daily horizon"""
        projection = project(self.ledger, "daily", today=self.today)
        self.assertEqual(projection.horizon_end, date(2025, 10, 1))

        rows = [(e.t_date, e.transaction.desc, e.balance) for e in projection.timeline]
        self.assertEqual(rows, [
            (date(2025, 9, 1), "Paycheck", 2500.0),
            (date(2025, 9, 1), "Rent", 1300.0),
            (date(2025, 9, 1), "Groceries", 1250.0),
            (date(2025, 9, 8), "Groceries", 1200.0),
            (date(2025, 9, 15), "Groceries", 1150.0),
            (date(2025, 9, 22), "Groceries", 1100.0),
            (date(2025, 9, 29), "Groceries", 1050.0),
            (date(2025, 10, 1), "Rent", -150.0),
        ])

        rent_days = [e.t_date for e in projection.timeline if e.transaction.desc == "Rent"]
        self.assertEqual(rent_days, [date(2025, 9, 1), date(2025, 10, 1)])

        groceries = [e.t_date for e in projection.timeline if e.transaction.desc == "Groceries"]
        self.assertEqual(len(groceries), 5)
        self.assertEqual({(b - a).days for a, b in zip(groceries, groceries[1:])}, {7})

        self.assertEqual([(p.date, p.balance) for p in projection.lowest], [
            (date(2025, 10, 1), -150.0),
            (date(2025, 9, 1), 500.0),
            (date(2025, 9, 29), 1050.0),
        ])
        self.assertEqual(projection.lowest[0].label, "Oct 1")
        self.assertEqual(len(projection.checkpoints), 30)
        self.assertEqual(projection.checkpoints[-1].balance, -150.0)
        self.assertEqual(projection.diagnostics, [])

    def test_ignores_past_transactions(self):
        add_transaction(self.ledger, 999.0, "expense", date(2025, 8, 31))
        projection = project(self.ledger, "daily", today=self.today)
        self.assertNotIn("t2", [e.id for e in projection.timeline])

    def test_malformed_rule_is_isolated(self):
        self.ledger.rules.append(RecurrenceRule(id="broken", desc="?", amount=5.0, anchor_date=None))
        projection = project(self.ledger, "daily", today=self.today)
        self.assertEqual(len(projection.timeline), 8)
        self.assertEqual(len(projection.diagnostics), 1)
        self.assertIsInstance(projection.diagnostics[0], MalformedRuleError)

    def test_duplicate_ids_are_dropped(self):
        self.ledger.transactions.append(Transaction(
            id="recurring-r1-2025-10-01", t_date=date(2025, 10, 1), desc="Rent (paid)",
            amount=1200.0, t_type="expense",
        ))
        projection = project(self.ledger, "daily", today=self.today)
        rent = [e for e in projection.timeline if e.t_date == date(2025, 10, 1)]
        self.assertEqual([e.transaction.desc for e in rent], ["Rent (paid)"])
        self.assertIsInstance(projection.diagnostics[0], DuplicateOccurrence)

    def test_does_not_mutate_ledger(self):
        before = (list(self.ledger.transactions), list(self.ledger.rules), self.ledger.revision)
        project(self.ledger, "yearly", today=self.today)
        self.assertEqual((self.ledger.transactions, self.ledger.rules, self.ledger.revision), before)

    def test_projection_feeds_window(self):
        projection = project(self.ledger, "monthly", today=self.today)
        window = MonthWindow(view_month=self.today)
        grouped = window.materialize(projection.timeline)
        self.assertEqual(min(grouped), date(2025, 9, 1))
        self.assertEqual(max(grouped), date(2025, 11, 24))
        self.assertEqual(len([d for d in grouped if d.day == 1]), 3)


if __name__ == "__main__":
    unittest.main()
