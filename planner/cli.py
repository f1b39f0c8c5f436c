import cmd
from datetime import date
from typing import Callable, Optional

from planner.config import Settings
from planner.logic import (
    add_transaction,
    add_rule,
    delete_rule,
    delete_transaction,
    delete_transactions_by_criteria,
    project,
    set_opening_balance,
)
from planner.models import FREQUENCIES, PROJECTION_INTERVALS, Ledger
from planner.storage import save_data, load_data, list_save_files
from planner.timeline import final_balance
from planner.window import MonthWindow, total_entries


class PlannerCLI(cmd.Cmd):
    prompt = "(planner) "

    def __init__(self, settings: Optional[Settings] = None, clock: Callable[[], date] = date.today,
                 ledger: Optional[Ledger] = None):
        super().__init__()
        self.intro = "Welcome to Planner. Type 'help' for commands."
        self.settings = settings or Settings()
        self.clock = clock
        self.ledger = ledger or Ledger()
        self.window = MonthWindow(clock=clock)
        self._window_revision = self.ledger.revision

    # ===== LEDGER COMMANDS =====
    def do_add(self, arg):
        """Add a transaction: add <amount> <income|expense> [category] [YYYY-MM-DD] [--desc "description"]"""
        try:
            args = self._parse_add_args(arg)
            t = add_transaction(
                self.ledger,
                amount=args['amount'],
                t_type=args['type'],
                t_date=args['date'],
                category=args['category'],
                desc=args['desc'],
            )
            print(f"✓ Added {t.t_type} {t.id} of ${t.amount:.2f} on {t.t_date}")
        except ValueError as e:
            print(f"Invalid input: {e}")

    def do_rule(self, arg):
        """Add a recurring rule:
        rule <amount> <income|expense> <once|daily|weekly|bi-weekly|monthly|yearly> [YYYY-MM-DD]
             [--every N] [--until YYYY-MM-DD] [--day N] [--last-day] [--last-weekday]
             [--category NAME] [--desc "description"]
        """
        try:
            args = self._parse_rule_args(arg)
            rule = add_rule(self.ledger, **args)
            print(f"✓ Added {rule.frequency} rule {rule.id}: {rule.t_type} of ${rule.amount:.2f} from {rule.anchor_date}")
        except ValueError as e:
            print(f"Invalid input: {e}")

    def do_delete(self, arg):
        """Delete entries: delete <transaction ID|rule ID> OR delete --filter <criteria>"""
        args = arg.split()

        if not args:
            print("Usage:\n  delete <ID>\n  delete --filter [--amount X] [--type income|expense] [--from DATE] [--to DATE] [--category NAME]")
            return

        try:
            if args[0] == "--filter":
                deleted_count = self._delete_by_filter(args[1:])
                print(f"✓ Deleted {deleted_count} transactions")
            elif args[0].startswith("r"):
                if delete_rule(self.ledger, args[0]):
                    print(f"✓ Deleted rule {args[0]}")
                else:
                    print("Rule not found")
            elif delete_transaction(self.ledger, args[0]):
                print(f"✓ Deleted transaction {args[0]}")
            else:
                print("Transaction not found")
        except (ValueError, IndexError) as e:
            print(f"Invalid input: {e}")

    def _delete_by_filter(self, args) -> int:
        """Helper for filter-based deletion"""
        filters = {
            'amount': None,
            't_type': None,
            'date_range': None,
            'category_name': None
        }

        i = 0
        while i < len(args):
            if args[i] == "--amount":
                filters['amount'] = float(args[i+1])
                i += 2
            elif args[i] == "--type":
                filters['t_type'] = args[i+1]
                i += 2
            elif args[i] == "--from":
                start_date = date.fromisoformat(args[i+1])
                filters['date_range'] = (start_date, filters['date_range'][1] if filters['date_range'] else date.max)
                i += 2
            elif args[i] == "--to":
                end_date = date.fromisoformat(args[i+1])
                filters['date_range'] = (filters['date_range'][0] if filters['date_range'] else date.min, end_date)
                i += 2
            elif args[i] == "--category":
                filters['category_name'] = args[i+1]
                i += 2
            else:
                i += 1

        return delete_transactions_by_criteria(self.ledger, **filters)

    def do_opening(self, arg):
        """Set today's opening balance: opening <amount>"""
        try:
            set_opening_balance(self.ledger, float(arg))
            print(f"✓ Opening balance set to ${self.ledger.opening_balance:,.2f}")
        except ValueError:
            print("Invalid input: opening balance must be a number")

    def do_list(self, arg):
        """List transactions and rules"""
        if not self.ledger.transactions and not self.ledger.rules:
            print("Nothing recorded yet")
            return
        for t in sorted(self.ledger.transactions, key=lambda t: t.t_date):
            print(f"  {t.id:>5} {t.t_date} {t.t_type:<7} ${t.amount:>10,.2f} {t.category:<14} {t.desc}")
        for r in self.ledger.rules:
            extra = f" every {r.interval}" if r.interval > 1 else ""
            until = f" until {r.end_date}" if r.end_date else ""
            print(f"  {r.id:>5} {r.anchor_date} {r.frequency}{extra}{until} {r.t_type} ${r.amount:,.2f} {r.desc}")

    # ===== PROJECTION COMMANDS =====
    def do_project(self, arg):
        """Show the projected timeline: project [daily|weekly|bi-weekly|monthly|quarterly|yearly]"""
        try:
            projection = self._project(arg)
        except ValueError as e:
            print(f"Invalid input: {e}")
            return

        print(f"\nProjection {projection.today} to {projection.horizon_end}")
        print(f"  Opening balance: ${self.ledger.opening_balance:,.2f}")
        for entry in projection.timeline:
            t = entry.transaction
            sign = "+" if t.t_type == "income" else "-"
            print(f"  {t.t_date}  {sign}${t.amount:>10,.2f}  ${entry.balance:>12,.2f}  {t.desc}")
        closing = final_balance(projection.timeline, self.ledger.opening_balance)
        print(f"  Closing balance: ${closing:,.2f}")
        self._print_diagnostics(projection)

    def do_lowest(self, arg):
        """Show the lowest projected balances: lowest [interval]"""
        try:
            projection = self._project(arg)
        except ValueError as e:
            print(f"Invalid input: {e}")
            return

        if not projection.lowest:
            print("No projected transactions")
            return
        print("\nLowest projected balances:")
        for point in projection.lowest:
            warning = "  ⚠ below zero" if point.balance < 0 else ""
            print(f"  {point.label:<8} ${point.balance:>12,.2f}{warning}")

    def do_view(self, arg):
        """Show the three-month calendar: view [prev|next|today|YYYY-MM|1-12]"""
        try:
            self._navigate(arg.strip())
        except ValueError as e:
            print(f"Invalid input: {e}")
            return

        if self.ledger.revision != self._window_revision:
            self.window.invalidate()
            self._window_revision = self.ledger.revision

        start, end = self.window.window_range()
        timeline = ()
        if not self.window.is_cached:
            timeline = project(
                self.ledger, self.settings.default_interval, today=self.clock(),
                k=self.settings.lowest_count, max_horizon_years=self.settings.max_horizon_years,
            ).timeline
        grouped = self.window.materialize(timeline)

        # A fallback grouping belongs to another window; only count what is shown.
        shown = 0
        print(f"\n{' ' + self.window.range_label() + ' ':-^50}")
        for month, days in self.window.visible_months(grouped):
            print(f"\n{month:%B %Y}")
            shown += total_entries(days)
            if not days:
                print("  (no transactions)")
            for day, entries in days.items():
                for entry in entries:
                    t = entry.transaction
                    sign = "+" if t.t_type == "income" else "-"
                    print(f"  {day:%a %d}  {sign}${t.amount:>10,.2f}  ${entry.balance:>12,.2f}  {t.desc}")
        print(f"\n{shown} transactions between {start} and {end}")

    def _navigate(self, arg):
        if not arg:
            return
        if arg == "prev":
            self.window.previous()
        elif arg == "next":
            self.window.next()
        elif arg == "today":
            self.window.today()
        elif arg.isdigit():
            self.window.select_month(int(arg))
        else:
            year, month = arg.split("-")
            self.window.jump_to(date(int(year), int(month), 1))

    def _project(self, arg):
        interval = arg.strip() or self.settings.default_interval
        if interval not in PROJECTION_INTERVALS:
            raise ValueError(f"Interval must be one of: {', '.join(PROJECTION_INTERVALS)}")
        return project(
            self.ledger, interval, today=self.clock(),
            k=self.settings.lowest_count, max_horizon_years=self.settings.max_horizon_years,
        )

    @staticmethod
    def _print_diagnostics(projection):
        for problem in projection.diagnostics:
            print(f"  note: {problem}")

    # ===== DATA MANAGEMENT =====
    def do_save(self, arg):
        """Save current data: save [name=default]"""
        name = arg.strip() or "default"
        if save_data(self.ledger, name, self.settings.saves_dir):
            print(f"✓ Saved as '{name}'")
        else:
            print(f"Error saving '{name}'")

    def do_load(self, arg):
        """Load saved data: load [name]"""
        saves = list_save_files(self.settings.saves_dir)
        if not saves:
            print("No save files available")
            return

        if not arg:
            print("Available saves:")
            for i, name in enumerate(saves, 1):
                print(f"{i}. {name}")
            try:
                choice = int(input("Select save: ")) - 1
                name = saves[choice]
            except (ValueError, IndexError):
                print("Invalid selection")
                return
        else:
            name = arg.strip()

        ledger = load_data(name, self.settings.saves_dir)
        if ledger is None:
            print(f"Could not load '{name}'")
            return
        self.ledger = ledger
        self.window.invalidate()
        self._window_revision = ledger.revision
        print(f"✓ Loaded {len(ledger.transactions)} transactions, {len(ledger.rules)} rules")

    # ===== UTILITIES =====
    def do_exit(self, arg):
        """Exit the program"""
        print("Goodbye!")
        return True

    # ===== HELPERS =====
    def _parse_add_args(self, arg):
        """Parse add command arguments with proper date handling"""
        args = arg.split()
        if len(args) < 2:
            raise ValueError("Missing required arguments (amount and type)")

        result = {
            'amount': float(args[0]),
            'type': args[1].lower(),
            'category': None,
            'date': self.clock(),
            'desc': ""
        }

        if result['type'] not in ('income', 'expense'):
            raise ValueError("Type must be 'income' or 'expense'")

        i = 2
        while i < len(args):
            if args[i] == '--desc':
                result['desc'] = ' '.join(args[i+1:]) if i+1 < len(args) else ""
                break
            elif args[i].startswith('--'):
                raise ValueError(f"Unknown flag: {args[i]}")
            else:
                try:
                    result['date'] = date.fromisoformat(args[i])
                    i += 1
                    continue
                except ValueError:
                    pass

                if result['category'] is None:
                    result['category'] = args[i]
                    i += 1
                else:
                    raise ValueError(f"Unexpected argument: {args[i]}")

        return result

    def _parse_rule_args(self, arg):
        """Parse rule command arguments"""
        args = arg.split()
        if len(args) < 3:
            raise ValueError("Missing required arguments (amount, type and frequency)")

        result = {
            'amount': float(args[0]),
            't_type': args[1].lower(),
            'frequency': args[2].lower(),
            'anchor_date': self.clock(),
            'category': None,
            'desc': "",
        }
        if result['t_type'] not in ('income', 'expense'):
            raise ValueError("Type must be 'income' or 'expense'")
        if result['frequency'] not in FREQUENCIES:
            raise ValueError(f"Invalid frequency, use: {'/'.join(FREQUENCIES)}")

        i = 3
        while i < len(args):
            flag = args[i]
            if flag == '--desc':
                result['desc'] = ' '.join(args[i+1:])
                break
            elif flag in ('--every', '--until', '--day', '--category'):
                if i+1 >= len(args):
                    raise ValueError(f"Missing value after {flag}")
                value = args[i+1]
                if flag == '--every':
                    result['interval'] = int(value)
                elif flag == '--until':
                    result['end_date'] = date.fromisoformat(value)
                elif flag == '--day':
                    result['monthly_day_of_month'] = int(value)
                else:
                    result['category'] = value
                i += 2
            elif flag == '--last-day':
                result['last_day_of_month'] = True
                i += 1
            elif flag == '--last-weekday':
                result['last_weekday_of_month'] = True
                i += 1
            elif flag.startswith('--'):
                raise ValueError(f"Unknown flag: {flag}")
            else:
                result['anchor_date'] = date.fromisoformat(flag)
                i += 1

        return result


if __name__ == "__main__":
    PlannerCLI().cmdloop()
