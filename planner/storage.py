import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

from .models import DEFAULT_CATEGORY, Ledger, RecurrenceRule, Transaction


logger = logging.getLogger(__name__)

SAVES_DIR = Path("saves")
FORMAT_VERSION = "1.0"


class EnhancedJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


def _parse_date(raw) -> Optional[date]:
    return date.fromisoformat(raw) if raw else None


def transaction_to_dict(t: Transaction) -> dict:
    return {
        "id": t.id,
        "date": t.t_date,
        "description": t.desc,
        "amount": t.amount,
        "type": t.t_type,
        "category": t.category,
    }


def transaction_from_dict(data: dict) -> Transaction:
    if data["type"] not in ("income", "expense"):
        raise ValueError(f"unknown type {data['type']!r}")
    return Transaction(
        id=str(data["id"]),
        t_date=date.fromisoformat(data["date"]),
        desc=data.get("description", ""),
        amount=abs(float(data["amount"])),
        t_type=data["type"],
        category=data.get("category") or DEFAULT_CATEGORY,
    )


def rule_to_dict(r: RecurrenceRule) -> dict:
    return {
        "id": r.id,
        "description": r.desc,
        "amount": r.amount,
        "type": r.t_type,
        "category": r.category,
        "anchorDate": r.anchor_date,
        "frequency": r.frequency,
        "interval": r.interval,
        "endDate": r.end_date,
        "monthlyDayOfMonth": r.monthly_day_of_month,
        "lastDayOfMonth": r.last_day_of_month,
        "lastWeekdayOfMonth": r.last_weekday_of_month,
    }


def rule_from_dict(data: dict) -> RecurrenceRule:
    # A missing anchor date is kept; expansion reports and skips the rule.
    return RecurrenceRule(
        id=str(data["id"]),
        desc=data.get("description", ""),
        amount=abs(float(data["amount"])),
        anchor_date=_parse_date(data.get("anchorDate")),
        frequency=data.get("frequency") or "once",
        interval=int(data.get("interval") or 1),
        category=data.get("category") or DEFAULT_CATEGORY,
        t_type=data.get("type", "expense"),
        end_date=_parse_date(data.get("endDate")),
        monthly_day_of_month=data.get("monthlyDayOfMonth"),
        last_day_of_month=bool(data.get("lastDayOfMonth")),
        last_weekday_of_month=bool(data.get("lastWeekdayOfMonth")),
    )


def list_save_files(saves_dir: Path = SAVES_DIR):
    if not saves_dir.exists():
        return []
    return sorted(f.stem for f in saves_dir.glob("*.json"))


def save_data(ledger: Ledger, save_name="default", saves_dir: Path = SAVES_DIR) -> bool:
    data = {
        "metadata": {
            "version": FORMAT_VERSION,
            "created": date.today().isoformat(),
            "next_transaction_id": ledger.next_transaction_id,
            "next_rule_id": ledger.next_rule_id,
        },
        "opening_balance": ledger.opening_balance,
        "transactions": [transaction_to_dict(t) for t in ledger.transactions],
        "rules": [rule_to_dict(r) for r in ledger.rules],
    }

    try:
        json_str = json.dumps(data, cls=EnhancedJSONEncoder, indent=2)
        saves_dir.mkdir(parents=True, exist_ok=True)
        save_path = saves_dir / f"{save_name}.json"
        save_path.write_text(json_str)
    except OSError as e:
        logger.error("Error saving data to %s: %s", save_name, e)
        return False
    logger.info("Saved %d transactions and %d rules to %r",
                len(ledger.transactions), len(ledger.rules), save_name)
    return True


def load_data(save_name="default", saves_dir: Path = SAVES_DIR) -> Optional[Ledger]:
    filepath = saves_dir / f"{save_name}.json"
    if not filepath.exists():
        logger.warning("Save file %r not found", save_name)
        return None

    try:
        data = json.loads(filepath.read_text())
        if not isinstance(data, dict):
            raise ValueError("top level is not an object")
        ledger = Ledger(opening_balance=float(data.get("opening_balance", 0.0)))

        for t_data in data.get("transactions") or []:
            try:
                ledger.transactions.append(transaction_from_dict(t_data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping invalid transaction %s: %s", str(t_data)[:40], e)

        for r_data in data.get("rules") or []:
            try:
                ledger.rules.append(rule_from_dict(r_data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping invalid rule %s: %s", str(r_data)[:40], e)

        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("metadata is not an object")
        ledger.next_transaction_id = int(metadata.get("next_transaction_id", len(ledger.transactions) + 1))
        ledger.next_rule_id = int(metadata.get("next_rule_id", len(ledger.rules) + 1))
    except (OSError, TypeError, ValueError) as e:
        logger.error("Error loading data from %s: %s", save_name, e)
        return None

    logger.info("Loaded %d transactions and %d rules from %r",
                len(ledger.transactions), len(ledger.rules), save_name)
    return ledger
