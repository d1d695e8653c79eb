"""
AppData Normalization

Snapshots and backups may come from older versions of the app: amounts
stored as strings, lower-case fund tags, missing collections, numeric ids.
Every value read from storage or imported from a file goes through
normalize_app_data() exactly once, right after parsing, so the rest of
the system only ever sees a valid AppData.

Coercion rules:
- numeric-looking strings become numbers; anything unparsable becomes 0
- fund and transaction type tags are upper-cased (defaults FREEDOM / DEPOSIT)
- missing collections become empty, missing percentages take the default
- journal items are padded to five strings
- ids become strings

What cannot be coerced (a ledger that is not an object, percentages that
do not add up to 100, a zero-amount transaction) raises MalformedImport.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import ValidationError

from moneys_wisdom.ledger.journal import pad_items
from moneys_wisdom.models.ledger import (
    JOURNAL_ITEM_COUNT,
    AppData,
    FundType,
    Percentages,
    TransactionType,
)


class MalformedImport(ValueError):
    """Data does not have the AppData shape, even after coercion."""
    pass


def _to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Lenient exact conversion; anything unparsable or non-finite is the default."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, (int, float)):
            result = Decimal(str(value))
        elif isinstance(value, str):
            result = Decimal(value.strip())
        else:
            return default
    except InvalidOperation:
        return default
    return result if result.is_finite() else default


def _to_int(value: Any, default: int = 0) -> int:
    return int(_to_decimal(value, Decimal(default)))


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _to_id(value: Any, fallback: str) -> str:
    if value is None or value == "":
        return fallback
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, Decimal) and value == value.to_integral_value():
        value = int(value)
    return str(value)


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _require_object(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise MalformedImport(f"Malformed {what}: expected an object")
    return value


def _normalize_transaction(raw: Any, index: int) -> dict:
    tx = _require_object(raw, f"transaction #{index + 1}")
    date = _to_int(tx.get("date"))
    fund = str(tx.get("fundType") or FundType.FREEDOM.value).strip().upper()
    kind = str(tx.get("type") or TransactionType.DEPOSIT.value).strip().upper()
    return {
        "id": _to_id(tx.get("id"), f"{date}-{index}"),
        "amount": _to_decimal(tx.get("amount")),
        "fundType": fund,
        "type": kind,
        "description": str(tx.get("description") or ""),
        "date": date,
    }


def _normalize_goal(raw: Any, index: int) -> dict:
    goal = _require_object(raw, f"dream goal #{index + 1}")
    achieved = _to_bool(goal.get("isAchieved"))
    achieved_date: Optional[int] = None
    if achieved:
        achieved_date = _to_int(goal.get("achievedDate"))
    return {
        "id": _to_id(goal.get("id"), f"goal-{index}"),
        "name": str(goal.get("name") or "").strip(),
        "cost": _to_decimal(goal.get("cost")),
        "isAchieved": achieved,
        "achievedDate": achieved_date,
    }


def _normalize_percentages(raw: Any, default: Percentages) -> dict:
    if not isinstance(raw, dict):
        return default.model_dump(by_alias=True)
    return {
        key: _to_int(raw.get(key), default.get(key))
        for key in ("freedom", "dream", "play")
    }


def _normalize_entry(raw: Any, index: int) -> dict:
    entry = _require_object(raw, f"journal entry #{index + 1}")
    timestamp = _to_int(entry.get("timestamp"))
    items = entry.get("items")
    return {
        "id": _to_id(entry.get("id"), str(timestamp) if timestamp else f"entry-{index}"),
        "timestamp": timestamp,
        "items": pad_items(items) if isinstance(items, list) else [""] * JOURNAL_ITEM_COUNT,
    }


def normalize_ledger(raw: Any, default_percentages: Percentages) -> dict:
    """Coerce a raw ledger object into the LedgerState wire shape."""
    ledger = _require_object(raw, "ledger")
    return {
        "freedomFund": _to_decimal(ledger.get("freedomFund")),
        "dreamFund": _to_decimal(ledger.get("dreamFund")),
        "playFund": _to_decimal(ledger.get("playFund")),
        "transactions": [
            _normalize_transaction(t, i) for i, t in enumerate(_as_list(ledger.get("transactions")))
        ],
        "dreamGoals": [
            _normalize_goal(g, i) for i, g in enumerate(_as_list(ledger.get("dreamGoals")))
        ],
        "percentages": _normalize_percentages(ledger.get("percentages"), default_percentages),
    }


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def normalize_app_data(
    raw: Any,
    default_percentages: Optional[Percentages] = None,
) -> AppData:
    """
    Turn parsed JSON of unknown vintage into a valid AppData.

    Args:
        raw: Result of json.loads on a snapshot or backup
        default_percentages: Split used when the data has none

    Raises:
        MalformedImport: If the data cannot be coerced
    """
    if not isinstance(raw, dict):
        raise MalformedImport("Backup is not a JSON object")
    data = raw
    default_percentages = default_percentages or Percentages()

    ledger_raw = data.get("ledger")
    ledger = normalize_ledger({} if ledger_raw is None else ledger_raw, default_percentages)

    candidate = {
        "version": max(0, _to_int(data.get("version"))),
        "timestamp": max(0, _to_int(data.get("timestamp"))),
        "ledger": ledger,
        "journal": [
            _normalize_entry(e, i) for i, e in enumerate(_as_list(data.get("journal")))
        ],
    }

    try:
        return AppData.model_validate(candidate)
    except ValidationError as e:
        raise MalformedImport(f"Malformed data: {_describe(e)}") from e
