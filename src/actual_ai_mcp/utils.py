"""Utility functions for Actual Budget MCP routes."""

import calendar
from collections.abc import Callable, Iterable
from datetime import date
from typing import Any


class RequestError(ValueError):
    """Invalid tool arguments (the equivalent of an HTTP 400)."""

    pass


def get_current_month(today: date | None = None) -> str:
    """Return the month containing today as YYYY-MM."""
    today = today or date.today()
    return f"{today.year}-{today.month:02d}"


def parse_month(month: str) -> tuple[int, int]:
    """Split a YYYY-MM string into (year, month).

    Raises:
        RequestError: If the string is not a valid month.
    """
    try:
        year_str, month_str = month.strip().split("-")
        year, month_num = int(year_str), int(month_str)
    except (ValueError, AttributeError):
        raise RequestError(f"Invalid month '{month}': expected YYYY-MM format") from None

    if not 1 <= month_num <= 12 or len(year_str) != 4:
        raise RequestError(f"Invalid month '{month}': expected YYYY-MM format")

    return year, month_num


def get_month_dates(month: str) -> tuple[str, str, int]:
    """Convert a YYYY-MM month to its first date, last date and day count.

    Args:
        month: Month in YYYY-MM format.

    Returns:
        Tuple of (start_date, end_date, last_day) with dates as ISO strings.
    """
    year, month_num = parse_month(month)
    last_day = calendar.monthrange(year, month_num)[1]
    start = date(year, month_num, 1)
    end = date(year, month_num, last_day)
    return start.isoformat(), end.isoformat(), last_day


def is_valid_transaction(tx: dict) -> bool:
    """Check that a transaction counts toward summaries.

    Deleted (tombstone) rows, split children and transfers between own
    accounts are excluded.
    """
    return not tx.get("tombstone") and not tx.get("is_child") and not tx.get("transfer_id")


def is_debt_group(group_name: str | None) -> bool:
    """Debt payoff groups are recognized by "debt" in their name."""
    return "debt" in (group_name or "").lower()


def build_name_map(items: Iterable[dict]) -> dict[str, str]:
    """Map record id to name."""
    return {item["id"]: item.get("name") for item in items}


def find_by_name(items: Iterable[dict], name: str, partial: bool = True) -> dict | None:
    """Find the first record whose name matches, case-insensitively.

    With partial=True a record also matches when the name is a substring of
    its own name. The first record satisfying either rule wins.
    """
    needle = name.lower()
    for item in items:
        item_name = (item.get("name") or "").lower()
        if item_name == needle or (partial and needle in item_name):
            return item
    return None


def aggregate_expenses(
    expenses: Iterable[dict],
    key: Callable[[dict], str],
) -> dict[str, dict[str, int]]:
    """Sum absolute expense amounts and counts per group name."""
    totals: dict[str, dict[str, int]] = {}
    for tx in expenses:
        name = key(tx)
        if name not in totals:
            totals[name] = {"spent": 0, "count": 0}
        totals[name]["spent"] += abs(tx["amount"])
        totals[name]["count"] += 1
    return totals


def payee_label(tx: dict[str, Any], payee_map: dict[str, str]) -> str | None:
    """Resolve a transaction's payee name, falling back to the imported payee."""
    return payee_map.get(tx.get("payee")) or tx.get("imported_payee")
