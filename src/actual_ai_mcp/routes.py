"""Route logic for Actual Budget MCP tools.

Each route fetches raw records through an ActualClient, reshapes them into
plain dicts with amounts in cents and renders display strings with the
money helpers.
"""

import asyncio
import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from .client import ActualClient
from .money import (
    DEFAULT_CURRENCY_SYMBOL,
    AmountRange,
    add_display_fields,
    format_amount,
    format_magnitude,
    parse_amount,
    round_half_up,
    validate_amount_pair,
)
from .utils import (
    RequestError,
    aggregate_expenses,
    build_name_map,
    find_by_name,
    get_current_month,
    get_month_dates,
    is_debt_group,
    is_valid_transaction,
    parse_month,
    payee_label,
)


logger = logging.getLogger(__name__)

TOP_TRANSACTION_GROUPS = 5
TOP_SPENDING_GROUPS = 10
LARGEST_TRANSACTIONS = 10

# (minimum percent used, status, icon), checked in order
BUDGET_ALERT_LEVELS = [
    (100, "over_budget", "🔴"),
    (90, "critical", "🟠"),
    (80, "warning", "⚠️"),
    (0, "on_track", "✅"),
]


async def _fetch_transactions(
    client: ActualClient,
    accounts: list[dict],
    start_date: str,
    end_date: str,
) -> list[dict]:
    """Fetch transactions of all open accounts, tagging each with its account id."""
    transactions = []
    for account in accounts:
        if account.get("closed"):
            continue
        rows = await client.get_transactions(account["id"], start_date, end_date)
        transactions.extend({**tx, "_account_id": account["id"]} for tx in rows)

    logger.debug("Fetched %d transactions for %s..%s", len(transactions), start_date, end_date)
    return transactions


# ============================================================================
# Budget check
# ============================================================================

async def budget_check(
    client: ActualClient,
    category: str | None = None,
    month: str | None = None,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    today: date | None = None,
) -> dict[str, Any]:
    """Get budget status per category.

    "Can I afford this?"

    Args:
        client: Actual Budget API client.
        category: Category id or name fragment to filter by.
        month: Month in YYYY-MM format. Defaults to the current month.
        currency_symbol: Prefix for display amounts.
        today: Reference date (defaults to today).

    Returns:
        Spending and debt payoff categories with summaries; every money
        field carries a "_display" twin.
    """
    target_month = month or get_current_month(today)
    parse_month(target_month)

    budget_month = await client.get_month(target_month)

    spending_categories = []
    debt_categories = []

    for group in budget_month.get("categoryGroups", []):
        if group.get("is_income"):
            continue

        debt_group = is_debt_group(group.get("name"))

        for cat in group.get("categories", []):
            if cat.get("hidden"):
                continue

            if debt_group:
                debt_categories.append({
                    "id": cat["id"],
                    "name": cat["name"],
                    "group_name": group["name"],
                    "payment_made": cat.get("budgeted") or 0,
                    "remaining_debt": cat.get("balance") or 0,
                })
            else:
                spending_categories.append({
                    "id": cat["id"],
                    "name": cat["name"],
                    "group_name": group["name"],
                    "budgeted": cat.get("budgeted") or 0,
                    "spent": cat.get("spent") or 0,
                    "available": cat.get("balance") or 0,
                })

    if category:
        category_lower = category.lower()

        def matches(c: dict) -> bool:
            return c["id"] == category or category_lower in c["name"].lower()

        spending_categories = [c for c in spending_categories if matches(c)]
        debt_categories = [c for c in debt_categories if matches(c)]

    response = {
        "month": target_month,
        "spending": {
            "summary": {
                "total_budgeted": sum(c["budgeted"] for c in spending_categories),
                "total_spent": sum(c["spent"] for c in spending_categories),
                "total_available": sum(c["available"] for c in spending_categories),
            },
            "categories": spending_categories,
        },
        "debt_payoff": {
            "summary": {
                "total_payment_made": sum(c["payment_made"] for c in debt_categories),
                "total_remaining_debt": sum(c["remaining_debt"] for c in debt_categories),
            },
            "categories": debt_categories,
        },
    }

    return add_display_fields(response, currency_symbol)


# ============================================================================
# Bills due
# ============================================================================

def transform_schedule_amount(
    schedule: Mapping[str, Any],
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> dict[str, Any]:
    """Describe a schedule's amount rule as fixed, approximate or range."""
    amount_op = schedule.get("amountOp") or "is"
    amount = schedule.get("amount")
    parsed = parse_amount(amount)

    if amount_op == "isbetween" and isinstance(parsed, AmountRange):
        # num1/num2 are reported by position; the rule does not order them
        return {
            "amount_type": "range",
            "amount_low": parsed.num1,
            "amount_high": parsed.num2,
            "amount_display": format_magnitude(parsed, currency_symbol),
        }

    if amount_op == "isapprox":
        return {
            "amount_type": "approximate",
            "amount": amount,
            "amount_display": format_magnitude(amount, currency_symbol, approximate=True),
        }

    return {
        "amount_type": "fixed",
        "amount": amount,
        "amount_display": format_magnitude(amount, currency_symbol),
    }


def get_amount_value(bill: Mapping[str, Any]) -> int | float:
    """Numeric amount of a bill for totals; ranges count their first endpoint."""
    if bill.get("amount_type") == "range":
        return bill["amount_low"]
    amount = bill.get("amount")
    if isinstance(parse_amount(amount), (int, float)):
        return amount
    return 0


def _parse_target_months(month: str | None, today: date) -> list[str]:
    if month:
        months = [m.strip() for m in month.split(",") if m.strip()]
    else:
        months = [get_current_month(today)]

    if not months:
        raise RequestError("month must contain at least one YYYY-MM value")

    for m in months:
        parse_month(m)
    return sorted(months)


async def bills_due(
    client: ActualClient,
    month: str | None = None,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    today: date | None = None,
) -> dict[str, Any]:
    """Get scheduled bills split into upcoming, past due and paid.

    "What bills are left?"

    Args:
        client: Actual Budget API client.
        month: One or more comma-separated YYYY-MM months. Defaults to the
            current month; without it every unpaid bill is listed.
        currency_symbol: Prefix for display amounts.
        today: Reference date (defaults to today).

    Returns:
        Dictionary with upcoming, past_due and paid bills plus a summary.
    """
    today = today or date.today()
    today_str = today.isoformat()
    has_month_filter = bool(month)

    target_months = _parse_target_months(month, today)
    month_start = get_month_dates(target_months[0])[0]
    month_end = get_month_dates(target_months[-1])[1]

    schedules = await client.get_schedules()
    payees = await client.get_payees()
    accounts = await client.get_accounts()

    payee_map = build_name_map(payees)
    account_map = build_name_map(accounts)

    def in_target_months(date_str: str | None) -> bool:
        return bool(date_str) and date_str[:7] in target_months

    # A schedule counts as paid by its first linked transaction in the period
    paid_schedules: dict[str, dict[str, Any]] = {}
    transaction_end = min(month_end, today_str)
    if month_start <= transaction_end:
        transactions = await _fetch_transactions(client, accounts, month_start, transaction_end)
        for tx in transactions:
            schedule_id = tx.get("schedule")
            if schedule_id and in_target_months(tx.get("date")) and schedule_id not in paid_schedules:
                paid_schedules[schedule_id] = {
                    "transaction_id": tx.get("id"),
                    "paid_date": tx["date"],
                    "paid_amount": tx.get("amount") or 0,
                }

    upcoming = []
    past_due = []
    paid = []

    for schedule in schedules:
        if schedule.get("completed"):
            continue

        next_date = schedule.get("next_date")
        bill = {
            "id": schedule["id"],
            "name": schedule.get("name") or payee_map.get(schedule.get("payee")) or "Unnamed",
            **transform_schedule_amount(schedule, currency_symbol),
            "payee_name": payee_map.get(schedule.get("payee")),
            "account_name": account_map.get(schedule.get("account")),
            "next_date": next_date,
        }

        paid_info = paid_schedules.get(schedule["id"])
        if paid_info:
            bill["paid_date"] = paid_info["paid_date"]
            bill["paid_amount"] = paid_info["paid_amount"]
            bill["paid_amount_display"] = format_magnitude(paid_info["paid_amount"], currency_symbol)
            paid.append(bill)
            continue

        if not next_date:
            logger.debug("Skipping schedule %s without next_date", schedule["id"])
            continue

        if has_month_filter and not in_target_months(next_date):
            continue

        days_diff = (date.fromisoformat(next_date) - today).days
        if days_diff >= 0:
            bill["days_until_due"] = days_diff
            upcoming.append(bill)
        else:
            bill["days_overdue"] = -days_diff
            past_due.append(bill)

    upcoming.sort(key=lambda b: b["days_until_due"])
    past_due.sort(key=lambda b: b["days_overdue"], reverse=True)
    paid.sort(key=lambda b: b["paid_date"], reverse=True)

    upcoming_total = sum(get_amount_value(b) for b in upcoming)
    past_due_total = sum(get_amount_value(b) for b in past_due)
    paid_total = sum(b.get("paid_amount") or 0 for b in paid)

    return {
        "as_of_date": today_str,
        "months": target_months,
        "upcoming": upcoming,
        "past_due": past_due,
        "paid": paid,
        "summary": {
            "upcoming_count": len(upcoming),
            "upcoming_total": upcoming_total,
            "upcoming_total_display": format_magnitude(upcoming_total, currency_symbol),
            "past_due_count": len(past_due),
            "past_due_total": past_due_total,
            "past_due_total_display": format_magnitude(past_due_total, currency_symbol),
            "paid_count": len(paid),
            "paid_total": paid_total,
            "paid_total_display": format_magnitude(paid_total, currency_symbol),
        },
    }


# ============================================================================
# Transactions
# ============================================================================

async def get_transactions(
    client: ActualClient,
    month: str | None = None,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    today: date | None = None,
) -> dict[str, Any]:
    """List a month's transactions with resolved names.

    Args:
        client: Actual Budget API client.
        month: Month in YYYY-MM format. Defaults to the current month.
        currency_symbol: Prefix for display amounts.
        today: Reference date (defaults to today).

    Returns:
        Dictionary with a spending summary and transactions, newest first.
    """
    target_month = month or get_current_month(today)
    start_date, end_date, _ = get_month_dates(target_month)

    accounts = await client.get_accounts()
    categories = await client.get_categories()
    payees = await client.get_payees()

    category_map = build_name_map(categories)
    payee_map = build_name_map(payees)

    all_transactions = await _fetch_transactions(client, accounts, start_date, end_date)
    valid_transactions = [tx for tx in all_transactions if is_valid_transaction(tx)]

    expenses = [tx for tx in valid_transactions if tx["amount"] < 0]
    total_spent = sum(tx["amount"] for tx in expenses)

    def top_groups(totals: dict[str, dict[str, int]]) -> list[dict[str, Any]]:
        ranked = sorted(totals.items(), key=lambda item: (-item[1]["count"], -item[1]["spent"]))
        return [
            {
                "name": name,
                "spent_display": format_amount(-data["spent"], currency_symbol),
                "count": data["count"],
            }
            for name, data in ranked[:TOP_TRANSACTION_GROUPS]
        ]

    category_totals = aggregate_expenses(
        expenses, lambda tx: category_map.get(tx.get("category")) or "Uncategorized"
    )
    payee_totals = aggregate_expenses(
        expenses, lambda tx: payee_label(tx, payee_map) or "Unknown"
    )

    newest_first = sorted(valid_transactions, key=lambda tx: tx.get("date") or "", reverse=True)

    transactions = [
        {
            "date": tx.get("date"),
            "amount_display": format_amount(tx["amount"], currency_symbol),
            "payee": payee_label(tx, payee_map),
            "category": category_map.get(tx.get("category")),
        }
        for tx in newest_first
    ]

    return {
        "summary": {
            "month": target_month,
            "total_spent_display": format_amount(total_spent, currency_symbol),
            "transaction_count": len(expenses),
            "top_categories": top_groups(category_totals),
            "top_payees": top_groups(payee_totals),
        },
        "transactions": transactions,
    }


async def _build_budget_alert(
    client: ActualClient,
    category_id: str,
    currency_symbol: str,
    today: date,
) -> dict[str, Any] | None:
    """Budget status of a spending category after a new expense."""
    budget_month = await client.get_month(get_current_month(today)) or {}

    for group in budget_month.get("categoryGroups", []):
        if group.get("is_income") or is_debt_group(group.get("name")):
            continue

        for cat in group.get("categories", []):
            if cat.get("id") != category_id:
                continue

            budgeted = cat.get("budgeted") or 0
            spent = abs(cat.get("spent") or 0)
            available = cat.get("balance") or 0

            if budgeted <= 0:
                return None

            percent_used = round_half_up(spent / budgeted * 100)
            available_display = format_amount(available, currency_symbol)

            for threshold, status, icon in BUDGET_ALERT_LEVELS:
                if percent_used >= threshold:
                    break

            if status == "over_budget":
                over_by = format_amount(-abs(available), currency_symbol)
                message = f"Over by {over_by}. Pause spending."
            elif status == "critical":
                message = f"Only {available_display} left!"
            elif status == "warning":
                message = f"Getting close - {available_display} left"
            else:
                message = f"On track - {available_display} left"

            return {
                "status": status,
                "icon": icon,
                "percent_used": percent_used,
                "message": message,
                "available": available,
                "available_display": available_display,
            }

    return None


async def create_transaction(
    client: ActualClient,
    transaction: Mapping[str, Any],
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    today: date | None = None,
) -> dict[str, Any]:
    """Create a transaction from human-readable names.

    Accounts and categories are matched by name (case-insensitive, exact or
    partial); an unknown payee is created.

    Args:
        client: Actual Budget API client.
        transaction: Tool arguments: account_name, amount (cents),
            amount_major, and optional date, payee_name, category_name, notes.
        currency_symbol: Prefix for display amounts.
        today: Reference date (defaults to today).

    Returns:
        Dictionary with the created transaction, a budget alert and a message.

    Raises:
        RequestError: Missing fields or unknown account/category.
        AmountValidationError: amount and amount_major disagree.
    """
    today = today or date.today()

    account_name = transaction.get("account_name")
    if not account_name:
        raise RequestError("account_name is required")

    if transaction.get("amount") is None or transaction.get("amount_major") is None:
        raise RequestError("Both amount (cents) and amount_major are required")

    validate_amount_pair(transaction, "transaction")
    amount = transaction["amount"]
    if isinstance(parse_amount(amount), AmountRange):
        raise RequestError("transaction amount must be a single value, not a range")

    accounts = await client.get_accounts()
    account = find_by_name(accounts, account_name)
    if account is None:
        raise RequestError(f'Account "{account_name}" not found')

    category_name = transaction.get("category_name")
    category_id = None
    if category_name:
        categories = await client.get_categories()
        category = find_by_name(categories, category_name)
        if category is None:
            raise RequestError(f'Category "{category_name}" not found')
        category_id = category["id"]

    payee_name = transaction.get("payee_name")
    payee_id = None
    if payee_name:
        payees = await client.get_payees()
        payee = find_by_name(payees, payee_name, partial=False)
        if payee is not None:
            payee_id = payee["id"]
        else:
            payee_id = await client.create_payee({"name": payee_name})

    new_transaction = {
        "date": transaction.get("date") or today.isoformat(),
        "amount": amount,
        "payee": payee_id,
        "category": category_id,
        "notes": transaction.get("notes") or None,
        "cleared": False,
    }

    await client.add_transaction(account["id"], new_transaction)
    logger.info(
        "Added transaction of %s cents to account %s on %s",
        amount, account["name"], new_transaction["date"],
    )

    budget_alert = None
    if category_id and amount < 0:
        try:
            budget_alert = await _build_budget_alert(client, category_id, currency_symbol, today)
        except Exception:
            # Transaction is already written
            logger.exception("Failed to generate budget alert")

    return {
        "transaction": {
            "id": None,  # actual-http-api does not return the new id
            "date": new_transaction["date"],
            "amount": amount,
            "amount_display": format_amount(amount, currency_symbol),
            "payee_name": payee_name or None,
            "category_name": category_name or None,
            "account_name": account["name"],
            "notes": new_transaction["notes"],
            "cleared": False,
            "is_transfer": False,
            "is_split": False,
            "schedule_name": None,
        },
        "budget_alert": budget_alert,
        "message": "Transaction created successfully",
    }


# ============================================================================
# Accounts and categories
# ============================================================================

async def list_accounts(
    client: ActualClient,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> list[dict[str, Any]]:
    """List open accounts with balances, sorted by name."""
    accounts = await client.get_accounts()
    active_accounts = [a for a in accounts if not a.get("closed") and not a.get("tombstone")]

    balances = await asyncio.gather(
        *(client.get_account_balance(a["id"]) for a in active_accounts)
    )

    result = []
    for account, balance in zip(active_accounts, balances):
        balance = balance or 0
        result.append({
            "name": account["name"],
            "type": account.get("type") or "checking",
            "balance": balance,
            "balance_display": format_amount(balance, currency_symbol),
        })

    result.sort(key=lambda a: a["name"].lower())
    return result


async def list_categories(client: ActualClient) -> list[dict[str, Any]]:
    """List visible categories with their group, sorted by group then name."""
    categories = await client.get_categories()
    category_groups = await client.get_category_groups()

    group_map = build_name_map(category_groups)

    result = []
    for cat in categories:
        if cat.get("tombstone") or cat.get("hidden"):
            continue
        group_name = group_map.get(cat.get("group_id")) or "Uncategorized"
        result.append({
            "name": cat["name"],
            "group": group_name,
            "is_income": bool(cat.get("is_income")),
            "is_debt": is_debt_group(group_name),
        })

    result.sort(key=lambda c: (c["group"].lower(), c["name"].lower()))
    return result


# ============================================================================
# Spending summary
# ============================================================================

async def spending_summary(
    client: ActualClient,
    month: str | None = None,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    today: date | None = None,
) -> dict[str, Any]:
    """Analyze where the money went in a month.

    "Why am I broke?"

    Args:
        client: Actual Budget API client.
        month: Month in YYYY-MM format. Defaults to the current month.
        currency_symbol: Prefix for display amounts.
        today: Reference date (defaults to today).

    Returns:
        Dictionary with period, totals, top categories and payees, and the
        largest expenses.
    """
    today = today or date.today()
    target_month = month or get_current_month(today)
    year, month_num = parse_month(target_month)
    start_date, end_date, last_day = get_month_dates(target_month)

    is_current_month = today.year == year and today.month == month_num
    if is_current_month:
        days_elapsed = today.day
        days_remaining = last_day - today.day
    elif today > date.fromisoformat(end_date):
        days_elapsed = last_day
        days_remaining = 0
    else:
        days_elapsed = 0
        days_remaining = last_day

    accounts = await client.get_accounts()
    categories = await client.get_categories()
    payees = await client.get_payees()

    category_map = build_name_map(categories)
    payee_map = build_name_map(payees)
    account_map = build_name_map(accounts)

    period_end = today.isoformat() if is_current_month else end_date
    all_transactions = await _fetch_transactions(client, accounts, start_date, period_end)
    valid_transactions = [tx for tx in all_transactions if is_valid_transaction(tx)]

    expenses = [tx for tx in valid_transactions if tx["amount"] < 0]
    income = [tx for tx in valid_transactions if tx["amount"] > 0]

    total_spent = abs(sum(tx["amount"] for tx in expenses))
    total_income = sum(tx["amount"] for tx in income)
    net_flow = total_income - total_spent
    daily_average_spent = round_half_up(total_spent / days_elapsed) if days_elapsed > 0 else 0

    def ranked(totals: dict[str, dict[str, int]]) -> list[dict[str, Any]]:
        rows = [
            {
                "name": name,
                "spent": data["spent"],
                "spent_display": format_amount(-data["spent"], currency_symbol),
                "percent_of_total": round_half_up(data["spent"] / total_spent * 100) if total_spent > 0 else 0,
                "transaction_count": data["count"],
            }
            for name, data in totals.items()
        ]
        rows.sort(key=lambda r: r["spent"], reverse=True)
        return rows[:TOP_SPENDING_GROUPS]

    top_categories = ranked(aggregate_expenses(
        expenses, lambda tx: category_map.get(tx.get("category")) or "Uncategorized"
    ))
    top_payees = ranked(aggregate_expenses(
        expenses, lambda tx: payee_label(tx, payee_map) or "Unknown"
    ))

    largest_transactions = [
        {
            "id": tx.get("id"),
            "date": tx.get("date"),
            "amount": tx["amount"],
            "amount_display": format_amount(tx["amount"], currency_symbol),
            "payee_name": payee_label(tx, payee_map),
            "category_name": category_map.get(tx.get("category")),
            "account_name": account_map.get(tx["_account_id"]),
            "notes": tx.get("notes") or None,
        }
        for tx in sorted(expenses, key=lambda tx: tx["amount"])[:LARGEST_TRANSACTIONS]
    ]

    return {
        "month": target_month,
        "period": {
            "start_date": start_date,
            "end_date": period_end,
            "days_elapsed": days_elapsed,
            "days_remaining": days_remaining,
        },
        "totals": {
            "total_spent": total_spent,
            "total_spent_display": format_amount(-total_spent, currency_symbol),
            "total_income": total_income,
            "total_income_display": format_amount(total_income, currency_symbol),
            "net_flow": net_flow,
            "net_flow_display": format_amount(net_flow, currency_symbol),
            "transaction_count": len(expenses),
            "daily_average_spent": daily_average_spent,
            "daily_average_spent_display": format_amount(-daily_average_spent, currency_symbol),
        },
        "top_categories": top_categories,
        "top_payees": top_payees,
        "largest_transactions": largest_transactions,
    }
