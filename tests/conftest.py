"""Test fixtures for Actual Budget MCP server tests."""

import copy
from datetime import date
from typing import Any

import pytest

from actual_ai_mcp.client import ActualAPIError


TODAY = date(2025, 12, 15)


class FakeActualClient:
    """In-memory stand-in for ActualClient with a small budget."""

    def __init__(self, data: dict[str, Any]):
        self.data = copy.deepcopy(data)
        self.added_transactions: list[tuple[str, dict]] = []
        self.created_payees: list[dict] = []
        self.transaction_requests: list[tuple[str, str, str | None]] = []

    async def get_month(self, month: str) -> dict[str, Any]:
        if month not in self.data["months"]:
            raise ActualAPIError(f"API returned status 404: month {month} not found", status_code=404)
        return copy.deepcopy(self.data["months"][month])

    async def get_accounts(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.data["accounts"])

    async def get_account_balance(self, account_id: str) -> int | None:
        return self.data["balances"].get(account_id)

    async def get_transactions(self, account_id: str, since_date: str, until_date: str | None = None):
        self.transaction_requests.append((account_id, since_date, until_date))
        rows = self.data["transactions"].get(account_id, [])
        return [
            copy.deepcopy(tx)
            for tx in rows
            if tx["date"] >= since_date and (until_date is None or tx["date"] <= until_date)
        ]

    async def add_transaction(self, account_id: str, transaction: dict[str, Any]) -> str:
        self.added_transactions.append((account_id, transaction))
        return "ok"

    async def get_payees(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.data["payees"])

    async def create_payee(self, payee: dict[str, Any]) -> str:
        self.created_payees.append(payee)
        payee_id = f"p-new-{len(self.created_payees)}"
        self.data["payees"].append({"id": payee_id, **payee})
        return payee_id

    async def get_categories(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.data["categories"])

    async def get_category_groups(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.data["category_groups"])

    async def get_schedules(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.data["schedules"])


def _budget_data() -> dict[str, Any]:
    """Budget for December 2025 with amounts in centavos."""
    return {
        "accounts": [
            {"id": "acc-gotyme", "name": "GoTyme Bank", "type": "checking", "closed": False},
            {"id": "acc-cash", "name": "Cash", "type": "cash", "closed": False},
            {"id": "acc-savings", "name": "BPI Savings", "closed": False},
            {"id": "acc-old", "name": "Old Card", "type": "credit", "closed": True},
            {"id": "acc-deleted", "name": "Deleted Wallet", "closed": False, "tombstone": True},
        ],
        "balances": {
            "acc-gotyme": 500000,
            "acc-cash": 12345,
            "acc-old": -99999,
        },
        "payees": [
            {"id": "p-employer", "name": "Employer"},
            {"id": "p-meralco", "name": "Meralco"},
            {"id": "p-jollibee", "name": "Jollibee"},
            {"id": "p-landlord", "name": "Landlord"},
        ],
        "category_groups": [
            {"id": "g-food", "name": "Food"},
            {"id": "g-bills", "name": "Bills"},
            {"id": "g-debt", "name": "Debt Payoff"},
            {"id": "g-income", "name": "Income", "is_income": True},
        ],
        "categories": [
            {"id": "c-groceries", "name": "Groceries", "group_id": "g-food"},
            {"id": "c-dining", "name": "Dining Out", "group_id": "g-food"},
            {"id": "c-shopping", "name": "Shopping", "group_id": "g-food"},
            {"id": "c-transport", "name": "Transport", "group_id": "g-food"},
            {"id": "c-hobby", "name": "Old Hobby", "group_id": "g-food", "hidden": True},
            {"id": "c-electric", "name": "Electricity", "group_id": "g-bills"},
            {"id": "c-card", "name": "Credit Card Debt", "group_id": "g-debt"},
            {"id": "c-salary", "name": "Salary", "group_id": "g-income", "is_income": True},
            {"id": "c-misc", "name": "Misc", "group_id": "g-missing"},
            {"id": "c-gone", "name": "Gone", "group_id": "g-food", "tombstone": True},
        ],
        "months": {
            "2025-12": {
                "month": "2025-12",
                "toBudget": 0,
                "categoryGroups": [
                    {
                        "id": "g-food",
                        "name": "Food",
                        "is_income": False,
                        "categories": [
                            {"id": "c-groceries", "name": "Groceries", "budgeted": 1000000, "spent": -850000, "balance": 150000},
                            {"id": "c-dining", "name": "Dining Out", "budgeted": 300000, "spent": -100000, "balance": 200000},
                            {"id": "c-shopping", "name": "Shopping", "budgeted": 100000, "spent": -120000, "balance": -20000},
                            {"id": "c-transport", "name": "Transport", "budgeted": 100000, "spent": -95000, "balance": 5000},
                            {"id": "c-hobby", "name": "Old Hobby", "budgeted": 50000, "spent": 0, "balance": 50000, "hidden": True},
                        ],
                    },
                    {
                        "id": "g-bills",
                        "name": "Bills",
                        "is_income": False,
                        "categories": [
                            {"id": "c-electric", "name": "Electricity", "budgeted": 500000, "spent": -300000, "balance": 200000},
                        ],
                    },
                    {
                        "id": "g-debt",
                        "name": "Debt Payoff",
                        "is_income": False,
                        "categories": [
                            {"id": "c-card", "name": "Credit Card Debt", "budgeted": 200000, "spent": 0, "balance": -1500000},
                        ],
                    },
                    {
                        "id": "g-income",
                        "name": "Income",
                        "is_income": True,
                        "categories": [
                            {"id": "c-salary", "name": "Salary", "budgeted": 0, "spent": 5000000, "balance": 0},
                        ],
                    },
                ],
            },
        },
        "transactions": {
            "acc-gotyme": [
                {"id": "t1", "date": "2025-12-01", "amount": 5000000, "payee": "p-employer", "category": "c-salary"},
                {"id": "t2", "date": "2025-12-03", "amount": -245000, "payee": "p-meralco", "category": "c-electric", "schedule": "s-electric"},
                {"id": "t3", "date": "2025-12-05", "amount": -150000, "payee": "p-jollibee", "category": "c-dining"},
                {"id": "t4", "date": "2025-12-10", "amount": -700000, "payee": None, "imported_payee": "SM Supermarket", "category": "c-groceries", "notes": "Weekly groceries"},
                {"id": "t5", "date": "2025-12-11", "amount": -100000, "payee": None, "transfer_id": "t5-mirror"},
                {"id": "t6", "date": "2025-12-12", "amount": -999, "payee": "p-jollibee", "tombstone": True},
                {"id": "t9", "date": "2025-11-20", "amount": -30000, "payee": "p-jollibee", "category": "c-dining"},
            ],
            "acc-cash": [
                {"id": "t7", "date": "2025-12-08", "amount": -50000, "payee": "p-jollibee", "category": None},
            ],
            "acc-old": [
                {"id": "t8", "date": "2025-12-09", "amount": -1, "payee": "p-jollibee", "category": "c-dining"},
            ],
        },
        "schedules": [
            {
                "id": "s-electric",
                "name": None,
                "payee": "p-meralco",
                "account": "acc-gotyme",
                "amount": -245000,
                "amountOp": "isapprox",
                "next_date": "2026-01-03",
                "completed": False,
            },
            {
                "id": "s-rent",
                "name": "Rent",
                "payee": "p-landlord",
                "account": "acc-gotyme",
                "amount": -2000000,
                "amountOp": "is",
                "next_date": "2025-12-20",
                "completed": False,
            },
            {
                "id": "s-internet",
                "name": "Internet",
                "payee": None,
                "account": "acc-gotyme",
                "amount": {"num1": -600000, "num2": -900000},
                "amountOp": "isbetween",
                "next_date": "2025-12-10",
                "completed": False,
            },
            {
                "id": "s-gym",
                "name": "Gym",
                "payee": None,
                "account": "acc-cash",
                "amount": -150000,
                "amountOp": "is",
                "next_date": "2025-12-12",
                "completed": False,
            },
            {
                "id": "s-insurance",
                "name": "Insurance",
                "payee": None,
                "account": None,
                "amount": -500000,
                "next_date": "2026-01-05",
                "completed": False,
            },
            {
                "id": "s-old",
                "name": "Old Loan",
                "payee": None,
                "account": "acc-gotyme",
                "amount": -100000,
                "amountOp": "is",
                "next_date": "2025-12-16",
                "completed": True,
            },
        ],
    }


@pytest.fixture
def today() -> date:
    """Fixed reference date inside the sample month."""
    return TODAY


@pytest.fixture
def fake_client() -> FakeActualClient:
    """Fake client populated with a December 2025 budget."""
    return FakeActualClient(_budget_data())
