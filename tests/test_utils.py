"""Tests for utility functions."""

from datetime import date

import pytest

from actual_ai_mcp.utils import (
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


class TestMonthHelpers:
    """Test month parsing and date ranges."""

    def test_current_month(self):
        assert get_current_month(date(2025, 3, 9)) == "2025-03"

    def test_current_month_defaults_to_today(self):
        today = date.today()
        assert get_current_month() == f"{today.year}-{today.month:02d}"

    def test_parse_month(self):
        assert parse_month("2025-12") == (2025, 12)
        assert parse_month(" 2026-01 ") == (2026, 1)

    @pytest.mark.parametrize("month", ["2025", "2025-00", "2025-13", "25-12", "December", "2025-12-01", ""])
    def test_parse_month_invalid(self, month):
        with pytest.raises(RequestError):
            parse_month(month)

    def test_month_dates(self):
        assert get_month_dates("2026-01") == ("2026-01-01", "2026-01-31", 31)

    def test_february(self):
        assert get_month_dates("2026-02") == ("2026-02-01", "2026-02-28", 28)
        assert get_month_dates("2028-02")[2] == 29


class TestTransactionPredicates:
    """Test transaction predicate functions."""

    def test_valid_transaction(self):
        assert is_valid_transaction({"amount": -100}) is True

    def test_excludes_tombstone_child_and_transfer(self):
        assert is_valid_transaction({"amount": -100, "tombstone": True}) is False
        assert is_valid_transaction({"amount": -100, "is_child": True}) is False
        assert is_valid_transaction({"amount": -100, "transfer_id": "t-2"}) is False

    def test_is_debt_group(self):
        assert is_debt_group("Debt Payoff") is True
        assert is_debt_group("STUDENT DEBT") is True
        assert is_debt_group("Bills") is False
        assert is_debt_group(None) is False


class TestNameLookup:
    """Test name maps and matching."""

    ITEMS = [
        {"id": "a1", "name": "GoTyme Bank"},
        {"id": "a2", "name": "Go"},
        {"id": "a3", "name": "BPI Savings"},
    ]

    def test_build_name_map(self):
        assert build_name_map(self.ITEMS) == {"a1": "GoTyme Bank", "a2": "Go", "a3": "BPI Savings"}

    def test_first_match_wins(self):
        # "go" is a substring of the first record, so it wins over the exact match
        assert find_by_name(self.ITEMS, "go")["id"] == "a1"

    def test_exact_only(self):
        assert find_by_name(self.ITEMS, "go", partial=False)["id"] == "a2"
        assert find_by_name(self.ITEMS, "bpi", partial=False) is None

    def test_case_insensitive_partial(self):
        assert find_by_name(self.ITEMS, "SAVINGS")["id"] == "a3"

    def test_no_match(self):
        assert find_by_name(self.ITEMS, "Maya") is None

    def test_payee_label(self):
        payees = {"p1": "Jollibee"}
        assert payee_label({"payee": "p1"}, payees) == "Jollibee"
        assert payee_label({"payee": None, "imported_payee": "SM"}, payees) == "SM"
        assert payee_label({}, payees) is None


class TestAggregateExpenses:
    """Test expense aggregation."""

    def test_sums_absolute_amounts(self):
        expenses = [
            {"amount": -100, "category": "food"},
            {"amount": -250, "category": "food"},
            {"amount": -50, "category": "fun"},
        ]

        totals = aggregate_expenses(expenses, lambda tx: tx["category"])

        assert totals == {
            "food": {"spent": 350, "count": 2},
            "fun": {"spent": 50, "count": 1},
        }
