"""Money formatting and validation for Actual Budget amounts.

Actual stores every amount as integer cents. Schedules with an "isbetween"
rule carry a range instead, serialized as ``{"num1": ..., "num2": ...}``.
This module turns both shapes into display strings, annotates whole response
trees with ``<key>_display`` fields and cross-checks cents against
major-unit input.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any, Union


DEFAULT_CURRENCY_SYMBOL = "P"

# Keys that get a sibling "<key>_display" when annotating response trees
MONEY_FIELDS: frozenset[str] = frozenset({
    "amount",
    "balance",
    "spent",
    "budgeted",
    "available",
    "totalBudgeted",
    "totalSpent",
    "totalBalance",
    "totalIncome",
    "incomeAvailable",
    "lastMonthOverspent",
    "forNextMonth",
    "toBudget",
    "fromLastMonth",
    # Route summary fields
    "total_budgeted",
    "total_spent",
    "total_available",
    "upcoming_total",
    "past_due_total",
    "paid_total",
    "paid_amount",
    # Debt payoff fields
    "payment_made",
    "total_payment_made",
    "remaining_debt",
    "total_remaining_debt",
})

_CENT = Decimal("0.01")

# Wide enough to quantize any finite float to cents without InvalidOperation
_FLOAT_CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class AmountRange:
    """Two-endpoint amount in cents, kept in the order the rule stores them."""

    num1: int | float
    num2: int | float


Amount = Union[int, float, AmountRange]


class AmountValidationError(ValueError):
    """Amount input that cannot be accepted."""

    kind = "AmountValidationError"


class MissingPairedFieldError(AmountValidationError):
    """Only one of 'amount' and 'amount_major' was supplied."""

    kind = "MissingPairedField"


class RangeShapeMismatchError(AmountValidationError):
    """One side of the pair is a range and the other is not."""

    kind = "RangeShapeMismatch"


class AmountMismatchError(AmountValidationError):
    """Cents and major units disagree after rounding."""

    kind = "AmountMismatch"


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _is_range_shape(value: Any) -> bool:
    return isinstance(value, Mapping) and "num1" in value and "num2" in value


def parse_amount(value: Any) -> Amount | None:
    """Parse a raw JSON amount into a number or an AmountRange.

    Returns None for anything that is not a finite number or a range whose
    endpoints are both finite numbers.
    """
    if isinstance(value, AmountRange):
        return value
    if _is_number(value):
        return value
    if _is_range_shape(value) and _is_number(value["num1"]) and _is_number(value["num2"]):
        return AmountRange(value["num1"], value["num2"])
    return None


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if isinstance(value, int):
        return value
    return int(Decimal(value).quantize(Decimal(1), context=_FLOAT_CONTEXT))


def _format_digits(cents: int | float) -> str:
    if isinstance(cents, int):
        whole, fraction = divmod(abs(cents), 100)
        return f"{whole:,}.{fraction:02d}"
    # Quantize the float quotient itself so ties round up like fixed-point output
    major = Decimal(abs(cents) / 100).quantize(_CENT, context=_FLOAT_CONTEXT)
    return f"{major:,.2f}"


def _format_signed(cents: int | float, currency_symbol: str) -> str:
    formatted = _format_digits(cents)
    if cents < 0:
        return f"-{currency_symbol}{formatted}"
    return f"{currency_symbol}{formatted}"


def format_amount(amount: Any, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str | None:
    """Format cents (or a cents range) as a signed currency string.

    Examples:
        >>> format_amount(500000)
        'P5,000.00'
        >>> format_amount(-13341690)
        '-P133,416.90'
        >>> format_amount({"num1": -20000, "num2": -10000})
        '-P200.00 - -P100.00'

    Returns None for input that is not an amount.
    """
    parsed = parse_amount(amount)
    if parsed is None:
        return None

    if isinstance(parsed, AmountRange):
        low = _format_signed(parsed.num1, currency_symbol)
        high = _format_signed(parsed.num2, currency_symbol)
        return f"{low} - {high}"

    return _format_signed(parsed, currency_symbol)


def format_magnitude(
    amount: Any,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    approximate: bool = False,
) -> str | None:
    """Format an amount without its sign.

    Used for bills, which are always expenses. Approximate amounts get a
    leading "~"; ranges render as "{num1} to {num2}".
    """
    parsed = parse_amount(amount)
    if parsed is None:
        return None

    if isinstance(parsed, AmountRange):
        low = _format_digits(parsed.num1)
        high = _format_digits(parsed.num2)
        return f"{currency_symbol}{low} to {currency_symbol}{high}"

    prefix = "~" if approximate else ""
    return f"{prefix}{currency_symbol}{_format_digits(parsed)}"


def add_display_fields(
    data: Any,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    money_fields: frozenset[str] | set[str] = MONEY_FIELDS,
) -> Any:
    """Return a copy of data with "<key>_display" added next to money fields.

    Walks dicts and lists at any depth. Keys are matched exactly against
    money_fields; values that cannot be formatted get no display field.
    Primitives and None come back as they are.
    """
    if data is None:
        return data

    if isinstance(data, list):
        return [add_display_fields(item, currency_symbol, money_fields) for item in data]

    if isinstance(data, Mapping):
        result = dict(data)

        for key, value in list(result.items()):
            if key in money_fields:
                display = format_amount(value, currency_symbol)
                if display is not None:
                    result[f"{key}_display"] = display

            if isinstance(value, (Mapping, list)):
                result[key] = add_display_fields(value, currency_symbol, money_fields)

        return result

    return data


def _plain(value: Any) -> str:
    """Render a number for messages: 150.0 -> "150", -4.5 -> "-4.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return "null"
    return str(value)


def _expected_cents(major: Any, field_label: str, name: str) -> int:
    if not _is_number(major):
        raise AmountMismatchError(
            f"{field_label} amount mismatch: {name} ({_plain(major)}) is not a number"
        )
    scaled = major * 100
    if not _is_number(scaled):
        raise AmountMismatchError(
            f"{field_label} amount mismatch: {name} ({_plain(major)}) is out of range"
        )
    return round_half_up(scaled)


def _cents_match(cents: Any, expected: int) -> bool:
    return _is_number(cents) and cents == expected


def validate_amount_pair(data: Mapping[str, Any], field_label: str = "request") -> None:
    """Check that 'amount' (cents) agrees with 'amount_major' (major units).

    Both fields absent is accepted. Otherwise both must be present, of the
    same shape (scalar or range), and amount must equal
    round(amount_major * 100) exactly.

    Raises:
        MissingPairedFieldError: Only one of the two fields is present.
        RangeShapeMismatchError: One field is a range and the other is not.
        AmountMismatchError: The values disagree.
    """
    has_amount = "amount" in data
    has_major = "amount_major" in data

    if not has_amount and not has_major:
        return

    if has_amount != has_major:
        raise MissingPairedFieldError(
            f"{field_label} must include both 'amount' (cents) and 'amount_major' (pesos) fields"
        )

    amount = data["amount"]
    amount_major = data["amount_major"]

    if _is_range_shape(amount):
        if not _is_range_shape(amount_major):
            raise RangeShapeMismatchError(
                f"{field_label} amount_major must be a range object when amount is a range"
            )

        expected1 = _expected_cents(amount_major["num1"], field_label, "amount_major.num1")
        expected2 = _expected_cents(amount_major["num2"], field_label, "amount_major.num2")

        if not _cents_match(amount["num1"], expected1) or not _cents_match(amount["num2"], expected2):
            raise AmountMismatchError(
                f"{field_label} amount mismatch: amount.num1 ({_plain(amount['num1'])}) should equal "
                f"amount_major.num1 * 100 ({expected1}), "
                f"and amount.num2 ({_plain(amount['num2'])}) should equal "
                f"amount_major.num2 * 100 ({expected2})"
            )
        return

    if _is_range_shape(amount_major):
        raise RangeShapeMismatchError(
            f"{field_label} amount must be a range object when amount_major is a range"
        )

    expected_cents = _expected_cents(amount_major, field_label, "amount_major")

    if not _cents_match(amount, expected_cents):
        raise AmountMismatchError(
            f"{field_label} amount mismatch: amount ({_plain(amount)} cents) does not match "
            f"amount_major * 100 ({_plain(amount_major)} × 100 = {expected_cents} cents)"
        )
