"""Utility functions for the EMI calculator.

This module provides helpers for turning user input (JSON request bodies and
command-line strings) into ``Decimal`` and ``int`` values and for building a
``LoanSpecification`` from a request payload. Range checks live in
``engine.validate_specification``; the helpers here only reject values that
are not numbers at all.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from .data_models import MODE_REDUCE_TENURE, LoanSpecification, Prepayment
from .exceptions import InvalidParameters


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings, as well as ``k``/``m`` shorthand suffixes (``"500k"`` meaning
    500 000). It raises ``InvalidParameters`` if conversion fails.
    """
    cleaned = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if cleaned.endswith("k"):
        factor = Decimal(1_000)
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal(1_000_000)
        cleaned = cleaned[:-1]
    try:
        result = Decimal(cleaned) * factor
    except InvalidOperation as exc:
        raise InvalidParameters(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise InvalidParameters(f"Invalid numeric value: {value}")
    return result


def to_decimal(value: Any, field: str) -> Decimal:
    """Coerce a JSON number (or numeric string) into a ``Decimal``."""
    if isinstance(value, bool):
        raise InvalidParameters(f"{field} must be a number, got bool")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        # str() keeps the shortest repr, so 10.5 becomes Decimal("10.5")
        return decimal_from_str(str(value))
    if isinstance(value, str):
        if not value.strip():
            raise InvalidParameters(f"{field} is empty")
        return decimal_from_str(value)
    raise InvalidParameters(f"{field} must be a number")


def to_int(value: Any, field: str) -> int:
    """Coerce a JSON number into an ``int``, rejecting fractional values."""
    if isinstance(value, bool):
        raise InvalidParameters(f"{field} must be an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidParameters(f"{field} must be an integer")
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise InvalidParameters(f"{field} must be an integer") from exc
    raise InvalidParameters(f"{field} must be an integer")


def _optional(payload: Dict[str, Any], key: str) -> Optional[Any]:
    # null, 0 and "" all mean "not supplied" for the optional loan parameters
    value = payload.get(key)
    if value is None or value == "" or (value == 0 and not isinstance(value, bool)):
        return None
    return value


def parse_prepayments(items: Any) -> List[Prepayment]:
    """Convert a list of ``{"month": ..., "amount": ...}`` objects."""
    if items is None:
        return []
    if not isinstance(items, list):
        raise InvalidParameters("prepayments must be a list")
    prepayments: List[Prepayment] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidParameters(f"prepayments[{index}] must be an object")
        if "month" not in item or "amount" not in item:
            raise InvalidParameters(f"prepayments[{index}] requires month and amount")
        prepayments.append(
            Prepayment(
                month=to_int(item["month"], f"prepayments[{index}].month"),
                amount=to_decimal(item["amount"], f"prepayments[{index}].amount"),
            )
        )
    return prepayments


def spec_from_payload(payload: Any) -> LoanSpecification:
    """Build a ``LoanSpecification`` from a decoded JSON request body.

    Keys follow the request format: ``loanAmount``, ``annualRate``,
    ``tenureMonths``, ``emi``, ``prepayments`` and ``mode``.
    """
    if not isinstance(payload, dict):
        raise InvalidParameters("Request body must be a JSON object")
    for key in ("loanAmount", "annualRate"):
        if payload.get(key) is None:
            raise InvalidParameters(f"{key} is required")

    tenure = _optional(payload, "tenureMonths")
    emi = _optional(payload, "emi")
    return LoanSpecification(
        loan_amount=to_decimal(payload["loanAmount"], "loanAmount"),
        annual_rate=to_decimal(payload["annualRate"], "annualRate"),
        tenure_months=to_int(tenure, "tenureMonths") if tenure is not None else None,
        emi=to_decimal(emi, "emi") if emi is not None else None,
        prepayments=tuple(parse_prepayments(payload.get("prepayments"))),
        mode=payload.get("mode") or MODE_REDUCE_TENURE,
    )


def parse_prepayment_strings(values: Iterable[str]) -> List[Prepayment]:
    """Parse command-line prepayments given as ``MONTH:AMOUNT``."""
    prepayments: List[Prepayment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise InvalidParameters(
                f"Prepayment must be in MONTH:AMOUNT format; got {item}"
            )
        month_str, amount_str = parts
        prepayments.append(
            Prepayment(
                month=to_int(month_str, "prepayment month"),
                amount=decimal_from_str(amount_str),
            )
        )
    return prepayments
