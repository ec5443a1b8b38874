"""Output helpers for the EMI calculator.

This module renders calculation results: ``serialize_result`` produces the
JSON response document (amounts as 2-decimal strings, the way EMI statements
show them), and the ``print_*`` functions write tab-separated text tables for
the command line.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, Union

from .data_models import AmortizationRow, LoanCalculationResult

CENTS = Decimal("0.01")


def format_amount(value: Decimal) -> str:
    """Round to cents (half up) and return the fixed-point string."""
    rounded = value.quantize(CENTS, rounding=ROUND_HALF_UP)
    if rounded == 0:
        # avoid "-0.00"
        rounded = abs(rounded)
    return f"{rounded:.2f}"


def _number(value: Decimal) -> Union[int, float]:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def serialize_row(row: AmortizationRow) -> Dict[str, Any]:
    return {
        "month": row.month,
        "emi": format_amount(row.emi),
        "interest": format_amount(row.interest),
        "principal": format_amount(row.principal),
        "prepayment": format_amount(row.prepayment),
        "remainingPrincipal": format_amount(row.remaining_principal),
    }


def serialize_result(result: LoanCalculationResult) -> Dict[str, Any]:
    """Convert a result into the JSON response document."""
    return {
        "loanAmount": _number(result.loan_amount),
        "annualRate": _number(result.annual_rate),
        "emi": format_amount(result.emi),
        "mode": result.mode,
        "totalInterest": format_amount(result.total_interest),
        "totalPaid": format_amount(result.total_paid),
        "totalMonths": result.total_months,
        "breakdown": [serialize_row(row) for row in result.breakdown],
    }


def serialize_comparison(comparison: Dict[str, object]) -> Dict[str, Any]:
    return {
        key: format_amount(value) if isinstance(value, Decimal) else value
        for key, value in comparison.items()
    }


def print_summary(result: LoanCalculationResult) -> None:
    """Print the totals of a calculation in a human-readable format."""
    total_prepaid = sum((row.prepayment for row in result.breakdown), Decimal("0"))
    print("Summary")
    print("-" * 72)
    print(f"Loan amount        : {format_amount(result.loan_amount)}")
    print(f"Annual rate        : {result.annual_rate}%")
    print(f"EMI                : {format_amount(result.emi)}")
    print(f"Mode               : {result.mode}")
    print(f"Total interest     : {format_amount(result.total_interest)}")
    if total_prepaid:
        print(f"Total prepayment   : {format_amount(total_prepaid)}")
    print(f"Total paid         : {format_amount(result.total_paid)}")
    print(f"Months             : {result.total_months}")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationRow]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Month", "EMI", "Interest", "Principal", "Prepay", "Remaining"]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.month),
                    format_amount(row.emi),
                    format_amount(row.interest),
                    format_amount(row.principal),
                    format_amount(row.prepayment),
                    format_amount(row.remaining_principal),
                ]
            )
        )


def print_comparison(
    comparison: Dict[str, object],
    reduce_tenure: LoanCalculationResult,
    reduce_emi: LoanCalculationResult,
) -> None:
    """Print prepayment savings and the totals of both prepayment modes.

    The savings block compares the requested mode against the same loan
    without prepayments; the table below shows both modes side by side.
    """
    print("Prepayment savings")
    print("=" * 72)
    print(f"Baseline interest  : {format_amount(comparison['baseline_total_interest'])}")
    print(f"Interest saved     : {format_amount(comparison['interest_saved'])}")
    print(f"Total paid saved   : {format_amount(comparison['total_paid_saved'])}")
    if comparison.get("months_saved"):
        print(f"Term reduction     : {comparison['months_saved']} months")
    print("=" * 72)
    print(f"{'Metric':20s} {'reduceTenure':>15s} {'reduceEMI':>15s} {'Difference':>15s}")
    for label, attr in (
        ("total_interest", "total_interest"),
        ("total_paid", "total_paid"),
    ):
        v1 = getattr(reduce_tenure, attr)
        v2 = getattr(reduce_emi, attr)
        print(f"{label:20s} {format_amount(v1):>15s} {format_amount(v2):>15s} {format_amount(v2 - v1):>15s}")
    m1, m2 = reduce_tenure.total_months, reduce_emi.total_months
    print(f"{'total_months':20s} {m1:15d} {m2:15d} {m2 - m1:15d}")
    print("=" * 72)
