"""Core calculation engine for the EMI calculator.

This module implements the amortization logic: it completes a partial loan
specification (deriving the installment from the tenure or the tenure from the
installment), then simulates the loan month by month, applying prepayments
that either shorten the remaining tenure or lower the future installment.
Both simulations are bounded by ``MAX_MONTHS``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal, DecimalException, getcontext
from typing import Dict, List, Optional

from .data_models import (
    MAX_MONTHS,
    MODE_REDUCE_EMI,
    MODES,
    AmortizationRow,
    LoanCalculationResult,
    LoanSpecification,
)
from .exceptions import InvalidParameters, NonAmortizingEMI, SafetyCapExceeded

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# Balances closer to zero than half a cent are treated as fully repaid
HALF_CENT = Decimal("0.005")

# Input ceilings keeping every total quantizable to cents at 28 digits
MAX_AMOUNT = Decimal("1000000000000000")  # 1e15
MAX_ANNUAL_RATE = Decimal("1000")  # percent


def monthly_rate(annual_rate: Decimal) -> Decimal:
    """Convert an annual percentage rate into a monthly decimal rate."""
    return (annual_rate / Decimal(100)) / Decimal(12)


def calculate_emi(principal: Decimal, rate_per_month: Decimal, months: int) -> Decimal:
    """Return the fixed monthly installment that repays ``principal``.

    The formula is:

        emi = P * i * (1 + i)^n / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of installments. When the interest rate is zero, the
    installment simplifies to ``P / n``.
    """
    if months <= 0:
        raise InvalidParameters("tenureMonths must be a positive integer")
    if rate_per_month == 0:
        return principal / Decimal(months)
    factor = (1 + rate_per_month) ** months
    return principal * rate_per_month * factor / (factor - 1)


def estimate_tenure(loan_amount: Decimal, rate_per_month: Decimal, emi: Decimal) -> int:
    """Return the number of installments of ``emi`` needed to repay the loan.

    The loan is simulated without prepayments. An installment that does not
    exceed the interest accrued in a month can never repay the loan and is
    rejected with ``NonAmortizingEMI``.
    """
    balance = loan_amount
    months = 0
    while balance > 0 and months < MAX_MONTHS:
        interest = balance * rate_per_month
        principal = emi - interest
        if principal <= 0:
            raise NonAmortizingEMI(
                f"EMI {emi:.2f} does not cover the monthly interest of {interest:.2f}; "
                "the loan would never be repaid."
            )
        balance -= principal
        if balance < HALF_CENT:
            balance = Decimal("0")
        months += 1
    if balance > 0:
        raise SafetyCapExceeded(
            f"EMI {emi:.2f} does not repay the loan within {MAX_MONTHS} months."
        )
    return months


def validate_specification(spec: LoanSpecification) -> None:
    """Reject a specification the engine cannot compute.

    Raises ``InvalidParameters`` describing the first problem found.
    """
    if spec.emi is None and spec.tenure_months is None:
        raise InvalidParameters()
    if spec.loan_amount <= 0:
        raise InvalidParameters("loanAmount must be greater than zero")
    if spec.loan_amount > MAX_AMOUNT:
        raise InvalidParameters(f"loanAmount must not exceed {MAX_AMOUNT:,}")
    if spec.annual_rate < 0:
        raise InvalidParameters("annualRate must not be negative")
    if spec.annual_rate > MAX_ANNUAL_RATE:
        raise InvalidParameters(f"annualRate must not exceed {MAX_ANNUAL_RATE}")
    if spec.tenure_months is not None and spec.tenure_months < 1:
        raise InvalidParameters("tenureMonths must be a positive integer")
    if spec.emi is not None and spec.emi <= 0:
        raise InvalidParameters("emi must be greater than zero")
    if spec.emi is not None and spec.emi > MAX_AMOUNT:
        raise InvalidParameters(f"emi must not exceed {MAX_AMOUNT:,}")
    if spec.mode not in MODES:
        raise InvalidParameters(
            f"mode must be one of {', '.join(MODES)}; got {spec.mode!r}"
        )
    for prepayment in spec.prepayments:
        if prepayment.month < 1:
            raise InvalidParameters(
                f"Prepayment month must be at least 1; got {prepayment.month}"
            )
        if prepayment.amount <= 0:
            raise InvalidParameters(
                f"Prepayment amount for month {prepayment.month} must be greater than zero"
            )
        if prepayment.amount > MAX_AMOUNT:
            raise InvalidParameters(
                f"Prepayment amount for month {prepayment.month} must not exceed {MAX_AMOUNT:,}"
            )


def compute(spec: LoanSpecification) -> LoanCalculationResult:
    """Compute the complete repayment schedule for a loan.

    Parameters
    ----------
    spec: LoanSpecification
        The loan inputs. Either ``emi`` or ``tenure_months`` (or both) must be
        set.

    Returns
    -------
    LoanCalculationResult
        The resolved starting installment, one ``AmortizationRow`` per month
        and the aggregate totals.

    Raises
    ------
    InvalidParameters
        If the specification is incomplete or out of range.
    NonAmortizingEMI
        If the supplied installment never reduces the principal.
    SafetyCapExceeded
        If the loan is not repaid within ``MAX_MONTHS`` months, including
        when the arithmetic overflows on an enormous tenure.
    """
    try:
        validate_specification(spec)
    except InvalidParameters as exc:
        logger.info("Rejected loan specification: %s", exc)
        raise

    try:
        return _simulate(spec)
    except DecimalException as exc:
        # e.g. (1 + r) ** n overflowing for an enormous tenure
        raise SafetyCapExceeded(
            f"Loan cannot be amortized within {MAX_MONTHS} months "
            f"({type(exc).__name__} during calculation)."
        ) from exc


def _simulate(spec: LoanSpecification) -> LoanCalculationResult:
    rate_per_month = monthly_rate(spec.annual_rate)

    emi: Optional[Decimal] = spec.emi
    tenure: Optional[int] = spec.tenure_months
    if emi is None:
        emi = calculate_emi(spec.loan_amount, rate_per_month, tenure)
    elif tenure is None:
        tenure = estimate_tenure(spec.loan_amount, rate_per_month, emi)
    logger.debug(
        "Resolved loan parameters: amount=%s rate=%s emi=%s tenure=%s mode=%s",
        spec.loan_amount, spec.annual_rate, emi, tenure, spec.mode,
    )

    remaining_principal = spec.loan_amount
    total_interest = Decimal("0")
    current_emi = emi
    breakdown: List[AmortizationRow] = []
    month = 0

    while remaining_principal > 0 and month < MAX_MONTHS:
        month += 1
        interest = remaining_principal * rate_per_month
        principal = current_emi - interest
        charged = current_emi
        if principal <= 0:
            raise NonAmortizingEMI(
                f"EMI {current_emi:.2f} does not cover the interest of {interest:.2f} "
                f"due in month {month}; the loan would never be repaid."
            )

        # Final month: collect only what is left (residue below half a cent included)
        if principal > remaining_principal - HALF_CENT:
            principal = remaining_principal
            charged = principal + interest

        remaining_principal -= principal
        total_interest += interest

        prepayment = spec.prepayment_for(month)
        prepayment_amount = Decimal("0")
        if prepayment is not None:
            prepayment_amount = prepayment.amount
            remaining_principal -= prepayment_amount
            if remaining_principal < HALF_CENT:
                remaining_principal = Decimal("0")

            if spec.mode == MODE_REDUCE_EMI and remaining_principal > 0:
                remaining_months = tenure - month
                # A supplied tenure shorter than the schedule leaves nothing to spread over
                if remaining_months > 0:
                    current_emi = calculate_emi(remaining_principal, rate_per_month, remaining_months)
                    logger.debug("Installment reset to %s after month %d", current_emi, month)

        breakdown.append(
            AmortizationRow(
                month=month,
                emi=charged,
                interest=interest,
                principal=principal,
                prepayment=prepayment_amount,
                remaining_principal=remaining_principal,
            )
        )

        if remaining_principal <= 0:
            break

    if remaining_principal > 0:
        raise SafetyCapExceeded(
            f"Loan still has {remaining_principal:.2f} outstanding after {MAX_MONTHS} months."
        )

    total_paid = sum((row.emi + row.prepayment for row in breakdown), Decimal("0"))
    logger.debug(
        "Schedule complete: months=%d total_interest=%s total_paid=%s",
        len(breakdown), total_interest, total_paid,
    )

    return LoanCalculationResult(
        loan_amount=spec.loan_amount,
        annual_rate=spec.annual_rate,
        emi=emi,
        mode=spec.mode,
        total_interest=total_interest,
        total_paid=total_paid,
        total_months=len(breakdown),
        breakdown=breakdown,
    )


def compare_with_baseline(spec: LoanSpecification) -> Dict[str, object]:
    """Compare a schedule with prepayments against the same loan without them.

    Returns a dictionary with the baseline totals and the savings (positive
    when the prepayments reduce cost or duration).
    """
    result = compute(spec)
    baseline = compute(replace(spec, prepayments=()))
    return {
        "baseline_total_interest": baseline.total_interest,
        "baseline_total_paid": baseline.total_paid,
        "baseline_total_months": baseline.total_months,
        "interest_saved": baseline.total_interest - result.total_interest,
        "total_paid_saved": baseline.total_paid - result.total_paid,
        "months_saved": baseline.total_months - result.total_months,
    }
