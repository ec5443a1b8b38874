"""Data models for the EMI calculator.

This module defines dataclasses representing the entities used by the
amortization engine: prepayments, the loan specification supplied by the
caller, individual schedule rows and the overall calculation result. Amounts
are carried as ``Decimal`` at full precision; rounding to cents happens only
when a result is rendered or serialized.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

MODE_REDUCE_TENURE = "reduceTenure"
MODE_REDUCE_EMI = "reduceEMI"
MODES = (MODE_REDUCE_TENURE, MODE_REDUCE_EMI)

# Hard ceiling on simulated months, shared by tenure discovery and the schedule
MAX_MONTHS = 1000


@dataclass(frozen=True)
class Prepayment:
    """An extra payment applied to the principal.

    Attributes
    ----------
    month: int
        The 1-based month number in which the prepayment is applied, after
        that month's regular installment.
    amount: Decimal
        The amount of additional money applied to the principal.
    """

    month: int
    amount: Decimal


@dataclass(frozen=True)
class LoanSpecification:
    """Inputs of a single calculation.

    At least one of ``tenure_months`` and ``emi`` must be given; the engine
    derives whichever is missing. When both are given, ``emi`` is used as the
    starting installment and ``tenure_months`` drives the re-amortization in
    ``reduceEMI`` mode.
    """

    loan_amount: Decimal
    annual_rate: Decimal  # annual nominal interest rate in percent
    tenure_months: Optional[int] = None
    emi: Optional[Decimal] = None
    prepayments: Tuple[Prepayment, ...] = ()
    mode: str = MODE_REDUCE_TENURE  # 'reduceTenure' or 'reduceEMI'

    def prepayment_for(self, month: int) -> Optional[Prepayment]:
        """Return the first prepayment scheduled for ``month``, if any."""
        for prepayment in self.prepayments:
            if prepayment.month == month:
                return prepayment
        return None


@dataclass
class AmortizationRow:
    """One simulated month of the schedule.

    ``emi`` is the installment charged in this month. It departs from the
    starting installment after a ``reduceEMI`` prepayment (every later row
    carries the re-amortized installment) and in the final month, which
    collects exactly the outstanding balance plus interest and so may be lower,
    or up to half a cent higher when a sub-cent residue is folded in.
    ``principal`` excludes the prepayment, which is reported separately.
    ``remaining_principal`` is the balance after both.
    """

    month: int
    emi: Decimal
    interest: Decimal
    principal: Decimal
    prepayment: Decimal
    remaining_principal: Decimal


@dataclass
class LoanCalculationResult:
    loan_amount: Decimal
    annual_rate: Decimal
    emi: Decimal  # resolved starting installment
    mode: str
    total_interest: Decimal
    total_paid: Decimal
    total_months: int
    breakdown: List[AmortizationRow] = field(default_factory=list)
