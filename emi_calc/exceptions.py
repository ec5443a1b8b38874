"""Errors raised by the EMI calculator.

Every failure is a ``ValueError`` subclass with a stable ``code`` so callers
(the CLI and the web app) can report it without inspecting message text.
"""

from typing import Optional


class LoanCalculationError(ValueError):
    """Base class for rejected calculations."""

    code = "loan_calculation_error"
    default_message = "Loan calculation failed."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidParameters(LoanCalculationError):
    """Raised for missing, malformed or out-of-range inputs."""

    code = "invalid_parameters"
    default_message = "Provide either EMI or tenureMonths."


class NonAmortizingEMI(LoanCalculationError):
    """Raised when the installment never reduces the principal."""

    code = "non_amortizing_emi"
    default_message = "EMI too small for given interest rate."


class SafetyCapExceeded(LoanCalculationError):
    code = "safety_cap_exceeded"
    default_message = "Loan is not repaid within the maximum number of months."
