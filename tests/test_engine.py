from decimal import Decimal

import pytest

from emi_calc.data_models import (
    MAX_MONTHS,
    MODE_REDUCE_EMI,
    MODE_REDUCE_TENURE,
    LoanSpecification,
    Prepayment,
)
from emi_calc.engine import (
    calculate_emi,
    compare_with_baseline,
    compute,
    estimate_tenure,
    monthly_rate,
)
from emi_calc.exceptions import InvalidParameters, NonAmortizingEMI, SafetyCapExceeded
from emi_calc.formatter import format_amount, serialize_result

TOLERANCE = Decimal("1e-15")


def make_spec(**overrides):
    values = dict(loan_amount=Decimal("100000"), annual_rate=Decimal("10"), tenure_months=12)
    values.update(overrides)
    return LoanSpecification(**values)


def prepayment_spec(mode):
    return make_spec(
        annual_rate=Decimal("12"),
        tenure_months=24,
        prepayments=(Prepayment(month=6, amount=Decimal("20000")),),
        mode=mode,
    )


class TestCalculateEmi:
    def test_standard_annuity(self):
        emi = calculate_emi(Decimal("100000"), monthly_rate(Decimal("10")), 12)
        assert format_amount(emi) == "8791.59"

    def test_zero_rate_is_simple_division(self):
        assert calculate_emi(Decimal("10000"), Decimal("0"), 10) == Decimal("1000")

    def test_non_positive_months_rejected(self):
        with pytest.raises(InvalidParameters):
            calculate_emi(Decimal("10000"), Decimal("0.01"), 0)


class TestEstimateTenure:
    def test_recovers_tenure_from_rounded_emi(self):
        assert estimate_tenure(Decimal("100000"), monthly_rate(Decimal("10")), Decimal("8791.59")) == 12

    def test_recovers_tenure_from_exact_emi(self):
        rate = monthly_rate(Decimal("10"))
        emi = calculate_emi(Decimal("100000"), rate, 12)
        assert estimate_tenure(Decimal("100000"), rate, emi) == 12

    def test_emi_below_interest_rejected(self):
        with pytest.raises(NonAmortizingEMI):
            estimate_tenure(Decimal("100000"), monthly_rate(Decimal("24")), Decimal("500"))

    def test_emi_equal_to_interest_rejected(self):
        with pytest.raises(NonAmortizingEMI):
            estimate_tenure(Decimal("100000"), monthly_rate(Decimal("12")), Decimal("1000"))

    def test_safety_cap(self):
        with pytest.raises(SafetyCapExceeded):
            estimate_tenure(Decimal("1000000"), Decimal("0"), Decimal("1"))


class TestCompute:
    def test_tenure_to_emi(self):
        result = compute(make_spec())
        assert format_amount(result.emi) == "8791.59"
        assert result.total_months == 12
        assert len(result.breakdown) == 12
        assert result.mode == MODE_REDUCE_TENURE
        assert result.breakdown[-1].remaining_principal == 0
        assert abs(result.total_interest - Decimal("5499.06")) < Decimal("0.05")

    def test_emi_to_tenure_round_trip(self):
        first = compute(make_spec())
        emi = Decimal(format_amount(first.emi))
        second = compute(make_spec(tenure_months=None, emi=emi))
        assert second.total_months == 12
        assert format_amount(second.breakdown[-1].remaining_principal) == "0.00"

    @pytest.mark.parametrize(
        "spec",
        [
            prepayment_spec(MODE_REDUCE_TENURE),
            prepayment_spec(MODE_REDUCE_EMI),
            make_spec(
                loan_amount=Decimal("10000"),
                annual_rate=Decimal("0"),
                tenure_months=10,
                prepayments=(Prepayment(month=3, amount=Decimal("2000")),),
                mode=MODE_REDUCE_EMI,
            ),
        ],
        ids=["reduce-tenure", "reduce-emi", "reduce-emi-zero-rate"],
    )
    def test_rows_conserve_amounts(self, spec):
        result = compute(spec)
        previous = result.loan_amount
        for row in result.breakdown:
            assert abs(row.principal + row.interest - row.emi) < TOLERANCE
            expected = max(previous - row.principal - row.prepayment, Decimal("0"))
            assert abs(expected - row.remaining_principal) < Decimal("0.005")
            assert row.remaining_principal <= previous
            previous = row.remaining_principal
        assert previous == 0

    def test_months_are_sequential(self):
        result = compute(make_spec())
        assert [row.month for row in result.breakdown] == list(range(1, 13))

    def test_total_paid_is_emis_plus_prepayments(self):
        result = compute(prepayment_spec(MODE_REDUCE_TENURE))
        expected = sum(row.emi + row.prepayment for row in result.breakdown)
        assert result.total_paid == expected
        assert result.total_interest == sum(row.interest for row in result.breakdown)

    def test_reduce_tenure_keeps_emi(self):
        result = compute(prepayment_spec(MODE_REDUCE_TENURE))
        assert result.total_months < 24
        for row in result.breakdown[:-1]:
            assert row.emi == result.emi
        assert result.breakdown[5].prepayment == Decimal("20000")

    def test_reduce_emi_lowers_installment(self):
        result = compute(prepayment_spec(MODE_REDUCE_EMI))
        assert result.total_months == 24
        rows = result.breakdown
        for row in rows[:6]:
            assert row.emi == result.emi
        assert rows[6].emi < rows[5].emi
        for row in rows[7:-1]:
            assert row.emi == rows[6].emi
        assert rows[-1].remaining_principal == 0

    def test_reduce_emi_pays_more_interest_than_reduce_tenure(self):
        tenure = compute(prepayment_spec(MODE_REDUCE_TENURE))
        emi = compute(prepayment_spec(MODE_REDUCE_EMI))
        assert emi.total_interest > tenure.total_interest

    def test_non_amortizing_emi_rejected(self):
        with pytest.raises(NonAmortizingEMI):
            compute(make_spec(annual_rate=Decimal("24"), tenure_months=None, emi=Decimal("500")))

    def test_non_amortizing_emi_rejected_with_tenure(self):
        with pytest.raises(NonAmortizingEMI):
            compute(make_spec(annual_rate=Decimal("24"), emi=Decimal("500")))

    def test_zero_rate(self):
        result = compute(make_spec(loan_amount=Decimal("10000"), annual_rate=Decimal("0"), tenure_months=10))
        assert format_amount(result.emi) == "1000.00"
        assert format_amount(result.total_interest) == "0.00"
        assert result.total_months == 10
        assert format_amount(result.total_paid) == "10000.00"

    def test_prepayment_overshoot_floors_at_zero(self):
        spec = make_spec(
            loan_amount=Decimal("10000"),
            annual_rate=Decimal("0"),
            tenure_months=10,
            prepayments=(Prepayment(month=2, amount=Decimal("50000")),),
        )
        result = compute(spec)
        assert result.total_months == 2
        assert result.breakdown[-1].remaining_principal == 0
        assert result.total_paid == Decimal("52000")

    def test_first_prepayment_for_month_wins(self):
        spec = make_spec(
            prepayments=(
                Prepayment(month=3, amount=Decimal("1000")),
                Prepayment(month=3, amount=Decimal("5000")),
            )
        )
        result = compute(spec)
        assert result.breakdown[2].prepayment == Decimal("1000")

    def test_supplied_emi_and_tenure(self):
        # emi wins for the installment, tenure only drives reduceEMI rescheduling
        spec = make_spec(
            annual_rate=Decimal("12"),
            emi=Decimal("5000"),
            prepayments=(Prepayment(month=12, amount=Decimal("1000")),),
            mode=MODE_REDUCE_EMI,
        )
        result = compute(spec)
        assert result.emi == Decimal("5000")
        assert result.total_months > 12
        assert result.breakdown[12].emi == Decimal("5000")

    def test_reduce_emi_uses_supplied_tenure(self):
        spec = make_spec(
            annual_rate=Decimal("12"),
            tenure_months=24,
            emi=Decimal("4707.35"),
            prepayments=(Prepayment(month=6, amount=Decimal("20000")),),
            mode=MODE_REDUCE_EMI,
        )
        assert compute(spec).total_months == 24

    def test_safety_cap_in_schedule(self):
        spec = make_spec(loan_amount=Decimal("1000000"), annual_rate=Decimal("0"), emi=Decimal("1"))
        with pytest.raises(SafetyCapExceeded):
            compute(spec)

    def test_enormous_tenure_reported_as_safety_cap(self):
        with pytest.raises(SafetyCapExceeded):
            compute(make_spec(annual_rate=Decimal("12"), tenure_months=1_000_000_000))

    def test_zero_rate_reduce_emi_keeps_payoff_month(self):
        spec = make_spec(
            loan_amount=Decimal("10000"),
            annual_rate=Decimal("0"),
            tenure_months=10,
            prepayments=(Prepayment(month=3, amount=Decimal("2000")),),
            mode=MODE_REDUCE_EMI,
        )
        result = compute(spec)
        assert result.total_months == 10
        assert format_amount(result.breakdown[3].emi) == "714.29"
        assert result.total_interest == 0

    def test_long_loan_within_cap(self):
        result = compute(make_spec(annual_rate=Decimal("8.5"), tenure_months=360))
        assert result.total_months == 360
        assert result.total_months <= MAX_MONTHS

    def test_deterministic(self):
        spec = prepayment_spec(MODE_REDUCE_EMI)
        assert serialize_result(compute(spec)) == serialize_result(compute(spec))

    def test_input_not_mutated(self):
        spec = prepayment_spec(MODE_REDUCE_EMI)
        before = repr(spec)
        compute(spec)
        assert repr(spec) == before


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            dict(tenure_months=None, emi=None),
            dict(loan_amount=Decimal("0")),
            dict(loan_amount=Decimal("-5")),
            dict(annual_rate=Decimal("-1")),
            dict(tenure_months=0),
            dict(tenure_months=None, emi=Decimal("0")),
            dict(mode="reducePrincipal"),
            dict(prepayments=(Prepayment(month=0, amount=Decimal("100")),)),
            dict(prepayments=(Prepayment(month=3, amount=Decimal("0")),)),
            dict(loan_amount=Decimal("9e999998")),
            dict(loan_amount=Decimal("1e16")),
            dict(annual_rate=Decimal("1e30")),
            dict(tenure_months=None, emi=Decimal("1e26")),
            dict(prepayments=(Prepayment(month=3, amount=Decimal("1e20")),)),
        ],
    )
    def test_rejected(self, overrides):
        with pytest.raises(InvalidParameters):
            compute(make_spec(**overrides))

    def test_missing_emi_and_tenure_message(self):
        with pytest.raises(InvalidParameters, match="either EMI or tenureMonths"):
            compute(make_spec(tenure_months=None))


class TestCompareWithBaseline:
    def test_prepayment_savings(self):
        comparison = compare_with_baseline(prepayment_spec(MODE_REDUCE_TENURE))
        assert comparison["baseline_total_months"] == 24
        assert comparison["months_saved"] > 0
        assert comparison["interest_saved"] > 0

    def test_no_prepayments_saves_nothing(self):
        comparison = compare_with_baseline(make_spec())
        assert comparison["interest_saved"] == 0
        assert comparison["months_saved"] == 0
