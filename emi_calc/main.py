"""Command-line interface for the EMI calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute full amortization schedules, view totals only or
compare the effect of prepayments. Loan parameters come either from options
or from a JSON request document; results can be printed to the terminal or
exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from .data_models import MODE_REDUCE_EMI, MODE_REDUCE_TENURE, MODES, LoanCalculationResult, LoanSpecification
from .engine import compare_with_baseline, compute
from .exceptions import LoanCalculationError
from .formatter import (
    format_amount,
    print_comparison,
    print_schedule,
    print_summary,
    serialize_comparison,
    serialize_result,
)
from .utils import decimal_from_str, parse_prepayment_strings, spec_from_payload

MAX_PRINTED_ROWS = 120


def load_payload(source: str) -> Any:
    """Read a JSON request document from a file path, or stdin for ``-``."""
    with click.open_file(source, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as exc:
            raise click.BadParameter(f"Invalid JSON in {source}: {exc}", param_hint="--input")


def build_spec_from_options(
    amount: Optional[str],
    rate: Optional[str],
    tenure: Optional[int],
    emi: Optional[str],
    prepayment: Tuple[str, ...],
    mode: str,
) -> LoanSpecification:
    if amount is None:
        raise click.BadParameter("Loan amount is required", param_hint="--amount")
    if rate is None:
        raise click.BadParameter("Annual rate is required", param_hint="--rate")
    try:
        return LoanSpecification(
            loan_amount=decimal_from_str(amount),
            annual_rate=decimal_from_str(rate.rstrip("%")),
            tenure_months=tenure,
            emi=decimal_from_str(emi) if emi else None,
            prepayments=tuple(parse_prepayment_strings(prepayment)),
            mode=mode,
        )
    except LoanCalculationError as exc:
        raise click.BadParameter(exc.message)


def resolve_spec(input_path: Optional[str], **options: Any) -> LoanSpecification:
    if input_path:
        try:
            return spec_from_payload(load_payload(input_path))
        except LoanCalculationError as exc:
            raise click.BadParameter(exc.message, param_hint="--input")
    return build_spec_from_options(**options)


def run_compute(spec: LoanSpecification) -> LoanCalculationResult:
    try:
        return compute(spec)
    except LoanCalculationError as exc:
        raise click.ClickException(exc.message)


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    """Export a serialized result to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, result: LoanCalculationResult) -> None:
    """Export the schedule to a CSV file."""
    header = ["Month", "EMI", "Interest", "Principal", "Prepayment", "Remaining_Principal"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in result.breakdown:
            writer.writerow(
                [
                    row.month,
                    format_amount(row.emi),
                    format_amount(row.interest),
                    format_amount(row.principal),
                    format_amount(row.prepayment),
                    format_amount(row.remaining_principal),
                ]
            )


def loan_options(func):
    """Attach the loan parameter options shared by every command."""
    options = [
        click.option("--input", "-i", "input_path", help="JSON request file ('-' for stdin); replaces the options below"),
        click.option("--amount", "-a", "amount", help="Loan amount (accepts k/m suffixes)"),
        click.option("--rate", "-r", "rate", help="Annual interest rate (percent)"),
        click.option("--tenure", "-t", "tenure", type=click.IntRange(min=1), help="Tenure in months"),
        click.option("--emi", "-e", "emi", help="Fixed monthly installment"),
        click.option("--prepayment", "prepayment", multiple=True, help="Prepayment in MONTH:AMOUNT format"),
        click.option("--mode", "mode", type=click.Choice(list(MODES)), default=MODE_REDUCE_TENURE, help="How prepayments affect the loan"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log calculation details")
def cli(verbose: bool) -> None:
    """An EMI calculator with prepayment support."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    input_path: Optional[str],
    amount: Optional[str],
    rate: Optional[str],
    tenure: Optional[int],
    emi: Optional[str],
    prepayment: Tuple[str, ...],
    mode: str,
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    spec = resolve_spec(input_path, amount=amount, rate=rate, tenure=tenure, emi=emi, prepayment=prepayment, mode=mode)
    result = run_compute(spec)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, serialize_result(result))
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
        return

    print_summary(result)
    # Limit schedule length printed to avoid flooding the terminal
    if len(result.breakdown) > MAX_PRINTED_ROWS:
        click.echo(
            f"Schedule has {len(result.breakdown)} rows; showing first {MAX_PRINTED_ROWS} rows."
        )
        print_schedule(result.breakdown[:MAX_PRINTED_ROWS])
    else:
        print_schedule(result.breakdown)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    input_path: Optional[str],
    amount: Optional[str],
    rate: Optional[str],
    tenure: Optional[int],
    emi: Optional[str],
    prepayment: Tuple[str, ...],
    mode: str,
    output: Optional[str],
) -> None:
    """Compute and print only the totals for a loan."""
    spec = resolve_spec(input_path, amount=amount, rate=rate, tenure=tenure, emi=emi, prepayment=prepayment, mode=mode)
    result = run_compute(spec)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        data = serialize_result(result)
        data.pop("breakdown")
        export_to_json(path, {"summary": data})
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def compare(
    input_path: Optional[str],
    amount: Optional[str],
    rate: Optional[str],
    tenure: Optional[int],
    emi: Optional[str],
    prepayment: Tuple[str, ...],
    mode: str,
    output: Optional[str],
) -> None:
    """Compare a loan's prepayments against the same loan without them.

    Also shows the totals of both prepayment modes side by side, for example:

        emi-calc compare -a 100k -r 12 -t 24 --prepayment 6:20000
    """
    spec = resolve_spec(input_path, amount=amount, rate=rate, tenure=tenure, emi=emi, prepayment=prepayment, mode=mode)
    try:
        comparison = compare_with_baseline(spec)
        reduce_tenure = compute(replace(spec, mode=MODE_REDUCE_TENURE))
        reduce_emi = compute(replace(spec, mode=MODE_REDUCE_EMI))
    except LoanCalculationError as exc:
        raise click.ClickException(exc.message)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Comparison export must use .json extension", param_hint="--output")
        data = {"comparison": serialize_comparison(comparison)}
        for result in (reduce_tenure, reduce_emi):
            totals = serialize_result(result)
            totals.pop("breakdown")
            data[result.mode] = totals
        export_to_json(path, data)
        click.echo(f"Comparison exported to {path}")
    else:
        print_comparison(comparison, reduce_tenure, reduce_emi)


if __name__ == "__main__":
    cli()
