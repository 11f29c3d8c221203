#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Thai tariff calculator – CLI

Flow:
- Loads and validates the rate catalog (fatal on a malformed table).
- Collects usage figures from flags and/or a JSON file.
- Resolves the tariff, computes the bill and prints it as a table, JSON or Markdown.

Exit codes: 0 success, 2 rejected input, 3 broken rate catalog.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .billing import calculate, list_supported_combinations
from .billing.records import BillBreakdown
from .config import DEFAULT_FT_RATE_SATANG, DEFAULT_LOG_LEVEL, DEFAULT_OUTPUT_FORMAT, RATES_DIR
from .errors import CatalogIntegrityError, ValidationError
from .reporting.format import render_bill, render_combinations, summary_rows
from .tariffs import RateCatalog, TariffKey, build_default_catalog

console = Console()
logger = logging.getLogger("thai_tariff_calculator")

# flag dest -> usage field
_USAGE_FLAGS = (
    "total_kwh",
    "on_peak_kwh",
    "off_peak_kwh",
    "peak_kw",
    "on_peak_kw",
    "partial_peak_kw",
    "off_peak_kw",
    "peak_kvar",
    "highest_demand_charge_last_12m",
)


# --------------------------------------------------------------------
# Argument parsing
# --------------------------------------------------------------------
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="thai-tariff",
        description=(
            "Thai electricity bill calculator (MEA / PEA business tariffs)\n\n"
            "Picks the tariff for provider / customer class / scheme / voltage tier,\n"
            "applies energy, demand, power factor, FT and VAT, and prints the breakdown."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("-p", "--provider", help="Electricity provider: mea or pea.")
    parser.add_argument("-c", "--customer-class", help="Customer class: type-2, type-3, type-4 or type-5.")
    parser.add_argument("-t", "--tariff-scheme", help="Tariff scheme: normal, tou or tod.")
    parser.add_argument("-v", "--voltage-tier", help='Voltage tier, e.g. "<12kV", "22-33kV", ">=69kV".')

    parser.add_argument(
        "--ft-rate-satang",
        type=float,
        default=None,
        help="Fuel adjustment rate in satang per kWh (falls back to THAI_TARIFF_FT_RATE_SATANG).",
    )

    usage = parser.add_argument_group("usage figures")
    usage.add_argument("--total-kwh", type=float, help="Total energy for the period (kWh).")
    usage.add_argument("--on-peak-kwh", type=float, help="On-peak energy (kWh), TOU.")
    usage.add_argument("--off-peak-kwh", type=float, help="Off-peak energy (kWh), TOU.")
    usage.add_argument("--peak-kw", type=float, help="Peak demand (kW), normal schedules with demand billing.")
    usage.add_argument("--on-peak-kw", type=float, help="On-peak demand (kW).")
    usage.add_argument("--partial-peak-kw", type=float, help="Partial-peak demand (kW), TOD.")
    usage.add_argument("--off-peak-kw", type=float, help="Off-peak demand (kW).")
    usage.add_argument("--peak-kvar", type=float, help="Peak reactive power (kVAR) for the power factor surcharge.")
    usage.add_argument(
        "--highest-demand-charge-last-12m",
        type=float,
        help="Highest demand charge of the previous 12 months (Baht) for the demand ratchet.",
    )
    usage.add_argument(
        "--usage-json",
        type=str,
        default=None,
        help="JSON file with usage fields ('-' reads stdin). Flags override file values.",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List the supported tariff combinations and exit.",
    )
    parser.add_argument(
        "--output-format",
        choices=["table", "json", "markdown"],
        default=DEFAULT_OUTPUT_FORMAT,
        help="How to print the result.",
    )
    parser.add_argument(
        "--rates-dir",
        type=str,
        default=str(RATES_DIR),
        help="Directory with rate definition files (YAML/JSON).",
    )
    parser.add_argument(
        "--log-level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        default=DEFAULT_LOG_LEVEL,
        help="Logging level for internal messages.",
    )

    return parser.parse_args(argv)


# --------------------------------------------------------------------
# Helpers
# --------------------------------------------------------------------
def _read_usage_json(source: str) -> Dict[str, Any]:
    if source == "-":
        text = sys.stdin.read()
    else:
        try:
            text = Path(source).read_text(encoding="utf-8")
        except UnicodeDecodeError as ex:
            raise ValidationError("usage_json", f"Usage JSON is not valid UTF-8: {ex}") from ex
    try:
        data = json.loads(text)
    except json.JSONDecodeError as ex:
        raise ValidationError("usage_json", f"Usage JSON is not valid JSON: {ex}") from ex
    if not isinstance(data, dict):
        raise ValidationError("usage_json", "Usage JSON must be an object")
    return data


def _collect_usage(args: argparse.Namespace) -> Dict[str, Any]:
    usage: Dict[str, Any] = _read_usage_json(args.usage_json) if args.usage_json else {}
    for name in _USAGE_FLAGS:
        value = getattr(args, name)
        if value is not None:
            usage[name] = value
    return usage


def _resolve_ft_rate(args: argparse.Namespace) -> Optional[float]:
    if args.ft_rate_satang is not None:
        return args.ft_rate_satang
    if DEFAULT_FT_RATE_SATANG is None:
        return None
    try:
        return float(DEFAULT_FT_RATE_SATANG)
    except ValueError:
        raise ValidationError(
            "ft_rate_satang", f"THAI_TARIFF_FT_RATE_SATANG is not a number: {DEFAULT_FT_RATE_SATANG!r}"
        ) from None


def _print_bill_table(bill: BillBreakdown) -> None:
    key = bill.tariff_key
    lines = Table(title=f"{key.provider.upper()} {key.customer_class} {key.tariff_scheme.upper()} ({key.voltage_tier})")
    lines.add_column("Line")
    lines.add_column("Quantity", justify="right")
    lines.add_column("Unit")
    lines.add_column("Rate", justify="right")
    lines.add_column("Amount (THB)", justify="right")
    for line in bill.lines:
        lines.add_row(
            line.label,
            "-" if line.quantity is None else f"{line.quantity:,.2f}",
            line.unit or "-",
            "-" if line.rate is None else f"{line.rate:g}",
            f"{line.amount:,.2f}",
        )
    console.print(lines)

    summary = Table(show_header=False)
    summary.add_column("Component")
    summary.add_column("Amount (THB)", justify="right")
    for label, amount in summary_rows(bill):
        style = "bold green" if label == "Total" else None
        summary.add_row(label, f"{amount:,.2f}", style=style)
    console.print(summary)


def _print_combinations(keys: List[TariffKey], output_format: str) -> None:
    if output_format == "json":
        print(json.dumps([dict(k.to_dict(), tariff_id=k.composite_id) for k in keys], indent=2, ensure_ascii=False))
        return
    if output_format == "markdown":
        print(render_combinations(keys))
        return
    table = Table(title="Supported tariff combinations")
    for col in ("Tariff id", "Provider", "Class", "Scheme", "Voltage tier"):
        table.add_column(col)
    for k in keys:
        table.add_row(k.composite_id, k.provider.upper(), k.customer_class, k.tariff_scheme, k.voltage_tier)
    console.print(table)


def _load_catalog(rates_dir: str) -> RateCatalog:
    return build_default_catalog(Path(rates_dir))


# --------------------------------------------------------------------
# Main
# --------------------------------------------------------------------
def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logger.debug("CLI arguments: %s", args)

    try:
        catalog = _load_catalog(args.rates_dir)
    except CatalogIntegrityError as ex:
        logger.error("Rate catalog failed validation: %s", ex)
        console.print(f"[red]Rate catalog is invalid: {escape(str(ex))}[/red]", highlight=False)
        return 3

    if args.list:
        _print_combinations(list_supported_combinations(catalog), args.output_format)
        return 0

    try:
        bill = calculate(
            catalog,
            args.provider,
            args.customer_class,
            args.tariff_scheme,
            args.voltage_tier,
            _collect_usage(args),
            {"ft_rate_satang": _resolve_ft_rate(args)},
        )
    except ValidationError as ex:
        logger.info("Calculation rejected (%s): %s", ex.field, ex.message)
        if args.output_format == "json":
            print(json.dumps(ex.to_dict(), ensure_ascii=False))
        else:
            console.print(f"[red]Error ({ex.field}): {escape(ex.message)}[/red]", highlight=False)
        return 2
    except OSError as ex:
        console.print(f"[red]Cannot read usage file: {escape(str(ex))}[/red]", highlight=False)
        return 2

    if args.output_format == "json":
        print(json.dumps(bill.to_dict(), indent=2, ensure_ascii=False))
    elif args.output_format == "markdown":
        print(render_bill(bill))
    else:
        _print_bill_table(bill)
    return 0


if __name__ == "__main__":
    sys.exit(main())
