from typing import Any, Dict, List, Sequence

from ..billing.records import BillBreakdown
from ..tariffs.types import TariffKey

CURRENCY = "THB"


def _format_currency(value: float, currency: str = CURRENCY) -> str:
    return f"{value:,.2f} {currency}"


def _num(v: Any) -> str:
    if v is None:
        return "-"
    try:
        f = float(v)
    except (TypeError, ValueError):
        return "-"
    return f"{f:,.4f}".rstrip("0").rstrip(".")


def _md_escape(v: Any) -> str:
    s = "" if v is None else str(v)
    return s.replace("|", "\\|").replace("\n", " ").strip()


def summary_rows(bill: BillBreakdown) -> List[tuple]:
    """(label, amount) rows shared by the Markdown and console renderings."""

    rows = [
        ("Energy charge", bill.energy_charge),
        ("Demand charge", bill.demand_charge),
    ]
    if bill.power_factor_charge:
        rows.append(("Power factor surcharge", bill.power_factor_charge))
    rows.extend(
        [
            ("Base tariff", bill.base_tariff),
            ("Service charge", bill.service_charge),
            ("Fuel adjustment (FT)", bill.fuel_adjustment_charge),
            ("Taxable amount", bill.taxable_amount),
            ("VAT 7%", bill.tax),
            ("Total", bill.total_amount),
        ]
    )
    return rows


def render_lines_table(bill: BillBreakdown) -> str:
    rows = [
        "| Line | Quantity | Unit | Rate | Amount |",
        "|---|---:|---|---:|---:|",
    ]
    for line in bill.lines:
        rows.append(
            "| {label} | {qty} | {unit} | {rate} | {amount} |".format(
                label=_md_escape(line.label),
                qty=_num(line.quantity),
                unit=_md_escape(line.unit) or "-",
                rate=_num(line.rate),
                amount=_format_currency(line.amount),
            )
        )
    return "\n".join(rows)


def render_summary_table(bill: BillBreakdown) -> str:
    rows = ["| Component | Amount |", "|---|---:|"]
    for label, amount in summary_rows(bill):
        rows.append(f"| {label} | {_format_currency(amount)} |")
    return "\n".join(rows)


def render_bill(bill: BillBreakdown) -> str:
    key = bill.tariff_key
    sections = [
        f"## {key.provider.upper()} {key.customer_class} {key.tariff_scheme.upper()} ({key.voltage_tier})",
        "",
        f"Tariff id: `{key.composite_id}` · formula: {bill.variant.value} · "
        f"{_num(bill.total_kwh)} kWh · FT {_num(bill.ft_rate_satang)} satang/kWh",
        "",
        "### Summary",
        render_summary_table(bill),
        "",
        "### Charge lines",
        render_lines_table(bill),
    ]
    return "\n".join(sections).strip()


def render_combinations(keys: Sequence[TariffKey]) -> str:
    grouped: Dict[str, List[TariffKey]] = {}
    for key in keys:
        grouped.setdefault(key.provider, []).append(key)

    sections: List[str] = []
    for provider, provider_keys in grouped.items():
        sections.append(f"## {provider.upper()}")
        sections.append("| Tariff id | Customer class | Scheme | Voltage tier |")
        sections.append("|---|---|---|---|")
        for key in provider_keys:
            sections.append(
                f"| `{_md_escape(key.composite_id)}` | {key.customer_class} | {key.tariff_scheme} | "
                f"{_md_escape(key.voltage_tier)} |"
            )
        sections.append("")
    return "\n".join(sections).strip()
